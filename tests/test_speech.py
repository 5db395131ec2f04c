import threading

from allie.media import AudioMode, AudioRouter
from allie.speech import SpeechPlayback, clean_for_speech

from conftest import FakePlayer, FakeTTS


def test_natural_finish_calls_done_and_restores_record_mode():
    router = AudioRouter()
    done = threading.Event()
    speech = SpeechPlayback(FakeTTS(), FakePlayer(), router=router)

    speech.speak("hello", voice="default", on_done=done.set)

    assert speech.wait(2)
    assert done.wait(2)
    assert router.mode is AudioMode.RECORD
    assert not speech.speaking


def test_cancel_while_speaking_then_speak_again():
    router = AudioRouter()
    tts = FakeTTS()
    blocking = FakePlayer(block=True)
    speech = SpeechPlayback(tts, blocking, router=router)
    first_done = threading.Event()

    speech.speak("a very long answer", on_done=first_done.set)
    assert blocking.started.wait(2)
    assert speech.speaking

    speech.cancel()
    assert not speech.speaking
    assert router.mode is AudioMode.PLAYBACK
    assert not first_done.is_set()

    # not stuck: the next utterance plays normally
    blocking.block = False
    second_done = threading.Event()
    speech.speak("short one", on_done=second_done.set)
    assert second_done.wait(2)
    assert router.mode is AudioMode.RECORD
    assert [t for t, _ in tts.texts] == ["a very long answer", "short one"]


def test_cancel_when_idle_is_noop():
    router = AudioRouter(AudioMode.RECORD)
    speech = SpeechPlayback(FakeTTS(), FakePlayer(), router=router)
    speech.cancel()
    assert router.mode is AudioMode.RECORD
    assert speech.wait(0)


def test_non_streaming_synthesis():
    done = threading.Event()
    tts = FakeTTS()
    speech = SpeechPlayback(tts, FakePlayer(), stream=False)
    speech.speak("hi", on_done=done.set)
    assert done.wait(2)
    assert tts.texts == [("hi", None)]


def test_empty_text_completes_immediately():
    done = threading.Event()
    tts = FakeTTS()
    SpeechPlayback(tts, FakePlayer()).speak("", on_done=done.set)
    assert done.is_set()
    assert tts.texts == []


def test_clean_for_speech():
    text = "**Great** news! 🎉 Check [the docs](http://x) and `run it`.\n- item"
    assert clean_for_speech(text) == "Great news! Check the docs and run it.\nitem"
