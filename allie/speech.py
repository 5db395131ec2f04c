import logging
import re
import threading
from typing import Callable, Optional

from . import config
from .media import AudioMode, AudioRouter

log = logging.getLogger(__name__)


def clean_for_speech(text: str) -> str:
    """Strip markdown, emojis, and symbols so TTS receives plain speech text."""
    # Remove markdown bold/italic markers
    text = re.sub(r'\*{1,3}', '', text)
    # Remove markdown headers (## Header)
    text = re.sub(r'^#{1,6}\s+', '', text, flags=re.MULTILINE)
    # Remove markdown bullet points (- item, * item)
    text = re.sub(r'^\s*[-*]\s+', '', text, flags=re.MULTILINE)
    # Remove markdown links [text](url) → text
    text = re.sub(r'\[([^\]]*)\]\([^)]*\)', r'\1', text)
    # Remove inline code backticks
    text = re.sub(r'`([^`]*)`', r'\1', text)
    # Remove emojis and pictographs
    text = re.sub(
        r'[\U0001F000-\U0001FAFF\U00002600-\U000027BF\U0000FE00-\U0000FE0F'
        r'\U0000200D\U00002B00-\U00002BFF\U0000E000-\U0000F8FF]+', '', text)
    # Collapse whitespace
    text = re.sub(r'\n{3,}', '\n\n', text)
    text = re.sub(r'[ \t]+', ' ', text)
    return text.strip()


class SpeechPlayback:
    """
    Speaks text in a background thread and can be interrupted at any time.

    speak() returns immediately. When the utterance finishes on its own the
    routing mode goes back to RECORD and *on_done* is called; cancel() stops
    playback, goes to PLAYBACK and never calls *on_done*.
    """

    def __init__(self, tts, player, router: Optional[AudioRouter] = None, stream: bool = True):
        self._tts = tts
        self._player = player
        self._router = router or AudioRouter()
        self._stream = stream
        self._lock = threading.Lock()
        self._stop: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def speaking(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def speak(self, text: str, voice: str = None, on_done: Optional[Callable[[], None]] = None):
        self.cancel()
        if not text:
            log.debug("Nothing to speak.")
            if on_done:
                on_done()
            return
        stop = threading.Event()
        thread = threading.Thread(
            target=self._run, args=(text, voice, stop, on_done), name="speech", daemon=True
        )
        with self._lock:
            self._stop = stop
            self._thread = thread
        self._router.set_mode(AudioMode.PLAYBACK)
        thread.start()

    def cancel(self):
        """Stop any current utterance. No-op when nothing is playing."""
        with self._lock:
            stop, thread = self._stop, self._thread
            self._stop = self._thread = None
        if stop is None or not thread.is_alive():
            return
        stop.set()
        if thread is not threading.current_thread():
            thread.join(timeout=2)
        self._router.set_mode(AudioMode.PLAYBACK)
        log.info("Speech cancelled.")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current utterance ends. True if nothing is playing afterwards."""
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _run(self, text: str, voice: Optional[str], stop: threading.Event, on_done):
        completed = False
        try:
            if self._stream:
                completed = self._player.play_stream(self._tts.synthesize_stream(text, voice=voice), stop=stop)
            else:
                audio = self._tts.synthesize(text, voice=voice, timeout=config.TTS_TIMEOUT)
                completed = bool(audio) and self._player.play(audio, stop=stop)
        except Exception as exc:
            log.error("Speech playback error: %s", exc)
        if stop.is_set():
            return
        if not completed:
            log.warning("Speech did not finish normally.")
        self._router.set_mode(AudioMode.RECORD)
        if on_done:
            try:
                on_done()
            except Exception as exc:
                log.error("Speech completion callback failed: %s", exc)
