import threading

import pytest

from allie.errors import DownstreamCallFailed
from allie.history import ConversationHistory
from allie.orchestrator import ResponseOrchestrator
from allie.personality import PersonalityMode


class FakeBackend:
    """Records calls; returns canned answers or raises DownstreamCallFailed."""

    def __init__(self):
        self.calls = []
        self.weather_result = "The current weather in Chicago, US is clear sky with a temperature of 21°C."
        self.sports_result = "Bulls 98 - Lakers 102"
        self.chat_result = "Happy to help!"
        self.schedule_result = {"message": "Added to your calendar."}
        self.delete_result = "Event deleted."
        self.fail = set()

    def _maybe_fail(self, service):
        if service in self.fail:
            raise DownstreamCallFailed(service, "boom")

    def weather(self, city):
        self.calls.append(("weather", city))
        self._maybe_fail("weather")
        return self.weather_result

    def sports(self, team, stat_type):
        self.calls.append(("sports", team, stat_type))
        self._maybe_fail("sports")
        return self.sports_result

    def schedule(self, prompt, delete=False):
        self.calls.append(("schedule", prompt, delete))
        self._maybe_fail("schedule")
        return self.schedule_result

    def delete_event(self, event_id):
        self.calls.append(("delete", event_id))
        self._maybe_fail("delete")
        return self.delete_result

    def smart(self, prompt, history=(), mode=None, language=None):
        self.calls.append(("chat", prompt, list(history), mode, language))
        self._maybe_fail("chat")
        return self.chat_result


class FakeTTS:
    def __init__(self):
        self.texts = []

    def synthesize_stream(self, text, voice=None):
        self.texts.append((text, voice))
        return iter([b"\x00\x00" * 16])

    def synthesize(self, text, voice=None, timeout=None):
        self.texts.append((text, voice))
        return b"RIFF"


class FakePlayer:
    """Plays instantly, or blocks until stopped when block=True."""

    def __init__(self, block=False):
        self.block = block
        self.started = threading.Event()
        self.played = 0

    def play_stream(self, pcm_chunks, stop=None):
        self.started.set()
        self.played += 1
        if self.block:
            stop.wait(5)
            return not stop.is_set()
        return True

    def play(self, wav_bytes, stop=None):
        return self.play_stream(iter([wav_bytes]), stop=stop)


class Clock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def orchestrator(backend, clock):
    return ResponseOrchestrator(
        backend=backend,
        history=ConversationHistory(retention_s=1800),
        mode=PersonalityMode.FRIENDLY,
        language="en",
        clock=clock,
    )
