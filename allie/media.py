import enum
import logging
import threading
from dataclasses import dataclass

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AudioHandle:
    """A finished recording on disk."""
    path: str
    duration_s: float = 0.0
    mime_type: str = "audio/wav"


class AudioMode(enum.Enum):
    RECORD = "record"       # mic open, playback may be ducked
    PLAYBACK = "playback"   # mic closed, speaker has the device


class AudioRouter:
    """
    Tracks which way the audio device is routed.
    Capture switches to RECORD on start and back to PLAYBACK on stop; speech
    restores RECORD when an utterance finishes naturally and PLAYBACK when it
    is cancelled. The microphone drops frames while routed to PLAYBACK so the
    speaker never feeds the recording.
    """

    def __init__(self, mode: AudioMode = AudioMode.PLAYBACK):
        self._mode = mode
        self._lock = threading.Lock()

    @property
    def mode(self) -> AudioMode:
        with self._lock:
            return self._mode

    def set_mode(self, mode: AudioMode):
        with self._lock:
            changed = mode is not self._mode
            self._mode = mode
        if changed:
            log.debug("Audio routing → %s", mode.value)

    def allows_recording(self) -> bool:
        return self.mode is AudioMode.RECORD
