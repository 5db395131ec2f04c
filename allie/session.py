import enum
import itertools
import logging
import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import AlreadyRecording, TranscriptionFailed
from .history import HistoryPruner
from .intent import IntentRouter
from .media import AudioHandle, AudioMode, AudioRouter
from .orchestrator import Reply, ResponseOrchestrator
from .personality import INTRO_QUOTES, PersonalityMode
from .tts import voice_for

log = logging.getLogger(__name__)


class TurnState(enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"
    TRANSCRIBING = "transcribing"
    ROUTING = "routing"
    DISPATCHING = "dispatching"
    SPEAKING = "speaking"
    CANCELLED = "cancelled"


_CANCELLABLE = {
    TurnState.TRANSCRIBING,
    TurnState.ROUTING,
    TurnState.DISPATCHING,
    TurnState.SPEAKING,
}


@dataclass
class TurnResult:
    turn_id: int
    transcript: str = ""
    reply: Optional[Reply] = None
    error: Optional[Exception] = None
    cancelled: bool = False


class _TurnCancelled(Exception):
    pass


class ConversationSession:
    """
    Drives one conversation through the turn cycle:
      Idle → Recording → Transcribing → Routing → Dispatching → Speaking → Idle

    Every turn gets an id. cancel() bumps the current id and returns the
    session to Idle straight away; a worker that wakes up from a network call
    with a stale id drops its result instead of speaking it.
    """

    def __init__(
        self,
        capture,
        transcriber,
        speech,
        orchestrator: Optional[ResponseOrchestrator] = None,
        router: Optional[IntentRouter] = None,
        audio_router: Optional[AudioRouter] = None,
        pruner: Optional[HistoryPruner] = None,
        on_state: Optional[Callable[[TurnState], None]] = None,
        on_result: Optional[Callable[[TurnResult], None]] = None,
        keep_recordings: bool = False,
    ):
        self._capture = capture
        self._transcriber = transcriber
        self._speech = speech
        self.orchestrator = orchestrator or ResponseOrchestrator()
        self._router = router or IntentRouter()
        self._audio = audio_router or AudioRouter()
        self._pruner = pruner or HistoryPruner(self.orchestrator.history)
        self._on_state = on_state
        self._on_result = on_result
        self._keep_recordings = keep_recordings

        self._state = TurnState.IDLE
        self._lock = threading.Lock()
        self._turn_ids = itertools.count(1)
        self._turn_id = 0

    # ── state ────────────────────────────────────────────────────────────────

    @property
    def state(self) -> TurnState:
        with self._lock:
            return self._state

    @property
    def busy(self) -> bool:
        return self.state is not TurnState.IDLE

    def _set_state(self, state: TurnState, turn_id: Optional[int] = None) -> bool:
        """Move to *state*; with *turn_id*, only if that turn is still current."""
        with self._lock:
            if turn_id is not None and turn_id != self._turn_id:
                return False
            if self._state is state:
                return True
            log.debug("Turn state: %s → %s", self._state.value, state.value)
            self._state = state
        if self._on_state:
            self._on_state(state)
        return True

    def _advance(self, turn_id: int, state: TurnState):
        if not self._set_state(state, turn_id):
            raise _TurnCancelled()

    # ── lifecycle ────────────────────────────────────────────────────────────

    def open(self):
        self._pruner.start()
        self._audio.set_mode(AudioMode.RECORD)
        log.info("Conversation opened (mode=%s, language=%s).",
                 self.orchestrator.mode.value, self.orchestrator.language)

    def close(self):
        self.cancel()
        self.discard_recording()
        self._pruner.stop()
        self.orchestrator.history.clear()
        self._set_state(TurnState.IDLE)
        log.info("Conversation closed.")

    # ── settings ─────────────────────────────────────────────────────────────

    def set_mode(self, mode, speak_intro: bool = True) -> str:
        """Switch personality; returns (and optionally speaks) its intro quote."""
        mode = mode if isinstance(mode, PersonalityMode) else PersonalityMode.parse(mode)
        self.orchestrator.mode = mode
        quote = INTRO_QUOTES[mode]
        log.info("Personality → %s", mode.value)
        if speak_intro and not self.busy:
            self._speech.speak(quote, voice=voice_for(self.orchestrator.language))
        return quote

    def set_language(self, language: str):
        language = language.strip().lower()
        if language not in ("en", "es"):
            raise ValueError(f"unsupported language {language!r} (choose en or es)")
        self.orchestrator.language = language
        log.info("Language → %s", language)

    # ── recording ────────────────────────────────────────────────────────────

    def start_recording(self):
        # Talking over Allie interrupts her; anything else must finish first.
        if self.state is TurnState.SPEAKING:
            self.cancel()
        with self._lock:
            if self._state is not TurnState.IDLE:
                raise AlreadyRecording(f"cannot record while {self._state.value}")
        self._speech.cancel()
        self._capture.start()
        self._set_state(TurnState.RECORDING)

    def stop_recording(self, wait: bool = False) -> Optional[threading.Thread]:
        """Stop recording and run the rest of the turn on a worker thread."""
        try:
            audio = self._capture.stop()
        except Exception:
            # The capture is no longer running whatever went wrong.
            self._set_state(TurnState.IDLE)
            raise
        turn_id = self._next_turn()
        self._set_state(TurnState.TRANSCRIBING, turn_id)
        worker = threading.Thread(target=self._run_turn, args=(turn_id, audio), name="turn", daemon=True)
        worker.start()
        if wait:
            worker.join()
        return worker

    def discard_recording(self):
        """Drop an in-progress recording without running a turn."""
        self._capture.cancel()
        with self._lock:
            recording = self._state is TurnState.RECORDING
        if recording:
            self._set_state(TurnState.IDLE)

    def process(self, audio: AudioHandle) -> TurnResult:
        """Run one turn for an existing recording in the calling thread."""
        turn_id = self._next_turn()
        self._set_state(TurnState.TRANSCRIBING, turn_id)
        return self._run_turn(turn_id, audio)

    def _next_turn(self) -> int:
        with self._lock:
            self._turn_id = next(self._turn_ids)
            return self._turn_id

    # ── cancellation ─────────────────────────────────────────────────────────

    def cancel(self) -> bool:
        """Abandon the in-flight turn. Safe from any state; True if anything was cancelled."""
        with self._lock:
            state = self._state
            if state not in _CANCELLABLE:
                return False
            self._turn_id = next(self._turn_ids)
        self._set_state(TurnState.CANCELLED)
        self._speech.cancel()
        self._audio.set_mode(AudioMode.PLAYBACK)
        self._set_state(TurnState.IDLE)
        log.info("Turn cancelled while %s.", state.value)
        return True

    # ── pipeline ─────────────────────────────────────────────────────────────

    def _run_turn(self, turn_id: int, audio: AudioHandle) -> TurnResult:
        result = TurnResult(turn_id=turn_id)
        try:
            self._pipeline(turn_id, audio, result)
        except _TurnCancelled:
            log.info("Turn %d was cancelled; result dropped.", turn_id)
            result.cancelled = True
        except Exception as exc:
            log.error("Pipeline error: %s", exc)
            result.error = exc
            self._set_state(TurnState.IDLE, turn_id)
        finally:
            if not self._keep_recordings:
                self._discard(audio)
        if self._on_result and not result.cancelled:
            self._on_result(result)
        return result

    def _pipeline(self, turn_id: int, audio: AudioHandle, result: TurnResult):
        # 1. Transcribe
        log.info("Transcribing (%.1fs of audio) …", audio.duration_s)
        t0 = time.time()
        try:
            text = self._transcriber.transcribe(audio, self.orchestrator.language)
        except TranscriptionFailed as exc:
            self._advance(turn_id, TurnState.IDLE)
            log.warning("Transcription failed: %s", exc)
            result.error = exc
            return
        log.info("Transcribe: completed in %.0f ms", (time.time() - t0) * 1000)
        if not text:
            self._advance(turn_id, TurnState.IDLE)
            log.info("Transcribe: empty result, skipping.")
            result.error = TranscriptionFailed("empty transcript")
            return
        result.transcript = text
        log.info("User said: %s", text)

        # 2. Route
        self._advance(turn_id, TurnState.ROUTING)
        intent = self._router.classify(text, self.orchestrator.pending_selection)
        log.info("Intent: %s", intent)

        # 3. Dispatch
        self._advance(turn_id, TurnState.DISPATCHING)
        t0 = time.time()
        reply = self.orchestrator.respond(intent, text)
        log.info("Dispatch: completed in %.0f ms", (time.time() - t0) * 1000)
        self._commit(turn_id, text, reply)
        result.reply = reply
        log.info("Allie: %s", reply.text)

        # 4. Speak
        self._speech.speak(
            reply.spoken_text,
            voice=voice_for(self.orchestrator.language),
            on_done=lambda: self._set_state(TurnState.IDLE, turn_id),
        )

    def _commit(self, turn_id: int, text: str, reply: Reply):
        """Keep the exchange and move to Speaking, unless the turn was cancelled meanwhile."""
        with self._lock:
            if turn_id != self._turn_id:
                raise _TurnCancelled()
            self.orchestrator.record(text, reply)
            log.debug("Turn state: %s → %s", self._state.value, TurnState.SPEAKING.value)
            self._state = TurnState.SPEAKING
        if self._on_state:
            self._on_state(TurnState.SPEAKING)

    @staticmethod
    def _discard(audio: AudioHandle):
        try:
            os.remove(audio.path)
        except OSError as exc:
            log.debug("Could not remove recording %s: %s", audio.path, exc)
