import logging
import signal
import sys
import threading

from . import config
from .audio import AudioPlayer
from .backend import BackendClient
from .capture import AudioCaptureSession
from .errors import AllieError
from .history import ConversationHistory, HistoryPruner
from .media import AudioRouter
from .orchestrator import ResponseOrchestrator
from .personality import PersonalityMode
from .session import ConversationSession, TurnResult, TurnState
from .speech import SpeechPlayback
from .transcription import TranscriptionClient
from .tts import TTSClient

log = logging.getLogger(__name__)

HELP = (
    "Enter = start/stop recording · c = cancel · mode <{modes}> · lang <en|es> · q = quit"
).format(modes="|".join(m.value for m in PersonalityMode))


class HelloAllieApp:
    """
    Push-to-talk console front end. Wires the real components together and
    turns keyboard commands into session calls.
    """

    def __init__(self):
        self._audio = AudioRouter()
        self._player = AudioPlayer()
        self._history = ConversationHistory()
        self._capture = AudioCaptureSession(router=self._audio)
        self._speech = SpeechPlayback(TTSClient(), self._player, router=self._audio, stream=config.TTS_STREAM)
        self._session = ConversationSession(
            capture=self._capture,
            transcriber=TranscriptionClient(),
            speech=self._speech,
            orchestrator=ResponseOrchestrator(BackendClient(), self._history),
            audio_router=self._audio,
            pruner=HistoryPruner(self._history),
            on_state=self._show_state,
            on_result=self._show_result,
        )
        self._stop = threading.Event()

    # ── display ──────────────────────────────────────────────────────────────

    @staticmethod
    def _show_state(state: TurnState):
        if state in (TurnState.RECORDING, TurnState.TRANSCRIBING, TurnState.SPEAKING):
            print(f"  … {state.value}")

    @staticmethod
    def _show_result(result: TurnResult):
        if result.transcript:
            print(f"You: {result.transcript}")
        if result.reply is not None:
            print(f"Allie: {result.reply.text}")
        elif result.error is not None:
            print(f"  (nothing to answer: {result.error})")

    # ── commands ─────────────────────────────────────────────────────────────

    def handle_command(self, line: str) -> bool:
        """Apply one console command. Returns False when the user quits."""
        cmd = line.strip()
        lower = cmd.lower()
        try:
            if lower in ("q", "quit", "exit"):
                return False
            if lower in ("c", "cancel"):
                if self._session.state is TurnState.RECORDING:
                    self._session.discard_recording()
                elif not self._session.cancel():
                    self._speech.cancel()
            elif lower.startswith("mode "):
                print(self._session.set_mode(cmd[5:]))
            elif lower.startswith("lang "):
                self._session.set_language(cmd[5:])
            elif lower in ("h", "help", "?"):
                print(HELP)
            elif not cmd:
                self._toggle_recording()
            else:
                print(HELP)
        except (AllieError, ValueError) as exc:
            log.warning("%s", exc)
            print(f"  ! {exc}")
        return True

    def _toggle_recording(self):
        if self._session.state is TurnState.RECORDING:
            self._session.stop_recording()
        else:
            self._session.start_recording()

    # ── lifecycle ────────────────────────────────────────────────────────────

    def run(self):
        log.info("Hello Allie starting …")
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, self._signal_handler)

        self._session.open()
        print(HELP)
        try:
            while not self._stop.is_set():
                line = sys.stdin.readline()
                if not line or not self.handle_command(line):
                    break
        finally:
            self._shutdown()

    def _signal_handler(self, signum, frame):
        log.info("Received signal %d, shutting down …", signum)
        self._stop.set()
        raise KeyboardInterrupt

    def _shutdown(self):
        log.info("Shutting down …")
        self._session.close()
        self._capture.terminate()
        self._player.terminate()
        log.info("Hello Allie stopped.")
