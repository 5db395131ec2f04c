import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from . import config

log = logging.getLogger(__name__)


class Role(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    role: Role
    content: str
    timestamp: float   # epoch seconds

    def to_payload(self) -> dict:
        """Shape sent to the chat backend (timestamp in epoch ms)."""
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": int(self.timestamp * 1000),
        }


class ConversationHistory:
    """
    Chronological, time-bounded log of conversation turns.
    Bounded by age, not by count: prune() drops everything older than the
    retention window. One lock guards the list so the background pruner and
    the pipeline can both touch it.
    """

    def __init__(self, retention_s: float = None):
        self.retention_s = config.HISTORY_RETENTION_S if retention_s is None else retention_s
        self._turns: List[Turn] = []
        self._lock = threading.Lock()

    def append(self, turn: Turn):
        with self._lock:
            self._turns.append(turn)

    def prune(self, now: float) -> int:
        """Remove turns with timestamp < now - retention. Returns how many went."""
        cutoff = now - self.retention_s
        with self._lock:
            kept = [t for t in self._turns if t.timestamp >= cutoff]
            dropped = len(self._turns) - len(kept)
            self._turns = kept
        if dropped:
            log.debug("History pruned: %d turn(s) older than %ds removed.", dropped, self.retention_s)
        return dropped

    def snapshot(self) -> List[Turn]:
        with self._lock:
            return list(self._turns)

    def clear(self):
        with self._lock:
            self._turns.clear()
        log.info("Conversation history cleared.")

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)


class HistoryPruner:
    """Sweeps a ConversationHistory on a fixed interval in a daemon thread."""

    def __init__(
        self,
        history: ConversationHistory,
        interval_s: float = None,
        clock: Callable[[], float] = time.time,
    ):
        self._history = history
        self._interval = config.HISTORY_PRUNE_INTERVAL_S if interval_s is None else interval_s
        self._clock = clock
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="history-pruner", daemon=True)
        self._thread.start()
        log.debug("History pruner started (every %ss).", self._interval)

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=3)
        self._thread = None

    def _loop(self):
        while not self._stop.wait(self._interval):
            try:
                self._history.prune(self._clock())
            except Exception as exc:
                log.error("History prune failed: %s", exc)
