"""
Response orchestration: turn a classified intent into a reply.

One ResponseOrchestrator belongs to one conversation. It owns that
conversation's history, personality mode, reply language and pending
delete candidates; nothing here is module-global.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from . import config
from .backend import BackendClient
from .errors import DownstreamCallFailed, InvalidSelection
from .history import ConversationHistory, Role, Turn
from .intent import (
    DeleteConfirmation,
    GeneralChat,
    Intent,
    ScheduleCommand,
    SportsQuery,
    WeatherQuery,
)
from .personality import PersonalityMode
from .speech import clean_for_speech

log = logging.getLogger(__name__)

WEATHER_FAILED    = "Sorry, I couldn't retrieve the weather."
SPORTS_FAILED     = "Sorry, something went wrong getting sports info."
SCHEDULE_FAILED   = "Sorry, scheduling failed."
CHAT_FAILED       = "Sorry, something went wrong."
DELETE_FAILED     = "Failed to delete event."
DELETED           = "Deleted."
MISSING_EVENT_ID  = "Unable to find the selected event ID. Please try again."
INVALID_SELECTION = "Invalid selection. Please try again."


@dataclass
class Reply:
    text: str
    options: Optional[List[dict]] = None
    error: Optional[Exception] = None

    @property
    def spoken_text(self) -> str:
        return clean_for_speech(self.text)


def describe_option(option) -> str:
    if not isinstance(option, dict):
        return str(option)
    label = option.get("summary") or option.get("title") or option.get("name") or "Untitled event"
    when = option.get("start") or option.get("date")
    if isinstance(when, dict):
        when = when.get("dateTime") or when.get("date")
    return f"{label} ({when})" if when else str(label)


def enumerate_options(message: str, options: List) -> str:
    listed = " ".join(f"{i}) {describe_option(opt)}" for i, opt in enumerate(options, start=1))
    return f"{message} {listed}".strip()


class ResponseOrchestrator:

    def __init__(
        self,
        backend: Optional[BackendClient] = None,
        history: Optional[ConversationHistory] = None,
        mode: PersonalityMode = None,
        language: str = None,
        clock: Callable[[], float] = time.time,
    ):
        self.backend = backend or BackendClient()
        self.history = history if history is not None else ConversationHistory()
        self.mode = mode or PersonalityMode.parse(config.PERSONALITY)
        self.language = language or config.LANGUAGE
        self._clock = clock
        self._pending: List[dict] = []
        self._lock = threading.Lock()

    # ── pending selection ────────────────────────────────────────────────────

    @property
    def pending_selection(self) -> List[dict]:
        with self._lock:
            return list(self._pending)

    # ── dispatch ─────────────────────────────────────────────────────────────

    def handle(self, intent: Intent, user_text: str = None, mode: PersonalityMode = None) -> Reply:
        """Produce a reply for *intent* and record the exchange in history."""
        if user_text is None:
            user_text = getattr(intent, "text", None) or getattr(intent, "city", "") or ""
        reply = self.respond(intent, user_text, mode)
        self.record(user_text, reply)
        return reply

    def respond(self, intent: Intent, user_text: str, mode: PersonalityMode = None) -> Reply:
        """Call out for *intent*. History and the pending selection are left alone until record()."""
        if isinstance(intent, DeleteConfirmation):
            return self._confirm_delete(intent)
        return self._dispatch(intent, user_text, mode or self.mode)

    def record(self, user_text: str, reply: Reply):
        """Append the exchange to history and adopt the reply's delete candidates."""
        options = reply.options or []
        with self._lock:
            # Anything but a fresh list of candidates clears an outstanding choice.
            if self._pending and not options:
                log.debug("Pending selection discarded.")
            self._pending = list(options)
        if options:
            log.info("Awaiting selection among %d event(s).", len(options))

        now = self._clock()
        self.history.append(Turn(Role.USER, user_text, now))
        self.history.append(Turn(Role.ASSISTANT, reply.text, now))

    def _dispatch(self, intent: Intent, user_text: str, mode: PersonalityMode) -> Reply:
        if isinstance(intent, WeatherQuery):
            return self._guarded(WEATHER_FAILED, self.backend.weather, intent.city)
        if isinstance(intent, SportsQuery):
            return self._guarded(SPORTS_FAILED, self.backend.sports, intent.team, intent.stat_type)
        if isinstance(intent, ScheduleCommand):
            return self._schedule(intent)
        if isinstance(intent, GeneralChat):
            return self._guarded(
                CHAT_FAILED,
                self.backend.smart,
                intent.text,
                self.history.snapshot(),
                mode.value,
                self.language,
            )
        raise TypeError(f"unsupported intent: {intent!r}")

    @staticmethod
    def _guarded(fallback: str, call, *args) -> Reply:
        try:
            return Reply(call(*args))
        except DownstreamCallFailed as exc:
            log.warning("Falling back to apology: %s", exc)
            return Reply(fallback, error=exc)

    def _schedule(self, command: ScheduleCommand) -> Reply:
        try:
            data = self.backend.schedule(command.text, delete=command.is_delete)
        except DownstreamCallFailed as exc:
            log.warning("Falling back to apology: %s", exc)
            return Reply(SCHEDULE_FAILED, error=exc)

        message = str(data.get("message") or data.get("result") or "").strip()
        options = data.get("options") or []
        if command.is_delete and isinstance(options, list) and options:
            return Reply(enumerate_options(message, options), options=list(options))
        return Reply(message or SCHEDULE_FAILED)

    def _confirm_delete(self, confirmation: DeleteConfirmation) -> Reply:
        pending = self.pending_selection
        index = confirmation.index
        if not 0 <= index < len(pending):
            exc = InvalidSelection(index, len(pending))
            log.info("Invalid selection: %s", exc)
            return Reply(INVALID_SELECTION, error=exc)

        selected = pending[index]
        event_id = selected.get("id") if isinstance(selected, dict) else None
        if not event_id:
            log.warning("Selected event has no id: %r", selected)
            return Reply(MISSING_EVENT_ID)

        log.info("Deleting event %s (option %d).", event_id, index + 1)
        try:
            message = self.backend.delete_event(event_id)
        except DownstreamCallFailed as exc:
            log.warning("Delete failed: %s", exc)
            return Reply(DELETE_FAILED, error=exc)
        return Reply(message or DELETED)
