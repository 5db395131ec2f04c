import logging
from typing import Iterable, List, Optional

import requests

from . import config
from .errors import DownstreamCallFailed
from .history import Turn

log = logging.getLogger(__name__)


class BackendClient:
    """
    JSON client for the Hello Allie proxy.
    Every call either returns the useful part of the response or raises
    DownstreamCallFailed; the orchestrator decides what to say about it.
    """

    def __init__(self, base_url: str = None):
        self._base_url = (base_url or config.API_BASE_URL).rstrip("/")

    def _post(self, service: str, path: str, payload: dict, timeout: int) -> dict:
        url = f"{self._base_url}{path}"
        try:
            resp = requests.post(url, json=payload, timeout=timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            log.error("%s request failed: %s", service, exc)
            raise DownstreamCallFailed(service, str(exc))
        except ValueError as exc:
            log.error("%s returned invalid JSON: %s", service, exc)
            raise DownstreamCallFailed(service, "invalid JSON")
        if not isinstance(data, dict):
            log.error("%s unexpected response: %r", service, data)
            raise DownstreamCallFailed(service, "unexpected response")
        return data

    def _result(self, service: str, data: dict) -> str:
        result = data.get("result")
        if not isinstance(result, str) or not result.strip():
            log.error("%s response missing 'result': %r", service, data)
            raise DownstreamCallFailed(service, "empty result")
        return result.strip()

    # ── lookups ──────────────────────────────────────────────────────────────

    def weather(self, city: str) -> str:
        data = self._post("weather", "/weather", {"city": city}, config.LOOKUP_TIMEOUT)
        return self._result("weather", data)

    def sports(self, team: str, stat_type: str) -> str:
        data = self._post("sports", "/sports", {"team": team, "type": stat_type}, config.LOOKUP_TIMEOUT)
        return self._result("sports", data)

    # ── scheduling ───────────────────────────────────────────────────────────

    def schedule(self, prompt: str, delete: bool = False) -> dict:
        """Send a scheduling prompt. Returns {message, options?}."""
        path = "/schedule/delete" if delete else "/schedule"
        return self._post("schedule", path, {"prompt": prompt}, config.LOOKUP_TIMEOUT)

    def delete_event(self, event_id: str) -> Optional[str]:
        data = self._post("schedule", "/schedule/delete", {"id": event_id}, config.LOOKUP_TIMEOUT)
        return data.get("message")

    # ── chat ─────────────────────────────────────────────────────────────────

    def smart(
        self,
        prompt: str,
        history: Iterable[Turn] = (),
        mode: str = None,
        language: str = None,
    ) -> str:
        payload = {"prompt": prompt}
        turns: List[dict] = [t.to_payload() for t in history]
        if turns:
            payload["conversationHistory"] = turns
        if mode:
            payload["mode"] = mode
        if language:
            payload["language"] = language
        data = self._post("chat", "/smart", payload, config.CHAT_TIMEOUT)
        reply = self._result("chat", data)
        log.debug("Chat reply: %r", reply)
        return reply
