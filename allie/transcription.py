import logging
import os

import requests

from . import config
from .media import AudioHandle
from .errors import TranscriptionFailed

log = logging.getLogger(__name__)


class TranscriptionClient:
    """Upload a finished recording to the proxy and return the transcript."""

    def __init__(self, base_url: str = None, retries: int = None):
        self._endpoint = f"{(base_url or config.API_BASE_URL).rstrip('/')}/transcribe"
        self._retries = config.TRANSCRIBE_RETRIES if retries is None else retries

    def transcribe(self, audio: AudioHandle, language: str = None) -> str:
        language = language or config.LANGUAGE
        attempts = 1 + max(0, self._retries)
        last_exc = None
        for attempt in range(1, attempts + 1):
            try:
                return self._post(audio, language)
            except TranscriptionFailed as exc:
                last_exc = exc
                if attempt < attempts:
                    log.warning("Transcription attempt %d/%d failed, retrying.", attempt, attempts)
        raise last_exc

    def _post(self, audio: AudioHandle, language: str) -> str:
        try:
            with open(audio.path, "rb") as fh:
                resp = requests.post(
                    self._endpoint,
                    files={"file": (os.path.basename(audio.path), fh, audio.mime_type)},
                    data={"language": language},
                    timeout=config.TRANSCRIBE_TIMEOUT,
                )
            resp.raise_for_status()
            text = resp.json().get("text") or ""
        except requests.RequestException as exc:
            log.error("Transcription request failed: %s", exc)
            raise TranscriptionFailed(str(exc))
        except OSError as exc:
            log.error("Cannot read recording %s: %s", audio.path, exc)
            raise TranscriptionFailed(f"cannot read recording: {exc}")
        except (ValueError, AttributeError) as exc:
            log.error("Transcription unexpected response: %s", exc)
            raise TranscriptionFailed(f"unexpected response: {exc}")
        text = str(text).strip()
        log.debug("Transcription result: %r", text)
        return text
