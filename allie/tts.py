import logging
from typing import Iterator, Optional

import requests

from . import config

log = logging.getLogger(__name__)


def voice_for(language: str) -> str:
    """Voice for a reply language; unknown languages fall back to English."""
    return config.TTS_VOICES.get(language, config.TTS_VOICES["en"])


def _speech_request(text: str, voice: Optional[str], stream: bool) -> dict:
    return {
        "target_text": text,
        "voice_type": voice or voice_for(config.LANGUAGE),
        "stream": stream,
    }


class TTSClient:
    """Turns Allie's replies into audio through the speech service."""

    def __init__(self, endpoint: str = None):
        self.endpoint = endpoint or config.TTS_ENDPOINT

    def synthesize(self, text: str, voice: str = None, timeout: Optional[int] = None) -> Optional[bytes]:
        """Whole reply as WAV bytes, or None when the service is unreachable."""
        try:
            resp = requests.post(
                self.endpoint,
                json=_speech_request(text, voice, stream=False),
                timeout=timeout if timeout is not None else config.TTS_TIMEOUT,
            )
            resp.raise_for_status()
        except requests.RequestException as exc:
            log.error("Speech request failed (%s): %s", voice, exc)
            return None
        log.debug("Speech: %d bytes for %d chars", len(resp.content), len(text))
        return resp.content

    def synthesize_stream(self, text: str, voice: str = None) -> Iterator[bytes]:
        """Reply audio as raw 16-bit PCM chunks; ends early if the service drops."""
        try:
            resp = requests.post(
                self.endpoint,
                json=_speech_request(text, voice, stream=True),
                timeout=(10, config.TTS_TIMEOUT),
                stream=True,
            )
            resp.raise_for_status()
            received = 0
            for chunk in resp.iter_content(chunk_size=4096):
                if chunk:
                    received += len(chunk)
                    yield chunk
            log.debug("Speech stream done: %d bytes", received)
        except requests.RequestException as exc:
            log.error("Speech stream failed (%s): %s", voice, exc)
