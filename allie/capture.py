import logging
import os
import tempfile
import threading
import time
from typing import List, Optional

import pyaudio

from . import config
from .audio import pcm_frames_to_wav
from .errors import AlreadyRecording, NoActiveRecording, PermissionDenied
from .media import AudioHandle, AudioMode, AudioRouter

log = logging.getLogger(__name__)


class AudioCaptureSession:
    """
    Push-to-talk microphone recording.

    start() opens the input stream (on a desktop, failing to open the device
    is the "permission denied" case) and a reader thread collects PCM frames.
    stop() closes the stream and writes the frames to a WAV file whose path
    is returned as an AudioHandle. Only one recording can be active.

    Frames read while the router is not in RECORD mode are discarded, so
    speech playback cannot leak into a recording.
    """

    def __init__(self, router: Optional[AudioRouter] = None, pa=None, recording_dir: str = None):
        self._router = router or AudioRouter()
        self._pa = pa or pyaudio.PyAudio()
        self._dir = recording_dir or config.RECORDING_DIR or tempfile.gettempdir()
        self._stream = None
        self._thread: Optional[threading.Thread] = None
        self._frames: List[bytes] = []
        self._lock = threading.Lock()
        self._active = False
        self._started_at = 0.0

    @property
    def active(self) -> bool:
        with self._lock:
            return self._active

    # ── lifecycle ────────────────────────────────────────────────────────────

    def start(self):
        with self._lock:
            if self._active:
                raise AlreadyRecording("a recording is already in progress")
            open_kwargs = dict(
                format=pyaudio.paInt16,
                channels=config.MIC_CHANNELS,
                rate=config.MIC_SAMPLE_RATE,
                input=True,
                frames_per_buffer=config.MIC_CHUNK_SAMPLES,
            )
            if config.MIC_DEVICE_INDEX >= 0:
                open_kwargs["input_device_index"] = config.MIC_DEVICE_INDEX
            try:
                self._stream = self._pa.open(**open_kwargs)
            except (OSError, ValueError) as exc:
                log.error("Microphone unavailable: %s", exc)
                raise PermissionDenied(f"microphone unavailable: {exc}") from exc

            self._router.set_mode(AudioMode.RECORD)
            self._frames = []
            self._active = True
            self._started_at = time.monotonic()
            self._thread = threading.Thread(target=self._capture_loop, name="mic-capture", daemon=True)
            self._thread.start()
        log.info("Recording started (%d Hz, %d ch).", config.MIC_SAMPLE_RATE, config.MIC_CHANNELS)

    def stop(self) -> AudioHandle:
        frames = self._finish()
        if frames is None:
            raise NoActiveRecording("no recording to stop")

        wav = pcm_frames_to_wav(frames, config.MIC_SAMPLE_RATE, config.MIC_CHANNELS)
        fd, path = tempfile.mkstemp(prefix="allie-", suffix=".wav", dir=self._dir)
        with os.fdopen(fd, "wb") as fh:
            fh.write(wav)
        n_samples = sum(len(f) for f in frames) // (2 * config.MIC_CHANNELS)
        duration = n_samples / config.MIC_SAMPLE_RATE
        log.info("Recording stopped: %.1fs → %s", duration, path)
        return AudioHandle(path=path, duration_s=duration)

    def cancel(self):
        """Discard an active recording. No-op when nothing is recording."""
        if self._finish() is not None:
            log.info("Recording discarded.")

    def terminate(self):
        self.cancel()
        self._pa.terminate()

    def _finish(self) -> Optional[List[bytes]]:
        with self._lock:
            if not self._active:
                return None
            self._active = False
            thread, stream = self._thread, self._stream
            self._thread = self._stream = None
        if thread:
            thread.join(timeout=3)
        if stream is not None:
            try:
                stream.stop_stream()
                stream.close()
            except OSError as exc:
                log.debug("Closing input stream failed: %s", exc)
        self._router.set_mode(AudioMode.PLAYBACK)
        with self._lock:
            frames, self._frames = self._frames, []
        return frames

    # ── capture loop ─────────────────────────────────────────────────────────

    def _capture_loop(self):
        stream = self._stream
        while self.active:
            try:
                frame = stream.read(config.MIC_CHUNK_SAMPLES, exception_on_overflow=False)
            except OSError as exc:
                log.warning("Audio read error: %s", exc)
                continue
            if not self._router.allows_recording():
                continue
            with self._lock:
                if not self._active:
                    break
                self._frames.append(frame)
            if time.monotonic() - self._started_at > config.MAX_RECORDING_S:
                log.warning("Recording hit %ds limit; no longer capturing.", config.MAX_RECORDING_S)
                break
