import io
import logging
import threading
import time
import wave
from typing import Iterator, List, Optional

import numpy as np
import pyaudio

from . import config

log = logging.getLogger(__name__)


def _apply_gain(pcm_bytes: bytes, gain: float) -> bytes:
    """Amplify 16-bit PCM samples by *gain*, clipping to int16 range."""
    if gain == 1.0:
        return pcm_bytes
    samples = np.frombuffer(pcm_bytes, dtype=np.int16).astype(np.int32)
    samples = np.clip(samples * gain, -32768, 32767).astype(np.int16)
    return samples.tobytes()


def pcm_frames_to_wav(pcm_frames: List[bytes], sample_rate: int, channels: int) -> bytes:
    """Wrap raw 16-bit PCM frames in a WAV container."""
    raw = b"".join(pcm_frames)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)   # 16-bit
        wf.setframerate(sample_rate)
        wf.writeframes(raw)
    return buf.getvalue()


class AudioPlayer:
    """
    Plays audio through the system speaker (blocking).
    Both play() and play_stream() accept a *stop* event; setting it aborts
    playback at the next chunk boundary.
    """

    _CHUNK = 1024

    def __init__(self, pa=None):
        self._pa = pa or pyaudio.PyAudio()
        self._lock = threading.Lock()

    def _open(self, fmt, channels: int, rate: int):
        open_kwargs = dict(format=fmt, channels=channels, rate=rate, output=True)
        if config.SPK_DEVICE_INDEX >= 0:
            open_kwargs["output_device_index"] = config.SPK_DEVICE_INDEX
        return self._pa.open(**open_kwargs)

    @staticmethod
    def _close(stream):
        if stream is None:
            return
        try:
            stream.stop_stream()
            stream.close()
        except OSError as exc:
            log.debug("Closing output stream failed: %s", exc)

    def play(self, wav_bytes: bytes, stop: Optional[threading.Event] = None) -> bool:
        """Play a complete WAV. Returns False if *stop* cut it short."""
        stop = stop or threading.Event()
        with self._lock:
            stream = None
            try:
                with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
                    stream = self._open(
                        self._pa.get_format_from_width(wf.getsampwidth()),
                        wf.getnchannels(),
                        wf.getframerate(),
                    )
                    frames = wf.readframes(wf.getnframes())
                frames = _apply_gain(frames, config.TTS_VOLUME_GAIN)
                for offset in range(0, len(frames), self._CHUNK):
                    if stop.is_set():
                        log.debug("Playback stopped early.")
                        return False
                    stream.write(frames[offset: offset + self._CHUNK])
                return True
            except (wave.Error, OSError) as exc:
                log.error("Playback error: %s", exc)
                return False
            finally:
                self._close(stream)

    def play_stream(self, pcm_chunks: Iterator[bytes], stop: Optional[threading.Event] = None) -> bool:
        """Play raw PCM chunks (44100 Hz, mono, 16-bit) as they arrive.

        Starts emitting audio on the first chunk so playback begins before
        TTS finishes generating. A watchdog aborts if no new chunk arrives
        for 10 seconds. Returns False if stopped, stalled or failed.
        """
        stop = stop or threading.Event()
        with self._lock:
            stream = None
            try:
                stream = self._open(pyaudio.paInt16, config.SPK_CHANNELS, config.SPK_SAMPLE_RATE)

                last_write = [time.monotonic()]
                finished = [False]
                gain = config.TTS_VOLUME_GAIN

                def _write_loop():
                    try:
                        for chunk in pcm_chunks:
                            if stop.is_set():
                                return
                            stream.write(_apply_gain(chunk, gain))
                            last_write[0] = time.monotonic()
                        finished[0] = True
                    except OSError as exc:
                        log.error("Stream playback write error: %s", exc)

                t = threading.Thread(target=_write_loop, daemon=True)
                t.start()
                while t.is_alive():
                    t.join(timeout=0.1)
                    if stop.is_set():
                        log.debug("Stream playback stopped early.")
                        return False
                    if t.is_alive() and time.monotonic() - last_write[0] > 10:
                        log.warning("Stream playback stalled for 10s, aborting.")
                        return False
                return finished[0] and not stop.is_set()
            except OSError as exc:
                log.error("Stream playback error: %s", exc)
                return False
            finally:
                self._close(stream)

    def terminate(self):
        self._pa.terminate()
