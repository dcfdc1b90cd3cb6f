"""Microphone capture into temporary 16-bit PCM WAV files."""

from __future__ import annotations

import logging
import os
import queue
import tempfile
import threading
import time
import wave
from pathlib import Path

import numpy as np
import sounddevice as sd

from ghosttype import events
from ghosttype.config import CHUNK_MS, INPUT_CHANNELS, SAMPLE_RATE
from ghosttype.events import EventBus
from ghosttype.models import CaptureSession

logger = logging.getLogger(__name__)

SAMPLE_WIDTH = 2  # int16


class CaptureError(Exception):
    """Raised when the input device cannot be opened."""


def list_input_devices() -> list[tuple[int, str]]:
    """Return ``(index, name)`` for every device with input channels."""
    devices = []
    for index, info in enumerate(sd.query_devices()):
        if info.get("max_input_channels", 0) > 0:
            devices.append((index, str(info.get("name", ""))))
    return devices


def chunk_rms(chunk: np.ndarray) -> float:
    """RMS of an int16 chunk normalized to [0, 1]."""
    if chunk.size == 0:
        return 0.0
    samples = chunk.astype(np.float64) / 32768.0
    return float(np.sqrt(np.mean(samples * samples)))


class _Recording:
    """Stream + writer thread backing one capture session."""

    def __init__(self, stream: sd.InputStream, writer: wave.Wave_write):
        self.stream = stream
        self.writer = writer
        self.chunks: queue.Queue[np.ndarray | None] = queue.Queue()
        self.thread: threading.Thread | None = None


class SoundDeviceCapture:
    """Records the microphone with ``sounddevice`` into a temp WAV per session."""

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        channels: int = INPUT_CHANNELS,
        chunk_ms: float = CHUNK_MS,
        bus: EventBus | None = None,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self._bus = bus
        self._recordings: dict[Path, _Recording] = {}
        self._lock = threading.Lock()

    def resolve_device(self, preferred: str | int | None) -> int | None:
        """Map a configured microphone (index or name substring) to a device index.

        Falls back to the system default (None) when the device has gone away.
        """
        if preferred is None or (isinstance(preferred, str) and not preferred.strip()):
            return None

        try:
            devices = list_input_devices()
        except sd.PortAudioError as e:
            logger.warning("Could not query audio devices: %s", e)
            return None

        if isinstance(preferred, int) or str(preferred).strip().isdigit():
            wanted = int(preferred)
            if any(index == wanted for index, _ in devices):
                return wanted
        else:
            needle = str(preferred).strip().lower()
            for index, name in devices:
                if name.lower() == needle:
                    return index
            for index, name in devices:
                if needle in name.lower():
                    return index

        logger.info("Selected microphone %r not found, falling back to default", preferred)
        return None

    def start_capture(self, device_id: int | None = None) -> CaptureSession:
        fd, name = tempfile.mkstemp(prefix="ghosttype-", suffix=".wav")
        os.close(fd)
        path = Path(name)

        writer = wave.open(str(path), "wb")
        writer.setnchannels(1)
        writer.setsampwidth(SAMPLE_WIDTH)
        writer.setframerate(self.sample_rate)

        try:
            stream = sd.InputStream(
                channels=self.channels,
                samplerate=self.sample_rate,
                dtype="int16",
                blocksize=int(self.sample_rate * (self.chunk_ms / 1000.0)),
                device=device_id,
                callback=lambda indata, frames, time_info, status: self._on_audio(
                    path, indata, status
                ),
            )
        except (sd.PortAudioError, ValueError) as e:
            writer.close()
            path.unlink(missing_ok=True)
            raise CaptureError(f"Could not open input device: {e}") from e

        recording = _Recording(stream, writer)
        recording.thread = threading.Thread(
            target=self._writer_loop, args=(recording,), daemon=True
        )
        with self._lock:
            self._recordings[path] = recording
        recording.thread.start()

        try:
            stream.start()
        except sd.PortAudioError as e:
            self._close(path, discard=True)
            raise CaptureError(f"Could not start input device: {e}") from e

        logger.debug("Capture started on device %s -> %s", device_id, path)
        return CaptureSession(audio_path=path, started_at=time.monotonic(), device_id=device_id)

    def stop_capture(self, session: CaptureSession) -> None:
        """Stop the stream and wait until every buffered chunk is on disk."""
        self._close(session.audio_path, discard=False)

    def cancel_capture(self, session: CaptureSession) -> None:
        self._close(session.audio_path, discard=True)

    def _on_audio(self, path: Path, indata: np.ndarray, status) -> None:
        if status:
            logger.debug("Audio status: %s", status)
        recording = self._recordings.get(path)
        if recording is None:
            return
        # Convert to mono if necessary
        data = indata if indata.ndim == 1 else indata.mean(axis=1).astype(np.int16)
        recording.chunks.put_nowait(np.ascontiguousarray(data, dtype=np.int16).copy())

    def _writer_loop(self, recording: _Recording) -> None:
        while True:
            chunk = recording.chunks.get()
            if chunk is None:
                break
            recording.writer.writeframes(chunk.tobytes())
            if self._bus is not None:
                self._bus.publish(events.AMPLITUDE, chunk_rms(chunk))

    def _close(self, path: Path, discard: bool) -> None:
        with self._lock:
            recording = self._recordings.pop(path, None)
        if recording is None:
            return

        try:
            recording.stream.stop()
            recording.stream.close()
        except (sd.PortAudioError, RuntimeError) as e:
            logger.debug("Error closing input stream: %s", e)

        recording.chunks.put(None)
        if recording.thread is not None:
            recording.thread.join(timeout=2.0)
        recording.writer.close()

        if discard:
            path.unlink(missing_ok=True)
