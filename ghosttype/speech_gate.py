"""Speech presence gate.

Decides whether a finished recording holds real speech before any time is
spent on transcription. The recording is cut into fixed windows and the RMS
of each is compared against a threshold; a click or bump produces one or two
loud windows, while a spoken syllable keeps the energy up across several, so
requiring a small number of qualifying windows separates the two without any
language or duration assumptions.
"""

from __future__ import annotations

import logging
import wave
from collections.abc import Iterable, Iterator
from pathlib import Path

import numpy as np

from ghosttype.config import (
    DEFAULT_GATE_MIN_WINDOWS,
    DEFAULT_GATE_RMS_THRESHOLD,
    DEFAULT_GATE_WINDOW_MS,
    SAMPLE_RATE,
)

logger = logging.getLogger(__name__)

INT16_FULL_SCALE = 32768.0


def iter_window_rms(
    samples: np.ndarray,
    sample_rate: int = SAMPLE_RATE,
    window_ms: int = DEFAULT_GATE_WINDOW_MS,
) -> Iterator[float]:
    """Yield the normalized RMS of each complete window, lazily.

    A trailing partial window is ignored.
    """
    window = int(sample_rate * window_ms / 1000)
    if window <= 0:
        return
    for start in range(0, len(samples) - window + 1, window):
        chunk = samples[start : start + window].astype(np.float64) / INT16_FULL_SCALE
        yield float(np.sqrt(np.mean(chunk * chunk)))


def speech_present(
    window_rms: Iterable[float],
    threshold: float = DEFAULT_GATE_RMS_THRESHOLD,
    min_windows: int = DEFAULT_GATE_MIN_WINDOWS,
) -> bool:
    """True once ``min_windows`` values reach ``threshold``; stops consuming there."""
    count = 0
    for rms in window_rms:
        if rms >= threshold:
            count += 1
            if count >= min_windows:
                return True
    return False


def has_speech(
    samples: np.ndarray | None,
    sample_rate: int = SAMPLE_RATE,
    window_ms: int = DEFAULT_GATE_WINDOW_MS,
    threshold: float = DEFAULT_GATE_RMS_THRESHOLD,
    min_windows: int = DEFAULT_GATE_MIN_WINDOWS,
) -> bool:
    """Gate decision over mono int16 samples. Empty input means no speech."""
    if samples is None or len(samples) == 0:
        return False
    return speech_present(
        iter_window_rms(samples, sample_rate, window_ms), threshold, min_windows
    )


def read_wav_samples(path: Path) -> tuple[np.ndarray, int]:
    """Read a 16-bit PCM WAV (header skipped) as mono int16 samples."""
    with wave.open(str(path), "rb") as wav:
        if wav.getsampwidth() != 2:
            raise ValueError(f"Expected 16-bit PCM, got {wav.getsampwidth() * 8}-bit")
        channels = wav.getnchannels()
        rate = wav.getframerate()
        frames = wav.readframes(wav.getnframes())

    samples = np.frombuffer(frames, dtype="<i2")
    if channels > 1:
        samples = samples[: len(samples) - len(samples) % channels]
        samples = samples.reshape(-1, channels).mean(axis=1).astype(np.int16)
    return samples, rate


def wav_has_speech(
    path: Path,
    window_ms: int = DEFAULT_GATE_WINDOW_MS,
    threshold: float = DEFAULT_GATE_RMS_THRESHOLD,
    min_windows: int = DEFAULT_GATE_MIN_WINDOWS,
) -> bool:
    """Gate decision for a recorded WAV file. Unreadable files mean no speech."""
    try:
        samples, rate = read_wav_samples(path)
    except (OSError, EOFError, wave.Error, ValueError) as e:
        logger.info("Speech gate could not read %s: %s", path, e)
        return False
    return has_speech(samples, rate, window_ms, threshold, min_windows)
