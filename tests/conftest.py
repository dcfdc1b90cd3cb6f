"""Shared fixtures: synthetic WAV recordings."""

import wave

import numpy as np
import pytest

SAMPLE_RATE = 16000


def tone(seconds: float, amplitude: float = 0.2, freq: float = 220.0) -> np.ndarray:
    t = np.arange(int(SAMPLE_RATE * seconds)) / SAMPLE_RATE
    return (np.sin(2 * np.pi * freq * t) * amplitude * 32767).astype(np.int16)


def silence(seconds: float) -> np.ndarray:
    return np.zeros(int(SAMPLE_RATE * seconds), dtype=np.int16)


def write_wav(path, samples: np.ndarray, rate: int = SAMPLE_RATE, channels: int = 1) -> None:
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(2)
        wav.setframerate(rate)
        wav.writeframes(samples.astype("<i2").tobytes())


@pytest.fixture
def speech_wav(tmp_path):
    """3 s recording with sustained energy."""
    path = tmp_path / "speech.wav"
    write_wav(path, np.concatenate([silence(0.5), tone(2.0), silence(0.5)]))
    return path


@pytest.fixture
def silent_wav(tmp_path):
    path = tmp_path / "silent.wav"
    write_wav(path, silence(2.0))
    return path
