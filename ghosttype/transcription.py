"""Whisper transcription via faster-whisper."""

from __future__ import annotations

import logging
import re
import threading
import time
from pathlib import Path
from typing import Any

from faster_whisper import WhisperModel

from ghosttype.config import (
    DEFAULT_COMPUTE,
    DEFAULT_DEVICE,
    DEFAULT_MODEL,
    normalize_compute_type,
)

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class TranscriptionError(Exception):
    """Raised when transcription fails."""


def load_model(
    model_name: str,
    device: str,
    compute_type: str,
) -> WhisperModel:
    """
    Load a Whisper model with normalized compute type.

    Args:
        model_name: Model name (e.g., "small", "medium", "large-v3")
        device: Device ("cpu" or "cuda")
        compute_type: Compute type (will be normalized based on device)

    Returns:
        Loaded WhisperModel instance

    Raises:
        TranscriptionError: If the model cannot be loaded
    """
    normalized_compute = normalize_compute_type(device, compute_type)
    try:
        return WhisperModel(model_name, device=device, compute_type=normalized_compute)
    except Exception as e:
        raise TranscriptionError(f"Could not load Whisper model {model_name!r}: {e}") from e


def transcribe_file(
    model: WhisperModel,
    audio_path: Path,
    language: str | None = None,
    beam_size: int = 5,
    compression_ratio_threshold: float = 2.4,
    log_prob_threshold: float = -1.0,
    no_speech_threshold: float = 0.6,
    temperature: float | list[float] = 0.0,
    initial_prompt: str | None = None,
    condition_on_previous_text: bool = False,
) -> str:
    """
    Transcribe a WAV file and return single-spaced text.

    Args:
        model: Loaded WhisperModel instance
        audio_path: Path to a 16 kHz mono WAV
        language: Language code, or None to let the model detect it
        beam_size: Beam size for decoding (default: 5)
        compression_ratio_threshold: Detect repetitive hallucinations (default: 2.4)
        log_prob_threshold: Filter low-confidence segments (default: -1.0)
        no_speech_threshold: Detect silence/non-speech (default: 0.6)
        temperature: Temperature for sampling (default: 0.0 for deterministic)
        initial_prompt: Optional prompt for vocabulary/style
        condition_on_previous_text: Use previous text for context (default: False)

    Returns:
        Transcribed text with whitespace collapsed

    Raises:
        TranscriptionError: If transcription fails
    """
    kwargs: dict[str, Any] = {
        "beam_size": beam_size,
        "language": language,
        "compression_ratio_threshold": compression_ratio_threshold,
        "log_prob_threshold": log_prob_threshold,
        "no_speech_threshold": no_speech_threshold,
        "temperature": temperature,
        "initial_prompt": initial_prompt,
        "condition_on_previous_text": condition_on_previous_text,
    }
    try:
        segments, info = model.transcribe(str(audio_path), **kwargs)
        text = " ".join(s.text for s in segments)
    except Exception as e:
        raise TranscriptionError(f"Transcription failed: {e}") from e

    if language is None and getattr(info, "language", None):
        logger.debug("Detected language: %s", info.language)
    return _WHITESPACE.sub(" ", text).strip()


class WhisperTranscriber:
    """Transcriber backed by a lazily loaded faster-whisper model."""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        device: str = DEFAULT_DEVICE,
        compute_type: str = DEFAULT_COMPUTE,
        model: WhisperModel | None = None,
    ):
        self.model_name = model_name
        self.device = device
        self.compute_type = compute_type
        self._model = model
        self._lock = threading.Lock()

    @property
    def model(self) -> WhisperModel:
        with self._lock:
            if self._model is None:
                logger.info(
                    "Loading Whisper model: %s on %s (%s)",
                    self.model_name,
                    self.device,
                    normalize_compute_type(self.device, self.compute_type),
                )
                started = time.perf_counter()
                self._model = load_model(self.model_name, self.device, self.compute_type)
                logger.info("Model loaded in %.2fs", time.perf_counter() - started)
            return self._model

    def transcribe(self, audio_path: Path, language_hint: str | None) -> str:
        started = time.perf_counter()
        text = transcribe_file(self.model, audio_path, language=language_hint)
        logger.info("Transcription took %.2fs", time.perf_counter() - started)
        logger.debug("Raw transcription: %s", text)
        return text
