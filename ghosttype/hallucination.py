"""Filters for transcription output that does not reflect real speech."""

from __future__ import annotations

import re

from ghosttype.config import (
    DEFAULT_HALLUCINATION_MAX_WORDS,
    DEFAULT_HALLUCINATION_MIN_DURATION_S,
    DEFAULT_HALLUCINATION_MIN_WORDS_PER_S,
)

# [BLANK_AUDIO], [ Silence ], (music), (wind blowing) ...
_NOISE_MARKER = re.compile(r"\[[^\[\]]*\]|\([^()]*\)")
_WHITESPACE = re.compile(r"\s+")


def strip_noise_markers(text: str) -> str:
    """Remove bracketed/parenthesized non-speech tokens and collapse whitespace.

    An empty result means the transcription held no real speech.
    """
    if not text:
        return ""
    stripped = _NOISE_MARKER.sub(" ", text)
    return _WHITESPACE.sub(" ", stripped).strip()


def count_words(text: str) -> int:
    return len(text.split())


def is_likely_hallucination(
    text: str,
    duration_s: float,
    min_duration_s: float = DEFAULT_HALLUCINATION_MIN_DURATION_S,
    max_words: int = DEFAULT_HALLUCINATION_MAX_WORDS,
    min_words_per_s: float = DEFAULT_HALLUCINATION_MIN_WORDS_PER_S,
) -> bool:
    """Flag a few stock words spread thinly over a mostly silent recording.

    Whisper tends to emit short phrases such as "Thank you." on near-silence.
    Recordings shorter than ``min_duration_s`` are never flagged.
    """
    if duration_s < min_duration_s:
        return False
    words = count_words(text)
    if words == 0:
        return False
    return words <= max_words and words / duration_s < min_words_per_s
