"""Configuration defaults and the immutable runtime configuration for GhostType."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Literal

# Audio defaults
SAMPLE_RATE = 16000
INPUT_CHANNELS = 1
CHUNK_MS = 50

# Whisper defaults
DEFAULT_MODEL = "large-v3-turbo"  # whisper model: base.en, small, medium, large-v3, large-v3-turbo
DEFAULT_DEVICE: Literal["cpu", "cuda"] = "cpu"
DEFAULT_COMPUTE = "int8"  # CPU-safe default
DEFAULT_LANGUAGE = "auto"  # "auto" lets the engine detect the language

WHISPER_MODELS = ("tiny.en", "base.en", "small", "medium", "large-v3", "large-v3-turbo")

# Recommended compute types per device
DEVICE_COMPUTE_DEFAULTS: dict[str, str] = {
    "cpu": "int8",
    "cuda": "float16",
}

# LLM cleanup defaults
DEFAULT_LLM_ENABLED = True
DEFAULT_LLM_ENDPOINT = "http://localhost:1234/v1"  # LM Studio default
DEFAULT_LLM_MODEL = "openai/gpt-oss-20b"
DEFAULT_LLM_TEMP = 0.2
DEFAULT_LLM_MAX_TOKENS = 1024
DEFAULT_WRITING_STYLE = "casual"

# Injection defaults
DEFAULT_AUTO_PASTE = True
DEFAULT_PASTE_DELAY = 0.04

# Hotkey defaults (hold to talk)
DEFAULT_HOTKEY = "cmd+shift+space"
DEFAULT_CANCEL_KEY = "esc"

# Speech presence gate
DEFAULT_GATE_WINDOW_MS = 50
DEFAULT_GATE_RMS_THRESHOLD = 0.015
DEFAULT_GATE_MIN_WINDOWS = 3

# Hallucination word-rate heuristic (empirically tuned, keep configurable)
DEFAULT_HALLUCINATION_MIN_DURATION_S = 1.5
DEFAULT_HALLUCINATION_MAX_WORDS = 4
DEFAULT_HALLUCINATION_MIN_WORDS_PER_S = 1.5

# Stage timeouts (seconds)
DEFAULT_DEVICE_TIMEOUT = 5.0
DEFAULT_TRANSCRIBE_TIMEOUT = 60.0
DEFAULT_CLEANUP_TIMEOUT = 15.0
DEFAULT_INJECT_TIMEOUT = 5.0

# Correction learning
DEFAULT_LEARNING_ENABLED = True
DEFAULT_LEARNING_IDLE_S = 7.5
DEFAULT_LEARNING_MAX_WAIT_S = 90.0
DEFAULT_LEARNING_WINDOW_FACTOR = 1.4

DEFAULT_CLEANUP_PROMPT = """You are a transcription cleanup tool. The user message contains raw speech-to-text output. Your ONLY job is to return the cleaned version of that text. Never reply conversationally. Never ask questions. Never refuse. Always return cleaned text.

Cleanup rules:
- If the speaker corrects themselves, keep ONLY the correction. Example: "we should use map actually no use filter instead" -> "we should use filter instead"
- Remove stutters and repeated words. Example: "the the component" -> "the component"
- Remove filler sounds: um, uh, hmm, like (when used as filler, not meaning).
- Fix obvious transcription typos of technical terms. Example: "reacked" -> "React"
- Add punctuation and sentence boundaries where clearly implied by the speech.
- Add paragraph breaks when the speaker shifts topic or starts a new thought.

Do NOT rephrase, summarize, shorten, or change sentence structure beyond the rules above.
Preserve all technical terms, casing, file paths, and code symbols exactly."""


@dataclass(frozen=True)
class GhostingConfig:
    """Runtime configuration threaded into the controller and adapters."""

    # capture
    microphone: str | None = None
    sample_rate: int = SAMPLE_RATE

    # transcription
    model: str = DEFAULT_MODEL
    device: str = DEFAULT_DEVICE
    compute_type: str = DEFAULT_COMPUTE
    language: str = DEFAULT_LANGUAGE

    # cleanup
    cleanup_enabled: bool = DEFAULT_LLM_ENABLED
    llm_endpoint: str = DEFAULT_LLM_ENDPOINT
    llm_model: str = DEFAULT_LLM_MODEL
    llm_temperature: float = DEFAULT_LLM_TEMP
    llm_prompt: str = DEFAULT_CLEANUP_PROMPT
    writing_style: str = DEFAULT_WRITING_STYLE

    # injection
    auto_paste: bool = DEFAULT_AUTO_PASTE
    paste_delay: float = DEFAULT_PASTE_DELAY

    # hotkey
    hotkey: str = DEFAULT_HOTKEY

    # speech gate
    gate_window_ms: int = DEFAULT_GATE_WINDOW_MS
    gate_rms_threshold: float = DEFAULT_GATE_RMS_THRESHOLD
    gate_min_windows: int = DEFAULT_GATE_MIN_WINDOWS

    # hallucination filter
    hallucination_min_duration_s: float = DEFAULT_HALLUCINATION_MIN_DURATION_S
    hallucination_max_words: int = DEFAULT_HALLUCINATION_MAX_WORDS
    hallucination_min_words_per_s: float = DEFAULT_HALLUCINATION_MIN_WORDS_PER_S

    # timeouts
    device_timeout: float = DEFAULT_DEVICE_TIMEOUT
    transcribe_timeout: float = DEFAULT_TRANSCRIBE_TIMEOUT
    cleanup_timeout: float = DEFAULT_CLEANUP_TIMEOUT
    inject_timeout: float = DEFAULT_INJECT_TIMEOUT

    # correction learning
    learning_enabled: bool = DEFAULT_LEARNING_ENABLED
    learning_idle_s: float = DEFAULT_LEARNING_IDLE_S
    learning_max_wait_s: float = DEFAULT_LEARNING_MAX_WAIT_S
    learning_window_factor: float = DEFAULT_LEARNING_WINDOW_FACTOR

    def with_changes(self, **changes: Any) -> GhostingConfig:
        """Return a copy with ``changes`` applied. Unknown keys raise ``TypeError``."""
        return replace(self, **changes)

    @property
    def language_hint(self) -> str | None:
        lang = (self.language or "").strip().lower()
        return None if lang in ("", "auto") else lang

    def to_settings(self) -> dict[str, Any]:
        return asdict(self)


def config_from_settings(settings: dict[str, Any]) -> GhostingConfig:
    """Build a config from a settings dict, ignoring keys the config does not know."""
    known = {f.name for f in fields(GhostingConfig)}
    values = {key: value for key, value in settings.items() if key in known}
    return GhostingConfig(**values)


def normalize_compute_type(device: str, compute_type: str) -> str:
    """Keep compute types compatible with the selected device."""
    ct = compute_type
    if device == "cpu" and "float16" in ct:
        ct = "int8"
    if device == "cuda" and ct in ("int8", "int8_float32", "float32"):
        ct = "float16"
    return ct
