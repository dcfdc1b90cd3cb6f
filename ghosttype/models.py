"""Core data models shared across the dictation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class GhostingPhase(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    ERROR = "error"


@dataclass(frozen=True)
class GhostingState:
    """Snapshot of the state machine. Replaced as a whole on every transition."""

    phase: GhostingPhase = GhostingPhase.IDLE
    last_raw_text: str = ""
    last_cleaned_text: str = ""
    last_error: str | None = None


@dataclass(frozen=True)
class CaptureSession:
    """Handle for one open recording; ``audio_path`` is a temporary WAV file."""

    audio_path: Path
    started_at: float
    device_id: int | None = None


@dataclass(frozen=True)
class SessionReport:
    word_count: int
    duration_ms: int
    raw_length: int
    cleaned_length: int


class EditKind(str, Enum):
    INSERT = "insert"
    DELETE = "delete"


@dataclass(frozen=True)
class EditOperation:
    """One word-level diff step.

    ``position`` indexes the original sequence for deletions and the edited
    sequence for insertions.
    """

    kind: EditKind
    position: int
    word: str


@dataclass(frozen=True)
class WordCorrection:
    original: str
    replacement: str


@dataclass
class DictionaryEntry:
    """A personal dictionary word, optionally with the misspelling it corrects."""

    id: str
    word: str
    is_correction: bool = False
    misspelling: str | None = None
    auto_added: bool = False
    created_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "word": self.word,
            "isCorrection": self.is_correction,
            "autoAdded": self.auto_added,
            "createdAt": self.created_at,
        }
        if self.is_correction and self.misspelling:
            data["misspelling"] = self.misspelling
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DictionaryEntry:
        return cls(
            id=str(data.get("id", "")),
            word=str(data.get("word", "")),
            is_correction=bool(data.get("isCorrection", False)),
            misspelling=data.get("misspelling") or None,
            auto_added=bool(data.get("autoAdded", False)),
            created_at=int(data.get("createdAt", 0) or 0),
        )


@dataclass
class SnippetEntry:
    """A spoken trigger phrase and the text it expands to."""

    id: str
    snippet: str
    expansion: str
    created_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "snippet": self.snippet,
            "expansion": self.expansion,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnippetEntry:
        return cls(
            id=str(data.get("id", "")),
            snippet=str(data.get("snippet", "")),
            expansion=str(data.get("expansion", "")),
            created_at=int(data.get("createdAt", 0) or 0),
        )


@dataclass(frozen=True)
class TranscriptEntry:
    timestamp: int
    cleaned_text: str
    word_count: int

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "cleanedText": self.cleaned_text, "wordCount": self.word_count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TranscriptEntry:
        return cls(
            timestamp=int(data.get("timestamp", 0) or 0),
            cleaned_text=str(data.get("cleanedText", "")),
            word_count=int(data.get("wordCount", 0) or 0),
        )


@dataclass(frozen=True)
class TokenUsage:
    model: str
    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class CleanupResult:
    text: str
    usage: TokenUsage | None = None


@dataclass(frozen=True)
class PersonalizationContext:
    """Data merged into the cleanup prompt. Opaque to the state machine."""

    dictionary: tuple[DictionaryEntry, ...] = field(default_factory=tuple)
    writing_style: str = "casual"
    app_context: str | None = None
    snippets: tuple[SnippetEntry, ...] = field(default_factory=tuple)
