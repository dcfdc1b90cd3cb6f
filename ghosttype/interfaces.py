"""Protocol interfaces for the collaborators the controller and learning engine drive."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from ghosttype.models import CaptureSession, CleanupResult, DictionaryEntry


class AudioCapture(Protocol):
    def resolve_device(self, preferred: str | int | None) -> int | None: ...

    def start_capture(self, device_id: int | None = None) -> CaptureSession: ...

    def stop_capture(self, session: CaptureSession) -> None: ...

    def cancel_capture(self, session: CaptureSession) -> None: ...


class Transcriber(Protocol):
    def transcribe(self, audio_path: Path, language_hint: str | None) -> str: ...


class Cleaner(Protocol):
    def clean(self, raw_text: str, personalization_context: Any) -> CleanupResult: ...


class Injector(Protocol):
    def inject(self, text: str) -> None: ...


class TextAccessor(Protocol):
    def read_value(self) -> str: ...

    def read_range(self, offset: int, length: int) -> str: ...

    def read_cursor_position(self) -> int: ...


class DictionaryStore(Protocol):
    def list(self) -> list[DictionaryEntry]: ...

    def add_auto_correction(self, original: str, replacement: str) -> DictionaryEntry: ...
