"""Local history of dictated text, fed from the controller's events."""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Callable

from ghosttype import events
from ghosttype.events import EventBus
from ghosttype.models import GhostingPhase, GhostingState, SessionReport, TranscriptEntry

logger = logging.getLogger(__name__)

TRANSCRIPTS_FILE = Path.home() / ".ghosttype" / "transcripts.json"
MAX_TRANSCRIPTS = 200


class JsonTranscriptStore:
    """Keeps the newest ``max_entries`` transcripts, newest first."""

    def __init__(self, path: Path | None = None, max_entries: int = MAX_TRANSCRIPTS):
        self.path = Path(path) if path is not None else TRANSCRIPTS_FILE
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._pending_report: SessionReport | None = None

    def list(self) -> list[TranscriptEntry]:
        with self._lock:
            return self._load()

    def add(self, cleaned_text: str, word_count: int, timestamp: int | None = None) -> TranscriptEntry:
        entry = TranscriptEntry(
            timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
            cleaned_text=cleaned_text,
            word_count=word_count,
        )
        with self._lock:
            entries = self._load()
            entries.insert(0, entry)
            self._save(entries[: self.max_entries])
        return entry

    def delete(self, timestamp: int) -> bool:
        with self._lock:
            entries = self._load()
            kept = [e for e in entries if e.timestamp != timestamp]
            if len(kept) == len(entries):
                return False
            self._save(kept)
        return True

    def attach(self, bus: EventBus) -> Callable[[], None]:
        """Record every completed utterance; returns a function that stops recording."""
        unsubscribers = [
            bus.subscribe(events.SESSION_REPORT, self._on_report),
            bus.subscribe(events.PHASE, self._on_phase),
        ]

        def detach() -> None:
            for unsubscribe in unsubscribers:
                unsubscribe()

        return detach

    def _on_report(self, report: SessionReport) -> None:
        self._pending_report = report

    def _on_phase(self, state: GhostingState) -> None:
        # The report for an utterance is published just before its final IDLE
        if state.phase is not GhostingPhase.IDLE:
            if state.phase is GhostingPhase.RECORDING:
                self._pending_report = None
            return
        report, self._pending_report = self._pending_report, None
        if report is None or not state.last_cleaned_text:
            return
        try:
            self.add(state.last_cleaned_text, report.word_count)
        except OSError as e:
            logger.warning("Could not save transcript: %s", e)

    def _load(self) -> list[TranscriptEntry]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not read transcripts %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            return []
        return [TranscriptEntry.from_dict(item) for item in data if isinstance(item, dict)]

    def _save(self, entries: list[TranscriptEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([entry.to_dict() for entry in entries], indent=2),
            encoding="utf-8",
        )
