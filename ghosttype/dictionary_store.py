"""Personal dictionary persisted as a JSON file."""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from pathlib import Path

from ghosttype.models import DictionaryEntry

logger = logging.getLogger(__name__)

DICTIONARY_FILE = Path.home() / ".ghosttype" / "dictionary.json"


class JsonDictionaryStore:
    """Stores dictionary entries newest first. A corrupt file reads as empty."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else DICTIONARY_FILE
        self._lock = threading.Lock()

    def list(self) -> list[DictionaryEntry]:
        with self._lock:
            return self._load()

    def add_entry(
        self,
        word: str,
        misspelling: str | None = None,
        auto_added: bool = False,
    ) -> DictionaryEntry:
        """Add a vocabulary word, or a correction when ``misspelling`` is given."""
        word = word.strip()
        if not word:
            raise ValueError("Dictionary word cannot be empty")
        misspelling = misspelling.strip() if misspelling else None

        entry = DictionaryEntry(
            id=str(uuid.uuid4()),
            word=word,
            is_correction=bool(misspelling),
            misspelling=misspelling,
            auto_added=auto_added,
            created_at=int(time.time() * 1000),
        )
        with self._lock:
            entries = self._load()
            entries.insert(0, entry)
            self._save(entries)
        logger.debug("Dictionary entry added: %s", entry.word)
        return entry

    def add_auto_correction(self, original: str, replacement: str) -> DictionaryEntry:
        return self.add_entry(replacement, misspelling=original, auto_added=True)

    def _load(self) -> list[DictionaryEntry]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not read dictionary %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            return []
        return [DictionaryEntry.from_dict(item) for item in data if isinstance(item, dict)]

    def _save(self, entries: list[DictionaryEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([entry.to_dict() for entry in entries], indent=2),
            encoding="utf-8",
        )
