"""Voice snippets: trigger phrases the cleanup model expands into longer text."""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid
from collections.abc import Iterable
from pathlib import Path

from ghosttype.models import SnippetEntry

logger = logging.getLogger(__name__)

SNIPPETS_FILE = Path.home() / ".ghosttype" / "snippets.json"


class JsonSnippetStore:
    """Snippets in a JSON file, newest first. A corrupt file reads as empty."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path is not None else SNIPPETS_FILE
        self._lock = threading.Lock()

    def list(self) -> list[SnippetEntry]:
        with self._lock:
            return self._load()

    def add_snippet(self, snippet: str, expansion: str) -> SnippetEntry:
        snippet = snippet.strip()
        if not snippet or not expansion.strip():
            raise ValueError("Snippet trigger and expansion cannot be empty")

        entry = SnippetEntry(
            id=str(uuid.uuid4()),
            snippet=snippet,
            expansion=expansion,
            created_at=int(time.time() * 1000),
        )
        with self._lock:
            entries = [e for e in self._load() if e.snippet.lower() != snippet.lower()]
            entries.insert(0, entry)
            self._save(entries)
        logger.debug("Snippet added: %s", snippet)
        return entry

    def remove_snippet(self, snippet_id: str) -> bool:
        with self._lock:
            entries = self._load()
            kept = [e for e in entries if e.id != snippet_id]
            if len(kept) == len(entries):
                return False
            self._save(kept)
        return True

    def sync(self, entries: Iterable[SnippetEntry]) -> None:
        """Replace every stored snippet with ``entries``."""
        with self._lock:
            self._save(list(entries))

    def _load(self) -> list[SnippetEntry]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not read snippets %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            return []
        return [SnippetEntry.from_dict(item) for item in data if isinstance(item, dict)]

    def _save(self, entries: list[SnippetEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([entry.to_dict() for entry in entries], indent=2),
            encoding="utf-8",
        )
