"""Tests for the JSON snippet store."""

import json

import pytest

from ghosttype.models import SnippetEntry
from ghosttype.snippet_store import JsonSnippetStore


@pytest.fixture
def store(tmp_path):
    return JsonSnippetStore(tmp_path / "snippets" / "snippets.json")


class TestJsonSnippetStore:
    """Test adding, replacing and removing snippets."""

    def test_missing_file_is_empty(self, store):
        assert store.list() == []

    def test_add_snippet(self, store):
        entry = store.add_snippet("  my address ", "1 Main St, Springfield")

        assert entry.snippet == "my address"
        assert entry.expansion == "1 Main St, Springfield"
        assert entry.id
        assert entry.created_at > 0
        assert store.list() == [entry]

    def test_newest_first(self, store):
        store.add_snippet("sig", "Best, Dana")
        store.add_snippet("zoom", "https://zoom.example/j/1")

        assert [s.snippet for s in store.list()] == ["zoom", "sig"]

    def test_same_trigger_replaces_older(self, store):
        store.add_snippet("My Sig", "Best, Dana")
        store.add_snippet("my sig", "Cheers, Dana")

        assert [(s.snippet, s.expansion) for s in store.list()] == [("my sig", "Cheers, Dana")]

    @pytest.mark.parametrize("snippet,expansion", [("", "text"), ("   ", "text"), ("sig", "  ")])
    def test_empty_fields_rejected(self, store, snippet, expansion):
        with pytest.raises(ValueError, match="cannot be empty"):
            store.add_snippet(snippet, expansion)

    def test_remove_snippet(self, store):
        entry = store.add_snippet("sig", "Best, Dana")

        assert store.remove_snippet(entry.id) is True
        assert store.remove_snippet(entry.id) is False
        assert store.list() == []

    def test_sync_replaces_everything(self, store):
        store.add_snippet("old", "gone")
        entries = [SnippetEntry(id="a", snippet="brb", expansion="be right back", created_at=1)]

        store.sync(entries)

        assert store.list() == entries

    def test_file_format_uses_camel_case(self, store):
        store.add_snippet("sig", "Best, Dana")

        data = json.loads(store.path.read_text(encoding="utf-8"))

        assert set(data[0]) == {"id", "snippet", "expansion", "createdAt"}

    def test_corrupt_file_reads_as_empty(self, store, caplog):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("[{oops", encoding="utf-8")

        assert store.list() == []
        assert "Could not read snippets" in caplog.text
