"""Tests for the JSON dictionary store."""

import json

import pytest

from ghosttype.dictionary_store import JsonDictionaryStore
from ghosttype.models import DictionaryEntry


@pytest.fixture
def store(tmp_path):
    return JsonDictionaryStore(tmp_path / "dict" / "dictionary.json")


class TestJsonDictionaryStore:
    """Test listing and adding entries."""

    def test_missing_file_is_empty(self, store):
        assert store.list() == []

    def test_add_entry_creates_file(self, store):
        entry = store.add_entry("Kubernetes")

        assert store.path.is_file()
        assert entry.word == "Kubernetes"
        assert entry.is_correction is False
        assert entry.misspelling is None
        assert entry.id
        assert entry.created_at > 0

    def test_newest_first(self, store):
        store.add_entry("first")
        store.add_entry("second")

        assert [e.word for e in store.list()] == ["second", "first"]

    def test_add_auto_correction(self, store):
        entry = store.add_auto_correction("handel sign up", "handleSignUp")

        assert entry.is_correction is True
        assert entry.auto_added is True
        assert entry.misspelling == "handel sign up"
        assert entry.word == "handleSignUp"
        assert store.list() == [entry]

    def test_file_format_uses_camel_case(self, store):
        store.add_entry("Postgres", misspelling="post gress")

        data = json.loads(store.path.read_text(encoding="utf-8"))

        assert data[0]["isCorrection"] is True
        assert data[0]["misspelling"] == "post gress"
        assert "createdAt" in data[0]

    def test_empty_word_rejected(self, store):
        with pytest.raises(ValueError, match="cannot be empty"):
            store.add_entry("   ")

    def test_corrupt_file_reads_as_empty(self, store, caplog):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json", encoding="utf-8")

        assert store.list() == []
        assert "Could not read dictionary" in caplog.text

    def test_non_list_file_reads_as_empty(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text('{"word": "x"}', encoding="utf-8")

        assert store.list() == []

    def test_reads_existing_entries(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(
            json.dumps([{"id": "1", "word": "GhostType", "isCorrection": False, "createdAt": 5}]),
            encoding="utf-8",
        )

        assert store.list() == [DictionaryEntry(id="1", word="GhostType", created_at=5)]
