"""Tests for bookmark persistence."""

from __future__ import annotations

import logging
import tempfile
from pathlib import Path

from feed_sync.bookmarks import BookmarkStore, JsonFileStorage
from feed_sync.errors import StorageError


def test_toggle_round_trip_through_storage():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = BookmarkStore(JsonFileStorage(Path(tmpdir)))
        assert store.load() == set()

        assert store.toggle(3) is True
        assert store.toggle(7) is True
        assert store.toggle(3) is False
        assert store.all() == {7}
        assert store.is_bookmarked(7)
        assert not store.is_bookmarked(3)

        reloaded = BookmarkStore(JsonFileStorage(Path(tmpdir)))
        assert reloaded.load() == {7}


def test_storage_holds_json_array_under_key():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(Path(tmpdir))
        store = BookmarkStore(storage, key="bookmarkedArticles")
        store.toggle(5)
        store.toggle(2)

        assert storage.get_item("bookmarkedArticles") == "[2, 5]"
        assert storage.path_for("bookmarkedArticles").name == "bookmarkedArticles.json"


def test_corrupt_record_is_discarded():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(Path(tmpdir))
        storage.set_item("bookmarkedArticles", "{not json")
        store = BookmarkStore(storage)

        assert store.load() == set()
        store.toggle(1)
        assert storage.get_item("bookmarkedArticles") == "[1]"


def test_non_array_record_is_treated_as_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(Path(tmpdir))
        storage.set_item("bookmarkedArticles", '{"ids": [1, 2]}')

        assert BookmarkStore(storage).load() == set()


def test_non_integer_elements_are_dropped():
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(Path(tmpdir))
        storage.set_item("bookmarkedArticles", '[1, "2", "x", null, true, 3.5]')

        assert BookmarkStore(storage).load() == {1, 2}


def test_write_failure_is_logged_not_raised(monkeypatch, caplog):
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(Path(tmpdir))
        store = BookmarkStore(storage, logger=logging.getLogger("test_bookmarks"))

        def broken(key, value):
            raise StorageError("disk full")

        monkeypatch.setattr(storage, "set_item", broken)
        with caplog.at_level(logging.WARNING, logger="test_bookmarks"):
            assert store.toggle(4) is True

        assert store.all() == {4}
        assert store.persist() is False
        assert any(r.getMessage() == "Bookmark save failed" for r in caplog.records)


def test_read_failure_degrades_to_empty(monkeypatch):
    with tempfile.TemporaryDirectory() as tmpdir:
        storage = JsonFileStorage(Path(tmpdir))
        storage.set_item("bookmarkedArticles", "[1]")

        def broken(key):
            raise StorageError("permission denied")

        monkeypatch.setattr(storage, "get_item", broken)
        assert BookmarkStore(storage).load() == set()
