"""
Bookmark persistence.

Bookmarks are a set of item identifiers kept under a single durable key as
a JSON array, e.g. `[3, 7]`. The key lives in a small file-backed key/value
store (one JSON file per key). Storage problems are logged and degrade to
"no bookmarks" or a skipped write; they are never raised to the caller.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import tempfile

from .errors import StorageError
from .logging_utils import get_logger, log_event


class JsonFileStorage:
    """Durable key/value storage backed by one file per key.

    Attributes:
        root: Directory holding the key files
    """

    def __init__(self, root: Path):
        self.root = root.expanduser()

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        """Return the raw stored value, or None when the key is absent.

        Raises:
            StorageError: If the file exists but cannot be read
        """
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise StorageError(f"Cannot read {path}: {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        """Atomically replace the stored value.

        Raises:
            StorageError: If the value cannot be written
        """
        path = self.path_for(key)
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
            os.replace(tmp_name, path)
        except OSError as exc:
            raise StorageError(f"Cannot write {path}: {exc}") from exc


class BookmarkStore:
    """Owns the set of bookmarked item identifiers.

    Every toggle is written through to storage immediately.
    """

    def __init__(
        self,
        storage: JsonFileStorage,
        key: str = "bookmarkedArticles",
        logger: logging.Logger | None = None,
    ):
        self.storage = storage
        self.key = key
        self._ids: set[int] = set()
        self._logger = logger or get_logger("bookmarks")

    def load(self) -> set[int]:
        """Read the bookmark set from storage.

        A missing key, unreadable file, invalid JSON or non-array value all
        yield an empty set. Non-integer elements of an array are dropped.
        """
        self._ids = set()
        try:
            raw = self.storage.get_item(self.key)
        except StorageError as exc:
            log_event(self._logger, "Bookmark load failed", level=logging.WARNING, event="bookmark_load_failed", error=str(exc))
            return self.all()
        if raw is None:
            return self.all()

        try:
            data = json.loads(raw)
        except ValueError as exc:
            log_event(self._logger, "Discarding corrupt bookmarks", level=logging.WARNING, event="bookmark_corrupt", error=str(exc))
            return self.all()
        if not isinstance(data, list):
            log_event(self._logger, "Discarding non-array bookmarks", level=logging.WARNING, event="bookmark_corrupt", kind=type(data).__name__)
            return self.all()

        for value in data:
            item_id = _coerce_id(value)
            if item_id is not None:
                self._ids.add(item_id)
        log_event(self._logger, "Bookmarks loaded", level=logging.DEBUG, event="bookmark_loaded", count=len(self._ids))
        return self.all()

    def persist(self) -> bool:
        """Write the current set to storage. Returns False if the write failed."""
        try:
            self.storage.set_item(self.key, json.dumps(sorted(self._ids)))
        except StorageError as exc:
            log_event(self._logger, "Bookmark save failed", level=logging.WARNING, event="bookmark_save_failed", error=str(exc))
            return False
        return True

    def toggle(self, item_id: int) -> bool:
        """Flip membership of `item_id`, persist, and return the new state."""
        if item_id in self._ids:
            self._ids.discard(item_id)
            bookmarked = False
        else:
            self._ids.add(item_id)
            bookmarked = True
        self.persist()
        log_event(self._logger, "Bookmark toggled", level=logging.DEBUG, event="bookmark_toggled", item_id=item_id, bookmarked=bookmarked)
        return bookmarked

    def is_bookmarked(self, item_id: int) -> bool:
        return item_id in self._ids

    def all(self) -> set[int]:
        return set(self._ids)

    def __len__(self) -> int:
        return len(self._ids)


def _coerce_id(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None
