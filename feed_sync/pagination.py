"""Offset/limit pagination state for the active list."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PaginationCursor:
    """Position within the current result set.

    Attributes:
        offset: Number of items already requested from the server
        page_size: Fixed number of items per page
        exhausted: True once no further pages exist for the current filters
    """

    offset: int = 0
    page_size: int = 50
    exhausted: bool = False


class PaginationTracker:
    """Pure state holder for the cursor. No I/O."""

    def __init__(self, page_size: int = 50):
        if page_size <= 0:
            raise ValueError("page_size must be a positive integer")
        self.cursor = PaginationCursor(page_size=page_size)

    @property
    def offset(self) -> int:
        return self.cursor.offset

    @property
    def page_size(self) -> int:
        return self.cursor.page_size

    @property
    def exhausted(self) -> bool:
        return self.cursor.exhausted

    def reset(self) -> None:
        self.cursor.offset = 0
        self.cursor.exhausted = False

    def advance(self, n: int, page_size: int | None = None) -> None:
        """Move past `n` returned items; a short page marks the end."""
        size = page_size if page_size is not None else self.cursor.page_size
        self.cursor.offset += n
        self.cursor.exhausted = n < size

    def mark_exhausted(self) -> None:
        self.cursor.exhausted = True
