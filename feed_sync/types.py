"""
Core data types for the feed synchronization engine.

This module defines the values that flow between components:
- Item: One content entry as returned by the remote API
- SortOrder / FetchMode / SyncState: Enumerations driving fetch behavior
- StatsSnapshot: Source and tag facet counts
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class SortOrder(str, Enum):
    """Server-side ordering of the content feed (value is the `order_by` param)."""

    BY_DATE = "date"
    RANDOM = "random"


class FetchMode(str, Enum):
    """How a fetched page is merged into the displayed list."""

    REPLACE = "replace"
    APPEND = "append"


class SyncState(str, Enum):
    """States of the SyncController."""

    BOOTSTRAPPING = "bootstrapping"
    IDLE = "idle"
    FETCHING_NORMAL = "fetching_normal"
    FETCHING_BOOKMARKS = "fetching_bookmarks"
    ERROR_STALLED = "error_stalled"


_CORE_FIELDS = {"id", "source_type", "tags", "novelty_score", "published_date"}


@dataclass
class Item:
    """A content entry aggregated from one of the sources.

    Attributes:
        id: Stable unique identifier
        source_type: Source the item was aggregated from
        tags: Ordered tag identifiers
        novelty_score: Precomputed novelty metric, or None if not scored
        published_at: Publication timestamp, or None if unknown
        payload: Remaining display fields (title, url, summary, ...)
    """

    id: int
    source_type: str | None = None
    tags: list[str] = field(default_factory=list)
    novelty_score: float | None = None
    published_at: datetime | None = None
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def title(self) -> str:
        return str(self.payload.get("title") or "")

    @property
    def url(self) -> str | None:
        return self.payload.get("url")

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Item:
        """Build an Item from one element of an API response.

        Raises:
            ValueError: If the element has no usable identifier
        """
        raw_id = data.get("id")
        if isinstance(raw_id, bool) or raw_id is None:
            raise ValueError(f"Item without identifier: {data!r}")
        item_id = int(raw_id)

        tags = data.get("tags") or []
        if not isinstance(tags, list):
            tags = []

        novelty = data.get("novelty_score")
        return cls(
            id=item_id,
            source_type=data.get("source_type"),
            tags=[str(tag) for tag in tags],
            novelty_score=float(novelty) if novelty is not None else None,
            published_at=parse_timestamp(data.get("published_date")),
            payload={k: v for k, v in data.items() if k not in _CORE_FIELDS},
        )


@dataclass
class StatsSnapshot:
    """Facet counts for sources and tags.

    Attributes:
        sources: Mapping of source type to item count
        tags: Mapping of tag to item count
    """

    sources: dict[str, int] = field(default_factory=dict)
    tags: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.sources.values())


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'.

    Naive timestamps are assumed to be UTC. Unparseable values yield None.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sort_by_published_desc(items: list[Item]) -> list[Item]:
    """Return items newest first; items without a timestamp go last."""
    oldest = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(items, key=lambda item: item.published_at or oldest, reverse=True)
