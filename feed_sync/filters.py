"""
Filter selectors for the content feed.

FilterState is plain data: it knows how to describe itself as request
parameters but performs no I/O and triggers nothing. The SyncController
owns the instance and is the only writer after bootstrap.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable

from .types import SortOrder


NOVELTY_BUCKETS: tuple[int, ...] = (20, 40, 60, 80)


@dataclass
class FilterState:
    """Current query, facet, novelty and ordering selectors.

    Attributes:
        query: Full-text search string; empty means no search
        active_sources: Selected source types, or None while not yet seeded
        active_tags: Selected tags, or None while not yet seeded
        min_novelty: Minimum novelty bucket, or None for no threshold
        sort_order: Server-side ordering
        novelty_buckets: Thresholds accepted for min_novelty
    """

    query: str = ""
    active_sources: set[str] | None = None
    active_tags: set[str] | None = None
    min_novelty: int | None = None
    sort_order: SortOrder = SortOrder.BY_DATE
    novelty_buckets: tuple[int, ...] = field(default=NOVELTY_BUCKETS, repr=False)

    def __post_init__(self) -> None:
        self.validate_novelty(self.min_novelty)

    def validate_novelty(self, value: int | None) -> None:
        if value is not None and value not in self.novelty_buckets:
            allowed = ", ".join(str(b) for b in self.novelty_buckets)
            raise ValueError(f"Unsupported novelty bucket: {value}. Allowed: {allowed}")

    def copy(self) -> FilterState:
        """Return an independent snapshot safe to hand to an in-flight request."""
        return replace(
            self,
            active_sources=set(self.active_sources) if self.active_sources is not None else None,
            active_tags=set(self.active_tags) if self.active_tags is not None else None,
        )

    def to_params(self, limit: int, offset: int) -> dict[str, Any]:
        """Build `/api/content` query parameters."""
        params: dict[str, Any] = {
            "limit": limit,
            "offset": offset,
            "order_by": self.sort_order.value,
        }
        search = self.query.strip()
        if search:
            params["search"] = search
        if self.active_sources is not None:
            params["sources"] = join_ids(self.active_sources)
        if self.active_tags is not None:
            params["tags"] = join_ids(self.active_tags)
        if self.min_novelty is not None:
            params["novelty_bucket"] = self.min_novelty
        return params

    def to_stats_params(self) -> dict[str, Any]:
        """Build scoped `/api/source-stats` query parameters (search and tags only)."""
        params: dict[str, Any] = {}
        search = self.query.strip()
        if search:
            params["search"] = search
        if self.active_tags is not None:
            params["tags"] = join_ids(self.active_tags)
        return params


def join_ids(values: Iterable[Any]) -> str:
    """Comma-join identifiers in a stable order."""
    return ",".join(str(v) for v in sorted(values, key=str))
