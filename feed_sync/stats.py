"""
Source and tag facet counts.

Two projections are kept:
- scoped: per-source counts for the current query and tags (live facet counts)
- unscoped: catalog-wide source and tag counts (totals and default selection)

The first non-empty unscoped catalog seeds the filter selection to "all";
later refreshes only update the displayed counts. Failures never propagate:
they are logged and the affected mapping degrades to empty.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable

from .errors import TransportError
from .filters import FilterState
from .logging_utils import get_logger, log_event
from .session import FeedSession
from .types import StatsSnapshot


class StatsCatalog:
    def __init__(self, api: Any, session: FeedSession, logger: logging.Logger | None = None):
        self.api = api
        self.session = session
        self._logger = logger or get_logger("stats")
        self._sources_seeded = False
        self._tags_seeded = False
        self._scoped_generation = 0

    @property
    def seeded(self) -> bool:
        return self._sources_seeded and self._tags_seeded

    @property
    def seeded_facets(self) -> frozenset[str]:
        facets = set()
        if self._sources_seeded:
            facets.add("sources")
        if self._tags_seeded:
            facets.add("tags")
        return frozenset(facets)

    async def fetch_scoped(self, filters: FilterState, apply_filters: bool = True) -> dict[str, int]:
        """Fetch per-source counts for the given filters.

        With `apply_filters=False` (bookmark mode) the request is unscoped.
        Only the most recent call updates the session.
        """
        self._scoped_generation += 1
        generation = self._scoped_generation
        params = filters.to_stats_params() if apply_filters else {}

        counts = await self._degrade(
            self.api.source_stats(search=params.get("search"), tags=params.get("tags")),
            "scoped_source_stats",
        )
        if generation == self._scoped_generation:
            self.session.update(scoped_sources=counts)
        return counts

    async def fetch_unscoped(self) -> StatsSnapshot:
        """Fetch catalog-wide source and tag counts and seed defaults once."""
        sources, tags = await asyncio.gather(
            self._degrade(self.api.source_stats(), "unscoped_source_stats"),
            self._degrade(self.api.tag_catalog(), "tag_catalog"),
        )
        snapshot = StatsSnapshot(sources=sources, tags=tags)
        self.session.update(unscoped=snapshot)
        self._seed_defaults(snapshot)
        return snapshot

    def _seed_defaults(self, snapshot: StatsSnapshot) -> bool:
        filters = self.session.filters
        seeded = False
        if not self._sources_seeded and snapshot.sources:
            filters.active_sources = set(snapshot.sources)
            self._sources_seeded = True
            seeded = True
        if not self._tags_seeded and snapshot.tags:
            filters.active_tags = set(snapshot.tags)
            self._tags_seeded = True
            seeded = True
        if seeded:
            self.session.notify({"filters"})
            log_event(
                self._logger,
                "Default filters seeded",
                event="filters_seeded",
                sources=len(filters.active_sources or ()),
                tags=len(filters.active_tags or ()),
            )
        return seeded

    async def _degrade(self, request: Awaitable[dict[str, int]], name: str) -> dict[str, int]:
        try:
            return await request
        except TransportError as exc:
            log_event(
                self._logger,
                "Stats unavailable",
                level=logging.WARNING,
                event="stats_failed",
                projection=name,
                status_code=exc.status_code,
                error=str(exc),
            )
            return {}
