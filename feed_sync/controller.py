"""
Orchestration of the feed session.

SyncController receives discrete events (filter setters, mode toggles,
paging requests) and decides which data source populates the displayed
list:

    BOOTSTRAPPING --first fetch--> FETCHING_NORMAL / FETCHING_BOOKMARKS
    FETCHING_*    --success------> IDLE
    FETCHING_*    --failure------> ERROR_STALLED
    IDLE / ERROR_STALLED --filter or mode change--> FETCHING_*
    IDLE          --load_more----> FETCHING_NORMAL

Filter and ordering events raised while bootstrapping (including default
seeding) are recorded in FilterState but never trigger a fetch of their
own. Facet counts load in background tasks so a slow stats endpoint never
holds the state machine in FETCHING_*; `drain()` waits for them.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Iterable

import httpx

from .bookmarks import BookmarkStore, JsonFileStorage
from .client import ContentApiClient
from .config import AppConfig, FeedConfig
from .errors import NotFoundError, TransportError
from .fetcher import FeedFetcher, FetchOutcome
from .filters import FilterState
from .logging_utils import get_logger, log_event
from .pagination import PaginationTracker
from .session import FeedSession
from .stats import StatsCatalog
from .types import FetchMode, Item, SortOrder, SyncState, sort_by_published_desc


BOOKMARK_MODE_RANDOM_NOTICE = "Random order is not available in bookmark mode."
FACET_UNAVAILABLE_NOTICE = "Could not load the {facet} list. Please try again later."


class SyncController:
    """Owns the feed session and drives every fetch.

    Attributes:
        session: Observable state read by the presentation layer
        fetcher: Primary-source fetcher (feed pages and bookmark set)
        stats: Facet count catalog
        bookmarks: Durable bookmark set
    """

    def __init__(
        self,
        api: Any,
        bookmarks: BookmarkStore,
        feed_cfg: FeedConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        feed_cfg = feed_cfg or FeedConfig()
        self.api = api
        self.bookmarks = bookmarks
        self._logger = logger or get_logger("controller")
        filters = FilterState(
            sort_order=SortOrder(feed_cfg.default_sort),
            novelty_buckets=tuple(feed_cfg.novelty_buckets),
        )
        self.session = FeedSession(filters=filters)
        self.tracker = PaginationTracker(feed_cfg.page_size)
        self.fetcher = FeedFetcher(api, self.session, self.tracker)
        self.stats = StatsCatalog(api, self.session)
        self._background: set[asyncio.Task[Any]] = set()

    @classmethod
    def from_config(
        cls,
        cfg: AppConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> SyncController:
        """Build a controller wired to the real API client and file storage."""
        api = ContentApiClient(cfg.api, transport=transport)
        storage = JsonFileStorage(Path(cfg.bookmarks.storage_dir))
        return cls(api, BookmarkStore(storage, key=cfg.bookmarks.key), feed_cfg=cfg.feed)

    @property
    def state(self) -> SyncState:
        return self.session.state

    @property
    def filters(self) -> FilterState:
        return self.session.filters

    @property
    def items(self) -> list[Item]:
        return self.session.items

    async def bootstrap(self) -> FetchOutcome:
        """Load bookmarks and catalogs, seed defaults, then issue the first fetch."""
        self._set_state(SyncState.BOOTSTRAPPING)
        self.session.update(bookmarked_ids=self.bookmarks.load())
        await self.stats.fetch_unscoped()
        log_event(
            self._logger,
            "Bootstrap complete",
            event="bootstrap_complete",
            bookmarks=len(self.bookmarks),
            sources=len(self.session.unscoped.sources),
            tags=len(self.session.unscoped.tags),
        )
        return await self._refresh()

    # Filter events

    async def set_query(self, query: str) -> FetchOutcome | None:
        if query == self.filters.query:
            return None
        self.filters.query = query
        return await self._filters_changed()

    async def set_sources(self, sources: Iterable[str]) -> FetchOutcome | None:
        selected = set(sources)
        if selected == self.filters.active_sources:
            return None
        self.filters.active_sources = selected
        return await self._filters_changed()

    async def toggle_source(self, source: str) -> FetchOutcome | None:
        selected = await self._toggle_base("sources")
        if selected is None:
            return None
        selected.symmetric_difference_update({source})
        return await self.set_sources(selected)

    async def set_tags(self, tags: Iterable[str]) -> FetchOutcome | None:
        selected = set(tags)
        if selected == self.filters.active_tags:
            return None
        self.filters.active_tags = selected
        return await self._filters_changed()

    async def toggle_tag(self, tag: str) -> FetchOutcome | None:
        selected = await self._toggle_base("tags")
        if selected is None:
            return None
        selected.symmetric_difference_update({tag})
        return await self.set_tags(selected)

    async def set_min_novelty(self, bucket: int | None) -> FetchOutcome | None:
        self.filters.validate_novelty(bucket)
        if bucket == self.filters.min_novelty:
            return None
        self.filters.min_novelty = bucket
        return await self._filters_changed()

    # Mode and ordering

    async def set_bookmark_mode(self, enabled: bool) -> FetchOutcome | None:
        """Switch the data source between the paginated feed and the bookmark set."""
        if enabled == self.session.bookmark_mode:
            return None
        self.session.update(bookmark_mode=enabled, notice=None)
        log_event(self._logger, "Bookmark mode changed", event="bookmark_mode", enabled=enabled)
        if self.state is SyncState.BOOTSTRAPPING:
            return None

        self._spawn(self._reload_catalog(), "catalog_reload")
        return await self._refresh()

    async def toggle_bookmark_mode(self) -> FetchOutcome | None:
        return await self.set_bookmark_mode(not self.session.bookmark_mode)

    async def set_random_order(self) -> bool:
        """Re-fetch the feed in random order, keeping every other filter."""
        return await self._set_sort_order(SortOrder.RANDOM)

    async def set_date_order(self) -> bool:
        return await self._set_sort_order(SortOrder.BY_DATE)

    async def _set_sort_order(self, order: SortOrder) -> bool:
        if self.session.bookmark_mode:
            self.session.update(notice=BOOKMARK_MODE_RANDOM_NOTICE if order is SortOrder.RANDOM else None)
            log_event(self._logger, "Sort change ignored in bookmark mode", event="sort_ignored", order=order.value)
            return False
        self.filters.sort_order = order
        self.session.notify({"filters"})
        if self.state is SyncState.BOOTSTRAPPING:
            return False
        self._set_state(SyncState.FETCHING_NORMAL)
        try:
            await self.fetcher.fetch(self.filters.copy(), FetchMode.REPLACE)
        finally:
            self._settle()
        return True

    # Paging

    async def load_more(self) -> bool:
        """Append the next page. Returns True if a page was appended."""
        if self.session.bookmark_mode:
            return False
        if self.state is not SyncState.IDLE or self.tracker.exhausted:
            return False
        self._set_state(SyncState.FETCHING_NORMAL)
        try:
            outcome = await self.fetcher.fetch(self.filters.copy(), FetchMode.APPEND)
        finally:
            self._settle()
        return outcome is FetchOutcome.COMPLETED

    async def load_all_pages(self, max_pages: int | None = None, until_item: int | None = None) -> int:
        """Keep appending pages until exhausted, failed, or `until_item` is displayed.

        Termination is re-checked before every page. Returns the number of
        pages appended.
        """
        pages = 0
        while max_pages is None or pages < max_pages:
            if until_item is not None and self.session.find_item(until_item) is not None:
                break
            if not await self.load_more():
                break
            pages += 1
        return pages

    # Bookmarks and deep links

    async def toggle_bookmark(self, item_id: int) -> bool:
        """Flip a bookmark; in bookmark mode the displayed list follows the change."""
        bookmarked = self.bookmarks.toggle(item_id)
        self.session.update(bookmarked_ids=self.bookmarks.all())
        if not self.session.bookmark_mode or self.state is SyncState.BOOTSTRAPPING:
            return bookmarked

        if not bookmarked and self.fetcher.live_epoch is None:
            remaining = [item for item in self.session.items if item.id != item_id]
            self.session.update(items=remaining)
        else:
            await self._refresh()
        return bookmarked

    def is_bookmarked(self, item_id: int) -> bool:
        return self.bookmarks.is_bookmarked(item_id)

    async def ensure_item_loaded(self, item_id: int) -> Item | None:
        """Make sure `item_id` is in the displayed list, fetching it if needed.

        The list is re-sorted newest first after insertion. A missing item
        sets a notice rather than the global error.
        """
        existing = self.session.find_item(item_id)
        if existing is not None:
            return existing

        try:
            item = await self.api.get_item(item_id)
        except NotFoundError as exc:
            self.session.update(notice=str(exc))
            log_event(self._logger, "Item not found", level=logging.WARNING, event="item_not_found", item_id=item_id)
            return None
        except TransportError as exc:
            self.session.update(notice=f"Could not load item {item_id}: {exc}")
            log_event(self._logger, "Item fetch failed", level=logging.WARNING, event="item_fetch_failed", item_id=item_id, error=str(exc))
            return None

        existing = self.session.find_item(item_id)
        if existing is not None:
            return existing
        self.session.update(items=sort_by_published_desc(self.session.items + [item]))
        return item

    def clear_notice(self) -> None:
        self.session.update(notice=None)

    async def drain(self) -> None:
        """Wait until background stats work (and any refresh it started) is done."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def close(self) -> None:
        self.fetcher.cancel()
        for task in list(self._background):
            task.cancel()
        self._settle()

    # Internals

    async def _filters_changed(self) -> FetchOutcome | None:
        self.session.notify({"filters"})
        if self.state is SyncState.BOOTSTRAPPING:
            log_event(self._logger, "Filter change during bootstrap", level=logging.DEBUG, event="filter_suppressed")
            return None
        return await self._refresh()

    async def _refresh(self) -> FetchOutcome:
        """Re-fetch the active data source from the start; scoped counts load in the background."""
        snapshot = self.filters.copy()
        bookmark_mode = self.session.bookmark_mode
        self._spawn(self.stats.fetch_scoped(snapshot, apply_filters=not bookmark_mode), "scoped_stats")
        try:
            if bookmark_mode:
                self._set_state(SyncState.FETCHING_BOOKMARKS)
                return await self.fetcher.fetch_by_ids(self.bookmarks.all())
            self._set_state(SyncState.FETCHING_NORMAL)
            return await self.fetcher.fetch(snapshot, FetchMode.REPLACE)
        finally:
            self._settle()

    async def _reload_catalog(self) -> None:
        before = self.stats.seeded_facets
        await self.stats.fetch_unscoped()
        if self.stats.seeded_facets != before and not self.session.bookmark_mode:
            # Defaults were seeded late; the page on screen used the old selection.
            await self._refresh()

    async def _toggle_base(self, facet: str) -> set[str] | None:
        """Current selection for a toggle, loading the catalog if never seeded."""
        attr = f"active_{facet}"
        if getattr(self.filters, attr) is None and self.state is not SyncState.BOOTSTRAPPING:
            await self.stats.fetch_unscoped()
        active = getattr(self.filters, attr)
        if active is None:
            self.session.update(notice=FACET_UNAVAILABLE_NOTICE.format(facet=facet[:-1]))
            log_event(self._logger, "Toggle refused without catalog", level=logging.WARNING, event="toggle_refused", facet=facet)
            return None
        return set(active)

    def _spawn(self, coro: Awaitable[Any], name: str) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(coro)
        task.set_name(name)
        self._background.add(task)
        task.add_done_callback(self._background_done)
        return task

    def _background_done(self, task: asyncio.Task[Any]) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log_event(
                self._logger,
                "Background task failed",
                level=logging.ERROR,
                event="background_failed",
                job=task.get_name(),
                error=f"{type(exc).__name__}: {exc}",
            )

    def _settle(self) -> None:
        if self.fetcher.live_epoch is not None:
            return
        if self.fetcher.last_outcome is FetchOutcome.FAILED:
            self._set_state(SyncState.ERROR_STALLED)
        elif self.state is not SyncState.BOOTSTRAPPING:
            self._set_state(SyncState.IDLE)

    def _set_state(self, state: SyncState) -> None:
        previous = self.session.state
        if self.session.update(state=state):
            log_event(
                self._logger,
                "State transition",
                level=logging.DEBUG,
                event="state_transition",
                previous=previous.value,
                state=state.value,
            )
