"""
Primary-source fetching with "latest request wins" semantics.

Every primary request (paginated feed page or the bookmark set) runs under
a FetchEpoch. Starting a request invalidates the previous epoch and cancels
its asyncio task, which aborts the underlying HTTP call. After every
suspension point the fetcher checks that its epoch is still live before
touching the session, so a slow superseded response can never overwrite a
newer one, and never flips the loading flag back off.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Awaitable, Iterable, TypeVar

from .errors import TransportError
from .filters import FilterState
from .logging_utils import get_logger, log_event
from .pagination import PaginationTracker
from .session import FeedSession
from .types import FetchMode, Item, sort_by_published_desc

T = TypeVar("T")


@dataclass(frozen=True)
class FetchEpoch:
    """Opaque token identifying one primary fetch attempt."""

    number: int


class FetchOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


def error_message(exc: Exception) -> str:
    return f"Failed to load articles: {exc}. Please try again later."


class FeedFetcher:
    """Issues primary requests and merges their results into the session.

    Owns the pagination cursor and the live FetchEpoch. At most one epoch
    is live at a time.
    """

    def __init__(
        self,
        api: Any,
        session: FeedSession,
        tracker: PaginationTracker,
        logger: logging.Logger | None = None,
    ):
        self.api = api
        self.session = session
        self.tracker = tracker
        self._logger = logger or get_logger("fetcher")
        self._counter = 0
        self._live: FetchEpoch | None = None
        self._inflight: asyncio.Future[Any] | None = None
        self.last_outcome: FetchOutcome | None = None

    @property
    def live_epoch(self) -> FetchEpoch | None:
        return self._live

    def is_current(self, epoch: FetchEpoch) -> bool:
        return self._live == epoch

    def cancel(self) -> None:
        """Invalidate the live epoch without starting a new request."""
        if self._live is None:
            return
        log_event(self._logger, "Fetch cancelled", level=logging.DEBUG, event="fetch_cancel", epoch=self._live.number)
        self._live = None
        self._abort_inflight()
        self.session.update(loading=False)

    async def fetch(self, filters: FilterState, mode: FetchMode) -> FetchOutcome:
        """Fetch one page of the normal-mode feed.

        REPLACE starts from offset 0 and swaps the displayed list; APPEND
        continues at the cursor and adds only unseen identifiers, keeping
        server order.
        """
        if mode is FetchMode.REPLACE:
            self.tracker.reset()
            self.session.update(exhausted=False)

        epoch = self._begin()
        params = filters.to_params(limit=self.tracker.page_size, offset=self.tracker.offset)
        log_event(
            self._logger,
            "Fetch start",
            level=logging.DEBUG,
            event="fetch_start",
            epoch=epoch.number,
            mode=mode.value,
            params=params,
        )

        try:
            items = await self._await_live(epoch, self.api.list_content(params))
        except asyncio.CancelledError:
            if self.is_current(epoch):
                self._release(epoch)
                raise
            self._log_superseded(epoch)
            return FetchOutcome.CANCELLED
        except TransportError as exc:
            if not self.is_current(epoch):
                self._log_superseded(epoch)
                return FetchOutcome.CANCELLED
            self._fail(epoch, exc, mode)
            return FetchOutcome.FAILED
        except Exception as exc:
            if self.is_current(epoch):
                self._fail(epoch, exc, mode)
            raise

        if not self.is_current(epoch):
            self._log_superseded(epoch)
            return FetchOutcome.CANCELLED

        if mode is FetchMode.REPLACE:
            merged = _unique(items)
        else:
            seen = self.session.item_ids()
            merged = list(self.session.items) + _unique(i for i in items if i.id not in seen)
        self.tracker.advance(len(items))

        self.last_outcome = FetchOutcome.COMPLETED
        self._live = None
        self._inflight = None
        self.session.update(items=merged, exhausted=self.tracker.exhausted, loading=False)
        log_event(
            self._logger,
            "Fetch complete",
            event="fetch_complete",
            epoch=epoch.number,
            mode=mode.value,
            returned=len(items),
            displayed=len(merged),
            exhausted=self.tracker.exhausted,
        )
        return FetchOutcome.COMPLETED

    async def fetch_by_ids(self, ids: Iterable[int]) -> FetchOutcome:
        """Replace the displayed list with the given identifier set.

        Used for bookmark mode: not paginated, so the cursor is exhausted
        as soon as the request settles.
        """
        id_set = set(ids)
        self.tracker.reset()
        epoch = self._begin()

        if not id_set:
            self.last_outcome = FetchOutcome.COMPLETED
            self._live = None
            self.tracker.mark_exhausted()
            self.session.update(items=[], exhausted=True, loading=False)
            return FetchOutcome.COMPLETED

        try:
            items = await self._await_live(epoch, self.api.get_items_by_ids(id_set))
        except asyncio.CancelledError:
            if self.is_current(epoch):
                self._release(epoch)
                raise
            self._log_superseded(epoch)
            return FetchOutcome.CANCELLED
        except TransportError as exc:
            if not self.is_current(epoch):
                self._log_superseded(epoch)
                return FetchOutcome.CANCELLED
            self._fail(epoch, exc, FetchMode.REPLACE)
            return FetchOutcome.FAILED
        except Exception as exc:
            if self.is_current(epoch):
                self._fail(epoch, exc, FetchMode.REPLACE)
            raise

        if not self.is_current(epoch):
            self._log_superseded(epoch)
            return FetchOutcome.CANCELLED

        merged = sort_by_published_desc(_unique(items))
        self.tracker.advance(len(merged))
        self.tracker.mark_exhausted()
        self.last_outcome = FetchOutcome.COMPLETED
        self._live = None
        self._inflight = None
        self.session.update(items=merged, exhausted=True, loading=False)
        log_event(self._logger, "Bookmarks loaded", event="bookmarks_fetched", epoch=epoch.number, count=len(merged))
        return FetchOutcome.COMPLETED

    def _begin(self) -> FetchEpoch:
        self._counter += 1
        epoch = FetchEpoch(self._counter)
        if self._live is not None:
            log_event(
                self._logger,
                "Superseding in-flight fetch",
                level=logging.DEBUG,
                event="fetch_supersede",
                previous=self._live.number,
                epoch=epoch.number,
            )
        self._live = epoch
        self._abort_inflight()
        self.session.update(loading=True, error=None)
        return epoch

    async def _await_live(self, epoch: FetchEpoch, request: Awaitable[T]) -> T:
        task = asyncio.ensure_future(request)
        if self.is_current(epoch):
            self._inflight = task
        return await task

    def _abort_inflight(self) -> None:
        task = self._inflight
        self._inflight = None
        if task is not None and not task.done():
            task.cancel()

    def _release(self, epoch: FetchEpoch) -> None:
        if not self.is_current(epoch):
            return
        self._live = None
        self._abort_inflight()
        self.session.update(loading=False)

    def _fail(self, epoch: FetchEpoch, exc: Exception, mode: FetchMode) -> None:
        self.last_outcome = FetchOutcome.FAILED
        self._live = None
        self._inflight = None
        self.tracker.mark_exhausted()
        changes: dict[str, Any] = {"error": error_message(exc), "exhausted": True, "loading": False}
        if mode is FetchMode.REPLACE:
            changes["items"] = []
        self.session.update(**changes)
        log_event(
            self._logger,
            "Fetch failed",
            level=logging.ERROR,
            event="fetch_failed",
            epoch=epoch.number,
            mode=mode.value,
            status_code=getattr(exc, "status_code", None),
            error=str(exc),
            error_type=type(exc).__name__,
        )

    def _log_superseded(self, epoch: FetchEpoch) -> None:
        log_event(self._logger, "Ignoring superseded fetch", level=logging.DEBUG, event="fetch_superseded", epoch=epoch.number)


def _unique(items: Iterable[Item]) -> list[Item]:
    seen: set[int] = set()
    kept: list[Item] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        kept.append(item)
    return kept
