"""
Observable session state shared by the engine components.

The session is the single owned struct that the presentation layer reads.
Every mutation goes through `update()`, which notifies subscribers with
the names of the fields that actually changed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
import logging
from typing import Any, Callable

from .filters import FilterState
from .types import Item, StatsSnapshot, SyncState

Listener = Callable[[set[str]], None]

logger = logging.getLogger("feed_sync.session")


@dataclass
class FeedSession:
    """Everything needed to answer "what should currently be displayed".

    Attributes:
        items: Displayed list, never containing duplicate identifiers
        loading: True while the current primary request is in flight
        error: User-visible error from the last primary fetch, if any
        notice: Non-global user message (item not found, unavailable action)
        exhausted: Mirrors the pagination cursor for the presentation layer
        filters: Current filter selectors
        bookmark_mode: True when the bookmark set is the data source
        bookmarked_ids: Identifiers currently bookmarked
        state: Current SyncController state
        scoped_sources: Source counts scoped to the current query and tags,
            None until the first scoped request settles
        unscoped: Catalog-wide source and tag counts
    """

    items: list[Item] = field(default_factory=list)
    loading: bool = False
    error: str | None = None
    notice: str | None = None
    exhausted: bool = False
    filters: FilterState = field(default_factory=FilterState)
    bookmark_mode: bool = False
    bookmarked_ids: set[int] = field(default_factory=set)
    state: SyncState = SyncState.BOOTSTRAPPING
    scoped_sources: dict[str, int] | None = None
    unscoped: StatsSnapshot = field(default_factory=StatsSnapshot)
    _listeners: list[Listener] = field(default_factory=list, repr=False, compare=False)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, **changes: Any) -> set[str]:
        known = {f.name for f in fields(self) if not f.name.startswith("_")}
        changed: set[str] = set()
        for name, value in changes.items():
            if name not in known:
                raise AttributeError(f"FeedSession has no field {name!r}")
            if getattr(self, name) == value:
                continue
            setattr(self, name, value)
            changed.add(name)
        if changed:
            self.notify(changed)
        return changed

    def notify(self, changed: set[str]) -> None:
        """Tell subscribers about in-place changes (e.g. filters mutated)."""
        for listener in list(self._listeners):
            try:
                listener(set(changed))
            except Exception:  # noqa: BLE001
                logger.exception("Session listener failed", extra={"event": "listener_error"})

    def item_ids(self) -> set[int]:
        return {item.id for item in self.items}

    def find_item(self, item_id: int) -> Item | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
