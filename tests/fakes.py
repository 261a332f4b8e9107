"""In-memory content API with controllable timing, shared by the engine tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from feed_sync.errors import NotFoundError
from feed_sync.types import Item


BASE_TIME = datetime(2025, 3, 1, tzinfo=timezone.utc)


def make_item(item_id: int, title: str | None = None, source: str = "blog", tags: list[str] | None = None,
              hours_ago: int | None = None, novelty: float = 50.0) -> Item:
    """Item whose publish time decreases with its id unless `hours_ago` is given."""
    age = hours_ago if hours_ago is not None else item_id
    return Item(
        id=item_id,
        source_type=source,
        tags=tags if tags is not None else ["alignment"],
        novelty_score=novelty,
        published_at=BASE_TIME - timedelta(hours=age),
        payload={"title": title or f"Item {item_id}", "url": f"https://example.com/{item_id}"},
    )


class FakeContentApi:
    """Duck-typed stand-in for ContentApiClient.

    Results are computed when a request is issued, so a held-back request
    returns data for the parameters it was issued with. With `hold=True`
    each list/by-ids request waits on its own gate until released;
    `hold_stats` does the same for the count endpoints.
    """

    def __init__(self, items: list[Item] | None = None):
        self.items = list(items or [])
        self.tag_counts: dict[str, int] | None = None
        self.calls: list[tuple[str, dict]] = []
        self.hold = False
        self.ignore_cancel = False
        self.gates: list[asyncio.Event] = []
        self.cancelled = 0
        self.content_errors: list[Exception] = []
        self.stats_error: Exception | None = None
        self.hold_stats = False
        self.stats_gates: list[asyncio.Event] = []
        self.canned_pages: list[list[Item]] = []

    def calls_to(self, name: str) -> list[dict]:
        return [params for called, params in self.calls if called == name]

    def release(self, index: int = -1) -> None:
        self.gates[index].set()

    def release_stats(self) -> None:
        self.hold_stats = False
        for gate in self.stats_gates:
            gate.set()

    async def list_content(self, params: dict) -> list[Item]:
        self.calls.append(("list_content", dict(params)))
        if self.canned_pages:
            result = self.canned_pages.pop(0)
        else:
            matching = [i for i in self.items if self._matches(i, params)]
            offset = params.get("offset", 0)
            result = matching[offset:offset + params.get("limit", 50)]
        await self._maybe_hold()
        if self.content_errors:
            raise self.content_errors.pop(0)
        return result

    async def get_items_by_ids(self, ids) -> list[Item]:
        id_set = set(ids)
        self.calls.append(("by_ids", {"ids": sorted(id_set)}))
        result = [i for i in self.items if i.id in id_set]
        await self._maybe_hold()
        if self.content_errors:
            raise self.content_errors.pop(0)
        return result

    async def get_item(self, item_id: int) -> Item:
        self.calls.append(("get_item", {"id": item_id}))
        for item in self.items:
            if item.id == item_id:
                return item
        raise NotFoundError(item_id)

    async def source_stats(self, search=None, tags=None) -> dict[str, int]:
        self.calls.append(("source_stats", {"search": search, "tags": tags}))
        await self._maybe_hold_stats()
        if self.stats_error:
            raise self.stats_error
        params = {"search": search, "tags": tags}
        counts: dict[str, int] = {}
        for item in self.items:
            if self._matches(item, params):
                counts[item.source_type] = counts.get(item.source_type, 0) + 1
        return counts

    async def tag_catalog(self) -> dict[str, int]:
        self.calls.append(("tag_catalog", {}))
        await self._maybe_hold_stats()
        if self.stats_error:
            raise self.stats_error
        if self.tag_counts is not None:
            return dict(self.tag_counts)
        counts: dict[str, int] = {}
        for item in self.items:
            for tag in item.tags:
                counts[tag] = counts.get(tag, 0) + 1
        return counts

    async def _maybe_hold(self) -> None:
        if not self.hold:
            return
        gate = asyncio.Event()
        self.gates.append(gate)
        try:
            await gate.wait()
        except asyncio.CancelledError:
            self.cancelled += 1
            if not self.ignore_cancel:
                raise
            await gate.wait()

    async def _maybe_hold_stats(self) -> None:
        if not self.hold_stats:
            return
        gate = asyncio.Event()
        self.stats_gates.append(gate)
        await gate.wait()

    @staticmethod
    def _matches(item: Item, params: dict) -> bool:
        search = params.get("search")
        if search and search.lower() not in item.title.lower():
            return False
        sources = params.get("sources")
        if sources is not None and item.source_type not in set(filter(None, sources.split(","))):
            return False
        tags = params.get("tags")
        if tags is not None and not set(item.tags) & set(filter(None, tags.split(","))):
            return False
        novelty = params.get("novelty_bucket")
        if novelty is not None and (item.novelty_score or 0) < novelty:
            return False
        return True


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run up to their next suspension point."""
    for _ in range(rounds):
        await asyncio.sleep(0)

