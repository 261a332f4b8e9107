"""Tests for StatsCatalog seeding and degradation."""

from __future__ import annotations

import asyncio

from feed_sync.errors import TransportError
from feed_sync.filters import FilterState
from feed_sync.session import FeedSession
from feed_sync.stats import StatsCatalog

from fakes import FakeContentApi, make_item


def test_unscoped_seeds_all_sources_and_tags_once():
    api = FakeContentApi([make_item(1, source="blog", tags=["ai"]), make_item(2, source="paper", tags=["ml"])])
    session = FeedSession()
    catalog = StatsCatalog(api, session)

    async def scenario():
        first = await catalog.fetch_unscoped()
        session.filters.active_sources = {"blog"}
        api.items.append(make_item(3, source="forum", tags=["cot"]))
        second = await catalog.fetch_unscoped()
        return first, second

    first, second = asyncio.run(scenario())

    assert first.sources == {"blog": 1, "paper": 1}
    assert first.tags == {"ai": 1, "ml": 1}
    assert catalog.seeded is True
    assert session.filters.active_sources == {"blog"}
    assert session.filters.active_tags == {"ai", "ml"}
    assert second.sources == {"blog": 1, "paper": 1, "forum": 1}
    assert session.unscoped.total == 3


def test_empty_catalog_does_not_seed():
    api = FakeContentApi([])
    session = FeedSession()
    catalog = StatsCatalog(api, session)

    asyncio.run(catalog.fetch_unscoped())

    assert catalog.seeded is False
    assert session.filters.active_sources is None
    assert session.filters.active_tags is None


def test_seeding_happens_after_an_initial_failure():
    api = FakeContentApi([make_item(1, source="blog", tags=["ai"])])
    api.stats_error = TransportError("HTTP error! Status: 500", status_code=500)
    session = FeedSession()
    catalog = StatsCatalog(api, session)

    async def scenario():
        degraded = await catalog.fetch_unscoped()
        api.stats_error = None
        await catalog.fetch_unscoped()
        return degraded

    degraded = asyncio.run(scenario())

    assert degraded.sources == {}
    assert degraded.tags == {}
    assert session.filters.active_sources == {"blog"}
    assert session.filters.active_tags == {"ai"}


def test_scoped_counts_follow_query_and_tags():
    api = FakeContentApi([
        make_item(1, title="AI policy", source="blog", tags=["governance"]),
        make_item(2, title="AI evals", source="paper", tags=["evals"]),
        make_item(3, title="Robotics", source="paper", tags=["evals"]),
    ])
    session = FeedSession()
    catalog = StatsCatalog(api, session)
    filters = FilterState(query="ai", active_tags={"evals"})

    counts = asyncio.run(catalog.fetch_scoped(filters))

    assert counts == {"paper": 1}
    assert session.scoped_sources == {"paper": 1}
    assert api.calls_to("source_stats") == [{"search": "ai", "tags": "evals"}]


def test_scoped_counts_unfiltered_in_bookmark_mode():
    api = FakeContentApi([make_item(1, title="AI"), make_item(2, title="Other")])
    catalog = StatsCatalog(api, FeedSession())

    counts = asyncio.run(catalog.fetch_scoped(FilterState(query="ai"), apply_filters=False))

    assert counts == {"blog": 2}
    assert api.calls_to("source_stats") == [{"search": None, "tags": None}]


def test_scoped_failure_degrades_to_empty():
    api = FakeContentApi([make_item(1)])
    api.stats_error = TransportError("ConnectError: refused")
    session = FeedSession(scoped_sources={"blog": 4})
    catalog = StatsCatalog(api, session)

    counts = asyncio.run(catalog.fetch_scoped(FilterState()))

    assert counts == {}
    assert session.scoped_sources == {}
