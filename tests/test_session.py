"""Tests for FeedSession change notification."""

from __future__ import annotations

import pytest

from feed_sync.session import FeedSession

from fakes import make_item


def test_update_reports_only_changed_fields():
    session = FeedSession()
    seen: list[set[str]] = []
    session.subscribe(seen.append)

    changed = session.update(loading=True, error=None)

    assert changed == {"loading"}
    assert seen == [{"loading"}]


def test_unsubscribe_stops_notifications():
    session = FeedSession()
    seen: list[set[str]] = []
    unsubscribe = session.subscribe(seen.append)
    unsubscribe()

    session.update(loading=True)

    assert seen == []


def test_failing_listener_does_not_break_updates():
    session = FeedSession()
    seen: list[set[str]] = []

    def broken(changed):
        raise RuntimeError("boom")

    session.subscribe(broken)
    session.subscribe(seen.append)
    session.update(items=[make_item(1)])

    assert seen == [{"items"}]
    assert session.item_ids() == {1}
    assert session.find_item(1).id == 1
    assert session.find_item(2) is None


def test_unknown_field_is_rejected():
    with pytest.raises(AttributeError):
        FeedSession().update(bogus=1)
