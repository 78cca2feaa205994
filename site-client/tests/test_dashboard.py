"""Tests for console views."""

from datetime import UTC, datetime, timedelta

from folio_shared import Analytics, ContactMessage, Feedback, HireRequest
from folio_site.dashboard import (
    approved_feedback,
    completed_count,
    format_relative_time,
    inbox,
    recent_visits,
    visitor_stats,
)

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _iso(delta: timedelta) -> str:
    return (NOW - delta).isoformat().replace("+00:00", "Z")


def _visit(delta: timedelta, page: str = "/") -> Analytics:
    return Analytics(ip="203.0.113.1", page=page, timestamp=_iso(delta))


def test_approved_feedback_filters_hidden() -> None:
    items = [
        Feedback(id="a", name="A", is_visible=True),
        Feedback(id="b", name="B", is_visible=False),
    ]
    assert [f.id for f in approved_feedback(items)] == ["a"]


def test_inbox_newest_first() -> None:
    hire = HireRequest(id="h", service_id="s", service_title="T", name="A", email="a@x", date=_iso(timedelta(hours=2)))
    old_contact = ContactMessage(id="c1", name="B", email="b@x", date=_iso(timedelta(days=3)))
    new_contact = ContactMessage(id="c2", name="C", email="c@x", date=_iso(timedelta(minutes=1)), is_completed=True)
    undated = ContactMessage(id="c3", name="D", email="d@x")

    items = inbox([hire], [old_contact, new_contact, undated])

    assert [i.id for i in items] == ["c2", "h", "c1", "c3"]
    assert completed_count(items) == 1


class TestVisitorStats:
    def test_windows(self) -> None:
        analytics = [
            _visit(timedelta(minutes=1)),
            _visit(timedelta(hours=3)),
            _visit(timedelta(days=10)),
            _visit(timedelta(days=45)),
        ]
        stats = visitor_stats(analytics, now=NOW)

        assert stats.active_now == 1
        assert stats.last_24_hours == 2
        assert stats.last_30_days == 3
        assert stats.total == 4

    def test_bad_timestamps_only_count_in_total(self) -> None:
        analytics = [Analytics(ip="x", timestamp="garbage"), _visit(timedelta(minutes=2))]
        stats = visitor_stats(analytics, now=NOW)

        assert stats.active_now == 1
        assert stats.total == 2

    def test_empty(self) -> None:
        stats = visitor_stats([], now=NOW)
        assert (stats.active_now, stats.last_24_hours, stats.last_30_days, stats.total) == (0, 0, 0, 0)


def test_recent_visits_newest_first_and_limited() -> None:
    analytics = [_visit(timedelta(minutes=n), page=f"/p{n}") for n in range(60, 0, -1)]
    recent = recent_visits(analytics, limit=3)
    assert [r.page for r in recent] == ["/p1", "/p2", "/p3"]


class TestFormatRelativeTime:
    def test_minutes_hours_days(self) -> None:
        assert format_relative_time(_iso(timedelta(seconds=20)), now=NOW) == "just now"
        assert format_relative_time(_iso(timedelta(minutes=5)), now=NOW) == "5m ago"
        assert format_relative_time(_iso(timedelta(hours=3, minutes=10)), now=NOW) == "3h ago"
        assert format_relative_time(_iso(timedelta(days=2, hours=1)), now=NOW) == "2d ago"

    def test_unreadable(self) -> None:
        assert format_relative_time("", now=NOW) == "just now"
