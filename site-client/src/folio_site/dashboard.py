"""Views derived from synchronized state for the console and public pages."""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Iterable, Sequence

from folio_shared import Analytics, ContactMessage, Feedback, HireRequest, InboxItem
from folio_shared.store import parse_timestamp

ACTIVE_WINDOW = timedelta(minutes=5)
DAY_WINDOW = timedelta(hours=24)
MONTH_WINDOW = timedelta(days=30)


def approved_feedback(feedback: Iterable[Feedback]) -> list[Feedback]:
    """Feedback that may be shown publicly."""
    return [item for item in feedback if item.is_visible]


def _sort_key(item: InboxItem) -> datetime:
    return parse_timestamp(item.date) or datetime.min.replace(tzinfo=UTC)


def inbox(
    hire_requests: Iterable[HireRequest],
    contacts: Iterable[ContactMessage],
) -> list[InboxItem]:
    """Hire requests and contact messages together, newest first."""
    items: list[InboxItem] = [*hire_requests, *contacts]
    return sorted(items, key=_sort_key, reverse=True)


def completed_count(items: Iterable[InboxItem]) -> int:
    return sum(1 for item in items if item.is_completed)


@dataclass(frozen=True)
class VisitorStats:
    active_now: int
    last_24_hours: int
    last_30_days: int
    total: int


def visitor_stats(analytics: Sequence[Analytics], now: datetime | None = None) -> VisitorStats:
    """Count page views in the console's time windows.

    Records with unreadable timestamps only count toward the total.
    """
    now = now or datetime.now(UTC)
    ages = [
        now - ts
        for ts in (parse_timestamp(record.timestamp) for record in analytics)
        if ts is not None
    ]
    return VisitorStats(
        active_now=sum(1 for age in ages if age < ACTIVE_WINDOW),
        last_24_hours=sum(1 for age in ages if age < DAY_WINDOW),
        last_30_days=sum(1 for age in ages if age < MONTH_WINDOW),
        total=len(analytics),
    )


def recent_visits(analytics: Sequence[Analytics], limit: int = 50) -> list[Analytics]:
    """The latest records, newest first, in store order."""
    return list(reversed(analytics))[:limit]


def format_relative_time(timestamp: str, now: datetime | None = None) -> str:
    ts = parse_timestamp(timestamp)
    if ts is None:
        return "just now"
    now = now or datetime.now(UTC)
    minutes = int((now - ts).total_seconds() // 60)
    if minutes < 1:
        return "just now"
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"
