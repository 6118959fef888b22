"""Shared date and time helpers used across the scheduler.

All calendar-day arithmetic happens in a single fixed business timezone
(Singapore, UTC+8). Instants coming back from the calendar provider are
converted into it before they are compared with slot boundaries.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator

SGT = timezone(timedelta(hours=8), name="SGT")


def now_sgt() -> datetime:
    return datetime.now(SGT)


def sgt_today() -> date:
    """Today's calendar date in the business timezone."""
    return now_sgt().date()


def at_sgt(day: date, at: time) -> datetime:
    """Combine a calendar date and a wall-clock time into an aware SGT instant."""
    return datetime.combine(day, at, tzinfo=SGT)


def to_sgt(value: datetime) -> datetime:
    """Convert an aware datetime into SGT.

    Naive datetimes are rejected: an instant without an offset is ambiguous
    once it crosses the provider boundary.
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"Naive datetime is not allowed here: {value.isoformat()}")
    return value.astimezone(SGT)


def is_weekday(day: date) -> bool:
    return day.weekday() < 5


def next_business_day(day: date) -> date:
    """First Monday-to-Friday date strictly after ``day``."""
    candidate = day + timedelta(days=1)
    while not is_weekday(candidate):
        candidate += timedelta(days=1)
    return candidate


def add_business_days(day: date, count: int) -> date:
    """Move ``count`` business days forward from ``day``.

    Examples:
        >>> add_business_days(date(2025, 11, 14), 1)  # Friday
        datetime.date(2025, 11, 17)
    """
    result = day
    for _ in range(count):
        result = next_business_day(result)
    return result


def business_days_between(start: date, end: date) -> int:
    """Count business days strictly between ``start`` and ``end``.

    Neither endpoint is counted. Returns 0 when ``end`` is not after
    ``start``.
    """
    count = 0
    current = start + timedelta(days=1)
    while current < end:
        if is_weekday(current):
            count += 1
        current += timedelta(days=1)
    return count


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield each calendar date from ``start`` to ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
