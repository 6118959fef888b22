"""
Recurring calendar event expansion.

Turns an RRULE-style recurrence (``FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,WE``)
into concrete busy intervals inside a query range. Occurrences keep the base
event's wall-clock start time in the business timezone, so a 09:00 standup
stays at 09:00 every day regardless of how the provider serialised it.

Rule parsing and iteration are done by ``dateutil.rrule``. Everything here is
pure: no provider calls and no clock reads.
"""

import re
from datetime import datetime, timedelta

from dateutil import parser, tz
from dateutil.relativedelta import relativedelta
from dateutil.rrule import rrule, rrulestr

from onboarding_scheduler.schemas.resource_schema import BusyInterval, RawCalendarEvent
from onboarding_scheduler.utils import SGT, to_sgt

SUPPORTED_FREQUENCIES = ("DAILY", "WEEKLY", "MONTHLY", "YEARLY")

_FREQ_RE = re.compile(r"(?:^|[;:])FREQ=([A-Z]*)")
_COUNTER_RE = re.compile(r"(?:^|[;:])(INTERVAL|COUNT)=([^;]*)")
_UNTIL_RE = re.compile(r"UNTIL=([^;]*)")


def _until_in_utc(match: re.Match) -> str:
    """Rewrite a floating UNTIL (a date, or a local date-time) in UTC.

    dateutil only accepts a UTC UNTIL next to a timezone-aware start. A
    date-only UNTIL covers that whole day in SGT.
    """
    raw = match.group(1).strip()
    if raw.endswith("Z"):
        return match.group(0)
    until = parser.isoparse(raw)
    if "T" not in raw:
        until += relativedelta(days=1, seconds=-1)
    until = until.replace(tzinfo=SGT).astimezone(tz.UTC)
    return f"UNTIL={until:%Y%m%dT%H%M%SZ}"


def parse_rrule(rule: str, dtstart: datetime) -> rrule:
    """Build a dateutil rule for ``rule`` anchored at ``dtstart``.

    Raises ValueError for malformed rules, unsupported frequencies and
    non-positive INTERVAL or COUNT values.

    Examples:
        >>> start = datetime(2025, 12, 1, 9, 0, tzinfo=SGT)
        >>> [d.day for d in parse_rrule("FREQ=DAILY;COUNT=3", start)]
        [1, 2, 3]
    """
    text = rule.strip().upper()
    freq = _FREQ_RE.search(text)
    if freq is None or freq.group(1) not in SUPPORTED_FREQUENCIES:
        raise ValueError(f"Unsupported recurrence rule: {rule!r}")
    for name, raw in _COUNTER_RE.findall(text):
        if not raw.isdigit() or int(raw) < 1:
            raise ValueError(f"{name} must be a positive integer, got {raw!r}")

    text = _UNTIL_RE.sub(_until_in_utc, text)
    try:
        return rrulestr(text, dtstart=dtstart)
    except (KeyError, TypeError) as e:
        # Unknown weekday codes surface as KeyError from dateutil
        raise ValueError(f"Invalid recurrence rule {rule!r}: {e}") from None


def expand_recurrence(
    event: RawCalendarEvent,
    range_start: datetime,
    range_end: datetime,
    resource_id: str = "",
) -> list[BusyInterval]:
    """Expand a (possibly recurring) event into busy intervals within the range.

    Intervals are clipped to ``[range_start, range_end)``. ``COUNT`` is counted
    from the first occurrence of the series, not from the range start.
    Raises ValueError when the recurrence rule cannot be parsed.
    """
    base_start = to_sgt(event.start)
    duration = to_sgt(event.end) - base_start
    if duration <= timedelta(0):
        return []
    if not event.is_recurring:
        return _clip(resource_id, base_start, base_start + duration, range_start, range_end)

    rule = parse_rrule(event.recurrence, base_start)
    intervals: list[BusyInterval] = []
    for start in rule.between(range_start - duration, range_end):
        intervals.extend(_clip(resource_id, start, start + duration, range_start, range_end))
    return intervals


def _clip(
    resource_id: str,
    start: datetime,
    end: datetime,
    range_start: datetime,
    range_end: datetime,
) -> list[BusyInterval]:
    lo = max(start, range_start)
    hi = min(end, range_end)
    if lo >= hi:
        return []
    return [BusyInterval(resource_id=resource_id, start=lo, end=hi)]
