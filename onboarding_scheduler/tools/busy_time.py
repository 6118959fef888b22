"""
Busy-time aggregation across a resource pool.

For each authorised resource, ask the calendar provider for free/busy data.
If that comes back empty or fails, list the raw events and expand recurring
series locally. Fetches run concurrently and one resource failing never
sinks the batch: that resource is left out of the result and so counts as
unavailable.
"""

import asyncio
import logging
from datetime import datetime
from typing import Iterable

from onboarding_scheduler.errors import ErrorKind
from onboarding_scheduler.providers.base import CalendarProvider
from onboarding_scheduler.schemas.resource_schema import BusyInterval, RawCalendarEvent
from onboarding_scheduler.tools.calendar_ids import CalendarIdResolver
from onboarding_scheduler.tools.recurrence import expand_recurrence

logger = logging.getLogger(__name__)


def merge_intervals(intervals: Iterable[BusyInterval]) -> list[BusyInterval]:
    """Sort intervals and merge any that overlap or touch.

    Examples:
        09:00-10:00 + 09:30-11:00 -> 09:00-11:00
        09:00-10:00 + 10:00-11:00 -> 09:00-11:00
    """
    ordered = sorted(intervals, key=lambda iv: (iv.start, iv.end))
    merged: list[BusyInterval] = []
    for interval in ordered:
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = BusyInterval(resource_id=last.resource_id, start=last.start, end=interval.end)
            continue
        merged.append(interval)
    return merged


def clip_interval(
    interval: BusyInterval, resource_id: str, range_start: datetime, range_end: datetime
) -> list[BusyInterval]:
    lo = max(interval.start, range_start)
    hi = min(interval.end, range_end)
    if lo >= hi:
        return []
    return [BusyInterval(resource_id=resource_id, start=lo, end=hi)]


def flatten_events(
    resource_id: str,
    events: Iterable[RawCalendarEvent],
    range_start: datetime,
    range_end: datetime,
) -> list[BusyInterval]:
    """Turn raw provider events into concrete busy intervals within the range.

    Recurring series only block time when confirmed and marked busy. One-off
    events block time unless cancelled or marked free. A series whose rule
    cannot be parsed still blocks its base occurrence.
    """
    intervals: list[BusyInterval] = []
    for event in events:
        if event.is_recurring:
            if event.status != "confirmed" or event.free_busy_status == "free":
                logger.debug("Skipping non-blocking series %s (%s)", event.id, event.status)
                continue
            try:
                intervals.extend(expand_recurrence(event, range_start, range_end, resource_id))
            except ValueError as e:
                logger.warning(
                    "Bad recurrence on event %s for %s (%s); using base occurrence only",
                    event.id, resource_id, e,
                )
                base = event.model_copy(update={"recurrence": None})
                intervals.extend(expand_recurrence(base, range_start, range_end, resource_id))
        elif event.blocks_time:
            intervals.extend(expand_recurrence(event, range_start, range_end, resource_id))
    return intervals


class BusyTimeAggregator:
    """Collects busy intervals for many resources from the calendar provider."""

    def __init__(self, provider: CalendarProvider, calendar_ids: CalendarIdResolver):
        self._provider = provider
        self._calendar_ids = calendar_ids

    async def _authorized(self, resource_ids: list[str]) -> list[str]:
        checks = await asyncio.gather(
            *(self._provider.is_authorized(rid) for rid in resource_ids),
            return_exceptions=True,
        )
        allowed = []
        for resource_id, ok in zip(resource_ids, checks):
            if ok is True:
                allowed.append(resource_id)
            elif isinstance(ok, BaseException):
                logger.warning(
                    "[%s] Authorization check failed for %s: %s",
                    ErrorKind.AUTHORIZATION_MISSING.value, resource_id, ok,
                )
            else:
                logger.info(
                    "[%s] Excluding %s: calendar not authorized",
                    ErrorKind.AUTHORIZATION_MISSING.value, resource_id,
                )
        return allowed

    async def _fetch_one(
        self, resource_id: str, range_start: datetime, range_end: datetime
    ) -> list[BusyInterval]:
        try:
            free_busy = await self._provider.list_busy(resource_id, range_start, range_end)
        except Exception as e:
            logger.warning("Free/busy query failed for %s (%s); listing events", resource_id, e)
            free_busy = []

        if free_busy:
            intervals = [
                clipped
                for interval in free_busy
                for clipped in clip_interval(interval, resource_id, range_start, range_end)
            ]
            return merge_intervals(intervals)

        calendar_id = await self._calendar_ids.resolve(resource_id)
        events = await self._provider.list_events(calendar_id, range_start, range_end)
        return merge_intervals(flatten_events(resource_id, events, range_start, range_end))

    async def fetch_busy(
        self,
        resource_ids: list[str],
        range_start: datetime,
        range_end: datetime,
    ) -> dict[str, list[BusyInterval]]:
        """Busy intervals per authorised resource over ``[range_start, range_end)``.

        Resources that are unauthorised or whose fetch failed are absent from
        the returned map.
        """
        allowed = await self._authorized(list(dict.fromkeys(resource_ids)))
        results = await asyncio.gather(
            *(self._fetch_one(rid, range_start, range_end) for rid in allowed),
            return_exceptions=True,
        )

        busy: dict[str, list[BusyInterval]] = {}
        for resource_id, result in zip(allowed, results):
            if isinstance(result, BaseException):
                logger.error("Busy-time fetch failed for %s, treating as unavailable: %s", resource_id, result)
                continue
            busy[resource_id] = result
        logger.info(
            "Fetched busy time for %d/%d resources between %s and %s",
            len(busy), len(resource_ids), range_start.isoformat(), range_end.isoformat(),
        )
        return busy
