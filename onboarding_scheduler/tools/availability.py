"""
Per-day, per-slot availability for a resource pool.

A resource is free for a slot when it was successfully fetched and none of
its busy intervals overlap the slot. Each slot carries the free resources
plus the union of the languages they speak and the areas they cover, so the
UI can show one combined calendar instead of one per resource.
"""

import logging
from datetime import date
from typing import Iterable, Mapping

from onboarding_scheduler.errors import ErrorKind
from onboarding_scheduler.schemas.availability_schema import (
    AvailabilityFilters,
    DayAvailability,
    SlotAvailability,
    SlotTemplate,
)
from onboarding_scheduler.schemas.resource_schema import BusyInterval, Resource
from onboarding_scheduler.tools.slots import templates_for
from onboarding_scheduler.utils import at_sgt, is_weekday, iter_days

logger = logging.getLogger(__name__)


def select_resources(pool: Iterable[Resource], filters: AvailabilityFilters) -> list[Resource]:
    """Apply kind, single-resource and location restrictions to a pool.

    A location-restricted request with no resolved category selects nobody.
    Resources with no declared service areas never match a location filter.
    """
    if filters.location_required and filters.location_category is None:
        logger.info(
            "[%s] Location required but unresolved; no resources selected",
            ErrorKind.LOCATION_UNRESOLVED.value,
        )
        return []

    selected = []
    for resource in pool:
        if resource.kind != filters.kind or not resource.active:
            continue
        if filters.resource_id and resource.id.lower() != filters.resource_id.lower():
            continue
        if filters.location_required and filters.location_category not in resource.location_categories:
            logger.debug(
                "Excluding %s: does not cover %s",
                resource.id, filters.location_category.value,
            )
            continue
        selected.append(resource)
    return selected


def _is_free(intervals: list[BusyInterval], template: SlotTemplate, day: date) -> bool:
    slot_start = at_sgt(day, template.start)
    slot_end = at_sgt(day, template.end)
    return not any(interval.overlaps(slot_start, slot_end) for interval in intervals)


def _dedupe(values: Iterable) -> list:
    return list(dict.fromkeys(values))


def compute_availability(
    resources: Iterable[Resource],
    busy: Mapping[str, list[BusyInterval]],
    range_start: date,
    range_end: date,
    filters: AvailabilityFilters,
) -> list[DayAvailability]:
    """Build availability for every bookable day in ``[range_start, range_end]``.

    Only resources that are authorised and present in ``busy`` can be free;
    a resource missing from ``busy`` failed to fetch and is treated as
    unavailable. Weekends are skipped unless ``filters.include_weekends``.
    """
    if filters.location_required and filters.location_category is None:
        logger.info(
            "[%s] Location-restricted availability requested without a location",
            ErrorKind.LOCATION_UNRESOLVED.value,
        )
        return []

    eligible = [r for r in select_resources(resources, filters) if r.authorized and r.id in busy]

    days: list[DayAvailability] = []
    for day in iter_days(range_start, range_end):
        if not filters.include_weekends and not is_weekday(day):
            continue
        slots = []
        for template in templates_for(day, extended=filters.extended_slot):
            free = [r for r in eligible if _is_free(busy[r.id], template, day)]
            slots.append(
                SlotAvailability(
                    template=template,
                    date=day,
                    available=bool(free),
                    free_resources=[r.id for r in free],
                    free_languages=_dedupe(lang for r in free for lang in r.languages),
                    free_locations=_dedupe(loc for r in free for loc in r.location_categories),
                )
            )
        days.append(DayAvailability(date=day, slots=slots))

    logger.debug(
        "Computed availability for %d days across %d eligible resources",
        len(days), len(eligible),
    )
    return days
