"""
Bookable session templates.

The set of slots offered on a day is a pure function of the date: bookings
before the regime cutoff use four one-hour sessions, bookings on or after it
use three ninety-minute sessions. Merchants buying the larger feature bundles
get a longer final training session in the new regime.
"""

from datetime import date, time
from typing import Optional

from onboarding_scheduler.schemas.availability_schema import SlotTemplate

SLOT_REGIME_CUTOFF = date(2025, 12, 1)

LEGACY_SLOTS: tuple[SlotTemplate, ...] = (
    SlotTemplate(start=time(10, 0), end=time(11, 0)),
    SlotTemplate(start=time(12, 0), end=time(13, 0)),
    SlotTemplate(start=time(14, 30), end=time(15, 30)),
    SlotTemplate(start=time(17, 0), end=time(18, 0)),
)

CURRENT_SLOTS: tuple[SlotTemplate, ...] = (
    SlotTemplate(start=time(10, 0), end=time(11, 30)),
    SlotTemplate(start=time(13, 30), end=time(15, 0)),
    SlotTemplate(start=time(16, 0), end=time(17, 30)),
)

EXTENDED_SLOT = SlotTemplate(start=time(16, 0), end=time(18, 0))

EXTENDED_FEATURE_KEYWORDS = ("membership", "engage", "composite", "superbundle")


def requires_extended_slot(features: Optional[list[str]]) -> bool:
    """True when any required feature needs the longer training session."""
    if not features:
        return False
    return any(
        keyword in feature.lower()
        for feature in features
        for keyword in EXTENDED_FEATURE_KEYWORDS
    )


def templates_for(day: date, extended: bool = False) -> list[SlotTemplate]:
    """Slot templates active on ``day``."""
    if day < SLOT_REGIME_CUTOFF:
        return list(LEGACY_SLOTS)
    if not extended:
        return list(CURRENT_SLOTS)
    return [
        EXTENDED_SLOT if template.start == EXTENDED_SLOT.start else template
        for template in CURRENT_SLOTS
    ]


def find_template(day: date, start: time, extended: bool = False) -> Optional[SlotTemplate]:
    """Return the template on ``day`` that starts at ``start``, if any."""
    for template in templates_for(day, extended):
        if template.start == start:
            return template
    return None
