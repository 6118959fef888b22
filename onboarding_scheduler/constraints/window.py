"""
Booking window rules.

Works out which dates a booking may land on from the onboarding dependency
chain (hardware → installation → training → go-live), the kind of actor
asking, and whether this is a fresh booking or a reschedule. Slot-level
availability is checked separately by the availability calculator.
"""

import logging
from datetime import date, timedelta
from typing import Optional

from onboarding_scheduler.config import settings
from onboarding_scheduler.schemas.booking_schema import (
    ActorClass,
    BookingType,
    BookingWindow,
    DependencyDates,
)
from onboarding_scheduler.utils import add_business_days, business_days_between, sgt_today

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def compute_window(
    booking_type: BookingType,
    actor: ActorClass,
    deps: Optional[DependencyDates] = None,
    *,
    is_rescheduling: bool = False,
    is_external_vendor: bool = False,
    today: Optional[date] = None,
    lead_days: Optional[int] = None,
) -> BookingWindow:
    """Compute the legal date range for a booking.

    Internal actors may book any date from today onwards, weekends included.
    Merchants get a lead-time floor, dependency-chain bounds and a fixed
    horizon. Rescheduling swaps the lead time for a business-day buffer.

    Returns an empty window (``min_date is None``) when no date can satisfy
    the rules, never an inverted range.
    """
    today = today or sgt_today()
    deps = deps or DependencyDates()
    rules = settings.booking

    if actor == ActorClass.INTERNAL:
        window = BookingWindow(
            min_date=today, max_date=None, weekdays_only=False, reason="internal: open-ended",
        )
        logger.debug("Window for internal %s: from %s", booking_type.value, today)
        return window

    if booking_type == BookingType.TRAINING and deps.installation_date is None:
        logger.info("Empty training window: installation date not set")
        return BookingWindow.empty("Installation must be booked before training")

    lead = rules.min_lead_days if lead_days is None else lead_days
    buffer_until = None
    if is_rescheduling:
        buffer_until = add_business_days(today, rules.reschedule_buffer_business_days)
        min_date = buffer_until + ONE_DAY
        reasons = [f"reschedule buffer until {buffer_until}"]
    else:
        min_date = today + timedelta(days=lead)
        reasons = [f"{lead}-day lead time"]

    if booking_type == BookingType.INSTALLATION:
        if is_external_vendor:
            reasons.append("external vendor")
        if deps.hardware_fulfillment_date is not None:
            hardware_floor = deps.hardware_fulfillment_date + timedelta(
                days=rules.hardware_to_install_gap_days
            )
            if hardware_floor > min_date:
                min_date = hardware_floor
                reasons.append(f"hardware ready {deps.hardware_fulfillment_date}")
        max_date = min_date + timedelta(days=rules.booking_window_days)
        if deps.training_date is not None and deps.training_date - ONE_DAY < max_date:
            max_date = deps.training_date - ONE_DAY
            reasons.append(f"before training on {deps.training_date}")
    else:
        installation_floor = deps.installation_date + ONE_DAY
        if installation_floor > min_date:
            min_date = installation_floor
            reasons.append(f"after installation on {deps.installation_date}")
        max_date = min_date + timedelta(days=rules.booking_window_days)
        if deps.planned_go_live_date is not None and deps.planned_go_live_date < max_date:
            max_date = deps.planned_go_live_date
            reasons.append(f"by go-live on {deps.planned_go_live_date}")

    reason = ", ".join(reasons)
    if max_date < min_date:
        logger.info(
            "Empty %s window: min %s is after max %s (%s)",
            booking_type.value, min_date, max_date, reason,
        )
        return BookingWindow.empty(f"No valid dates: {reason}")

    logger.info(
        "Window for merchant %s%s: %s to %s (%s)",
        booking_type.value, " reschedule" if is_rescheduling else "", min_date, max_date, reason,
    )
    return BookingWindow(
        min_date=min_date,
        max_date=max_date,
        weekdays_only=True,
        buffer_until=buffer_until,
        reason=reason,
    )


def is_booking_locked(booked_date: date, actor: ActorClass, today: Optional[date] = None) -> bool:
    """Whether an existing booking is too close to change.

    Merchants cannot reschedule or cancel once fewer than the buffer's worth
    of business days lie strictly between today and the booked date.
    """
    if actor == ActorClass.INTERNAL:
        return False
    today = today or sgt_today()
    gap = business_days_between(today, booked_date)
    locked = gap < settings.booking.reschedule_buffer_business_days
    if locked:
        logger.info("Booking on %s is locked (%d business days away)", booked_date, gap)
    return locked


def is_date_bookable(window: BookingWindow, day: date, slot_available: bool) -> bool:
    """A date is bookable when it is inside the window and the slot has a free resource."""
    return window.contains(day) and slot_available
