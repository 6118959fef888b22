"""Tests for booking window rules and the reschedule lock."""

from datetime import date, timedelta

import pytest

from onboarding_scheduler.constraints.window import compute_window, is_booking_locked, is_date_bookable
from onboarding_scheduler.schemas.booking_schema import (
    ActorClass,
    BookingType,
    BookingWindow,
    DependencyDates,
)

MONDAY = date(2025, 11, 24)
FRIDAY = date(2025, 11, 28)

INSTALL = BookingType.INSTALLATION
TRAIN = BookingType.TRAINING
MERCHANT = ActorClass.MERCHANT
INTERNAL = ActorClass.INTERNAL


class TestInternalActor:
    def test_open_ended_from_today(self):
        window = compute_window(TRAIN, INTERNAL, DependencyDates(), today=MONDAY)
        assert window.min_date == MONDAY
        assert window.max_date is None
        assert not window.weekdays_only

    def test_training_without_installation_still_open(self):
        window = compute_window(TRAIN, INTERNAL, None, today=MONDAY)
        assert not window.is_empty

    def test_weekend_bookable(self):
        window = compute_window(INSTALL, INTERNAL, today=MONDAY)
        assert window.contains(date(2025, 11, 29))
        assert not window.contains(MONDAY - timedelta(days=1))


class TestInstallationWindow:
    def test_new_booking_lead_time(self):
        window = compute_window(INSTALL, MERCHANT, DependencyDates(), today=MONDAY)
        assert window.min_date == date(2025, 11, 26)
        assert window.max_date == date(2025, 12, 26)

    def test_hardware_date_raises_floor(self):
        deps = DependencyDates(hardware_fulfillment_date=date(2025, 12, 1))
        window = compute_window(INSTALL, MERCHANT, deps, today=MONDAY)
        assert window.min_date == date(2025, 12, 2)
        assert window.max_date == date(2026, 1, 1)

    def test_earlier_hardware_date_ignored(self):
        deps = DependencyDates(hardware_fulfillment_date=date(2025, 11, 1))
        window = compute_window(INSTALL, MERCHANT, deps, today=MONDAY)
        assert window.min_date == date(2025, 11, 26)

    def test_clamped_before_training(self):
        deps = DependencyDates(training_date=date(2025, 12, 5))
        window = compute_window(INSTALL, MERCHANT, deps, today=MONDAY)
        assert window.max_date == date(2025, 12, 4)

    def test_training_too_soon_gives_empty_window(self):
        deps = DependencyDates(training_date=date(2025, 11, 26))
        window = compute_window(INSTALL, MERCHANT, deps, today=MONDAY)
        assert window.is_empty
        assert window.min_date is None

    def test_external_vendor_same_lead(self):
        window = compute_window(INSTALL, MERCHANT, today=MONDAY, is_external_vendor=True)
        assert window.min_date == date(2025, 11, 26)
        assert "external vendor" in window.reason

    def test_location_lead_days_override(self):
        window = compute_window(INSTALL, MERCHANT, today=MONDAY, lead_days=5)
        assert window.min_date == date(2025, 11, 29)

    def test_reschedule_buffer_midweek(self):
        # Monday: buffer is Tuesday, first selectable is Wednesday
        window = compute_window(INSTALL, MERCHANT, today=MONDAY, is_rescheduling=True)
        assert window.buffer_until == date(2025, 11, 25)
        assert window.min_date == date(2025, 11, 26)
        assert not window.contains(date(2025, 11, 25))

    def test_reschedule_buffer_over_weekend(self):
        # Friday: buffer is Monday, first selectable is Tuesday
        window = compute_window(INSTALL, MERCHANT, today=FRIDAY, is_rescheduling=True)
        assert window.buffer_until == date(2025, 12, 1)
        assert window.min_date == date(2025, 12, 2)

    def test_reschedule_keeps_hardware_bound(self):
        deps = DependencyDates(hardware_fulfillment_date=date(2025, 12, 3))
        window = compute_window(INSTALL, MERCHANT, deps, today=MONDAY, is_rescheduling=True)
        assert window.min_date == date(2025, 12, 4)


class TestTrainingWindow:
    def test_requires_installation_date(self):
        window = compute_window(TRAIN, MERCHANT, DependencyDates(), today=MONDAY)
        assert window.is_empty
        assert not window.contains(date(2025, 12, 1))

    def test_after_installation(self):
        deps = DependencyDates(installation_date=date(2025, 12, 1))
        window = compute_window(TRAIN, MERCHANT, deps, today=MONDAY)
        assert window.min_date == date(2025, 12, 2)
        assert window.max_date == date(2026, 1, 1)

    def test_lead_time_when_installation_in_past(self):
        deps = DependencyDates(installation_date=date(2025, 11, 20))
        window = compute_window(TRAIN, MERCHANT, deps, today=MONDAY)
        assert window.min_date == date(2025, 11, 26)

    def test_go_live_inclusive(self):
        deps = DependencyDates(installation_date=date(2025, 12, 1), planned_go_live_date=date(2025, 12, 10))
        window = compute_window(TRAIN, MERCHANT, deps, today=MONDAY)
        assert window.max_date == date(2025, 12, 10)
        assert window.contains(date(2025, 12, 10))

    def test_go_live_before_installation_is_empty(self):
        deps = DependencyDates(installation_date=date(2025, 12, 10), planned_go_live_date=date(2025, 12, 5))
        assert compute_window(TRAIN, MERCHANT, deps, today=MONDAY).is_empty

    def test_reschedule_still_after_installation(self):
        deps = DependencyDates(installation_date=date(2025, 12, 3))
        window = compute_window(TRAIN, MERCHANT, deps, today=MONDAY, is_rescheduling=True)
        assert window.min_date == date(2025, 12, 4)

    def test_reschedule_buffer(self):
        deps = DependencyDates(installation_date=date(2025, 11, 20))
        window = compute_window(TRAIN, MERCHANT, deps, today=MONDAY, is_rescheduling=True)
        assert window.min_date == date(2025, 11, 26)


class TestWindowInvariant:
    @pytest.mark.parametrize("booking_type", [INSTALL, TRAIN])
    @pytest.mark.parametrize("rescheduling", [False, True])
    @pytest.mark.parametrize("offset", [-10, 0, 1, 3, 20, 40])
    def test_never_inverted(self, booking_type, rescheduling, offset):
        anchor = MONDAY + timedelta(days=offset)
        deps = DependencyDates(
            hardware_fulfillment_date=anchor,
            installation_date=anchor,
            training_date=anchor + timedelta(days=2),
            planned_go_live_date=anchor + timedelta(days=1),
        )
        window = compute_window(booking_type, MERCHANT, deps, today=MONDAY, is_rescheduling=rescheduling)
        assert window.is_empty or window.min_date <= window.max_date

    def test_weekend_excluded_for_merchant(self):
        window = compute_window(INSTALL, MERCHANT, today=MONDAY)
        assert not window.contains(date(2025, 11, 29))
        assert window.contains(FRIDAY)


class TestBookingLock:
    def test_next_business_day_is_locked_for_merchant(self):
        assert is_booking_locked(date(2025, 11, 25), MERCHANT, today=MONDAY)

    def test_next_business_day_unlocked_for_internal(self):
        assert not is_booking_locked(date(2025, 11, 25), INTERNAL, today=MONDAY)

    def test_monday_booking_locked_on_friday(self):
        assert is_booking_locked(date(2025, 12, 1), MERCHANT, today=FRIDAY)

    def test_two_business_days_out_unlocked(self):
        assert not is_booking_locked(date(2025, 11, 26), MERCHANT, today=MONDAY)

    def test_past_booking_locked(self):
        assert is_booking_locked(date(2025, 11, 20), MERCHANT, today=MONDAY)


class TestIsDateBookable:
    def test_requires_window_and_slot(self):
        window = BookingWindow(min_date=date(2025, 11, 26), max_date=date(2025, 12, 26))
        assert is_date_bookable(window, date(2025, 11, 26), slot_available=True)
        assert not is_date_bookable(window, date(2025, 11, 26), slot_available=False)
        assert not is_date_bookable(window, date(2025, 11, 25), slot_available=True)

    def test_empty_window_never_bookable(self):
        assert not is_date_bookable(BookingWindow.empty("x"), date(2025, 11, 26), slot_available=True)
