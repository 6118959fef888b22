"""Tests for shared date and time helpers."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from onboarding_scheduler.utils import (
    SGT,
    add_business_days,
    at_sgt,
    business_days_between,
    is_weekday,
    iter_days,
    next_business_day,
    to_sgt,
)


class TestBusinessDays:
    def test_weekday_detection(self):
        assert is_weekday(date(2025, 11, 28))  # Friday
        assert not is_weekday(date(2025, 11, 29))  # Saturday

    def test_next_business_day_skips_weekend(self):
        assert next_business_day(date(2025, 11, 28)) == date(2025, 12, 1)

    def test_next_business_day_midweek(self):
        assert next_business_day(date(2025, 11, 25)) == date(2025, 11, 26)

    def test_add_business_days(self):
        assert add_business_days(date(2025, 11, 27), 2) == date(2025, 12, 1)

    def test_add_zero_business_days(self):
        assert add_business_days(date(2025, 11, 29), 0) == date(2025, 11, 29)

    def test_between_excludes_endpoints(self):
        # Mon -> Wed has only Tuesday strictly between
        assert business_days_between(date(2025, 11, 24), date(2025, 11, 26)) == 1

    def test_between_adjacent_days(self):
        assert business_days_between(date(2025, 11, 24), date(2025, 11, 25)) == 0

    def test_between_over_weekend(self):
        # Fri -> Mon: Saturday and Sunday are not business days
        assert business_days_between(date(2025, 11, 28), date(2025, 12, 1)) == 0

    def test_between_reversed_is_zero(self):
        assert business_days_between(date(2025, 11, 26), date(2025, 11, 24)) == 0


class TestTimezone:
    def test_at_sgt_is_aware(self):
        value = at_sgt(date(2025, 12, 1), time(10, 0))
        assert value.utcoffset() == timedelta(hours=8)

    def test_to_sgt_converts_utc(self):
        utc = datetime(2025, 12, 1, 2, 0, tzinfo=timezone.utc)
        assert to_sgt(utc) == datetime(2025, 12, 1, 10, 0, tzinfo=SGT)
        assert to_sgt(utc).hour == 10

    def test_to_sgt_rejects_naive(self):
        with pytest.raises(ValueError, match="Naive"):
            to_sgt(datetime(2025, 12, 1, 10, 0))


class TestMisc:
    def test_iter_days_inclusive(self):
        days = list(iter_days(date(2025, 11, 30), date(2025, 12, 2)))
        assert days == [date(2025, 11, 30), date(2025, 12, 1), date(2025, 12, 2)]

    def test_iter_days_empty_when_reversed(self):
        assert list(iter_days(date(2025, 12, 2), date(2025, 12, 1))) == []

