"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""

from pathlib import Path

import pytest

DEMO_DATA = Path(__file__).resolve().parent.parent / "data" / "demo_pool.json"


class TestSchemaImports:
    def test_import_resource_schema(self):
        from onboarding_scheduler.schemas.resource_schema import (
            BusyInterval, LocationCategory, RawCalendarEvent, Resource, ResourceKind,
        )
        assert ResourceKind.TRAINER == "trainer"
        assert LocationCategory.PENANG == "Penang"

    def test_import_booking_schema(self):
        from onboarding_scheduler.schemas.booking_schema import BookingRequest, BookingResult, BookingWindow
        assert BookingWindow().is_empty

    def test_import_availability_schema(self):
        from onboarding_scheduler.schemas.availability_schema import AvailabilityFilters
        assert not AvailabilityFilters().location_required


class TestPackageImports:
    def test_booking_package_reexports(self):
        from onboarding_scheduler.booking import BookingContext, BookingOrchestrator
        assert BookingOrchestrator is not None

    def test_constraints_package_reexports(self):
        from onboarding_scheduler.constraints import compute_window, is_booking_locked, is_date_bookable
        assert callable(compute_window)

    def test_tools_import(self):
        from onboarding_scheduler.tools.assignment import assign_resource
        from onboarding_scheduler.tools.availability import compute_availability
        from onboarding_scheduler.tools.busy_time import BusyTimeAggregator
        from onboarding_scheduler.tools.location import resolve_location
        from onboarding_scheduler.tools.slots import templates_for
        assert callable(resolve_location)

    def test_version(self):
        import onboarding_scheduler
        assert onboarding_scheduler.__version__


class TestConfigImport:
    def test_import_config(self):
        from onboarding_scheduler.config import settings
        assert settings.vendor.name
        assert settings.booking.booking_window_days >= 1
        assert settings.calendar.fallback_calendar_id


class TestDemoData:
    def test_load_demo(self):
        from onboarding_scheduler.providers.memory import load_demo
        calendar, crm = load_demo(DEMO_DATA)
        assert "M-1001" in crm.merchants
        assert crm.resources
        assert calendar.authorized


class TestCli:
    def test_window_command(self, capsys):
        from main import main
        argv = ["--data", str(DEMO_DATA), "window", "--merchant", "M-1001", "--type", "installation"]
        assert main(argv) == 0
        assert "lead time" in capsys.readouterr().out

    def test_unknown_merchant_returns_error_code(self):
        from main import main
        assert main(["--data", str(DEMO_DATA), "window", "--merchant", "M-404"]) == 1

    def test_missing_subcommand_exits(self):
        from main import main
        with pytest.raises(SystemExit):
            main(["--data", str(DEMO_DATA)])
