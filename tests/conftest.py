"""Shared test fixtures and helpers."""

import random
from datetime import date, datetime, time
from typing import Optional

import pytest

from onboarding_scheduler.booking import BookingOrchestrator
from onboarding_scheduler.providers.memory import InMemoryCalendarProvider, InMemoryCrm, InMemoryNotifier
from onboarding_scheduler.schemas.booking_schema import Contact, DependencyDates, MerchantDetails
from onboarding_scheduler.schemas.resource_schema import (
    BusyInterval,
    LocationCategory,
    Resource,
    ResourceKind,
)
from onboarding_scheduler.utils import SGT

# Monday
TODAY = date(2025, 11, 24)


def make_resource(
    resource_id: str,
    kind: ResourceKind = ResourceKind.TRAINER,
    languages: Optional[list[str]] = None,
    locations: Optional[list[LocationCategory]] = None,
    authorized: bool = True,
    active: bool = True,
) -> Resource:
    """Helper to create a Resource with sensible defaults."""
    return Resource(
        id=resource_id,
        display_name=resource_id.split("@")[0].title(),
        kind=kind,
        languages=["English"] if languages is None else languages,
        location_categories=[LocationCategory.KLANG_VALLEY] if locations is None else locations,
        authorized=authorized,
        active=active,
    )


def sgt(day: date, hhmm: str) -> datetime:
    return datetime.combine(day, time.fromisoformat(hhmm), tzinfo=SGT)


def make_busy(resource_id: str, day: date, start: str, end: str) -> BusyInterval:
    """Helper to create a BusyInterval from wall-clock SGT times."""
    return BusyInterval(resource_id=resource_id, start=sgt(day, start), end=sgt(day, end))


def make_merchant(merchant_id: str = "M-1", **overrides) -> MerchantDetails:
    """Helper to create a Klang Valley merchant with onsite training purchased."""
    fields = {
        "id": merchant_id,
        "name": "Kopi Corner",
        "store_address": "23 Jalan SS2/24, Petaling Jaya",
        "state": "Selangor",
        "contact": Contact(name="Aisyah", role="Owner", phone="+60123456789"),
        "hardware": ["POS terminal", "Receipt printer"],
        "onboarding_services": "Onsite Training, Installation",
        "onboarding_manager": "Daniel Tan",
        "onboarding_manager_id": "daniel@example.com",
        "required_languages": ["English"],
        "dependencies": DependencyDates(
            installation_date=date(2025, 11, 27),
            planned_go_live_date=date(2025, 12, 31),
        ),
    }
    fields.update(overrides)
    return MerchantDetails(**fields)


TRAINER_A = make_resource("alice@example.com", languages=["English"])
TRAINER_B = make_resource("badrul@example.com", languages=["English", "Malay", "Chinese"])
INSTALLER_1 = make_resource("ivan@example.com", kind=ResourceKind.INSTALLER)
INSTALLER_2 = make_resource("ines@example.com", kind=ResourceKind.INSTALLER)


@pytest.fixture
def calendar():
    provider = InMemoryCalendarProvider()
    for resource in (TRAINER_A, TRAINER_B, INSTALLER_1, INSTALLER_2):
        provider.authorize(resource.id)
    return provider


@pytest.fixture
def crm():
    return InMemoryCrm(
        merchants=[make_merchant()],
        resources=[TRAINER_A, TRAINER_B, INSTALLER_1, INSTALLER_2],
    )


@pytest.fixture
def notifier():
    return InMemoryNotifier()


@pytest.fixture
def orchestrator(calendar, crm, notifier):
    return BookingOrchestrator(
        calendar, crm, notifier, rng=random.Random(7), today=lambda: TODAY,
    )
