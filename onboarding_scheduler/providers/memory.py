"""
In-memory calendar, CRM and notifier.

In production these would be backed by the calendar provider's API and the
CRM. Here they hold everything in dicts so the CLI demo and the tests can run
the full booking flow offline. Each has failure switches for exercising the
error policies.
"""

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from onboarding_scheduler.schemas.booking_schema import (
    BookingResult,
    BookingType,
    CalendarEvent,
    MerchantDetails,
)
from onboarding_scheduler.schemas.resource_schema import (
    BusyInterval,
    RawCalendarEvent,
    Resource,
    ResourceKind,
)

logger = logging.getLogger(__name__)


class ProviderUnavailable(ConnectionError):
    """Simulated outage of an in-memory collaborator."""


class InMemoryCalendarProvider:
    """Calendar provider backed by dicts, keyed by calendar id."""

    def __init__(self):
        self.authorized: set[str] = set()
        self.calendar_ids: dict[str, str] = {}
        self.free_busy: dict[str, list[BusyInterval]] = {}
        self.events: dict[str, dict[str, RawCalendarEvent]] = {}
        self.created: list[tuple[str, CalendarEvent]] = []
        self.deleted: list[tuple[str, str]] = []
        self._event_owner: dict[str, str] = {}
        # Failure switches
        self.fail_free_busy: set[str] = set()
        self.fail_list_events: set[str] = set()
        self.fail_resolve: set[str] = set()
        self.fail_create = False

    def authorize(self, resource_id: str, calendar_id: Optional[str] = None) -> None:
        self.authorized.add(resource_id)
        self.calendar_ids[resource_id] = calendar_id or f"cal-{resource_id}"

    def calendar_for(self, resource_id: str) -> str:
        return self.calendar_ids.get(resource_id, f"cal-{resource_id}")

    def add_busy(self, resource_id: str, start: datetime, end: datetime) -> None:
        self.free_busy.setdefault(resource_id, []).append(
            BusyInterval(resource_id=resource_id, start=start, end=end)
        )

    def add_event(self, resource_id: str, event: RawCalendarEvent) -> None:
        self.events.setdefault(self.calendar_for(resource_id), {})[event.id] = event
        self._event_owner[event.id] = resource_id

    async def is_authorized(self, resource_id: str) -> bool:
        return resource_id in self.authorized

    async def list_busy(self, resource_id: str, start: datetime, end: datetime) -> list[BusyInterval]:
        if resource_id in self.fail_free_busy:
            raise ProviderUnavailable(f"free/busy unavailable for {resource_id}")
        return [iv for iv in self.free_busy.get(resource_id, []) if iv.overlaps(start, end)]

    async def list_events(self, calendar_id: str, start: datetime, end: datetime) -> list[RawCalendarEvent]:
        if calendar_id in self.fail_list_events:
            raise ProviderUnavailable(f"event listing unavailable for {calendar_id}")
        return [
            event
            for event in self.events.get(calendar_id, {}).values()
            if event.is_recurring or (event.start < end and event.end > start)
        ]

    async def create_event(self, calendar_id: str, event: CalendarEvent) -> str:
        if self.fail_create:
            raise ProviderUnavailable(f"cannot create event on {calendar_id}")
        event_id = f"evt-{uuid.uuid4().hex[:8]}"
        self.events.setdefault(calendar_id, {})[event_id] = RawCalendarEvent(
            id=event_id, start=event.start, end=event.end, summary=event.summary,
        )
        self._event_owner[event_id] = event.resource_id
        self.add_busy(event.resource_id, event.start, event.end)
        self.created.append((calendar_id, event.model_copy(update={"id": event_id})))
        logger.info("Created event %s on %s", event_id, calendar_id)
        return event_id

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        calendar = self.events.get(calendar_id, {})
        if event_id not in calendar:
            raise KeyError(f"event {event_id} not found on {calendar_id}")
        event = calendar.pop(event_id)
        owner = self._event_owner.pop(event_id, None)
        if owner is not None:
            self.free_busy[owner] = [
                iv for iv in self.free_busy.get(owner, [])
                if not (iv.start == event.start and iv.end == event.end)
            ]
        self.deleted.append((calendar_id, event_id))
        logger.info("Deleted event %s from %s", event_id, calendar_id)

    async def resolve_calendar_id(self, resource_id: str) -> str:
        if resource_id in self.fail_resolve:
            raise ProviderUnavailable(f"cannot resolve calendar for {resource_id}")
        return self.calendar_for(resource_id)


class InMemoryCrm:
    """CRM with merchants and the resource pool held in memory."""

    def __init__(
        self,
        merchants: Optional[list[MerchantDetails]] = None,
        resources: Optional[list[Resource]] = None,
    ):
        self.merchants: dict[str, MerchantDetails] = {m.id: m for m in merchants or []}
        self.resources: list[Resource] = list(resources or [])
        self.bookings: dict[tuple[str, BookingType], BookingResult] = {}
        self.fail_read = False
        self.fail_write = False

    async def get_merchant(self, merchant_id: str) -> MerchantDetails:
        if self.fail_read:
            raise ProviderUnavailable("CRM unavailable")
        if merchant_id not in self.merchants:
            raise KeyError(f"merchant {merchant_id} not found")
        return self.merchants[merchant_id]

    async def list_resources(self, kind: ResourceKind) -> list[Resource]:
        if self.fail_read:
            raise ProviderUnavailable("CRM unavailable")
        return [r for r in self.resources if r.kind == kind]

    async def record_booking(
        self, merchant_id: str, booking_type: BookingType, result: BookingResult
    ) -> None:
        if self.fail_write:
            raise ProviderUnavailable("CRM write rejected")
        self.bookings[(merchant_id, booking_type)] = result
        merchant = self.merchants.get(merchant_id)
        if merchant is None:
            return
        if booking_type == BookingType.INSTALLATION:
            deps = merchant.dependencies.model_copy(update={"installation_date": result.booked_date})
            update = {
                "dependencies": deps,
                "installation_event_id": result.event_id,
                "installer_id": result.resource_id,
            }
        else:
            deps = merchant.dependencies.model_copy(update={"training_date": result.booked_date})
            update = {
                "dependencies": deps,
                "training_event_id": result.event_id,
                "trainer_id": result.resource_id,
            }
        self.merchants[merchant_id] = merchant.model_copy(update=update)

    async def clear_booking(self, merchant_id: str, booking_type: BookingType) -> None:
        if self.fail_write:
            raise ProviderUnavailable("CRM write rejected")
        self.bookings.pop((merchant_id, booking_type), None)
        merchant = self.merchants.get(merchant_id)
        if merchant is None:
            return
        if booking_type == BookingType.INSTALLATION:
            update = {
                "dependencies": merchant.dependencies.model_copy(update={"installation_date": None}),
                "installation_event_id": None,
                "installer_id": None,
            }
        else:
            update = {
                "dependencies": merchant.dependencies.model_copy(update={"training_date": None}),
                "training_event_id": None,
                "trainer_id": None,
            }
        self.merchants[merchant_id] = merchant.model_copy(update=update)


class InMemoryNotifier:
    """Records sent notifications instead of delivering them."""

    def __init__(self):
        self.sent: list[tuple[str, Optional[str], str]] = []
        self.fail = False

    async def notify(self, recipient_id: str, message: str, title: Optional[str] = None) -> None:
        if self.fail:
            raise ProviderUnavailable("notification channel down")
        self.sent.append((recipient_id, title, message))


def load_demo(path: Path) -> tuple[InMemoryCalendarProvider, InMemoryCrm]:
    """Build seeded providers from a JSON file.

    Expected keys: ``resources``, ``merchants``, and optionally ``busy``
    (``resource_id``/``start``/``end``) and ``events`` (``resource_id`` plus
    the raw event fields).
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    resources = [Resource.model_validate(item) for item in data.get("resources", [])]
    merchants = [MerchantDetails.model_validate(item) for item in data.get("merchants", [])]

    calendar = InMemoryCalendarProvider()
    for resource in resources:
        if resource.authorized:
            calendar.authorize(resource.id, resource.calendar_id)
    for item in data.get("busy", []):
        interval = BusyInterval.model_validate(item)
        calendar.add_busy(interval.resource_id, interval.start, interval.end)
    for item in data.get("events", []):
        item = dict(item)
        resource_id = item.pop("resource_id")
        calendar.add_event(resource_id, RawCalendarEvent.model_validate(item))

    logger.info(
        "Loaded demo data: %d resources, %d merchants from %s",
        len(resources), len(merchants), path,
    )
    return calendar, InMemoryCrm(merchants=merchants, resources=resources)
