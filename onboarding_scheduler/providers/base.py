"""Protocols for the external systems the scheduler talks to.

The calendar provider and the CRM are the systems of record; the scheduler
keeps no durable state of its own. Implementations handle their own auth and
transport and raise on failure.
"""

from datetime import datetime
from typing import Optional, Protocol

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


class CalendarProvider(Protocol):
    """Calendar service holding each resource's real schedule."""

    async def is_authorized(self, resource_id: str) -> bool:
        """Whether the resource has granted calendar access."""
        ...

    async def list_busy(
        self, resource_id: str, start: datetime, end: datetime
    ) -> list[BusyInterval]:
        """Free/busy query. May return nothing even when events exist."""
        ...

    async def list_events(
        self, calendar_id: str, start: datetime, end: datetime
    ) -> list[RawCalendarEvent]:
        """Raw events, with recurring series returned unexpanded."""
        ...

    async def create_event(self, calendar_id: str, event: CalendarEvent) -> str:
        """Create the event and return its provider id."""
        ...

    async def delete_event(self, calendar_id: str, event_id: str) -> None:
        """Delete an event. Raises when it is not on that calendar."""
        ...

    async def resolve_calendar_id(self, resource_id: str) -> str:
        ...


class CrmGateway(Protocol):
    """CRM holding merchant records and resource-pool metadata."""

    async def get_merchant(self, merchant_id: str) -> MerchantDetails:
        ...

    async def list_resources(self, kind: ResourceKind) -> list[Resource]:
        ...

    async def record_booking(
        self, merchant_id: str, booking_type: BookingType, result: BookingResult
    ) -> None:
        """Write date/time, assigned resource and event id back to the merchant."""
        ...

    async def clear_booking(self, merchant_id: str, booking_type: BookingType) -> None:
        ...


class Notifier(Protocol):
    """Fire-and-forget messaging to staff."""

    async def notify(self, recipient_id: str, message: str, title: Optional[str] = None) -> None:
        ...
