"""Booking, window and merchant data models."""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from onboarding_scheduler.schemas.resource_schema import LocationCategory
from onboarding_scheduler.utils import is_weekday


class BookingType(str, Enum):
    INSTALLATION = "installation"
    TRAINING = "training"


class ActorClass(str, Enum):
    """Who is asking. Internal staff bypass merchant-facing booking rules."""
    INTERNAL = "internal"
    MERCHANT = "merchant"


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    REQUEST_SUBMITTED = "request_submitted"
    CANCELLED = "cancelled"


class DependencyDates(BaseModel):
    """Dates on the hardware → installation → training → go-live chain.

    Every field is optional. A missing date means "no constraint" except
    for merchant training bookings, which need ``installation_date``.
    """
    hardware_fulfillment_date: Optional[date] = None
    installation_date: Optional[date] = None
    training_date: Optional[date] = None
    planned_go_live_date: Optional[date] = None


class BookingWindow(BaseModel):
    """Legal date range for a booking. ``min_date is None`` means empty."""
    model_config = ConfigDict(frozen=True)

    min_date: Optional[date] = None
    max_date: Optional[date] = None
    weekdays_only: bool = True
    buffer_until: Optional[date] = None
    reason: str = ""

    @classmethod
    def empty(cls, reason: str) -> "BookingWindow":
        return cls(reason=reason)

    @property
    def is_empty(self) -> bool:
        return self.min_date is None

    def contains(self, day: date) -> bool:
        """Date-window portion of bookability: range, weekday rule and buffer."""
        if self.is_empty or day < self.min_date:
            return False
        if self.max_date is not None and day > self.max_date:
            return False
        if self.buffer_until is not None and day <= self.buffer_until:
            return False
        if self.weekdays_only and not is_weekday(day):
            return False
        return True

    def clamp(self, start: date, end: date) -> Optional[tuple[date, date]]:
        """Intersect ``[start, end]`` with the window, or None when disjoint."""
        if self.is_empty:
            return None
        lo = max(start, self.min_date)
        hi = end if self.max_date is None else min(end, self.max_date)
        if lo > hi:
            return None
        return lo, hi


class Contact(BaseModel):
    name: str = ""
    role: str = ""
    phone: str = ""
    email: str = ""


class MerchantDetails(BaseModel):
    """Typed view over the CRM merchant record used for scheduling."""
    id: str
    name: str
    store_address: str = ""
    state: str = ""
    location_category: Optional[LocationCategory] = None
    contact: Contact = Field(default_factory=Contact)
    hardware: list[str] = Field(default_factory=list)
    required_features: list[str] = Field(default_factory=list)
    onboarding_services: str = ""
    onboarding_summary: str = ""
    onboarding_manager: str = ""
    onboarding_manager_id: Optional[str] = None
    required_languages: list[str] = Field(default_factory=list)
    assigned_installer: Optional[str] = None
    installation_event_id: Optional[str] = None
    installer_id: Optional[str] = None
    training_event_id: Optional[str] = None
    trainer_id: Optional[str] = None
    dependencies: DependencyDates = Field(default_factory=DependencyDates)

    @property
    def address_for_location(self) -> str:
        return ", ".join(part for part in (self.store_address, self.state) if part)


class BookingRequest(BaseModel):
    """Validated booking or reschedule request."""
    merchant_id: str
    booking_type: BookingType
    date: date
    slot_start: time
    actor: ActorClass = ActorClass.MERCHANT
    required_languages: list[str] = Field(default_factory=list)
    existing_event_id: Optional[str] = None
    previous_resource_id: Optional[str] = None
    selected_resource_id: Optional[str] = None

    @property
    def is_rescheduling(self) -> bool:
        return bool(self.existing_event_id)


class BookingResult(BaseModel):
    """Booking creation result."""
    success: bool = True
    status: BookingStatus = BookingStatus.CONFIRMED
    message: str = ""
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    event_id: Optional[str] = None
    booked_date: Optional[date] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    crm_synced: bool = True
    previous_event_deleted: Optional[bool] = None


class CancellationRequest(BaseModel):
    merchant_id: str
    booking_type: BookingType
    event_id: str
    booked_date: date
    actor: ActorClass = ActorClass.MERCHANT
    resource_id: Optional[str] = None


class CancellationResult(BaseModel):
    success: bool = True
    message: str = ""
    event_deleted: bool = False
    crm_synced: bool = True


class CalendarEvent(BaseModel):
    """Event written to a resource's calendar."""
    id: Optional[str] = None
    resource_id: str
    start: datetime
    end: datetime
    summary: str
    description: str = ""

    @property
    def duration(self) -> timedelta:
        return self.end - self.start
