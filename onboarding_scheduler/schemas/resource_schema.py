"""Resource pool and calendar data models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ResourceKind(str, Enum):
    TRAINER = "trainer"
    INSTALLER = "installer"


class LocationCategory(str, Enum):
    """Service-area buckets. Values match the labels stored on CRM records."""
    KLANG_VALLEY = "Within Klang Valley"
    PENANG = "Penang"
    JOHOR_BAHRU = "Johor Bahru"
    OUTSIDE_SERVICE_AREA = "Outside of Klang Valley"


class Resource(BaseModel):
    """A trainer or installer whose availability lives in an external calendar."""
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    kind: ResourceKind
    languages: list[str] = Field(default_factory=list)
    location_categories: list[LocationCategory] = Field(default_factory=list)
    authorized: bool = False
    active: bool = True
    calendar_id: Optional[str] = None

    def speaks_all(self, required: list[str]) -> bool:
        spoken = {lang.strip().lower() for lang in self.languages}
        return all(lang.strip().lower() in spoken for lang in required)


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("datetime must be timezone-aware")
    return value


class BusyInterval(BaseModel):
    """Half-open busy interval ``[start, end)`` for one resource."""
    model_config = ConfigDict(frozen=True)

    resource_id: str
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)

    @model_validator(mode="after")
    def check_order(self) -> "BusyInterval":
        if self.end <= self.start:
            raise ValueError("busy interval end must be after start")
        return self

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """True when this interval intersects ``[start, end)``. Touching edges do not count."""
        return self.start < end and self.end > start


class RawCalendarEvent(BaseModel):
    """Calendar event as listed by the provider, before recurrence expansion."""
    id: str
    start: datetime
    end: datetime
    status: str = "confirmed"
    free_busy_status: str = "busy"
    recurrence: Optional[str] = None
    summary: str = ""

    @field_validator("start", "end")
    @classmethod
    def check_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)

    @property
    def blocks_time(self) -> bool:
        return self.status != "cancelled" and self.free_busy_status != "free"

    @property
    def is_recurring(self) -> bool:
        return bool(self.recurrence and self.recurrence.strip())
