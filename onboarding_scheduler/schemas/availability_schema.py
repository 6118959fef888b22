"""Slot and availability data models."""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from onboarding_scheduler.schemas.resource_schema import LocationCategory, ResourceKind


class SlotTemplate(BaseModel):
    """Wall-clock start/end of a bookable session, in business-local time."""
    model_config = ConfigDict(frozen=True)

    start: time
    end: time

    @property
    def label(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"

    @property
    def duration_minutes(self) -> int:
        return (self.end.hour * 60 + self.end.minute) - (self.start.hour * 60 + self.start.minute)


class SlotAvailability(BaseModel):
    """One slot on one day, annotated with who can serve it."""
    template: SlotTemplate
    date: date
    available: bool
    free_resources: list[str] = Field(default_factory=list)
    free_languages: list[str] = Field(default_factory=list)
    free_locations: list[LocationCategory] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_available_matches_resources(self) -> "SlotAvailability":
        if self.available != bool(self.free_resources):
            raise ValueError("available must be true exactly when free_resources is non-empty")
        return self


class DayAvailability(BaseModel):
    date: date
    slots: list[SlotAvailability] = Field(default_factory=list)

    @property
    def has_availability(self) -> bool:
        return any(slot.available for slot in self.slots)


class AvailabilityFilters(BaseModel):
    """Restrictions applied when computing availability for a resource pool."""
    kind: ResourceKind = ResourceKind.TRAINER
    resource_id: Optional[str] = None
    location_category: Optional[LocationCategory] = None
    location_required: bool = False
    include_weekends: bool = False
    extended_slot: bool = False
