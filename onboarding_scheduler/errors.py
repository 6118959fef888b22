"""Error taxonomy for scheduling and booking failures.

Fatal kinds are raised to the caller. Non-fatal kinds
(``CALENDAR_DELETE_FAILED``, ``CRM_WRITE_FAILED``, ``NOTIFICATION_FAILED``,
``AUTHORIZATION_MISSING``) only ever show up in log messages and in result
flags. ``LOCATION_UNRESOLVED`` is logged on the read side, where availability
is simply empty, and raised when a booking is attempted.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories surfaced in logs and to API callers."""
    AUTHORIZATION_MISSING = "authorization_missing"
    LOCATION_UNRESOLVED = "location_unresolved"
    NO_QUALIFIED_RESOURCE = "no_qualified_resource"
    SLOT_NO_LONGER_AVAILABLE = "slot_no_longer_available"
    CALENDAR_WRITE_FAILED = "calendar_write_failed"
    CALENDAR_DELETE_FAILED = "calendar_delete_failed"
    CRM_READ_FAILED = "crm_read_failed"
    CRM_WRITE_FAILED = "crm_write_failed"
    NOTIFICATION_FAILED = "notification_failed"
    BOOKING_LOCKED = "booking_locked"


class SchedulingError(Exception):
    """Base error carrying a taxonomy kind and a short human-readable reason."""

    def __init__(self, kind: ErrorKind, reason: str):
        super().__init__(reason)
        self.kind = kind
        self.reason = reason

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "reason": self.reason}


class NoQualifiedResource(SchedulingError):
    """No free resource satisfies the required languages."""

    def __init__(self, reason: str = "No available resource speaks the required languages"):
        super().__init__(ErrorKind.NO_QUALIFIED_RESOURCE, reason)


class BookingError(SchedulingError):
    """A booking or cancellation could not be completed."""
