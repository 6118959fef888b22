"""
Text builders for calendar events and staff notifications.

Plain string functions, so the wording can be tuned without touching the
booking flow.
"""

from datetime import date, datetime
from typing import Optional

from onboarding_scheduler.schemas.booking_schema import BookingType, MerchantDetails

DESCRIPTION_SEPARATOR = " | "


def build_event_summary(booking_type: BookingType, merchant_name: str) -> str:
    """Calendar event title, e.g. ``Installation: Kopi Corner``."""
    return f"{booking_type.value.capitalize()}: {merchant_name}"


def build_event_description(merchant: MerchantDetails) -> str:
    """Single-line event description with everything the resource needs on the day."""
    parts = [f"Merchant: {merchant.name}"]
    if merchant.store_address:
        parts.append(f"Store address: {merchant.store_address}")

    contact = merchant.contact
    if contact.name:
        details = [d for d in (contact.role, contact.phone, contact.email) if d]
        suffix = f" ({', '.join(details)})" if details else ""
        parts.append(f"Contact: {contact.name}{suffix}")

    if merchant.hardware:
        parts.append(f"Hardware: {', '.join(merchant.hardware)}")
    if merchant.required_features:
        parts.append(f"Features: {', '.join(merchant.required_features)}")
    if merchant.onboarding_summary:
        parts.append(f"Summary: {merchant.onboarding_summary}")
    if merchant.onboarding_manager:
        parts.append(f"Manager: {merchant.onboarding_manager}")
    return DESCRIPTION_SEPARATOR.join(parts)


def build_booking_notification(
    booking_type: BookingType,
    merchant_name: str,
    start: datetime,
    end: datetime,
    is_rescheduling: bool = False,
) -> tuple[str, str]:
    """Title and body for the message sent to the assigned resource."""
    action = "Rescheduled" if is_rescheduling else "New"
    title = f"{action} {booking_type.value} booking"
    body = (
        f"{merchant_name}: {booking_type.value} on {start:%A, %d %B %Y} "
        f"from {start:%H:%M} to {end:%H:%M}."
    )
    if is_rescheduling:
        body += " The previous appointment has been removed from your calendar."
    return title, body


def build_cancellation_notification(
    booking_type: BookingType, merchant_name: str, booked_date: date
) -> tuple[str, str]:
    title = f"Cancelled {booking_type.value} booking"
    body = f"{merchant_name}: {booking_type.value} on {booked_date:%A, %d %B %Y} was cancelled."
    return title, body


def build_vendor_request_message(
    vendor_name: str,
    contact_person: str,
    response_time: str,
) -> str:
    """Merchant-facing confirmation for an external vendor installation request."""
    return f"{contact_person} from {vendor_name} will contact you within {response_time}."


def build_vendor_manager_notification(
    merchant: MerchantDetails,
    requested_date: date,
    vendor_name: str,
    requested_slot: Optional[str] = None,
) -> tuple[str, str]:
    title = "External vendor installation request"
    when = f"{requested_date:%d %B %Y}"
    if requested_slot:
        when += f" ({requested_slot})"
    body = (
        f"{merchant.name} requested installation by {vendor_name} on {when}. "
        f"Store address: {merchant.store_address or 'not provided'}. "
        "Please coordinate with the vendor."
    )
    return title, body
