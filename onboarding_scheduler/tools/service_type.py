"""Training delivery mode detection from the CRM's onboarding services text."""

from enum import Enum
from typing import Optional

from onboarding_scheduler.schemas.booking_schema import BookingType


class ServiceType(str, Enum):
    ONSITE = "onsite"
    REMOTE = "remote"
    NONE = "none"


ONSITE_KEYWORDS = ("onsite", "on-site", "on site")
REMOTE_KEYWORDS = ("remote", "online", "virtual")


def detect_service_type(onboarding_services: Optional[str]) -> ServiceType:
    """Classify the merchant's purchased onboarding services.

    Examples:
        >>> detect_service_type("Onsite Training, Installation")
        <ServiceType.ONSITE: 'onsite'>
        >>> detect_service_type("Remote Training")
        <ServiceType.REMOTE: 'remote'>
    """
    if not onboarding_services:
        return ServiceType.NONE
    text = onboarding_services.lower()
    if any(keyword in text for keyword in ONSITE_KEYWORDS):
        return ServiceType.ONSITE
    if any(keyword in text for keyword in REMOTE_KEYWORDS):
        return ServiceType.REMOTE
    return ServiceType.NONE


def should_filter_by_location(service_type: ServiceType, booking_type: BookingType) -> bool:
    """Installers always travel; trainers only do for onsite training."""
    if booking_type == BookingType.INSTALLATION:
        return True
    return service_type == ServiceType.ONSITE
