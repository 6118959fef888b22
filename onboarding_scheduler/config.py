"""
Centralized configuration with environment variable overrides.

Booking rules, lead times, cache TTLs and the external vendor identity are
configurable here. Scheduling logic reads them from ``settings`` instead of
hardcoding them.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from onboarding_scheduler.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class CalendarConfig:
    """Calendar provider settings."""

    calendar_id_cache_ttl_sec: int = _safe_int("CALENDAR_ID_CACHE_TTL", "300")
    fallback_calendar_id: str = os.getenv("FALLBACK_CALENDAR_ID", "primary")


@dataclass(frozen=True)
class BookingRulesConfig:
    """Lead times and windows applied to merchant bookings."""

    min_lead_days: int = _safe_int("MIN_LEAD_DAYS", "2")
    booking_window_days: int = _safe_int("BOOKING_WINDOW_DAYS", "30")
    reschedule_buffer_business_days: int = _safe_int("RESCHEDULE_BUFFER_BUSINESS_DAYS", "1")
    hardware_to_install_gap_days: int = _safe_int("HARDWARE_TO_INSTALL_GAP_DAYS", "1")


@dataclass(frozen=True)
class LocationConfig:
    """Minimum lead days per service-area category."""

    lead_days_klang_valley: int = _safe_int("LEAD_DAYS_KLANG_VALLEY", "2")
    lead_days_penang: int = _safe_int("LEAD_DAYS_PENANG", "2")
    lead_days_johor_bahru: int = _safe_int("LEAD_DAYS_JOHOR_BAHRU", "2")
    lead_days_outside: int = _safe_int("LEAD_DAYS_OUTSIDE", "2")


@dataclass(frozen=True)
class VendorConfig:
    """External installation vendor shown to merchants outside our coverage."""

    name: str = os.getenv("EXTERNAL_VENDOR_NAME", "Surftek")
    contact_person: str = os.getenv("EXTERNAL_VENDOR_CONTACT", "Vendor Coordinator")
    response_time: str = os.getenv("EXTERNAL_VENDOR_RESPONSE_TIME", "2 business days")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    calendar: CalendarConfig = field(default_factory=CalendarConfig)
    booking: BookingRulesConfig = field(default_factory=BookingRulesConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    vendor: VendorConfig = field(default_factory=VendorConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "onboarding-scheduler")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.calendar.calendar_id_cache_ttl_sec < 0:
        raise ValueError(
            "CALENDAR_ID_CACHE_TTL must be >= 0, "
            f"got {config.calendar.calendar_id_cache_ttl_sec}"
        )
    if not config.calendar.fallback_calendar_id.strip():
        raise ValueError("FALLBACK_CALENDAR_ID must not be empty")
    if config.booking.booking_window_days < 1:
        raise ValueError(
            f"BOOKING_WINDOW_DAYS must be >= 1, got {config.booking.booking_window_days}"
        )
    if config.booking.reschedule_buffer_business_days < 0:
        raise ValueError(
            "RESCHEDULE_BUFFER_BUSINESS_DAYS must be >= 0, "
            f"got {config.booking.reschedule_buffer_business_days}"
        )

    for name, value in [
        ("MIN_LEAD_DAYS", config.booking.min_lead_days),
        ("HARDWARE_TO_INSTALL_GAP_DAYS", config.booking.hardware_to_install_gap_days),
        ("LEAD_DAYS_KLANG_VALLEY", config.location.lead_days_klang_valley),
        ("LEAD_DAYS_PENANG", config.location.lead_days_penang),
        ("LEAD_DAYS_JOHOR_BAHRU", config.location.lead_days_johor_bahru),
        ("LEAD_DAYS_OUTSIDE", config.location.lead_days_outside),
    ]:
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
