from onboarding_scheduler.constraints.window import (
    compute_window,
    is_booking_locked,
    is_date_bookable,
)

__all__ = ["compute_window", "is_booking_locked", "is_date_bookable"]
