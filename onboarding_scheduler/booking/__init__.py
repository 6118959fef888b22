from onboarding_scheduler.booking.orchestrator import BookingContext, BookingOrchestrator

__all__ = ["BookingOrchestrator", "BookingContext"]
