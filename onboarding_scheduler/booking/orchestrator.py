"""
Booking transaction orchestration.

Runs a booking, reschedule or cancellation against the calendar provider and
the CRM. Neither system is transactional with the other, so each step has a
fixed failure policy:

    reschedule inside buffer      fatal   (BOOKING_LOCKED)
    re-validate window and slot   fatal   (SLOT_NO_LONGER_AVAILABLE)
    unresolved merchant location  fatal   (LOCATION_UNRESOLVED)
    delete previous event         logged  (CALENDAR_DELETE_FAILED)
    create calendar event         fatal   (CALENDAR_WRITE_FAILED)
    CRM write-back                logged  (CRM_WRITE_FAILED, crm_synced=False)
    notify assigned resource      logged  (NOTIFICATION_FAILED)

The calendar event is the operational source of truth: a booking that exists
on the calendar but not yet in the CRM is preferable to the reverse.
"""

import random
from datetime import date, time, timedelta
from typing import Callable, NamedTuple, Optional

from onboarding_scheduler.config import settings
from onboarding_scheduler.constraints.window import compute_window, is_booking_locked
from onboarding_scheduler.errors import BookingError, ErrorKind
from onboarding_scheduler.logging_context import get_request_logger, set_request_id
from onboarding_scheduler.prompts.event_templates import (
    build_booking_notification,
    build_cancellation_notification,
    build_event_description,
    build_event_summary,
    build_vendor_manager_notification,
    build_vendor_request_message,
)
from onboarding_scheduler.providers.base import CalendarProvider, CrmGateway, Notifier
from onboarding_scheduler.schemas.availability_schema import (
    AvailabilityFilters,
    DayAvailability,
    SlotTemplate,
)
from onboarding_scheduler.schemas.booking_schema import (
    ActorClass,
    BookingRequest,
    BookingResult,
    BookingStatus,
    BookingType,
    BookingWindow,
    CalendarEvent,
    CancellationRequest,
    CancellationResult,
    DependencyDates,
    MerchantDetails,
)
from onboarding_scheduler.schemas.resource_schema import LocationCategory, Resource, ResourceKind
from onboarding_scheduler.tools.assignment import assign_installer, assign_resource
from onboarding_scheduler.tools.availability import compute_availability, select_resources
from onboarding_scheduler.tools.busy_time import BusyTimeAggregator
from onboarding_scheduler.tools.calendar_ids import CalendarIdResolver
from onboarding_scheduler.tools.location import resolve_location
from onboarding_scheduler.tools.service_type import detect_service_type, should_filter_by_location
from onboarding_scheduler.tools.slots import find_template, requires_extended_slot
from onboarding_scheduler.utils import at_sgt, sgt_today

logger = get_request_logger(__name__)

RESOURCE_KIND = {
    BookingType.INSTALLATION: ResourceKind.INSTALLER,
    BookingType.TRAINING: ResourceKind.TRAINER,
}


class BookingContext(NamedTuple):
    """Per-merchant inputs derived from the CRM record."""

    filters: AvailabilityFilters
    location_category: Optional[LocationCategory]
    lead_days: int
    is_external_vendor: bool


def is_vendor_name(value: Optional[str]) -> bool:
    if not value:
        return False
    cleaned = value.strip().lower()
    return cleaned in ("external vendor", settings.vendor.name.lower())


class BookingOrchestrator:
    """Entry point for availability, booking windows, bookings and cancellations."""

    def __init__(
        self,
        calendar: CalendarProvider,
        crm: CrmGateway,
        notifier: Notifier,
        calendar_ids: Optional[CalendarIdResolver] = None,
        rng: Optional[random.Random] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self._calendar = calendar
        self._crm = crm
        self._notifier = notifier
        self.calendar_ids = calendar_ids or CalendarIdResolver(calendar)
        self.aggregator = BusyTimeAggregator(calendar, self.calendar_ids)
        self._rng = rng or random.Random()
        self._today = today or sgt_today

    # ------------------------------------------------------------------ #
    # Read side
    # ------------------------------------------------------------------ #

    async def _availability_for_pool(
        self,
        pool: list[Resource],
        filters: AvailabilityFilters,
        start_date: date,
        end_date: date,
    ) -> list[DayAvailability]:
        if filters.location_required and filters.location_category is None:
            logger.info(
                "[%s] Location-restricted availability without a location; returning nothing",
                ErrorKind.LOCATION_UNRESOLVED.value,
            )
            return []
        selected = select_resources(pool, filters)
        range_start = at_sgt(start_date, time.min)
        range_end = at_sgt(end_date + timedelta(days=1), time.min)
        busy = await self.aggregator.fetch_busy([r.id for r in selected], range_start, range_end)
        return compute_availability(selected, busy, start_date, end_date, filters)

    @staticmethod
    def _effective_filters(filters: AvailabilityFilters, actor: ActorClass) -> AvailabilityFilters:
        if actor == ActorClass.INTERNAL and not filters.include_weekends:
            return filters.model_copy(update={"include_weekends": True})
        return filters

    async def get_availability(
        self,
        pool_filter: AvailabilityFilters,
        start_date: date,
        end_date: date,
        actor: ActorClass = ActorClass.MERCHANT,
    ) -> list[DayAvailability]:
        """Availability of the filtered resource pool for each day in the range."""
        filters = self._effective_filters(pool_filter, actor)
        pool = await self._crm.list_resources(filters.kind)
        return await self._availability_for_pool(pool, filters, start_date, end_date)

    def get_booking_window(
        self,
        booking_type: BookingType,
        actor: ActorClass,
        deps: Optional[DependencyDates] = None,
        is_rescheduling: bool = False,
        is_external_vendor: bool = False,
        lead_days: Optional[int] = None,
    ) -> BookingWindow:
        return compute_window(
            booking_type,
            actor,
            deps,
            is_rescheduling=is_rescheduling,
            is_external_vendor=is_external_vendor,
            today=self._today(),
            lead_days=lead_days,
        )

    def booking_context(self, merchant: MerchantDetails, booking_type: BookingType) -> BookingContext:
        """Derive filters, lead time and vendor routing for a merchant.

        A merchant with neither an address nor a CRM category has no location;
        location-restricted availability is then empty and booking is refused.
        """
        crm_category = merchant.location_category.value if merchant.location_category else None
        if crm_category is None and not merchant.address_for_location.strip():
            category = None
            lead_days = settings.booking.min_lead_days
        else:
            category, lead_days = resolve_location(merchant.address_for_location, crm_category)

        if booking_type == BookingType.INSTALLATION:
            if merchant.assigned_installer:
                external = is_vendor_name(merchant.assigned_installer)
            else:
                external = category == LocationCategory.OUTSIDE_SERVICE_AREA
            filters = AvailabilityFilters(
                kind=ResourceKind.INSTALLER,
                location_category=category,
                location_required=True,
            )
        else:
            external = False
            service_type = detect_service_type(merchant.onboarding_services)
            location_required = should_filter_by_location(service_type, booking_type)
            filters = AvailabilityFilters(
                kind=ResourceKind.TRAINER,
                location_category=category if location_required else None,
                location_required=location_required,
                extended_slot=requires_extended_slot(merchant.required_features),
            )
        return BookingContext(filters, category, lead_days, external)

    async def _load_merchant(self, merchant_id: str) -> MerchantDetails:
        try:
            return await self._crm.get_merchant(merchant_id)
        except Exception as e:
            logger.error("[%s] Could not load merchant %s: %s", ErrorKind.CRM_READ_FAILED.value, merchant_id, e)
            raise BookingError(ErrorKind.CRM_READ_FAILED, "Could not load the merchant record") from e

    @staticmethod
    def _existing_booking(merchant: MerchantDetails, booking_type: BookingType):
        if booking_type == BookingType.INSTALLATION:
            return (
                merchant.installation_event_id,
                merchant.installer_id,
                merchant.dependencies.installation_date,
            )
        return merchant.training_event_id, merchant.trainer_id, merchant.dependencies.training_date

    async def get_merchant_availability(
        self,
        merchant_id: str,
        booking_type: BookingType,
        actor: ActorClass = ActorClass.MERCHANT,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        resource_id: Optional[str] = None,
    ) -> list[DayAvailability]:
        """Availability for one merchant, clamped to its booking window.

        External-vendor installations have no calendar to read and return
        nothing; callers show the booking window instead.
        """
        merchant = await self._load_merchant(merchant_id)
        context = self.booking_context(merchant, booking_type)
        if context.is_external_vendor:
            logger.info("Merchant %s routes to external vendor; no calendar availability", merchant_id)
            return []

        event_id, _, _ = self._existing_booking(merchant, booking_type)
        window = self.get_booking_window(
            booking_type,
            actor,
            merchant.dependencies,
            is_rescheduling=bool(event_id),
            lead_days=context.lead_days,
        )
        if window.is_empty:
            return []

        start = start_date or window.min_date
        end = end_date or window.max_date or start + timedelta(days=settings.booking.booking_window_days)
        bounds = window.clamp(start, end)
        if bounds is None:
            return []

        filters = context.filters
        if resource_id:
            filters = filters.model_copy(update={"resource_id": resource_id})
        days = await self.get_availability(filters, bounds[0], bounds[1], actor)
        return [day for day in days if window.contains(day.date)]

    # ------------------------------------------------------------------ #
    # Write side
    # ------------------------------------------------------------------ #

    async def _notify(self, recipient_id: Optional[str], title: str, body: str) -> bool:
        if not recipient_id:
            logger.warning("[%s] No recipient for '%s'", ErrorKind.NOTIFICATION_FAILED.value, title)
            return False
        try:
            await self._notifier.notify(recipient_id, body, title=title)
            return True
        except Exception:
            logger.warning(
                "[%s] Could not notify %s", ErrorKind.NOTIFICATION_FAILED.value, recipient_id,
                exc_info=True,
            )
            return False

    async def _record_in_crm(
        self, merchant_id: str, booking_type: BookingType, result: BookingResult
    ) -> bool:
        try:
            await self._crm.record_booking(merchant_id, booking_type, result)
            return True
        except Exception:
            logger.warning(
                "[%s] Booking %s saved to calendar but not to CRM for %s",
                ErrorKind.CRM_WRITE_FAILED.value, result.event_id, merchant_id, exc_info=True,
            )
            return False

    async def _delete_event_anywhere(
        self,
        event_id: str,
        pool: list[Resource],
        known_resource_id: Optional[str] = None,
    ) -> bool:
        """Delete an event from whichever active resource's calendar holds it.

        The known owner is tried first, then every other active resource in
        the pool. Returns False when no calendar had it.
        """
        candidates = [known_resource_id] if known_resource_id else []
        candidates += [r.id for r in pool if r.active]
        tried = 0
        for resource_id in dict.fromkeys(candidates):
            calendar_id = await self.calendar_ids.resolve(resource_id)
            if calendar_id == self.calendar_ids.fallback_calendar_id:
                logger.debug("Skipping %s: no calendar id of its own", resource_id)
                continue
            tried += 1
            try:
                await self._calendar.delete_event(calendar_id, event_id)
            except Exception as e:
                logger.debug("Event %s not deleted from %s: %s", event_id, calendar_id, e)
                continue
            logger.info("Deleted previous event %s from %s", event_id, resource_id)
            return True
        logger.warning(
            "[%s] Event %s not found on any of %d calendars; continuing",
            ErrorKind.CALENDAR_DELETE_FAILED.value, event_id, tried,
        )
        return False

    def _pick_resource(
        self,
        request: BookingRequest,
        merchant: MerchantDetails,
        free: list[Resource],
    ) -> Resource:
        if request.selected_resource_id:
            if request.actor == ActorClass.INTERNAL:
                wanted = request.selected_resource_id.lower()
                for resource in free:
                    if resource.id.lower() == wanted:
                        logger.info("Using manually selected resource %s", resource.id)
                        return resource
                raise BookingError(
                    ErrorKind.SLOT_NO_LONGER_AVAILABLE,
                    "The selected resource is no longer free for this slot",
                )
            logger.info("Ignoring resource selection from non-internal actor")

        if request.booking_type == BookingType.INSTALLATION:
            return assign_installer(free, rng=self._rng)
        languages = request.required_languages or merchant.required_languages
        return assign_resource(free, languages, rng=self._rng)

    async def _submit_vendor_request(
        self,
        request: BookingRequest,
        merchant: MerchantDetails,
        template: SlotTemplate,
    ) -> BookingResult:
        vendor = settings.vendor
        result = BookingResult(
            status=BookingStatus.REQUEST_SUBMITTED,
            message=build_vendor_request_message(vendor.name, vendor.contact_person, vendor.response_time),
            resource_name=vendor.name,
            booked_date=request.date,
            start=at_sgt(request.date, template.start),
            end=at_sgt(request.date, template.end),
        )
        result.crm_synced = await self._record_in_crm(merchant.id, request.booking_type, result)
        title, body = build_vendor_manager_notification(merchant, request.date, vendor.name, template.label)
        await self._notify(merchant.onboarding_manager_id, title, body)
        logger.info("External vendor request submitted for %s on %s", merchant.id, request.date)
        return result

    async def book(self, request: BookingRequest) -> BookingResult:
        """Book or reschedule an appointment.

        Raises BookingError for stale or invalid requests and calendar write
        failures, and NoQualifiedResource when nobody free can take the slot.
        """
        set_request_id()
        merchant = await self._load_merchant(request.merchant_id)
        context = self.booking_context(merchant, request.booking_type)
        stored_event_id, stored_resource_id, booked_date = self._existing_booking(
            merchant, request.booking_type
        )
        if not request.existing_event_id and stored_event_id:
            logger.info("Merchant %s already has event %s; treating as reschedule", merchant.id, stored_event_id)
            request = request.model_copy(update={"existing_event_id": stored_event_id})
        logger.info(
            "Booking %s for %s on %s at %s (actor=%s, reschedule=%s)",
            request.booking_type.value, request.merchant_id, request.date,
            request.slot_start.strftime("%H:%M"), request.actor.value, request.is_rescheduling,
        )

        if request.is_rescheduling and booked_date is not None:
            if is_booking_locked(booked_date, request.actor, self._today()):
                raise BookingError(
                    ErrorKind.BOOKING_LOCKED,
                    "This booking is too close to change; please contact your onboarding manager",
                )

        window = self.get_booking_window(
            request.booking_type,
            request.actor,
            merchant.dependencies,
            is_rescheduling=request.is_rescheduling,
            is_external_vendor=context.is_external_vendor,
            lead_days=context.lead_days,
        )
        if not window.contains(request.date):
            logger.info("Rejecting %s: outside window (%s)", request.date, window.reason or "empty")
            raise BookingError(
                ErrorKind.SLOT_NO_LONGER_AVAILABLE,
                f"{request.date:%d %B %Y} is no longer bookable",
            )

        template = find_template(request.date, request.slot_start, context.filters.extended_slot)
        if template is None:
            raise BookingError(
                ErrorKind.SLOT_NO_LONGER_AVAILABLE,
                f"{request.slot_start:%H:%M} is not a bookable time on {request.date:%d %B %Y}",
            )

        if context.is_external_vendor:
            return await self._submit_vendor_request(request, merchant, template)

        if context.filters.location_required and context.filters.location_category is None:
            raise BookingError(
                ErrorKind.LOCATION_UNRESOLVED,
                "The store location is unresolved; please add a store address or location",
            )

        pool = await self._crm.list_resources(context.filters.kind)
        filters = self._effective_filters(context.filters, request.actor)
        days = await self._availability_for_pool(pool, filters, request.date, request.date)
        slot = next(
            (s for day in days for s in day.slots if s.template.start == template.start),
            None,
        )
        if slot is None or not slot.available:
            raise BookingError(
                ErrorKind.SLOT_NO_LONGER_AVAILABLE,
                "That slot has just been taken; please pick another time",
            )

        by_id = {r.id: r for r in pool}
        resource = self._pick_resource(request, merchant, [by_id[rid] for rid in slot.free_resources])
        start = at_sgt(request.date, template.start)
        end = at_sgt(request.date, template.end)
        calendar_id = await self.calendar_ids.resolve(resource.id)

        previous_deleted = None
        if request.is_rescheduling:
            previous_deleted = await self._delete_event_anywhere(
                request.existing_event_id,
                pool,
                request.previous_resource_id or stored_resource_id,
            )

        event = CalendarEvent(
            resource_id=resource.id,
            start=start,
            end=end,
            summary=build_event_summary(request.booking_type, merchant.name),
            description=build_event_description(merchant),
        )
        try:
            event_id = await self._calendar.create_event(calendar_id, event)
        except Exception as e:
            logger.error(
                "[%s] Could not create event on %s for %s: %s",
                ErrorKind.CALENDAR_WRITE_FAILED.value, calendar_id, resource.id, e,
            )
            raise BookingError(
                ErrorKind.CALENDAR_WRITE_FAILED,
                "Could not save the appointment to the calendar; please try again",
            ) from e

        result = BookingResult(
            status=BookingStatus.CONFIRMED,
            message=f"{event.summary} booked with {resource.display_name} "
                    f"on {start:%d %B %Y} at {start:%H:%M}.",
            resource_id=resource.id,
            resource_name=resource.display_name,
            event_id=event_id,
            booked_date=request.date,
            start=start,
            end=end,
            previous_event_deleted=previous_deleted,
        )
        result.crm_synced = await self._record_in_crm(merchant.id, request.booking_type, result)

        title, body = build_booking_notification(
            request.booking_type, merchant.name, start, end, request.is_rescheduling,
        )
        await self._notify(resource.id, title, body)
        logger.info("Booked %s with %s (event %s)", request.booking_type.value, resource.id, event_id)
        return result

    async def cancel(self, request: CancellationRequest) -> CancellationResult:
        """Cancel an existing appointment.

        Merchants cannot cancel inside the reschedule buffer. The lock is
        checked against the date stored in the CRM; the request's date is only
        used when the CRM has none. The event delete, CRM update and
        notification are all best-effort.
        """
        set_request_id()
        merchant = await self._load_merchant(request.merchant_id)
        _, stored_resource_id, stored_date = self._existing_booking(merchant, request.booking_type)
        booked_date = stored_date or request.booked_date
        if stored_date and stored_date != request.booked_date:
            logger.info(
                "Cancellation for %s names %s but CRM has %s; using CRM date",
                merchant.id, request.booked_date, stored_date,
            )
        if is_booking_locked(booked_date, request.actor, self._today()):
            raise BookingError(
                ErrorKind.BOOKING_LOCKED,
                "This booking is too close to cancel; please contact your onboarding manager",
            )

        known_resource = request.resource_id or stored_resource_id
        pool = await self._crm.list_resources(RESOURCE_KIND[request.booking_type])
        deleted = await self._delete_event_anywhere(request.event_id, pool, known_resource)

        crm_synced = True
        try:
            await self._crm.clear_booking(merchant.id, request.booking_type)
        except Exception:
            crm_synced = False
            logger.warning(
                "[%s] Could not clear %s booking for %s",
                ErrorKind.CRM_WRITE_FAILED.value, request.booking_type.value, merchant.id,
                exc_info=True,
            )

        if known_resource:
            title, body = build_cancellation_notification(
                request.booking_type, merchant.name, booked_date,
            )
            await self._notify(known_resource, title, body)

        logger.info("Cancelled %s event %s for %s", request.booking_type.value, request.event_id, merchant.id)
        return CancellationResult(
            success=True,
            message=f"{request.booking_type.value.capitalize()} on {booked_date:%d %B %Y} cancelled.",
            event_deleted=deleted,
            crm_synced=crm_synced,
        )
