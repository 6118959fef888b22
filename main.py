"""
Scheduling engine command-line demo.

Runs availability and booking-window queries against in-memory calendar and
CRM providers seeded from a JSON file.

Usage:
    python main.py availability --merchant M-1001 --type training
    python main.py availability --type installation --location "Within Klang Valley" --start 2025-12-01 --end 2025-12-05
    python main.py window --merchant M-1001 --type training --reschedule
    python main.py book --merchant M-1001 --type installation --date 2025-12-03 --slot 10:00
"""

import argparse
import asyncio
import sys
from datetime import date, time
from pathlib import Path

from onboarding_scheduler.booking import BookingOrchestrator
from onboarding_scheduler.config import settings
from onboarding_scheduler.errors import SchedulingError
from onboarding_scheduler.providers.memory import InMemoryCrm, InMemoryNotifier, load_demo
from onboarding_scheduler.schemas.availability_schema import AvailabilityFilters, DayAvailability
from onboarding_scheduler.schemas.booking_schema import ActorClass, BookingRequest, BookingType
from onboarding_scheduler.schemas.resource_schema import ResourceKind
from onboarding_scheduler.tools.location import parse_category

DEFAULT_DATA = Path(__file__).parent / "data" / "demo_pool.json"


def _print_days(days: list[DayAvailability]) -> None:
    if not days:
        print("No bookable dates.")
        return
    for day in days:
        print(f"{day.date:%a %d %b %Y}")
        for slot in day.slots:
            if slot.available:
                langs = ", ".join(slot.free_languages) or "-"
                print(f"  {slot.template.label}  {len(slot.free_resources)} free  [{langs}]")
            else:
                print(f"  {slot.template.label}  full")


def _build(args: argparse.Namespace) -> tuple[BookingOrchestrator, InMemoryCrm]:
    calendar, crm = load_demo(args.data)
    return BookingOrchestrator(calendar, crm, InMemoryNotifier()), crm


async def _availability(args: argparse.Namespace) -> int:
    orchestrator, _ = _build(args)
    actor = ActorClass(args.actor)
    booking_type = BookingType(args.type)
    if args.merchant:
        days = await orchestrator.get_merchant_availability(
            args.merchant, booking_type, actor, args.start, args.end, args.resource,
        )
    else:
        if not (args.start and args.end):
            print("--start and --end are required without --merchant", file=sys.stderr)
            return 2
        category = parse_category(args.location)
        filters = AvailabilityFilters(
            kind=ResourceKind.INSTALLER if booking_type == BookingType.INSTALLATION else ResourceKind.TRAINER,
            resource_id=args.resource,
            location_category=category,
            location_required=args.location is not None,
        )
        days = await orchestrator.get_availability(filters, args.start, args.end, actor)
    _print_days(days)
    return 0


async def _window(args: argparse.Namespace) -> int:
    orchestrator, crm = _build(args)
    merchant = await crm.get_merchant(args.merchant)
    booking_type = BookingType(args.type)
    context = orchestrator.booking_context(merchant, booking_type)
    window = orchestrator.get_booking_window(
        booking_type,
        ActorClass(args.actor),
        merchant.dependencies,
        is_rescheduling=args.reschedule,
        is_external_vendor=context.is_external_vendor,
        lead_days=context.lead_days,
    )
    if window.is_empty:
        print(f"Empty window: {window.reason}")
    else:
        print(f"{window.min_date} to {window.max_date or 'open'} ({window.reason})")
    return 0


async def _book(args: argparse.Namespace) -> int:
    orchestrator, _ = _build(args)
    request = BookingRequest(
        merchant_id=args.merchant,
        booking_type=BookingType(args.type),
        date=args.date,
        slot_start=args.slot,
        actor=ActorClass(args.actor),
        existing_event_id=args.existing_event,
    )
    try:
        result = await orchestrator.book(request)
    except SchedulingError as e:
        print(f"Booking failed [{e.kind.value}]: {e.reason}", file=sys.stderr)
        return 1
    print(result.message)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"{settings.service_name} demo")
    parser.add_argument("--data", type=Path, default=DEFAULT_DATA, help="Seed JSON for in-memory providers")
    parser.add_argument("--actor", choices=[a.value for a in ActorClass], default=ActorClass.MERCHANT.value)
    sub = parser.add_subparsers(dest="command", required=True)

    avail = sub.add_parser("availability", help="Show slot availability")
    avail.add_argument("--merchant")
    avail.add_argument("--type", choices=[t.value for t in BookingType], default=BookingType.TRAINING.value)
    avail.add_argument("--start", type=date.fromisoformat)
    avail.add_argument("--end", type=date.fromisoformat)
    avail.add_argument("--resource", help="Single-resource view")
    avail.add_argument("--location", help="Location category label")

    window = sub.add_parser("window", help="Show the booking window for a merchant")
    window.add_argument("--merchant", required=True)
    window.add_argument("--type", choices=[t.value for t in BookingType], default=BookingType.TRAINING.value)
    window.add_argument("--reschedule", action="store_true")

    book = sub.add_parser("book", help="Book a slot")
    book.add_argument("--merchant", required=True)
    book.add_argument("--type", choices=[t.value for t in BookingType], required=True)
    book.add_argument("--date", type=date.fromisoformat, required=True)
    book.add_argument("--slot", type=time.fromisoformat, required=True, help="Slot start, e.g. 10:00")
    book.add_argument("--existing-event", help="Event id being rescheduled")
    return parser


COMMANDS = {"availability": _availability, "window": _window, "book": _book}


def main(argv=None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        return asyncio.run(COMMANDS[args.command](args))
    except KeyError as e:
        print(f"Not found: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
