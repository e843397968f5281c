import logging
import sys
from datetime import date, datetime
from typing import List, Optional

from cowork_booking import client, config, scheduling
from cowork_booking.models import Navigation, Space, TimeSlot, UserSession
from cowork_booking.wizard import (
    BookingWizard,
    SelectPayment,
    SetDate,
    SetDuration,
    SetEndTime,
    SetGuests,
    SetStartTime,
    Transition,
)

logger = logging.getLogger(__name__)


def load_session() -> Optional[UserSession]:
    """Builds the user session from the configured session cookie, if any."""
    if not config.SESSION_TOKEN:
        return None
    return UserSession(token=config.SESSION_TOKEN, email=config.SESSION_EMAIL)


def parse_date(date_arg: Optional[str]) -> date:
    if not date_arg:
        return scheduling.now_local().date()
    try:
        return datetime.strptime(date_arg, "%Y-%m-%d").date()
    except ValueError:
        logger.error("Error: Date must be in YYYY-MM-DD format.")
        sys.exit(1)


def parse_clock(value: Optional[str], label: str) -> Optional[str]:
    if not value:
        return value
    try:
        return datetime.strptime(value, "%H:%M").strftime("%H:%M")
    except ValueError:
        logger.error(f"Error: {label} time must be in HH:MM format.")
        sys.exit(1)


def print_spaces(spaces: List[Space]):
    """Prints the space catalog to stdout."""
    print("\n--- Spaces ---")
    for space in spaces:
        print(
            f"{space.id}: {space.name} ({space.location}), up to {space.capacity} people, "
            f"{space.price_per_hour:g}/h, {space.price_per_day:g}/day"
        )


def print_slot_report(day: date, space: Space, slots: List[TimeSlot]):
    """Prints the start times offered for a space on a given day."""
    print(f"\n--- Slots for {space.name} on {day.isoformat()} ---")

    for slot in slots:
        prefix = "[AVAILABLE]" if slot.available else "[TOO LATE] "
        popular = " *" if slot.is_popular else ""
        print(f"{prefix} {slot.time}{popular}")

    bookable = [s for s in slots if s.available]
    if bookable:
        print(f"Summary: {len(bookable)} bookable start times on {day.isoformat()}.")
    else:
        print(f"Summary: No start times available on {day.isoformat()}.")


def print_errors(transition: Transition):
    for field_name, message in transition.errors.items():
        print(f"[ERROR] {field_name}: {message}")


def run(
    space_id: Optional[str] = None,
    date_str: Optional[str] = None,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    duration: int = 1,
    duration_type: str = "hour",
    guests: int = 1,
    payment_method: str = "onsite",
    list_spaces: bool = False,
) -> Optional[Navigation]:
    """Core orchestration logic. Loads the space catalog and walks one booking through the
    wizard, printing where the user would be sent at the end."""
    spaces = client.fetch_spaces()
    if not spaces:
        logger.error("No spaces available. Exiting.")
        sys.exit(1)

    if list_spaces or not space_id:
        print_spaces(spaces)
        return None

    space = next((s for s in spaces if s.id == space_id), None)
    if space is None:
        logger.error(f"Unknown space {space_id!r}. Use --list-spaces to see the catalog.")
        sys.exit(1)

    day = parse_date(date_str)
    start_time = parse_clock(start_time, "Start")
    end_time = parse_clock(end_time, "End")
    wizard = BookingWizard(spaces, space=space, user_session=load_session())
    # Drop today's prefilled times so the wizard proposes the first free slot of the requested day
    wizard.dispatch(SetStartTime(""))
    wizard.dispatch(SetEndTime(""))
    wizard.dispatch(SetDate(day))
    wizard.dispatch(SetDuration(duration, duration_type))
    if start_time:
        wizard.dispatch(SetStartTime(start_time))
        if not end_time:
            end_time = scheduling.default_end_time(start_time, scheduling.compute_available_slots(day, space))
    if end_time:
        wizard.dispatch(SetEndTime(end_time))

    print_slot_report(wizard.data.date, space, wizard.slots)

    transition = wizard.advance()
    if not transition.ok:
        print_errors(transition)
        return None

    if guests > space.capacity:
        logger.warning(f"{space.name} holds at most {space.capacity} people, booking for {space.capacity}")
    wizard.dispatch(SetGuests(guests))
    transition = wizard.advance()
    if not transition.ok:
        print_errors(transition)
        return None

    wizard.dispatch(SelectPayment(payment_method))
    data = wizard.data
    print(
        f"\nBooking {data.space.name} on {data.date.isoformat()} {data.start_time}-{data.end_time} "
        f"for {data.guests} guest(s), {data.payment_method} payment, total {data.total_price:g}"
    )

    navigation = wizard.confirm_booking()
    if navigation is None:
        print_errors(wizard.transition())
        return None

    print(f"Next: {navigation.kind} -> {navigation.url}")
    return navigation
