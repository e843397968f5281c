import calendar
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

from cowork_booking import config
from cowork_booking.models import BookingData, Closed, Space, TimeSlot

logger = logging.getLogger(__name__)


def to_minutes(clock: str) -> int:
    """Converts an HH:MM string to minutes since midnight."""
    hours, minutes = clock.split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def now_local() -> datetime:
    return datetime.now(config.TIMEZONE)


def default_slots() -> List[TimeSlot]:
    return [
        TimeSlot(time=t, available=True, is_popular=t in config.DEFAULT_POPULAR_TIMES)
        for t in config.DEFAULT_SLOT_TIMES
    ]


def compute_available_slots(day: Optional[date], space: Optional[Space]) -> List[TimeSlot]:
    """Generates the bookable start times for a space on a given day.

    Falls back to the default slot list when the schedule cannot be determined,
    and returns an empty list when the space is closed that day.
    """
    if day is None or space is None or space.opening_hours is None:
        return default_slots()

    schedule = space.opening_hours.for_day(day)
    if schedule is None:
        logger.debug(f"No opening hours for {space.id} on {day:%A}, using default slots")
        return default_slots()
    if isinstance(schedule, Closed):
        logger.debug(f"{space.id} is closed on {day:%A}")
        return []

    current = to_minutes(schedule.open)
    close = to_minutes(schedule.close)
    slots = []
    while current < close:
        time_str = from_minutes(current)
        slots.append(TimeSlot(time=time_str, available=True, is_popular=time_str in config.POPULAR_TIMES))
        current += config.SLOT_STEP_MINUTES

    if not slots:
        logger.warning(f"Opening hours {schedule.open}-{schedule.close} for {space.id} yield no slots, using default")
        return default_slots()

    logger.debug(f"Generated {len(slots)} slots for {space.id} on {day}")
    return slots


def is_time_slot_available(time_slot: str, day: Optional[date], now: Optional[datetime] = None) -> bool:
    """Checks the same-day lead time: today's slots must start at least an hour from now."""
    if day is None:
        return False
    now = now or now_local()
    if day != now.date():
        return True

    hours, minutes = time_slot.split(":")
    slot_time = now.replace(hour=int(hours), minute=int(minutes), second=0, microsecond=0)
    return slot_time >= now + timedelta(minutes=config.LEAD_TIME_MINUTES)


def first_available_time(day: Optional[date], space: Optional[Space], now: Optional[datetime] = None) -> str:
    if day is None:
        return ""
    for slot in compute_available_slots(day, space):
        if slot.available and is_time_slot_available(slot.time, day, now):
            return slot.time
    return ""


def default_end_time(start_time: str, slots: List[TimeSlot]) -> str:
    """Proposes an end time a couple of hours after the start, capped at the last slot's hour."""
    if not start_time:
        return ""
    hours, minutes = start_time.split(":")
    end_hours = int(hours) + config.DEFAULT_SPAN_HOURS
    last_slot = slots[-1].time if slots else "18:00"
    end_hours = min(end_hours, int(last_slot.split(":")[0]))

    end_time = f"{end_hours:02d}:{minutes}"
    if to_minutes(end_time) <= to_minutes(start_time):
        return ""
    return end_time


def duration_hours(start_time: str, end_time: str) -> float:
    """Hours between two clock times. An end at or before the start spans midnight."""
    if not start_time or not end_time:
        return 0
    start = to_minutes(start_time)
    end = to_minutes(end_time)
    minutes = end - start if end > start else 24 * 60 - start + end
    return round(minutes / 60, 2)


def calculate_price(data: BookingData) -> float:
    space = data.space
    if space is None:
        return 0

    if data.duration_type == "hour":
        if data.start_time and data.end_time:
            return space.price_per_hour * duration_hours(data.start_time, data.end_time)
        return space.price_per_hour * data.duration
    if data.duration_type == "day":
        return space.price_per_day * data.duration
    if data.duration_type == "week":
        return space.price_per_week * data.duration
    if data.duration_type == "month":
        return space.price_per_month * data.duration
    return 0


def booked_hours(data: BookingData) -> float:
    """Duration sent to the booking API: computed hours for hourly bookings, the raw count otherwise."""
    if data.duration_type == "hour" and data.start_time and data.end_time:
        return duration_hours(data.start_time, data.end_time)
    return data.duration


def selectable_dates(month: date, today: date) -> List[date]:
    """Days of the displayed month that can be picked. Past days are never offered."""
    first = month.replace(day=1)
    last = month.replace(day=calendar.monthrange(month.year, month.month)[1])
    start = max(first, today)
    if start > last:
        return []

    days = []
    current = start
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days
