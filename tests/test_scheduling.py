from datetime import date, datetime

from conftest import NOW

from cowork_booking import config, scheduling
from cowork_booking.models import BookingData, Space

SUNDAY = date(2025, 1, 19)
TODAY = NOW.date()
TOMORROW = date(2025, 1, 16)


def _space(**hours):
    return Space(id="s1", name="Room", capacity=4, pricePerHour=12, openingHours=hours)


def test_duration_hours_same_day():
    assert scheduling.duration_hours("09:00", "11:30") == 2.5
    assert scheduling.duration_hours("09:00", "10:00") == 1
    assert scheduling.duration_hours("09:00", "09:20") == 0.33


def test_duration_hours_overnight():
    assert scheduling.duration_hours("22:00", "02:00") == 4
    # Identical times read as a full day; validation rejects them separately.
    assert scheduling.duration_hours("10:00", "10:00") == 24


def test_duration_hours_missing_time():
    assert scheduling.duration_hours("", "10:00") == 0
    assert scheduling.duration_hours("10:00", "") == 0


def test_calculate_price_hourly_from_times():
    data = BookingData(space=_space(), start_time="09:00", end_time="11:00", duration_type="hour")
    assert scheduling.calculate_price(data) == 24


def test_calculate_price_hourly_without_times():
    data = BookingData(space=_space(), duration=3, duration_type="hour")
    assert scheduling.calculate_price(data) == 36


def test_calculate_price_tiers(places):
    assert scheduling.calculate_price(BookingData(space=places, duration=2, duration_type="day")) == 80
    assert scheduling.calculate_price(BookingData(space=places, duration=1, duration_type="week")) == 180
    assert scheduling.calculate_price(BookingData(space=places, duration=3, duration_type="month")) == 1800


def test_calculate_price_without_space():
    assert scheduling.calculate_price(BookingData(start_time="09:00", end_time="11:00")) == 0


def test_booked_hours():
    assert scheduling.booked_hours(BookingData(start_time="09:00", end_time="12:30")) == 3.5
    assert scheduling.booked_hours(BookingData(duration=2, duration_type="week")) == 2


def test_compute_available_slots_closed_day(places):
    assert scheduling.compute_available_slots(SUNDAY, places) == []


def test_compute_available_slots_from_opening_hours():
    space = _space(wednesday={"open": "09:00", "close": "11:00"})
    slots = scheduling.compute_available_slots(TODAY, space)

    assert [s.time for s in slots] == ["09:00", "09:30", "10:00", "10:30"]
    assert [s.time for s in slots if s.is_popular] == ["10:00"]
    assert all(s.available for s in slots)


def test_compute_available_slots_default_fallbacks():
    default_times = [s.time for s in scheduling.default_slots()]
    assert default_times[0] == "09:00"
    assert default_times[-1] == "18:30"
    assert len(default_times) == 20

    # No space, no opening hours, no entry for the weekday
    assert [s.time for s in scheduling.compute_available_slots(TODAY, None)] == default_times
    no_hours = Space(id="s2", name="Bar", capacity=2)
    assert [s.time for s in scheduling.compute_available_slots(TODAY, no_hours)] == default_times
    monday_only = _space(monday={"open": "09:00", "close": "12:00"})
    assert [s.time for s in scheduling.compute_available_slots(TODAY, monday_only)] == default_times


def test_compute_available_slots_empty_generation_falls_back():
    inverted = _space(wednesday={"open": "18:00", "close": "09:00"})
    slots = scheduling.compute_available_slots(TODAY, inverted)
    assert len(slots) == len(config.DEFAULT_SLOT_TIMES)


def test_is_time_slot_available_lead_time():
    at_0930 = datetime(2025, 1, 15, 9, 30, tzinfo=config.TIMEZONE)
    at_0830 = datetime(2025, 1, 15, 8, 30, tzinfo=config.TIMEZONE)

    assert scheduling.is_time_slot_available("10:00", TODAY, at_0930) is False
    assert scheduling.is_time_slot_available("10:00", TODAY, at_0830) is True
    # Exactly one hour of lead time is enough
    assert scheduling.is_time_slot_available("10:30", TODAY, at_0930) is True


def test_is_time_slot_available_other_days():
    assert scheduling.is_time_slot_available("06:00", TOMORROW, NOW) is True
    assert scheduling.is_time_slot_available("10:00", None, NOW) is False


def test_is_time_slot_available_uses_current_time(frozen_now):
    assert scheduling.is_time_slot_available("10:00", TODAY) is False
    assert scheduling.is_time_slot_available("11:00", TODAY) is True


def test_first_available_time(places):
    assert scheduling.first_available_time(TODAY, places, NOW) == "10:30"
    assert scheduling.first_available_time(TOMORROW, places, NOW) == "08:00"
    assert scheduling.first_available_time(SUNDAY, places, NOW) == ""
    assert scheduling.first_available_time(None, places, NOW) == ""


def test_first_available_time_too_late_in_the_day():
    evening = datetime(2025, 1, 15, 18, 0, tzinfo=config.TIMEZONE)
    assert scheduling.first_available_time(TODAY, None, evening) == ""


def test_default_end_time():
    slots = scheduling.default_slots()
    assert scheduling.default_end_time("10:30", slots) == "12:30"
    # Capped at the hour of the last slot (18:30)
    assert scheduling.default_end_time("17:30", slots) == "18:30"
    assert scheduling.default_end_time("18:00", slots) == ""
    assert scheduling.default_end_time("", slots) == ""


def test_selectable_dates_current_month():
    dates = scheduling.selectable_dates(date(2025, 1, 1), TODAY)
    assert dates[0] == TODAY
    assert dates[-1] == date(2025, 1, 31)
    assert len(dates) == 17


def test_selectable_dates_other_months():
    assert len(scheduling.selectable_dates(date(2025, 2, 10), TODAY)) == 28
    assert scheduling.selectable_dates(date(2024, 12, 1), TODAY) == []
