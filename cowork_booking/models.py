import datetime
import logging
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

DurationType = Literal["hour", "day", "week", "month"]


def _is_clock_time(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        datetime.datetime.strptime(value, "%H:%M")
    except ValueError:
        return False
    return True


class Closed(BaseModel):
    closed: Literal[True] = True


class Open(BaseModel):
    open: str  # HH:MM, local time
    close: str  # HH:MM, local time
    closed: Literal[False] = False


DaySchedule = Union[Closed, Open]


def parse_day_schedule(raw: Any) -> Optional[DaySchedule]:
    """Normalises one weekday entry of the API's openingHours object.

    Returns None when the day cannot be interpreted, which callers treat as
    "schedule unknown" rather than "closed".
    """
    if isinstance(raw, (Closed, Open)):
        return raw
    if not isinstance(raw, dict):
        return None
    if raw.get("closed"):
        return Closed()
    if _is_clock_time(raw.get("open")) and _is_clock_time(raw.get("close")):
        return Open(open=raw["open"], close=raw["close"])
    logger.debug(f"Ignoring malformed day schedule: {raw}")
    return None


class OpeningHours(BaseModel):
    """Weekday name to schedule, one field per day of the week."""

    monday: Optional[DaySchedule] = None
    tuesday: Optional[DaySchedule] = None
    wednesday: Optional[DaySchedule] = None
    thursday: Optional[DaySchedule] = None
    friday: Optional[DaySchedule] = None
    saturday: Optional[DaySchedule] = None
    sunday: Optional[DaySchedule] = None

    @model_validator(mode="before")
    @classmethod
    def _normalise_days(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return {}
        return {day: parse_day_schedule(data.get(day)) for day in WEEKDAYS}

    def for_day(self, day: datetime.date) -> Optional[DaySchedule]:
        return getattr(self, WEEKDAYS[day.weekday()])


class Space(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str
    location: str = ""
    capacity: int = Field(gt=0)
    price_per_hour: float = Field(default=0, ge=0, alias="pricePerHour")
    price_per_day: float = Field(default=0, ge=0, alias="pricePerDay")
    price_per_week: float = Field(default=0, ge=0, alias="pricePerWeek")
    price_per_month: float = Field(default=0, ge=0, alias="pricePerMonth")
    features: List[str] = []
    opening_hours: Optional[OpeningHours] = Field(default=None, alias="openingHours")


class TimeSlot(BaseModel):
    time: str  # HH:MM
    available: bool = True
    is_popular: bool = False


class BookingData(BaseModel):
    model_config = ConfigDict(frozen=True)

    space: Optional[Space] = None
    date: Optional[datetime.date] = None
    start_time: str = ""
    end_time: str = ""
    duration: int = 1
    duration_type: DurationType = "hour"
    guests: int = 1
    total_price: float = 0
    payment_method: Optional[str] = "onsite"


class PaymentMethod(BaseModel):
    id: str
    name: str
    description: str
    available: bool
    popular: bool = False


PAYMENT_METHODS: List[PaymentMethod] = [
    PaymentMethod(
        id="onsite",
        name="Pay on site",
        description="Settle the bill directly at the café",
        available=True,
        popular=True,
    ),
    PaymentMethod(id="card", name="Credit card", description="Secure card payment", available=True),
    PaymentMethod(
        id="paypal",
        name="PayPal",
        description="Payment via PayPal (temporarily unavailable)",
        available=False,
    ),
]


def find_payment_method(method_id: Optional[str]) -> Optional[PaymentMethod]:
    return next((m for m in PAYMENT_METHODS if m.id == method_id), None)


class UserSession(BaseModel):
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    token: str


class BookingRequest(BaseModel):
    """Body of the booking-creation call, serialised with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    space_id: str = Field(alias="spaceId")
    date: str  # ISO format YYYY-MM-DD
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    duration: float
    duration_type: DurationType = Field(alias="durationType")
    guests: int
    payment_method: str = Field(alias="paymentMethod")


class BookedRecord(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    total_price: float = Field(default=0, alias="totalPrice")


class BookingResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    payment_url: Optional[str] = Field(default=None, alias="paymentUrl")
    booking: Optional[BookedRecord] = None


class Navigation(BaseModel):
    kind: Literal["login", "external", "card_form", "success"]
    url: str
    booking_id: Optional[str] = None


class AvailabilityRecord(BaseModel):
    """Result of one availability check, keyed like the UI's availability cache."""

    space_id: str
    date: str
    time: str
    available: bool

    @property
    def key(self) -> str:
        return f"{self.space_id}-{self.date}-{self.time or 'day'}"


ErrorMap = Dict[str, str]
