import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import IntEnum
from typing import Dict, List, Optional, Union

from cowork_booking import client, config, navigation, scheduling
from cowork_booking.client import BookingApiError
from cowork_booking.models import (
    AvailabilityRecord,
    BookingData,
    BookingRequest,
    DurationType,
    ErrorMap,
    Navigation,
    Space,
    UserSession,
    find_payment_method,
)

logger = logging.getLogger(__name__)


class Step(IntEnum):
    SPACE_SELECTION = 1
    DATE_AND_DURATION = 2
    GUEST_DETAILS = 3
    REVIEW_AND_PAYMENT = 4

    @property
    def title(self) -> str:
        return STEP_TITLES[self]


STEP_TITLES: Dict[Step, str] = {
    Step.SPACE_SELECTION: "Choose a space",
    Step.DATE_AND_DURATION: "Date and time",
    Step.GUEST_DETAILS: "Details",
    Step.REVIEW_AND_PAYMENT: "Confirmation",
}


# --- Actions ---


@dataclass(frozen=True)
class SelectSpace:
    space: Space


@dataclass(frozen=True)
class SetDate:
    day: date


@dataclass(frozen=True)
class SetDuration:
    duration: int
    duration_type: Optional[DurationType] = None


@dataclass(frozen=True)
class SetStartTime:
    time: str


@dataclass(frozen=True)
class SetEndTime:
    time: str


@dataclass(frozen=True)
class SetGuests:
    guests: int


@dataclass(frozen=True)
class SelectPayment:
    method_id: str


Action = Union[SelectSpace, SetDate, SetDuration, SetStartTime, SetEndTime, SetGuests, SelectPayment]


def _clamp_guests(guests: int, space: Optional[Space]) -> int:
    guests = max(1, guests)
    if space is not None:
        guests = min(guests, space.capacity)
    return guests


def reduce(data: BookingData, action: Action, now: Optional[datetime] = None) -> BookingData:
    """Applies one user action to the booking data and returns the new data.

    Date and start-time changes also drop any previously chosen times that the
    change made invalid, so the user has to pick them again.
    """
    if isinstance(action, SelectSpace):
        return data.model_copy(
            update={"space": action.space, "guests": _clamp_guests(data.guests, action.space)}
        )

    if isinstance(action, SetDate):
        day = action.day.date() if isinstance(action.day, datetime) else action.day
        update = {"date": day}
        if data.start_time and not scheduling.is_time_slot_available(data.start_time, day, now):
            # an end time without its start is meaningless
            update["start_time"] = ""
            update["end_time"] = ""
        elif data.end_time and not scheduling.is_time_slot_available(data.end_time, day, now):
            update["end_time"] = ""
        if len(update) > 1:
            logger.info(f"Cleared times no longer bookable on {day}: {sorted(k for k in update if k != 'date')}")
        return data.model_copy(update=update)

    if isinstance(action, SetDuration):
        update = {"duration": max(1, action.duration)}
        if action.duration_type is not None:
            update["duration_type"] = action.duration_type
        return data.model_copy(update=update)

    if isinstance(action, SetStartTime):
        update = {"start_time": action.time}
        if data.end_time and action.time and scheduling.to_minutes(data.end_time) <= scheduling.to_minutes(action.time):
            update["end_time"] = ""
        return data.model_copy(update=update)

    if isinstance(action, SetEndTime):
        return data.model_copy(update={"end_time": action.time})

    if isinstance(action, SetGuests):
        return data.model_copy(update={"guests": _clamp_guests(action.guests, data.space)})

    if isinstance(action, SelectPayment):
        method = find_payment_method(action.method_id)
        if method is None or not method.available:
            logger.warning(f"Payment method {action.method_id!r} is not selectable")
            return data
        return data.model_copy(update={"payment_method": method.id})

    raise TypeError(f"Unknown booking action: {action!r}")


def validate_step(step: Step, data: BookingData, today: Optional[date] = None) -> ErrorMap:
    """Returns the field errors that block leaving the given step."""
    errors: ErrorMap = {}
    if today is None:
        today = scheduling.now_local().date()

    if step == Step.SPACE_SELECTION:
        if data.space is None:
            errors["space"] = "Please select a space"

    elif step == Step.DATE_AND_DURATION:
        if data.date is None:
            errors["date"] = "Please select a date"
        elif data.date not in scheduling.selectable_dates(data.date, today):
            errors["date"] = "Please select a date from today onward"
        if data.duration_type == "hour":
            if not data.start_time:
                errors["start_time"] = "Please select a start time"
            if not data.end_time:
                errors["end_time"] = "Please select an end time"
            if data.start_time and data.end_time:
                if data.start_time == data.end_time:
                    errors["duration"] = "Start and end times must differ"
                elif scheduling.duration_hours(data.start_time, data.end_time) < config.MIN_HOURLY_DURATION:
                    errors["duration"] = "The minimum duration is 1 hour"
        elif data.duration < 1:
            errors["duration"] = "Duration must be at least 1"

    elif step == Step.GUEST_DETAILS:
        if data.guests < 1:
            errors["guests"] = "At least one person is required"
        if data.space is not None and data.guests > data.space.capacity:
            errors["guests"] = f"Maximum {data.space.capacity} people for this space"

    return errors


@dataclass(frozen=True)
class Transition:
    step: Step
    data: BookingData
    errors: ErrorMap = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def step_forward(step: Step, data: BookingData, today: Optional[date] = None) -> Transition:
    """Local part of a forward move: validation and price. Network checks are the wizard's job."""
    if step == Step.REVIEW_AND_PAYMENT:
        return Transition(step=step, data=data)
    errors = validate_step(step, data, today)
    if errors:
        return Transition(step=step, data=data, errors=errors)
    priced = data.model_copy(update={"total_price": scheduling.calculate_price(data)})
    return Transition(step=Step(step + 1), data=priced)


class BookingWizard:
    """Four-step booking flow: space, date and time, guests, review and payment.

    Holds the in-memory booking data for one user session. Network calls block;
    `is_loading` is set for their duration and any result that arrives after
    the state moved on (tracked through a generation counter) is discarded.
    """

    def __init__(
        self,
        spaces: Optional[List[Space]] = None,
        space: Optional[Space] = None,
        user_session: Optional[UserSession] = None,
    ):
        self.spaces: List[Space] = list(spaces or [])
        self.user_session = user_session
        self.data = BookingData(space=space, date=scheduling.now_local().date())
        self.step = Step.DATE_AND_DURATION if space is not None else Step.SPACE_SELECTION
        self.errors: ErrorMap = {}
        self.is_loading = False
        self.availability: Dict[str, bool] = {}
        self._generation = 0
        self._idempotency: Optional[tuple] = None

        if self.step == Step.DATE_AND_DURATION:
            self._prefill_times()

    @property
    def slots(self):
        """Slots offered for the current date, with the same-day lead time applied."""
        now = scheduling.now_local()
        return [
            slot.model_copy(update={"available": slot.available and scheduling.is_time_slot_available(slot.time, self.data.date, now)})
            for slot in scheduling.compute_available_slots(self.data.date, self.data.space)
        ]

    def transition(self) -> Transition:
        return Transition(step=self.step, data=self.data, errors=dict(self.errors))

    def dispatch(self, action: Action) -> BookingData:
        self.data = reduce(self.data, action, scheduling.now_local())
        self.errors = {}
        self._generation += 1
        if self.step == Step.DATE_AND_DURATION and isinstance(action, (SelectSpace, SetDate)):
            self._prefill_times()
        return self.data

    def select_space(self, space_id: str) -> bool:
        space = next((s for s in self.spaces if s.id == space_id), None)
        if space is None:
            logger.warning(f"Unknown space {space_id!r}")
            self.errors = {"space": "Please select a space"}
            return False
        self.dispatch(SelectSpace(space))
        return True

    def advance(self) -> Transition:
        if self.is_loading:
            logger.warning("Ignoring advance while a request is in flight")
            return self.transition()

        self.errors = {}
        result = step_forward(self.step, self.data)
        if not result.ok:
            logger.info(f"Step {self.step.name} blocked by validation: {sorted(result.errors)}")
            self.errors = dict(result.errors)
            return self.transition()
        if result.step == self.step:
            return self.transition()

        self.data = result.data
        if self.step == Step.DATE_AND_DURATION and not self._check_availability():
            return self.transition()

        self.step = result.step
        logger.info(f"Moved to step {self.step.value} ({self.step.title}), total price {self.data.total_price}")
        if self.step == Step.DATE_AND_DURATION:
            self._prefill_times()
        return self.transition()

    def retreat(self) -> Transition:
        if self.step == Step.SPACE_SELECTION:
            logger.debug("Already at the first step")
            return self.transition()
        self.errors = {}
        self.is_loading = False
        self._generation += 1
        self.step = Step(self.step - 1)
        logger.info(f"Back to step {self.step.value} ({self.step.title})")
        return self.transition()

    def confirm_booking(self) -> Optional[Navigation]:
        """Submits the booking and returns where the user should be sent next.

        Returns None when the booking could not be submitted; `errors` then
        holds the reason.
        """
        if self.is_loading:
            logger.warning("Ignoring confirmation while a request is in flight")
            return None
        if self.user_session is None:
            logger.info("Confirmation attempted without a session, redirecting to login")
            return navigation.login()
        return self._submit(allow_self_heal=True)

    def _submit(self, allow_self_heal: bool) -> Optional[Navigation]:
        data = self.data
        if allow_self_heal and data.space and data.date and not (data.start_time and data.end_time):
            start = data.start_time or scheduling.first_available_time(data.date, data.space, scheduling.now_local())
            if start:
                slots = scheduling.compute_available_slots(data.date, data.space)
                self.data = data.model_copy(
                    update={"start_time": start, "end_time": data.end_time or scheduling.default_end_time(start, slots)}
                )
                logger.info(f"Filled in missing times: {self.data.start_time}-{self.data.end_time}")
                return self._submit(allow_self_heal=False)

        data = self.data
        if not (data.space and data.date and data.start_time and data.end_time and data.payment_method):
            self.errors = {"general": "Incomplete booking details. Please select a time and a payment method."}
            return None

        request = BookingRequest(
            space_id=data.space.id,
            date=data.date.isoformat(),
            start_time=data.start_time,
            end_time=data.end_time,
            duration=scheduling.booked_hours(data),
            duration_type=data.duration_type,
            guests=data.guests,
            payment_method=data.payment_method,
        )

        generation = self._generation
        self.errors = {}
        self.is_loading = True
        try:
            response = client.create_booking(request, self.user_session, self._idempotency_key(request))
        except BookingApiError as e:
            logger.error(f"Booking confirmation failed: {e.message}")
            if generation == self._generation:
                self.errors = {"general": e.message}
            return None
        finally:
            self.is_loading = False

        if generation != self._generation:
            logger.warning("Discarding booking response received after the form changed")
            return None

        if response.payment_url:
            logger.info("Redirecting to external payment")
            return navigation.external(response.payment_url)
        if response.booking is None:
            self.errors = {"general": "The booking service returned no booking"}
            return None
        if data.payment_method == "card":
            return navigation.card_form(response.booking, data)
        return navigation.onsite_success(response.booking)

    def _idempotency_key(self, request: BookingRequest) -> str:
        payload = request.model_dump()
        if self._idempotency is None or self._idempotency[0] != payload:
            self._idempotency = (payload, uuid.uuid4().hex)
        return self._idempotency[1]

    def _check_availability(self) -> bool:
        data = self.data
        if data.space is None or data.date is None:
            return True

        generation = self._generation
        self.is_loading = True
        try:
            available = client.check_availability(
                data.space.id, data.date, data.start_time, data.end_time, self.user_session
            )
        except BookingApiError as e:
            logger.error(f"Availability check failed: {e.message}")
            if generation == self._generation:
                self.errors = {"availability": "Could not verify availability. Please try again."}
            return False
        finally:
            self.is_loading = False

        if generation != self._generation:
            logger.warning("Discarding availability result received after the form changed")
            return False

        record = AvailabilityRecord(
            space_id=data.space.id, date=data.date.isoformat(), time=data.start_time, available=available
        )
        self.availability[record.key] = available
        if not available:
            self.errors = {"availability": "This time is no longer available. Please choose another one."}
        return available

    def _prefill_times(self):
        data = self.data
        if data.space is None or data.date is None or data.start_time:
            return
        start = scheduling.first_available_time(data.date, data.space, scheduling.now_local())
        if not start:
            return
        end = scheduling.default_end_time(start, scheduling.compute_available_slots(data.date, data.space))
        self.data = data.model_copy(update={"start_time": start, "end_time": end})
        logger.debug(f"Prefilled times {start}-{end or '(none)'}")
