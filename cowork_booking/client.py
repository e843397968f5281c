import logging
from datetime import date
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import cloudscraper
import requests
from pydantic import ValidationError

from cowork_booking import config
from cowork_booking.models import BookingRequest, BookingResponse, Space, UserSession

logger = logging.getLogger(__name__)


class BookingApiError(Exception):
    """Raised when one of the website's booking endpoints fails or answers with an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def build_url(path: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Constructs an absolute API URL, dropping empty query parameters."""
    url = f"{config.API_BASE}{path}"
    if params:
        qs = {k: v for k, v in params.items() if v not in (None, "")}
        if qs:
            url = f"{url}?{urlencode(qs)}"
    logger.debug(f"Built URL: {url}")
    return url


def create_session(user_session: Optional[UserSession] = None):
    """Creates an HTTP session carrying the common headers and, if given, the auth cookie."""
    session = cloudscraper.create_scraper()
    session.headers.update(config.COMMON_HEADERS)
    if user_session is not None:
        session.cookies.set(config.SESSION_COOKIE_NAME, user_session.token)
    return session


def _error_message(response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return default


def fetch_spaces() -> List[Space]:
    """Fetches the bookable spaces. Returns an empty list when the catalog cannot be loaded."""
    url = build_url(config.SPACES_PATH)
    logger.info(f"Fetching spaces from {url}")

    try:
        response = create_session().get(url, timeout=config.HTTP_TIMEOUT)
        logger.debug(f"Response status: {response.status_code}")
        response.raise_for_status()
        data = response.json()
    except Exception as e:
        logger.error(f"Error fetching spaces: {e}")
        return []

    if isinstance(data, dict) and data.get("success") is False:
        logger.error(f"Space catalog returned an error: {data.get('error')}")
        return []

    raw_spaces = data.get("data", data.get("spaces")) if isinstance(data, dict) else data
    if not isinstance(raw_spaces, list):
        logger.error("Unexpected JSON format. Space list missing.")
        logger.debug(f"Response data: {data}")
        return []

    spaces = []
    for raw in raw_spaces:
        try:
            spaces.append(Space.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping invalid space {raw.get('id') if isinstance(raw, dict) else raw}: {e}")
    logger.info(f"Loaded {len(spaces)} spaces")
    return spaces


def check_availability(
    space_id: str,
    day: date,
    start_time: str = "",
    end_time: str = "",
    user_session: Optional[UserSession] = None,
) -> bool:
    """Asks the website whether the space is free at the given date and time."""
    url = build_url(
        config.AVAILABILITY_PATH,
        {"spaceId": space_id, "date": day.isoformat(), "startTime": start_time, "endTime": end_time},
    )
    logger.info(f"Checking availability of {space_id} on {day} at {start_time or 'any time'}")

    try:
        response = create_session(user_session).get(url, timeout=config.HTTP_TIMEOUT)
    except requests.exceptions.RequestException as e:
        raise BookingApiError(f"Availability check failed: {e}") from e

    if not response.ok:
        raise BookingApiError(
            _error_message(response, "Availability check failed"), status_code=response.status_code
        )
    try:
        data = response.json()
    except ValueError as e:
        raise BookingApiError("Availability check returned invalid JSON", response.status_code) from e

    available = bool(data.get("available")) if isinstance(data, dict) else bool(data)
    logger.debug(f"Availability for {space_id} on {day} at {start_time}: {available}")
    return available


def create_booking(
    booking: BookingRequest,
    user_session: UserSession,
    idempotency_key: Optional[str] = None,
) -> BookingResponse:
    """Submits a booking. The response carries either a payment URL or the created booking."""
    url = build_url(config.BOOKINGS_PATH)
    headers = {"Content-Type": "application/json"}
    if idempotency_key:
        headers["Idempotency-Key"] = idempotency_key
    payload = booking.model_dump(by_alias=True)
    logger.info(f"Creating booking for space {booking.space_id} on {booking.date} {booking.start_time}-{booking.end_time}")

    try:
        response = create_session(user_session).post(url, json=payload, headers=headers, timeout=config.HTTP_TIMEOUT)
    except requests.exceptions.RequestException as e:
        raise BookingApiError(f"Booking request failed: {e}") from e

    if not response.ok:
        raise BookingApiError(
            _error_message(response, "Error while creating the booking"), status_code=response.status_code
        )
    try:
        result = BookingResponse.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        raise BookingApiError("Booking API returned an unexpected response", response.status_code) from e

    logger.info(f"Booking created: {result.booking.id if result.booking else 'external payment'}")
    return result
