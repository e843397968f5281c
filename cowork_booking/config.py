import logging
import os
from typing import Dict, List
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

# --- URLs & API ---
API_BASE = os.environ.get("COWORK_API_BASE", "http://localhost:3000").rstrip("/")
SPACES_PATH = "/api/spaces"
AVAILABILITY_PATH = "/api/bookings/availability"
BOOKINGS_PATH = "/api/bookings"
HTTP_TIMEOUT = int(os.environ.get("COWORK_HTTP_TIMEOUT", "10"))

# --- Navigation targets ---
LOGIN_PATH = "/login"
CARD_FORM_PATH = "/payment/form"
SUCCESS_PATH = "/payment/success"

# --- Booking rules ---
TIMEZONE = ZoneInfo(os.environ.get("COWORK_TIMEZONE", "Europe/Paris"))
LEAD_TIME_MINUTES = 60
SLOT_STEP_MINUTES = 30
MIN_HOURLY_DURATION = 1
DEFAULT_SPAN_HOURS = 2
POPULAR_TIMES = {"10:00", "14:00", "16:00"}

# Used when a space has no usable schedule for the requested day.
DEFAULT_SLOT_TIMES: List[str] = [f"{h:02d}:{m:02d}" for h in range(9, 19) for m in (0, 30)]
DEFAULT_POPULAR_TIMES = {"09:00", "09:30", "10:00", "13:00", "13:30", "14:00"}

COMMON_HEADERS: Dict[str, str] = {
    "User-Agent": os.environ.get("COWORK_USER_AGENT", "cowork-booking/0.1"),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": os.environ.get("COWORK_ACCEPT_LANGUAGE", "fr-FR,fr;q=0.9,en;q=0.8"),
}

# --- Session ---
SESSION_COOKIE_NAME = os.environ.get("COWORK_SESSION_COOKIE", "next-auth.session-token")
SESSION_TOKEN = os.environ.get("COWORK_SESSION_TOKEN")
SESSION_EMAIL = os.environ.get("COWORK_SESSION_EMAIL")
if not SESSION_TOKEN:
    logger.warning("No session token configured. Confirmations will redirect to login.")
