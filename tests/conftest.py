from datetime import datetime
from unittest.mock import patch

import pytest

from cowork_booking import config
from cowork_booking.models import Space, UserSession

# Wednesday morning
NOW = datetime(2025, 1, 15, 9, 30, tzinfo=config.TIMEZONE)


@pytest.fixture
def places():
    hours = {day: {"open": "08:00", "close": "20:00"} for day in
             ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday"]}
    hours["sunday"] = {"closed": True}
    return Space.model_validate(
        {
            "id": "places",
            "name": "Places",
            "location": "Ground floor",
            "capacity": 12,
            "pricePerHour": 8,
            "pricePerDay": 40,
            "pricePerWeek": 180,
            "pricePerMonth": 600,
            "features": ["Wi-Fi", "Coffee"],
            "openingHours": hours,
        }
    )


@pytest.fixture
def session():
    return UserSession(user_id="u1", email="ada@example.com", token="tok")


@pytest.fixture
def frozen_now():
    with patch("cowork_booking.scheduling.now_local", return_value=NOW) as mock_now:
        yield mock_now
