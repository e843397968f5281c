from urllib.parse import urlencode

from cowork_booking import config
from cowork_booking.models import BookedRecord, BookingData, Navigation


def login() -> Navigation:
    return Navigation(kind="login", url=config.LOGIN_PATH)


def external(payment_url: str) -> Navigation:
    return Navigation(kind="external", url=payment_url)


def card_form(booking: BookedRecord, data: BookingData) -> Navigation:
    """Card payment form, with the booking context passed in the query string."""
    params = {
        "booking_id": booking.id,
        "amount": f"{booking.total_price:g}",
        "space_name": data.space.name if data.space else "Space",
        "date": data.date.strftime("%A %d %B %Y") if data.date else "",
        "start_time": data.start_time,
        "end_time": data.end_time,
    }
    return Navigation(kind="card_form", url=f"{config.CARD_FORM_PATH}?{urlencode(params)}", booking_id=booking.id)


def onsite_success(booking: BookedRecord) -> Navigation:
    params = {"booking_id": booking.id, "payment_method": "onsite"}
    return Navigation(kind="success", url=f"{config.SUCCESS_PATH}?{urlencode(params)}", booking_id=booking.id)
