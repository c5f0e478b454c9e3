"""
Restaurant open/closed status from the manual flag and weekly timings
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from models.order_models import Restaurant, WEEKDAYS


class RestaurantStatus(Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    MANUALLY_CLOSED = "MANUALLY_CLOSED"


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def get_restaurant_status(restaurant: Restaurant, now: Optional[datetime] = None) -> RestaurantStatus:
    if restaurant.manually_closed:
        return RestaurantStatus.MANUALLY_CLOSED

    now = now or datetime.now()
    timings = restaurant.timings.get(WEEKDAYS[now.weekday()])
    if timings is None:
        return RestaurantStatus.CLOSED

    # 00:00-00:00 marks a closed day
    if timings.open == "00:00" and timings.close == "00:00":
        return RestaurantStatus.CLOSED

    try:
        open_time = _minutes(timings.open)
        close_time = _minutes(timings.close)
    except ValueError:
        return RestaurantStatus.CLOSED

    current_time = now.hour * 60 + now.minute

    if close_time < open_time:
        # Window crosses midnight, e.g. 18:00-02:00
        if current_time >= open_time or current_time <= close_time:
            return RestaurantStatus.OPEN
    elif open_time <= current_time <= close_time:
        return RestaurantStatus.OPEN

    return RestaurantStatus.CLOSED


def is_ordering_disabled(restaurant: Restaurant, now: Optional[datetime] = None) -> bool:
    """Orders are refused when the outlet is manually closed or has online ordering off"""
    return (
        get_restaurant_status(restaurant, now) == RestaurantStatus.MANUALLY_CLOSED
        or not restaurant.online_ordering_enabled
    )
