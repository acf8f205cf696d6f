"""
Store Domain Model

Physical store locations, the services they offer, and the pure helpers
the locator needs: great-circle distance and open-now evaluation.
"""
import math
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from loyalty_api.domain.base import APIModel

EARTH_RADIUS_KM = 6371.0

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class DayHours(APIModel):
    open: str = "09:00"
    close: str = "18:00"
    is_closed: bool = False


class StoreService(APIModel):
    """A bookable service offered at a store"""
    id: int
    store_id: Optional[int] = None
    name: str
    description: str = ""
    duration: int = 30
    price: float = 0.0
    category: str = ""
    is_active: bool = True


class Store(APIModel):
    """
    Store location

    hours maps lowercase weekday names to DayHours. services and amenities
    are lists of display names used by the locator filters.
    """
    id: int
    name: str
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    phone: str = ""
    email: Optional[str] = None
    latitude: float = 0.0
    longitude: float = 0.0
    hours: Dict[str, DayHours] = Field(default_factory=dict)
    services: List[str] = Field(default_factory=list)
    amenities: List[str] = Field(default_factory=list)
    rating: float = 0.0
    review_count: int = 0
    image_url: Optional[str] = None
    manager_name: Optional[str] = None
    parking_available: bool = False
    wheelchair_accessible: bool = False
    wifi_available: bool = False
    is_active: bool = True

    # Computed per request
    is_open: bool = False
    distance: Optional[float] = None


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _minutes(hhmm: str) -> Optional[int]:
    try:
        hours, minutes = hhmm.split(":")
        return int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError):
        return None


def is_store_open(hours: Dict[str, DayHours], now: Optional[datetime] = None) -> bool:
    """
    Whether the store is open at `now` according to its weekly hours.

    Missing days and unparseable times count as closed. A close time
    earlier than the open time runs past midnight.
    """
    now = now or datetime.now()
    today = hours.get(WEEKDAYS[now.weekday()])
    if today is None or today.is_closed:
        return False

    opens = _minutes(today.open)
    closes = _minutes(today.close)
    if opens is None or closes is None:
        return False

    current = now.hour * 60 + now.minute
    if closes <= opens:
        return current >= opens or current < closes
    return opens <= current < closes
