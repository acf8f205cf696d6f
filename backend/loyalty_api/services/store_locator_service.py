"""
Store Locator Service

Filters the active store list for the locator page. Filtering is a
straight chain of predicates over the stores loaded from the database;
each store that survives gets its open-now flag and, when the caller sent
a location, its distance.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from loyalty_api.domain.store import Store, haversine_distance, is_store_open


def split_csv(value: Optional[str]) -> List[str]:
    """'a, b,,c' -> ['a', 'b', 'c']"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class StoreSearchFilters:
    search: Optional[str] = None
    services: List[str] = field(default_factory=list)
    amenities: List[str] = field(default_factory=list)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    max_distance: Optional[float] = None
    min_rating: Optional[float] = None
    is_open: Optional[bool] = None
    has_parking: Optional[bool] = None
    is_wheelchair_accessible: Optional[bool] = None
    has_wifi: Optional[bool] = None

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def _matches_any(wanted: List[str], offered: List[str]) -> bool:
    offered_lower = [o.lower() for o in offered]
    return any(w.lower() in offered_lower for w in wanted)


def filter_stores(stores: List[Store], filters: StoreSearchFilters, now: Optional[datetime] = None) -> List[Store]:
    """
    Apply the locator filters and sort the result

    Stores come back nearest first when the filters carry a location,
    otherwise alphabetically by name. max_distance is ignored without a
    location.
    The open-now and amenity flags match exactly whenever they are given.
    """
    now = now or datetime.now()
    results = []

    for store in stores:
        store = store.model_copy()
        store.is_open = is_store_open(store.hours, now)
        if filters.has_location:
            store.distance = round(
                haversine_distance(filters.latitude, filters.longitude, store.latitude, store.longitude), 2
            )

        if filters.search:
            needle = filters.search.lower()
            haystack = (store.name, store.city, store.address)
            if not any(needle in (value or "").lower() for value in haystack):
                continue

        if filters.services and not _matches_any(filters.services, store.services):
            continue

        if filters.amenities and not _matches_any(filters.amenities, store.amenities):
            continue

        if filters.has_location and filters.max_distance is not None:
            if store.distance > filters.max_distance:
                continue

        if filters.min_rating is not None and store.rating < filters.min_rating:
            continue

        if filters.is_open is not None and store.is_open != filters.is_open:
            continue

        if filters.has_parking is not None and store.parking_available != filters.has_parking:
            continue

        if (
            filters.is_wheelchair_accessible is not None
            and store.wheelchair_accessible != filters.is_wheelchair_accessible
        ):
            continue

        if filters.has_wifi is not None and store.wifi_available != filters.has_wifi:
            continue

        results.append(store)

    if filters.has_location:
        results.sort(key=lambda s: s.distance)
    else:
        results.sort(key=lambda s: s.name.lower())

    return results
