"""
Store Repository - Data Access Layer for stores and store_services

Returns stores with hours parsed into DayHours and the names of their
active services. Distance and open-now are computed by the locator
service, not stored.
"""
import json
from typing import List, Optional

from loyalty_api.core.database import get_db_connection_dict
from loyalty_api.domain.store import DayHours, Store, StoreService

STORE_SELECT = """
    SELECT
        s.id, s.name, s.address, s.city, s.state, s.zip_code, s.phone,
        s.email, s.latitude, s.longitude, s.hours, s.amenities, s.rating,
        s.review_count, s.image_url, s.manager_name, s.parking_available,
        s.wheelchair_accessible, s.wifi_available, s.is_active,
        COALESCE(
            ARRAY_AGG(ss.name ORDER BY ss.name) FILTER (WHERE ss.id IS NOT NULL),
            '{}'
        ) AS service_names
    FROM stores s
    LEFT JOIN store_services ss ON ss.store_id = s.id AND ss.is_active = true
"""


def parse_hours(raw) -> dict:
    """
    Weekly hours from the JSONB column.

    Accepts {"monday": {"open": "09:00", "close": "18:00", "isClosed": false}}
    or the shorthand {"monday": "09:00-18:00", "sunday": "Closed"}.
    """
    if not raw:
        return {}
    if isinstance(raw, str):
        raw = json.loads(raw)

    hours = {}
    for day, value in raw.items():
        key = day.lower()
        if isinstance(value, dict):
            hours[key] = DayHours.model_validate(value)
        elif isinstance(value, str) and "-" in value:
            opens, closes = value.split("-", 1)
            hours[key] = DayHours(open=opens.strip(), close=closes.strip())
        else:
            hours[key] = DayHours(is_closed=True)
    return hours


class StoreRepository:
    """Repository for store locations"""

    @staticmethod
    def _map_row_to_store(row: dict) -> Store:
        return Store(
            id=row['id'],
            name=row['name'],
            address=row.get('address') or '',
            city=row.get('city') or '',
            state=row.get('state') or '',
            zip_code=row.get('zip_code') or '',
            phone=row.get('phone') or '',
            email=row.get('email'),
            latitude=float(row.get('latitude') or 0),
            longitude=float(row.get('longitude') or 0),
            hours=parse_hours(row.get('hours')),
            services=list(row.get('service_names') or []),
            amenities=list(row.get('amenities') or []),
            rating=float(row.get('rating') or 0),
            review_count=row.get('review_count') or 0,
            image_url=row.get('image_url'),
            manager_name=row.get('manager_name'),
            parking_available=row.get('parking_available') or False,
            wheelchair_accessible=row.get('wheelchair_accessible') or False,
            wifi_available=row.get('wifi_available') or False,
            is_active=row.get('is_active', True),
        )

    @staticmethod
    def _map_row_to_service(row: dict) -> StoreService:
        return StoreService(
            id=row['id'],
            store_id=row.get('store_id'),
            name=row['name'],
            description=row.get('description') or '',
            duration=row.get('duration') or 30,
            price=float(row.get('price') or 0),
            category=row.get('category') or '',
            is_active=row.get('is_active', True),
        )

    def find_all_active(self) -> List[Store]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {STORE_SELECT}
                WHERE s.is_active = true
                GROUP BY s.id
                ORDER BY s.name ASC
            """)
            return [self._map_row_to_store(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, store_id: int) -> Optional[Store]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {STORE_SELECT}
                WHERE s.id = %s AND s.is_active = true
                GROUP BY s.id
            """, (store_id,))
            row = cursor.fetchone()
            return self._map_row_to_store(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_services(self, store_id: int) -> List[StoreService]:
        """Active services offered at the store, by category then name."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, store_id, name, description, duration, price, category, is_active
                FROM store_services
                WHERE store_id = %s AND is_active = true
                ORDER BY category ASC, name ASC
            """, (store_id,))
            return [self._map_row_to_service(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_service(self, store_id: int, service_id: int) -> Optional[StoreService]:
        """The service, only if it is active and offered by this store."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, store_id, name, description, duration, price, category, is_active
                FROM store_services
                WHERE id = %s AND store_id = %s AND is_active = true
            """, (service_id, store_id))
            row = cursor.fetchone()
            return self._map_row_to_service(row) if row else None

        finally:
            cursor.close()
            conn.close()
