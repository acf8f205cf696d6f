"""
Unit tests for StoreRepository and the store hours parser
"""
from unittest.mock import MagicMock, patch

from loyalty_api.repositories.store_repository import StoreRepository, parse_hours


class TestParseHours:

    def test_full_form(self):
        hours = parse_hours({"Monday": {"open": "08:00", "close": "20:00", "isClosed": False}})
        assert hours["monday"].open == "08:00"
        assert hours["monday"].close == "20:00"
        assert hours["monday"].is_closed is False

    def test_shorthand_form(self):
        hours = parse_hours({"saturday": "10:00 - 16:00", "sunday": "Closed"})
        assert hours["saturday"].open == "10:00"
        assert hours["saturday"].close == "16:00"
        assert hours["sunday"].is_closed is True

    def test_json_string_and_empty(self):
        assert parse_hours('{"friday": "09:00-17:00"}')["friday"].close == "17:00"
        assert parse_hours(None) == {}
        assert parse_hours({}) == {}


class TestStoreRepository:

    @patch('loyalty_api.repositories.store_repository.get_db_connection_dict')
    def test_find_by_id_maps_services_and_amenities(self, mock_get_conn):
        # Arrange
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.return_value = {
            'id': 2, 'name': 'Downtown', 'address': '12 Main St', 'city': 'Springfield',
            'state': 'IL', 'zip_code': '62701', 'phone': '555-0100', 'email': None,
            'latitude': 39.7817, 'longitude': -89.6501,
            'hours': {'monday': '09:00-18:00'},
            'amenities': ['Restrooms'], 'rating': 4.4, 'review_count': 120,
            'image_url': None, 'manager_name': 'Sam Lee', 'parking_available': True,
            'wheelchair_accessible': True, 'wifi_available': False, 'is_active': True,
            'service_names': ['Bike Tune-Up', 'Repair'],
        }

        # Act
        store = StoreRepository().find_by_id(2)

        # Assert
        assert store.services == ['Bike Tune-Up', 'Repair']
        assert store.amenities == ['Restrooms']
        assert store.hours['monday'].open == '09:00'
        assert store.distance is None
        mock_conn.close.assert_called_once()

    @patch('loyalty_api.repositories.store_repository.get_db_connection_dict')
    def test_find_service_scoped_to_store(self, mock_get_conn):
        # Arrange
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.return_value = None

        # Act
        service = StoreRepository().find_service(2, 99)

        # Assert
        assert service is None
        assert mock_cursor.execute.call_args[0][1] == (99, 2)
