"""
Unit tests for AppointmentRepository and WorkOrderRepository
"""
from datetime import date, time
from unittest.mock import MagicMock, patch

import psycopg2.errors
import pytest

from loyalty_api.repositories.booking_repository import (
    AppointmentRepository,
    SlotUnavailableError,
    WorkOrderRepository,
)


def appointment_row(**overrides):
    row = {
        'id': 12,
        'customer_id': 42,
        'store_id': 2,
        'service_id': 5,
        'appointment_date': date(2025, 11, 3),
        'appointment_time': time(10, 30),
        'duration': 45,
        'status': 'scheduled',
        'notes': None,
        'staff_notes': None,
        'total_cost': 35,
        'payment_status': 'pending',
        'created_at': None,
        'updated_at': None,
        'store_name': 'Downtown',
        'store_address': '12 Main St',
        'store_phone': '555-0100',
        'service_name': 'Bike Tune-Up',
        'service_duration': 45,
        'service_price': 35,
    }
    row.update(overrides)
    return row


class TestAppointmentRepository:

    @patch('loyalty_api.repositories.booking_repository.get_db_connection_dict')
    def test_find_for_customer_nests_store_and_service(self, mock_get_conn):
        # Arrange
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.return_value = appointment_row()

        # Act
        appointment = AppointmentRepository().find_for_customer(12, 42)

        # Assert
        assert appointment.appointment_time == '10:30'
        assert appointment.store.name == 'Downtown'
        assert appointment.service.name == 'Bike Tune-Up'
        assert mock_cursor.execute.call_args[0][1] == (12, 42)

    @patch('loyalty_api.repositories.booking_repository.get_db_connection_dict')
    def test_create_rejects_taken_slot(self, mock_get_conn):
        # Arrange
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.return_value = {'?column?': 1}

        # Act & Assert
        with pytest.raises(SlotUnavailableError):
            AppointmentRepository().create(
                customer_id=42, store_id=2, service_id=5,
                appointment_date=date(2025, 11, 3), appointment_time=time(10, 30),
                duration=45, total_cost=35,
            )

        assert mock_cursor.execute.call_count == 1
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_conn.close.assert_called_once()

    @patch('loyalty_api.repositories.booking_repository.get_db_connection_dict')
    def test_create_maps_concurrent_insert_conflict_to_slot_error(self, mock_get_conn):
        # Arrange: the slot looks free, but another booking wins the unique index
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.return_value = None
        mock_cursor.execute.side_effect = [None, psycopg2.errors.UniqueViolation()]

        # Act & Assert
        with pytest.raises(SlotUnavailableError):
            AppointmentRepository().create(
                customer_id=42, store_id=2, service_id=5,
                appointment_date=date(2025, 11, 3), appointment_time=time(10, 30),
                duration=45, total_cost=35,
            )

        assert mock_cursor.execute.call_count == 2
        assert 'INSERT INTO appointments' in mock_cursor.execute.call_args_list[1][0][0]
        mock_conn.rollback.assert_called_once()
        mock_conn.commit.assert_not_called()
        mock_conn.close.assert_called_once()

    @patch('loyalty_api.repositories.booking_repository.get_db_connection_dict')
    def test_update_ignores_unknown_fields(self, mock_get_conn):
        # Arrange
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.return_value = appointment_row(status='cancelled')

        # Act
        updated = AppointmentRepository().update(12, 42, {'status': 'cancelled', 'staff_notes': 'x'})

        # Assert
        update_sql, update_params = mock_cursor.execute.call_args_list[0][0]
        assert 'status = %s' in update_sql
        assert 'staff_notes' not in update_sql
        assert update_params == ['cancelled', 12, 42]
        assert updated.status == 'cancelled'


class TestWorkOrderRepository:

    @patch('loyalty_api.repositories.booking_repository.get_db_connection_dict')
    def test_completion_stamps_actual_completion(self, mock_get_conn):
        # Arrange
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        mock_cursor.fetchone.return_value = None

        # Act
        WorkOrderRepository().update(8, 42, {'status': 'completed'})

        # Assert
        update_sql = mock_cursor.execute.call_args_list[0][0][0]
        assert 'actual_completion = NOW()' in update_sql
