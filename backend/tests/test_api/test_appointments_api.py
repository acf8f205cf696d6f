"""
Tests for appointment booking and status changes
"""
from datetime import date, timedelta
from unittest.mock import patch

import pytest

from loyalty_api.domain.booking import Appointment
from loyalty_api.domain.store import StoreService
from loyalty_api.repositories.booking_repository import SlotUnavailableError

BOOKING_DAY = date.today() + timedelta(days=3)


def booking_body(**overrides):
    body = {"storeId": 2, "serviceId": 99, "date": BOOKING_DAY.isoformat(), "time": "10:00"}
    body.update(overrides)
    return body


@pytest.fixture
def appointment():
    return Appointment(
        id=12, customer_id=42, store_id=2, service_id=99,
        appointment_date=BOOKING_DAY, appointment_time="10:00", duration=45, total_cost=60.0,
    )


class TestCreateAppointment:

    @patch('loyalty_api.api.appointments.AppointmentRepository')
    @patch('loyalty_api.api.appointments.StoreRepository')
    def test_book_slot(self, mock_store_repo_cls, mock_repo_cls, client, appointment):
        # Arrange
        mock_store_repo_cls.return_value.find_service.return_value = StoreService(
            id=99, store_id=2, name="Bike tune-up", duration=45, price=60.0
        )
        mock_repo_cls.return_value.create.return_value = appointment

        # Act
        response = client.post("/api/appointments", json=booking_body(notes="Rear brake squeaks"))

        # Assert
        assert response.status_code == 201
        assert response.json()["appointment"]["id"] == 12
        kwargs = mock_repo_cls.return_value.create.call_args.kwargs
        assert kwargs["customer_id"] == 42
        assert kwargs["appointment_date"] == BOOKING_DAY
        assert kwargs["duration"] == 45
        assert kwargs["total_cost"] == 60.0

    @pytest.mark.parametrize("overrides", [
        {"time": "10:15"},
        {"time": "18:00"},
        {"date": (date.today() - timedelta(days=1)).isoformat()},
        {"date": (date.today() + timedelta(days=31)).isoformat()},
    ])
    def test_invalid_slot(self, client, overrides):
        response = client.post("/api/appointments", json=booking_body(**overrides))
        assert response.status_code == 400

    @patch('loyalty_api.api.appointments.StoreRepository')
    def test_unknown_service(self, mock_store_repo_cls, client):
        mock_store_repo_cls.return_value.find_service.return_value = None

        response = client.post("/api/appointments", json=booking_body())

        assert response.status_code == 404

    @patch('loyalty_api.api.appointments.AppointmentRepository')
    @patch('loyalty_api.api.appointments.StoreRepository')
    def test_slot_taken(self, mock_store_repo_cls, mock_repo_cls, client):
        mock_store_repo_cls.return_value.find_service.return_value = StoreService(id=99, name="Fitting")
        mock_repo_cls.return_value.create.side_effect = SlotUnavailableError("Time slot is already booked")

        response = client.post("/api/appointments", json=booking_body())

        assert response.status_code == 409
        assert response.json() == {"error": "Time slot is already booked"}


class TestUpdateAppointment:

    @patch('loyalty_api.api.appointments.AppointmentRepository')
    def test_customer_cancels(self, mock_repo_cls, client, appointment):
        mock_repo = mock_repo_cls.return_value
        mock_repo.find_for_customer.return_value = appointment
        mock_repo.update.return_value = appointment.model_copy(update={"status": "cancelled"})

        response = client.patch("/api/appointments/12", json={"status": "cancelled"})

        assert response.json()["appointment"]["status"] == "cancelled"
        mock_repo.find_for_customer.assert_called_once_with(12, 42)
        mock_repo.update.assert_called_once_with(12, 42, {"status": "cancelled"})

    @patch('loyalty_api.api.appointments.AppointmentRepository')
    def test_customer_cannot_confirm(self, mock_repo_cls, client, appointment):
        mock_repo_cls.return_value.find_for_customer.return_value = appointment

        response = client.patch("/api/appointments/12", json={"status": "confirmed"})

        assert response.status_code == 400
        assert response.json() == {"error": "Customers can only cancel"}
        mock_repo_cls.return_value.update.assert_not_called()

    @patch('loyalty_api.api.appointments.AppointmentRepository')
    def test_staff_may_confirm(self, mock_repo_cls, admin_client, appointment):
        mock_repo = mock_repo_cls.return_value
        mock_repo.find_for_customer.return_value = appointment
        mock_repo.update.return_value = appointment.model_copy(update={"status": "confirmed"})

        response = admin_client.patch("/api/appointments/12", json={"status": "confirmed"})

        assert response.status_code == 200

    @patch('loyalty_api.api.appointments.AppointmentRepository')
    def test_other_customers_appointment(self, mock_repo_cls, client):
        mock_repo_cls.return_value.find_for_customer.return_value = None

        response = client.patch("/api/appointments/77", json={"status": "cancelled"})

        assert response.status_code == 404
