"""
Appointments API Endpoints
Service bookings at a store for the signed-in customer
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from loyalty_api.api.dependencies import get_current_customer
from loyalty_api.core.auth import TokenUser, get_current_user
from loyalty_api.domain.booking import (
    APPOINTMENT_TRANSITIONS,
    BookingValidationError,
    InvalidStatusTransition,
    parse_booking_slot,
    validate_transition,
)
from loyalty_api.domain.customer import Customer
from loyalty_api.repositories.booking_repository import AppointmentRepository, SlotUnavailableError
from loyalty_api.repositories.store_repository import StoreRepository
from loyalty_api.services.store_locator_service import split_csv

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


class AppointmentCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    store_id: int = Field(..., alias="storeId")
    service_id: int = Field(..., alias="serviceId")
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="HH:MM")
    notes: Optional[str] = Field(None, max_length=1000)


class AppointmentUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=1000)


@router.get("")
async def get_appointments(
    status_filter: Optional[str] = Query(None, alias="status", description="Comma-separated statuses"),
    customer: Customer = Depends(get_current_customer),
):
    try:
        appointments = AppointmentRepository().find_by_customer(customer.id, split_csv(status_filter))
        return {"appointments": [a.to_dict() for a in appointments]}

    except Exception as e:
        logger.error(f"Error fetching appointments: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch appointments")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_appointment(body: AppointmentCreate, customer: Customer = Depends(get_current_customer)):
    """
    Book a service slot

    The slot must be on the half-hour grid between 09:00 and 16:30, from
    today up to 30 days ahead. Duration and cost come from the service.
    """
    try:
        try:
            booking_date, booking_time = parse_booking_slot(body.date, body.time)
        except BookingValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        service = StoreRepository().find_service(body.store_id, body.service_id)
        if service is None:
            raise HTTPException(status_code=404, detail="Service not found for this store")

        appointment = AppointmentRepository().create(
            customer_id=customer.id,
            store_id=body.store_id,
            service_id=body.service_id,
            appointment_date=booking_date,
            appointment_time=booking_time,
            duration=service.duration,
            total_cost=service.price,
            notes=body.notes,
        )

        return {"success": True, "appointment": appointment.to_dict()}

    except SlotUnavailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating appointment: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create appointment")


@router.patch("/{appointment_id}")
async def update_appointment(
    appointment_id: int,
    body: AppointmentUpdate,
    user: TokenUser = Depends(get_current_user),
    customer: Customer = Depends(get_current_customer),
):
    try:
        repo = AppointmentRepository()
        appointment = repo.find_for_customer(appointment_id, customer.id)
        if appointment is None:
            raise HTTPException(status_code=404, detail="Appointment not found")

        if body.status is not None:
            try:
                validate_transition(APPOINTMENT_TRANSITIONS, appointment.status, body.status, user.role)
            except InvalidStatusTransition as e:
                raise HTTPException(status_code=400, detail=str(e))

        updated = repo.update(appointment_id, customer.id, body.model_dump(exclude_none=True))
        logger.info(f"Appointment {appointment_id} updated by user {user.id}: {body.model_dump(exclude_none=True)}")

        return {"success": True, "appointment": updated.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating appointment {appointment_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update appointment")
