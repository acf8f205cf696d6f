"""
Booking Domain Models - Appointments and Work Orders

Both records carry a status string that moves through a small fixed
transition table. Customers may only cancel their own records; staff and
admins may apply any allowed transition.
"""
from datetime import date, datetime, time, timedelta
from typing import Dict, FrozenSet, List, Optional

from loyalty_api.domain.base import APIModel

# Appointments
APPOINTMENT_STATUSES = ("scheduled", "confirmed", "in_progress", "completed", "cancelled", "no_show")

APPOINTMENT_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "scheduled": frozenset({"confirmed", "cancelled"}),
    "confirmed": frozenset({"in_progress", "completed", "cancelled", "no_show"}),
    "in_progress": frozenset({"completed"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
    "no_show": frozenset(),
}

BOOKING_WINDOW_DAYS = 30
SLOT_INTERVAL_MINUTES = 30
FIRST_SLOT = time(9, 0)
LAST_SLOT = time(16, 30)

# Work orders
WORK_ORDER_TYPES = ("repair", "maintenance", "installation", "customization", "inspection", "other")
WORK_ORDER_PRIORITIES = ("low", "medium", "high", "urgent")
WORK_ORDER_STATUSES = ("submitted", "assigned", "in_progress", "waiting_parts", "completed", "cancelled")

WORK_ORDER_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "submitted": frozenset({"assigned", "cancelled"}),
    "assigned": frozenset({"in_progress", "cancelled"}),
    "in_progress": frozenset({"waiting_parts", "completed", "cancelled"}),
    "waiting_parts": frozenset({"in_progress", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

ESTIMATED_COMPLETION_MAX_DAYS = 90

CUSTOMER_ALLOWED_STATUSES = frozenset({"cancelled"})


class InvalidStatusTransition(ValueError):
    pass


class BookingValidationError(ValueError):
    pass


def validate_transition(
    transitions: Dict[str, FrozenSet[str]],
    current: str,
    new: str,
    role: str = "customer",
) -> None:
    """
    Raise InvalidStatusTransition unless `current -> new` is allowed for `role`.

    Setting the current status again is a no-op and always allowed.
    """
    if new == current:
        return
    if new not in transitions:
        raise InvalidStatusTransition(f"Unknown status: {new}")
    if role == "customer" and new not in CUSTOMER_ALLOWED_STATUSES:
        raise InvalidStatusTransition("Customers can only cancel")
    if new not in transitions.get(current, frozenset()):
        raise InvalidStatusTransition(f"Cannot change status from {current} to {new}")


def available_time_slots() -> List[str]:
    """Bookable HH:MM slots for a day, every 30 minutes from 09:00 to 16:30."""
    slots = []
    current = datetime.combine(date.today(), FIRST_SLOT)
    last = datetime.combine(date.today(), LAST_SLOT)
    while current <= last:
        slots.append(current.strftime("%H:%M"))
        current += timedelta(minutes=SLOT_INTERVAL_MINUTES)
    return slots


def parse_booking_slot(date_str: str, time_str: str, now: Optional[datetime] = None) -> tuple:
    """
    Parse and validate a requested appointment slot.

    Returns:
        (date, time)

    Raises:
        BookingValidationError: bad format, outside the 30-day window, off-grid,
            or a slot earlier today that has already started
    """
    now = now or datetime.now()
    today = now.date()
    try:
        booking_date = datetime.strptime(date_str, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise BookingValidationError("Invalid date format, expected YYYY-MM-DD")
    try:
        booking_time = datetime.strptime(time_str, "%H:%M").time()
    except (TypeError, ValueError):
        raise BookingValidationError("Invalid time format, expected HH:MM")

    if booking_date < today:
        raise BookingValidationError("Appointment date cannot be in the past")
    if booking_date == today and booking_time <= now.time():
        raise BookingValidationError("Appointment time has already passed")
    if booking_date > today + timedelta(days=BOOKING_WINDOW_DAYS):
        raise BookingValidationError(f"Appointments can be booked up to {BOOKING_WINDOW_DAYS} days ahead")
    if booking_time.strftime("%H:%M") not in available_time_slots():
        raise BookingValidationError("Requested time is not an available slot")

    return booking_date, booking_time


def validate_estimated_completion(value: Optional[date], today: Optional[date] = None) -> Optional[date]:
    if value is None:
        return None
    today = today or date.today()
    if value < today:
        raise BookingValidationError("Estimated completion cannot be in the past")
    if value > today + timedelta(days=ESTIMATED_COMPLETION_MAX_DAYS):
        raise BookingValidationError(
            f"Estimated completion must be within {ESTIMATED_COMPLETION_MAX_DAYS} days"
        )
    return value


class StoreSummary(APIModel):
    id: int
    name: str
    address: str = ""
    phone: str = ""


class ServiceSummary(APIModel):
    id: int
    name: str
    duration: int = 0
    price: float = 0.0


class Appointment(APIModel):
    id: int
    customer_id: int
    store_id: int
    service_id: int
    appointment_date: date
    appointment_time: str
    duration: int = 30
    status: str = "scheduled"
    notes: Optional[str] = None
    staff_notes: Optional[str] = None
    total_cost: float = 0.0
    payment_status: str = "pending"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    store: Optional[StoreSummary] = None
    service: Optional[ServiceSummary] = None


class WorkOrder(APIModel):
    id: int
    customer_id: int
    store_id: int
    service_id: Optional[int] = None
    type: str = "repair"
    priority: str = "medium"
    status: str = "submitted"
    title: str
    description: str = ""
    customer_notes: Optional[str] = None
    technician_notes: Optional[str] = None
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None
    estimated_completion: Optional[date] = None
    actual_completion: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    store: Optional[StoreSummary] = None
    service: Optional[ServiceSummary] = None
