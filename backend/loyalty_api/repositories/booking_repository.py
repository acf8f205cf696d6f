"""
Booking Repositories - appointments and work orders

Both are listed with their store and service nested, and are only ever
read or changed through the owning customer's id.
"""
import logging
from datetime import date, time
from typing import Any, Dict, List, Optional

import psycopg2.errors

from loyalty_api.core.database import get_db_connection_dict
from loyalty_api.domain.booking import (
    Appointment,
    ServiceSummary,
    StoreSummary,
    WorkOrder,
)

logger = logging.getLogger(__name__)


class SlotUnavailableError(ValueError):
    pass


def _store_summary(row: dict) -> Optional[StoreSummary]:
    if row.get('store_name') is None:
        return None
    return StoreSummary(
        id=row['store_id'],
        name=row['store_name'],
        address=row.get('store_address') or '',
        phone=row.get('store_phone') or '',
    )


def _service_summary(row: dict) -> Optional[ServiceSummary]:
    if row.get('service_id') is None or row.get('service_name') is None:
        return None
    return ServiceSummary(
        id=row['service_id'],
        name=row['service_name'],
        duration=row.get('service_duration') or 0,
        price=float(row.get('service_price') or 0),
    )


def _status_filter(alias: str, statuses: Optional[List[str]], conditions: list, params: list) -> None:
    if statuses:
        conditions.append(f"{alias}.status = ANY(%s)")
        params.append(list(statuses))


class AppointmentRepository:
    """Repository for service appointments"""

    SELECT = """
        SELECT
            a.id, a.customer_id, a.store_id, a.service_id, a.appointment_date,
            a.appointment_time, a.duration, a.status, a.notes, a.staff_notes,
            a.total_cost, a.payment_status, a.created_at, a.updated_at,
            s.name AS store_name, s.address AS store_address, s.phone AS store_phone,
            ss.name AS service_name, ss.duration AS service_duration, ss.price AS service_price
        FROM appointments a
        JOIN stores s ON s.id = a.store_id
        LEFT JOIN store_services ss ON ss.id = a.service_id
    """

    @staticmethod
    def _map_row_to_appointment(row: dict) -> Appointment:
        appointment_time = row['appointment_time']
        if isinstance(appointment_time, time):
            appointment_time = appointment_time.strftime("%H:%M")
        return Appointment(
            id=row['id'],
            customer_id=row['customer_id'],
            store_id=row['store_id'],
            service_id=row['service_id'],
            appointment_date=row['appointment_date'],
            appointment_time=str(appointment_time)[:5],
            duration=row.get('duration') or 30,
            status=row.get('status') or 'scheduled',
            notes=row.get('notes'),
            staff_notes=row.get('staff_notes'),
            total_cost=float(row.get('total_cost') or 0),
            payment_status=row.get('payment_status') or 'pending',
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            store=_store_summary(row),
            service=_service_summary(row),
        )

    def find_by_customer(self, customer_id: int, statuses: Optional[List[str]] = None) -> List[Appointment]:
        """Customer's appointments, latest date/time first."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["a.customer_id = %s"]
            params = [customer_id]
            _status_filter("a", statuses, conditions, params)

            cursor.execute(f"""
                {self.SELECT}
                WHERE {' AND '.join(conditions)}
                ORDER BY a.appointment_date DESC, a.appointment_time DESC
            """, params)
            return [self._map_row_to_appointment(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_for_customer(self, appointment_id: int, customer_id: int) -> Optional[Appointment]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {self.SELECT}
                WHERE a.id = %s AND a.customer_id = %s
            """, (appointment_id, customer_id))
            row = cursor.fetchone()
            return self._map_row_to_appointment(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_upcoming(self, customer_id: int, limit: int = 5) -> List[Appointment]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {self.SELECT}
                WHERE a.customer_id = %s
                  AND a.appointment_date >= CURRENT_DATE
                  AND a.status IN ('scheduled', 'confirmed')
                ORDER BY a.appointment_date ASC, a.appointment_time ASC
                LIMIT %s
            """, (customer_id, limit))
            return [self._map_row_to_appointment(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def create(
        self,
        customer_id: int,
        store_id: int,
        service_id: int,
        appointment_date: date,
        appointment_time: time,
        duration: int,
        total_cost: float,
        notes: Optional[str] = None,
    ) -> Appointment:
        """
        Book a slot for a service

        Raises:
            SlotUnavailableError: the store already has a live booking for
                this service at this date and time
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM appointments
                WHERE store_id = %s AND service_id = %s
                  AND appointment_date = %s AND appointment_time = %s
                  AND status NOT IN ('cancelled', 'no_show')
                FOR UPDATE
            """, (store_id, service_id, appointment_date, appointment_time))
            if cursor.fetchone() is not None:
                conn.rollback()
                raise SlotUnavailableError("This time slot is no longer available")

            try:
                cursor.execute("""
                    INSERT INTO appointments (
                        customer_id, store_id, service_id, appointment_date, appointment_time,
                        duration, status, notes, total_cost, payment_status, created_at, updated_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, 'scheduled', %s, %s, 'pending', NOW(), NOW())
                    RETURNING id
                """, (customer_id, store_id, service_id, appointment_date, appointment_time,
                      duration, notes, total_cost))
            except psycopg2.errors.UniqueViolation as e:
                conn.rollback()
                raise SlotUnavailableError("This time slot is no longer available") from e
            appointment_id = cursor.fetchone()['id']
            conn.commit()

        finally:
            cursor.close()
            conn.close()

        logger.info(f"Appointment {appointment_id} booked for customer {customer_id} at store {store_id}")
        return self.find_for_customer(appointment_id, customer_id)

    def update(self, appointment_id: int, customer_id: int, fields: Dict[str, Any]) -> Optional[Appointment]:
        """Update status and/or notes; other keys are ignored."""
        updates = {k: v for k, v in fields.items() if k in ("status", "notes") and v is not None}
        if updates:
            conn = get_db_connection_dict()
            cursor = conn.cursor()

            try:
                assignments = ", ".join(f"{column} = %s" for column in updates)
                cursor.execute(
                    f"UPDATE appointments SET {assignments}, updated_at = NOW() WHERE id = %s AND customer_id = %s",
                    list(updates.values()) + [appointment_id, customer_id]
                )
                conn.commit()

            finally:
                cursor.close()
                conn.close()

        return self.find_for_customer(appointment_id, customer_id)


class WorkOrderRepository:
    """Repository for customer work orders"""

    SELECT = """
        SELECT
            w.id, w.customer_id, w.store_id, w.service_id, w.type, w.priority,
            w.status, w.title, w.description, w.customer_notes, w.technician_notes,
            w.estimated_cost, w.actual_cost, w.estimated_completion,
            w.actual_completion, w.created_at, w.updated_at,
            s.name AS store_name, s.address AS store_address, s.phone AS store_phone,
            ss.name AS service_name, ss.duration AS service_duration, ss.price AS service_price
        FROM work_orders w
        JOIN stores s ON s.id = w.store_id
        LEFT JOIN store_services ss ON ss.id = w.service_id
    """

    @staticmethod
    def _map_row_to_work_order(row: dict) -> WorkOrder:
        return WorkOrder(
            id=row['id'],
            customer_id=row['customer_id'],
            store_id=row['store_id'],
            service_id=row.get('service_id'),
            type=row.get('type') or 'other',
            priority=row.get('priority') or 'medium',
            status=row.get('status') or 'submitted',
            title=row['title'],
            description=row.get('description') or '',
            customer_notes=row.get('customer_notes'),
            technician_notes=row.get('technician_notes'),
            estimated_cost=float(row['estimated_cost']) if row.get('estimated_cost') is not None else None,
            actual_cost=float(row['actual_cost']) if row.get('actual_cost') is not None else None,
            estimated_completion=row.get('estimated_completion'),
            actual_completion=row.get('actual_completion'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
            store=_store_summary(row),
            service=_service_summary(row),
        )

    def find_by_customer(self, customer_id: int, statuses: Optional[List[str]] = None) -> List[WorkOrder]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["w.customer_id = %s"]
            params = [customer_id]
            _status_filter("w", statuses, conditions, params)

            cursor.execute(f"""
                {self.SELECT}
                WHERE {' AND '.join(conditions)}
                ORDER BY w.created_at DESC
            """, params)
            return [self._map_row_to_work_order(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_for_customer(self, work_order_id: int, customer_id: int) -> Optional[WorkOrder]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {self.SELECT}
                WHERE w.id = %s AND w.customer_id = %s
            """, (work_order_id, customer_id))
            row = cursor.fetchone()
            return self._map_row_to_work_order(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def create(
        self,
        customer_id: int,
        store_id: int,
        service_id: Optional[int],
        type: str,
        priority: str,
        title: str,
        description: str,
        customer_notes: Optional[str] = None,
        estimated_cost: Optional[float] = None,
        estimated_completion: Optional[date] = None,
    ) -> WorkOrder:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO work_orders (
                    customer_id, store_id, service_id, type, priority, status, title,
                    description, customer_notes, estimated_cost, estimated_completion,
                    created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, 'submitted', %s, %s, %s, %s, %s, NOW(), NOW())
                RETURNING id
            """, (customer_id, store_id, service_id, type, priority, title, description,
                  customer_notes, estimated_cost, estimated_completion))
            work_order_id = cursor.fetchone()['id']
            conn.commit()

        finally:
            cursor.close()
            conn.close()

        logger.info(f"Work order {work_order_id} submitted by customer {customer_id} at store {store_id}")
        return self.find_for_customer(work_order_id, customer_id)

    def update(self, work_order_id: int, customer_id: int, fields: Dict[str, Any]) -> Optional[WorkOrder]:
        """Update status and/or customer notes; completion stamps actual_completion."""
        updates = {k: v for k, v in fields.items() if k in ("status", "customer_notes") and v is not None}
        if updates:
            conn = get_db_connection_dict()
            cursor = conn.cursor()

            try:
                assignments = ", ".join(f"{column} = %s" for column in updates)
                if updates.get("status") == "completed":
                    assignments += ", actual_completion = NOW()"
                cursor.execute(
                    f"UPDATE work_orders SET {assignments}, updated_at = NOW() WHERE id = %s AND customer_id = %s",
                    list(updates.values()) + [work_order_id, customer_id]
                )
                conn.commit()

            finally:
                cursor.close()
                conn.close()

        return self.find_for_customer(work_order_id, customer_id)
