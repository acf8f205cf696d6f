"""
Customer Repository - Data Access Layer for loyalty member profiles
"""
from typing import Any, Dict, Optional

from loyalty_api.core.database import get_db_connection_dict, transaction
from loyalty_api.domain.customer import Customer

CUSTOMER_COLUMNS = """
    id, user_id, name, email, phone, points, total_spent, visit_count,
    last_visit, customer_tier, tier_calculation_number, member_status,
    member_type, enrollment_date, date_of_birth, address_line1,
    address_line2, city, state, zip_code, email_notifications,
    sms_notifications, push_notifications, created_at
"""

# users columns editable from the profile page
USER_PROFILE_FIELDS = ("first_name", "last_name", "phone", "marketing_consent")
# customers columns editable from the profile page
CUSTOMER_PROFILE_FIELDS = (
    "phone", "email_notifications", "sms_notifications", "push_notifications",
    "address_line1", "address_line2", "city", "state", "zip_code", "date_of_birth",
)


class CustomerRepository:
    """
    Repository for Customer data access

    Every customer belongs to at most one user; routes resolve the calling
    user's customer via find_by_user_id.
    """

    @staticmethod
    def _map_row_to_customer(row: dict) -> Customer:
        return Customer(
            id=row['id'],
            user_id=row.get('user_id'),
            name=row.get('name') or '',
            email=row.get('email'),
            phone=row.get('phone'),
            points=row.get('points') or 0,
            total_spent=float(row.get('total_spent') or 0),
            visit_count=row.get('visit_count') or 0,
            last_visit=row.get('last_visit'),
            customer_tier=row.get('customer_tier') or 'Bronze',
            tier_calculation_number=float(row.get('tier_calculation_number') or 0),
            member_status=row.get('member_status') or 'Active',
            member_type=row.get('member_type') or 'Individual',
            enrollment_date=row.get('enrollment_date'),
            date_of_birth=row.get('date_of_birth'),
            address_line1=row.get('address_line1'),
            address_line2=row.get('address_line2'),
            city=row.get('city'),
            state=row.get('state'),
            zip_code=row.get('zip_code'),
            email_notifications=row.get('email_notifications', True),
            sms_notifications=row.get('sms_notifications', False),
            push_notifications=row.get('push_notifications', True),
            created_at=row.get('created_at'),
        )

    def find_by_user_id(self, user_id: int) -> Optional[Customer]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE user_id = %s", (user_id,))
            row = cursor.fetchone()
            return self._map_row_to_customer(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, customer_id: int) -> Optional[Customer]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {CUSTOMER_COLUMNS} FROM customers WHERE id = %s", (customer_id,))
            row = cursor.fetchone()
            return self._map_row_to_customer(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def update_profile(self, user_id: int, user_fields: Dict[str, Any], customer_fields: Dict[str, Any]) -> None:
        """
        Update users and customers columns for one account in one transaction.

        Keys outside the editable column lists are ignored.
        """
        user_updates = {k: v for k, v in user_fields.items() if k in USER_PROFILE_FIELDS}
        customer_updates = {k: v for k, v in customer_fields.items() if k in CUSTOMER_PROFILE_FIELDS}

        with transaction() as cursor:
            if user_updates:
                assignments = ", ".join(f"{column} = %s" for column in user_updates)
                cursor.execute(
                    f"UPDATE users SET {assignments}, updated_at = NOW() WHERE id = %s",
                    list(user_updates.values()) + [user_id]
                )

            # customers.name mirrors the user's display name
            if "first_name" in user_updates or "last_name" in user_updates:
                cursor.execute("""
                    UPDATE customers c
                    SET name = TRIM(u.first_name || ' ' || u.last_name), updated_at = NOW()
                    FROM users u
                    WHERE u.id = c.user_id AND c.user_id = %s
                """, (user_id,))

            if customer_updates:
                assignments = ", ".join(f"{column} = %s" for column in customer_updates)
                cursor.execute(
                    f"UPDATE customers SET {assignments}, updated_at = NOW() WHERE user_id = %s",
                    list(customer_updates.values()) + [user_id]
                )

    def get_dashboard_counts(self, customer_id: int) -> Dict[str, int]:
        """Counts shown on the member dashboard."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    (SELECT COUNT(*) FROM customer_vouchers
                     WHERE customer_id = %s AND status = 'Issued'
                       AND (expiration_date IS NULL OR expiration_date >= CURRENT_DATE)) AS active_vouchers,
                    (SELECT COUNT(*) FROM appointments
                     WHERE customer_id = %s AND appointment_date >= CURRENT_DATE
                       AND status IN ('scheduled', 'confirmed')) AS upcoming_appointments,
                    (SELECT COUNT(*) FROM work_orders
                     WHERE customer_id = %s
                       AND status NOT IN ('completed', 'cancelled')) AS open_work_orders
            """, (customer_id, customer_id, customer_id))
            row = cursor.fetchone()
            return {
                "active_vouchers": row['active_vouchers'] or 0,
                "upcoming_appointments": row['upcoming_appointments'] or 0,
                "open_work_orders": row['open_work_orders'] or 0,
            }

        finally:
            cursor.close()
            conn.close()
