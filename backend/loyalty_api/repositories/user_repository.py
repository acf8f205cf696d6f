"""
User Repository - Data Access Layer for users, sessions and activity

Registration writes users, customers and user_activity_log in a single
transaction so a half-registered account can never exist.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from loyalty_api.core.database import get_db_connection_dict, transaction
from loyalty_api.domain.customer import ActivityEntry, User

logger = logging.getLogger(__name__)

USER_COLUMNS = """
    id, email, first_name, last_name, phone, role, is_active,
    email_verified, marketing_consent, last_login, created_at
"""


class UserRepository:
    """Repository for users"""

    @staticmethod
    def _map_row_to_user(row: dict) -> User:
        return User(
            id=row['id'],
            email=row['email'],
            first_name=row.get('first_name') or '',
            last_name=row.get('last_name') or '',
            phone=row.get('phone'),
            role=row.get('role') or 'customer',
            is_active=row.get('is_active', True),
            email_verified=row.get('email_verified') or False,
            marketing_consent=row.get('marketing_consent') or False,
            last_login=row.get('last_login'),
            created_at=row.get('created_at'),
        )

    def find_by_id(self, user_id: int) -> Optional[User]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
            row = cursor.fetchone()
            return self._map_row_to_user(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_credentials_by_email(self, email: str) -> Optional[Tuple[User, str]]:
        """
        Find a user and their password hash for login.

        Returns:
            (User, password_hash) or None if no user has this email
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {USER_COLUMNS}, password_hash
                FROM users
                WHERE LOWER(email) = LOWER(%s)
            """, (email,))
            row = cursor.fetchone()
            if not row:
                return None
            return self._map_row_to_user(row), row['password_hash']

        finally:
            cursor.close()
            conn.close()

    def get_password_hash(self, user_id: int) -> Optional[str]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT password_hash FROM users WHERE id = %s", (user_id,))
            row = cursor.fetchone()
            return row['password_hash'] if row else None

        finally:
            cursor.close()
            conn.close()

    def email_exists(self, email: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT 1 FROM users WHERE LOWER(email) = LOWER(%s)", (email,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def register(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone: Optional[str],
        marketing_consent: bool,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Create the user, their Bronze customer profile and the registration
        activity row atomically.
        """
        with transaction() as cursor:
            cursor.execute(f"""
                INSERT INTO users (
                    email, password_hash, first_name, last_name, phone,
                    role, is_active, marketing_consent, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, 'customer', true, %s, NOW(), NOW())
                RETURNING {USER_COLUMNS}
            """, (email, password_hash, first_name, last_name, phone, marketing_consent))
            user = self._map_row_to_user(cursor.fetchone())

            cursor.execute("""
                INSERT INTO customers (
                    user_id, name, email, phone, points, total_spent, visit_count,
                    marketing_consent, member_status, member_type, customer_tier,
                    enrollment_date, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, 0, 0, 0, %s, 'Active', 'Individual', 'Bronze',
                        CURRENT_DATE, NOW(), NOW())
            """, (user.id, f"{first_name} {last_name}", email, phone, marketing_consent))

            cursor.execute("""
                INSERT INTO user_activity_log (user_id, activity_type, description, ip_address)
                VALUES (%s, 'registration', 'User registered successfully', %s)
            """, (user.id, ip_address))

        logger.info(f"Registered user {user.id} ({email})")
        return user

    def update_last_login(self, user_id: int) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("UPDATE users SET last_login = NOW() WHERE id = %s", (user_id,))
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def update_password(self, user_id: int, password_hash: str) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE users SET password_hash = %s, updated_at = NOW()
                WHERE id = %s
            """, (password_hash, user_id))
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def deactivate(self, user_id: int) -> None:
        """Deactivate the account and revoke every session it holds."""
        with transaction() as cursor:
            cursor.execute("""
                UPDATE users SET is_active = false, updated_at = NOW()
                WHERE id = %s
            """, (user_id,))
            cursor.execute("""
                UPDATE customers SET member_status = 'Inactive', updated_at = NOW()
                WHERE user_id = %s
            """, (user_id,))
            cursor.execute("""
                UPDATE user_sessions SET is_active = false
                WHERE user_id = %s
            """, (user_id,))


class SessionRepository:
    """Login sessions, keyed by the SHA-256 digest of the JWT"""

    def create(
        self,
        user_id: int,
        token_hash: str,
        expires_at: datetime,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO user_sessions (user_id, token_hash, expires_at, ip_address, user_agent, is_active)
                VALUES (%s, %s, %s, %s, %s, true)
            """, (user_id, token_hash, expires_at, ip_address, user_agent))
            conn.commit()

        finally:
            cursor.close()
            conn.close()

    def is_active(self, token_hash: str, user_id: int) -> bool:
        """True while the session is unrevoked and unexpired."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1
                FROM user_sessions
                WHERE token_hash = %s
                  AND user_id = %s
                  AND is_active = true
                  AND expires_at > NOW()
            """, (token_hash, user_id))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def revoke(self, token_hash: str) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE user_sessions SET is_active = false
                WHERE token_hash = %s
            """, (token_hash,))
            conn.commit()

        finally:
            cursor.close()
            conn.close()


class ActivityRepository:
    """Append-only user_activity_log"""

    @staticmethod
    def _map_row_to_entry(row: dict) -> ActivityEntry:
        return ActivityEntry(
            id=row['id'],
            activity_type=row['activity_type'],
            description=row.get('description') or '',
            ip_address=row.get('ip_address'),
            user_agent=row.get('user_agent'),
            created_at=row.get('created_at'),
        )

    def log(
        self,
        user_id: int,
        activity_type: str,
        description: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """Record an activity. Failures are logged, never raised to the caller."""
        try:
            conn = get_db_connection_dict()
            cursor = conn.cursor()
            try:
                cursor.execute("""
                    INSERT INTO user_activity_log (user_id, activity_type, description, ip_address, user_agent)
                    VALUES (%s, %s, %s, %s, %s)
                """, (user_id, activity_type, description, ip_address, user_agent))
                conn.commit()
            finally:
                cursor.close()
                conn.close()
        except Exception as e:
            logger.warning(f"Activity logging failed for user {user_id} ({activity_type}): {e}")

    def find_by_user(self, user_id: int, limit: int = 20) -> List[ActivityEntry]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, activity_type, description, ip_address, user_agent, created_at
                FROM user_activity_log
                WHERE user_id = %s
                ORDER BY created_at DESC
                LIMIT %s
            """, (user_id, limit))
            return [self._map_row_to_entry(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()
