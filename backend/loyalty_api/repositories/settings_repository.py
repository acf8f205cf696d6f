"""
System Settings Repository - key/value rows in system_settings

Deleting a setting deactivates it; an upsert on a deactivated key
reactivates it.
"""
from typing import List, Optional

from loyalty_api.core.database import get_db_connection_dict
from loyalty_api.domain.settings import SystemSetting

SETTING_COLUMNS = """
    id, setting_key, setting_value, setting_type, category, description,
    is_active, updated_by, created_at, updated_at
"""


class SettingsRepository:
    """Repository for system_settings"""

    @staticmethod
    def _map_row_to_setting(row: dict) -> SystemSetting:
        return SystemSetting(
            id=row.get('id'),
            setting_key=row['setting_key'],
            setting_value=row.get('setting_value') or '',
            setting_type=row.get('setting_type') or 'string',
            category=row.get('category') or 'general',
            description=row.get('description'),
            is_active=row.get('is_active', True),
            updated_by=row.get('updated_by'),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    def find_by_key(self, key: str) -> Optional[SystemSetting]:
        """Active setting for the key, or None."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SETTING_COLUMNS}
                FROM system_settings
                WHERE setting_key = %s AND is_active = true
            """, (key,))
            row = cursor.fetchone()
            return self._map_row_to_setting(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_by_category(self, category: str) -> List[SystemSetting]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SETTING_COLUMNS}
                FROM system_settings
                WHERE category = %s AND is_active = true
                ORDER BY setting_key
            """, (category,))
            return [self._map_row_to_setting(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_all(self) -> List[SystemSetting]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {SETTING_COLUMNS}
                FROM system_settings
                WHERE is_active = true
                ORDER BY category, setting_key
            """)
            return [self._map_row_to_setting(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def upsert(
        self,
        key: str,
        value: str,
        setting_type: str = "string",
        category: str = "general",
        description: Optional[str] = None,
        updated_by: str = "system",
    ) -> SystemSetting:
        """
        Insert or update a setting

        An existing description or category is kept when none is passed.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO system_settings (
                    setting_key, setting_value, setting_type, category, description,
                    is_active, updated_by, created_at, updated_at
                )
                VALUES (%s, %s, %s, %s, %s, true, %s, NOW(), NOW())
                ON CONFLICT (setting_key) DO UPDATE SET
                    setting_value = EXCLUDED.setting_value,
                    setting_type = EXCLUDED.setting_type,
                    category = COALESCE(EXCLUDED.category, system_settings.category),
                    description = COALESCE(EXCLUDED.description, system_settings.description),
                    is_active = true,
                    updated_by = EXCLUDED.updated_by,
                    updated_at = NOW()
                RETURNING {SETTING_COLUMNS}
            """, (key, value, setting_type, category, description, updated_by))
            row = cursor.fetchone()
            conn.commit()
            return self._map_row_to_setting(row)

        finally:
            cursor.close()
            conn.close()

    def deactivate(self, key: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE system_settings SET is_active = false, updated_at = NOW()
                WHERE setting_key = %s AND is_active = true
            """, (key,))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        finally:
            cursor.close()
            conn.close()

    def exists(self, key: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM system_settings
                WHERE setting_key = %s AND is_active = true
                LIMIT 1
            """, (key,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def exists_any(self, key: str) -> bool:
        """Whether the key has a row at all, active or not."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT 1 FROM system_settings WHERE setting_key = %s LIMIT 1", (key,))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()
