"""
System Settings Service

Typed access to the runtime business settings in system_settings. Reads
never fail a request: any database error is logged and the caller's
default (or False / an empty list) comes back instead.
"""
import logging
from typing import Any, Dict, List, Optional

from loyalty_api.domain.chat import CHAT_SETTING_KEYS, ChatSettings
from loyalty_api.domain.settings import (
    SystemSetting,
    infer_setting_type,
    parse_setting_value,
    serialize_setting_value,
)
from loyalty_api.repositories.settings_repository import SettingsRepository

logger = logging.getLogger(__name__)

# Setting keys
COMPANY_NAME = "company_name"
CURRENCY_SYMBOL = "currency_symbol"
CURRENCY_CODE = "currency_code"
DATE_FORMAT = "date_format"
TIME_FORMAT = "time_format"
TAX_INCLUSIVE = "tax_inclusive"
DEFAULT_TAX_RATE = "default_tax_rate"
POINTS_PER_DOLLAR = "points_per_dollar"
POINTS_REDEMPTION_RATE = "points_redemption_rate"
LOW_STOCK_THRESHOLD = "low_stock_threshold"
CHAT_ENABLED = "chat_enabled"
CHAT_API_URL = "chat_api_url"
CHAT_FLOATING_BUTTON = "chat_floating_button"
CHAT_MAX_FILE_SIZE = "chat_max_file_size"
CHAT_ALLOWED_FILE_TYPES = "chat_allowed_file_types"
CHAT_TYPING_INDICATOR_DELAY = "chat_typing_indicator_delay"
CHAT_MESSAGE_RETRY_ATTEMPTS = "chat_message_retry_attempts"
CHAT_SESSION_TIMEOUT = "chat_session_timeout"

# (key, value, type, category)
DEFAULT_SETTINGS = [
    (COMPANY_NAME, "Customer Loyalty App", "string", "general"),
    (CURRENCY_SYMBOL, "$", "string", "general"),
    (CURRENCY_CODE, "USD", "string", "general"),
    (DATE_FORMAT, "MM/DD/YYYY", "string", "general"),
    (TIME_FORMAT, "12h", "string", "general"),
    (TAX_INCLUSIVE, "false", "boolean", "pos"),
    (DEFAULT_TAX_RATE, "0.08", "number", "pos"),
    (POINTS_PER_DOLLAR, "1", "number", "loyalty"),
    (POINTS_REDEMPTION_RATE, "100", "number", "loyalty"),
    (LOW_STOCK_THRESHOLD, "5", "number", "inventory"),
    (CHAT_ENABLED, "true", "boolean", "chat"),
    (CHAT_API_URL, "", "string", "chat"),
    (CHAT_FLOATING_BUTTON, "true", "boolean", "chat"),
    (CHAT_MAX_FILE_SIZE, "10485760", "number", "chat"),
    (CHAT_ALLOWED_FILE_TYPES, "image/jpeg,image/png,image/gif,application/pdf,text/plain", "string", "chat"),
    (CHAT_TYPING_INDICATOR_DELAY, "1000", "number", "chat"),
    (CHAT_MESSAGE_RETRY_ATTEMPTS, "3", "number", "chat"),
    (CHAT_SESSION_TIMEOUT, "3600000", "number", "chat"),
]

SETTING_CATEGORIES = ("general", "pos", "loyalty", "inventory", "email", "integration", "chat")


class SystemSettingsService:
    """
    Service over SettingsRepository.

    Usage:
        settings_service = get_settings_service()
        rate = settings_service.get_as_type("points_redemption_rate", "number", 100)
    """

    def __init__(self, repository: Optional[SettingsRepository] = None):
        self.repository = repository or SettingsRepository()

    def get(self, key: str) -> Optional[str]:
        """Raw string value, or None when missing or on error."""
        try:
            setting = self.repository.find_by_key(key)
            return setting.setting_value if setting else None
        except Exception as e:
            logger.error(f"Error getting system setting '{key}': {e}")
            return None

    def get_with_default(self, key: str, default: str) -> str:
        value = self.get(key)
        return value if value else default

    def set(
        self,
        key: str,
        value: str,
        category: str = "general",
        description: Optional[str] = None,
        user: str = "system",
        setting_type: str = "string",
    ) -> bool:
        try:
            self.repository.upsert(
                key, value,
                setting_type=setting_type,
                category=category,
                description=description,
                updated_by=user,
            )
            return True
        except Exception as e:
            logger.error(f"Error setting system setting '{key}': {e}")
            return False

    def by_category(self, category: str) -> List[SystemSetting]:
        try:
            return self.repository.find_by_category(category)
        except Exception as e:
            logger.error(f"Error getting system settings for category '{category}': {e}")
            return []

    def all(self) -> List[SystemSetting]:
        try:
            return self.repository.find_all()
        except Exception as e:
            logger.error(f"Error getting all system settings: {e}")
            return []

    def delete(self, key: str) -> bool:
        try:
            return self.repository.deactivate(key)
        except Exception as e:
            logger.error(f"Error deleting system setting '{key}': {e}")
            return False

    def exists(self, key: str) -> bool:
        try:
            return self.repository.exists(key)
        except Exception as e:
            logger.error(f"Error checking if system setting '{key}' exists: {e}")
            return False

    def get_as_type(self, key: str, setting_type: str, default: Any) -> Any:
        """Value converted to string | number | boolean | json; default when missing or unparseable."""
        return parse_setting_value(self.get(key), setting_type, default)

    def set_with_type(
        self,
        key: str,
        value: Any,
        setting_type: Optional[str] = None,
        category: str = "general",
        description: Optional[str] = None,
        user: str = "system",
    ) -> bool:
        setting_type = setting_type or infer_setting_type(value)
        return self.set(
            key,
            serialize_setting_value(value, setting_type),
            category=category,
            description=description or f"Setting of type {setting_type}",
            user=user,
            setting_type=setting_type,
        )

    def initialize_default_settings(self) -> int:
        """
        Insert any default setting whose key has never been stored.

        Existing keys, including deactivated ones, are left alone.

        Returns:
            Number of settings created
        """
        created = 0
        for key, value, setting_type, category in DEFAULT_SETTINGS:
            if self.repository.exists_any(key):
                continue
            self.repository.upsert(
                key, value,
                setting_type=setting_type,
                category=category,
                description=f"Default {category} setting",
                updated_by="system",
            )
            created += 1

        if created:
            logger.info(f"Initialized {created} default system settings")
        return created

    # Typed accessors used by the API layer

    def low_stock_threshold(self) -> int:
        return int(self.get_as_type(LOW_STOCK_THRESHOLD, "number", 5))

    def points_redemption_rate(self) -> float:
        rate = self.get_as_type(POINTS_REDEMPTION_RATE, "number", 100)
        return float(rate) if rate else 100.0

    def get_chat_settings(self) -> ChatSettings:
        """Typed chat settings; each missing key falls back to its ChatSettings default."""
        defaults = ChatSettings()
        stored: Dict[str, str] = {s.setting_key: s.setting_value for s in self.by_category("chat")}

        def typed(key: str, setting_type: str):
            field = CHAT_SETTING_KEYS[key]
            return parse_setting_value(stored.get(key), setting_type, getattr(defaults, field))

        allowed = stored.get(CHAT_ALLOWED_FILE_TYPES)
        return ChatSettings(
            chat_enabled=typed(CHAT_ENABLED, "boolean"),
            chat_api_url=typed(CHAT_API_URL, "string"),
            chat_floating_button=typed(CHAT_FLOATING_BUTTON, "boolean"),
            max_file_size=int(typed(CHAT_MAX_FILE_SIZE, "number")),
            allowed_file_types=(
                [t.strip() for t in allowed.split(",") if t.strip()]
                if allowed is not None else defaults.allowed_file_types
            ),
            typing_indicator_delay=int(typed(CHAT_TYPING_INDICATOR_DELAY, "number")),
            message_retry_attempts=int(typed(CHAT_MESSAGE_RETRY_ATTEMPTS, "number")),
            session_timeout=int(typed(CHAT_SESSION_TIMEOUT, "number")),
        )

    def update_chat_settings(self, updates: Dict[str, Any], user: str) -> List[str]:
        """
        Write only the chat settings present in `updates`

        Args:
            updates: ChatSettings field name -> new value

        Returns:
            Setting keys that failed to save
        """
        field_to_key = {field: key for key, field in CHAT_SETTING_KEYS.items()}
        failed = []
        for field, value in updates.items():
            key = field_to_key.get(field)
            if key is None or value is None:
                continue
            if field == "allowed_file_types" and isinstance(value, list):
                ok = self.set(key, ",".join(value), category="chat", user=user)
            else:
                ok = self.set_with_type(key, value, category="chat", user=user)
            if not ok:
                failed.append(key)
        return failed


_service_instance: Optional[SystemSettingsService] = None


def get_settings_service() -> SystemSettingsService:
    """
    Get the singleton settings service instance.

    Returns:
        SystemSettingsService instance
    """
    global _service_instance
    if _service_instance is None:
        _service_instance = SystemSettingsService()
    return _service_instance
