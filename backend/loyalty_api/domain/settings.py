"""
System Setting Domain Model

Runtime business settings stored as text with a declared type. Values are
converted on read; a value that does not parse as its type yields the
caller's default.
"""
import json
from datetime import datetime
from typing import Any, Optional

from loyalty_api.domain.base import APIModel

SETTING_TYPES = ("string", "number", "boolean", "json")


class SystemSetting(APIModel):
    id: Optional[int] = None
    setting_key: str
    setting_value: str
    setting_type: str = "string"
    category: str = "general"
    description: Optional[str] = None
    is_active: bool = True
    updated_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def parse_setting_value(value: Optional[str], setting_type: str, default: Any = None) -> Any:
    """Convert a stored string to its declared type, or return default."""
    if value is None:
        return default

    if setting_type == "number":
        try:
            number = float(value)
        except (TypeError, ValueError):
            return default
        return int(number) if number.is_integer() else number

    if setting_type == "boolean":
        lowered = str(value).strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        return default

    if setting_type == "json":
        try:
            return json.loads(value)
        except (TypeError, ValueError):
            return default

    return value


def serialize_setting_value(value: Any, setting_type: str) -> str:
    """Inverse of parse_setting_value."""
    if setting_type == "boolean":
        return "true" if value else "false"
    if setting_type == "json":
        return json.dumps(value)
    return str(value)


def infer_setting_type(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, (dict, list)):
        return "json"
    return "string"
