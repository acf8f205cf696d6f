"""
System Settings API Endpoints
Read runtime business settings; admins may change them
"""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from loyalty_api.core.auth import TokenUser, get_current_user, require_admin
from loyalty_api.domain.settings import SETTING_TYPES, parse_setting_value
from loyalty_api.services.settings_service import SETTING_CATEGORIES, get_settings_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["Settings"])


class SettingUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    value: Any
    setting_type: Optional[str] = Field(None, alias="type")
    category: str = "general"
    description: Optional[str] = None


def _setting_to_dict(setting) -> dict:
    data = setting.to_dict()
    data["parsedValue"] = parse_setting_value(setting.setting_value, setting.setting_type, setting.setting_value)
    return data


@router.get("")
async def get_all_settings(user: TokenUser = Depends(get_current_user)):
    return {"settings": [_setting_to_dict(s) for s in get_settings_service().all()]}


@router.get("/{category}")
async def get_settings_by_category(category: str, user: TokenUser = Depends(get_current_user)):
    if category not in SETTING_CATEGORIES:
        raise HTTPException(status_code=404, detail=f"Unknown settings category: {category}")

    return {
        "category": category,
        "settings": [_setting_to_dict(s) for s in get_settings_service().by_category(category)],
    }


@router.put("/{key}")
async def update_setting(key: str, body: SettingUpdate, user: TokenUser = Depends(require_admin)):
    """Create or update a setting; the type is inferred from the value when omitted"""
    if body.setting_type is not None and body.setting_type not in SETTING_TYPES:
        raise HTTPException(status_code=400, detail=f"Invalid setting type: {body.setting_type}")

    if body.category not in SETTING_CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Invalid settings category: {body.category}")

    service = get_settings_service()
    saved = service.set_with_type(
        key,
        body.value,
        setting_type=body.setting_type,
        category=body.category,
        description=body.description,
        user=user.email,
    )
    if not saved:
        raise HTTPException(status_code=500, detail="Failed to save setting")

    logger.info(f"Setting '{key}' updated by {user.email}")
    return {"success": True, "key": key, "value": service.get(key)}
