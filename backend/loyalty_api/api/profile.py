"""
Profile API Endpoints
Account details, notification preferences, password, activity, data
export and account deactivation
"""
import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from loyalty_api.api.dependencies import get_current_customer, get_low_stock_threshold
from loyalty_api.core.auth import TokenUser, get_current_user, hash_password, verify_password
from loyalty_api.core.config import settings
from loyalty_api.core.rate_limit import get_client_ip
from loyalty_api.domain.customer import Customer, User
from loyalty_api.repositories.booking_repository import AppointmentRepository, WorkOrderRepository
from loyalty_api.repositories.customer_repository import CustomerRepository
from loyalty_api.repositories.loyalty_repository import LoyaltyRepository
from loyalty_api.repositories.transaction_repository import TransactionRepository
from loyalty_api.repositories.user_repository import ActivityRepository, UserRepository
from loyalty_api.repositories.wishlist_repository import WishlistRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/profile", tags=["Profile"])


class NotificationPreferences(BaseModel):
    email: Optional[bool] = None
    sms: Optional[bool] = None
    push: Optional[bool] = None
    marketing: Optional[bool] = None


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, min_length=2, max_length=100, alias="firstName")
    last_name: Optional[str] = Field(None, min_length=2, max_length=100, alias="lastName")
    phone: Optional[str] = Field(None, max_length=30)
    marketing_consent: Optional[bool] = Field(None, alias="marketingConsent")
    address_line1: Optional[str] = Field(None, alias="addressLine1")
    address_line2: Optional[str] = Field(None, alias="addressLine2")
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = Field(None, alias="zipCode")
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")
    notification_preferences: Optional[NotificationPreferences] = Field(None, alias="notificationPreferences")


class PasswordChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=8, alias="newPassword")
    confirm_password: str = Field(..., alias="confirmPassword")


def _profile_payload(user: User, customer: Optional[Customer]) -> dict:
    data = {"user": user.to_dict(), "customer": customer.to_dict() if customer else None}
    data["notificationPreferences"] = {
        "email": customer.email_notifications if customer else True,
        "sms": customer.sms_notifications if customer else False,
        "push": customer.push_notifications if customer else True,
        "marketing": user.marketing_consent,
    }
    return data


def _load_user(user_id: int) -> User:
    user = UserRepository().find_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("")
async def get_profile(user: TokenUser = Depends(get_current_user)):
    try:
        current = _load_user(user.id)
        customer = CustomerRepository().find_by_user_id(user.id)
        return _profile_payload(current, customer)

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching profile: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch profile")


@router.put("")
async def update_profile(body: ProfileUpdate, request: Request, user: TokenUser = Depends(get_current_user)):
    try:
        fields = body.model_dump(exclude_none=True, exclude={"notification_preferences"})
        if "first_name" in fields:
            fields["first_name"] = fields["first_name"].strip()
        if "last_name" in fields:
            fields["last_name"] = fields["last_name"].strip()

        preferences = body.notification_preferences
        if preferences is not None:
            if preferences.email is not None:
                fields["email_notifications"] = preferences.email
            if preferences.sms is not None:
                fields["sms_notifications"] = preferences.sms
            if preferences.push is not None:
                fields["push_notifications"] = preferences.push
            if preferences.marketing is not None:
                fields["marketing_consent"] = preferences.marketing

        if not fields:
            raise HTTPException(status_code=400, detail="No fields to update")

        repo = CustomerRepository()
        repo.update_profile(user.id, user_fields=fields, customer_fields=fields)
        ActivityRepository().log(
            user.id, "profile_update", f"Updated: {', '.join(sorted(fields))}",
            get_client_ip(request), request.headers.get("user-agent")
        )

        return {
            "success": True,
            "message": "Profile updated successfully",
            **_profile_payload(_load_user(user.id), repo.find_by_user_id(user.id)),
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error updating profile: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.post("/change-password")
async def change_password(body: PasswordChange, request: Request, user: TokenUser = Depends(get_current_user)):
    try:
        if body.new_password != body.confirm_password:
            raise HTTPException(status_code=400, detail="Passwords don't match")

        repo = UserRepository()
        if not verify_password(body.current_password, repo.get_password_hash(user.id)):
            raise HTTPException(status_code=400, detail="Current password is incorrect")

        repo.update_password(user.id, hash_password(body.new_password))
        ActivityRepository().log(
            user.id, "password_change", "Password changed",
            get_client_ip(request), request.headers.get("user-agent")
        )

        return {"success": True, "message": "Password changed successfully"}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error changing password: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to change password")


@router.get("/activity")
async def get_activity(
    limit: int = Query(20, ge=1, le=100),
    user: TokenUser = Depends(get_current_user),
):
    try:
        return {"activities": [a.to_dict() for a in ActivityRepository().find_by_user(user.id, limit)]}

    except Exception as e:
        logger.error(f"Error fetching activity: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch activity")


@router.get("/export")
async def export_data(
    user: TokenUser = Depends(get_current_user),
    customer: Customer = Depends(get_current_customer),
    low_stock_threshold: int = Depends(get_low_stock_threshold),
):
    """Everything stored about the signed-in customer, as one JSON document"""
    try:
        wishlists = WishlistRepository(low_stock_threshold).find_all(customer.id, user.id)

        return {
            "exportedAt": datetime.now(timezone.utc).isoformat(),
            "profile": _profile_payload(_load_user(user.id), customer),
            "transactions": [t.to_dict() for t in TransactionRepository().find_all_for_export(customer.id)],
            "vouchers": [v.to_dict() for v in LoyaltyRepository().find_vouchers(customer.id)],
            "wishlistItems": [item.to_dict() for w in wishlists for item in w.items],
            "appointments": [a.to_dict() for a in AppointmentRepository().find_by_customer(customer.id)],
            "workOrders": [w.to_dict() for w in WorkOrderRepository().find_by_customer(customer.id)],
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error exporting profile data: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to export data")


@router.delete("")
async def delete_account(request: Request, response: Response, user: TokenUser = Depends(get_current_user)):
    """Deactivate the account and revoke every session"""
    try:
        ActivityRepository().log(
            user.id, "account_deactivated", "Account deactivated by user",
            get_client_ip(request), request.headers.get("user-agent")
        )
        UserRepository().deactivate(user.id)
        response.delete_cookie(settings.AUTH_COOKIE_NAME, path="/")
        logger.info(f"User {user.id} deactivated their account")

        return {"success": True, "message": "Account deactivated"}

    except Exception as e:
        logger.error(f"Error deactivating account: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to deactivate account")
