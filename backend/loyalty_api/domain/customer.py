"""
User and Customer Domain Models

A user is a login identity; a customer is the loyalty member profile
attached to a user (points, tier, spend).

Date: 2025-10-17
"""
from datetime import date, datetime
from typing import Optional

from pydantic import Field

from loyalty_api.domain.base import APIModel

ROLES = ("customer", "staff", "admin")


class User(APIModel):
    """Login identity"""
    id: int
    email: str
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    role: str = "customer"
    is_active: bool = True
    email_verified: bool = False
    marketing_consent: bool = False
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Customer(APIModel):
    """
    Loyalty member profile

    Fields:
        points: Current redeemable balance
        total_spent: Lifetime spend
        customer_tier: Bronze | Silver | Gold | Platinum
        member_status: Active | Inactive | Suspended
    """
    id: int
    user_id: Optional[int] = None
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    points: int = Field(0, ge=0)
    total_spent: float = 0.0
    visit_count: int = 0
    last_visit: Optional[datetime] = None
    customer_tier: str = "Bronze"
    tier_calculation_number: float = 0.0
    member_status: str = "Active"
    member_type: str = "Individual"
    enrollment_date: Optional[date] = None
    date_of_birth: Optional[date] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    email_notifications: bool = True
    sms_notifications: bool = False
    push_notifications: bool = True
    created_at: Optional[datetime] = None


class Profile(APIModel):
    """User plus customer fields as shown on the profile page"""
    user: User
    customer: Optional[Customer] = None


class ActivityEntry(APIModel):
    id: int
    activity_type: str
    description: str = ""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None
