"""
Shared FastAPI dependencies for the customer-facing routers
"""
from fastapi import Depends, HTTPException

from loyalty_api.core.auth import TokenUser, get_current_user
from loyalty_api.domain.customer import Customer
from loyalty_api.repositories.customer_repository import CustomerRepository
from loyalty_api.services.settings_service import get_settings_service


async def get_current_customer(user: TokenUser = Depends(get_current_user)) -> Customer:
    """The loyalty profile of the signed-in user; 404 when the user has none."""
    try:
        customer = CustomerRepository().find_by_user_id(user.id)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error loading customer: {str(e)}")

    if customer is None:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


def get_low_stock_threshold() -> int:
    return get_settings_service().low_stock_threshold()
