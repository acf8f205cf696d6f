"""
Chat Assistant Tools

Read-only tools the assistant can call while answering a customer:
1. get_points_balance - Points, tier and progress to the next tier
2. search_products - Catalog search by text and category
3. find_stores - Store lookup by name/city and offered service
4. get_upcoming_appointments - The customer's next bookings

Every tool runs for the customer who owns the chat session; the model
never chooses whose data it sees. Tools return JSON strings.

Date: 2025-10-20
"""
import json
from typing import Any, Dict, Optional

from loyalty_api.domain.loyalty import tier_progress
from loyalty_api.repositories.booking_repository import AppointmentRepository
from loyalty_api.repositories.customer_repository import CustomerRepository
from loyalty_api.repositories.product_repository import ProductRepository
from loyalty_api.repositories.store_repository import StoreRepository
from loyalty_api.services.store_locator_service import StoreSearchFilters, filter_stores

MAX_TOOL_RESULTS = 10


# ============================================================================
# TOOL 1: get_points_balance
# ============================================================================

def get_points_balance(customer_id: int) -> str:
    """
    Current points balance and tier status.

    Returns:
        JSON string with points, tier and tier progress
    """
    try:
        customer = CustomerRepository().find_by_id(customer_id)
        if customer is None:
            return json.dumps({"error": "Customer not found"}, ensure_ascii=False)

        progress = tier_progress(customer.customer_tier, customer.points)
        return json.dumps({
            "points": customer.points,
            "tier": progress.tier,
            "next_tier": progress.next_tier,
            "points_to_next_tier": progress.points_to_next,
            "progress_percent": progress.progress_to_next,
            "tier_benefits": progress.benefits,
            "total_spent": round(customer.total_spent, 2),
        }, ensure_ascii=False)

    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


# ============================================================================
# TOOL 2: search_products
# ============================================================================

def search_products(
    customer_id: int,
    query: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = 5,
) -> str:
    """
    Search the active catalog.

    Args:
        query: Text matched against product name, description or tags
        category: Optional exact category
        limit: Max products returned (capped at 10)

    Returns:
        JSON string with matching products and the total count
    """
    try:
        limit = max(1, min(int(limit), MAX_TOOL_RESULTS))
        products, total = ProductRepository().search(page=1, limit=limit, search=query, category=category)

        return json.dumps({
            "total": total,
            "products": [
                {
                    "id": p.id,
                    "name": p.name,
                    "price": p.price,
                    "on_sale": p.is_on_sale,
                    "original_price": p.original_price,
                    "category": p.category,
                    "brand": p.brand,
                    "stock_status": p.stock_status,
                    "rating": p.rating,
                }
                for p in products
            ],
        }, ensure_ascii=False)

    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


# ============================================================================
# TOOL 3: find_stores
# ============================================================================

def find_stores(
    customer_id: int,
    search: Optional[str] = None,
    service: Optional[str] = None,
    open_now: bool = False,
) -> str:
    """
    Look up store locations.

    Args:
        search: Name, city or address fragment
        service: A service name the store must offer
        open_now: Only stores open right now

    Returns:
        JSON string with store contact details and open-now status
    """
    try:
        filters = StoreSearchFilters(
            search=search,
            services=[service] if service else [],
            is_open=open_now or None,
        )
        stores = filter_stores(StoreRepository().find_all_active(), filters)

        return json.dumps({
            "total": len(stores),
            "stores": [
                {
                    "id": s.id,
                    "name": s.name,
                    "address": f"{s.address}, {s.city}".strip(", "),
                    "phone": s.phone,
                    "is_open": s.is_open,
                    "services": s.services,
                    "rating": s.rating,
                }
                for s in stores[:MAX_TOOL_RESULTS]
            ],
        }, ensure_ascii=False)

    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


# ============================================================================
# TOOL 4: get_upcoming_appointments
# ============================================================================

def get_upcoming_appointments(customer_id: int) -> str:
    """
    The customer's next scheduled or confirmed appointments.

    Returns:
        JSON string with date, time, store and service per appointment
    """
    try:
        appointments = AppointmentRepository().find_upcoming(customer_id, limit=5)

        return json.dumps({
            "total": len(appointments),
            "appointments": [
                {
                    "id": a.id,
                    "date": a.appointment_date.isoformat(),
                    "time": a.appointment_time,
                    "status": a.status,
                    "store": a.store.name if a.store else None,
                    "service": a.service.name if a.service else None,
                }
                for a in appointments
            ],
        }, ensure_ascii=False)

    except Exception as e:
        return json.dumps({"error": str(e)}, ensure_ascii=False)


# ============================================================================
# TOOL REGISTRY
# ============================================================================

TOOL_FUNCTIONS = {
    "get_points_balance": get_points_balance,
    "search_products": search_products,
    "find_stores": find_stores,
    "get_upcoming_appointments": get_upcoming_appointments,
}


def execute_tool(tool_name: str, tool_input: Dict[str, Any], customer_id: int) -> str:
    """
    Execute a tool by name on behalf of a customer.

    Args:
        tool_name: Name of the tool to execute
        tool_input: Parameters chosen by the model
        customer_id: Owner of the chat session

    Returns:
        JSON string result from the tool
    """
    if tool_name not in TOOL_FUNCTIONS:
        return json.dumps({"error": f"Tool '{tool_name}' not found"}, ensure_ascii=False)

    params = {k: v for k, v in (tool_input or {}).items() if k != "customer_id"}
    try:
        return TOOL_FUNCTIONS[tool_name](customer_id=customer_id, **params)
    except TypeError as e:
        return json.dumps({"error": f"Invalid parameters for {tool_name}: {str(e)}"}, ensure_ascii=False)
    except Exception as e:
        return json.dumps({"error": f"Error executing {tool_name}: {str(e)}"}, ensure_ascii=False)
