"""
Dashboard API Endpoint
Summary numbers for the member home screen
"""
import logging

from fastapi import APIRouter, Depends, HTTPException

from loyalty_api.api.dependencies import get_current_customer
from loyalty_api.domain.customer import Customer
from loyalty_api.domain.loyalty import tier_progress
from loyalty_api.repositories.customer_repository import CustomerRepository
from loyalty_api.repositories.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/stats")
async def get_dashboard_stats(customer: Customer = Depends(get_current_customer)):
    try:
        counts = CustomerRepository().get_dashboard_counts(customer.id)
        recent, _ = TransactionRepository().find_by_customer(customer.id, page=1, limit=5)

        return {
            "points": customer.points,
            "tier": customer.customer_tier,
            "tierProgress": tier_progress(customer.customer_tier, customer.points).to_dict(),
            "totalSpent": customer.total_spent,
            "visitCount": customer.visit_count,
            "memberSince": customer.enrollment_date.isoformat() if customer.enrollment_date else None,
            "activeVouchers": counts["active_vouchers"],
            "upcomingAppointments": counts["upcoming_appointments"],
            "openWorkOrders": counts["open_work_orders"],
            "recentTransactions": [t.to_dict() for t in recent],
        }

    except Exception as e:
        logger.error(f"Error fetching dashboard stats: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch dashboard stats")
