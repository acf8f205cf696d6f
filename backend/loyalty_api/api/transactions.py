"""
Transactions API Endpoints
Purchase history, spending analytics and CSV export
"""
import logging
import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from loyalty_api.api.dependencies import get_current_customer
from loyalty_api.domain.customer import Customer
from loyalty_api.repositories.transaction_repository import TransactionRepository
from loyalty_api.services.settings_service import get_settings_service
from loyalty_api.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


@router.get("")
async def get_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, description="Receipt number or item name"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    min_amount: Optional[float] = Query(None, alias="minAmount", ge=0),
    max_amount: Optional[float] = Query(None, alias="maxAmount", ge=0),
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    customer: Customer = Depends(get_current_customer),
):
    try:
        transactions, total = TransactionRepository().find_by_customer(
            customer.id,
            page=page,
            limit=limit,
            search=search.strip() if search else None,
            date_from=date_from,
            date_to=date_to,
            min_amount=min_amount,
            max_amount=max_amount,
            payment_method=payment_method,
        )

        return {
            "transactions": [t.to_dict() for t in transactions],
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(total / limit) if total else 0,
        }

    except Exception as e:
        logger.error(f"Error fetching transactions: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch transactions")


@router.get("/analytics")
async def get_transaction_analytics(customer: Customer = Depends(get_current_customer)):
    try:
        rate = get_settings_service().points_redemption_rate()
        analytics = TransactionService().get_analytics(customer.id, points_redemption_rate=rate)
        return analytics.to_dict()

    except Exception as e:
        logger.error(f"Error fetching transaction analytics: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch analytics")


@router.get("/export")
async def export_transactions(customer: Customer = Depends(get_current_customer)):
    """Download the full purchase history as CSV"""
    try:
        csv_text = TransactionService().export_csv(customer.id)

        return Response(
            content=csv_text,
            media_type="text/csv",
            headers={
                "Content-Disposition": "attachment; filename=transactions.csv"
            }
        )

    except Exception as e:
        logger.error(f"Error exporting transactions: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to export transactions")


@router.get("/{transaction_id}")
async def get_transaction(transaction_id: int, customer: Customer = Depends(get_current_customer)):
    try:
        transaction = TransactionRepository().find_for_customer(transaction_id, customer.id)
        if transaction is None:
            raise HTTPException(status_code=404, detail="Transaction not found")

        return {"transaction": transaction.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching transaction {transaction_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch transaction")
