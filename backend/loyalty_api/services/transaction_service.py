"""
Service for transaction analytics and CSV export.
"""
import io
import logging
from datetime import date
from typing import List, Optional

import pandas as pd
from dateutil.relativedelta import relativedelta

from loyalty_api.domain.transaction import (
    MonthlySpending,
    Transaction,
    TransactionAnalytics,
)
from loyalty_api.repositories.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)

ANALYTICS_MONTHS = 12

EXPORT_COLUMNS = [
    "Transaction ID",
    "Date",
    "Total",
    "Points Earned",
    "Points Redeemed",
    "Payment Method",
    "Items",
]


def last_months(count: int = ANALYTICS_MONTHS, today: Optional[date] = None) -> List[str]:
    """'YYYY-MM' keys for the last `count` months, oldest first, ending with the current month."""
    today = today or date.today()
    first_of_month = today.replace(day=1)
    return [
        (first_of_month - relativedelta(months=offset)).strftime("%Y-%m")
        for offset in range(count - 1, -1, -1)
    ]


class TransactionService:
    """Service for transaction business logic"""

    def __init__(self, repository: Optional[TransactionRepository] = None):
        self.repository = repository or TransactionRepository()

    def get_analytics(
        self,
        customer_id: int,
        points_redemption_rate: float = 100.0,
        today: Optional[date] = None,
    ) -> TransactionAnalytics:
        """
        Spending analytics for the customer's dashboard

        Every one of the last 12 months is present, with zero for months
        without purchases. savings_from_loyalty converts the points redeemed
        to currency at points_redemption_rate points per unit.
        """
        months = last_months(ANALYTICS_MONTHS, today)
        since = date.fromisoformat(f"{months[0]}-01")

        totals = self.repository.get_totals(customer_id)
        monthly = self.repository.get_monthly_spending(customer_id, since)

        total_spent = totals["total_spent"]
        total_transactions = totals["total_transactions"]
        rate = points_redemption_rate if points_redemption_rate and points_redemption_rate > 0 else 100.0

        return TransactionAnalytics(
            total_spent=round(total_spent, 2),
            total_transactions=total_transactions,
            average_order_value=round(total_spent / total_transactions, 2) if total_transactions else 0.0,
            spending_by_month=[
                MonthlySpending(
                    month=month,
                    amount=round(monthly.get(month, {}).get("amount", 0.0), 2),
                    transactions=monthly.get(month, {}).get("transactions", 0),
                )
                for month in months
            ],
            spending_by_category=self.repository.get_category_spending(customer_id),
            top_products=self.repository.get_top_products(customer_id, limit=5),
            savings_from_loyalty=round(totals["points_redeemed"] / rate, 2),
        )

    @staticmethod
    def to_csv(transactions: List[Transaction]) -> str:
        """Render transactions as CSV text with the export header row."""
        rows = [
            {
                "Transaction ID": t.transaction_id,
                "Date": t.transaction_date.strftime("%Y-%m-%d") if t.transaction_date else "",
                "Total": f"{t.total_amount:.2f}",
                "Points Earned": t.points_earned,
                "Points Redeemed": t.points_redeemed,
                "Payment Method": t.payment_method,
                "Items": t.items_summary,
            }
            for t in transactions
        ]
        df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)

        buffer = io.StringIO()
        df.to_csv(buffer, index=False)
        return buffer.getvalue()

    def export_csv(self, customer_id: int) -> str:
        transactions = self.repository.find_all_for_export(customer_id)
        logger.info(f"Exporting {len(transactions)} transactions for customer {customer_id}")
        return self.to_csv(transactions)
