"""
Transaction Domain Model

Purchases recorded against a customer, with their line items and the
points they earned or spent.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from loyalty_api.domain.base import APIModel


class TransactionItem(APIModel):
    id: int
    product_id: Optional[int] = None
    product_name: str = ""
    category: str = ""
    quantity: int = 1
    unit_price: float = 0.0
    total_price: float = 0.0


class Transaction(APIModel):
    """
    A completed purchase

    transaction_id is the human-facing receipt number; id is the primary key.
    """
    id: int
    transaction_id: str
    customer_id: int
    transaction_date: Optional[datetime] = None
    subtotal: float = 0.0
    tax_amount: float = 0.0
    discount_amount: float = 0.0
    total_amount: float = 0.0
    points_earned: int = 0
    points_redeemed: int = 0
    payment_method: str = ""
    transaction_type: str = "Purchase"
    store_location: Optional[str] = None
    status: str = "Completed"
    items: List[TransactionItem] = Field(default_factory=list)

    @property
    def items_summary(self) -> str:
        return "; ".join(f"{item.product_name} x{item.quantity}" for item in self.items)


class MonthlySpending(APIModel):
    month: str
    amount: float = 0.0
    transactions: int = 0


class CategorySpending(APIModel):
    category: str
    amount: float = 0.0
    percentage: float = 0.0


class TopProduct(APIModel):
    product_name: str
    quantity: int = 0
    total_spent: float = 0.0


class TransactionAnalytics(APIModel):
    total_spent: float = 0.0
    total_transactions: int = 0
    average_order_value: float = 0.0
    spending_by_month: List[MonthlySpending] = Field(default_factory=list)
    spending_by_category: List[CategorySpending] = Field(default_factory=list)
    top_products: List[TopProduct] = Field(default_factory=list)
    savings_from_loyalty: float = 0.0
