"""
Tests for TransactionService analytics and CSV export
"""
from datetime import date, datetime
from unittest.mock import MagicMock

from loyalty_api.domain.transaction import CategorySpending, TopProduct, Transaction, TransactionItem
from loyalty_api.services.transaction_service import EXPORT_COLUMNS, TransactionService, last_months


def test_last_months_crosses_year_boundary():
    assert last_months(3, date(2025, 1, 31)) == ["2024-11", "2024-12", "2025-01"]


def test_last_months_default_is_a_year():
    months = last_months(today=date(2025, 10, 20))
    assert len(months) == 12
    assert months[0] == "2024-11"
    assert months[-1] == "2025-10"


class TestAnalytics:

    def test_every_month_present_and_savings_converted(self):
        # Arrange
        repository = MagicMock()
        repository.get_totals.return_value = {
            "total_spent": 300.0, "total_transactions": 4, "points_redeemed": 1500,
        }
        repository.get_monthly_spending.return_value = {
            "2025-09": {"amount": 120.5, "transactions": 1},
            "2025-10": {"amount": 179.5, "transactions": 3},
        }
        repository.get_category_spending.return_value = [
            CategorySpending(category="Footwear", amount=300.0, percentage=100.0),
        ]
        repository.get_top_products.return_value = [
            TopProduct(product_name="Trail Runner 2", quantity=2, total_spent=259.98),
        ]

        # Act
        analytics = TransactionService(repository).get_analytics(
            42, points_redemption_rate=100, today=date(2025, 10, 20)
        )

        # Assert
        assert analytics.total_spent == 300.0
        assert analytics.average_order_value == 75.0
        assert analytics.savings_from_loyalty == 15.0
        assert len(analytics.spending_by_month) == 12
        assert analytics.spending_by_month[0].month == "2024-11"
        assert analytics.spending_by_month[0].amount == 0.0
        assert analytics.spending_by_month[-2].amount == 120.5
        assert analytics.spending_by_month[-1].transactions == 3
        assert repository.get_monthly_spending.call_args[0] == (42, date(2024, 11, 1))

    def test_no_purchases(self):
        repository = MagicMock()
        repository.get_totals.return_value = {"total_spent": 0.0, "total_transactions": 0, "points_redeemed": 0}
        repository.get_monthly_spending.return_value = {}
        repository.get_category_spending.return_value = []
        repository.get_top_products.return_value = []

        analytics = TransactionService(repository).get_analytics(42, points_redemption_rate=0)

        assert analytics.average_order_value == 0.0
        assert analytics.savings_from_loyalty == 0.0
        assert all(m.amount == 0.0 for m in analytics.spending_by_month)


class TestCsvExport:

    def test_header_and_rows(self):
        transactions = [
            Transaction(
                id=1, transaction_id="TXN-1001", customer_id=42,
                transaction_date=datetime(2025, 10, 2, 15, 30),
                total_amount=151.5, points_earned=151, points_redeemed=0,
                payment_method="Card",
                items=[
                    TransactionItem(id=1, product_name="Trail Runner 2", quantity=1, total_price=129.99),
                    TransactionItem(id=2, product_name="Socks", quantity=2, total_price=21.51),
                ],
            ),
        ]

        lines = TransactionService.to_csv(transactions).splitlines()

        assert lines[0] == ",".join(EXPORT_COLUMNS)
        assert lines[1] == "TXN-1001,2025-10-02,151.50,151,0,Card,Trail Runner 2 x1; Socks x2"

    def test_empty_export_has_header_only(self):
        lines = TransactionService.to_csv([]).splitlines()
        assert lines == [",".join(EXPORT_COLUMNS)]

    def test_export_csv_reads_all_customer_transactions(self):
        repository = MagicMock()
        repository.find_all_for_export.return_value = []

        TransactionService(repository).export_csv(42)

        repository.find_all_for_export.assert_called_once_with(42)
