"""
Transaction Repository - purchase history and spending analytics
"""
from datetime import date
from typing import Dict, List, Optional, Tuple

from loyalty_api.core.database import escape_like, get_db_connection_dict
from loyalty_api.domain.transaction import (
    CategorySpending,
    TopProduct,
    Transaction,
    TransactionItem,
)

TRANSACTION_COLUMNS = """
    t.id, t.transaction_id, t.customer_id, t.transaction_date, t.subtotal,
    t.tax_amount, t.discount_amount, t.total_amount, t.points_earned,
    t.points_redeemed, t.payment_method, t.transaction_type,
    t.store_location, t.status
"""


class TransactionRepository:
    """
    Repository for Transaction data access

    Every query is scoped to one customer.
    """

    @staticmethod
    def _map_row_to_transaction(row: dict, items: Optional[List[TransactionItem]] = None) -> Transaction:
        return Transaction(
            id=row['id'],
            transaction_id=row.get('transaction_id') or str(row['id']),
            customer_id=row['customer_id'],
            transaction_date=row.get('transaction_date'),
            subtotal=float(row.get('subtotal') or 0),
            tax_amount=float(row.get('tax_amount') or 0),
            discount_amount=float(row.get('discount_amount') or 0),
            total_amount=float(row.get('total_amount') or 0),
            points_earned=row.get('points_earned') or 0,
            points_redeemed=row.get('points_redeemed') or 0,
            payment_method=row.get('payment_method') or '',
            transaction_type=row.get('transaction_type') or 'Purchase',
            store_location=row.get('store_location'),
            status=row.get('status') or 'Completed',
            items=items or [],
        )

    @staticmethod
    def _map_row_to_item(row: dict) -> TransactionItem:
        return TransactionItem(
            id=row['id'],
            product_id=row.get('product_id'),
            product_name=row.get('product_name') or '',
            category=row.get('category') or '',
            quantity=row.get('quantity') or 1,
            unit_price=float(row.get('unit_price') or 0),
            total_price=float(row.get('total_price') or 0),
        )

    def _load_items(self, cursor, transaction_ids: List[int]) -> Dict[int, List[TransactionItem]]:
        items = {tid: [] for tid in transaction_ids}
        if not transaction_ids:
            return items

        cursor.execute("""
            SELECT ti.id, ti.transaction_id, ti.product_id, ti.product_name,
                   COALESCE(p.category, '') AS category,
                   ti.quantity, ti.unit_price, ti.total_price
            FROM transaction_items ti
            LEFT JOIN products p ON p.id = ti.product_id
            WHERE ti.transaction_id = ANY(%s)
            ORDER BY ti.transaction_id, ti.id
        """, (transaction_ids,))
        for row in cursor.fetchall():
            items[row['transaction_id']].append(self._map_row_to_item(row))
        return items

    def find_by_customer(
        self,
        customer_id: int,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        payment_method: Optional[str] = None,
    ) -> Tuple[List[Transaction], int]:
        """
        Find a customer's transactions with filters

        Args:
            search: Matches the receipt number or any item's product name
            date_from / date_to: Inclusive day bounds

        Returns:
            Tuple of (transactions with items, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["t.customer_id = %s"]
            params = [customer_id]

            if search:
                conditions.append("""(
                    t.transaction_id ILIKE %s ESCAPE '\\' OR EXISTS (
                        SELECT 1 FROM transaction_items ti
                        WHERE ti.transaction_id = t.id AND ti.product_name ILIKE %s ESCAPE '\\'
                    )
                )""")
                pattern = f"%{escape_like(search)}%"
                params.extend([pattern, pattern])

            if date_from:
                conditions.append("t.transaction_date >= %s")
                params.append(date_from)

            if date_to:
                conditions.append("t.transaction_date < %s::date + INTERVAL '1 day'")
                params.append(date_to)

            if min_amount is not None:
                conditions.append("t.total_amount >= %s")
                params.append(min_amount)

            if max_amount is not None:
                conditions.append("t.total_amount <= %s")
                params.append(max_amount)

            if payment_method:
                conditions.append("t.payment_method = %s")
                params.append(payment_method)

            where_clause = " AND ".join(conditions)

            cursor.execute(f"SELECT COUNT(*) AS total FROM transactions t WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM transactions t
                WHERE {where_clause}
                ORDER BY t.transaction_date DESC, t.id DESC
                LIMIT %s OFFSET %s
            """, params + [limit, (page - 1) * limit])
            rows = cursor.fetchall()

            items = self._load_items(cursor, [row['id'] for row in rows])
            return [self._map_row_to_transaction(row, items[row['id']]) for row in rows], total

        finally:
            cursor.close()
            conn.close()

    def find_all_for_export(self, customer_id: int) -> List[Transaction]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM transactions t
                WHERE t.customer_id = %s
                ORDER BY t.transaction_date DESC, t.id DESC
            """, (customer_id,))
            rows = cursor.fetchall()

            items = self._load_items(cursor, [row['id'] for row in rows])
            return [self._map_row_to_transaction(row, items[row['id']]) for row in rows]

        finally:
            cursor.close()
            conn.close()

    def find_for_customer(self, transaction_id: int, customer_id: int) -> Optional[Transaction]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {TRANSACTION_COLUMNS}
                FROM transactions t
                WHERE t.id = %s AND t.customer_id = %s
            """, (transaction_id, customer_id))
            row = cursor.fetchone()
            if not row:
                return None

            items = self._load_items(cursor, [row['id']])
            return self._map_row_to_transaction(row, items[row['id']])

        finally:
            cursor.close()
            conn.close()

    def get_totals(self, customer_id: int) -> dict:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    COALESCE(SUM(total_amount), 0) AS total_spent,
                    COUNT(*) AS total_transactions,
                    COALESCE(SUM(points_redeemed), 0) AS points_redeemed
                FROM transactions
                WHERE customer_id = %s
            """, (customer_id,))
            row = cursor.fetchone()
            return {
                "total_spent": float(row['total_spent']),
                "total_transactions": row['total_transactions'],
                "points_redeemed": int(row['points_redeemed']),
            }

        finally:
            cursor.close()
            conn.close()

    def get_monthly_spending(self, customer_id: int, since: date) -> Dict[str, dict]:
        """
        Spend per month from `since` onward

        Returns:
            {"YYYY-MM": {"amount": float, "transactions": int}} for months with data
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    TO_CHAR(DATE_TRUNC('month', transaction_date), 'YYYY-MM') AS month,
                    COALESCE(SUM(total_amount), 0) AS amount,
                    COUNT(*) AS transactions
                FROM transactions
                WHERE customer_id = %s AND transaction_date >= %s
                GROUP BY 1
                ORDER BY 1
            """, (customer_id, since))
            return {
                row['month']: {"amount": float(row['amount']), "transactions": row['transactions']}
                for row in cursor.fetchall()
            }

        finally:
            cursor.close()
            conn.close()

    def get_category_spending(self, customer_id: int) -> List[CategorySpending]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    COALESCE(NULLIF(p.category, ''), 'Other') AS category,
                    COALESCE(SUM(ti.total_price), 0) AS amount
                FROM transaction_items ti
                JOIN transactions t ON t.id = ti.transaction_id
                LEFT JOIN products p ON p.id = ti.product_id
                WHERE t.customer_id = %s
                GROUP BY 1
                ORDER BY amount DESC
            """, (customer_id,))
            rows = cursor.fetchall()

        finally:
            cursor.close()
            conn.close()

        grand_total = sum(float(row['amount']) for row in rows)
        return [
            CategorySpending(
                category=row['category'],
                amount=float(row['amount']),
                percentage=round(float(row['amount']) / grand_total * 100, 1) if grand_total else 0.0,
            )
            for row in rows
        ]

    def get_top_products(self, customer_id: int, limit: int = 5) -> List[TopProduct]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    ti.product_name,
                    SUM(ti.quantity) AS quantity,
                    COALESCE(SUM(ti.total_price), 0) AS total_spent
                FROM transaction_items ti
                JOIN transactions t ON t.id = ti.transaction_id
                WHERE t.customer_id = %s
                GROUP BY ti.product_name
                ORDER BY quantity DESC, total_spent DESC
                LIMIT %s
            """, (customer_id, limit))
            return [
                TopProduct(
                    product_name=row['product_name'] or '',
                    quantity=int(row['quantity'] or 0),
                    total_spent=float(row['total_spent']),
                )
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()
