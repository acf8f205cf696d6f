"""
Loyalty Repository - points history, rewards catalog, redemptions, vouchers

Redemption is the one multi-statement write in the loyalty area: the
customer row is locked, availability re-checked, points deducted and the
voucher issued inside one transaction.
"""
import logging
import secrets
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from loyalty_api.core.database import get_db_connection_dict, transaction
from loyalty_api.domain.loyalty import (
    VOUCHER_VALIDITY_DAYS,
    PointsHistoryEntry,
    Reward,
    RewardRedemption,
    RewardUnavailableError,
    Voucher,
    check_reward_availability,
)

logger = logging.getLogger(__name__)

REWARD_COLUMNS = """
    id, name, description, points_required, reward_type, discount_amount,
    discount_percentage, image_url, tier_restriction, max_redemptions,
    current_redemptions, valid_from, valid_until, is_active
"""

VOUCHER_COLUMNS = """
    id, customer_id, voucher_code, name, description, status, voucher_type,
    face_value, remaining_value, redeemed_value, reserved_value,
    discount_percent, effective_date, expiration_date, use_date,
    reward_id, created_at
"""


class RewardNotFoundError(LookupError):
    pass


def generate_voucher_code() -> str:
    return f"RWD-{secrets.token_hex(4).upper()}"


class LoyaltyRepository:
    """Repository for the loyalty program"""

    @staticmethod
    def _map_row_to_reward(row: dict) -> Reward:
        return Reward(
            id=row['id'],
            name=row['name'],
            description=row.get('description') or '',
            points_required=row['points_required'],
            reward_type=row.get('reward_type') or 'discount',
            discount_amount=float(row.get('discount_amount') or 0),
            discount_percentage=float(row['discount_percentage']) if row.get('discount_percentage') is not None else None,
            image_url=row.get('image_url'),
            tier_restriction=row.get('tier_restriction'),
            max_redemptions=row.get('max_redemptions'),
            current_redemptions=row.get('current_redemptions') or 0,
            valid_from=row.get('valid_from'),
            valid_until=row.get('valid_until'),
            is_active=row.get('is_active', True),
        )

    @staticmethod
    def _map_row_to_voucher(row: dict) -> Voucher:
        return Voucher(
            id=row['id'],
            customer_id=row['customer_id'],
            voucher_code=row['voucher_code'],
            name=row.get('name') or '',
            description=row.get('description'),
            status=row.get('status') or 'Issued',
            voucher_type=row.get('voucher_type') or 'discount',
            face_value=float(row.get('face_value') or 0),
            remaining_value=float(row.get('remaining_value') or 0),
            redeemed_value=float(row.get('redeemed_value') or 0),
            reserved_value=float(row.get('reserved_value') or 0),
            discount_percent=float(row['discount_percent']) if row.get('discount_percent') is not None else None,
            effective_date=row.get('effective_date'),
            expiration_date=row.get('expiration_date'),
            use_date=row.get('use_date'),
            reward_id=row.get('reward_id'),
            created_at=row.get('created_at'),
        )

    @staticmethod
    def _map_row_to_redemption(row: dict) -> RewardRedemption:
        return RewardRedemption(
            id=row['id'],
            customer_id=row['customer_id'],
            reward_id=row['reward_id'],
            reward_name=row.get('reward_name') or '',
            points_used=row['points_used'],
            quantity=row.get('quantity') or 1,
            status=row.get('status') or 'Completed',
            redeemed_at=row.get('redeemed_at'),
        )

    def get_points_summary(self, customer_id: int) -> dict:
        """Lifetime points earned/redeemed and transaction count."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    COALESCE(SUM(points_earned), 0) AS total_earned,
                    COALESCE(SUM(points_redeemed), 0) AS total_redeemed,
                    COUNT(*) AS total_transactions
                FROM transactions
                WHERE customer_id = %s
            """, (customer_id,))
            row = cursor.fetchone()
            return {
                "total_earned": int(row['total_earned']),
                "total_redeemed": int(row['total_redeemed']),
                "total_transactions": row['total_transactions'],
            }

        finally:
            cursor.close()
            conn.close()

    def find_points_history(self, customer_id: int, page: int = 1, limit: int = 20) -> Tuple[List[PointsHistoryEntry], int]:
        """
        Transactions that moved the points balance, newest first

        Returns:
            Tuple of (entries for the page, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            where_clause = "customer_id = %s AND (points_earned > 0 OR points_redeemed > 0)"

            cursor.execute(f"SELECT COUNT(*) AS total FROM transactions WHERE {where_clause}", (customer_id,))
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT id, transaction_id, transaction_date, total_amount,
                       points_earned, points_redeemed, transaction_type, store_location
                FROM transactions
                WHERE {where_clause}
                ORDER BY transaction_date DESC, id DESC
                LIMIT %s OFFSET %s
            """, (customer_id, limit, (page - 1) * limit))

            entries = [
                PointsHistoryEntry(
                    id=row['id'],
                    transaction_id=row.get('transaction_id') or '',
                    transaction_date=row.get('transaction_date'),
                    total_amount=float(row.get('total_amount') or 0),
                    points_earned=row.get('points_earned') or 0,
                    points_redeemed=row.get('points_redeemed') or 0,
                    transaction_type=row.get('transaction_type') or 'Purchase',
                    store_location=row.get('store_location'),
                )
                for row in cursor.fetchall()
            ]
            return entries, total

        finally:
            cursor.close()
            conn.close()

    def find_active_rewards(self) -> List[Reward]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {REWARD_COLUMNS}
                FROM loyalty_rewards
                WHERE is_active = true
                ORDER BY points_required ASC, name ASC
            """)
            return [self._map_row_to_reward(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_redemptions(self, customer_id: int, limit: int = 50) -> List[RewardRedemption]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT rr.id, rr.customer_id, rr.reward_id, lr.name AS reward_name,
                       rr.points_used, rr.quantity, rr.status, rr.redeemed_at
                FROM reward_redemptions rr
                JOIN loyalty_rewards lr ON lr.id = rr.reward_id
                WHERE rr.customer_id = %s
                ORDER BY rr.redeemed_at DESC
                LIMIT %s
            """, (customer_id, limit))
            return [self._map_row_to_redemption(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def redeem(
        self,
        customer_id: int,
        reward_id: int,
        quantity: int = 1,
        now: Optional[datetime] = None,
    ) -> Tuple[RewardRedemption, Voucher, int]:
        """
        Redeem a reward for points and issue the matching voucher

        Raises:
            RewardNotFoundError: unknown reward
            RewardUnavailableError: inactive, outside its window, sold out,
                tier-restricted or unaffordable

        Returns:
            Tuple of (redemption, voucher, new points balance)
        """
        with transaction() as cursor:
            cursor.execute("""
                SELECT id, points, customer_tier
                FROM customers
                WHERE id = %s
                FOR UPDATE
            """, (customer_id,))
            customer = cursor.fetchone()
            if customer is None:
                raise LookupError("Customer not found")

            cursor.execute(f"""
                SELECT {REWARD_COLUMNS}
                FROM loyalty_rewards
                WHERE id = %s
                FOR UPDATE
            """, (reward_id,))
            row = cursor.fetchone()
            if row is None:
                raise RewardNotFoundError("Reward not found")
            reward = self._map_row_to_reward(row)

            available, reason = check_reward_availability(
                reward, customer['customer_tier'], customer['points'] or 0, quantity, now
            )
            if not available:
                raise RewardUnavailableError(reason)

            points_cost = reward.points_required * quantity

            cursor.execute("""
                UPDATE customers
                SET points = points - %s, updated_at = NOW()
                WHERE id = %s
                RETURNING points
            """, (points_cost, customer_id))
            new_balance = cursor.fetchone()['points']

            cursor.execute("""
                UPDATE loyalty_rewards
                SET current_redemptions = current_redemptions + %s, updated_at = NOW()
                WHERE id = %s
            """, (quantity, reward_id))

            face_value = round(reward.discount_amount * quantity, 2)
            today = (now or datetime.now()).date()
            cursor.execute(f"""
                INSERT INTO customer_vouchers (
                    customer_id, voucher_code, name, description, status, voucher_type,
                    face_value, remaining_value, redeemed_value, reserved_value,
                    discount_percent, effective_date, expiration_date, reward_id, created_at
                )
                VALUES (%s, %s, %s, %s, 'Issued', %s, %s, %s, 0, 0, %s, %s, %s, %s, NOW())
                RETURNING {VOUCHER_COLUMNS}
            """, (
                customer_id,
                generate_voucher_code(),
                reward.name,
                reward.description,
                reward.reward_type,
                face_value,
                face_value,
                reward.discount_percentage,
                today,
                today + timedelta(days=VOUCHER_VALIDITY_DAYS),
                reward_id,
            ))
            voucher = self._map_row_to_voucher(cursor.fetchone())

            cursor.execute("""
                INSERT INTO reward_redemptions (customer_id, reward_id, points_used, quantity, status, voucher_id, redeemed_at)
                VALUES (%s, %s, %s, %s, 'Completed', %s, NOW())
                RETURNING id, customer_id, reward_id, points_used, quantity, status, redeemed_at
            """, (customer_id, reward_id, points_cost, quantity, voucher.id))
            redemption_row = dict(cursor.fetchone())
            redemption_row['reward_name'] = reward.name
            redemption = self._map_row_to_redemption(redemption_row)

        logger.info(
            f"Customer {customer_id} redeemed reward {reward_id} x{quantity} "
            f"for {points_cost} points (voucher {voucher.voucher_code})"
        )
        return redemption, voucher, new_balance

    def find_vouchers(self, customer_id: int) -> List[Voucher]:
        """Issued, Redeemed, Expired, then anything else; newest first within each."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {VOUCHER_COLUMNS}
                FROM customer_vouchers
                WHERE customer_id = %s
                ORDER BY
                    CASE status
                        WHEN 'Issued' THEN 1
                        WHEN 'Redeemed' THEN 2
                        WHEN 'Expired' THEN 3
                        ELSE 4
                    END,
                    created_at DESC
            """, (customer_id,))
            return [self._map_row_to_voucher(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()
