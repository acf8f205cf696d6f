"""
Wishlist Repository - Data Access Layer for customer_wishlists

Wishlists are grouped by wishlist_name; there is no wishlists table.
"""
from typing import List, Optional

from loyalty_api.core.database import get_db_connection_dict
from loyalty_api.domain.product import DEFAULT_LOW_STOCK_THRESHOLD
from loyalty_api.domain.wishlist import DEFAULT_WISHLIST_NAME, Wishlist, WishlistItem
from loyalty_api.repositories.product_repository import PRODUCT_COLUMNS, ProductRepository


class WishlistRepository:
    """Repository for named wishlists and their items"""

    def __init__(self, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD):
        self.products = ProductRepository(low_stock_threshold)

    def find_all(self, customer_id: int, user_id: int) -> List[Wishlist]:
        """
        All of a customer's wishlists with their items

        Wishlists are ordered by name; items by priority desc, then newest.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT
                    cw.id AS item_id, cw.product_id, cw.wishlist_name,
                    cw.notes, cw.priority, cw.added_at,
                    {PRODUCT_COLUMNS}
                FROM customer_wishlists cw
                JOIN products p ON cw.product_id = p.id
                WHERE cw.customer_id = %s
                ORDER BY cw.wishlist_name ASC, cw.priority DESC, cw.added_at DESC
            """, (customer_id,))
            rows = cursor.fetchall()

            images = self.products.load_images(
                cursor, {row['product_id']: row['name'] for row in rows}, primary_only=True
            )

        finally:
            cursor.close()
            conn.close()

        wishlists = {}
        for row in rows:
            name = row['wishlist_name']
            wishlist = wishlists.get(name)
            if wishlist is None:
                wishlist = Wishlist(id=name, user_id=user_id, name=name)
                wishlists[name] = wishlist

            wishlist.items.append(WishlistItem(
                id=row['item_id'],
                product_id=row['product_id'],
                user_id=user_id,
                wishlist_name=name,
                notes=row.get('notes'),
                priority=row.get('priority') or 1,
                added_at=row.get('added_at'),
                product=self.products.map_row_to_product(row, images[row['product_id']]),
            ))

            added_at = row.get('added_at')
            if added_at and (wishlist.created_at is None or added_at < wishlist.created_at):
                wishlist.created_at = added_at
            if added_at and (wishlist.updated_at is None or added_at > wishlist.updated_at):
                wishlist.updated_at = added_at

        return list(wishlists.values())

    def exists(self, customer_id: int, wishlist_name: str) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM customer_wishlists
                WHERE customer_id = %s AND wishlist_name = %s
                LIMIT 1
            """, (customer_id, wishlist_name))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def rename(self, customer_id: int, old_name: str, new_name: str) -> int:
        """Returns the number of items moved to the new name."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE customer_wishlists SET wishlist_name = %s
                WHERE customer_id = %s AND wishlist_name = %s
            """, (new_name, customer_id, old_name))
            updated = cursor.rowcount
            conn.commit()
            return updated

        finally:
            cursor.close()
            conn.close()

    def delete(self, customer_id: int, wishlist_name: str) -> int:
        """Remove every item in the named wishlist; returns items removed."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM customer_wishlists
                WHERE customer_id = %s AND wishlist_name = %s
            """, (customer_id, wishlist_name))
            deleted = cursor.rowcount
            conn.commit()
            return deleted

        finally:
            cursor.close()
            conn.close()

    def contains_product(self, customer_id: int, product_id: int) -> bool:
        """Whether the product is saved in any of the customer's wishlists."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM customer_wishlists
                WHERE customer_id = %s AND product_id = %s
                LIMIT 1
            """, (customer_id, product_id))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()

    def add_item(
        self,
        customer_id: int,
        user_id: int,
        product_id: int,
        notes: Optional[str] = None,
        wishlist_name: str = DEFAULT_WISHLIST_NAME,
        priority: int = 1,
    ) -> WishlistItem:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO customer_wishlists (customer_id, product_id, wishlist_name, notes, priority, added_at)
                VALUES (%s, %s, %s, %s, %s, NOW())
                RETURNING id, added_at
            """, (customer_id, product_id, wishlist_name, notes, priority))
            row = cursor.fetchone()
            conn.commit()

            return WishlistItem(
                id=row['id'],
                product_id=product_id,
                user_id=user_id,
                wishlist_name=wishlist_name,
                notes=notes,
                priority=priority,
                added_at=row['added_at'],
            )

        finally:
            cursor.close()
            conn.close()

    def remove_item(self, customer_id: int, product_id: int, wishlist_name: Optional[str] = None) -> int:
        """
        Remove a product from one named wishlist, or from all of them when
        no name is given. Returns rows removed.
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["customer_id = %s", "product_id = %s"]
            params = [customer_id, product_id]
            if wishlist_name:
                conditions.append("wishlist_name = %s")
                params.append(wishlist_name)

            cursor.execute(f"DELETE FROM customer_wishlists WHERE {' AND '.join(conditions)}", params)
            deleted = cursor.rowcount
            conn.commit()
            return deleted

        finally:
            cursor.close()
            conn.close()
