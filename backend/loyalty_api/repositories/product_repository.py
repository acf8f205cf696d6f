"""
Product Repository - Data Access Layer for Products

Handles all catalog queries and returns Product domain models. Stock
status is never stored; it is derived from the stock column using the
low-stock threshold the repository was built with.

Date: 2025-10-17
"""
from typing import Dict, List, Optional, Tuple

from loyalty_api.core.database import escape_like, get_db_connection_dict
from loyalty_api.domain.product import (
    DEFAULT_LOW_STOCK_THRESHOLD,
    IN_STOCK,
    LOW_STOCK,
    OUT_OF_STOCK,
    FilterOption,
    PriceRange,
    Product,
    ProductImage,
    RecentlyViewedProduct,
    RelatedProduct,
    derive_stock_status,
    short_description,
)

PRODUCT_COLUMNS = """
    p.id, p.name, p.description, p.price, p.original_price, p.currency,
    p.category, p.brand, p.sku, p.stock, p.tags, p.product_type,
    p.collection, p.material, p.color, p.dimensions, p.weight,
    p.warranty_info, p.care_instructions, p.main_image_url, p.rating,
    p.review_count, p.is_active, p.featured, p.is_on_sale,
    p.sale_percentage, p.is_new, p.sort_order, p.sf_id,
    p.created_at, p.updated_at
"""

# sortField -> column
SORT_COLUMNS = {
    "name": "p.name",
    "price": "p.price",
    "createdAt": "p.created_at",
    "category": "p.category",
    "brand": "p.brand",
}

RATING_BUCKETS = [(4.5, "4.5+"), (4.0, "4.0+"), (3.5, "3.5+"), (3.0, "3.0+")]


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    def __init__(self, low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD):
        self.low_stock_threshold = low_stock_threshold

    def map_row_to_product(self, row: dict, images: Optional[List[ProductImage]] = None) -> Product:
        """Map a products row (plus its images) to the Product domain model."""
        stock = int(row.get('stock') or 0)
        return Product(
            id=row['id'],
            name=row['name'],
            description=row.get('description') or '',
            short_description=short_description(row.get('description')),
            price=float(row.get('price') or 0),
            original_price=float(row['original_price']) if row.get('original_price') is not None else None,
            currency=row.get('currency') or 'USD',
            is_on_sale=row.get('is_on_sale') or False,
            sale_percentage=float(row['sale_percentage']) if row.get('sale_percentage') is not None else None,
            category=row.get('category') or '',
            brand=row.get('brand') or '',
            sku=row.get('sku') or '',
            tags=list(row.get('tags') or []),
            product_type=row.get('product_type') or '',
            collection=row.get('collection') or '',
            material=row.get('material') or '',
            color=row.get('color') or '',
            dimensions=row.get('dimensions') or '',
            weight=float(row.get('weight') or 0),
            warranty_info=row.get('warranty_info') or '',
            care_instructions=row.get('care_instructions') or '',
            stock_quantity=stock,
            stock_status=derive_stock_status(stock, self.low_stock_threshold),
            rating=float(row.get('rating') or 0),
            review_count=int(row.get('review_count') or 0),
            main_image_url=row.get('main_image_url') or '',
            images=images or [],
            is_active=row.get('is_active') or False,
            is_featured=row.get('featured') or False,
            is_new=row.get('is_new') or False,
            sort_order=int(row.get('sort_order') or 0),
            sf_id=row.get('sf_id') or '',
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at'),
        )

    @staticmethod
    def _map_row_to_image(row: dict, product_name: str) -> ProductImage:
        return ProductImage(
            id=row['id'],
            url=row['url'],
            alt=row.get('alt_text') or product_name,
            is_primary=row.get('is_primary') or False,
            thumbnail_url=row.get('thumbnail_url') or row['url'],
        )

    def _stock_condition(self, stock_status: str) -> Tuple[str, list]:
        if stock_status == OUT_OF_STOCK:
            return "COALESCE(p.stock, 0) <= 0", []
        if stock_status == LOW_STOCK:
            return "p.stock > 0 AND p.stock <= %s", [self.low_stock_threshold]
        if stock_status == IN_STOCK:
            return "p.stock > %s", [self.low_stock_threshold]
        raise ValueError(f"Unknown stock status: {stock_status}")

    def load_images(self, cursor, products: Dict[int, str], primary_only: bool = False) -> Dict[int, List[ProductImage]]:
        """
        Fetch images for many products in one query.

        Args:
            products: product_id -> product name (used as default alt text)
        """
        images = {product_id: [] for product_id in products}
        if not products:
            return images

        cursor.execute("""
            SELECT id, product_id, url, alt_text, is_primary, thumbnail_url
            FROM product_images
            WHERE product_id = ANY(%s)
            ORDER BY product_id, is_primary DESC, id ASC
        """, (list(products.keys()),))

        for row in cursor.fetchall():
            bucket = images[row['product_id']]
            if primary_only and bucket:
                continue
            bucket.append(self._map_row_to_image(row, products[row['product_id']]))
        return images

    def search(
        self,
        page: int = 1,
        limit: int = 12,
        search: Optional[str] = None,
        category: Optional[str] = None,
        brand: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        stock_status: Optional[str] = None,
        sort_field: str = "name",
        sort_direction: str = "asc",
    ) -> Tuple[List[Product], int]:
        """
        Catalog search with filters, sorting and pagination

        Args:
            search: Case-insensitive match on name or description, or exact tag
            stock_status: in_stock | low_stock | out_of_stock
            sort_field: name | price | createdAt | category | brand (unknown -> name)
            sort_direction: asc | desc (unknown -> asc)

        Returns:
            Tuple of (products for the page, total matching count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = ["p.is_active = true"]
            params = []

            if search:
                conditions.append(
                    "(p.name ILIKE %s ESCAPE '\\' OR p.description ILIKE %s ESCAPE '\\' OR %s = ANY(p.tags))"
                )
                pattern = f"%{escape_like(search)}%"
                params.extend([pattern, pattern, search])

            if category:
                conditions.append("p.category = %s")
                params.append(category)

            if brand:
                conditions.append("p.brand = %s")
                params.append(brand)

            if min_price is not None:
                conditions.append("p.price >= %s")
                params.append(min_price)

            if max_price is not None:
                conditions.append("p.price <= %s")
                params.append(max_price)

            if stock_status:
                clause, clause_params = self._stock_condition(stock_status)
                conditions.append(clause)
                params.extend(clause_params)

            where_clause = " AND ".join(conditions)

            sort_column = SORT_COLUMNS.get(sort_field, "p.name")
            direction = "DESC" if (sort_direction or "").lower() == "desc" else "ASC"

            # Get total count
            cursor.execute(f"SELECT COUNT(*) as total FROM products p WHERE {where_clause}", params)
            total = cursor.fetchone()['total']

            offset = (page - 1) * limit
            cursor.execute(f"""
                SELECT {PRODUCT_COLUMNS}
                FROM products p
                WHERE {where_clause}
                ORDER BY {sort_column} {direction}, p.id ASC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])
            rows = cursor.fetchall()

            images = self.load_images(cursor, {row['id']: row['name'] for row in rows})
            products = [self.map_row_to_product(row, images[row['id']]) for row in rows]

            return products, total

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, product_id: int) -> Optional[Product]:
        """
        Find product by ID, with all its images

        Returns:
            Product or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {PRODUCT_COLUMNS} FROM products p WHERE p.id = %s", (product_id,))
            row = cursor.fetchone()
            if not row:
                return None

            images = self.load_images(cursor, {row['id']: row['name']})
            return self.map_row_to_product(row, images[row['id']])

        finally:
            cursor.close()
            conn.close()

    def find_by_ids(self, product_ids: List[int]) -> List[Product]:
        """Products for the given IDs, in the order the IDs were given."""
        if not product_ids:
            return []

        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"SELECT {PRODUCT_COLUMNS} FROM products p WHERE p.id = ANY(%s)", (list(product_ids),))
            rows = {row['id']: row for row in cursor.fetchall()}

            images = self.load_images(cursor, {pid: row['name'] for pid, row in rows.items()})
            return [
                self.map_row_to_product(rows[pid], images[pid])
                for pid in product_ids if pid in rows
            ]

        finally:
            cursor.close()
            conn.close()

    def find_related(self, product_id: int, category: str, limit: int = 4) -> List[RelatedProduct]:
        """In-stock products from the same category, best rated first."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT p.id, p.name, p.price, p.rating, p.stock, p.main_image_url
                FROM products p
                WHERE p.category = %s
                  AND p.id != %s
                  AND p.is_active = true
                  AND p.stock > 0
                ORDER BY p.rating DESC NULLS LAST, p.created_at DESC
                LIMIT %s
            """, (category, product_id, limit))

            return [
                RelatedProduct(
                    id=row['id'],
                    name=row['name'],
                    price=float(row.get('price') or 0),
                    rating=float(row.get('rating') or 0),
                    stock_status=derive_stock_status(row.get('stock'), self.low_stock_threshold),
                    main_image_url=row.get('main_image_url') or '',
                )
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()

    def get_categories(self) -> List[FilterOption]:
        return self._facet("category")

    def get_brands(self) -> List[FilterOption]:
        return self._facet("brand")

    def _facet(self, column: str) -> List[FilterOption]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {column} AS value, COUNT(*) AS product_count
                FROM products
                WHERE {column} IS NOT NULL AND {column} != '' AND is_active = true
                GROUP BY {column}
                ORDER BY product_count DESC, {column} ASC
            """)
            return [
                FilterOption(value=row['value'], label=row['value'], count=row['product_count'])
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()

    def get_price_range(self) -> PriceRange:
        """Min and max active price; 0..1000 when the catalog is empty."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT MIN(price) AS min_price, MAX(price) AS max_price
                FROM products
                WHERE price IS NOT NULL AND is_active = true
            """)
            row = cursor.fetchone()
            if not row or row['min_price'] is None:
                return PriceRange()
            return PriceRange(min=float(row['min_price']), max=float(row['max_price']))

        finally:
            cursor.close()
            conn.close()

    def get_filter_options(self) -> dict:
        """
        Every facet the catalog filter panel shows

        Returns:
            Dictionary with categories, brands, priceRange, stockStatus,
            ratings, tags and feature counts
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            threshold = self.low_stock_threshold
            cursor.execute("""
                SELECT
                    COUNT(*) FILTER (WHERE stock > %s) AS in_stock,
                    COUNT(*) FILTER (WHERE stock > 0 AND stock <= %s) AS low_stock,
                    COUNT(*) FILTER (WHERE COALESCE(stock, 0) <= 0) AS out_of_stock,
                    COUNT(*) FILTER (WHERE rating >= 4.5) AS rating_45,
                    COUNT(*) FILTER (WHERE rating >= 4.0) AS rating_40,
                    COUNT(*) FILTER (WHERE rating >= 3.5) AS rating_35,
                    COUNT(*) FILTER (WHERE rating >= 3.0) AS rating_30,
                    COUNT(*) FILTER (WHERE is_on_sale = true) AS on_sale_count,
                    COUNT(*) FILTER (WHERE is_new = true) AS new_count,
                    COUNT(*) FILTER (WHERE featured = true) AS featured_count
                FROM products
                WHERE is_active = true
            """, (threshold, threshold))
            counts = cursor.fetchone()

            cursor.execute("""
                SELECT tag, COUNT(*) AS product_count
                FROM products, unnest(tags) AS tag
                WHERE is_active = true
                GROUP BY tag
                ORDER BY product_count DESC, tag ASC
                LIMIT 20
            """)
            tags = [
                FilterOption(value=row['tag'], label=row['tag'], count=row['product_count'])
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()

        stock_options = [
            FilterOption(value=status, label=status.replace("_", " ").title(), count=counts[status])
            for status in (IN_STOCK, LOW_STOCK, OUT_OF_STOCK)
            if counts[status]
        ]
        rating_keys = {4.5: "rating_45", 4.0: "rating_40", 3.5: "rating_35", 3.0: "rating_30"}
        rating_options = [
            FilterOption(value=value, label=label, count=counts[rating_keys[value]])
            for value, label in RATING_BUCKETS
            if counts[rating_keys[value]]
        ]

        return {
            "categories": [o.to_dict() for o in self.get_categories()],
            "brands": [o.to_dict() for o in self.get_brands()],
            "priceRange": self.get_price_range().to_dict(),
            "stockStatus": [o.to_dict() for o in stock_options],
            "ratings": [o.to_dict() for o in rating_options],
            "tags": [o.to_dict() for o in tags],
            "features": {
                "onSale": counts['on_sale_count'] or 0,
                "new": counts['new_count'] or 0,
                "featured": counts['featured_count'] or 0,
            },
        }

    def search_suggestions(self, prefix: str, limit: int = 8) -> List[dict]:
        """Product names starting with (then containing) the typed text."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT id, name, category
                FROM products
                WHERE is_active = true AND name ILIKE %s ESCAPE '\\'
                ORDER BY (name ILIKE %s ESCAPE '\\') DESC, name ASC
                LIMIT %s
            """, (f"%{escape_like(prefix)}%", f"{escape_like(prefix)}%", limit))
            return [
                {"id": row['id'], "name": row['name'], "category": row.get('category') or ''}
                for row in cursor.fetchall()
            ]

        finally:
            cursor.close()
            conn.close()

    def find_recently_viewed(self, user_id: int, limit: int = 12) -> List[RecentlyViewedProduct]:
        """The user's most recently viewed products, newest first, primary image only."""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT pv.viewed_at, {PRODUCT_COLUMNS}
                FROM product_views pv
                JOIN products p ON pv.product_id = p.id
                WHERE pv.user_id = %s
                ORDER BY pv.viewed_at DESC
                LIMIT %s
            """, (user_id, limit))
            rows = cursor.fetchall()

            images = self.load_images(cursor, {row['id']: row['name'] for row in rows}, primary_only=True)
            return [
                RecentlyViewedProduct(
                    product_id=row['id'],
                    viewed_at=row['viewed_at'],
                    product=self.map_row_to_product(row, images[row['id']]),
                )
                for row in rows
            ]

        finally:
            cursor.close()
            conn.close()

    def record_view(self, user_id: int, product_id: int) -> bool:
        """
        Upsert a product view for the user

        Returns:
            False when the product does not exist
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("SELECT 1 FROM products WHERE id = %s", (product_id,))
            if cursor.fetchone() is None:
                return False

            cursor.execute("""
                INSERT INTO product_views (user_id, product_id, viewed_at)
                VALUES (%s, %s, NOW())
                ON CONFLICT (user_id, product_id)
                DO UPDATE SET viewed_at = EXCLUDED.viewed_at
            """, (user_id, product_id))
            conn.commit()
            return True

        finally:
            cursor.close()
            conn.close()
