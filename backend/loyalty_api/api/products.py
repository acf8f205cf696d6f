"""
Products API Endpoints
Storefront catalog: search, facets, detail, comparison and recently viewed
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from loyalty_api.api.dependencies import get_low_stock_threshold
from loyalty_api.core.auth import TokenUser, get_current_user
from loyalty_api.domain.product import STOCK_STATUSES
from loyalty_api.repositories.product_repository import SORT_COLUMNS, ProductRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["Products"])

COMPARE_MIN = 2
COMPARE_MAX = 4


class RecentlyViewedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[int] = Field(None, alias="productId")


@router.get("")
async def get_products(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    search: Optional[str] = Query(None, description="Match on name, description or tag"),
    category: Optional[str] = None,
    brand: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    stock_status: Optional[str] = Query(None, alias="stockStatus"),
    sort_field: str = Query("name", alias="sortField"),
    sort_direction: str = Query("asc", alias="sortDirection"),
    low_stock_threshold: int = Depends(get_low_stock_threshold),
):
    """
    Search the catalog

    Unknown sort fields fall back to name and unknown directions to asc.
    """
    try:
        if stock_status and stock_status not in STOCK_STATUSES:
            raise HTTPException(status_code=400, detail=f"Invalid stockStatus: {stock_status}")

        repo = ProductRepository(low_stock_threshold)
        products, total = repo.search(
            page=page,
            limit=limit,
            search=search,
            category=category,
            brand=brand,
            min_price=min_price,
            max_price=max_price,
            stock_status=stock_status,
            sort_field=sort_field if sort_field in SORT_COLUMNS else "name",
            sort_direction=sort_direction if sort_direction in ("asc", "desc") else "asc",
        )

        return {
            "products": [product.to_dict() for product in products],
            "total": total,
            "page": page,
            "limit": limit,
            "hasMore": page * limit < total,
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching products: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch products")


@router.get("/filters")
async def get_filter_options(low_stock_threshold: int = Depends(get_low_stock_threshold)):
    """All facet data for the catalog sidebar in one call"""
    try:
        return ProductRepository(low_stock_threshold).get_filter_options()

    except Exception as e:
        logger.error(f"Error fetching filter options: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch filter options")


@router.get("/categories")
async def get_categories():
    try:
        return {"categories": [c.to_dict() for c in ProductRepository().get_categories()]}

    except Exception as e:
        logger.error(f"Error fetching categories: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch categories")


@router.get("/brands")
async def get_brands():
    try:
        return {"brands": [b.to_dict() for b in ProductRepository().get_brands()]}

    except Exception as e:
        logger.error(f"Error fetching brands: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch brands")


@router.get("/price-range")
async def get_price_range():
    try:
        return ProductRepository().get_price_range().to_dict()

    except Exception as e:
        logger.error(f"Error fetching price range: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch price range")


@router.get("/search-suggestions")
async def get_search_suggestions(q: str = Query("", description="Text typed so far")):
    try:
        query = q.strip()
        if not query:
            return {"suggestions": []}
        return {"suggestions": ProductRepository().search_suggestions(query, limit=8)}

    except Exception as e:
        logger.error(f"Error fetching search suggestions: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch suggestions")


@router.get("/compare")
async def compare_products(
    ids: str = Query(..., description="Comma-separated product ids"),
    low_stock_threshold: int = Depends(get_low_stock_threshold),
):
    """Two to four products side by side, in the order requested"""
    try:
        try:
            product_ids = list(dict.fromkeys(int(part) for part in ids.split(",") if part.strip()))
        except ValueError:
            raise HTTPException(status_code=400, detail="ids must be a comma-separated list of integers")

        if not COMPARE_MIN <= len(product_ids) <= COMPARE_MAX:
            raise HTTPException(
                status_code=400,
                detail=f"Select between {COMPARE_MIN} and {COMPARE_MAX} products to compare"
            )

        products = ProductRepository(low_stock_threshold).find_by_ids(product_ids)
        found = {p.id for p in products}
        missing = [pid for pid in product_ids if pid not in found]
        if missing:
            raise HTTPException(
                status_code=404,
                detail=f"Products not found: {', '.join(str(m) for m in missing)}"
            )

        return {"products": [p.to_dict() for p in products]}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error comparing products: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compare products")


@router.get("/recently-viewed")
async def get_recently_viewed(
    user: TokenUser = Depends(get_current_user),
    low_stock_threshold: int = Depends(get_low_stock_threshold),
):
    try:
        viewed = ProductRepository(low_stock_threshold).find_recently_viewed(user.id, limit=12)
        return {"products": [v.to_dict() for v in viewed]}

    except Exception as e:
        logger.error(f"Error fetching recently viewed products: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch recently viewed products")


@router.post("/recently-viewed")
async def record_recently_viewed(
    body: RecentlyViewedRequest,
    user: TokenUser = Depends(get_current_user),
):
    try:
        if body.product_id is None:
            raise HTTPException(status_code=400, detail="Product ID is required")

        if not ProductRepository().record_view(user.id, body.product_id):
            raise HTTPException(status_code=404, detail="Product not found")

        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error recording product view: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to record product view")


@router.get("/{product_id}")
async def get_product(
    product_id: int,
    low_stock_threshold: int = Depends(get_low_stock_threshold),
):
    """Product detail with up to four related products from the same category"""
    try:
        repo = ProductRepository(low_stock_threshold)
        product = repo.find_by_id(product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")

        related = repo.find_related(product.id, product.category, limit=4)

        return {
            "product": product.to_dict(),
            "relatedProducts": [r.to_dict() for r in related],
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching product {product_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch product")
