"""
Wishlist API Endpoints
Named wishlists for the signed-in customer
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from loyalty_api.api.dependencies import get_current_customer, get_low_stock_threshold
from loyalty_api.core.auth import TokenUser, get_current_user
from loyalty_api.domain.customer import Customer
from loyalty_api.domain.wishlist import DEFAULT_WISHLIST_NAME, Wishlist, validate_wishlist_name
from loyalty_api.repositories.wishlist_repository import WishlistRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/wishlist", tags=["Wishlist"])


class WishlistNameRequest(BaseModel):
    name: Optional[str] = None


class AddItemRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[int] = Field(None, alias="productId")
    notes: Optional[str] = None
    wishlist_name: str = Field(DEFAULT_WISHLIST_NAME, alias="wishlistName")
    priority: int = Field(1, ge=1, le=5)


class ToggleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: Optional[int] = Field(None, alias="productId")


@router.get("")
async def get_wishlists(
    user: TokenUser = Depends(get_current_user),
    customer: Customer = Depends(get_current_customer),
    low_stock_threshold: int = Depends(get_low_stock_threshold),
):
    try:
        wishlists = WishlistRepository(low_stock_threshold).find_all(customer.id, user.id)
        return {"wishlists": [w.to_dict() for w in wishlists]}

    except Exception as e:
        logger.error(f"Error fetching wishlists: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch wishlists")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_wishlist(
    body: WishlistNameRequest,
    user: TokenUser = Depends(get_current_user),
    customer: Customer = Depends(get_current_customer),
):
    """
    Reserve a wishlist name

    Nothing is stored until the first item is added under the name.
    """
    try:
        try:
            name = validate_wishlist_name(body.name)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        if WishlistRepository().exists(customer.id, name):
            raise HTTPException(status_code=400, detail="Wishlist with this name already exists")

        return {"wishlist": Wishlist(id=name, user_id=user.id, name=name).to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error creating wishlist: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create wishlist")


@router.post("/items", status_code=status.HTTP_201_CREATED)
async def add_wishlist_item(
    body: AddItemRequest,
    user: TokenUser = Depends(get_current_user),
    customer: Customer = Depends(get_current_customer),
    low_stock_threshold: int = Depends(get_low_stock_threshold),
):
    try:
        if body.product_id is None:
            raise HTTPException(status_code=400, detail="Product ID is required")

        try:
            wishlist_name = validate_wishlist_name(body.wishlist_name)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        repo = WishlistRepository(low_stock_threshold)
        product = repo.products.find_by_id(body.product_id)
        if product is None:
            raise HTTPException(status_code=404, detail="Product not found")

        if repo.contains_product(customer.id, body.product_id):
            raise HTTPException(status_code=400, detail="Product already in wishlist")

        item = repo.add_item(
            customer.id,
            user.id,
            body.product_id,
            notes=body.notes,
            wishlist_name=wishlist_name,
            priority=body.priority,
        )
        item.product = product

        return {"success": True, "item": item.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error adding wishlist item: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to add item to wishlist")


@router.delete("/items")
async def remove_wishlist_item(
    product_id: Optional[int] = Query(None, alias="productId"),
    wishlist_id: Optional[str] = Query(None, alias="wishlistId"),
    customer: Customer = Depends(get_current_customer),
):
    """Remove a product from one wishlist, or from all when no wishlistId is given"""
    try:
        if product_id is None:
            raise HTTPException(status_code=400, detail="Product ID is required")

        if not WishlistRepository().remove_item(customer.id, product_id, wishlist_id):
            raise HTTPException(status_code=404, detail="Item not found in wishlist")

        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error removing wishlist item: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to remove item from wishlist")


@router.post("/toggle")
async def toggle_wishlist_item(
    body: ToggleRequest,
    user: TokenUser = Depends(get_current_user),
    customer: Customer = Depends(get_current_customer),
):
    """Heart button: remove the product if saved anywhere, else add it to the default list"""
    try:
        if body.product_id is None:
            raise HTTPException(status_code=400, detail="Product ID is required")

        repo = WishlistRepository()
        if repo.contains_product(customer.id, body.product_id):
            repo.remove_item(customer.id, body.product_id)
            return {"success": True, "inWishlist": False}

        if repo.products.find_by_id(body.product_id) is None:
            raise HTTPException(status_code=404, detail="Product not found")

        repo.add_item(customer.id, user.id, body.product_id)
        return {"success": True, "inWishlist": True}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error toggling wishlist item: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update wishlist")


@router.put("/{wishlist_name}")
async def rename_wishlist(
    wishlist_name: str,
    body: WishlistNameRequest,
    customer: Customer = Depends(get_current_customer),
):
    try:
        try:
            new_name = validate_wishlist_name(body.name)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        repo = WishlistRepository()
        if not repo.exists(customer.id, wishlist_name):
            raise HTTPException(status_code=404, detail="Wishlist not found")

        if new_name != wishlist_name and repo.exists(customer.id, new_name):
            raise HTTPException(status_code=400, detail="Wishlist with this name already exists")

        repo.rename(customer.id, wishlist_name, new_name)
        return {"success": True, "name": new_name}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error renaming wishlist: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to rename wishlist")


@router.delete("/{wishlist_name}")
async def delete_wishlist(
    wishlist_name: str,
    customer: Customer = Depends(get_current_customer),
):
    try:
        if not WishlistRepository().delete(customer.id, wishlist_name):
            raise HTTPException(status_code=404, detail="Wishlist not found")

        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error deleting wishlist: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete wishlist")


@router.delete("/{wishlist_name}/items/{product_id}")
async def remove_item_from_wishlist(
    wishlist_name: str,
    product_id: int,
    customer: Customer = Depends(get_current_customer),
):
    try:
        if not WishlistRepository().remove_item(customer.id, product_id, wishlist_name):
            raise HTTPException(status_code=404, detail="Item not found in wishlist")

        return {"success": True}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error removing wishlist item: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to remove item from wishlist")
