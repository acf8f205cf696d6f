"""
Wishlist Domain Model

A customer keeps any number of named wishlists. A wishlist has no row of
its own: it is the set of customer_wishlists rows sharing a name, and the
name doubles as its id.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from loyalty_api.domain.base import APIModel
from loyalty_api.domain.product import Product

DEFAULT_WISHLIST_NAME = "My Wishlist"
WISHLIST_NAME_MAX_LENGTH = 100


class WishlistItem(APIModel):
    """A product saved into a named wishlist"""
    id: int
    product_id: int
    user_id: int
    wishlist_name: str = DEFAULT_WISHLIST_NAME
    notes: Optional[str] = None
    priority: int = 1
    added_at: Optional[datetime] = None
    product: Optional[Product] = None


class Wishlist(APIModel):
    id: str
    user_id: int
    name: str
    is_public: bool = False
    items: List[WishlistItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def validate_wishlist_name(name: Optional[str]) -> str:
    """Trimmed name, or ValueError when empty or too long."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Wishlist name is required")
    if len(cleaned) > WISHLIST_NAME_MAX_LENGTH:
        raise ValueError(f"Wishlist name must be at most {WISHLIST_NAME_MAX_LENGTH} characters")
    return cleaned
