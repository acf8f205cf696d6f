"""
Product Domain Model

Represents a catalog product as the storefront sees it: pricing, stock,
images and descriptive attributes.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from loyalty_api.domain.base import APIModel

IN_STOCK = "in_stock"
LOW_STOCK = "low_stock"
OUT_OF_STOCK = "out_of_stock"
STOCK_STATUSES = (IN_STOCK, LOW_STOCK, OUT_OF_STOCK)

DEFAULT_LOW_STOCK_THRESHOLD = 5
SHORT_DESCRIPTION_LENGTH = 100


def derive_stock_status(stock_quantity: Optional[int], low_stock_threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> str:
    """
    Map a stock quantity to a storefront stock status.

    0 or less is out of stock, up to the threshold is low stock.
    """
    quantity = stock_quantity or 0
    if quantity <= 0:
        return OUT_OF_STOCK
    if quantity <= low_stock_threshold:
        return LOW_STOCK
    return IN_STOCK


def short_description(description: Optional[str]) -> str:
    return (description or "")[:SHORT_DESCRIPTION_LENGTH]


class ProductImage(APIModel):
    """An image attached to a product"""
    id: int
    url: str
    alt: str = ""
    is_primary: bool = False
    thumbnail_url: str = ""


class Product(APIModel):
    """
    Product domain model - a product in the storefront catalog

    Fields:
        id: Internal product ID (primary key)
        name / description / short_description: Display text
        price: Current selling price
        original_price: Price before a sale, when on sale
        stock_quantity: Units on hand
        stock_status: in_stock | low_stock | out_of_stock (derived from stock)
        images: Product images, primary first
        sf_id: External CRM identifier
    """

    id: int = Field(..., description="Internal product ID")
    name: str = Field(..., description="Product name")
    description: str = ""
    short_description: str = ""

    # Pricing
    price: float = Field(0.0, ge=0)
    original_price: Optional[float] = None
    currency: str = "USD"
    is_on_sale: bool = False
    sale_percentage: Optional[float] = None

    # Classification
    category: str = ""
    brand: str = ""
    sku: str = ""
    tags: List[str] = Field(default_factory=list)
    product_type: str = ""
    collection: str = ""
    material: str = ""
    color: str = ""
    dimensions: str = ""
    weight: float = 0.0
    warranty_info: str = ""
    care_instructions: str = ""

    # Inventory
    stock_quantity: int = 0
    stock_status: str = IN_STOCK

    # Reviews
    rating: float = 0.0
    review_count: int = 0

    # Media
    main_image_url: str = ""
    images: List[ProductImage] = Field(default_factory=list)

    # Metadata
    is_active: bool = True
    is_featured: bool = False
    is_new: bool = False
    sort_order: int = 0
    sf_id: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_low_stock(self) -> bool:
        return self.stock_status == LOW_STOCK

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock_status == OUT_OF_STOCK


class RelatedProduct(APIModel):
    """Compact product card shown under a product detail page"""
    id: int
    name: str
    price: float = 0.0
    rating: float = 0.0
    stock_status: str = OUT_OF_STOCK
    main_image_url: str = ""


class ProductSearchResult(APIModel):
    """One page of catalog search results"""
    products: List[Product]
    total: int
    page: int
    limit: int
    has_more: bool


class RecentlyViewedProduct(APIModel):
    product_id: int
    viewed_at: datetime
    product: Product


class FilterOption(APIModel):
    """A facet value with the number of products carrying it"""
    value: object
    label: str
    count: int


class PriceRange(APIModel):
    min: float = 0.0
    max: float = 1000.0
