# ==============================================================================
# CATALOG SCHEMAS - Categories, Products, Images, Suppliers, Feeds
# ==============================================================================
# Request/Response schemas for catalog management
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from catalog_backend.schemas.base import BaseSchema, TimestampSchema


# ==============================================================================
# CATEGORY
# ==============================================================================

class CategoryCreate(BaseSchema):
    """Schema for creating a category."""

    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    code: str = Field(..., min_length=1, max_length=50, description="Unique category code")
    description: Optional[str] = Field(None, description="Category description")
    parent_id: Optional[int] = Field(None, description="Parent category")
    level: int = Field(0, ge=0, description="Depth in the category tree")
    display_order: int = Field(0, description="Ordering among siblings")
    is_active: bool = Field(True, description="Whether the category is visible")


class CategoryUpdate(BaseSchema):
    """Schema for updating a category. All fields optional."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    parent_id: Optional[int] = None
    level: Optional[int] = Field(None, ge=0)
    display_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(TimestampSchema):
    """Schema for category response."""

    id: int
    name: str
    code: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    level: int
    display_order: int
    is_active: bool


# ==============================================================================
# PRODUCT
# ==============================================================================

class ProductCreate(BaseSchema):
    """Schema for creating a product."""

    name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Product name",
    )
    description: Optional[str] = Field(
        None,
        max_length=5000,
        description="Product description",
    )
    category_id: Optional[int] = Field(None, description="Owning category")
    sub_category: Optional[str] = Field(None, max_length=100)
    price: Decimal = Field(
        ...,
        ge=0,
        description="Product price",
    )
    stock: int = Field(
        0,
        ge=0,
        description="Units on hand",
    )
    dimensions: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)
    manufacturer: Optional[str] = Field(None, max_length=100)
    sku: Optional[str] = Field(
        None,
        min_length=1,
        max_length=50,
        description="Stock Keeping Unit",
    )
    is_active: bool = True
    manufacture_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    stocked_date: Optional[datetime] = None
    last_sold_date: Optional[datetime] = None

    @field_validator("sku")
    @classmethod
    def validate_sku(cls, v: Optional[str]) -> Optional[str]:
        """Normalize SKU to uppercase."""
        return v.upper().strip() if v is not None else v


class ProductUpdate(BaseSchema):
    """Schema for updating a product. All fields optional."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    category_id: Optional[int] = None
    sub_category: Optional[str] = Field(None, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0)
    stock: Optional[int] = Field(None, ge=0)
    dimensions: Optional[str] = None
    color: Optional[str] = None
    manufacturer: Optional[str] = None
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    is_active: Optional[bool] = None
    manufacture_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    stocked_date: Optional[datetime] = None
    last_sold_date: Optional[datetime] = None


class ProductResponse(TimestampSchema):
    """Schema for product response."""

    id: int
    name: str
    description: Optional[str] = None
    category_id: Optional[int] = None
    sub_category: Optional[str] = None
    price: Decimal
    stock: int
    dimensions: Optional[str] = None
    color: Optional[str] = None
    manufacturer: Optional[str] = None
    sku: Optional[str] = None
    is_active: bool
    manufacture_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    stocked_date: Optional[datetime] = None
    last_sold_date: Optional[datetime] = None


# ==============================================================================
# PRODUCT IMAGE
# ==============================================================================

class ProductImageCreate(BaseSchema):
    """Schema for adding an image to a product."""

    product_id: int = Field(..., description="Product the image belongs to")
    url: str = Field(..., min_length=1, max_length=500, description="Image URL")
    title: Optional[str] = Field(None, max_length=200)
    alt_text: Optional[str] = Field(None, max_length=200, description="Accessibility text")
    sort_order: int = Field(0, ge=0, description="Position in the gallery, 0 first")
    width: Optional[int] = Field(None, ge=1, description="Width in pixels")
    height: Optional[int] = Field(None, ge=1, description="Height in pixels")
    image_type: Optional[str] = Field(None, max_length=50, description="main, gallery, detail, ...")


class ProductImageUpdate(BaseSchema):
    product_id: Optional[int] = None
    url: Optional[str] = Field(None, min_length=1, max_length=500)
    title: Optional[str] = Field(None, max_length=200)
    alt_text: Optional[str] = Field(None, max_length=200)
    sort_order: Optional[int] = Field(None, ge=0)
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)
    image_type: Optional[str] = Field(None, max_length=50)


class ProductImageResponse(TimestampSchema):
    id: int
    product_id: int
    url: str
    title: Optional[str] = None
    alt_text: Optional[str] = None
    sort_order: int
    width: Optional[int] = None
    height: Optional[int] = None
    image_type: Optional[str] = None


class ImageOrderRequest(BaseSchema):
    """Image ids of one product in their new display order."""

    image_ids: List[int] = Field(..., min_length=1)


# ==============================================================================
# SUPPLIER
# ==============================================================================

class SupplierCreate(BaseSchema):
    """Schema for creating a supplier."""

    name: str = Field(..., min_length=1, max_length=255)
    contact_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    city: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    is_active: bool = True


class SupplierUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_active: Optional[bool] = None


class SupplierResponse(TimestampSchema):
    id: int
    name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    is_active: bool


# ==============================================================================
# PRODUCT FEED
# ==============================================================================

class ProductFeedCreate(BaseSchema):
    """Schema for creating a product feed."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    source_system: Optional[str] = Field(None, max_length=100)
    target_system: Optional[str] = Field(None, max_length=100)
    format: str = Field("json", max_length=20, description="Payload format")
    url: Optional[str] = Field(None, max_length=500)
    refresh_interval: int = Field(60, ge=1, description="Minutes between refreshes")
    transformation_script: Optional[str] = None
    filter_criteria: Optional[str] = None
    is_active: bool = True


class ProductFeedUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    source_system: Optional[str] = None
    target_system: Optional[str] = None
    format: Optional[str] = Field(None, max_length=20)
    url: Optional[str] = None
    refresh_interval: Optional[int] = Field(None, ge=1)
    transformation_script: Optional[str] = None
    filter_criteria: Optional[str] = None
    is_active: Optional[bool] = None


class ProductFeedResponse(TimestampSchema):
    id: int
    name: str
    description: Optional[str] = None
    source_system: Optional[str] = None
    target_system: Optional[str] = None
    format: str
    url: Optional[str] = None
    refresh_interval: int
    transformation_script: Optional[str] = None
    filter_criteria: Optional[str] = None
    is_active: bool


class ProductIdsRequest(BaseSchema):
    """Products to attach to a feed or a supplier."""

    product_ids: List[int] = Field(..., min_length=1)


# ==============================================================================
# PRODUCT WITH RELATIONS
# ==============================================================================

class ProductDetailResponse(ProductResponse):
    """
    Product with its related records.

    A relation that was not requested is null; a requested relation with
    no rows is an empty list (or null for the category).
    """

    category: Optional[CategoryResponse] = None
    images: Optional[List[ProductImageResponse]] = None
    suppliers: Optional[List[SupplierResponse]] = None
