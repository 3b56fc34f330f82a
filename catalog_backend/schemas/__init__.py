# ==============================================================================
# SCHEMAS PACKAGE INITIALIZATION
# ==============================================================================

"""
Pydantic Schemas
================

Request/Response validation schemas for API endpoints:
- Base: response envelope, pagination, health, metadata
- Catalog: category, product, image, supplier and product feed schemas
- Users: user and role assignment schemas
"""

from catalog_backend.schemas.base import (
    APIResponse,
    BaseSchema,
    DeleteResult,
    EntityMetadata,
    HealthResponse,
    PaginatedResponse,
    TimestampSchema,
)
from catalog_backend.schemas.catalog import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ImageOrderRequest,
    ProductCreate,
    ProductDetailResponse,
    ProductFeedCreate,
    ProductFeedResponse,
    ProductFeedUpdate,
    ProductIdsRequest,
    ProductImageCreate,
    ProductImageResponse,
    ProductImageUpdate,
    ProductResponse,
    ProductUpdate,
    SupplierCreate,
    SupplierResponse,
    SupplierUpdate,
)
from catalog_backend.schemas.users import (
    UserCreate,
    UserResponse,
    UserRoleCreate,
    UserRoleResponse,
    UserRoleUpdate,
    UserUpdate,
)

__all__ = [
    "APIResponse",
    "BaseSchema",
    "DeleteResult",
    "EntityMetadata",
    "HealthResponse",
    "PaginatedResponse",
    "TimestampSchema",
    "CategoryCreate",
    "CategoryResponse",
    "CategoryUpdate",
    "ImageOrderRequest",
    "ProductCreate",
    "ProductDetailResponse",
    "ProductFeedCreate",
    "ProductFeedResponse",
    "ProductFeedUpdate",
    "ProductIdsRequest",
    "ProductImageCreate",
    "ProductImageResponse",
    "ProductImageUpdate",
    "ProductResponse",
    "ProductUpdate",
    "SupplierCreate",
    "SupplierResponse",
    "SupplierUpdate",
    "UserCreate",
    "UserResponse",
    "UserRoleCreate",
    "UserRoleResponse",
    "UserRoleUpdate",
    "UserUpdate",
]
