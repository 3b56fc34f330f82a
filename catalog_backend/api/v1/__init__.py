# ==============================================================================
# API V1 PACKAGE INITIALIZATION
# ==============================================================================

from catalog_backend.api.v1.catalog import (
    categories_router,
    product_feeds_router,
    product_images_router,
    products_router,
    suppliers_router,
)
from catalog_backend.api.v1.meta import filters_router, metadata_router
from catalog_backend.api.v1.users import user_roles_router, users_router

__all__ = [
    "categories_router",
    "products_router",
    "product_images_router",
    "suppliers_router",
    "product_feeds_router",
    "users_router",
    "user_roles_router",
    "filters_router",
    "metadata_router",
]
