# ==============================================================================
# MAIN API ROUTER - Route Aggregation
# ==============================================================================
# Combines all API version routers
# ==============================================================================

from __future__ import annotations

from fastapi import APIRouter

from catalog_backend.core.settings import settings
from catalog_backend.api.v1 import (
    categories_router,
    filters_router,
    metadata_router,
    product_feeds_router,
    product_images_router,
    products_router,
    suppliers_router,
    user_roles_router,
    users_router,
)

# Create main API router
api_router = APIRouter()

# Include v1 routers with API prefix
for router in (
    categories_router,
    products_router,
    product_images_router,
    suppliers_router,
    product_feeds_router,
    users_router,
    user_roles_router,
    filters_router,
    metadata_router,
):
    api_router.include_router(router, prefix=settings.API_V1_PREFIX)
