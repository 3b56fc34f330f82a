# ==============================================================================
# DOMAIN MODELS PACKAGE INITIALIZATION
# ==============================================================================

"""
Domain Models
=============

SQLAlchemy ORM models for catalog entities:
- Category, Product, ProductImage, Supplier, ProductFeed: product catalog
- User, UserRole: accounts and role assignments (composite key)
"""

from catalog_backend.domain_models.base import IntegerIdMixin, SQLBase, TimestampMixin
from catalog_backend.domain_models.catalog import (
    Category,
    Product,
    ProductFeed,
    ProductImage,
    Supplier,
    product_feed_products,
    supplier_products,
)
from catalog_backend.domain_models.users import User, UserRole

__all__ = [
    "SQLBase",
    "IntegerIdMixin",
    "TimestampMixin",
    "Category",
    "Product",
    "ProductFeed",
    "ProductImage",
    "Supplier",
    "product_feed_products",
    "supplier_products",
    "User",
    "UserRole",
]
