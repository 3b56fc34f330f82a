# ==============================================================================
# CATALOG MODELS - Categories, Products, Images, Suppliers, Feeds
# ==============================================================================
# Product catalog entities and the product associations of feeds and suppliers
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_backend.domain_models.base import IntegerIdMixin, SQLBase, TimestampMixin


product_feed_products = Table(
    "product_feed_products",
    SQLBase.metadata,
    Column("feed_id", ForeignKey("product_feeds.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)

supplier_products = Table(
    "supplier_products",
    SQLBase.metadata,
    Column("supplier_id", ForeignKey("suppliers.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)


class Category(SQLBase, IntegerIdMixin, TimestampMixin):
    """
    Product category, optionally nested under a parent.

    Attributes:
        code: Unique category code
        parent_id: Parent category (None for top level)
        level: Depth in the category tree, 0 for top level
    """

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    level: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Product(SQLBase, IntegerIdMixin, TimestampMixin):
    """
    Catalog item with pricing, stock and lifecycle dates.

    Attributes:
        sku: Stock Keeping Unit (unique when present)
        price: Current selling price
        stock: Units on hand
        manufacture_date: Production date
        expiry_date: Best-before date (None for durable goods)
        stocked_date: Date the item entered the warehouse
        last_sold_date: Most recent sale

    Relationships:
        category: Owning category
        images: Gallery images in display order (deleted with the product)
        suppliers: Vendors supplying the product (read-only side)
    """

    __tablename__ = "products"

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    sub_category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Pricing and inventory
    price: Mapped[Decimal] = mapped_column(Numeric(precision=18, scale=2), nullable=False)
    stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Attributes
    dimensions: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    manufacturer: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sku: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Lifecycle dates
    manufacture_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    expiry_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    stocked_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sold_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    category: Mapped[Optional[Category]] = relationship()
    images: Mapped[List[ProductImage]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by=lambda: [ProductImage.sort_order, ProductImage.id],
    )
    suppliers: Mapped[List[Supplier]] = relationship(
        secondary=supplier_products,
        viewonly=True,
        order_by=lambda: Supplier.id,
    )


class ProductImage(SQLBase, IntegerIdMixin, TimestampMixin):
    """
    Image shown in a product's gallery.

    The image with the lowest sort_order is the main image.
    """

    __tablename__ = "product_images"

    product_id: Mapped[int] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    alt_text: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    image_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    product: Mapped[Product] = relationship(back_populates="images")


class Supplier(SQLBase, IntegerIdMixin, TimestampMixin):
    """Vendor supplying catalog products."""

    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    contact_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    products: Mapped[List[Product]] = relationship(
        secondary=supplier_products,
        order_by=lambda: Product.id,
    )


class ProductFeed(SQLBase, IntegerIdMixin, TimestampMixin):
    """
    Export of a product selection from one system to another.

    Attributes:
        source_system: Producing system
        target_system: Consuming system
        format: Payload format (csv, json, xml, ...)
        refresh_interval: Minutes between refreshes
        filter_criteria: Stored filter selecting the feed's products

    Relationships:
        products: Products published through the feed
    """

    __tablename__ = "product_feeds"

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_system: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    target_system: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    format: Mapped[str] = mapped_column(String(20), default="json", nullable=False)
    url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    refresh_interval: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    transformation_script: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    filter_criteria: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    products: Mapped[List[Product]] = relationship(
        secondary=product_feed_products,
        lazy="selectin",
    )
