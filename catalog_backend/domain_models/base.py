# ==============================================================================
# BASE MODEL - SQLAlchemy Foundation
# ==============================================================================
# Declarative base and the column mixins shared by catalog entities
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class SQLBase(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Carries no columns of its own, so entities with composite keys can
    declare their key fields directly.

    Example:
        >>> class Category(SQLBase, IntegerIdMixin, TimestampMixin):
        ...     __tablename__ = "categories"
        ...     name: Mapped[str] = mapped_column(String(100))
    """

    def to_dict(self) -> dict[str, Any]:
        """
        Convert model instance to dictionary.

        Returns:
            Mapping of attribute name to value for every mapped column
        """
        return {
            attr: getattr(self, attr)
            for attr in self.__mapper__.column_attrs.keys()
        }

    def __repr__(self) -> str:
        keys = ", ".join(
            f"{column.key}={getattr(self, column.key, None)!r}"
            for column in self.__mapper__.primary_key
        )
        return f"<{self.__class__.__name__}({keys})>"


class IntegerIdMixin:
    """Auto-incrementing integer primary key."""

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )


class TimestampMixin:
    """
    Mixin providing automatic timestamp tracking.

    Attributes:
        created_at: Timestamp of record creation (auto-set)
        updated_at: Timestamp of last update (auto-updated)
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
