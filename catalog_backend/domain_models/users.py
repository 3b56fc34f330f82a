# ==============================================================================
# USER MODELS - Users and Role Assignments
# ==============================================================================

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from catalog_backend.domain_models.base import IntegerIdMixin, SQLBase, TimestampMixin


class User(SQLBase, IntegerIdMixin, TimestampMixin):
    """Account known to the catalog."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class UserRole(SQLBase):
    """
    Role held by a user, keyed by (user_id, role_id).

    No foreign key to users, so assignments can live on another
    connection than the users table.
    """

    __tablename__ = "user_roles"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    role_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    role_name: Mapped[str] = mapped_column(String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
