# ==============================================================================
# USER SCHEMAS - Users and Role Assignments
# ==============================================================================

from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from catalog_backend.schemas.base import BaseSchema, TimestampSchema


class UserCreate(BaseSchema):
    """Schema for creating a user."""

    username: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    full_name: Optional[str] = Field(None, max_length=255)
    is_active: bool = True

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Lowercase and trim e-mail addresses."""
        return v.strip().lower()


class UserUpdate(BaseSchema):
    username: Optional[str] = Field(None, min_length=3, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=255)
    full_name: Optional[str] = None
    is_active: Optional[bool] = None


class UserResponse(TimestampSchema):
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    is_active: bool


class UserRoleCreate(BaseSchema):
    """Schema for assigning a role to a user."""

    user_id: int = Field(..., ge=1)
    role_id: int = Field(..., ge=1)
    role_name: str = Field(..., min_length=1, max_length=100)
    is_active: bool = True
    description: Optional[str] = None


class UserRoleUpdate(BaseSchema):
    """Key fields are fixed; only the role details change."""

    role_name: Optional[str] = Field(None, min_length=1, max_length=100)
    is_active: Optional[bool] = None
    description: Optional[str] = None


class UserRoleResponse(BaseSchema):
    user_id: int
    role_id: int
    role_name: str
    is_active: bool
    description: Optional[str] = None
