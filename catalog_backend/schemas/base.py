# ==============================================================================
# BASE SCHEMAS - Common Schema Patterns
# ==============================================================================
# Foundation schemas for API responses and pagination
# ==============================================================================

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field


# Type variable for generic response types
T = TypeVar("T")


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All API schemas inherit from this class to read ORM instances
    directly and serialize consistently.
    """

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        use_enum_values=True,
    )


class TimestampSchema(BaseSchema):
    """Schema with automatic timestamp fields."""

    created_at: Optional[datetime] = Field(
        None,
        description="Record creation timestamp"
    )
    updated_at: Optional[datetime] = Field(
        None,
        description="Last update timestamp"
    )


class QuerySourceSchema(BaseModel):
    """Rendered query returned alongside list results."""

    rendered_query: str = Field(
        ...,
        description="Executed statement with placeholders in place of values"
    )


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response wrapper.

    Attributes:
        data: Rows of the requested page
        total: Total number of matching rows
        page: Current page number (1-indexed)
        limit: Rows per page
        total_pages: Number of pages
        source: Rendered query, for auditing
    """

    data: List[T] = Field(
        default_factory=list,
        description="List of items"
    )
    total: int = Field(
        ...,
        ge=0,
        description="Total number of items"
    )
    page: int = Field(
        ...,
        ge=1,
        description="Current page number"
    )
    limit: int = Field(
        ...,
        ge=1,
        description="Items per page"
    )
    total_pages: int = Field(
        ...,
        ge=0,
        description="Total number of pages"
    )
    source: Optional[QuerySourceSchema] = Field(
        None,
        description="Query that produced the page"
    )

    @property
    def has_next(self) -> bool:
        """Check if there's a next page."""
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        """Check if there's a previous page."""
        return self.page > 1


class APIResponse(BaseModel, Generic[T]):
    """
    Standard API response wrapper.

    Attributes:
        success: Whether the request was successful
        message: Optional status message
        data: Response payload
    """

    success: bool = Field(
        True,
        description="Whether the request was successful"
    )
    message: Optional[str] = Field(
        None,
        description="Status message"
    )
    data: Optional[T] = Field(
        None,
        description="Response data"
    )

    @classmethod
    def ok(
        cls,
        data: T,
        message: Optional[str] = None,
    ) -> "APIResponse[T]":
        """Create a successful response."""
        return cls(success=True, data=data, message=message)


class HealthResponse(BaseSchema):
    """Health check response schema."""

    status: str = Field(
        ...,
        description="healthy when every connection is initialized, degraded otherwise"
    )
    version: str = Field(
        ...,
        description="Application version"
    )
    connections: Dict[str, str] = Field(
        default_factory=dict,
        description="State of each named connection"
    )


class DeleteResult(BaseModel):
    """Outcome of a delete."""

    deleted: bool


class EntityMetadata(BaseModel):
    """Static description of an entity, as served by the metadata endpoint."""

    entity: str
    table: str
    primary_key: List[str]
    connection: Optional[str] = None
    default_sort: Optional[str] = None
    source: Dict[str, Optional[str]] = Field(default_factory=dict)
    fields: List[Dict[str, Any]] = Field(default_factory=list)
