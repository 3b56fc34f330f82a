# ==============================================================================
# FILTER MODEL - Conditions, Sorting and Pagination
# ==============================================================================
# Tree of base/logical conditions plus sort and page options for list queries
# ==============================================================================

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ComparisonOperator(str, Enum):
    """
    Closed set of leaf operators.

    Values are the lowercase tokens accepted on the wire.
    """
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    ILIKE = "ilike"
    IN = "in"
    NOT_IN = "not_in"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    DATE_EQ = "date_eq"
    DATE_NE = "date_ne"
    DATE_BEFORE = "date_before"
    DATE_AFTER = "date_after"
    DATE_BETWEEN = "date_between"
    DATE_NOT_BETWEEN = "date_not_between"
    DATE_TODAY = "date_today"
    DATE_YESTERDAY = "date_yesterday"
    DATE_THIS_WEEK = "date_this_week"
    DATE_LAST_WEEK = "date_last_week"
    DATE_THIS_MONTH = "date_this_month"
    DATE_LAST_MONTH = "date_last_month"
    DATE_THIS_YEAR = "date_this_year"
    DATE_LAST_YEAR = "date_last_year"


class LogicalOperator(str, Enum):
    """Join method of a logical group."""
    AND = "and"
    OR = "or"


class SortDirection(str, Enum):
    """Sort direction."""
    ASC = "ASC"
    DESC = "DESC"


# Operator families drive value coercion and rendering
NULL_OPERATORS = frozenset({
    ComparisonOperator.IS_NULL,
    ComparisonOperator.IS_NOT_NULL,
})

LIST_OPERATORS = frozenset({
    ComparisonOperator.IN,
    ComparisonOperator.NOT_IN,
})

PATTERN_OPERATORS = frozenset({
    ComparisonOperator.LIKE,
    ComparisonOperator.ILIKE,
})

SINGLE_DATE_OPERATORS = frozenset({
    ComparisonOperator.DATE_EQ,
    ComparisonOperator.DATE_NE,
    ComparisonOperator.DATE_BEFORE,
    ComparisonOperator.DATE_AFTER,
})

RANGE_OPERATORS = frozenset({
    ComparisonOperator.DATE_BETWEEN,
    ComparisonOperator.DATE_NOT_BETWEEN,
})

RELATIVE_DATE_OPERATORS = frozenset({
    ComparisonOperator.DATE_TODAY,
    ComparisonOperator.DATE_YESTERDAY,
    ComparisonOperator.DATE_THIS_WEEK,
    ComparisonOperator.DATE_LAST_WEEK,
    ComparisonOperator.DATE_THIS_MONTH,
    ComparisonOperator.DATE_LAST_MONTH,
    ComparisonOperator.DATE_THIS_YEAR,
    ComparisonOperator.DATE_LAST_YEAR,
})

# Operators whose leaves carry no bound value
VALUELESS_OPERATORS = NULL_OPERATORS | RELATIVE_DATE_OPERATORS


class DateRange(BaseModel):
    """Inclusive date range used by between operators."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class BaseFilter(BaseModel):
    """
    One leaf condition: field, operator, value.

    The shape of `value` depends on the operator: a list for in/not_in,
    a DateRange for the between operators, a datetime for the single
    date operators, None for the null and relative date operators.
    """

    model_config = ConfigDict(frozen=True)

    field: str = Field(..., min_length=1, description="Entity field name")
    operator: ComparisonOperator = Field(..., description="Comparison operator")
    value: Any = Field(None, description="Operator operand")


class LogicalFilter(BaseModel):
    """
    AND/OR group of sub-filters.

    Groups nest to any depth; an empty group is rejected at construction.
    """

    model_config = ConfigDict(frozen=True)

    operator: LogicalOperator = Field(..., description="Join method")
    filters: List[Union[LogicalFilter, BaseFilter]] = Field(
        ...,
        min_length=1,
        description="Sub-filters joined with the group operator",
    )


LogicalFilter.model_rebuild()

Filter = Union[LogicalFilter, BaseFilter]


class SortOption(BaseModel):
    """Single sort key."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(..., min_length=1)
    direction: SortDirection = SortDirection.ASC


class PaginationOptions(BaseModel):
    """Page number and size, both 1-based positive integers."""

    model_config = ConfigDict(frozen=True)

    page: int = Field(1, ge=1, description="Page number (1-indexed)")
    limit: int = Field(10, ge=1, description="Rows per page")

    @property
    def skip(self) -> int:
        """Number of rows preceding the page."""
        return (self.page - 1) * self.limit


class QueryOptions(BaseModel):
    """
    Everything a list request asks for.

    Also the JSON body accepted by advanced-filter endpoints.

    Example:
        >>> QueryOptions.model_validate({
        ...     "filter": {"operator": "or", "filters": [
        ...         {"field": "name", "operator": "ilike", "value": "phone"},
        ...         {"field": "price", "operator": "lt", "value": 100},
        ...     ]},
        ...     "sort": [{"field": "price", "direction": "DESC"}],
        ...     "pagination": {"page": 1, "limit": 20},
        ... })
    """

    filter: Optional[Filter] = None
    sort: Optional[List[SortOption]] = None
    pagination: PaginationOptions = Field(default_factory=PaginationOptions)


class QuerySource(BaseModel):
    """Audit artifact: rendered query text with placeholders only."""

    rendered_query: str


class PaginatedResult(BaseModel, Generic[T]):
    """
    One page of rows plus pagination metadata.

    Attributes:
        data: Rows of the requested page
        total: Rows matching the filter across all pages
        total_pages: ceil(total / limit)
        source: Rendered query for auditing
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: List[T] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    source: Optional[QuerySource] = None

    @classmethod
    def build(
        cls,
        data: List[T],
        total: int,
        pagination: PaginationOptions,
        rendered_query: Optional[str] = None,
    ) -> "PaginatedResult[T]":
        """Assemble a page, deriving total_pages from total and limit."""
        return cls(
            data=data,
            total=total,
            page=pagination.page,
            limit=pagination.limit,
            total_pages=math.ceil(total / pagination.limit),
            source=QuerySource(rendered_query=rendered_query)
            if rendered_query is not None else None,
        )

    def map(self, fn) -> Dict[str, Any]:
        """Serialize with each row converted by `fn`."""
        payload = self.model_dump(exclude={"data"})
        payload["data"] = [fn(row) for row in self.data]
        return payload


def iter_leaves(condition: Filter):
    """Yield every BaseFilter in a tree, depth first."""
    if isinstance(condition, LogicalFilter):
        for child in condition.filters:
            yield from iter_leaves(child)
    else:
        yield condition
