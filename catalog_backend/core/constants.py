# ==============================================================================
# APPLICATION CONSTANTS - Centralized Configuration Values
# ==============================================================================
# Immutable constants used throughout the application
# Organized by category for easy maintenance
# ==============================================================================

from __future__ import annotations

from typing import Dict, Final, FrozenSet


# ==============================================================================
# API CONSTANTS
# ==============================================================================

class APIConstants:
    """API-related constants."""

    # Response headers
    REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
    RESPONSE_TIME_HEADER: Final[str] = "X-Response-Time"


# ==============================================================================
# QUERY CONSTANTS
# ==============================================================================

class QueryConstants:
    """Query string keys and defaults of list requests."""

    FILTER_KEY: Final[str] = "filter"
    SORT_KEY: Final[str] = "sort"
    SORT_BY_KEY: Final[str] = "sortBy"
    SORT_DIRECTION_KEY: Final[str] = "sortDirection"
    PAGE_KEY: Final[str] = "page"
    LIMIT_KEY: Final[str] = "limit"

    # Never read as legacy filter conditions
    RESERVED_KEYS: Final[FrozenSet[str]] = frozenset({
        PAGE_KEY, LIMIT_KEY, SORT_BY_KEY, SORT_DIRECTION_KEY, FILTER_KEY, SORT_KEY,
    })

    DEFAULT_PAGE: Final[int] = 1
    DEFAULT_LIMIT: Final[int] = 10

    # Bind parameter prefix used by the query translator
    PARAMETER_PREFIX: Final[str] = "p"


# ==============================================================================
# CONNECTION CONSTANTS
# ==============================================================================

class ConnectionConstants:
    """Named connections registered from settings."""

    MAIN: Final[str] = "main"
    SECONDARY: Final[str] = "secondary"


# ==============================================================================
# FILTER DOCUMENTATION
# ==============================================================================

FILTER_OPERATOR_DOCS: Final[Dict[str, Dict[str, str]]] = {
    "eq": {"description": "Equal to", "example": "name@eq=iPhone"},
    "ne": {"description": "Not equal to", "example": "color@ne=black"},
    "gt": {"description": "Greater than", "example": "price@gt=1000"},
    "gte": {"description": "Greater than or equal", "example": "stock@gte=10"},
    "lt": {"description": "Less than", "example": "price@lt=5000"},
    "lte": {"description": "Less than or equal", "example": "stock@lte=5"},
    "like": {"description": "Contains (case-sensitive)", "example": "description@like=premium"},
    "ilike": {"description": "Contains (case-insensitive)", "example": "name@ilike=iphone"},
    "in": {"description": "In list of values", "example": "manufacturer@in=Apple,Samsung,Sony"},
    "not_in": {"description": "Not in list of values", "example": "color@not_in=red,blue"},
    "is_null": {"description": "Is NULL", "example": "expiry_date@is_null"},
    "is_not_null": {"description": "Is not NULL", "example": "manufacture_date@is_not_null"},
    "date_eq": {"description": "Same calendar day", "example": "manufacture_date@date_eq=2023-01-01"},
    "date_ne": {"description": "Different calendar day", "example": "expiry_date@date_ne=2023-12-31"},
    "date_before": {"description": "Before date", "example": "manufacture_date@date_before=2023-01-01"},
    "date_after": {"description": "After date", "example": "manufacture_date@date_after=2022-12-31"},
    "date_between": {"description": "Between two dates (inclusive)", "example": "stocked_date@date_between=2023-01-01,2023-01-31"},
    "date_not_between": {"description": "Outside two dates", "example": "stocked_date@date_not_between=2023-01-01,2023-01-31"},
    "date_today": {"description": "Today", "example": "created_at@date_today"},
    "date_yesterday": {"description": "Yesterday", "example": "created_at@date_yesterday"},
    "date_this_week": {"description": "This week (Monday first)", "example": "created_at@date_this_week"},
    "date_last_week": {"description": "Last week", "example": "created_at@date_last_week"},
    "date_this_month": {"description": "This month", "example": "created_at@date_this_month"},
    "date_last_month": {"description": "Last month", "example": "created_at@date_last_month"},
    "date_this_year": {"description": "This year", "example": "created_at@date_this_year"},
    "date_last_year": {"description": "Last year", "example": "created_at@date_last_year"},
}

QUERY_USAGE_DOCS: Final[Dict[str, Dict[str, str]]] = {
    "pagination": {
        "page": "Page number, 1-based (default 1)",
        "limit": "Rows per page (default 10)",
        "example": "?page=2&limit=20",
    },
    "sorting": {
        "sort": "Comma separated field:direction pairs",
        "sortBy": "Single sort field (legacy)",
        "sortDirection": "ASC or DESC (legacy)",
        "example": "?sort=price:desc,name:asc",
    },
    "filtering": {
        "structured": "filter[field][operator]=value",
        "grouped": "filter[or][0][field][operator]=value",
        "legacy": "field@OPERATOR=value",
        "example": "?filter[or][0][name][ilike]=phone&filter[or][1][price][lt]=100",
    },
}
