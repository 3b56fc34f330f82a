# ==============================================================================
# FILTERS PACKAGE INITIALIZATION
# ==============================================================================
# Filter model, query-string parser and SQL fragment translator
# ==============================================================================

"""
Filters Module
==============

- models: Filter Model (BaseFilter, LogicalFilter, sort and pagination)
- parser: structured and legacy query-string grammars
- translator: parameterized WHERE fragments for SQLAlchemy
- dates: date parsing and calendar windows
"""

from catalog_backend.filters.models import (
    BaseFilter,
    ComparisonOperator,
    DateRange,
    Filter,
    LogicalFilter,
    LogicalOperator,
    PaginatedResult,
    PaginationOptions,
    QueryOptions,
    SortDirection,
    SortOption,
)
from catalog_backend.filters.parser import FilterParser, parse_query_params
from catalog_backend.filters.translator import (
    ParameterNames,
    QueryTranslator,
    TranslatedCondition,
)

__all__ = [
    "BaseFilter",
    "ComparisonOperator",
    "DateRange",
    "Filter",
    "LogicalFilter",
    "LogicalOperator",
    "PaginatedResult",
    "PaginationOptions",
    "QueryOptions",
    "SortDirection",
    "SortOption",
    "FilterParser",
    "parse_query_params",
    "ParameterNames",
    "QueryTranslator",
    "TranslatedCondition",
]
