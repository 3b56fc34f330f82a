# ==============================================================================
# QUERY TRANSLATOR - Filter Model to Parameterized SQL
# ==============================================================================
# Recursive descent producing bracketed WHERE fragments with unique binds
# ==============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional, Set, Type

from sqlalchemy import bindparam, inspect, text
from sqlalchemy.sql.elements import TextClause

from catalog_backend.core.constants import QueryConstants
from catalog_backend.filters.dates import day_bounds, end_of_day, parse_date, relative_range
from catalog_backend.filters.models import (
    BaseFilter,
    ComparisonOperator,
    DateRange,
    Filter,
    LogicalFilter,
)
from catalog_backend.utils.helpers import utc_now_naive

logger = logging.getLogger(__name__)

_COMPARISONS: Dict[ComparisonOperator, str] = {
    ComparisonOperator.EQ: "=",
    ComparisonOperator.NE: "!=",
    ComparisonOperator.GT: ">",
    ComparisonOperator.GTE: ">=",
    ComparisonOperator.LT: "<",
    ComparisonOperator.LTE: "<=",
    ComparisonOperator.DATE_BEFORE: "<",
    ComparisonOperator.DATE_AFTER: ">",
}


class ParameterNames:
    """
    Issues bind parameter names ``<prefix>_<index>``.

    One instance is shared across a whole tree so names never repeat.
    """

    def __init__(self, prefix: str = QueryConstants.PARAMETER_PREFIX) -> None:
        self._prefix = prefix
        self._index = 0

    def next(self) -> str:
        name = f"{self._prefix}_{self._index}"
        self._index += 1
        return name


@dataclass(frozen=True)
class TranslatedCondition:
    """
    Rendered WHERE fragment plus its bound parameters.

    Attributes:
        sql: Fragment with ``:name`` placeholders
        params: Parameter name to value
        expanding: Names bound as expanding lists (IN / NOT IN)
    """

    sql: str
    params: Dict[str, Any] = field(default_factory=dict)
    expanding: FrozenSet[str] = frozenset()

    def to_clause(self) -> TextClause:
        """Build a SQLAlchemy text clause with every parameter bound."""
        binds = [
            bindparam(name, value, expanding=name in self.expanding)
            for name, value in self.params.items()
        ]
        return text(self.sql).bindparams(*binds)


class QueryTranslator:
    """
    Translates a Filter Model into one parameterized WHERE fragment.

    Logical groups render as bracketed groups joined with the group's own
    operator; nested groups open nested brackets. Leaves on unknown fields
    or with unusable operands render nothing and are left out of their
    group, so a bad leaf never narrows or widens the remaining condition.

    Attributes:
        columns: Filterable field name to qualified column reference
        now: Clock used by the relative date operators, naive UTC by default
            to match stored server timestamps

    Example:
        >>> translator = QueryTranslator({"price": "products.price"})
        >>> condition = translator.translate(
        ...     BaseFilter(field="price", operator="gte", value=1000)
        ... )
        >>> condition.sql
        'products.price >= :p_0'
        >>> condition.params
        {'p_0': 1000}
    """

    def __init__(
        self,
        columns: Mapping[str, str],
        now: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.columns = dict(columns)
        self.now = now or utc_now_naive

    @classmethod
    def for_model(
        cls,
        model: Type[Any],
        now: Optional[Callable[[], datetime]] = None,
    ) -> "QueryTranslator":
        """
        Build a translator whose fields are the mapped columns of `model`.

        Fields resolve by attribute name and by column name; anything else
        is not filterable.
        """
        columns: Dict[str, str] = {}
        for attr in inspect(model).column_attrs:
            column = attr.columns[0]
            if column.table is None:
                continue
            reference = f"{column.table.name}.{column.name}"
            columns.setdefault(column.name, reference)
            columns[attr.key] = reference
        return cls(columns, now=now)

    def translate(
        self,
        condition: Filter,
        names: Optional[ParameterNames] = None,
    ) -> Optional[TranslatedCondition]:
        """
        Render `condition`.

        Args:
            condition: Filter tree (left untouched)
            names: Shared parameter name counter

        Returns:
            TranslatedCondition, or None when nothing renders
        """
        names = names or ParameterNames()
        params: Dict[str, Any] = {}
        expanding: Set[str] = set()
        sql = self._render(condition, names, params, expanding)
        if sql is None:
            return None
        return TranslatedCondition(sql=sql, params=params, expanding=frozenset(expanding))

    def _render(
        self,
        condition: Filter,
        names: ParameterNames,
        params: Dict[str, Any],
        expanding: Set[str],
    ) -> Optional[str]:
        if isinstance(condition, LogicalFilter):
            parts = []
            for child in condition.filters:
                rendered = self._render(child, names, params, expanding)
                if rendered is not None:
                    parts.append(rendered)
            if not parts:
                return None
            joiner = f" {condition.operator.value.upper()} "
            return f"({joiner.join(parts)})"
        return self._render_leaf(condition, names, params, expanding)

    def _render_leaf(
        self,
        leaf: BaseFilter,
        names: ParameterNames,
        params: Dict[str, Any],
        expanding: Set[str],
    ) -> Optional[str]:
        column = self.columns.get(leaf.field)
        if column is None:
            logger.debug("Skipping filter on unknown field '%s'", leaf.field)
            return None

        operator = leaf.operator
        value = leaf.value

        if operator == ComparisonOperator.IS_NULL:
            return f"{column} IS NULL"
        if operator == ComparisonOperator.IS_NOT_NULL:
            return f"{column} IS NOT NULL"

        if operator in (ComparisonOperator.LIKE, ComparisonOperator.ILIKE):
            if value is None:
                return None
            name = names.next()
            params[name] = f"%{value}%"
            if operator == ComparisonOperator.ILIKE:
                return f"UPPER({column}) LIKE UPPER(:{name})"
            return f"{column} LIKE :{name}"

        if operator in (ComparisonOperator.IN, ComparisonOperator.NOT_IN):
            items = value if isinstance(value, (list, tuple)) else [value]
            name = names.next()
            params[name] = list(items)
            expanding.add(name)
            keyword = "IN" if operator == ComparisonOperator.IN else "NOT IN"
            return f"{column} {keyword} :{name}"

        if operator in (ComparisonOperator.DATE_EQ, ComparisonOperator.DATE_NE):
            moment = _as_datetime(value)
            if moment is None:
                return None
            start, end = day_bounds(moment)
            return self._between(column, start, end, operator == ComparisonOperator.DATE_NE, names, params)

        if operator in (ComparisonOperator.DATE_BETWEEN, ComparisonOperator.DATE_NOT_BETWEEN):
            bounds = _as_range(value)
            if bounds is None:
                return None
            end = bounds.end
            # a date-only upper bound includes that whole day
            if end.time() == time.min:
                end = end_of_day(end)
            return self._between(
                column,
                bounds.start,
                end,
                operator == ComparisonOperator.DATE_NOT_BETWEEN,
                names,
                params,
            )

        window = relative_range(operator, self.now())
        if window is not None:
            return self._between(column, window.start, window.end, False, names, params)

        symbol = _COMPARISONS.get(operator)
        if symbol is None:
            logger.debug("Skipping unsupported operator '%s'", operator)
            return None
        if operator in (ComparisonOperator.DATE_BEFORE, ComparisonOperator.DATE_AFTER):
            value = _as_datetime(value)
            if value is None:
                return None
        name = names.next()
        params[name] = value
        return f"{column} {symbol} :{name}"

    @staticmethod
    def _between(
        column: str,
        start: datetime,
        end: datetime,
        negate: bool,
        names: ParameterNames,
        params: Dict[str, Any],
    ) -> str:
        base = names.next()
        params[f"{base}_start"] = start
        params[f"{base}_end"] = end
        keyword = "NOT BETWEEN" if negate else "BETWEEN"
        return f"{column} {keyword} :{base}_start AND :{base}_end"


def _as_datetime(value: Any) -> Optional[datetime]:
    return parse_date(value)


def _as_range(value: Any) -> Optional[DateRange]:
    if isinstance(value, DateRange):
        return value
    if isinstance(value, Mapping):
        start, end = parse_date(value.get("start")), parse_date(value.get("end"))
        if start is not None and end is not None:
            return DateRange(start=start, end=end)
    return None
