# ==============================================================================
# FILTER PARSER - Query String to Filter Model
# ==============================================================================
# Structured grammar:  filter[field][op]=value, filter[or][0][field][op]=value
# Legacy grammar:      field@OP=value, bare field=value
# ==============================================================================

from __future__ import annotations

import json
import logging
import re
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from catalog_backend.core.constants import QueryConstants
from catalog_backend.core.exceptions import FilterParseError
from catalog_backend.filters.dates import looks_like_date, parse_date
from catalog_backend.filters.models import (
    LIST_OPERATORS,
    PATTERN_OPERATORS,
    RANGE_OPERATORS,
    SINGLE_DATE_OPERATORS,
    VALUELESS_OPERATORS,
    BaseFilter,
    ComparisonOperator,
    DateRange,
    Filter,
    LogicalFilter,
    LogicalOperator,
    PaginationOptions,
    QueryOptions,
    SortDirection,
    SortOption,
)

logger = logging.getLogger(__name__)

QueryParams = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]

# Aliases accepted by the structured grammar (lowercase, brackets stripped)
STRUCTURED_ALIASES: Dict[str, ComparisonOperator] = {
    "equals": ComparisonOperator.EQ,
    "not_equals": ComparisonOperator.NE,
    "date_equals": ComparisonOperator.DATE_EQ,
    "date_not_equals": ComparisonOperator.DATE_NE,
    "date_lt": ComparisonOperator.DATE_BEFORE,
    "date_gt": ComparisonOperator.DATE_AFTER,
    "before": ComparisonOperator.DATE_BEFORE,
    "after": ComparisonOperator.DATE_AFTER,
    "between": ComparisonOperator.DATE_BETWEEN,
    "not_between": ComparisonOperator.DATE_NOT_BETWEEN,
}

# Aliases accepted by the legacy grammar (uppercase)
LEGACY_ALIASES: Dict[str, ComparisonOperator] = {
    **{op.value.upper(): op for op in ComparisonOperator},
    "EQUALS": ComparisonOperator.EQ,
    "NOT_EQUALS": ComparisonOperator.NE,
    "DATE_EQUALS": ComparisonOperator.DATE_EQ,
    "DATE_NOT_EQUALS": ComparisonOperator.DATE_NE,
    "BEFORE": ComparisonOperator.DATE_BEFORE,
    "AFTER": ComparisonOperator.DATE_AFTER,
    "BETWEEN": ComparisonOperator.DATE_BETWEEN,
    "NOT_BETWEEN": ComparisonOperator.DATE_NOT_BETWEEN,
}

_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT = re.compile(r"\[([^\[\]]*)\]")
_INTEGER = re.compile(r"^[+-]?\d+$")
_DECIMAL = re.compile(r"^[+-]?(\d+\.\d*|\.\d+)([eE][+-]?\d+)?$")


# ==============================================================================
# VALUE COERCION
# ==============================================================================

def resolve_operator(token: str) -> Optional[ComparisonOperator]:
    """
    Match a structured operator token.

    Brackets are stripped and matching is case-insensitive.

    Returns:
        Operator, or None when the token is unknown
    """
    cleaned = token.replace("[", "").replace("]", "").strip().lower()
    try:
        return ComparisonOperator(cleaned)
    except ValueError:
        return STRUCTURED_ALIASES.get(cleaned)


def resolve_legacy_operator(token: str) -> Optional[ComparisonOperator]:
    """Match a legacy ``field@OPERATOR`` token against the alias table."""
    return LEGACY_ALIASES.get(token.strip().upper())


def coerce_scalar(raw: Any) -> Any:
    """
    Coerce a comparison operand.

    Numeric strings become int/float, ``true``/``false`` become booleans,
    date-looking strings become datetimes. Anything else passes through.
    """
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    if _INTEGER.match(text):
        return int(text)
    if _DECIMAL.match(text):
        return float(text)
    if looks_like_date(text):
        parsed = parse_date(text)
        if parsed is not None:
            return parsed
    return raw


def coerce_value(operator: ComparisonOperator, raw: Any) -> Any:
    """
    Coerce a raw operand according to its operator.

    Args:
        operator: Leaf operator
        raw: Raw value (string from a query string, or JSON value)

    Returns:
        Operand in the shape the translator expects

    Raises:
        ValueError: If the operand cannot be coerced

    Example:
        >>> coerce_value(ComparisonOperator.IN, "Apple, Samsung")
        ['Apple', 'Samsung']
    """
    if operator in VALUELESS_OPERATORS:
        return None

    if operator in LIST_OPERATORS:
        if isinstance(raw, (list, tuple)):
            tokens: List[Any] = []
            for item in raw:
                tokens.extend(str(item).split(",") if isinstance(item, str) else [item])
        else:
            tokens = str(raw).split(",")
        items = [
            token.strip() if isinstance(token, str) else token
            for token in tokens
        ]
        items = [item for item in items if item != ""]
        if not items:
            raise ValueError(f"empty list for '{operator.value}'")
        return items

    if operator in RANGE_OPERATORS:
        if isinstance(raw, DateRange):
            return raw
        if isinstance(raw, Mapping):
            parts = [raw.get("start"), raw.get("end")]
        elif isinstance(raw, (list, tuple)):
            parts = list(raw)
        else:
            parts = str(raw).split(",")
        if len(parts) != 2:
            raise ValueError(f"'{operator.value}' needs two dates")
        start, end = parse_date(parts[0]), parse_date(parts[1])
        if start is None or end is None:
            raise ValueError(f"invalid date range {raw!r}")
        return DateRange(start=start, end=end)

    if operator in SINGLE_DATE_OPERATORS:
        parsed = parse_date(raw)
        if parsed is None:
            raise ValueError(f"invalid date {raw!r}")
        return parsed

    if operator in PATTERN_OPERATORS:
        if raw is None:
            raise ValueError("pattern operand is missing")
        return raw if isinstance(raw, str) else str(raw)

    return coerce_scalar(raw)


# ==============================================================================
# QUERY PARAMETER TREE
# ==============================================================================

def _pairs(params: QueryParams) -> List[Tuple[str, Any]]:
    if isinstance(params, Mapping):
        return list(params.items())
    return list(params)


def _last(pairs: Sequence[Tuple[str, Any]], key: str) -> Any:
    value = None
    for name, candidate in pairs:
        if name == key:
            value = candidate
    if isinstance(value, (list, tuple)):
        return value[-1] if value else None
    return value


def split_key(key: str) -> Optional[List[str]]:
    """
    Split a bracketed key into its path.

    Example:
        >>> split_key("filter[or][0][name][eq]")
        ['filter', 'or', '0', 'name', 'eq']
    """
    match = _KEY.match(key)
    if not match:
        return None
    return [match.group(1)] + _SEGMENT.findall(match.group(2))


def build_tree(pairs: Sequence[Tuple[str, Any]], root: str) -> Optional[Dict[str, Any]]:
    """
    Fold bracketed keys under `root` into a nested tree.

    A plain ``root`` key holding a mapping or a JSON object string is used
    as the tree directly. Keys whose path collides with an existing leaf
    are ignored.

    Returns:
        Tree of nested dicts (empty when `root` is present but unusable),
        or None when no key addresses `root`
    """
    tree: Optional[Dict[str, Any]] = None
    seen = False
    for key, value in pairs:
        if key == root:
            seen = True
            direct = _direct_tree(value)
            if direct is not None:
                tree = _merge(tree or {}, direct)
            continue
        path = split_key(key)
        if not path or path[0] != root or len(path) < 2:
            continue
        seen = True
        tree = tree if tree is not None else {}
        node = tree
        for segment in path[1:-1]:
            child = node.setdefault(segment, {})
            if not isinstance(child, dict):
                node = None
                break
            node = child
        if node is None or isinstance(node.get(path[-1]), dict):
            logger.debug("Ignoring conflicting filter key %s", key)
            continue
        node[path[-1]] = value
    if tree is None and seen:
        return {}
    return tree


def _direct_tree(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str) and value.strip().startswith("{"):
        try:
            decoded = json.loads(value)
        except ValueError:
            logger.debug("Ignoring undecodable filter JSON")
            return None
        return decoded if isinstance(decoded, dict) else None
    return None


def _merge(target: Dict[str, Any], source: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in source.items():
        if isinstance(value, Mapping) and isinstance(target.get(key), dict):
            _merge(target[key], value)
        else:
            target.setdefault(key, value)
    return target


# ==============================================================================
# PARSER
# ==============================================================================

class FilterParser:
    """
    Converts query-string style parameters into QueryOptions.

    The structured grammar is used whenever a ``filter`` key is present;
    otherwise every non-reserved key is read with the legacy grammar.
    Unknown operators and uncoercible operands are dropped, or raise
    FilterParseError when `strict` is set.

    Attributes:
        strict: Reject instead of drop
        default_limit: Page size when none is requested
        max_limit: Optional clamp for page sizes

    Example:
        >>> parser = FilterParser()
        >>> options = parser.parse({
        ...     "filter[price][gte]": "1000",
        ...     "filter[price][lte]": "5000",
        ...     "sort": "price:desc",
        ... })
        >>> options.filter.operator
        <LogicalOperator.AND: 'and'>
    """

    def __init__(
        self,
        strict: bool = False,
        default_limit: int = QueryConstants.DEFAULT_LIMIT,
        max_limit: Optional[int] = None,
    ) -> None:
        self.strict = strict
        self.default_limit = default_limit
        self.max_limit = max_limit

    def parse(self, params: QueryParams) -> QueryOptions:
        """Parse filter, sort and pagination from one parameter set."""
        pairs = _pairs(params)
        return QueryOptions(
            filter=self.parse_filter(pairs),
            sort=self.parse_sort(pairs),
            pagination=self.parse_pagination(pairs),
        )

    # --------------------------------------------------------------------------
    # FILTER
    # --------------------------------------------------------------------------
    def parse_filter(self, params: QueryParams) -> Optional[Filter]:
        pairs = _pairs(params)
        tree = build_tree(pairs, QueryConstants.FILTER_KEY)
        if tree is not None:
            return self.parse_tree(tree)
        return self.parse_legacy(pairs)

    def parse_tree(self, tree: Mapping[str, Any]) -> Optional[Filter]:
        """
        Recursive descent over a structured filter tree.

        Every member of a node is either a field (mapping operator tokens to
        operands) or an ``and``/``or`` group. Several members combine with AND.
        """
        parts: List[Filter] = []
        for key, child in tree.items():
            lowered = str(key).lower()
            if lowered in (LogicalOperator.AND.value, LogicalOperator.OR.value):
                group = self._parse_group(LogicalOperator(lowered), child)
                if group is not None:
                    parts.append(group)
            else:
                parts.extend(self._parse_field(str(key), child))
        return _combine(LogicalOperator.AND, parts)

    def _parse_group(
        self,
        operator: LogicalOperator,
        node: Any,
    ) -> Optional[LogicalFilter]:
        if isinstance(node, Mapping):
            if node and all(_INTEGER.match(str(key)) for key in node):
                members = [node[key] for key in sorted(node, key=lambda k: int(k))]
            else:
                # filter[or][field][op]=v without an index
                members = [node]
        elif isinstance(node, (list, tuple)):
            members = list(node)
        else:
            self._reject(f"'{operator.value}' group must contain conditions")
            return None

        filters: List[Filter] = []
        for member in members:
            if not isinstance(member, Mapping):
                self._reject(f"Malformed member in '{operator.value}' group")
                continue
            parsed = self.parse_tree(member)
            if parsed is not None:
                filters.append(parsed)
        if not filters:
            return None
        return LogicalFilter(operator=operator, filters=filters)

    def _parse_field(self, field: str, conditions: Any) -> List[BaseFilter]:
        if not field.strip():
            self._reject("Empty field name")
            return []
        if not isinstance(conditions, Mapping):
            # filter[name]=value reads as equality
            conditions = {ComparisonOperator.EQ.value: conditions}

        leaves: List[BaseFilter] = []
        for token, raw in conditions.items():
            operator = resolve_operator(str(token))
            if operator is None:
                self._reject(f"Unknown filter operator '{token}' on '{field}'")
                continue
            leaf = self._leaf(field, operator, raw)
            if leaf is not None:
                leaves.append(leaf)
        return leaves

    def parse_legacy(self, params: QueryParams) -> Optional[Filter]:
        """
        Read ``field@OPERATOR=value`` and bare ``field=value`` keys.

        Reserved keys are skipped; conditions combine with AND.
        """
        leaves: List[Filter] = []
        for key, raw in _pairs(params):
            if key in QueryConstants.RESERVED_KEYS or "[" in key:
                continue
            if "@" in key:
                field, _, token = key.rpartition("@")
                operator = resolve_legacy_operator(token)
                if operator is None:
                    self._reject(f"Unknown filter operator '{token}' on '{field}'")
                    continue
            else:
                field, operator = key, ComparisonOperator.EQ
            if not field.strip():
                self._reject("Empty field name")
                continue
            leaf = self._leaf(field.strip(), operator, raw)
            if leaf is not None:
                leaves.append(leaf)
        return _combine(LogicalOperator.AND, leaves)

    def _leaf(
        self,
        field: str,
        operator: ComparisonOperator,
        raw: Any,
    ) -> Optional[BaseFilter]:
        if isinstance(raw, (list, tuple)) and operator not in LIST_OPERATORS | RANGE_OPERATORS:
            raw = raw[-1] if raw else None
        try:
            value = coerce_value(operator, raw)
        except ValueError as exc:
            self._reject(f"Invalid value for {field}@{operator.value}: {exc}")
            return None
        return BaseFilter(field=field, operator=operator, value=value)

    def normalize(self, condition: Optional[Filter]) -> Optional[Filter]:
        """
        Coerce the operands of an already-built tree.

        Used for JSON request bodies, whose operands arrive as plain JSON
        values. Leaves that cannot be coerced are dropped with their
        emptied groups.
        """
        if condition is None:
            return None
        if isinstance(condition, LogicalFilter):
            children = [self.normalize(child) for child in condition.filters]
            return _combine(
                condition.operator,
                [child for child in children if child is not None],
                collapse=False,
            )
        return self._leaf(condition.field, condition.operator, condition.value)

    def _reject(self, message: str) -> None:
        if self.strict:
            raise FilterParseError(message)
        logger.debug("Dropped filter input: %s", message)

    # --------------------------------------------------------------------------
    # SORT & PAGINATION
    # --------------------------------------------------------------------------
    def parse_sort(self, params: QueryParams) -> Optional[List[SortOption]]:
        """
        Read ``sort=field:dir,...`` or, failing that, ``sortBy``/``sortDirection``.

        Any direction other than ``desc`` sorts ascending.
        """
        pairs = _pairs(params)
        options: List[SortOption] = []
        structured = _last(pairs, QueryConstants.SORT_KEY)
        if isinstance(structured, str) and structured.strip():
            for part in structured.split(","):
                field, _, direction = part.partition(":")
                if field.strip():
                    options.append(SortOption(
                        field=field.strip(),
                        direction=_direction(direction),
                    ))
        else:
            sort_by = _last(pairs, QueryConstants.SORT_BY_KEY)
            if isinstance(sort_by, str) and sort_by.strip():
                options.append(SortOption(
                    field=sort_by.strip(),
                    direction=_direction(
                        _last(pairs, QueryConstants.SORT_DIRECTION_KEY) or ""
                    ),
                ))
        return options or None

    def parse_pagination(self, params: QueryParams) -> PaginationOptions:
        pairs = _pairs(params)
        page = _positive_int(_last(pairs, QueryConstants.PAGE_KEY), QueryConstants.DEFAULT_PAGE)
        limit = _positive_int(_last(pairs, QueryConstants.LIMIT_KEY), self.default_limit)
        if self.max_limit is not None:
            limit = min(limit, self.max_limit)
        return PaginationOptions(page=page, limit=limit)


def _combine(
    operator: LogicalOperator,
    parts: List[Filter],
    collapse: bool = True,
) -> Optional[Filter]:
    if not parts:
        return None
    if collapse and len(parts) == 1:
        return parts[0]
    return LogicalFilter(operator=operator, filters=parts)


def _direction(token: Any) -> SortDirection:
    if isinstance(token, str) and token.strip().lower() == "desc":
        return SortDirection.DESC
    return SortDirection.ASC


def _positive_int(raw: Any, default: int) -> int:
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw if raw >= 1 else default
    if isinstance(raw, str) and _INTEGER.match(raw.strip()):
        number = int(raw.strip())
        return number if number >= 1 else default
    return default


def parse_query_params(
    params: QueryParams,
    strict: bool = False,
    default_limit: int = QueryConstants.DEFAULT_LIMIT,
    max_limit: Optional[int] = None,
) -> QueryOptions:
    """Parse with a one-off FilterParser."""
    return FilterParser(
        strict=strict,
        default_limit=default_limit,
        max_limit=max_limit,
    ).parse(params)
