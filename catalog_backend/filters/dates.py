# ==============================================================================
# DATE UTILITIES - Parsing and Calendar Windows
# ==============================================================================
# Date parsing for filter values and day/week/month/year bounds
# ==============================================================================

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Tuple

from catalog_backend.filters.models import ComparisonOperator, DateRange

# Accepted textual layouts besides ISO-8601
_DOTTED = re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})$")      # DD.MM.YYYY
_SLASHED = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")       # MM/DD/YYYY
_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")

# Last representable millisecond of a day
END_OF_DAY = time(23, 59, 59, 999000)
ONE_MS = timedelta(milliseconds=1)


def looks_like_date(text: str) -> bool:
    """Check whether a string is written in one of the accepted date layouts."""
    text = text.strip()
    return bool(
        _ISO_PREFIX.match(text) or _DOTTED.match(text) or _SLASHED.match(text)
    )


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parse a filter value into a datetime.

    Accepts datetime/date objects, ISO-8601 strings (a trailing ``Z`` is
    read as UTC), ``DD.MM.YYYY`` and ``MM/DD/YYYY``.

    Args:
        value: Raw value

    Returns:
        Parsed datetime, or None when the value is not a date

    Example:
        >>> parse_date("15.01.2023")
        datetime.datetime(2023, 1, 15, 0, 0)
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _DOTTED.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _safe_datetime(year, month, day)

    match = _SLASHED.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        return _safe_datetime(year, month, day)

    if not _ISO_PREFIX.match(text):
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _safe_datetime(year: int, month: int, day: int) -> Optional[datetime]:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


# ==============================================================================
# CALENDAR BOUNDS
# ==============================================================================

def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(
        hour=END_OF_DAY.hour,
        minute=END_OF_DAY.minute,
        second=END_OF_DAY.second,
        microsecond=END_OF_DAY.microsecond,
    )


def start_of_week(moment: datetime) -> datetime:
    """Monday 00:00 of the week containing `moment`."""
    return start_of_day(moment - timedelta(days=moment.weekday()))


def start_of_month(moment: datetime) -> datetime:
    return start_of_day(moment.replace(day=1))


def end_of_month(moment: datetime) -> datetime:
    first = start_of_month(moment)
    if first.month == 12:
        next_first = first.replace(year=first.year + 1, month=1)
    else:
        next_first = first.replace(month=first.month + 1)
    return next_first - ONE_MS


def start_of_year(moment: datetime) -> datetime:
    return start_of_day(moment.replace(month=1, day=1))


def end_of_year(moment: datetime) -> datetime:
    return start_of_year(moment).replace(year=moment.year + 1) - ONE_MS


def day_bounds(moment: datetime) -> Tuple[datetime, datetime]:
    """Whole calendar day containing `moment`."""
    return start_of_day(moment), end_of_day(moment)


def relative_range(
    operator: ComparisonOperator,
    now: datetime,
) -> Optional[DateRange]:
    """
    Window of a relative date operator, evaluated at `now`.

    Weeks start on Monday. Every window ends on the last millisecond of
    its final day.

    Args:
        operator: One of the date_today ... date_last_year operators
        now: Evaluation instant

    Returns:
        DateRange, or None for a non-relative operator
    """
    if operator == ComparisonOperator.DATE_TODAY:
        start, end = day_bounds(now)
    elif operator == ComparisonOperator.DATE_YESTERDAY:
        start, end = day_bounds(now - timedelta(days=1))
    elif operator == ComparisonOperator.DATE_THIS_WEEK:
        start = start_of_week(now)
        end = end_of_day(start + timedelta(days=6))
    elif operator == ComparisonOperator.DATE_LAST_WEEK:
        this_week = start_of_week(now)
        start = this_week - timedelta(days=7)
        end = this_week - ONE_MS
    elif operator == ComparisonOperator.DATE_THIS_MONTH:
        start, end = start_of_month(now), end_of_month(now)
    elif operator == ComparisonOperator.DATE_LAST_MONTH:
        previous = start_of_month(now) - ONE_MS
        start, end = start_of_month(previous), end_of_month(previous)
    elif operator == ComparisonOperator.DATE_THIS_YEAR:
        start, end = start_of_year(now), end_of_year(now)
    elif operator == ComparisonOperator.DATE_LAST_YEAR:
        previous = start_of_year(now) - ONE_MS
        start, end = start_of_year(previous), end_of_year(previous)
    else:
        return None
    return DateRange(start=start, end=end)
