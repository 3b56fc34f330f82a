# ==============================================================================
# DATE UTILITY TESTS
# ==============================================================================

from datetime import date, datetime, timedelta, timezone

import pytest

from catalog_backend.filters.dates import (
    day_bounds,
    end_of_month,
    looks_like_date,
    parse_date,
    relative_range,
    start_of_week,
)
from catalog_backend.filters.models import ComparisonOperator


class TestParseDate:
    """Tests for accepted date layouts."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("2023-01-15", datetime(2023, 1, 15)),
            ("2023-01-15T10:30:00", datetime(2023, 1, 15, 10, 30)),
            ("15.01.2023", datetime(2023, 1, 15)),
            ("01/15/2023", datetime(2023, 1, 15)),
            (date(2023, 1, 15), datetime(2023, 1, 15)),
        ],
    )
    def test_layouts(self, raw, expected):
        assert parse_date(raw) == expected

    def test_trailing_z_is_utc(self):
        """Test Z suffix parses as an aware UTC datetime."""
        parsed = parse_date("2023-01-15T10:30:00Z")

        assert parsed.tzinfo is not None
        assert parsed.utcoffset() == timedelta(0)
        assert parsed == datetime(2023, 1, 15, 10, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw", ["", "soon", "31.02.2023", "2023-13-01", None, 42])
    def test_invalid(self, raw):
        """Test unparseable values give None."""
        assert parse_date(raw) is None

    def test_looks_like_date(self):
        assert looks_like_date("2023-01-15")
        assert not looks_like_date("phone")


class TestCalendarBounds:
    """Tests for day, week and month boundaries."""

    def test_day_bounds(self):
        start, end = day_bounds(datetime(2023, 5, 2, 17, 45))

        assert start == datetime(2023, 5, 2)
        assert end == datetime(2023, 5, 2, 23, 59, 59, 999000)

    def test_week_starts_on_monday(self):
        assert start_of_week(datetime(2024, 3, 17, 9)) == datetime(2024, 3, 11)

    def test_end_of_december(self):
        assert end_of_month(datetime(2023, 12, 5)) == datetime(2023, 12, 31, 23, 59, 59, 999000)

    def test_last_month_across_year_boundary(self):
        """Test January's previous month is last year's December."""
        window = relative_range(ComparisonOperator.DATE_LAST_MONTH, datetime(2024, 1, 10))

        assert window.start == datetime(2023, 12, 1)
        assert window.end == datetime(2023, 12, 31, 23, 59, 59, 999000)

    def test_non_relative_operator(self):
        assert relative_range(ComparisonOperator.EQ, datetime(2024, 1, 10)) is None
