"""
Tests for date and money utilities.
"""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.utils import (
    end_of_month,
    format_currency,
    format_month_label,
    format_number,
    format_percentage,
    format_relative_time,
    month_range,
    parse_date,
    shift_months,
    start_of_week,
    truncate_text,
)


class TestDates:
    """Tests for calendar helpers."""

    def test_month_bounds(self):
        """Test month ends, including leap years."""
        assert end_of_month(date(2024, 2, 10)) == date(2024, 2, 29)
        assert end_of_month(date(2026, 2, 10)) == date(2026, 2, 28)
        assert month_range(date(2026, 1, 25), 1) == (date(2025, 12, 1), date(2025, 12, 31))

    def test_shift_months_clamps_day(self):
        """Test that the day is clamped to the target month."""
        assert shift_months(date(2026, 3, 31), -1) == date(2026, 2, 28)
        assert shift_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
        assert shift_months(date(2025, 12, 15), 1) == date(2026, 1, 15)

    def test_weeks_start_on_monday(self):
        """Test week start."""
        assert start_of_week(date(2026, 1, 25)) == date(2026, 1, 19)

    def test_parse_date_formats(self):
        """Test the accepted input formats."""
        assert parse_date("2026-01-15") == date(2026, 1, 15)
        assert parse_date("15/01/2026") == date(2026, 1, 15)
        assert parse_date("2026-01-15T10:00:00Z") == date(2026, 1, 15)

    def test_parse_date_rejects_garbage(self):
        """Test unrecognized input."""
        with pytest.raises(ValueError, match="Unrecognized date"):
            parse_date("31/31/2026")


class TestFormatting:
    """Tests for display formatting."""

    def test_currency(self):
        """Test the default currency format."""
        assert format_currency(Decimal("1234.5")) == "R$ 1.234,50"
        assert format_currency(Decimal("-1234.5")) == "-R$ 1.234,50"
        assert format_currency(0) == "R$ 0,00"

    def test_number_rounding(self):
        """Test half-up rounding."""
        assert format_number(Decimal("2.005")) == "2,01"
        assert format_number(1234567, decimals=0, thousands_separator=",") == "1,234,567"

    def test_percentage_and_labels(self):
        """Test small formatters."""
        assert format_percentage(80) == "80.0%"
        assert format_month_label(date(2026, 1, 5)) == "Jan/2026"
        assert truncate_text("abcdefgh", 5) == "ab..."

    def test_relative_time(self):
        """Test relative day descriptions."""
        today = date(2026, 1, 25)
        assert format_relative_time(date(2026, 1, 25), today) == "Today"
        assert format_relative_time(date(2026, 1, 24), today) == "Yesterday"
        assert format_relative_time(date(2026, 1, 20), today) == "Tuesday"
        assert format_relative_time(date(2026, 1, 5), today) == "05 Jan"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
