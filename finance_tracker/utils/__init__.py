"""Money and date utilities."""

from finance_tracker.utils.dates import (
    end_of_month,
    end_of_week,
    end_of_year,
    is_valid_date,
    month_range,
    parse_date,
    shift_months,
    start_of_month,
    start_of_week,
    start_of_year,
)
from finance_tracker.utils.formatting import (
    format_currency,
    format_date,
    format_datetime,
    format_month_label,
    format_number,
    format_percentage,
    format_relative_time,
    truncate_text,
)

__all__ = [
    "end_of_month",
    "end_of_week",
    "end_of_year",
    "is_valid_date",
    "month_range",
    "parse_date",
    "shift_months",
    "start_of_month",
    "start_of_week",
    "start_of_year",
    "format_currency",
    "format_date",
    "format_datetime",
    "format_month_label",
    "format_number",
    "format_percentage",
    "format_relative_time",
    "truncate_text",
]
