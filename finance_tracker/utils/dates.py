"""
Calendar Helpers

Pure boundary functions. Weeks run Monday to Sunday.
All functions take the reference day explicitly (defaulting to today)
so aggregation stays deterministic under test.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Optional, Union


DATE_INPUT_FORMATS = (
    "%Y-%m-%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
    "%d.%m.%Y",
)


def _today(value: Optional[date]) -> date:
    return value if value is not None else date.today()


def start_of_week(value: Optional[date] = None) -> date:
    value = _today(value)
    return value - timedelta(days=value.weekday())


def end_of_week(value: Optional[date] = None) -> date:
    return start_of_week(value) + timedelta(days=6)


def start_of_month(value: Optional[date] = None) -> date:
    return _today(value).replace(day=1)


def end_of_month(value: Optional[date] = None) -> date:
    value = _today(value)
    return value.replace(day=calendar.monthrange(value.year, value.month)[1])


def start_of_year(value: Optional[date] = None) -> date:
    return date(_today(value).year, 1, 1)


def end_of_year(value: Optional[date] = None) -> date:
    return date(_today(value).year, 12, 31)


def shift_months(value: date, months: int) -> date:
    """
    Move by whole months, clamping the day to the target month's length.

    shift_months(date(2026, 3, 31), -1) -> date(2026, 2, 28)
    """
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def month_range(today: Optional[date] = None, months_ago: int = 0) -> tuple[date, date]:
    """First and last day of the month `months_ago` months before today."""
    anchor = shift_months(start_of_month(today), -months_ago)
    return anchor, end_of_month(anchor)


def parse_date(value: Union[str, date, datetime]) -> date:
    """
    Parse a date from the formats users and bank statements commonly use.

    Raises:
        ValueError: if no known format matches
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if "T" in text:
        text = text.split("T", 1)[0]
    for fmt in DATE_INPUT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date: {value!r}")


def is_valid_date(value: str) -> bool:
    try:
        parse_date(value)
    except ValueError:
        return False
    return True
