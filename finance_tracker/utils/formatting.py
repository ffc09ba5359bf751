"""
Display Formatting

Money and date formatting for notifications, reports and reminders.
Separators and the currency symbol come from AppSettings.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from finance_tracker.config import get_settings
from finance_tracker.utils.dates import start_of_week


Number = Union[Decimal, int, float]

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
WEEKDAY_NAMES = (
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday",
)


def format_number(
    value: Number,
    decimals: int = 2,
    thousands_separator: Optional[str] = None,
    decimal_separator: Optional[str] = None,
) -> str:
    """Group digits and round half-up to a fixed number of decimals."""
    settings = get_settings().app
    if thousands_separator is None:
        thousands_separator = settings.thousands_separator
    if decimal_separator is None:
        decimal_separator = settings.decimal_separator

    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    text = f"{abs(rounded):,.{decimals}f}"
    text = (
        text.replace(",", "\0")
        .replace(".", decimal_separator)
        .replace("\0", thousands_separator)
    )
    return f"-{text}" if rounded < 0 else text


def format_currency(amount: Number, symbol: Optional[str] = None) -> str:
    """
    Format money for display.

    format_currency(Decimal("-1234.5")) -> "-R$ 1.234,50" with default settings.
    """
    if symbol is None:
        symbol = get_settings().app.currency_symbol
    text = format_number(amount, decimals=2)
    if text.startswith("-"):
        return f"-{symbol} {text[1:]}"
    return f"{symbol} {text}"


def format_percentage(value: Number, decimals: int = 1) -> str:
    return f"{float(value):.{decimals}f}%"


def format_date(value: Union[date, datetime]) -> str:
    return value.strftime(get_settings().app.date_format)


def format_datetime(value: datetime) -> str:
    return value.strftime(f"{get_settings().app.date_format} %H:%M")


def format_month_label(value: date) -> str:
    """Short month label, e.g. 'Jan/2026'."""
    return f"{MONTH_ABBREVIATIONS[value.month - 1]}/{value.year}"


def format_relative_time(value: Union[date, datetime], today: Optional[date] = None) -> str:
    """
    Describe a date relative to today.

    Today / Yesterday / weekday name within this week / 'dd Mon' within this
    month / 'dd/mm' within this year / full date otherwise.
    """
    today = today or date.today()
    day = value.date() if isinstance(value, datetime) else value

    delta = (today - day).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Yesterday"
    if start_of_week(day) == start_of_week(today):
        return WEEKDAY_NAMES[day.weekday()]
    if (day.year, day.month) == (today.year, today.month):
        return f"{day.day:02d} {MONTH_ABBREVIATIONS[day.month - 1]}"
    if day.year == today.year:
        return f"{day.day:02d}/{day.month:02d}"
    return format_date(day)


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max(max_length - 3, 0)] + "..."
