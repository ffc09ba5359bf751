"""
Time Series Bucketing

Walks calendar boundaries backward from the period containing the
reference day and emits one point per period, oldest first. Periods
without transactions still appear, with zeros.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from finance_tracker.models.finance import Transaction, TransactionType
from finance_tracker.models.metrics import PeriodPoint, SeriesGranularity
from finance_tracker.utils.dates import (
    end_of_month,
    end_of_week,
    end_of_year,
    shift_months,
    start_of_month,
    start_of_week,
    start_of_year,
)
from finance_tracker.utils.formatting import format_month_label


def period_bounds(granularity: SeriesGranularity, day: date) -> tuple[date, date]:
    """Inclusive bounds of the period containing `day`."""
    if granularity == SeriesGranularity.WEEK:
        return start_of_week(day), end_of_week(day)
    if granularity == SeriesGranularity.MONTH:
        return start_of_month(day), end_of_month(day)
    return start_of_year(day), end_of_year(day)


def previous_period_start(granularity: SeriesGranularity, start: date) -> date:
    if granularity == SeriesGranularity.WEEK:
        return start - timedelta(days=7)
    if granularity == SeriesGranularity.MONTH:
        return shift_months(start, -1)
    return date(start.year - 1, 1, 1)


def period_label(granularity: SeriesGranularity, start: date) -> str:
    """'W05/2026' (ISO week), 'Jan/2026' or '2026'."""
    if granularity == SeriesGranularity.WEEK:
        iso_year, iso_week, _ = start.isocalendar()
        return f"W{iso_week:02d}/{iso_year}"
    if granularity == SeriesGranularity.MONTH:
        return format_month_label(start)
    return str(start.year)


def build_series(
    transactions: Iterable[Transaction],
    granularity: SeriesGranularity,
    today: Optional[date] = None,
    periods: int = 12,
) -> list[PeriodPoint]:
    """
    Income/expenses/savings per calendar period.

    Args:
        transactions: Source entries (already range-filtered if needed)
        granularity: Week, month or year buckets
        today: Reference day; the last point is its period
        periods: Number of points

    Returns:
        `periods` points, oldest first
    """
    today = today or date.today()
    granularity = SeriesGranularity(granularity)
    if periods < 1:
        return []

    starts = []
    start, _ = period_bounds(granularity, today)
    for _ in range(periods):
        starts.append(start)
        start = previous_period_start(granularity, start)
    starts.reverse()

    points = [
        PeriodPoint(
            label=period_label(granularity, start),
            start=start,
            end=period_bounds(granularity, start)[1],
        )
        for start in starts
    ]
    first_day, last_day = points[0].start, points[-1].end

    by_start = {point.start: point for point in points}
    for transaction in transactions:
        if not first_day <= transaction.date <= last_day:
            continue
        point = by_start[period_bounds(granularity, transaction.date)[0]]
        if transaction.type == TransactionType.INCOME:
            point.income += transaction.amount
        else:
            point.expenses += transaction.amount

    for point in points:
        point.savings = point.income - point.expenses
    return points


def sum_by_type(transactions: Iterable[Transaction]) -> tuple[Decimal, Decimal]:
    """(income, expenses) of the given entries."""
    income = Decimal("0")
    expenses = Decimal("0")
    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            income += transaction.amount
        else:
            expenses += transaction.amount
    return income, expenses
