"""
Period Comparison

Compares two calendar months, each given as "months ago" relative to
the reference day (0 = current month, 1 = last month, ...).
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from finance_tracker.analytics.calculations import between, expense_totals_by_category
from finance_tracker.analytics.timeseries import sum_by_type
from finance_tracker.models.finance import Transaction
from finance_tracker.models.metrics import (
    CategoryComparison,
    PeriodComparison,
    PeriodSnapshot,
)
from finance_tracker.utils.dates import month_range
from finance_tracker.utils.formatting import format_month_label


def variation(current: Decimal, previous: Decimal) -> float:
    """
    Relative change in percent. 0 when there is nothing to compare to.

    Measured against |previous| so a smaller loss reads as an improvement.
    """
    if previous == 0:
        return 0.0
    return float((current - previous) / abs(previous) * 100)


def month_snapshot(
    transactions: Iterable[Transaction],
    months_ago: int,
    today: Optional[date] = None,
) -> PeriodSnapshot:
    start, end = month_range(today, months_ago)
    selected = between(transactions, start, end)
    income, expenses = sum_by_type(selected)
    return PeriodSnapshot(
        label=format_month_label(start),
        start=start,
        end=end,
        income=income,
        expenses=expenses,
        balance=income - expenses,
        by_category=expense_totals_by_category(selected),
        transaction_count=len(selected),
    )


def compare_periods(
    transactions: Iterable[Transaction],
    current_months_ago: int = 0,
    previous_months_ago: int = 1,
    today: Optional[date] = None,
) -> PeriodComparison:
    """
    Compare income, expenses, balance and per-category spending of two months.

    Categories are listed by current spending, largest first.
    """
    transactions = list(transactions)
    current = month_snapshot(transactions, current_months_ago, today)
    previous = month_snapshot(transactions, previous_months_ago, today)

    categories = []
    for category in set(current.by_category) | set(previous.by_category):
        now = current.by_category.get(category, Decimal("0"))
        before = previous.by_category.get(category, Decimal("0"))
        categories.append(
            CategoryComparison(
                category=category,
                current=now,
                previous=before,
                variation=variation(now, before),
            )
        )
    categories.sort(key=lambda item: (-item.current, item.category))

    return PeriodComparison(
        current=current,
        previous=previous,
        income_variation=variation(current.income, previous.income),
        expense_variation=variation(current.expenses, previous.expenses),
        balance_variation=variation(current.balance, previous.balance),
        categories=categories,
    )
