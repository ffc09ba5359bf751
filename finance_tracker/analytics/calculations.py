"""
Financial Calculations

DESIGN DECISION: Metrics are a PURE function of the collections.
Nothing here talks to the backend or keeps state; everything is
recomputed from scratch whenever an input changes. That is fine for
personal ledgers (hundreds to low thousands of entries).

Calendar rules:
- "monthly" and "yearly" figures use the month/year containing the
  reference day, bounds inclusive on both ends
- the optional date range filters the transactions before anything else
- savings rate is (income - expenses) / income * 100, and exactly 0
  when there is no income
"""

from collections import defaultdict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from finance_tracker.analytics.timeseries import build_series, sum_by_type
from finance_tracker.models.finance import (
    Account,
    Budget,
    BudgetPeriod,
    DateRange,
    Transaction,
    TransactionType,
)
from finance_tracker.models.metrics import (
    BudgetStatus,
    BudgetUsage,
    FinancialMetrics,
    RankedShare,
    SeriesGranularity,
)
from finance_tracker.utils.dates import (
    end_of_month,
    end_of_week,
    end_of_year,
    start_of_month,
    start_of_week,
    start_of_year,
)


ZERO = Decimal("0")
CENT = Decimal("0.01")


def savings_rate(income: Decimal, expenses: Decimal) -> float:
    """Percentage of income kept. 0 when income is 0."""
    if income <= 0:
        return 0.0
    return float((income - expenses) / income * 100)


def percentage(part: Decimal, total: Decimal) -> float:
    if total <= 0:
        return 0.0
    return float(part / total * 100)


def budget_status(spent: Decimal, limit: Decimal) -> BudgetStatus:
    """AT exactly when spent equals the limit."""
    if spent < limit:
        return BudgetStatus.UNDER
    if spent == limit:
        return BudgetStatus.AT
    return BudgetStatus.OVER


def filter_range(
    transactions: Iterable[Transaction],
    date_range: Optional[DateRange],
) -> list[Transaction]:
    if date_range is None:
        return list(transactions)
    return [t for t in transactions if date_range.contains(t.date)]


def between(transactions: Iterable[Transaction], start: date, end: date) -> list[Transaction]:
    return [t for t in transactions if start <= t.date <= end]


def budget_window(period: BudgetPeriod, today: date) -> tuple[date, date]:
    """The week/month/year containing today."""
    if period == BudgetPeriod.WEEKLY:
        return start_of_week(today), end_of_week(today)
    if period == BudgetPeriod.YEARLY:
        return start_of_year(today), end_of_year(today)
    return start_of_month(today), end_of_month(today)


def expense_totals_by_category(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for transaction in transactions:
        if transaction.type == TransactionType.EXPENSE:
            totals[transaction.category] += transaction.amount
    return dict(totals)


def budget_usage(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> list[BudgetUsage]:
    """
    Derive spending per budget.

    Spent = expenses in the budget's category (case-insensitive) within
    the budget period containing today.
    """
    today = today or date.today()
    transactions = list(transactions)
    usages = []
    for budget in budgets:
        start, end = budget_window(budget.period, today)
        category = budget.category.casefold()
        spent = sum(
            (
                t.amount for t in between(transactions, start, end)
                if t.type == TransactionType.EXPENSE and t.category.casefold() == category
            ),
            ZERO,
        )
        usages.append(
            BudgetUsage(
                budget_id=budget.id,
                category=budget.category,
                limit=budget.limit,
                spent=spent,
                remaining=budget.limit - spent,
                utilization=percentage(spent, budget.limit),
                status=budget_status(spent, budget.limit),
            )
        )
    return usages


def _ranking(totals: dict[str, Decimal], shares: dict[str, float], size: int) -> list[RankedShare]:
    ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [
        RankedShare(key=key, amount=amount, percentage=shares[key])
        for key, amount in ordered[:size]
    ]


def compute_metrics(
    transactions: Iterable[Transaction],
    accounts: Iterable[Account],
    budgets: Iterable[Budget] = (),
    date_range: Optional[DateRange] = None,
    today: Optional[date] = None,
    top_size: int = 5,
    series_weeks: int = 12,
    series_months: int = 12,
    series_years: int = 5,
) -> FinancialMetrics:
    """
    Compute every derived figure shown on the dashboard.

    Args:
        transactions: All transactions of the user
        accounts: All accounts of the user
        budgets: All budgets of the user
        date_range: Restrict transactions to this inclusive range
        today: Reference day for monthly/yearly figures and series
        top_size: Entries kept in the top category/account rankings
        series_weeks / series_months / series_years: Series lengths

    Returns:
        FinancialMetrics
    """
    today = today or date.today()
    selected = filter_range(transactions, date_range)
    accounts = list(accounts)

    income, expenses = sum_by_type(selected)

    monthly_income, monthly_expenses = sum_by_type(
        between(selected, start_of_month(today), end_of_month(today))
    )
    yearly_income, yearly_expenses = sum_by_type(
        between(selected, start_of_year(today), end_of_year(today))
    )

    count = len(selected)
    average = (
        (sum((t.amount for t in selected), ZERO) / count).quantize(CENT, rounding=ROUND_HALF_UP)
        if count else ZERO
    )

    # Categories: expenses only
    category_totals = expense_totals_by_category(selected)
    category_sum = sum(category_totals.values(), ZERO)
    category_percentages = {
        category: percentage(amount, category_sum)
        for category, amount in category_totals.items()
    }

    # Accounts: activity in both directions
    account_totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for transaction in selected:
        account_totals[transaction.account_id] += transaction.amount
    account_totals = dict(account_totals)
    activity_sum = sum(account_totals.values(), ZERO)
    account_percentages = {
        account_id: percentage(amount, activity_sum)
        for account_id, amount in account_totals.items()
    }

    return FinancialMetrics(
        total_balance=sum((account.balance for account in accounts), ZERO),
        total_income=income,
        total_expenses=expenses,
        total_savings=income - expenses,
        savings_rate=savings_rate(income, expenses),
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        monthly_savings=monthly_income - monthly_expenses,
        yearly_income=yearly_income,
        yearly_expenses=yearly_expenses,
        yearly_savings=yearly_income - yearly_expenses,
        average_transaction=average,
        transaction_count=count,
        income_transaction_count=sum(1 for t in selected if t.type == TransactionType.INCOME),
        expense_transaction_count=sum(1 for t in selected if t.type == TransactionType.EXPENSE),
        category_totals=category_totals,
        category_percentages=category_percentages,
        top_categories=_ranking(category_totals, category_percentages, top_size),
        account_totals=account_totals,
        account_percentages=account_percentages,
        top_accounts=_ranking(account_totals, account_percentages, top_size),
        weekly_data=build_series(selected, SeriesGranularity.WEEK, today, series_weeks),
        monthly_data=build_series(selected, SeriesGranularity.MONTH, today, series_months),
        yearly_data=build_series(selected, SeriesGranularity.YEAR, today, series_years),
        budget_usage=budget_usage(budgets, selected, today),
    )
