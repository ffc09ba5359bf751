"""
Tests for the aggregation layer: metrics, time series and period comparison.

Everything here is pure, so tests build records directly.
"""

from datetime import date
from decimal import Decimal

import pytest

from finance_tracker.analytics import (
    budget_status,
    budget_usage,
    build_series,
    compare_periods,
    compute_metrics,
    period_label,
    savings_rate,
    variation,
)
from finance_tracker.models.finance import (
    Account,
    Budget,
    DateRange,
    Transaction,
)
from finance_tracker.models.metrics import BudgetStatus, SeriesGranularity


TODAY = date(2026, 1, 25)
_ids = iter(range(1, 10_000))


def txn(day, amount, type="expense", category="Food", account_id="A"):
    return Transaction(
        id=str(next(_ids)),
        description="entry",
        amount=Decimal(amount),
        type=type,
        category=category,
        account_id=account_id,
        date=day,
    )


def account(account_id, balance):
    return Account(id=account_id, name=account_id, bank="Bank", type="checking",
                   balance=Decimal(balance), color="#000")


def budget(category, limit, period="monthly", budget_id="b1"):
    return Budget(id=budget_id, category=category, limit=Decimal(limit),
                  period=period, color="#000")


class TestMetrics:
    """Tests for compute_metrics."""

    def test_monthly_figures_and_savings_rate(self):
        """Test the January example: 1000 in, 200 out."""
        transactions = [
            txn(date(2026, 1, 5), "1000", type="income", category="Salary"),
            txn(date(2026, 1, 20), "200"),
        ]
        metrics = compute_metrics(transactions, [], today=TODAY)

        assert metrics.monthly_income == Decimal("1000")
        assert metrics.monthly_expenses == Decimal("200")
        assert metrics.monthly_savings == Decimal("800")
        assert metrics.savings_rate == 80.0

    def test_month_bounds_are_inclusive(self):
        """Test entries on the first and last day of the month."""
        transactions = [
            txn(date(2026, 1, 1), "10"),
            txn(date(2026, 1, 31), "20"),
            txn(date(2025, 12, 31), "40"),
            txn(date(2026, 2, 1), "80"),
        ]
        metrics = compute_metrics(transactions, [], today=TODAY)
        assert metrics.monthly_expenses == Decimal("30")
        assert metrics.yearly_expenses == Decimal("110")

    def test_no_income_means_zero_rate(self):
        """Test that the savings rate is defined without income."""
        metrics = compute_metrics([txn(TODAY, "50")], [], today=TODAY)
        assert metrics.savings_rate == 0.0
        assert savings_rate(Decimal("0"), Decimal("0")) == 0.0

    def test_total_balance_sums_accounts(self):
        """Test that the balance comes from accounts, not transactions."""
        metrics = compute_metrics([], [account("A", "100"), account("B", "-30.50")], today=TODAY)
        assert metrics.total_balance == Decimal("69.50")

    def test_category_percentages(self):
        """Test expense breakdown and ranking."""
        transactions = [
            txn(TODAY, "75", category="Food"),
            txn(TODAY, "25", category="Transportation"),
            txn(TODAY, "500", type="income", category="Salary"),
        ]
        metrics = compute_metrics(transactions, [], today=TODAY)

        assert metrics.category_totals == {"Food": Decimal("75"), "Transportation": Decimal("25")}
        assert metrics.category_percentages["Food"] == 75.0
        assert [share.key for share in metrics.top_categories] == ["Food", "Transportation"]

    def test_account_totals(self):
        """Test per-account activity in both directions."""
        transactions = [
            txn(TODAY, "100", type="income", account_id="A"),
            txn(TODAY, "50", account_id="A"),
            txn(TODAY, "50", account_id="B"),
        ]
        metrics = compute_metrics(transactions, [], today=TODAY, top_size=1)
        assert metrics.account_totals == {"A": Decimal("150"), "B": Decimal("50")}
        assert [share.key for share in metrics.top_accounts] == ["A"]

    def test_date_range_filters_everything(self):
        """Test that a range applies before any figure is computed."""
        transactions = [
            txn(date(2026, 1, 5), "10"),
            txn(date(2026, 1, 15), "20"),
        ]
        metrics = compute_metrics(
            transactions, [],
            date_range=DateRange(start=date(2026, 1, 10), end=date(2026, 1, 31)),
            today=TODAY,
        )
        assert metrics.transaction_count == 1
        assert metrics.total_expenses == Decimal("20")
        assert metrics.monthly_expenses == Decimal("20")

    def test_average_transaction_is_rounded(self):
        """Test the average amount."""
        transactions = [txn(TODAY, "10"), txn(TODAY, "10"), txn(TODAY, "10.01")]
        metrics = compute_metrics(transactions, [], today=TODAY)
        assert metrics.average_transaction == Decimal("10.00")

    def test_empty_inputs(self):
        """Test that nothing divides by zero."""
        metrics = compute_metrics([], [], today=TODAY)
        assert metrics.transaction_count == 0
        assert metrics.average_transaction == Decimal("0")
        assert metrics.category_percentages == {}


class TestBudgets:
    """Tests for derived budget spending."""

    def test_status_states(self):
        """Test that exactly the limit is its own state."""
        assert budget_status(Decimal("99.99"), Decimal("100")) == BudgetStatus.UNDER
        assert budget_status(Decimal("100"), Decimal("100")) == BudgetStatus.AT
        assert budget_status(Decimal("100.01"), Decimal("100")) == BudgetStatus.OVER

    def test_spent_is_derived_from_transactions(self):
        """Test category matching and the budget window."""
        transactions = [
            txn(date(2026, 1, 3), "60", category="food"),
            txn(date(2026, 1, 20), "40", category="Food"),
            txn(date(2025, 12, 28), "500", category="Food"),
            txn(date(2026, 1, 20), "999", category="Health"),
            txn(date(2026, 1, 20), "70", type="income", category="Food"),
        ]
        usage, = budget_usage([budget("Food", "100")], transactions, today=TODAY)

        assert usage.spent == Decimal("100")
        assert usage.remaining == Decimal("0")
        assert usage.utilization == 100.0
        assert usage.status == BudgetStatus.AT

    def test_weekly_window(self):
        """Test that a weekly budget only counts the current week."""
        transactions = [
            txn(date(2026, 1, 19), "30"),  # Monday of TODAY's week
            txn(date(2026, 1, 18), "30"),  # previous Sunday
        ]
        usage, = budget_usage([budget("Food", "20", period="weekly")], transactions, today=TODAY)
        assert usage.spent == Decimal("30")
        assert usage.status == BudgetStatus.OVER

    def test_metrics_expose_utilization(self):
        """Test the per-budget views on the metrics object."""
        metrics = compute_metrics(
            [txn(TODAY, "25")], [], budgets=[budget("Food", "100")], today=TODAY
        )
        assert metrics.budget_utilization == {"b1": 25.0}
        assert metrics.budget_status == {"b1": BudgetStatus.UNDER}


class TestTimeSeries:
    """Tests for calendar bucketing."""

    def test_monthly_series_zero_fills(self):
        """Test that empty months still appear."""
        transactions = [
            txn(date(2026, 1, 10), "100", type="income"),
            txn(date(2025, 11, 2), "40"),
        ]
        points = build_series(transactions, SeriesGranularity.MONTH, TODAY, periods=3)

        assert [p.label for p in points] == ["Nov/2025", "Dec/2025", "Jan/2026"]
        assert points[0].expenses == Decimal("40")
        assert points[0].savings == Decimal("-40")
        assert (points[1].income, points[1].expenses, points[1].savings) == (0, 0, 0)
        assert points[2].income == Decimal("100")

    def test_weekly_series_uses_iso_weeks(self):
        """Test week boundaries and labels."""
        points = build_series([], SeriesGranularity.WEEK, TODAY, periods=2)
        assert [(p.start, p.end) for p in points] == [
            (date(2026, 1, 12), date(2026, 1, 18)),
            (date(2026, 1, 19), date(2026, 1, 25)),
        ]
        assert points[-1].label == "W04/2026"

    def test_yearly_series(self):
        """Test year buckets and entries outside the window."""
        transactions = [txn(date(2024, 6, 1), "10"), txn(date(2020, 1, 1), "999")]
        points = build_series(transactions, SeriesGranularity.YEAR, TODAY, periods=3)
        assert [p.label for p in points] == ["2024", "2025", "2026"]
        assert points[0].expenses == Decimal("10")

    def test_labels(self):
        """Test label formats."""
        assert period_label(SeriesGranularity.MONTH, date(2026, 3, 1)) == "Mar/2026"
        assert period_label(SeriesGranularity.YEAR, date(2026, 1, 1)) == "2026"


class TestPeriodComparison:
    """Tests for month-over-month comparison."""

    def test_variations(self):
        """Test income/expense variation and category ordering."""
        transactions = [
            txn(date(2025, 12, 5), "1000", type="income"),
            txn(date(2025, 12, 10), "200", category="Food"),
            txn(date(2026, 1, 5), "1100", type="income"),
            txn(date(2026, 1, 10), "300", category="Food"),
            txn(date(2026, 1, 12), "50", category="Health"),
        ]
        comparison = compare_periods(transactions, today=TODAY)

        assert comparison.current.label == "Jan/2026"
        assert comparison.previous.label == "Dec/2025"
        assert comparison.income_variation == pytest.approx(10.0)
        assert comparison.expense_variation == pytest.approx(75.0)
        assert [c.category for c in comparison.categories] == ["Food", "Health"]
        assert comparison.categories[1].variation == 0.0

    def test_variation_against_negative_base(self):
        """Test that a smaller deficit reads as an improvement."""
        assert variation(Decimal("-50"), Decimal("-100")) == 50.0
        assert variation(Decimal("10"), Decimal("0")) == 0.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
