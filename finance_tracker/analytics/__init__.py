"""
Aggregation Package

Stateless derivation of summary metrics from the entity collections.
"""

from finance_tracker.analytics.calculations import (
    budget_status,
    budget_usage,
    compute_metrics,
    expense_totals_by_category,
    filter_range,
    savings_rate,
)
from finance_tracker.analytics.comparison import (
    compare_periods,
    month_snapshot,
    variation,
)
from finance_tracker.analytics.timeseries import (
    build_series,
    period_bounds,
    period_label,
)

__all__ = [
    "budget_status",
    "budget_usage",
    "compute_metrics",
    "expense_totals_by_category",
    "filter_range",
    "savings_rate",
    "compare_periods",
    "month_snapshot",
    "variation",
    "build_series",
    "period_bounds",
    "period_label",
]
