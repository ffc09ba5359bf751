"""
Aggregation Result Models

Everything here is derived from the entity collections on demand.
None of these models is ever persisted.
"""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field


class BudgetStatus(str, Enum):
    """
    Budget utilization state.

    AT is its own state: spending exactly the limit is neither under nor over.
    """
    UNDER = "under"
    AT = "at"
    OVER = "over"


class SeriesGranularity(str, Enum):
    """Calendar bucket size for time series."""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class RankedShare(BaseModel):
    """One entry of a top-N ranking (category or account)."""

    key: str
    amount: Decimal
    percentage: float


class PeriodPoint(BaseModel):
    """Totals for one calendar bucket. Empty buckets carry zeros."""

    label: str
    start: date
    end: date
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    savings: Decimal = Decimal("0")


class BudgetUsage(BaseModel):
    """Derived spending for one budget."""

    budget_id: str
    category: str
    limit: Decimal
    spent: Decimal
    remaining: Decimal
    utilization: float = Field(..., description="Spent as a percentage of the limit")
    status: BudgetStatus


class FinancialMetrics(BaseModel):
    """
    Summary of the collections, optionally restricted to a date range.

    Monthly and yearly figures refer to the calendar month/year containing
    the reference day; totals refer to the whole (range-filtered) set.
    """

    total_balance: Decimal

    total_income: Decimal
    total_expenses: Decimal
    total_savings: Decimal
    savings_rate: float

    monthly_income: Decimal
    monthly_expenses: Decimal
    monthly_savings: Decimal
    yearly_income: Decimal
    yearly_expenses: Decimal
    yearly_savings: Decimal

    average_transaction: Decimal
    transaction_count: int
    income_transaction_count: int
    expense_transaction_count: int

    category_totals: dict[str, Decimal] = Field(default_factory=dict)
    category_percentages: dict[str, float] = Field(default_factory=dict)
    top_categories: list[RankedShare] = Field(default_factory=list)

    account_totals: dict[str, Decimal] = Field(default_factory=dict)
    account_percentages: dict[str, float] = Field(default_factory=dict)
    top_accounts: list[RankedShare] = Field(default_factory=list)

    weekly_data: list[PeriodPoint] = Field(default_factory=list)
    monthly_data: list[PeriodPoint] = Field(default_factory=list)
    yearly_data: list[PeriodPoint] = Field(default_factory=list)

    budget_usage: list[BudgetUsage] = Field(default_factory=list)

    @property
    def budget_utilization(self) -> dict[str, float]:
        return {usage.budget_id: usage.utilization for usage in self.budget_usage}

    @property
    def budget_status(self) -> dict[str, BudgetStatus]:
        return {usage.budget_id: usage.status for usage in self.budget_usage}


class PeriodSnapshot(BaseModel):
    """Totals for one calendar month, used by period comparison."""

    label: str
    start: date
    end: date
    income: Decimal
    expenses: Decimal
    balance: Decimal
    by_category: dict[str, Decimal] = Field(default_factory=dict)
    transaction_count: int = 0


class CategoryComparison(BaseModel):
    category: str
    current: Decimal
    previous: Decimal
    variation: float


class PeriodComparison(BaseModel):
    """Month-against-month comparison."""

    current: PeriodSnapshot
    previous: PeriodSnapshot
    income_variation: float
    expense_variation: float
    balance_variation: float
    categories: list[CategoryComparison] = Field(default_factory=list)
