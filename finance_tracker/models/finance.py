"""
Core Data Models for Finance Tracker

These models describe records as the backend stores them, after the
storage mapping has translated column names (see models/mapping.py).

DESIGN DECISION: Record ids are always assigned by the backend.
A model with an id is a record the server has confirmed; drafts
(see validation/schemas.py) never carry one.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Bank account kinds accepted by the backend CHECK constraint."""
    CHECKING = "checking"
    SAVINGS = "savings"
    INVESTMENT = "investment"


class TransactionType(str, Enum):
    """
    Direction of a transaction.

    The stored amount is always a magnitude; the type carries the sign.
    """
    INCOME = "income"
    EXPENSE = "expense"


class GoalCategory(str, Enum):
    """Financial goal categories."""
    SAVINGS = "savings"
    INVESTMENT = "investment"
    PURCHASE = "purchase"
    DEBT = "debt"
    EMERGENCY = "emergency"


class BudgetPeriod(str, Enum):
    """Budget periods."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# Transaction categories offered by default. Users may type custom ones.
DEFAULT_INCOME_CATEGORIES = (
    "Salary",
    "Freelance",
    "Investments",
    "Other Income",
)
DEFAULT_EXPENSE_CATEGORIES = (
    "Food",
    "Transportation",
    "Housing",
    "Health",
    "Education",
    "Entertainment",
    "Shopping",
    "Utilities",
    "Other",
)
DEFAULT_CATEGORIES = DEFAULT_INCOME_CATEGORIES + DEFAULT_EXPENSE_CATEGORIES


# =============================================================================
# ENTITY RECORDS
# =============================================================================

class Account(BaseModel):
    """
    A bank account.

    Balance is signed: expenses may take it below zero. It moves as a
    side effect of transaction writes, or through an explicit account edit.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str
    bank: str
    type: AccountType
    balance: Decimal = Decimal("0")
    color: str
    created_at: Optional[datetime] = None


class Transaction(BaseModel):
    """A single income or expense entry on an account."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    description: str
    amount: Decimal = Field(..., ge=0, description="Unsigned magnitude")
    type: TransactionType
    category: str
    account_id: str
    date: date
    recurring: bool = False
    tags: list[str] = Field(default_factory=list)

    @property
    def signed_amount(self) -> Decimal:
        """Amount as it affects the account balance."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount

    @model_validator(mode='before')
    @classmethod
    def normalize_row(cls, data):
        """
        The backend stores an absent tag array as NULL and the date as a
        timestamp; only the calendar day is kept.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("tags") is None:
            data["tags"] = []
        raw_date = data.get("date")
        if isinstance(raw_date, datetime):
            data["date"] = raw_date.date()
        elif isinstance(raw_date, str) and "T" in raw_date:
            data["date"] = raw_date.split("T", 1)[0]
        return data


class CreditCard(BaseModel):
    """A credit card with its billing cycle days."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    name: str
    bank: str
    limit: Decimal
    current_balance: Decimal = Decimal("0")
    due_day: int = Field(..., ge=1, le=31)
    closing_day: int = Field(..., ge=1, le=31)
    color: str
    created_at: Optional[datetime] = None

    @property
    def available_credit(self) -> Decimal:
        return self.limit - self.current_balance

    @property
    def utilization(self) -> float:
        """Share of the limit in use, as a percentage."""
        if self.limit <= 0:
            return 0.0
        return float(self.current_balance / self.limit * 100)


class FinancialGoal(BaseModel):
    """A savings goal with a target and a deadline."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    title: str
    description: Optional[str] = None
    target_amount: Decimal
    current_amount: Decimal = Decimal("0")
    deadline: date
    category: GoalCategory
    color: str
    completed: bool = False
    created_at: Optional[datetime] = None

    @model_validator(mode='before')
    @classmethod
    def null_completed(cls, data):
        if isinstance(data, dict) and data.get("completed") is None:
            data = {**data, "completed": False}
        return data

    @property
    def progress(self) -> float:
        """Percentage of the target reached (not capped at 100)."""
        if self.target_amount <= 0:
            return 0.0
        return float(self.current_amount / self.target_amount * 100)

    @property
    def remaining_amount(self) -> Decimal:
        return max(self.target_amount - self.current_amount, Decimal("0"))


class Budget(BaseModel):
    """
    A spending limit for one category over a period.

    Amount spent is not stored here: it is always derived from the
    transactions (see analytics.calculations.budget_usage).
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    category: str
    limit: Decimal
    period: BudgetPeriod
    color: str
    alerts: bool = True
    created_at: Optional[datetime] = None

    @model_validator(mode='before')
    @classmethod
    def null_alerts(cls, data):
        if isinstance(data, dict) and data.get("alerts") is None:
            data = {**data, "alerts": True}
        return data


# =============================================================================
# SESSION / QUERY HELPERS
# =============================================================================

class AuthUser(BaseModel):
    """The authenticated identity all collections are scoped to."""

    id: str = Field(..., min_length=1)
    email: Optional[str] = None


class DateRange(BaseModel):
    """Inclusive calendar range."""

    start: date
    end: date

    @model_validator(mode='after')
    def validate_order(self) -> 'DateRange':
        if self.end < self.start:
            raise ValueError("Date range end cannot be before start")
        return self

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end
