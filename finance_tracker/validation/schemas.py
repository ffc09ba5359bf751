"""
Input Validation Schemas

DESIGN DECISION: Every user input is checked client-side BEFORE it is sent.
Each entity kind has a draft schema (create) and an update schema (partial
edit, every field optional). The backend re-validates through its column
constraints, but the user gets field-level messages from here first.

A failed validation never produces a single opaque message: it produces a
mapping of field path -> message so every bad field can be pointed at.

IMPORTANT: Validation NEVER silently fixes values beyond whitespace stripping.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, ClassVar, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from finance_tracker.models.finance import (
    AccountType,
    BudgetPeriod,
    GoalCategory,
    TransactionType,
)


# Amounts and limits must exceed this
MIN_AMOUNT = Decimal("0.01")

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class ValidationError(ValueError):
    """
    Input rejected before submission.

    Attributes:
        errors: field path -> human-readable message
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        summary = "; ".join(f"{field}: {message}" for field, message in errors.items())
        super().__init__(f"Invalid input - {summary}")


class _Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(_Schema):
    """A new transaction as entered by the user."""

    description: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=MIN_AMOUNT, decimal_places=2)
    type: TransactionType
    category: str = Field(..., min_length=1, max_length=100)
    account_id: str = Field(..., min_length=1)
    date: dt.date
    recurring: bool = False
    tags: list[str] = Field(default_factory=list)


class TransactionUpdate(_Schema):
    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[Decimal] = Field(default=None, ge=MIN_AMOUNT, decimal_places=2)
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    account_id: Optional[str] = Field(default=None, min_length=1)
    date: Optional[dt.date] = None
    recurring: Optional[bool] = None
    tags: Optional[list[str]] = None


# =============================================================================
# ACCOUNTS
# =============================================================================

class AccountDraft(_Schema):
    """A new bank account. The opening balance cannot be negative."""

    name: str = Field(..., min_length=1, max_length=100)
    bank: str = Field(..., min_length=1, max_length=50)
    type: AccountType
    balance: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    color: str = Field(..., min_length=1)


class AccountUpdate(_Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    bank: Optional[str] = Field(default=None, min_length=1, max_length=50)
    type: Optional[AccountType] = None
    balance: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    color: Optional[str] = Field(default=None, min_length=1)


# =============================================================================
# CREDIT CARDS
# =============================================================================

class CreditCardDraft(_Schema):
    name: str = Field(..., min_length=1, max_length=100)
    bank: str = Field(..., min_length=1, max_length=50)
    limit: Decimal = Field(..., ge=MIN_AMOUNT, decimal_places=2)
    current_balance: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    due_day: int = Field(..., ge=1, le=31)
    closing_day: int = Field(..., ge=1, le=31)
    color: str = Field(..., min_length=1)


class CreditCardUpdate(_Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    bank: Optional[str] = Field(default=None, min_length=1, max_length=50)
    limit: Optional[Decimal] = Field(default=None, ge=MIN_AMOUNT, decimal_places=2)
    current_balance: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)
    closing_day: Optional[int] = Field(default=None, ge=1, le=31)
    color: Optional[str] = Field(default=None, min_length=1)


# =============================================================================
# GOALS
# =============================================================================

class GoalDraft(_Schema):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    target_amount: Decimal = Field(..., ge=MIN_AMOUNT, decimal_places=2)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    deadline: dt.date
    category: GoalCategory
    color: str = Field(..., min_length=1)
    completed: bool = False


class GoalUpdate(_Schema):
    NULLABLE: ClassVar[frozenset[str]] = frozenset({"description"})

    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    target_amount: Optional[Decimal] = Field(default=None, ge=MIN_AMOUNT, decimal_places=2)
    current_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    deadline: Optional[dt.date] = None
    category: Optional[GoalCategory] = None
    color: Optional[str] = Field(default=None, min_length=1)
    completed: Optional[bool] = None


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetDraft(_Schema):
    category: str = Field(..., min_length=1, max_length=100)
    limit: Decimal = Field(..., ge=MIN_AMOUNT, decimal_places=2)
    period: BudgetPeriod
    color: str = Field(..., min_length=1)
    alerts: bool = True


class BudgetUpdate(_Schema):
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    limit: Optional[Decimal] = Field(default=None, ge=MIN_AMOUNT, decimal_places=2)
    period: Optional[BudgetPeriod] = None
    color: Optional[str] = Field(default=None, min_length=1)
    alerts: Optional[bool] = None


# =============================================================================
# HELPERS
# =============================================================================

def error_mapping(exc: PydanticValidationError) -> dict[str, str]:
    """
    Flatten pydantic errors into field path -> message.

    The first message wins when one field fails several constraints.
    """
    errors: dict[str, str] = {}
    for issue in exc.errors():
        path = ".".join(str(part) for part in issue["loc"]) or "__root__"
        errors.setdefault(path, issue["msg"])
    return errors


def validate_draft(schema: type[SchemaT], data: Any) -> SchemaT:
    """
    Validate user input against a schema.

    Args:
        schema: Draft or update schema class
        data: A dict of raw input, or an already-built schema instance

    Returns:
        The validated schema instance

    Raises:
        ValidationError: with a field path -> message mapping
    """
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(error_mapping(e)) from e


def validate_update(schema: type[SchemaT], data: Any) -> SchemaT:
    """
    Validate a partial update.

    Explicit nulls are rejected: a partial may omit a field but
    not clear a required one.
    """
    changes = validate_draft(schema, data)
    nullable = getattr(schema, "NULLABLE", frozenset())
    nulls = {
        field: "Field cannot be null"
        for field in changes.model_fields_set
        if getattr(changes, field) is None and field not in nullable
    }
    if nulls:
        raise ValidationError(nulls)
    if not changes.model_fields_set:
        raise ValidationError({"__root__": "No fields to update"})
    return changes
