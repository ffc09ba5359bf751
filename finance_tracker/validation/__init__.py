"""Input validation package."""

from finance_tracker.validation.schemas import (
    MIN_AMOUNT,
    AccountDraft,
    AccountUpdate,
    BudgetDraft,
    BudgetUpdate,
    CreditCardDraft,
    CreditCardUpdate,
    GoalDraft,
    GoalUpdate,
    TransactionDraft,
    TransactionUpdate,
    ValidationError,
    error_mapping,
    validate_draft,
    validate_update,
)

__all__ = [
    "MIN_AMOUNT",
    "AccountDraft",
    "AccountUpdate",
    "BudgetDraft",
    "BudgetUpdate",
    "CreditCardDraft",
    "CreditCardUpdate",
    "GoalDraft",
    "GoalUpdate",
    "TransactionDraft",
    "TransactionUpdate",
    "ValidationError",
    "error_mapping",
    "validate_draft",
    "validate_update",
]
