"""
Entity Stores Package

One store per entity kind. Each owns its collection, loads it for the
signed-in user and keeps it in sync with the backend after every write.
"""

from finance_tracker.stores.accounts import AccountStore
from finance_tracker.stores.base import (
    EntityStore,
    NotAuthenticatedError,
    NotFoundError,
    PairedWriteError,
    StoreError,
    StoreState,
)
from finance_tracker.stores.budgets import BudgetStore
from finance_tracker.stores.credit_cards import CreditCardStore
from finance_tracker.stores.goals import GoalStore
from finance_tracker.stores.saga import Saga
from finance_tracker.stores.transactions import (
    TransactionStore,
    balance_effects,
)

__all__ = [
    # Base
    "EntityStore",
    "StoreState",
    "Saga",
    # Stores
    "AccountStore",
    "BudgetStore",
    "CreditCardStore",
    "GoalStore",
    "TransactionStore",
    "balance_effects",
    # Exceptions
    "NotAuthenticatedError",
    "NotFoundError",
    "PairedWriteError",
    "StoreError",
]
