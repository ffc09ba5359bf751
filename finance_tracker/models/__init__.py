"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker core.
All data flowing between the stores and the backend must conform to these schemas.
"""

from finance_tracker.models.finance import (
    DEFAULT_CATEGORIES,
    DEFAULT_EXPENSE_CATEGORIES,
    DEFAULT_INCOME_CATEGORIES,
    Account,
    AccountType,
    AuthUser,
    Budget,
    BudgetPeriod,
    CreditCard,
    DateRange,
    FinancialGoal,
    GoalCategory,
    Transaction,
    TransactionType,
)
from finance_tracker.models.mapping import (
    ACCOUNT_MAPPING,
    BUDGET_MAPPING,
    CREDIT_CARD_MAPPING,
    GOAL_MAPPING,
    TRANSACTION_MAPPING,
    EntityMapping,
    MappingError,
)
from finance_tracker.models.metrics import (
    BudgetStatus,
    BudgetUsage,
    CategoryComparison,
    FinancialMetrics,
    PeriodComparison,
    PeriodPoint,
    PeriodSnapshot,
    RankedShare,
    SeriesGranularity,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "DEFAULT_CATEGORIES",
    "DEFAULT_EXPENSE_CATEGORIES",
    "DEFAULT_INCOME_CATEGORIES",
    "Account",
    "AccountType",
    "AuthUser",
    "Budget",
    "BudgetPeriod",
    "CreditCard",
    "DateRange",
    "FinancialGoal",
    "GoalCategory",
    "Transaction",
    "TransactionType",
    # Storage mappings
    "ACCOUNT_MAPPING",
    "BUDGET_MAPPING",
    "CREDIT_CARD_MAPPING",
    "GOAL_MAPPING",
    "TRANSACTION_MAPPING",
    "EntityMapping",
    "MappingError",
    # Derived metrics
    "BudgetStatus",
    "BudgetUsage",
    "CategoryComparison",
    "FinancialMetrics",
    "PeriodComparison",
    "PeriodPoint",
    "PeriodSnapshot",
    "RankedShare",
    "SeriesGranularity",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
