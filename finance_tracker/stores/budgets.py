"""
Budget Store

Budgets store only their limit. The amount spent is derived from the
transactions every time metrics are computed (analytics.budget_usage),
so it can never disagree with the ledger.
"""

from typing import Optional

from finance_tracker.models.finance import Budget
from finance_tracker.models.mapping import BUDGET_MAPPING
from finance_tracker.stores.base import EntityStore
from finance_tracker.validation import BudgetDraft, BudgetUpdate


class BudgetStore(EntityStore[Budget]):
    """Category budgets of the signed-in user."""

    mapping = BUDGET_MAPPING
    draft_schema = BudgetDraft
    update_schema = BudgetUpdate

    def for_category(self, category: str) -> Optional[Budget]:
        for budget in self._items:
            if budget.category.casefold() == category.casefold():
                return budget
        return None
