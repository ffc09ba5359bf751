"""
Financial Goal Store

Besides the plain CRUD, goals have two shortcuts used by the goal cards:
contributing an amount and toggling completion. Both are ordinary
partial updates.
"""

from decimal import Decimal
from typing import Union

from finance_tracker.models.finance import FinancialGoal
from finance_tracker.models.mapping import GOAL_MAPPING
from finance_tracker.stores.base import EntityStore
from finance_tracker.validation import MIN_AMOUNT, GoalDraft, GoalUpdate, ValidationError


class GoalStore(EntityStore[FinancialGoal]):
    """Savings goals of the signed-in user."""

    mapping = GOAL_MAPPING
    draft_schema = GoalDraft
    update_schema = GoalUpdate

    @property
    def active(self) -> list[FinancialGoal]:
        return [goal for goal in self._items if not goal.completed]

    @property
    def completed(self) -> list[FinancialGoal]:
        return [goal for goal in self._items if goal.completed]

    async def contribute(
        self,
        goal_id: str,
        amount: Union[Decimal, int, float, str],
    ) -> FinancialGoal:
        """
        Add money to a goal. The goal is marked completed once the
        target is reached.

        Raises:
            ValidationError: If the amount is below the minimum
            NotFoundError: If the goal is not in the local collection
        """
        goal = self._existing(goal_id)
        try:
            value = Decimal(str(amount))
        except ArithmeticError:
            value = None
        if value is None or not value.is_finite() or value < MIN_AMOUNT:
            error = ValidationError({"amount": f"Amount must be at least {MIN_AMOUNT}"})
            self._notifier.error(str(error))
            raise error

        new_amount = goal.current_amount + value
        changes: dict = {"current_amount": new_amount}
        if new_amount >= goal.target_amount and not goal.completed:
            changes["completed"] = True
        return await self.update(goal_id, changes)

    async def set_completed(self, goal_id: str, completed: bool = True) -> FinancialGoal:
        return await self.update(goal_id, {"completed": completed})
