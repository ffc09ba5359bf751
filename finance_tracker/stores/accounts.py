"""
Account Store

Accounts are the other half of every paired write: their balance moves
when transactions are added, edited or deleted (see TransactionStore).

An explicit account edit can still set the balance directly. That path
is kept for corrections, but it is audited as a BALANCE_OVERRIDDEN
warning because the balance then no longer follows the transactions.
"""

from decimal import Decimal
from typing import Any, Callable

from pydantic import BaseModel

from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.finance import Account
from finance_tracker.models.mapping import ACCOUNT_MAPPING
from finance_tracker.stores.base import EntityStore
from finance_tracker.validation import AccountDraft, AccountUpdate


DeleteListener = Callable[[str], None]


class AccountStore(EntityStore[Account]):
    """Bank accounts of the signed-in user."""

    mapping = ACCOUNT_MAPPING
    draft_schema = AccountDraft
    update_schema = AccountUpdate

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._delete_listeners: list[DeleteListener] = []

    @property
    def total_balance(self) -> Decimal:
        return sum((account.balance for account in self._items), Decimal("0"))

    def on_delete(self, listener: DeleteListener) -> None:
        """
        Register a callback run with the account id after a delete.

        The backend cascades an account delete to its transactions; the
        transaction cache listens here to drop them too.
        """
        self._delete_listeners.append(listener)

    async def update(self, record_id: str, changes: Any) -> Account:
        account = await super().update(record_id, changes)
        if "balance" in self._changed_fields(changes):
            await self._audit.log(
                AuditEventBuilder.balance_overridden(
                    account_id=record_id,
                    new_balance=str(account.balance),
                    user_id=self._user_id,
                )
            )
        return account

    async def delete(self, record_id: str) -> None:
        await super().delete(record_id)
        for listener in self._delete_listeners:
            listener(record_id)

    def apply_balance(self, account_id: str, balance: Decimal) -> Account:
        """
        Set a balance the backend already holds (local cache only).

        Used after the balance half of a paired write succeeded.
        """
        account = self.get(account_id)
        updated = account.model_copy(update={"balance": Decimal(str(balance))})
        self._replace(updated)
        return updated

    @staticmethod
    def _changed_fields(changes: Any) -> set[str]:
        if isinstance(changes, BaseModel):
            return set(changes.model_fields_set)
        return set(changes)
