"""
Transaction Store

DESIGN DECISION: Every transaction write is a PAIRED write: the
transaction row and the owning account's balance must change together,
otherwise the balance drifts away from the ledger.

The consistency policy is explicit and chosen by
AppSettings.paired_write_mode. There is no silent fallback between them.

1. "compensating" (default): the two writes run as a saga. Each step
   registers an undo; if a later step fails, earlier steps are undone
   in reverse and PairedWriteError tells the caller whether the rollback
   was complete.
       add:    insert transaction (undo: delete it) -> set balance
       delete: set balance (undo: restore it) -> delete transaction
       update: update transaction (undo: restore old fields)
               -> set balance(s) (undo: restore each)

2. "atomic": one server-side procedure performs both writes in a single
   database transaction and returns the transaction plus the new
   balance(s). Nothing can be half-applied.

Local state (transaction list AND account balance) is only touched once
the whole pair succeeded. A write response that cannot be read counts
as a failure of the pair and is reported like one.
"""

from decimal import Decimal
from typing import Any, Literal, Optional
from uuid import UUID

from finance_tracker.audit import create_correlation_id
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.finance import DateRange, Transaction
from finance_tracker.models.mapping import ACCOUNT_MAPPING, TRANSACTION_MAPPING
from finance_tracker.services.gateway import RequestError
from finance_tracker.stores.accounts import AccountStore
from finance_tracker.stores.base import (
    EntityStore,
    NotFoundError,
    PairedWriteError,
    StoreError,
)
from finance_tracker.stores.saga import Saga
from finance_tracker.validation import TransactionDraft, TransactionUpdate


PairedWriteMode = Literal["compensating", "atomic"]

# Server-side procedures used in atomic mode
CREATE_PROCEDURE = "rpc/create_transaction_with_balance"
UPDATE_PROCEDURE = "rpc/update_transaction_with_balance"
DELETE_PROCEDURE = "rpc/delete_transaction_with_balance"


def balance_effects(
    old: Optional[Transaction],
    new: Optional[Transaction],
) -> dict[str, Decimal]:
    """
    Balance change per account when `old` is replaced by `new`.

    add: old=None; delete: new=None. Accounts with a zero net change
    are left out.
    """
    effects: dict[str, Decimal] = {}
    if old is not None:
        effects[old.account_id] = effects.get(old.account_id, Decimal("0")) - old.signed_amount
    if new is not None:
        effects[new.account_id] = effects.get(new.account_id, Decimal("0")) + new.signed_amount
    return {account_id: delta for account_id, delta in effects.items() if delta != 0}


class TransactionStore(EntityStore[Transaction]):
    """
    Income and expense entries of the signed-in user, newest first.

    Usage:
        store = TransactionStore(gateway, accounts, notifier=notifier, user=user)
        await store.add({"description": "Lunch", "amount": "30", ...})
    """

    mapping = TRANSACTION_MAPPING
    draft_schema = TransactionDraft
    update_schema = TransactionUpdate

    def __init__(
        self,
        gateway,
        accounts: AccountStore,
        *args,
        paired_write_mode: PairedWriteMode = "compensating",
        **kwargs,
    ):
        super().__init__(gateway, *args, **kwargs)
        if paired_write_mode not in ("compensating", "atomic"):
            raise ValueError(f"Unknown paired write mode: {paired_write_mode}")
        self._accounts = accounts
        self._mode = paired_write_mode
        accounts.on_delete(self.drop_account)

    @property
    def paired_write_mode(self) -> PairedWriteMode:
        return self._mode

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def for_account(self, account_id: str) -> list[Transaction]:
        return [t for t in self._items if t.account_id == account_id]

    def in_range(self, date_range: DateRange) -> list[Transaction]:
        return [t for t in self._items if date_range.contains(t.date)]

    def drop_account(self, account_id: str) -> None:
        """Forget transactions of a deleted account (cascaded by the backend)."""
        remaining = [t for t in self._items if t.account_id != account_id]
        if len(remaining) != len(self._items):
            self._items = remaining
            self._bump()

    # -------------------------------------------------------------------------
    # Paired writes
    # -------------------------------------------------------------------------

    async def add(self, draft: Any) -> Transaction:
        """
        Create a transaction and move its account's balance.

        Raises:
            NotAuthenticatedError: If no user is signed in
            ValidationError: If the draft is invalid (nothing is sent)
            NotFoundError: If the account is not in the local account list
            RequestError: If the write failed and nothing was applied
            PairedWriteError: If the balance write failed, or the inserted
                record came back unreadable (compensating mode)
            StoreError: If the procedure result is unreadable (atomic mode)
        """
        user = self._require_user()
        values = await self._validate(self.draft_schema, draft)
        self._existing_account(values.account_id)
        payload = self._create_payload(values, user)
        correlation_id = create_correlation_id()

        if self._mode == "atomic":
            response = await self._call_procedure(
                "create", CREATE_PROCEDURE, {"transaction": payload}
            )
            record = await self._read_record(
                response.get("transaction"), "create", correlation_id
            )
            balances = await self._read_balances(
                response, balance_effects(None, record), "create", correlation_id
            )
        else:
            async def insert():
                return await self._gateway.post(self.mapping.resource, payload, notify=False)

            saga = Saga("add", self._audit, user.id, correlation_id)
            row = await self._run_first_step(
                saga, "create", "insert transaction", insert
            )
            try:
                record = self._record_from(row)
            except (StoreError, ValueError) as e:
                error = await saga.abandon("read inserted transaction", str(e))
                self._notifier.error(str(error))
                raise error from e

            async def remove_inserted():
                return await self._gateway.delete(self._path(record.id), notify=False)

            saga.undo_last(remove_inserted)
            balances = await self._write_balances(saga, balance_effects(None, record))

        self._items.insert(0, record)
        self._resort()
        await self._apply_balances(balances, correlation_id)

        await self._audit.log(
            AuditEventBuilder.entity_created(
                resource=self.mapping.resource,
                entity_id=record.id,
                user_id=user.id,
                correlation_id=correlation_id,
            )
        )
        self._notifier.success("Transaction added")
        return record

    async def update(self, record_id: str, changes: Any) -> Transaction:
        """
        Edit a transaction and move the affected balance(s) by the difference.

        Changing the account moves the old amount off the old account and
        the new amount onto the new one.

        Raises:
            NotAuthenticatedError, NotFoundError, ValidationError,
            RequestError, PairedWriteError: as for add()
        """
        user = self._require_user()
        current = self._existing(record_id)
        partial = await self._validate(self.update_schema, changes, partial=True)
        changed = partial.model_dump(exclude_unset=True)
        updated = Transaction.model_validate({**current.model_dump(), **changed})
        effects = balance_effects(current, updated)
        for account_id in effects:
            self._existing_account(account_id)

        payload = self.mapping.partial_to_storage(partial)
        correlation_id = create_correlation_id()

        if self._mode == "atomic":
            response = await self._call_procedure(
                "update",
                UPDATE_PROCEDURE,
                {"transaction_id": record_id, "changes": payload},
            )
            if response.get("transaction") is not None:
                updated = await self._read_record(
                    response["transaction"], "update", correlation_id
                )
            balances = await self._read_balances(response, effects, "update", correlation_id)
        else:
            previous = self.mapping.to_storage(
                current.model_dump(mode="json", include=set(changed))
            )

            async def write_changes():
                return await self._gateway.put(self._path(record_id), payload, notify=False)

            async def restore_changes():
                return await self._gateway.put(self._path(record_id), previous, notify=False)

            saga = Saga("update", self._audit, user.id, correlation_id)
            await self._run_first_step(
                saga, "update", "update transaction", write_changes, undo=restore_changes
            )
            balances = await self._write_balances(saga, effects)

        self._replace(updated)
        self._resort()
        await self._apply_balances(balances, correlation_id)

        await self._audit.log(
            AuditEventBuilder.entity_updated(
                resource=self.mapping.resource,
                entity_id=record_id,
                fields=sorted(changed),
                user_id=user.id,
                correlation_id=correlation_id,
            )
        )
        self._notifier.success("Transaction updated")
        return updated

    async def delete(self, record_id: str) -> None:
        """
        Delete a transaction and take its amount back off the account.

        In compensating mode the balance is written first, so a failed
        delete can be undone by restoring the previous balance.

        Raises:
            NotAuthenticatedError, NotFoundError, RequestError,
            PairedWriteError: as for add()
        """
        user = self._require_user()
        current = self._existing(record_id)
        self._existing_account(current.account_id)
        correlation_id = create_correlation_id()

        if self._mode == "atomic":
            response = await self._call_procedure(
                "delete", DELETE_PROCEDURE, {"transaction_id": record_id}
            )
            balances = await self._read_balances(
                response, balance_effects(current, None), "delete", correlation_id
            )
        else:
            async def remove():
                return await self._gateway.delete(self._path(record_id), notify=False)

            saga = Saga("delete", self._audit, user.id, correlation_id)
            effects = balance_effects(current, None)
            if effects:
                balances = await self._write_balances(saga, effects, first="delete")
                await self._run_step(saga, "delete transaction", remove)
            else:
                balances = {}
                await self._run_first_step(saga, "delete", "delete transaction", remove)

        self._remove(record_id)
        await self._apply_balances(balances, correlation_id)

        await self._audit.log(
            AuditEventBuilder.entity_deleted(
                resource=self.mapping.resource,
                entity_id=record_id,
                user_id=user.id,
                correlation_id=correlation_id,
            )
        )
        self._notifier.success("Transaction deleted")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _resort(self) -> None:
        """Date descending; stable, so same-day entries keep insertion order."""
        self._items.sort(key=lambda t: t.date, reverse=True)
        self._bump()

    def _existing_account(self, account_id: str):
        try:
            return self._accounts.get(account_id)
        except NotFoundError as e:
            self._notifier.error(str(e))
            raise

    async def _run_first_step(self, saga: Saga, operation: str, name: str, action, undo=None):
        """First saga step: a failure here means nothing was applied."""
        try:
            return await saga.step(name, action, undo=undo)
        except RequestError as e:
            self._notifier.error(e.message)
            await self._log_request_failed(operation, e)
            raise

    async def _run_step(self, saga: Saga, name: str, action, undo=None):
        """Later saga step: a failure is reported as a PairedWriteError."""
        try:
            return await saga.step(name, action, undo=undo)
        except PairedWriteError as e:
            self._notifier.error(str(e))
            raise

    async def _write_balances(
        self,
        saga: Saga,
        effects: dict[str, Decimal],
        first: Optional[str] = None,
    ) -> dict[str, Decimal]:
        """
        One saga step per affected account, each undone by restoring the
        previous balance.

        Args:
            first: Operation name when these are the saga's first steps
        """
        balances: dict[str, Decimal] = {}
        for account_id, delta in effects.items():
            previous = self._accounts.get(account_id).balance
            new_balance = previous + delta
            path = f"{ACCOUNT_MAPPING.resource}/{account_id}"

            async def set_balance(path=path, value=new_balance):
                return await self._gateway.put(
                    path, ACCOUNT_MAPPING.to_storage({"balance": str(value)}), notify=False
                )

            async def restore_balance(path=path, value=previous):
                return await self._gateway.put(
                    path, ACCOUNT_MAPPING.to_storage({"balance": str(value)}), notify=False
                )

            name = f"update balance of account {account_id}"
            if first and not saga.completed_steps:
                await self._run_first_step(saga, first, name, set_balance, undo=restore_balance)
            else:
                await self._run_step(saga, name, set_balance, undo=restore_balance)
            balances[account_id] = new_balance
        return balances

    async def _call_procedure(
        self,
        operation: str,
        procedure: str,
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        """Atomic mode: both writes happen server-side in one call."""
        try:
            response = await self._gateway.post(procedure, payload)
        except RequestError as e:
            await self._log_request_failed(operation, e)
            raise
        if isinstance(response, list):
            response = response[0] if response else None
        if not isinstance(response, dict):
            error = RequestError(f"Procedure {procedure} returned no result")
            self._notifier.error(error.message)
            raise error
        return response

    async def _read_balances(
        self,
        response: dict[str, Any],
        effects: dict[str, Decimal],
        operation: str,
        correlation_id: UUID,
    ) -> dict[str, Decimal]:
        """
        New balances from a procedure result. Every account in `effects`
        must be present.

        Raises:
            StoreError: If a balance is missing or unreadable (notified)
        """
        raw = response.get("balances") or {}
        try:
            balances = {str(account_id): Decimal(str(value)) for account_id, value in raw.items()}
        except (ArithmeticError, AttributeError) as e:
            raise await self._unreadable_response(operation, f"bad balances: {e}", correlation_id) from e
        missing = sorted(set(effects) - set(balances))
        if missing:
            raise await self._unreadable_response(
                operation, f"no new balance for account {', '.join(missing)}", correlation_id
            )
        return balances

    async def _apply_balances(
        self,
        balances: dict[str, Decimal],
        correlation_id: UUID,
    ) -> None:
        for account_id, new_balance in balances.items():
            account = self._accounts.find(account_id)
            if account is None:
                continue
            previous = account.balance
            self._accounts.apply_balance(account_id, new_balance)
            await self._audit.log(
                AuditEventBuilder.balance_adjusted(
                    account_id=account_id,
                    previous_balance=str(previous),
                    new_balance=str(new_balance),
                    user_id=self._user_id,
                    correlation_id=correlation_id,
                )
            )
