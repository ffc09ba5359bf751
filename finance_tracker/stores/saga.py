"""
Compensating multi-step writes.

A Saga runs remote writes one after another. Each completed step may
register an undo action; when a later step fails, the registered undos
run in reverse order and a PairedWriteError reports whether the rollback
was complete.

If the very first step fails nothing has been applied, so its
RequestError propagates unchanged.
"""

from typing import Awaitable, Callable, Optional, TypeVar
from uuid import UUID

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.services.gateway import RequestError
from finance_tracker.stores.base import PairedWriteError


logger = structlog.get_logger(__name__)

T = TypeVar("T")

Undo = Callable[[], Awaitable[object]]


class Saga:
    """
    Usage:
        saga = Saga("add", audit, user_id, correlation_id)
        row = await saga.step("insert transaction", insert, undo=delete_inserted)
        await saga.step("update balance", put_balance)
    """

    def __init__(
        self,
        operation: str,
        audit: AuditLogger,
        user_id: Optional[str],
        correlation_id: UUID,
    ):
        self.operation = operation
        self._audit = audit
        self._user_id = user_id
        self._correlation_id = correlation_id
        self._completed: list[tuple[str, Optional[Undo]]] = []

    @property
    def completed_steps(self) -> list[str]:
        return [name for name, _ in self._completed]

    async def step(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        undo: Optional[Undo] = None,
    ) -> T:
        """
        Run one write.

        Raises:
            RequestError: If this is the first step and it failed
            PairedWriteError: If a later step failed (after compensating)
        """
        try:
            result = await action()
        except RequestError as e:
            if not self._completed:
                raise
            raise await self._compensate(name, e) from e

        self._completed.append((name, undo))
        return result

    def undo_last(self, undo: Undo) -> None:
        """Attach an undo to the last completed step (when it needs that step's result)."""
        name, _ = self._completed[-1]
        self._completed[-1] = (name, undo)

    async def abandon(self, failed_step: str, detail: str) -> PairedWriteError:
        """
        Stop after a step whose outcome cannot be used (e.g. an unreadable
        response). Completed steps stay applied because their undo needs
        that outcome.
        """
        pending = list(reversed(self.completed_steps))
        await self._audit.log(
            AuditEventBuilder.paired_write_failed(
                operation=self.operation,
                failed_step=failed_step,
                error_message=detail,
                user_id=self._user_id,
                correlation_id=self._correlation_id,
                pending_compensations=pending,
            )
        )
        return PairedWriteError(
            f"Transaction {self.operation} reached the server but could not be "
            f"completed; account balances may need a manual fix ({detail})",
            operation=self.operation,
            failed_step=failed_step,
            compensated=False,
            pending_compensations=pending,
        )

    async def _compensate(self, failed_step: str, error: RequestError) -> PairedWriteError:
        pending: list[str] = []
        for name, undo in reversed(self._completed):
            if undo is None:
                continue
            try:
                await undo()
            except RequestError as undo_error:
                pending.append(name)
                logger.error(
                    "compensation_failed",
                    operation=self.operation,
                    step=name,
                    error=undo_error.message,
                    correlation_id=str(self._correlation_id),
                )

        if pending:
            await self._audit.log(
                AuditEventBuilder.paired_write_failed(
                    operation=self.operation,
                    failed_step=failed_step,
                    error_message=error.message,
                    user_id=self._user_id,
                    correlation_id=self._correlation_id,
                    pending_compensations=pending,
                )
            )
            return PairedWriteError(
                f"Transaction {self.operation} failed at '{failed_step}' and could not "
                f"be fully undone; account balances may need a manual fix ({error.message})",
                operation=self.operation,
                failed_step=failed_step,
                compensated=False,
                pending_compensations=pending,
            )

        await self._audit.log(
            AuditEventBuilder.paired_write_compensated(
                operation=self.operation,
                failed_step=failed_step,
                error_message=error.message,
                user_id=self._user_id,
                correlation_id=self._correlation_id,
            )
        )
        return PairedWriteError(
            f"Transaction {self.operation} failed at '{failed_step}' and was rolled back "
            f"({error.message})",
            operation=self.operation,
            failed_step=failed_step,
            compensated=True,
        )
