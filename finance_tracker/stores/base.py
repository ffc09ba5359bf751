"""
Entity Store Base

DESIGN DECISION: Each entity kind has one store that owns its collection.
The server response is the ONLY source of truth for new and updated
records: a store never synthesizes an id, and it only touches its local
collection after the remote write succeeded.

Lifecycle:
    UNINITIALIZED -> LOADING -> READY          (signed in, fetch succeeded)
    UNINITIALIZED -> LOADING -> READY (empty)  (no signed-in user)

Collection rules:
- load() replaces the collection wholesale (no merging, no paging)
- add() prepends the server record (most-recent-first display order)
- update() sends only the changed fields, then shallow-merges them
- delete() removes remotely, then filters the id out

Every change bumps `version`, which the aggregation layer uses to know
when derived metrics must be recomputed.
"""

from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel
from tenacity.wait import wait_base

from finance_tracker.audit import AuditLogger
from finance_tracker.models.audit import AuditEventBuilder
from finance_tracker.models.finance import AuthUser
from finance_tracker.models.mapping import EntityMapping
from finance_tracker.services.gateway import (
    GatewayInterface,
    RequestError,
    retry_request,
)
from finance_tracker.services.notifications import LogNotifier, Notifier
from finance_tracker.validation import ValidationError, validate_draft, validate_update


logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class StoreState(str, Enum):
    """Load lifecycle of a store."""
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class EntityStore(Generic[RecordT]):
    """
    Owner of one entity collection and its sync with the backend.

    Subclasses set `mapping`, `draft_schema` and `update_schema`.
    """

    mapping: EntityMapping
    draft_schema: type[BaseModel]
    update_schema: type[BaseModel]

    def __init__(
        self,
        gateway: GatewayInterface,
        notifier: Optional[Notifier] = None,
        audit: Optional[AuditLogger] = None,
        user: Optional[AuthUser] = None,
        retry_attempts: int = 3,
        retry_wait: Optional[wait_base] = None,
    ):
        self._gateway = gateway
        self._notifier = notifier or LogNotifier()
        self._audit = audit or AuditLogger()
        self._user = user
        self._retry_attempts = retry_attempts
        self._retry_wait = retry_wait

        self._items: list[RecordT] = []
        self._state = StoreState.UNINITIALIZED
        self._version = 0
        self._state_listeners: list[Callable[[StoreState], None]] = []

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def items(self) -> list[RecordT]:
        """Snapshot of the collection, in display order."""
        return list(self._items)

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state == StoreState.LOADING

    @property
    def version(self) -> int:
        return self._version

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def label(self) -> str:
        return self.mapping.label

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def find(self, record_id: str) -> Optional[RecordT]:
        for item in self._items:
            if item.id == record_id:
                return item
        return None

    def get(self, record_id: str) -> RecordT:
        """
        Raises:
            NotFoundError: If the id is not in the local collection
        """
        record = self.find(record_id)
        if record is None:
            raise NotFoundError(self.label, record_id)
        return record

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def on_state_change(self, listener: Callable[[StoreState], None]) -> None:
        """Call `listener` with every new load state."""
        self._state_listeners.append(listener)

    def _set_state(self, state: StoreState) -> None:
        self._state = state
        for listener in self._state_listeners:
            listener(state)

    def set_user(self, user: Optional[AuthUser]) -> None:
        """Rebind to another identity. The collection is dropped."""
        self._user = user
        self.clear()

    def clear(self) -> None:
        """Forget the collection (sign-out)."""
        self._items = []
        self._set_state(StoreState.UNINITIALIZED)
        self._bump()

    async def load(self, retry: bool = False) -> list[RecordT]:
        """
        Fetch the user's whole collection and replace the local one.

        Args:
            retry: Retry failed fetches with bounded exponential backoff

        Returns:
            The new collection

        Raises:
            RequestError: If the fetch failed (collection left untouched)
        """
        if self._user is None:
            self._set_state(StoreState.LOADING)
            self._items = []
            self._set_state(StoreState.READY)
            self._bump()
            return []

        previous_state = self._state
        self._set_state(StoreState.LOADING)
        resource = self.mapping.resource
        params = {"order": self.mapping.order_by}

        try:
            if retry:
                rows = await retry_request(
                    lambda: self._gateway.get(resource, params=params, notify=False),
                    attempts=self._retry_attempts,
                    wait=self._retry_wait,
                )
            else:
                rows = await self._gateway.get(resource, params=params)
        except RequestError as e:
            self._set_state(
                StoreState.READY if previous_state == StoreState.READY
                else StoreState.UNINITIALIZED
            )
            if retry:
                # Retried calls run silently; report the final failure once
                self._notifier.error(e.message)
            await self._audit.log(
                AuditEventBuilder.collection_load_failed(
                    resource=resource,
                    error_message=e.message,
                    user_id=self._user_id,
                )
            )
            raise

        self._items = self._records_from(rows or [])
        self._set_state(StoreState.READY)
        self._bump()
        await self._audit.log(
            AuditEventBuilder.collection_loaded(
                resource=resource,
                count=len(self._items),
                user_id=self._user_id,
            )
        )
        return self.items

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def add(self, draft: Any) -> RecordT:
        """
        Validate, create remotely, then prepend the server record.

        Raises:
            NotAuthenticatedError: If no user is signed in
            ValidationError: If the draft is invalid (nothing is sent)
            RequestError: If the backend rejected the write
        """
        user = self._require_user()
        values = await self._validate(self.draft_schema, draft)
        payload = self._create_payload(values, user)

        try:
            row = await self._gateway.post(self.mapping.resource, payload)
        except RequestError as e:
            await self._log_request_failed("create", e)
            raise

        record = await self._read_record(row, "create")
        self._items.insert(0, record)
        self._bump()

        await self._audit.log(
            AuditEventBuilder.entity_created(
                resource=self.mapping.resource,
                entity_id=record.id,
                user_id=user.id,
            )
        )
        self._notifier.success(f"{self.label.capitalize()} created")
        return record

    async def update(self, record_id: str, changes: Any) -> RecordT:
        """
        Send only the changed fields, then shallow-merge them locally.

        Raises:
            NotAuthenticatedError: If no user is signed in
            NotFoundError: If the record is not in the local collection
            ValidationError: If the partial is invalid (nothing is sent)
            RequestError: If the backend rejected the write
        """
        user = self._require_user()
        current = self._existing(record_id)
        partial = await self._validate(self.update_schema, changes, partial=True)
        payload = self.mapping.partial_to_storage(partial)

        try:
            await self._gateway.put(self._path(record_id), payload)
        except RequestError as e:
            await self._log_request_failed("update", e, record_id)
            raise

        record = self._merge(current, partial.model_dump(exclude_unset=True))

        await self._audit.log(
            AuditEventBuilder.entity_updated(
                resource=self.mapping.resource,
                entity_id=record_id,
                fields=sorted(partial.model_fields_set),
                user_id=user.id,
            )
        )
        self._notifier.success(f"{self.label.capitalize()} updated")
        return record

    async def delete(self, record_id: str) -> None:
        """
        Delete remotely, then drop the record locally.

        Raises:
            NotAuthenticatedError: If no user is signed in
            NotFoundError: If the record is not in the local collection
            RequestError: If the backend rejected the delete
        """
        user = self._require_user()
        self._existing(record_id)

        try:
            await self._gateway.delete(self._path(record_id))
        except RequestError as e:
            await self._log_request_failed("delete", e, record_id)
            raise

        self._remove(record_id)

        await self._audit.log(
            AuditEventBuilder.entity_deleted(
                resource=self.mapping.resource,
                entity_id=record_id,
                user_id=user.id,
            )
        )
        self._notifier.success(f"{self.label.capitalize()} deleted")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @property
    def _user_id(self) -> Optional[str]:
        return self._user.id if self._user else None

    def _bump(self) -> None:
        self._version += 1

    def _path(self, record_id: str) -> str:
        return f"{self.mapping.resource}/{record_id}"

    def _require_user(self) -> AuthUser:
        if self._user is None:
            error = NotAuthenticatedError("Sign in to change your data")
            self._notifier.error(str(error))
            raise error
        return self._user

    def _existing(self, record_id: str) -> RecordT:
        """get() that also tells the user about a missing record."""
        try:
            return self.get(record_id)
        except NotFoundError as e:
            self._notifier.error(str(e))
            raise

    async def _validate(self, schema: type[BaseModel], data: Any, partial: bool = False):
        try:
            if partial:
                return validate_update(schema, data)
            return validate_draft(schema, data)
        except ValidationError as e:
            self._notifier.error(str(e))
            await self._audit.log(
                AuditEventBuilder.validation_failed(
                    resource=self.mapping.resource,
                    errors=e.errors,
                    user_id=self._user_id,
                )
            )
            raise

    def _create_payload(self, values: BaseModel, user: AuthUser) -> dict[str, Any]:
        payload = self.mapping.to_storage(values.model_dump(mode="json"))
        payload["user_id"] = user.id
        return payload

    def _record_from(self, row: Any) -> RecordT:
        """Build a record from a write response (a row or a one-row list)."""
        if isinstance(row, list):
            row = row[0] if row else None
        if not isinstance(row, dict):
            raise StoreError(f"Server returned no {self.label} record")
        return self.mapping.from_storage(row)

    async def _read_record(
        self,
        row: Any,
        operation: str,
        correlation_id: Optional[UUID] = None,
    ) -> RecordT:
        """
        _record_from() for a write the backend already accepted.

        Raises:
            StoreError: If the response holds no readable record
                (notified; the local collection is left untouched)
        """
        try:
            return self._record_from(row)
        except (StoreError, ValueError) as e:
            raise await self._unreadable_response(operation, str(e), correlation_id) from e

    async def _unreadable_response(
        self,
        operation: str,
        detail: str,
        correlation_id: Optional[UUID] = None,
    ) -> "StoreError":
        """Report a write response that cannot be applied locally."""
        error = StoreError(
            f"The {self.label} {operation} reached the server but its response "
            f"could not be read; reload your data ({detail})"
        )
        self._notifier.error(str(error))
        await self._audit.log_error(
            error_type="UnreadableResponse",
            error_message=detail,
            details={"resource": self.mapping.resource, "operation": operation},
            correlation_id=correlation_id,
        )
        return error

    def _records_from(self, rows: list[dict]) -> list[RecordT]:
        records = []
        for row in rows:
            try:
                records.append(self.mapping.from_storage(row))
            except ValueError as e:
                # Skip malformed rows
                logger.warning(
                    "malformed_row_skipped",
                    resource=self.mapping.resource,
                    row_id=row.get("id") if isinstance(row, dict) else None,
                    error=str(e),
                )
        return records

    def _merge(self, current: RecordT, changes: dict[str, Any]) -> RecordT:
        merged = type(current).model_validate({**current.model_dump(), **changes})
        self._replace(merged)
        return merged

    def _replace(self, record: RecordT) -> None:
        self._items = [record if item.id == record.id else item for item in self._items]
        self._bump()

    def _remove(self, record_id: str) -> None:
        self._items = [item for item in self._items if item.id != record_id]
        self._bump()

    async def _log_request_failed(
        self,
        operation: str,
        error: RequestError,
        record_id: Optional[str] = None,
    ) -> None:
        event = AuditEventBuilder.request_failed(
            resource=self.mapping.resource,
            operation=operation,
            error_message=error.message,
            user_id=self._user_id,
            status_code=error.status_code,
        )
        event.entity_id = record_id
        await self._audit.log(event)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class StoreError(Exception):
    """Base exception for store operations."""
    pass


class NotAuthenticatedError(StoreError):
    """A mutation was attempted with no signed-in user."""
    pass


class NotFoundError(StoreError):
    """
    A referenced record is not in the local collection.

    Attributes:
        entity: Singular entity label ("account", "transaction", ...)
        entity_id: The missing id
    """

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} not found: {entity_id}")


class PairedWriteError(StoreError):
    """
    The second half of a paired write failed.

    Attributes:
        operation: "add", "update" or "delete"
        failed_step: Name of the step that failed
        compensated: True if every completed step was undone
        pending_compensations: Steps whose undo also failed
    """

    def __init__(
        self,
        message: str,
        operation: str,
        failed_step: str,
        compensated: bool,
        pending_compensations: Optional[list[str]] = None,
    ):
        self.operation = operation
        self.failed_step = failed_step
        self.compensated = compensated
        self.pending_compensations = pending_compensations or []
        super().__init__(message)
