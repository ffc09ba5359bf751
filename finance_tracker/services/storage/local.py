"""
Local State Storage

A JSON-file key/value store standing in for browser local storage:
the bearer token and app-local JSON blobs (payment reminders, audit log)
live under fixed keys.

TRADEOFFS:
- The whole file is rewritten on every set (fine for a handful of keys)
- No cross-process locking (one app instance per state file)
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import structlog

from finance_tracker.models.audit import AuditEvent
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LocalStore(KeyValueStoreInterface):
    """
    JSON key/value store.

    With no path, state is kept in memory only.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path).expanduser() if path else None
        self._data: dict[str, Any] = self._read()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def _read(self) -> dict[str, Any]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            content = self._path.read_text(encoding="utf-8")
            data = json.loads(content) if content.strip() else {}
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read local state {self._path}: {e}")
        if not isinstance(data, dict):
            raise StorageError(f"Local state {self._path} is not a JSON object")
        return data

    def _flush(self) -> None:
        if self._path is None:
            return
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # Write-then-rename so a crash never leaves half a file behind
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=".state-", suffix=".json"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._data, handle, ensure_ascii=False, indent=2)
            os.replace(tmp_name, self._path)
        except OSError as e:
            raise StorageError(f"Failed to write local state {self._path}: {e}")

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        try:
            json.dumps(value)
        except TypeError as e:
            raise StorageError(f"Value for '{key}' is not JSON-serializable: {e}")
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()


class LocalAuditStorage(AuditStorageInterface):
    """
    Audit log kept as a capped JSON list inside a key/value store.

    Audit events are append-only; the oldest entries are dropped once
    the cap is reached.
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        key: str = "audit-log",
        max_events: int = 500,
    ):
        self._store = store
        self._key = key
        self._max_events = max_events

    async def append_event(self, event: AuditEvent) -> bool:
        try:
            events = list(self._store.get(self._key, []))
            events.append(event.to_storage_dict())
            self._store.set(self._key, events[-self._max_events:])
            return True
        except StorageError as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = []
        for raw in self._store.get(self._key, []):
            try:
                event = AuditEvent.model_validate(raw)
            except ValueError:
                continue  # Skip malformed entries
            if user_id is not None and event.user_id != user_id:
                continue
            events.append(event)

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
