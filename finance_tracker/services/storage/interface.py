"""
Abstract Local Storage Interfaces

DESIGN DECISION: Local state (bearer token, reminders, audit log) goes
through small abstract interfaces. This allows us to:
1. Keep state in a JSON file for a desktop/CLI front end
2. Use in-memory storage for testing
3. Swap in browser/session storage for a web front end

The interface is intentionally simple - a key/value store holding
JSON-compatible values, plus an append-only audit log.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from finance_tracker.models.audit import AuditEvent


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for app-local persistent state.

    Values must be JSON-compatible.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Read a value.

        Returns:
            The stored value, or default when the key is absent
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Store a value, replacing any previous one.

        Raises:
            StorageError: If the value cannot be persisted
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify entries.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return
            user_id: Only events for this user, when given

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for local storage operations."""
    pass
