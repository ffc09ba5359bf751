"""
Local Storage Services Package

Provides abstract interfaces and a JSON-file implementation for
app-local state (bearer token, reminders, audit log).
"""

from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    StorageError,
)
from finance_tracker.services.storage.local import (
    LocalAuditStorage,
    LocalStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "StorageError",
    # JSON implementation
    "LocalAuditStorage",
    "LocalStore",
]
