"""Services package."""

from finance_tracker.services.gateway import (
    ConfigurationError,
    GatewayInterface,
    RequestError,
    RestGateway,
    retry_request,
)
from finance_tracker.services.notifications import (
    LogNotifier,
    Notifier,
    StreamlitNotifier,
)
from finance_tracker.services.storage import (
    AuditStorageInterface,
    KeyValueStoreInterface,
    LocalAuditStorage,
    LocalStore,
    StorageError,
)

__all__ = [
    # Gateway
    "ConfigurationError",
    "GatewayInterface",
    "RequestError",
    "RestGateway",
    "retry_request",
    # Notifications
    "LogNotifier",
    "Notifier",
    "StreamlitNotifier",
    # Local storage
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    "LocalAuditStorage",
    "LocalStore",
    "StorageError",
]
