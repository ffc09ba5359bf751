"""
Audit Models for Finance Tracker

Every user action that reaches the backend is logged for audit purposes.
This provides:
1. Traceability of every write, including both halves of a paired write
2. Debugging information when a write fails part-way
3. A local history the user can inspect

DESIGN DECISION: Audit logs are append-only. We never modify entries;
the local log only drops its oldest entries once it reaches its cap.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Session lifecycle
    SESSION_STARTED = "session_started"
    SESSION_ENDED = "session_ended"

    # Collection loading
    COLLECTION_LOADED = "collection_loaded"
    COLLECTION_LOAD_FAILED = "collection_load_failed"

    # Entity writes
    ENTITY_CREATED = "entity_created"
    ENTITY_UPDATED = "entity_updated"
    ENTITY_DELETED = "entity_deleted"
    VALIDATION_FAILED = "validation_failed"
    REQUEST_FAILED = "request_failed"

    # Balance side effects
    BALANCE_ADJUSTED = "balance_adjusted"
    BALANCE_OVERRIDDEN = "balance_overridden"
    PAIRED_WRITE_COMPENSATED = "paired_write_compensated"
    PAIRED_WRITE_FAILED = "paired_write_failed"

    # Import / export
    STATEMENT_IMPORTED = "statement_imported"
    REPORT_EXPORTED = "report_exported"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Resource name (e.g., 'accounts', 'transactions')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Server-assigned id of the entity this event relates to"
    )
    user_id: Optional[str] = Field(
        default=None,
        description="Authenticated user the action ran for"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., both writes of a paired write)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_storage_dict(self) -> dict:
        """
        JSON-safe form for the local audit log.

        Details are round-tripped through json so Decimals and dates
        are stored as strings.
        """
        data = self.model_dump(mode="json")
        data["details"] = json.loads(json.dumps(self.details, default=str))
        return data


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_created("accounts", account.id, user_id)
        event = AuditEventBuilder.paired_write_failed(..., compensated=True)
    """

    @staticmethod
    def session_started(user_id: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_STARTED,
            user_id=user_id,
            correlation_id=correlation_id,
            description="User signed in",
            is_user_action=True,
        )

    @staticmethod
    def session_ended(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_ENDED,
            user_id=user_id,
            description="User signed out",
            is_user_action=True,
        )

    @staticmethod
    def collection_loaded(
        resource: str,
        count: int,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type=resource,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Loaded {count} {resource}",
            details={"count": count},
        )

    @staticmethod
    def collection_load_failed(
        resource: str,
        error_message: str,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COLLECTION_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=resource,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Failed to load {resource}",
            error_message=error_message,
        )

    @staticmethod
    def entity_created(
        resource: str,
        entity_id: str,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_CREATED,
            entity_type=resource,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Created {resource} record",
            is_user_action=True,
        )

    @staticmethod
    def entity_updated(
        resource: str,
        entity_id: str,
        fields: list[str],
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_UPDATED,
            entity_type=resource,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Updated {resource} record",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def entity_deleted(
        resource: str,
        entity_id: str,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTITY_DELETED,
            entity_type=resource,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Deleted {resource} record",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        resource: str,
        errors: dict[str, str],
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=resource,
            user_id=user_id,
            description=f"Rejected invalid {resource} input",
            details={"errors": errors},
            is_user_action=True,
        )

    @staticmethod
    def request_failed(
        resource: str,
        operation: str,
        error_message: str,
        user_id: Optional[str],
        status_code: Optional[int] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REQUEST_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=resource,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{operation} on {resource} failed",
            details={"operation": operation, "status_code": status_code},
            error_message=error_message,
        )

    @staticmethod
    def balance_adjusted(
        account_id: str,
        previous_balance: str,
        new_balance: str,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_ADJUSTED,
            entity_type="accounts",
            entity_id=account_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Account balance adjusted by a transaction write",
            details={
                "previous_balance": previous_balance,
                "new_balance": new_balance,
            },
        )

    @staticmethod
    def balance_overridden(
        account_id: str,
        new_balance: str,
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_OVERRIDDEN,
            severity=AuditSeverity.WARNING,
            entity_type="accounts",
            entity_id=account_id,
            user_id=user_id,
            description="Account balance set directly; it no longer follows its transactions",
            details={"new_balance": new_balance},
            is_user_action=True,
        )

    @staticmethod
    def paired_write_compensated(
        operation: str,
        failed_step: str,
        error_message: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAIRED_WRITE_COMPENSATED,
            severity=AuditSeverity.WARNING,
            entity_type="transactions",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Transaction {operation} rolled back after '{failed_step}' failed",
            details={"operation": operation, "failed_step": failed_step},
            error_message=error_message,
        )

    @staticmethod
    def paired_write_failed(
        operation: str,
        failed_step: str,
        error_message: str,
        user_id: Optional[str],
        correlation_id: UUID,
        pending_compensations: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAIRED_WRITE_FAILED,
            severity=AuditSeverity.CRITICAL,
            entity_type="transactions",
            user_id=user_id,
            correlation_id=correlation_id,
            description=(
                f"Transaction {operation} left partially applied: "
                f"'{failed_step}' failed and could not be rolled back"
            ),
            details={
                "operation": operation,
                "failed_step": failed_step,
                "pending_compensations": pending_compensations,
            },
            error_message=error_message,
        )

    @staticmethod
    def statement_imported(
        succeeded: int,
        failed: int,
        account_id: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATEMENT_IMPORTED,
            severity=AuditSeverity.WARNING if failed else AuditSeverity.INFO,
            entity_type="transactions",
            entity_id=account_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Imported statement: {succeeded} succeeded, {failed} failed",
            details={"succeeded": succeeded, "failed": failed},
            is_user_action=True,
        )

    @staticmethod
    def report_exported(
        report_type: str,
        filename: str,
        row_count: int,
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            user_id=user_id,
            description=f"Exported {report_type} report",
            details={"filename": filename, "rows": row_count},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
