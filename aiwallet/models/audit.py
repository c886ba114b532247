"""
Audit Models for AIWallet

Every account operation and every storage decision (remote call, fallback,
mirror sync) is logged as an audit event. This provides:
1. Traceability of which store served each call
2. Debugging information when the backend flaps
3. A record of divergence between the backend and the local mirror

DESIGN DECISION: Audit events never carry credentials.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Kinds of events the sync layer records."""
    # Account operations
    USER_REGISTERED = "user_registered"
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"
    SUBSCRIPTION_UPDATED = "subscription_updated"
    SUBSCRIPTION_CANCELLED = "subscription_cancelled"
    ACCOUNT_DELETED = "account_deleted"
    OPERATION_COMPLETED = "operation_completed"
    OPERATION_REJECTED = "operation_rejected"

    # Storage routing
    REMOTE_CALL_FAILED = "remote_call_failed"
    LOCAL_FALLBACK_USED = "local_fallback_used"
    MIRROR_SYNCED = "mirror_synced"
    MIRROR_SYNC_FAILED = "mirror_sync_failed"

    # Local storage
    STORAGE_UNAVAILABLE = "storage_unavailable"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
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

    # Context - which operation, which store
    operation: Optional[str] = Field(
        default=None,
        description="Facade operation name (e.g., 'register')"
    )
    source: Optional[str] = Field(
        default=None,
        description="Store that served the call: 'remote' or 'local'"
    )
    user_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one facade call"
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
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Flatten for structlog keyword arguments."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "operation": self.operation,
            "source": self.source,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


_SUCCESS_EVENTS = {
    "register": AuditEventType.USER_REGISTERED,
    "login": AuditEventType.USER_LOGGED_IN,
    "update_subscription": AuditEventType.SUBSCRIPTION_UPDATED,
    "cancel_subscription": AuditEventType.SUBSCRIPTION_CANCELLED,
    "delete_account": AuditEventType.ACCOUNT_DELETED,
}


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.remote_call_failed("login", "timeout", cid)
        event = AuditEventBuilder.operation_completed("register", "remote", user_id, cid)
    """

    @staticmethod
    def operation_completed(
        operation: str,
        source: str,
        user_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=_SUCCESS_EVENTS.get(operation, AuditEventType.OPERATION_COMPLETED),
            operation=operation,
            source=source,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{operation} served by {source} store",
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        source: str,
        error: Optional[str],
        message: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.INFO,
            operation=operation,
            source=source,
            correlation_id=correlation_id,
            description=f"{operation} rejected by {source} store",
            details={"error": error},
            error_message=message,
        )

    @staticmethod
    def remote_call_failed(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_CALL_FAILED,
            severity=AuditSeverity.WARNING,
            operation=operation,
            source="remote",
            correlation_id=correlation_id,
            description=f"Backend unavailable for {operation}",
            error_message=error_message,
        )

    @staticmethod
    def local_fallback_used(
        operation: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOCAL_FALLBACK_USED,
            operation=operation,
            source="local",
            correlation_id=correlation_id,
            description=f"{operation} served by local mirror",
            details={"reason": reason},
        )

    @staticmethod
    def mirror_synced(
        operation: str,
        entity_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIRROR_SYNCED,
            severity=AuditSeverity.DEBUG,
            operation=operation,
            source="remote",
            correlation_id=correlation_id,
            description=f"Local mirror updated from {operation} response",
            details={"entity_id": entity_id},
        )

    @staticmethod
    def mirror_sync_failed(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIRROR_SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            operation=operation,
            source="local",
            correlation_id=correlation_id,
            description=f"Could not mirror {operation} response locally",
            error_message=error_message,
        )

    @staticmethod
    def storage_unavailable(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_UNAVAILABLE,
            severity=AuditSeverity.ERROR,
            operation=operation,
            source="local",
            correlation_id=correlation_id,
            description="Local storage rejected a write",
            error_message=error_message,
        )

    @staticmethod
    def user_logged_out(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_OUT,
            user_id=user_id,
            source="local",
            description="Session cleared",
        )
