"""
Data Models Package

Pydantic models for account records, sync snapshots, results and audit events.
"""

from aiwallet.models.account import (
    AccessLevel,
    AccountSnapshot,
    PlanRecord,
    Session,
    ShareGrant,
    ShareTarget,
    UserRecord,
    utc_now_iso,
)
from aiwallet.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from aiwallet.models.results import (
    DeleteResult,
    ErrorKind,
    HealthStatus,
    LoginResult,
    OperationResult,
    PlanListResult,
    PlanResult,
    RegisterResult,
    ShareResult,
    SubscriptionResult,
    UserResult,
)

__all__ = [
    # Account models
    "AccessLevel",
    "AccountSnapshot",
    "PlanRecord",
    "Session",
    "ShareGrant",
    "ShareTarget",
    "UserRecord",
    "utc_now_iso",
    # Results
    "DeleteResult",
    "ErrorKind",
    "HealthStatus",
    "LoginResult",
    "OperationResult",
    "PlanListResult",
    "PlanResult",
    "RegisterResult",
    "ShareResult",
    "SubscriptionResult",
    "UserResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
