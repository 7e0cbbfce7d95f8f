"""
Activity Models for Shared Ledger

Significant actions (logins, credential changes, ledger writes) are emitted
as typed events to the local structured log.

DESIGN DECISION: Activity events are log records only. They are not
persisted anywhere, and they never carry passwords.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ActivityEventType(str, Enum):
    """Types of events we log."""
    # Accounts
    PRINCIPAL_REGISTERED = "principal_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    SESSION_REVOKED = "session_revoked"
    SESSION_REJECTED = "session_rejected"
    PERMISSION_DENIED = "permission_denied"
    MANAGER_ADDED = "manager_added"
    MANAGER_REMOVED = "manager_removed"
    CREDENTIALS_CHANGED = "credentials_changed"

    # Ledger
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_ERASED = "transaction_erased"
    REPORT_GENERATED = "report_generated"

    # System
    SUBSCRIBER_FAILED = "subscriber_failed"
    SYSTEM_ERROR = "system_error"


class ActivitySeverity(str, Enum):
    """Severity level for activity events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ActivityEvent(BaseModel):
    """A single activity event."""

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    event_type: ActivityEventType
    severity: ActivitySeverity = ActivitySeverity.INFO

    # Who did it
    actor: Optional[str] = Field(
        default=None,
        description="Username that triggered the event, if any"
    )

    # What it was about
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "actor": self.actor,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class ActivityEventBuilder:
    """
    Helper class to build activity events with common patterns.

    Usage:
        event = ActivityEventBuilder.login_succeeded("sara", "owner")
        event = ActivityEventBuilder.transaction_recorded(tx_id, "expense", "30.00", "sara")
    """

    @staticmethod
    def principal_registered(username: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.PRINCIPAL_REGISTERED,
            actor=username,
            entity_type="account",
            entity_id=username,
            description=f"Owner account registered: {username}",
        )

    @staticmethod
    def login_succeeded(username: str, role: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.LOGIN_SUCCEEDED,
            actor=username,
            entity_type="account",
            entity_id=username,
            description=f"Logged in as {role}",
            details={"role": role},
        )

    @staticmethod
    def login_failed(username: str, reason: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.LOGIN_FAILED,
            severity=ActivitySeverity.WARNING,
            actor=username or None,
            entity_type="account",
            description="Login failed",
            details={"reason": reason},
        )

    @staticmethod
    def session_revoked(username: str, session_id: UUID, reason: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SESSION_REVOKED,
            actor=username,
            entity_type="session",
            entity_id=str(session_id),
            description="Session revoked, login required",
            details={"reason": reason},
        )

    @staticmethod
    def session_rejected(username: str, session_id: UUID) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SESSION_REJECTED,
            severity=ActivitySeverity.WARNING,
            actor=username,
            entity_type="session",
            entity_id=str(session_id),
            description="Stale session rejected",
        )

    @staticmethod
    def permission_denied(username: str, role: str, capability: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.PERMISSION_DENIED,
            severity=ActivitySeverity.WARNING,
            actor=username,
            description=f"{role} may not {capability}",
            details={"role": role, "capability": capability},
        )

    @staticmethod
    def manager_added(owner: str, manager: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.MANAGER_ADDED,
            actor=owner,
            entity_type="account",
            entity_id=manager,
            description=f"Manager added: {manager}",
        )

    @staticmethod
    def manager_removed(owner: str, manager: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.MANAGER_REMOVED,
            actor=owner,
            entity_type="account",
            entity_id=manager,
            description=f"Manager removed: {manager}",
        )

    @staticmethod
    def credentials_changed(
        username: str,
        new_username: Optional[str],
        password_changed: bool,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.CREDENTIALS_CHANGED,
            actor=username,
            entity_type="account",
            entity_id=new_username or username,
            description="Credentials changed",
            details={
                "username_changed": bool(new_username and new_username != username),
                "password_changed": password_changed,
            },
        )

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        transaction_type: str,
        amount: str,
        added_by: str,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTION_RECORDED,
            actor=added_by,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{transaction_type.capitalize()} recorded: {amount}",
            details={"type": transaction_type, "amount": amount},
        )

    @staticmethod
    def transaction_erased(transaction_id: str, actor: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.TRANSACTION_ERASED,
            actor=actor,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
        )

    @staticmethod
    def report_generated(
        actor: str,
        mode: str,
        date_from: str,
        date_to: str,
        row_count: int,
        total: str,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.REPORT_GENERATED,
            actor=actor,
            entity_type="report",
            description=f"Expense report {date_from}..{date_to}: {row_count} rows",
            details={
                "mode": mode,
                "date_from": date_from,
                "date_to": date_to,
                "row_count": row_count,
                "total": total,
            },
        )

    @staticmethod
    def subscriber_failed(collection: str, error_message: str) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SUBSCRIBER_FAILED,
            severity=ActivitySeverity.ERROR,
            entity_type="collection",
            entity_id=collection,
            description=f"Snapshot subscriber failed on {collection}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> ActivityEvent:
        return ActivityEvent(
            event_type=ActivityEventType.SYSTEM_ERROR,
            severity=ActivitySeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
