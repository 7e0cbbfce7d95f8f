"""
Activity Logger

Every significant action in the core is logged as a structured event:
logins, registrations, credential and manager changes, ledger writes,
reports and subscriber failures.

The activity logger:
- Writes to the local structured log only (nothing is persisted)
- Never receives passwords
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from shared_ledger.models.activity import ActivityEvent, ActivityEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route structlog output through the stdlib root logger at `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level.upper(), logging.INFO))


class ActivityLogger:
    """Central activity logging service."""

    def __init__(self, name: str = "shared_ledger"):
        self._logger = structlog.get_logger(name)

    def log(self, event: ActivityEvent) -> None:
        """Log an activity event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("activity_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("activity_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("activity_event", **log_dict)
        else:
            self._logger.info("activity_event", **log_dict)

    # Accounts

    def log_principal_registered(self, username: str) -> None:
        self.log(ActivityEventBuilder.principal_registered(username))

    def log_login_succeeded(self, username: str, role: str) -> None:
        self.log(ActivityEventBuilder.login_succeeded(username, role))

    def log_login_failed(self, username: str, reason: str) -> None:
        self.log(ActivityEventBuilder.login_failed(username, reason))

    def log_session_revoked(self, username: str, session_id: UUID, reason: str) -> None:
        self.log(ActivityEventBuilder.session_revoked(username, session_id, reason))

    def log_session_rejected(self, username: str, session_id: UUID) -> None:
        self.log(ActivityEventBuilder.session_rejected(username, session_id))

    def log_permission_denied(self, username: str, role: str, capability: str) -> None:
        self.log(ActivityEventBuilder.permission_denied(username, role, capability))

    def log_manager_added(self, owner: str, manager: str) -> None:
        self.log(ActivityEventBuilder.manager_added(owner, manager))

    def log_manager_removed(self, owner: str, manager: str) -> None:
        self.log(ActivityEventBuilder.manager_removed(owner, manager))

    def log_credentials_changed(
        self,
        username: str,
        new_username: Optional[str],
        password_changed: bool,
    ) -> None:
        self.log(ActivityEventBuilder.credentials_changed(username, new_username, password_changed))

    # Ledger

    def log_transaction_recorded(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        added_by: str,
    ) -> None:
        self.log(ActivityEventBuilder.transaction_recorded(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            amount=amount,
            added_by=added_by,
        ))

    def log_transaction_erased(self, transaction_id: str, actor: str) -> None:
        self.log(ActivityEventBuilder.transaction_erased(transaction_id, actor))

    def log_report_generated(
        self,
        actor: str,
        mode: str,
        date_from: str,
        date_to: str,
        row_count: int,
        total: str,
    ) -> None:
        self.log(ActivityEventBuilder.report_generated(
            actor=actor,
            mode=mode,
            date_from=date_from,
            date_to=date_to,
            row_count=row_count,
            total=total,
        ))

    # System

    def log_subscriber_failed(self, collection: str, error_message: str) -> None:
        self.log(ActivityEventBuilder.subscriber_failed(collection, error_message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        self.log(ActivityEventBuilder.system_error(error_type, error_message, details))
