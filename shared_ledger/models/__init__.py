"""
Data Models Package

This package contains all Pydantic models used in Shared Ledger.
All data flowing through the core must conform to these schemas.
"""

from shared_ledger.models.accounts import (
    BootstrapState,
    BootstrapStatus,
    Manager,
    Principal,
    Role,
    Session,
    credential_digest,
    utc_now,
)
from shared_ledger.models.activity import (
    ActivityEvent,
    ActivityEventBuilder,
    ActivityEventType,
    ActivitySeverity,
)
from shared_ledger.models.documents import Snapshot, StoredDocument
from shared_ledger.models.ledger import (
    ExpenseReport,
    LedgerState,
    ReportMode,
    Totals,
    Transaction,
    TransactionType,
    TypeFilter,
)

__all__ = [
    # Account models
    "BootstrapState",
    "BootstrapStatus",
    "Manager",
    "Principal",
    "Role",
    "Session",
    "credential_digest",
    "utc_now",
    # Activity models
    "ActivityEvent",
    "ActivityEventBuilder",
    "ActivityEventType",
    "ActivitySeverity",
    # Store documents
    "Snapshot",
    "StoredDocument",
    # Ledger models
    "ExpenseReport",
    "LedgerState",
    "ReportMode",
    "Totals",
    "Transaction",
    "TransactionType",
    "TypeFilter",
]
