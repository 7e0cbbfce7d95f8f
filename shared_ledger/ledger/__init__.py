"""Ledger package: transaction store, aggregation and live views."""

from shared_ledger.ledger.aggregator import filter_by_type, totals
from shared_ledger.ledger.live import CredentialView, LedgerView, SnapshotChannel
from shared_ledger.ledger.store import (
    TRANSACTIONS_COLLECTION,
    LedgerStore,
    order_for_display,
    parse_amount,
)

__all__ = [
    "CredentialView",
    "LedgerStore",
    "LedgerView",
    "SnapshotChannel",
    "TRANSACTIONS_COLLECTION",
    "filter_by_type",
    "order_for_display",
    "parse_amount",
    "totals",
]
