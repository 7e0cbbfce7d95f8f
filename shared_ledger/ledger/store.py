"""
Ledger Store

Append/delete-only access to the `transactions` collection.

DESIGN DECISION: Transactions are never edited. A record is written once
with a store-assigned id and can only be erased afterwards, so concurrent
writers can never conflict: two managers adding expenses at the same moment
simply produce two documents.
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from shared_ledger.accounts.credentials import require_fields
from shared_ledger.activity import ActivityLogger
from shared_ledger.errors import InvalidAmountError, ValidationError
from shared_ledger.models.accounts import utc_now
from shared_ledger.models.documents import Snapshot
from shared_ledger.models.ledger import Transaction, TransactionType
from shared_ledger.services.storage import DocumentStoreInterface, Unsubscribe


TRANSACTIONS_COLLECTION = "transactions"


def parse_amount(raw: Any) -> Decimal:
    """
    Parse user input into a positive, finite Decimal.

    Strings are trimmed first. Anything else (blank, non-numeric, NaN,
    infinity, zero, negative) raises InvalidAmountError.
    """
    if isinstance(raw, bool):
        raise InvalidAmountError(raw)

    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        try:
            value = Decimal(raw.strip())
        except InvalidOperation:
            raise InvalidAmountError(raw)
    else:
        raise InvalidAmountError(raw)

    if not value.is_finite() or value <= 0:
        raise InvalidAmountError(raw)
    return value


def order_for_display(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Newest first; id breaks ties so the order is stable."""
    return sorted(transactions, key=lambda t: (t.date, t.id), reverse=True)


class LedgerStore:
    """Records, erases and observes ledger transactions."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        activity_logger: Optional[ActivityLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._activity = activity_logger or ActivityLogger()
        self._clock = clock

    async def record(
        self,
        type: Union[TransactionType, str],
        amount: Any,
        note: Optional[str] = "",
        receipt: Optional[str] = None,
        added_by: str = "",
        date: Optional[datetime] = None,
    ) -> Transaction:
        """
        Append a transaction.

        Args:
            type: income or expense
            amount: Positive number or numeric string
            note: Free text, trimmed
            receipt: Receipt file name, trimmed; blank means none
            added_by: Username of the author
            date: Timestamp; defaults to now (UTC)

        Raises:
            InvalidAmountError: amount is not a positive finite number
            EmptyFieldError: added_by is blank
            ValidationError: unknown transaction type
        """
        try:
            tx_type = TransactionType(type)
        except ValueError:
            raise ValidationError(f"Unknown transaction type: {type!r}")

        value = parse_amount(amount)
        (added_by,) = require_fields(added_by=added_by)

        try:
            draft = Transaction(
                id="pending",
                type=tx_type,
                amount=value,
                note=(note or "").strip(),
                receipt=(receipt or "").strip() or None,
                added_by=added_by,
                date=date or self._clock(),
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid transaction: {e.errors()[0]['msg']}")

        doc_id = await self._store.insert(TRANSACTIONS_COLLECTION, draft.to_document())
        transaction = draft.model_copy(update={"id": doc_id})

        self._activity.log_transaction_recorded(
            transaction_id=doc_id,
            transaction_type=tx_type.value,
            amount=str(value),
            added_by=added_by,
        )
        return transaction

    async def erase(self, transaction_id: str) -> bool:
        """
        Delete a transaction. Deleting an unknown id is a successful no-op.

        Returns:
            True if a document was removed
        """
        return await self._store.remove(TRANSACTIONS_COLLECTION, transaction_id)

    async def snapshot(self) -> list[Transaction]:
        """Current ledger, newest first."""
        return self.parse_snapshot(await self._store.fetch(TRANSACTIONS_COLLECTION))

    async def observe(self, callback: Callable[[list[Transaction]], None]) -> Unsubscribe:
        """Receive the full ledger, newest first, now and after every change."""
        return await self._store.subscribe(
            TRANSACTIONS_COLLECTION,
            lambda snapshot: callback(self.parse_snapshot(snapshot)),
        )

    def parse_snapshot(self, snapshot: Snapshot) -> list[Transaction]:
        """Convert stored documents to Transactions; malformed documents are logged and left out."""
        transactions = []
        for document in snapshot.documents:
            try:
                transactions.append(Transaction.from_document(document))
            except PydanticValidationError as e:
                self._activity.log_error(
                    "malformed_transaction",
                    str(e),
                    details={"doc_id": document.id},
                )
        return order_for_display(transactions)
