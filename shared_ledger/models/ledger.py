"""
Ledger Models for Shared Ledger

Transactions are immutable once written; the only later change is deletion.
Totals and reports are derived values and are never persisted.

DESIGN DECISION: Amounts are Decimal end to end. Sums are exact, so the
balance always equals income minus expense to the cent.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from shared_ledger.models.documents import StoredDocument


class TransactionType(str, Enum):
    """Direction of money."""
    INCOME = "income"
    EXPENSE = "expense"


class TypeFilter(str, Enum):
    """History filter: everything, or one transaction type."""
    ALL = "all"
    INCOME = "income"
    EXPENSE = "expense"


class ReportMode(str, Enum):
    """Date range selection for expense reports."""
    TODAY = "today"
    CUSTOM = "custom"


class Transaction(BaseModel):
    """
    A single income or expense entry.

    `id` is assigned by the store and is not part of the persisted body.
    `date` is always timezone-aware; naive timestamps are read as UTC.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(..., min_length=1)
    type: TransactionType
    amount: Decimal = Field(..., gt=0)
    note: str = Field(default="", max_length=1000)
    receipt: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Receipt file name; the file itself is not stored",
    )
    added_by: str = Field(..., min_length=1, alias="addedBy")
    date: datetime

    @field_validator("note", mode="before")
    @classmethod
    def none_note_is_blank(cls, v):
        return "" if v is None else v

    @field_validator("receipt")
    @classmethod
    def blank_receipt_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @field_validator("date")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type is TransactionType.EXPENSE

    def to_document(self) -> dict:
        """Persisted body (without the store-assigned id)."""
        return self.model_dump(mode="json", by_alias=True, exclude={"id"})

    @classmethod
    def from_document(cls, document: StoredDocument) -> "Transaction":
        return cls.model_validate({**document.data, "id": document.id})


class Totals(BaseModel):
    """Aggregate figures over one ledger snapshot."""
    model_config = ConfigDict(frozen=True)

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)

    @property
    def is_negative(self) -> bool:
        return self.balance < 0


class ExpenseReport(BaseModel):
    """Expense rows selected for a date range, ready to preview or print."""
    model_config = ConfigDict(frozen=True)

    mode: ReportMode
    date_from: date
    date_to: date
    rows: tuple[Transaction, ...] = ()
    total: Decimal = Decimal("0")

    @property
    def count(self) -> int:
        return len(self.rows)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    @property
    def is_single_day(self) -> bool:
        return self.date_from == self.date_to


class LedgerState(BaseModel):
    """What a live ledger view holds after one snapshot: rows and their totals."""
    model_config = ConfigDict(frozen=True)

    transactions: tuple[Transaction, ...] = ()
    totals: Totals = Totals()
