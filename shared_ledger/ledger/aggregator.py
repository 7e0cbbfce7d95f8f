"""
Aggregator

Pure functions over a ledger snapshot.

DESIGN DECISION: Totals are recomputed from the whole snapshot every time.
There is no running counter to update, so deletions in any order can never
make the balance drift from the records.
"""

from decimal import Decimal
from typing import Iterable, Union

from shared_ledger.errors import ValidationError
from shared_ledger.models.ledger import Totals, Transaction, TypeFilter


def totals(snapshot: Iterable[Transaction]) -> Totals:
    """Income, expense, balance (income - expense) and record count."""
    transactions = list(snapshot)
    income = sum((t.amount for t in transactions if t.is_income), Decimal("0"))
    expense = sum((t.amount for t in transactions if t.is_expense), Decimal("0"))
    return Totals(
        income=income,
        expense=expense,
        balance=income - expense,
        count=len(transactions),
    )


def filter_by_type(
    snapshot: Iterable[Transaction],
    type_filter: Union[TypeFilter, str] = TypeFilter.ALL,
) -> list[Transaction]:
    """Keep every transaction, or only incomes, or only expenses. Order is preserved."""
    try:
        type_filter = TypeFilter(type_filter)
    except ValueError:
        raise ValidationError(f"Unknown transaction filter: {type_filter!r}")
    if type_filter is TypeFilter.ALL:
        return list(snapshot)
    return [t for t in snapshot if t.type.value == type_filter.value]
