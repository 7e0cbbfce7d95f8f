"""
Tests for the ledger store and aggregator

Test strategy:
1. Amount parsing is strict: only positive finite numbers get in
2. Records are append/delete only; erasing twice is harmless
3. Totals are exact Decimal sums recomputed from the snapshot
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from shared_ledger.errors import EmptyFieldError, InvalidAmountError, ValidationError
from shared_ledger.ledger import (
    TRANSACTIONS_COLLECTION,
    LedgerStore,
    filter_by_type,
    order_for_display,
    parse_amount,
    totals,
)
from shared_ledger.models import Transaction, TransactionType, TypeFilter


NOON = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


def tx(id, type, amount, date=NOON):
    return Transaction(
        id=id,
        type=type,
        amount=Decimal(amount),
        added_by="alice",
        date=date,
    )


class TestParseAmount:
    """Tests for amount parsing."""

    @pytest.mark.parametrize("raw,expected", [
        ("12.50", Decimal("12.50")),
        ("  7 ", Decimal("7")),
        (7, Decimal("7")),
        (1.5, Decimal("1.5")),
        (Decimal("0.01"), Decimal("0.01")),
    ])
    def test_valid_amounts(self, raw, expected):
        """Test accepted inputs."""
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [
        "", "   ", "abc", "12abc", "0", "-5", "NaN", "Infinity",
        0, -1, float("nan"), float("inf"), True, None, [],
    ])
    def test_invalid_amounts(self, raw):
        """Test rejected inputs."""
        with pytest.raises(InvalidAmountError):
            parse_amount(raw)

    def test_invalid_amount_is_a_validation_error(self):
        """Test the error hierarchy used by the UI."""
        with pytest.raises(ValidationError, match="valid amount"):
            parse_amount("abc")


class TestLedgerStore:
    """Tests for recording and erasing transactions."""

    def test_record(self, ledger, store):
        """Test that a transaction is stored with its author and timestamp."""
        recorded = asyncio.run(ledger.record(
            TransactionType.EXPENSE, " 30 ", "  Paper  ", " bill.jpg ", added_by="sara", date=NOON,
        ))
        assert recorded.id
        assert recorded.amount == Decimal("30")
        assert recorded.note == "Paper"
        assert recorded.receipt == "bill.jpg"

        document = asyncio.run(store.fetch(TRANSACTIONS_COLLECTION)).by_id(recorded.id)
        assert document.data["addedBy"] == "sara"
        assert document.data["type"] == "expense"

    def test_record_uses_clock(self, store):
        """Test that the timestamp defaults to the store clock."""
        ledger = LedgerStore(store, clock=lambda: NOON)
        recorded = asyncio.run(ledger.record("income", "100", added_by="alice"))
        assert recorded.date == NOON
        assert recorded.receipt is None

    def test_invalid_amount_writes_nothing(self, ledger, store):
        """Test that a rejected amount leaves the ledger untouched."""
        with pytest.raises(InvalidAmountError):
            asyncio.run(ledger.record("expense", "-3", added_by="sara"))
        assert asyncio.run(store.fetch(TRANSACTIONS_COLLECTION)).is_empty

    def test_unknown_type(self, ledger):
        """Test that only income and expense are accepted."""
        with pytest.raises(ValidationError, match="Unknown transaction type"):
            asyncio.run(ledger.record("gift", "10", added_by="sara"))

    def test_author_required(self, ledger):
        """Test that every transaction names its author."""
        with pytest.raises(EmptyFieldError):
            asyncio.run(ledger.record("income", "10", added_by="  "))

    def test_erase(self, ledger):
        """Test deletion, then deletion of the same id again."""
        async def scenario():
            recorded = await ledger.record("income", "10", added_by="alice")
            first = await ledger.erase(recorded.id)
            second = await ledger.erase(recorded.id)
            return first, second, await ledger.snapshot()

        first, second, remaining = asyncio.run(scenario())
        assert first is True
        assert second is False
        assert remaining == []

    def test_balance_survives_interleaved_erases(self, ledger):
        """Test that totals match the surviving records after out-of-order deletes."""
        entries = [
            ("income", "100"), ("expense", "30"), ("income", "45.50"),
            ("expense", "20"), ("expense", "7.25"), ("income", "12"),
        ]

        async def scenario():
            recorded = [
                await ledger.record(kind, amount, added_by="alice", date=NOON + timedelta(minutes=i))
                for i, (kind, amount) in enumerate(entries)
            ]
            for index in (4, 0, 3):
                await ledger.erase(recorded[index].id)
            before = await ledger.snapshot()
            removed = await ledger.erase("never-issued")
            return before, removed, await ledger.snapshot()

        before, removed, after = asyncio.run(scenario())

        assert removed is False
        assert after == before
        assert [t.amount for t in after] == [Decimal("12"), Decimal("45.50"), Decimal("30")]

        result = totals(after)
        income = sum((t.amount for t in after if t.is_income), Decimal("0"))
        expense = sum((t.amount for t in after if t.is_expense), Decimal("0"))
        assert result.balance == income - expense == Decimal("27.50")
        assert result.count == 3

    def test_snapshot_is_newest_first(self, ledger):
        """Test display order."""
        async def scenario():
            for hours in (1, 3, 2):
                await ledger.record("income", str(hours), added_by="alice", date=NOON + timedelta(hours=hours))
            return await ledger.snapshot()

        assert [t.amount for t in asyncio.run(scenario())] == [Decimal("3"), Decimal("2"), Decimal("1")]

    def test_malformed_documents_are_skipped(self, ledger, store):
        """Test that a bad stored document doesn't break the ledger."""
        async def scenario():
            await store.insert(TRANSACTIONS_COLLECTION, {"type": "expense", "amount": "oops"})
            await ledger.record("income", "5", added_by="alice")
            return await ledger.snapshot()

        snapshot = asyncio.run(scenario())
        assert len(snapshot) == 1
        assert snapshot[0].amount == Decimal("5")

    def test_observe(self, ledger):
        """Test that observers receive the full ledger after every change."""
        seen = []

        async def scenario():
            unsubscribe = await ledger.observe(seen.append)
            recorded = await ledger.record("income", "5", added_by="alice")
            await ledger.erase(recorded.id)
            unsubscribe()
            await ledger.record("income", "6", added_by="alice")

        asyncio.run(scenario())
        assert [len(snapshot) for snapshot in seen] == [0, 1, 0]


class TestAggregator:
    """Tests for totals and filtering."""

    def test_totals(self):
        """Test income 100, expenses 30 and 20."""
        result = totals([
            tx("a", TransactionType.INCOME, "100"),
            tx("b", TransactionType.EXPENSE, "30"),
            tx("c", TransactionType.EXPENSE, "20"),
        ])
        assert result.income == Decimal("100")
        assert result.expense == Decimal("50")
        assert result.balance == Decimal("50")
        assert result.count == 3

    def test_empty_ledger(self):
        """Test that an empty ledger totals zero."""
        result = totals([])
        assert result.income == result.expense == result.balance == Decimal("0")
        assert result.count == 0

    def test_sums_are_exact(self):
        """Test that cents don't drift."""
        result = totals([tx(str(i), TransactionType.INCOME, "0.10") for i in range(3)])
        assert result.income == Decimal("0.30")

    def test_negative_balance(self):
        """Test that expenses may exceed income."""
        result = totals([
            tx("a", TransactionType.INCOME, "10"),
            tx("b", TransactionType.EXPENSE, "25"),
        ])
        assert result.balance == Decimal("-15")
        assert result.is_negative

    def test_filter_by_type(self):
        """Test history filters."""
        ledger = [
            tx("a", TransactionType.INCOME, "100"),
            tx("b", TransactionType.EXPENSE, "30"),
        ]
        assert [t.id for t in filter_by_type(ledger, TypeFilter.ALL)] == ["a", "b"]
        assert [t.id for t in filter_by_type(ledger, "income")] == ["a"]
        assert [t.id for t in filter_by_type(ledger, TypeFilter.EXPENSE)] == ["b"]

    def test_unknown_filter(self):
        """Test that filters are a closed set."""
        with pytest.raises(ValidationError, match="Unknown transaction filter"):
            filter_by_type([], "transfers")

    def test_order_ties_break_on_id(self):
        """Test that equal timestamps still have a stable order."""
        ordered = order_for_display([
            tx("a", TransactionType.INCOME, "1"),
            tx("c", TransactionType.INCOME, "1"),
            tx("b", TransactionType.INCOME, "1"),
        ])
        assert [t.id for t in ordered] == ["c", "b", "a"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
