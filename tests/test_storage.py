"""
Tests for the document stores

Test strategy:
1. The in-memory store shows the delivery contract directly
2. The Google Sheets store runs against a fake worksheet client
   (no API calls in tests)
"""

import asyncio

import pytest

from shared_ledger.services.storage import (
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    StorageError,
    WriteConflictError,
)
from shared_ledger.services.storage.google_sheets import DOCUMENT_COLUMNS


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the store."""

    def __init__(self):
        self.rows = [list(DOCUMENT_COLUMNS)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append([str(v) for v in values])

    def delete_rows(self, index):
        del self.rows[index - 1]

    def update(self, range_name=None, values=None, value_input_option=None):
        row_number = int(range_name.split(":")[0][1:])
        self.rows[row_number - 1] = [str(v) for v in values[0]]


class TimeoutAfterAppendWorksheet(FakeWorksheet):
    """A worksheet whose append lands but whose response never arrives."""

    def __init__(self):
        super().__init__()
        self.append_calls = 0

    def append_row(self, values, value_input_option=None):
        self.append_calls += 1
        super().append_row(values, value_input_option)
        raise TimeoutError("read timed out")


class FakeSheetsClient:
    def __init__(self):
        self.sheets = {}

    def get_worksheet(self, collection):
        return self.sheets.setdefault(collection, FakeWorksheet())


class TestInMemoryStore:
    """Tests for the in-memory document store."""

    def test_insert_and_fetch(self, store):
        """Test that inserted documents come back with version 1."""
        async def scenario():
            doc_id = await store.insert("transactions", {"amount": "5"})
            return doc_id, await store.fetch("transactions")

        doc_id, snapshot = asyncio.run(scenario())
        assert snapshot.by_id(doc_id).version == 1
        assert snapshot.by_id(doc_id).data == {"amount": "5"}

    def test_snapshots_are_independent(self, store):
        """Test that mutating a snapshot doesn't touch the store."""
        async def scenario():
            doc_id = await store.insert("admins", {"managers": []})
            first = await store.fetch("admins")
            first.by_id(doc_id).data["managers"].append("intruder")
            return doc_id, await store.fetch("admins")

        doc_id, second = asyncio.run(scenario())
        assert second.by_id(doc_id).data["managers"] == []

    def test_patch_bumps_version(self, store):
        """Test top-level field replacement and versioning."""
        async def scenario():
            doc_id = await store.insert("admins", {"username": "alice", "password": "pw"})
            version = await store.patch("admins", doc_id, {"password": "new"}, expected_version=1)
            return doc_id, version, await store.fetch("admins")

        doc_id, version, snapshot = asyncio.run(scenario())
        assert version == 2
        assert snapshot.by_id(doc_id).data == {"username": "alice", "password": "new"}

    def test_stale_patch_conflicts(self, store):
        """Test that a stale expected version is refused."""
        async def scenario():
            doc_id = await store.insert("admins", {"username": "alice"})
            await store.patch("admins", doc_id, {"username": "alicia"})
            await store.patch("admins", doc_id, {"username": "bob"}, expected_version=1)

        with pytest.raises(WriteConflictError) as exc:
            asyncio.run(scenario())
        assert exc.value.expected == 1
        assert exc.value.actual == 2

    def test_patch_missing_document(self, store):
        """Test that patching nothing is an error."""
        with pytest.raises(NotFoundError):
            asyncio.run(store.patch("admins", "missing", {"a": 1}))

    def test_remove_missing_document(self, store):
        """Test that removing nothing is not an error."""
        assert asyncio.run(store.remove("transactions", "missing")) is False

    def test_subscribe_pushes_full_snapshots(self, store):
        """Test initial delivery and delivery after every write."""
        seen = []

        async def scenario():
            unsubscribe = await store.subscribe("transactions", seen.append)
            first = await store.insert("transactions", {"n": 1})
            await store.insert("transactions", {"n": 2})
            await store.remove("transactions", first)
            unsubscribe()
            await store.insert("transactions", {"n": 3})

        asyncio.run(scenario())
        assert [s.size for s in seen] == [0, 1, 2, 1]
        assert store.subscriber_count("transactions") == 0

    def test_other_collections_are_not_pushed(self, store):
        """Test that subscriptions are per collection."""
        seen = []

        async def scenario():
            await store.subscribe("admins", seen.append)
            await store.insert("transactions", {"n": 1})

        asyncio.run(scenario())
        assert len(seen) == 1

    def test_failing_subscriber_does_not_stop_delivery(self, store):
        """Test that one broken observer can't starve the others."""
        seen = []

        def broken(snapshot):
            raise RuntimeError("render failed")

        async def scenario():
            await store.subscribe("transactions", broken)
            await store.subscribe("transactions", seen.append)
            await store.insert("transactions", {"n": 1})

        asyncio.run(scenario())
        assert [s.size for s in seen] == [0, 1]


class TestGoogleSheetsStore:
    """Tests for the Google Sheets document store."""

    @pytest.fixture
    def client(self):
        return FakeSheetsClient()

    @pytest.fixture
    def sheets_store(self, client):
        return GoogleSheetsDocumentStore(client=client, poll_interval=0.01)

    def test_insert_writes_one_row(self, sheets_store, client):
        """Test the row layout."""
        doc_id = asyncio.run(sheets_store.insert("transactions", {"note": "café"}))

        rows = client.sheets["transactions"].rows
        assert rows[0] == DOCUMENT_COLUMNS
        assert rows[1][0] == doc_id
        assert rows[1][1] == "1"
        assert "café" in rows[1][3]

    def test_failed_append_is_not_repeated(self, sheets_store, client):
        """Test that an append with an unknown outcome is reported, not retried."""
        sheet = client.sheets["transactions"] = TimeoutAfterAppendWorksheet()

        with pytest.raises(StorageError, match="Failed to insert"):
            asyncio.run(sheets_store.insert("transactions", {"note": "once"}))

        assert sheet.append_calls == 1
        assert len(sheet.rows) == 2

    def test_fetch_round_trip(self, sheets_store):
        """Test that documents read back as stored."""
        async def scenario():
            doc_id = await sheets_store.insert("admins", {"username": "alice", "managers": []})
            return doc_id, await sheets_store.fetch("admins")

        doc_id, snapshot = asyncio.run(scenario())
        assert snapshot.size == 1
        assert snapshot.by_id(doc_id).data == {"username": "alice", "managers": []}

    def test_patch_checks_version(self, sheets_store):
        """Test versioned patching and conflict detection."""
        async def scenario():
            doc_id = await sheets_store.insert("admins", {"username": "alice"})
            version = await sheets_store.patch("admins", doc_id, {"username": "alicia"}, expected_version=1)
            snapshot = await sheets_store.fetch("admins")
            with pytest.raises(WriteConflictError):
                await sheets_store.patch("admins", doc_id, {"username": "bob"}, expected_version=1)
            return version, snapshot.by_id(doc_id)

        version, document = asyncio.run(scenario())
        assert version == 2
        assert document.version == 2
        assert document.data["username"] == "alicia"

    def test_patch_missing_document(self, sheets_store):
        """Test that patching nothing is an error."""
        with pytest.raises(NotFoundError):
            asyncio.run(sheets_store.patch("admins", "missing", {"a": 1}))

    def test_remove(self, sheets_store, client):
        """Test row deletion and the missing-row no-op."""
        async def scenario():
            keep = await sheets_store.insert("transactions", {"n": 1})
            drop = await sheets_store.insert("transactions", {"n": 2})
            return keep, await sheets_store.remove("transactions", drop), await sheets_store.remove("transactions", drop)

        keep, first, second = asyncio.run(scenario())
        assert (first, second) == (True, False)
        assert [row[0] for row in client.sheets["transactions"].rows[1:]] == [keep]

    def test_malformed_rows_are_skipped(self, sheets_store, client):
        """Test that a hand-edited bad row doesn't break reads."""
        sheet = client.get_worksheet("transactions")
        sheet.rows.append(["bad", "not-a-number", "", "{}"])
        sheet.rows.append(["", "", "", ""])
        asyncio.run(sheets_store.insert("transactions", {"n": 1}))

        snapshot = asyncio.run(sheets_store.fetch("transactions"))
        assert snapshot.size == 1

    def test_subscription_polls_for_changes(self, sheets_store):
        """Test initial delivery, change delivery and shutdown."""
        seen = []

        async def scenario():
            await sheets_store.subscribe("transactions", seen.append)
            await sheets_store.insert("transactions", {"n": 1})
            await asyncio.sleep(0.1)
            await sheets_store.close()

        asyncio.run(scenario())
        assert [s.size for s in seen] == [0, 1]

    def test_unsubscribe_stops_polling(self, sheets_store):
        """Test that an unsubscribed callback gets nothing more."""
        seen = []

        async def scenario():
            unsubscribe = await sheets_store.subscribe("transactions", seen.append)
            unsubscribe()
            await sheets_store.insert("transactions", {"n": 1})
            await asyncio.sleep(0.05)
            await sheets_store.close()

        asyncio.run(scenario())
        assert [s.size for s in seen] == [0]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
