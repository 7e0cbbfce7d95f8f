"""
Google Sheets Document Store

DESIGN DECISION: Google Sheets can back the shared ledger because:
1. The owner can view the raw data directly in Sheets
2. No database setup required
3. Several devices can share one spreadsheet

TRADEOFFS:
- No server push: subscriptions are served by a polling producer task that
  re-reads the worksheet and pushes a snapshot only when something changed
- No transactions: the version check in `patch` happens right before the
  row write, which narrows but cannot fully close the conflict window
- Limited query capabilities (we read whole worksheets; fine for a
  household-sized ledger)

Layout: one worksheet per collection, one document per row:
    id | version | updated_at | data_json
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from shared_ledger.activity import ActivityLogger
from shared_ledger.config import get_settings
from shared_ledger.models.documents import Snapshot, StoredDocument
from shared_ledger.services.storage.interface import (
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    SnapshotCallback,
    StorageError,
    Unsubscribe,
    WriteConflictError,
)


# Column mapping shared by every collection worksheet
DOCUMENT_COLUMNS = [
    "id",
    "version",
    "updated_at",
    "data_json",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet for a collection."""
        spreadsheet = self.get_spreadsheet()
        title = self._settings.sheet_name_for(collection)
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(DOCUMENT_COLUMNS),
            )
            sheet.append_row(DOCUMENT_COLUMNS)
        return sheet


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    Document bodies are JSON-serialized into a single cell.
    """

    def __init__(
        self,
        client: Optional[GoogleSheetsClient] = None,
        poll_interval: Optional[float] = None,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        super().__init__(activity_logger)
        self._client = client or GoogleSheetsClient()
        self._poll_interval = poll_interval or get_settings().storage.poll_interval_seconds
        self._pollers: set[asyncio.Task] = set()

    def _document_to_row(self, document: StoredDocument) -> list:
        """Convert a StoredDocument to a spreadsheet row."""
        return [
            document.id,
            str(document.version),
            datetime.now(timezone.utc).isoformat(),
            json.dumps(document.data, ensure_ascii=False),
        ]

    def _row_to_document(self, row: list) -> StoredDocument:
        """Convert a spreadsheet row to a StoredDocument."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return StoredDocument(
            id=safe_get(0),
            version=int(safe_get(1, "1")),
            data=json.loads(safe_get(3, "{}")),
        )

    def _find_row(self, sheet: gspread.Worksheet, doc_id: str) -> tuple[Optional[int], Optional[list]]:
        """Locate a document row; returns (sheet_row_number, row) or (None, None)."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # Start from 2 (row 1 is header)
            if row and row[0] == doc_id:
                return idx, row
        return None, None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def fetch(self, collection: str) -> Snapshot:
        """Read every document row of a collection worksheet."""
        try:
            sheet = self._client.get_worksheet(collection)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except Exception as e:
            raise StorageError(f"Failed to read {collection}: {e}")

        documents = []
        for row in all_rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                documents.append(self._row_to_document(row))
            except (ValueError, TypeError) as e:
                self._activity.log_error(
                    "malformed_row",
                    str(e),
                    details={"collection": collection, "doc_id": row[0]},
                )

        return Snapshot(collection=collection, documents=tuple(documents))

    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def insert(self, collection: str, data: dict[str, Any]) -> str:
        """Append a new document row.

        Only connection failures before the append are retried; an append
        that errored may still have landed, so it surfaces as StorageError.
        """
        document = StoredDocument(id=uuid4().hex, version=1, data=data)
        try:
            sheet = self._client.get_worksheet(collection)
            sheet.append_row(self._document_to_row(document), value_input_option="RAW")
            return document.id
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {collection}: {e}")

    async def remove(self, collection: str, doc_id: str) -> bool:
        """Delete a document row; missing rows are not an error."""
        try:
            sheet = self._client.get_worksheet(collection)
            idx, _ = self._find_row(sheet, doc_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to remove {collection}/{doc_id}: {e}")

    async def patch(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> int:
        """Rewrite a document row after checking its version."""
        try:
            sheet = self._client.get_worksheet(collection)
            idx, row = self._find_row(sheet, doc_id)
            if idx is None:
                raise NotFoundError(f"Document not found: {collection}/{doc_id}")

            current = self._row_to_document(row)
            if expected_version is not None and current.version != expected_version:
                raise WriteConflictError(collection, doc_id, expected_version, current.version)

            updated = StoredDocument(
                id=doc_id,
                version=current.version + 1,
                data={**current.data, **fields},
            )
            sheet.update(
                range_name=f"A{idx}:D{idx}",
                values=[self._document_to_row(updated)],
                value_input_option="RAW",
            )
            return updated.version
        except (NotFoundError, WriteConflictError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to patch {collection}/{doc_id}: {e}")

    async def subscribe(self, collection: str, callback: SnapshotCallback) -> Unsubscribe:
        """Deliver the current snapshot, then poll for changes in the background."""
        snapshot = await self.fetch(collection)
        self._deliver(callback, snapshot)

        task = asyncio.create_task(
            self._poll(collection, callback, self._fingerprint(snapshot))
        )
        self._pollers.add(task)
        task.add_done_callback(self._pollers.discard)

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def close(self) -> None:
        for task in list(self._pollers):
            task.cancel()
        if self._pollers:
            await asyncio.gather(*self._pollers, return_exceptions=True)

    @staticmethod
    def _fingerprint(snapshot: Snapshot) -> tuple:
        return tuple((d.id, d.version) for d in snapshot.documents)

    async def _poll(self, collection: str, callback: SnapshotCallback, last: tuple) -> None:
        """Producer loop: push a snapshot whenever the worksheet content changes."""
        while True:
            await asyncio.sleep(self._poll_interval)
            try:
                snapshot = await self.fetch(collection)
            except StorageError as e:
                # Keep the subscription alive; the next poll may succeed
                self._activity.log_error("poll_failed", str(e), details={"collection": collection})
                continue

            fingerprint = self._fingerprint(snapshot)
            if fingerprint != last:
                last = fingerprint
                self._deliver(callback, snapshot)
