"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the hosted backend because:
1. Users can look at their own records directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions across rows (a multi-budget reconciliation can stop halfway)
- Limited query capabilities (we filter in Python)

Each collection is one worksheet, one document per row. The document
itself is stored as JSON so the sheet layout never changes when a model
grows a field.
"""

import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.config import get_settings
from finance_tracker.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finance_tracker.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
)


# Column layout of every document worksheet
DOCUMENT_COLUMNS = [
    "id",
    "owner",
    "updated_at",
    "document_json",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
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

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_collection_sheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        titles = {
            "transactions": self._settings.transactions_sheet_name,
            "budgets": self._settings.budgets_sheet_name,
        }
        return self._get_or_create_sheet(
            titles.get(collection, collection),
            DOCUMENT_COLUMNS,
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the remote document store.

    Rows are [id, owner, updated_at, document_json]. The owner and
    timestamp columns are duplicated out of the JSON for people
    browsing the sheet; reads only trust the JSON.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @staticmethod
    def _document_to_row(doc_id: str, document: Document) -> list:
        return [
            doc_id,
            str(document.get("owner", "")),
            str(document.get("updated_at", "")),
            json.dumps(document, default=str),
        ]

    @staticmethod
    def _row_to_document(row: list) -> Document:
        return json.loads(row[3])

    def _find_row(
        self,
        sheet: gspread.Worksheet,
        doc_id: str,
    ) -> tuple[Optional[int], Optional[list]]:
        """Return (1-based row index, row) for a document id."""
        all_rows = sheet.get_all_values()
        for idx, row in enumerate(all_rows[1:], start=2):  # row 1 is header
            if row and row[0] == doc_id:
                return idx, row
        return None, None

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        try:
            sheet = self._client.get_collection_sheet(collection)
            _, row = self._find_row(sheet, doc_id)
            return self._row_to_document(row) if row else None
        except Exception as e:
            raise StorageError(f"Failed to get {collection}/{doc_id}: {e}")

    async def put(self, collection: str, doc_id: str, document: Document) -> None:
        try:
            sheet = self._client.get_collection_sheet(collection)
            idx, _ = self._find_row(sheet, doc_id)
            new_row = self._document_to_row(doc_id, document)
            if idx is None:
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                sheet.update(
                    f"A{idx}:D{idx}",
                    [new_row],
                    value_input_option="RAW",
                )
        except Exception as e:
            raise StorageError(f"Failed to save {collection}/{doc_id}: {e}")

    async def patch(self, collection: str, doc_id: str, fields: Document) -> Document:
        try:
            sheet = self._client.get_collection_sheet(collection)
            idx, row = self._find_row(sheet, doc_id)
            if idx is None:
                raise NotFoundError(f"{collection}/{doc_id} not found")

            merged = {**self._row_to_document(row), **fields}
            sheet.update(
                f"A{idx}:D{idx}",
                [self._document_to_row(doc_id, merged)],
                value_input_option="RAW",
            )
            return merged
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection}/{doc_id}: {e}")

    async def delete(self, collection: str, doc_id: str) -> bool:
        try:
            sheet = self._client.get_collection_sheet(collection)
            idx, _ = self._find_row(sheet, doc_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete {collection}/{doc_id}: {e}")

    async def query(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Document]:
        try:
            sheet = self._client.get_collection_sheet(collection)
            all_rows = sheet.get_all_values()[1:]  # Skip header

            documents = []
            for row in all_rows:
                if len(row) < 4 or not row[0]:  # Skip empty rows
                    continue
                try:
                    document = self._row_to_document(row)
                except json.JSONDecodeError:
                    continue  # Skip malformed rows
                if document.get(field) == value:
                    documents.append(document)

            if order_by:
                documents.sort(
                    key=lambda d: d.get(order_by) or "",
                    reverse=descending,
                )
            return documents
        except Exception as e:
            raise StorageError(f"Failed to query {collection}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self, keep) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, IndexError):
                continue
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events(
                lambda row: len(row) > 6 and row[6] == str(correlation_id)
            )
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events(
                lambda row: len(row) > 5 and row[4] == entity_type and row[5] == entity_id
            )
            events.sort(key=lambda e: e.timestamp)
            return events
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._read_events(lambda row: True)
            # Sort newest first
            events.sort(key=lambda e: e.timestamp, reverse=True)
            return events[:limit]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
