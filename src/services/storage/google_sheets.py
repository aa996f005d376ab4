"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the remote document store because:
1. Users can see (and back up) their data without any tooling
2. No database setup required
3. Access is controlled per service account

LAYOUT:
- "Records" worksheet: one row per identity
  [identity_id, updated_at, document_json, ...continuation cells]
  The record set is one JSON document. A cell holds at most 50,000
  characters and a single month is roughly 1,700, so the document is
  split across as many cells of the row as it needs.
- "AuditLog" worksheet: append-only audit events

TRADEOFFS:
- A row is overwritten whole (last writer wins, no field-level merge)
- No transactions; a save is a single row update

Only connection setup is retried with tenacity. Loads and saves fail
fast: recovering from either is the user's call via retry().
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

import gspread
import structlog
from gspread.utils import rowcol_to_a1
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventType, AuditSeverity
from src.models.finance import (
    FinancialRecordSet,
    records_from_document,
    records_to_document,
)
from src.services.storage.interface import (
    AuditStorageInterface,
    PermissionDeniedError,
    RecordStoreInterface,
    StorageError,
    UnavailableError,
)


# Column mappings for Records sheet; the document may run on into
# unnamed cells to the right of document_json
RECORD_COLUMNS = [
    "identity_id",
    "updated_at",
    "document_json",
]
DOCUMENT_COLUMN = RECORD_COLUMNS.index("document_json")

# Google Sheets rejects cells longer than this
CELL_CHARACTER_LIMIT = 50_000
DOCUMENT_CHUNK_SIZE = 45_000

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "identity_id",
    "month_key",
    "correlation_id",
    "description",
    "details_json",
    "error_kind",
    "error_message",
    "is_user_action",
]


def _status_code(error: gspread.exceptions.APIError) -> Optional[int]:
    code = getattr(error, "code", None)
    if isinstance(code, int):
        return code
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


def translate_api_error(error: Exception, action: str) -> StorageError:
    """Map a gspread/transport failure onto the storage error taxonomy."""
    if isinstance(error, StorageError):
        return error
    if isinstance(error, gspread.exceptions.APIError) and _status_code(error) in (401, 403):
        return PermissionDeniedError(f"Permission denied while trying to {action}: {error}")
    return UnavailableError(f"Failed to {action}: {error}")


def split_document(document_json: str, chunk_size: int = DOCUMENT_CHUNK_SIZE) -> list[str]:
    """Cut a serialized document into cell-sized pieces (at least one)."""
    if not document_json:
        return [""]
    return [document_json[i:i + chunk_size] for i in range(0, len(document_json), chunk_size)]


def join_document(cells: list[str]) -> str:
    """Reassemble a document split by split_document; trailing blanks are ignored."""
    return "".join(cells)


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
        retry=retry_if_exception_type(UnavailableError),
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
                raise PermissionDeniedError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise UnavailableError(f"Failed to connect to Google Sheets: {e}")

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
                raise UnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
            except gspread.exceptions.APIError as e:
                raise translate_api_error(e, "open spreadsheet")
        return self._spreadsheet

    def _get_or_create_sheet(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_records_sheet(self) -> gspread.Worksheet:
        """Get or create the Records worksheet."""
        return self._get_or_create_sheet(
            self._settings.records_sheet_name, RECORD_COLUMNS, rows=1000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the remote record store.

    gspread is synchronous; every call runs in a worker thread so the
    event loop (and the user's editing) never blocks on the network.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._logger = structlog.get_logger(__name__)

    def _find_row(self, sheet: gspread.Worksheet, identity_id: str) -> tuple[Optional[int], list]:
        """Return (1-based row number, row values) for the identity, or (None, [])."""
        all_rows = sheet.get_all_values()
        # Row 1 is the header
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == identity_id:
                return idx, row
        return None, []

    def _load_sync(self, identity_id: str) -> Optional[FinancialRecordSet]:
        try:
            sheet = self._client.get_records_sheet()
            _, row = self._find_row(sheet, identity_id)
        except Exception as e:
            raise translate_api_error(e, "load records")

        if not row:
            return None

        document_json = join_document(row[DOCUMENT_COLUMN:])
        try:
            document = json.loads(document_json) if document_json else {}
            if not isinstance(document, dict):
                raise ValueError("document is not an object")
            return records_from_document(document)
        except (ValueError, ValidationError) as e:
            # The remote document is the source of truth; refuse to guess
            raise UnavailableError(f"Remote document for {identity_id} is unreadable: {e}")

    def _save_sync(self, identity_id: str, records: FinancialRecordSet) -> bool:
        # ASCII escapes keep the character count Sheets sees equal to len()
        document_json = json.dumps(records_to_document(records))
        row = [
            identity_id,
            datetime.now(timezone.utc).isoformat(),
            *split_document(document_json),
        ]
        try:
            sheet = self._client.get_records_sheet()
            idx, previous = self._find_row(sheet, identity_id)
            # Blank out continuation cells left over from a longer document
            row.extend([""] * (len(previous) - len(row)))
            if sheet.col_count < len(row):
                sheet.add_cols(len(row) - sheet.col_count)
            if idx is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update(
                    values=[row],
                    range_name=f"A{idx}:{rowcol_to_a1(idx, len(row))}",
                    value_input_option="RAW",
                )
        except Exception as e:
            raise translate_api_error(e, "save records")
        self._logger.debug("remote_document_written", identity_id=identity_id, cells=len(row) - DOCUMENT_COLUMN)
        return True

    def _clear_sync(self, identity_id: str) -> bool:
        try:
            sheet = self._client.get_records_sheet()
            idx, _ = self._find_row(sheet, identity_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
        except Exception as e:
            raise translate_api_error(e, "clear records")
        return True

    async def load(self, identity_id: str) -> Optional[FinancialRecordSet]:
        """Load an identity's document."""
        return await asyncio.to_thread(self._load_sync, identity_id)

    async def save(self, identity_id: str, records: FinancialRecordSet) -> bool:
        """Overwrite an identity's document (appending the row on first save)."""
        saved = await asyncio.to_thread(self._save_sync, identity_id, records)
        self._logger.info("remote_records_saved", identity_id=identity_id, months=len(records))
        return saved

    async def clear(self, identity_id: str) -> bool:
        """Delete an identity's row."""
        return await asyncio.to_thread(self._clear_sync, identity_id)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._logger = structlog.get_logger(__name__)

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
            identity_id=safe_get(4) or None,
            month_key=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_kind=safe_get(9) or None,
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )

    def _read_sync(self) -> list[list[str]]:
        sheet = self._client.get_audit_sheet()
        return sheet.get_all_values()

    def _append_sync(self, event: AuditEvent) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await asyncio.to_thread(self._append_sync, event)
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            self._logger.warning(
                "audit_append_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            all_rows = await asyncio.to_thread(self._read_sync)
        except Exception as e:
            raise translate_api_error(e, "read audit events")

        events = []
        for row in all_rows[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, ValidationError):
                    continue  # Skip malformed rows

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
