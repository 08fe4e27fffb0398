"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Non-technical users can view their closings directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (the closure store compensates with careful ordering)
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so we can swap
to PostgreSQL/SQLite later without changing the closing rules.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from monthly_closing.config import get_settings
from monthly_closing.models.audit import ClosureAuditEntry, entry_from_sheets_row
from monthly_closing.models.closure import (
    SNAPSHOT_SCHEMA_VERSION,
    Closure,
    ClosureStatus,
    FrozenSnapshot,
    WalletBalanceSnapshot,
)
from monthly_closing.services.storage.interface import (
    ClosureAuditStorageInterface,
    ClosureStorageInterface,
    ConcurrentModificationError,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)


# Column mappings for MonthlyClosures sheet
CLOSURE_COLUMNS = [
    "id",
    "user_id",
    "period_year",
    "period_month",
    "status",
    "total_income",
    "total_expenses",
    "net_result",
    "transaction_count",
    "cash_adjustment_count",
    "wallet_balances_json",
    "closed_at",
    "closed_by",
    "closing_notes",
    "reopened_at",
    "reopened_by",
    "reopen_reason",
    "previous_snapshot_json",
    "created_at",
    "updated_at",
    "version",
    "last_close_request_id",
]

# Column mappings for ClosureAudit sheet
AUDIT_COLUMNS = [
    "entry_id",
    "sequence",
    "timestamp",
    "closure_id",
    "user_id",
    "action",
    "reason",
    "request_id",
    "snapshot_json",
]

_READ_RETRY = dict(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    Shared by the closure storage and the sheet-backed providers.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(**_READ_RETRY)
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

    def get_worksheet(
        self,
        title: str,
        columns: Optional[list[str]] = None,
        rows: int = 1000,
    ) -> gspread.Worksheet:
        """
        Get a worksheet by title.

        If ``columns`` is given and the sheet is missing, it is created with
        that header row. Without ``columns`` a missing sheet is an error.
        """
        spreadsheet = self.get_spreadsheet()
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            if columns is None:
                raise NotFoundError(f"Worksheet not found: {title}")
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
            return sheet

    def get_closures_sheet(self) -> gspread.Worksheet:
        """Get or create the MonthlyClosures worksheet."""
        return self.get_worksheet(self._settings.closures_sheet_name, CLOSURE_COLUMNS)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the ClosureAudit worksheet."""
        return self.get_worksheet(
            self._settings.closure_audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def _dt(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ""


def _parse_dt(value: str) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _load_versioned(payload: str) -> Optional[dict]:
    """Parse a JSON column and reject unknown schema versions."""
    if not payload:
        return None
    data = json.loads(payload)
    version = data.get("schema_version")
    if version != SNAPSHOT_SCHEMA_VERSION:
        raise StorageError(f"Unsupported snapshot schema version: {version}")
    return data


class GoogleSheetsClosureStorage(ClosureStorageInterface):
    """
    Google Sheets implementation of closure storage.

    One closure per row. Wallet balances and the previous snapshot are
    JSON-serialized with their schema version.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _closure_to_row(self, closure: Closure) -> list:
        """Convert a Closure to a spreadsheet row."""
        wallets = {
            "schema_version": SNAPSHOT_SCHEMA_VERSION,
            "wallets": [w.model_dump(mode="json") for w in closure.wallet_balances],
        }
        previous = (
            json.dumps(closure.previous_closure_snapshot.model_dump(mode="json"))
            if closure.previous_closure_snapshot
            else ""
        )
        return [
            str(closure.id),
            closure.user_id,
            str(closure.period_year),
            str(closure.period_month),
            closure.status.value,
            str(closure.total_income),
            str(closure.total_expenses),
            str(closure.net_result),
            str(closure.transaction_count),
            str(closure.cash_adjustment_count),
            json.dumps(wallets),
            _dt(closure.closed_at),
            closure.closed_by or "",
            closure.closing_notes or "",
            _dt(closure.reopened_at),
            closure.reopened_by or "",
            closure.reopen_reason or "",
            previous,
            _dt(closure.created_at),
            _dt(closure.updated_at),
            str(closure.version),
            closure.last_close_request_id or "",
        ]

    def _row_to_closure(self, row: list) -> Closure:
        """Convert a spreadsheet row to a Closure."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        wallets_data = _load_versioned(safe_get(10))
        wallet_balances = tuple(
            WalletBalanceSnapshot.model_validate(w)
            for w in (wallets_data or {}).get("wallets", [])
        )
        previous_data = _load_versioned(safe_get(17))

        return Closure(
            id=UUID(safe_get(0)),
            user_id=safe_get(1),
            period_year=int(safe_get(2)),
            period_month=int(safe_get(3)),
            status=ClosureStatus(safe_get(4)),
            total_income=Decimal(safe_get(5, "0")),
            total_expenses=Decimal(safe_get(6, "0")),
            net_result=Decimal(safe_get(7, "0")),
            transaction_count=int(safe_get(8, "0")),
            cash_adjustment_count=int(safe_get(9, "0")),
            wallet_balances=wallet_balances,
            closed_at=_parse_dt(safe_get(11)),
            closed_by=safe_get(12) or None,
            closing_notes=safe_get(13) or None,
            reopened_at=_parse_dt(safe_get(14)),
            reopened_by=safe_get(15) or None,
            reopen_reason=safe_get(16) or None,
            previous_closure_snapshot=(
                FrozenSnapshot.model_validate(previous_data) if previous_data else None
            ),
            created_at=_parse_dt(safe_get(18)),
            updated_at=_parse_dt(safe_get(19)),
            version=int(safe_get(20, "1")),
            last_close_request_id=safe_get(21) or None,
        )

    @retry(**_READ_RETRY)
    def _read_rows(self) -> list[list]:
        """All data rows (header excluded)."""
        return self._client.get_closures_sheet().get_all_values()[1:]

    def _find_row(self, closure_id: UUID) -> tuple[int, Optional[list]]:
        """Sheet row index (1-based, header is row 1) and row for an id."""
        for idx, row in enumerate(self._read_rows(), start=2):
            if row and row[0] == str(closure_id):
                return idx, row
        return -1, None

    async def get_closure(
        self,
        user_id: str,
        year: int,
        month: int,
    ) -> Optional[Closure]:
        try:
            for row in self._read_rows():
                if (
                    len(row) > 3
                    and row[1] == user_id
                    and row[2] == str(year)
                    and row[3] == str(month)
                ):
                    return self._row_to_closure(row)
            return None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get closure: {e}")

    async def get_closure_by_id(self, closure_id: UUID) -> Optional[Closure]:
        try:
            _, row = self._find_row(closure_id)
            return self._row_to_closure(row) if row else None
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to get closure: {e}")

    async def list_closures(self, user_id: str) -> list[Closure]:
        try:
            closures = [
                self._row_to_closure(row)
                for row in self._read_rows()
                if row and len(row) > 1 and row[1] == user_id
            ]
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list closures: {e}")

        closures.sort(key=lambda c: (c.period_year, c.period_month), reverse=True)
        return closures

    async def insert_closure(self, closure: Closure) -> None:
        existing = await self.get_closure(*closure.period_key)
        if existing is not None:
            raise DuplicateError(
                f"Closure already exists for {closure.period_year}-{closure.period_month:02d}"
            )
        try:
            sheet = self._client.get_closures_sheet()
            sheet.append_row(self._closure_to_row(closure), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to save closure: {e}")

    async def update_closure(self, closure: Closure, expected_version: int) -> None:
        try:
            idx, row = self._find_row(closure.id)
            if row is None:
                raise NotFoundError(f"Closure not found: {closure.id}")
            stored_version = int(row[20]) if len(row) > 20 and row[20] else 1
            if stored_version != expected_version:
                raise ConcurrentModificationError(
                    f"Closure {closure.id} is at version {stored_version}, "
                    f"expected {expected_version}"
                )
            sheet = self._client.get_closures_sheet()
            sheet.update(
                range_name=f"A{idx}",
                values=[self._closure_to_row(closure)],
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update closure: {e}")

    async def rollback_insert(self, closure_id: UUID) -> None:
        try:
            idx, row = self._find_row(closure_id)
            if row is None:
                return
            self._client.get_closures_sheet().delete_rows(idx)
            logger.warning("closure_insert_rolled_back", closure_id=str(closure_id))
        except Exception as e:
            raise StorageError(f"Failed to roll back closure insert: {e}")


class GoogleSheetsClosureAuditStorage(ClosureAuditStorageInterface):
    """
    Google Sheets implementation of closure audit storage.

    Audit entries are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    @retry(**_READ_RETRY)
    def _read_rows(self) -> list[list]:
        return self._client.get_audit_sheet().get_all_values()[1:]

    def _read_entries(self, predicate) -> list[ClosureAuditEntry]:
        entries = []
        for row in self._read_rows():
            if row and row[0] and predicate(row):
                entries.append(entry_from_sheets_row(row))
        return entries

    async def append_entry(self, entry: ClosureAuditEntry) -> ClosureAuditEntry:
        # Not retried: a retried append could write the entry twice.
        try:
            sheet = self._client.get_audit_sheet()
            sequence = len(sheet.get_all_values())  # header counts as 0
            stored = entry.model_copy(update={"sequence": sequence})
            sheet.append_row(stored.to_sheets_row(), value_input_option="RAW")
            return stored
        except Exception as e:
            raise StorageError(f"Failed to write audit entry: {e}")

    async def list_entries(self, closure_id: UUID) -> list[ClosureAuditEntry]:
        try:
            entries = self._read_entries(
                lambda row: len(row) > 3 and row[3] == str(closure_id)
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit entries: {e}")

        # Sort chronologically
        entries.sort(key=lambda e: (e.timestamp, e.sequence))
        return entries

    async def list_entries_for_user(
        self,
        user_id: str,
        limit: int = 100,
    ) -> list[ClosureAuditEntry]:
        try:
            entries = self._read_entries(
                lambda row: len(row) > 4 and row[4] == user_id
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit entries: {e}")

        # Sort newest first
        entries.sort(key=lambda e: (e.timestamp, e.sequence), reverse=True)
        return entries[:limit]
