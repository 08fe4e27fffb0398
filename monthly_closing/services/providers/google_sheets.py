"""
Google Sheets Providers

Read-only providers over the worksheets the rest of the application keeps
(transactions, wallets, bank statement lines, goals, invoices).

Each sheet is expected to have a header row; rows are read with
``get_all_records`` and filtered in Python, like the closure storage.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog
from tenacity import retry, stop_after_attempt, wait_exponential

from monthly_closing.config import get_settings
from monthly_closing.models.records import DateRange, TransactionRecord, WalletRecord
from monthly_closing.services.providers.interface import (
    BalanceProvider,
    ClosingProviders,
    GoalProvider,
    InvoiceProvider,
    ProviderError,
    ReconciliationStatusProvider,
    TransactionProvider,
)
from monthly_closing.services.storage.google_sheets import GoogleSheetsClient


logger = structlog.get_logger(__name__)


def _parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValueError(f"Not an ISO date: {value!r}")


def _parse_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value).replace(",", "")) if value not in ("", None) else Decimal("0")
    except InvalidOperation:
        raise ValueError(f"Not a number: {value!r}")


class _SheetReader:
    """Shared row access for the sheet providers."""

    name = "sheet"

    def __init__(self, client: GoogleSheetsClient, sheet_name: str):
        self._client = client
        self._sheet_name = sheet_name

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _fetch(self) -> list[dict]:
        return self._client.get_worksheet(self._sheet_name).get_all_records()

    def _records_for(self, user_id: str) -> list[dict]:
        try:
            records = self._fetch()
        except Exception as e:
            logger.error(
                "provider_read_failed",
                provider=self.name,
                sheet=self._sheet_name,
                error=str(e),
            )
            raise ProviderError(self.name, f"cannot read sheet {self._sheet_name}: {e}")
        return [r for r in records if str(r.get("user_id", "")) == user_id]

    def _date_of(self, record: dict, column: str) -> Optional[date]:
        try:
            return _parse_date(record.get(column))
        except ValueError as e:
            raise ProviderError(self.name, f"malformed row in {self._sheet_name}: {e}")


class SheetsReconciliationProvider(_SheetReader, ReconciliationStatusProvider):
    name = ReconciliationStatusProvider.name

    async def count_pending(self, user_id: str, date_range: DateRange) -> int:
        count = 0
        for record in self._records_for(user_id):
            line_date = self._date_of(record, "transaction_date")
            if (
                line_date
                and date_range.contains(line_date)
                and str(record.get("reconciliation_status", "")).lower() == "pending"
            ):
                count += 1
        return count


class SheetsTransactionProvider(_SheetReader, TransactionProvider):
    name = TransactionProvider.name

    async def list_transactions(
        self,
        user_id: str,
        date_range: DateRange,
    ) -> list[TransactionRecord]:
        transactions = []
        for record in self._records_for(user_id):
            tx_date = self._date_of(record, "date")
            if not tx_date or not date_range.contains(tx_date):
                continue
            try:
                transactions.append(
                    TransactionRecord(
                        amount=_parse_decimal(record.get("amount")),
                        type=str(record.get("type", "")),
                        subtype=str(record.get("transaction_subtype", "")) or None,
                        category=str(record.get("category", "")) or None,
                        transaction_date=tx_date,
                    )
                )
            except ValueError as e:
                # A row we cannot read would silently change the totals
                raise ProviderError(self.name, f"malformed transaction row: {e}")
        return transactions


class SheetsBalanceProvider(_SheetReader, BalanceProvider):
    name = BalanceProvider.name

    async def list_active_wallets(self, user_id: str) -> list[WalletRecord]:
        wallets = []
        for record in self._records_for(user_id):
            if str(record.get("is_active", "true")).lower() in ("false", "0", "no"):
                continue
            try:
                wallets.append(
                    WalletRecord(
                        id=str(record.get("id", "")),
                        name=str(record.get("name", "")),
                        type=str(record.get("type", "")),
                        balance=_parse_decimal(record.get("current_balance")),
                        currency=str(record.get("currency", "")) or None,
                    )
                )
            except ValueError as e:
                raise ProviderError(self.name, f"malformed wallet row: {e}")
        return wallets


class SheetsGoalProvider(_SheetReader, GoalProvider):
    name = GoalProvider.name

    async def count(self, user_id: str) -> int:
        return len(self._records_for(user_id))


class SheetsInvoiceProvider(_SheetReader, InvoiceProvider):
    name = InvoiceProvider.name

    async def count_open_in_range(self, user_id: str, date_range: DateRange) -> int:
        count = 0
        for record in self._records_for(user_id):
            due = self._date_of(record, "due_date")
            if (
                due
                and date_range.contains(due)
                and str(record.get("status", "")).lower() == "open"
            ):
                count += 1
        return count


def create_sheets_providers(
    client: Optional[GoogleSheetsClient] = None,
) -> ClosingProviders:
    """Build the provider bundle over the configured spreadsheet."""
    client = client or GoogleSheetsClient()
    settings = get_settings().google_sheets
    return ClosingProviders(
        reconciliation=SheetsReconciliationProvider(client, settings.statement_lines_sheet_name),
        transactions=SheetsTransactionProvider(client, settings.transactions_sheet_name),
        balances=SheetsBalanceProvider(client, settings.wallets_sheet_name),
        goals=SheetsGoalProvider(client, settings.goals_sheet_name),
        invoices=SheetsInvoiceProvider(client, settings.invoices_sheet_name),
    )
