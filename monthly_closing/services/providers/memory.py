"""
In-Memory Providers

A single data source that implements all five provider interfaces.
Used by the tests and by the demo mode of the app (storage_backend=memory).

``fail(provider_name)`` makes one provider raise ProviderError until
``recover(provider_name)`` is called, to exercise outage handling.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional

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


class InMemoryDataSource:
    """Holds the user data the providers read."""

    def __init__(self):
        self.transactions: dict[str, list[TransactionRecord]] = defaultdict(list)
        self.wallets: dict[str, list[WalletRecord]] = defaultdict(list)
        # (line_date, reconciliation_status)
        self.statement_lines: dict[str, list[tuple[date, str]]] = defaultdict(list)
        self.goals: dict[str, int] = defaultdict(int)
        # (due_date, status)
        self.invoices: dict[str, list[tuple[date, str]]] = defaultdict(list)
        self._failing: set[str] = set()

    def add_transaction(
        self,
        user_id: str,
        on: date,
        amount: str,
        type: str = "expense",
        subtype: Optional[str] = None,
        category: Optional[str] = "general",
    ) -> TransactionRecord:
        record = TransactionRecord(
            amount=Decimal(amount),
            type=type,
            subtype=subtype,
            category=category,
            transaction_date=on,
        )
        self.transactions[user_id].append(record)
        return record

    def add_wallet(
        self,
        user_id: str,
        wallet_id: str,
        name: str,
        type: str,
        balance: str,
        currency: Optional[str] = "BRL",
        is_active: bool = True,
    ) -> WalletRecord:
        wallet = WalletRecord(
            id=wallet_id,
            name=name,
            type=type,
            balance=Decimal(balance),
            currency=currency,
            is_active=is_active,
        )
        self.wallets[user_id].append(wallet)
        return wallet

    def add_statement_line(self, user_id: str, on: date, status: str = "pending") -> None:
        self.statement_lines[user_id].append((on, status))

    def reconcile_all(self, user_id: str) -> None:
        self.statement_lines[user_id] = [
            (on, "reconciled") for on, _ in self.statement_lines[user_id]
        ]

    def add_goal(self, user_id: str) -> None:
        self.goals[user_id] += 1

    def add_invoice(self, user_id: str, due: date, status: str = "open") -> None:
        self.invoices[user_id].append((due, status))

    def fail(self, provider_name: str) -> None:
        self._failing.add(provider_name)

    def recover(self, provider_name: str) -> None:
        self._failing.discard(provider_name)

    def check_available(self, provider_name: str) -> None:
        if provider_name in self._failing:
            raise ProviderError(provider_name, "simulated outage")


class InMemoryReconciliationProvider(ReconciliationStatusProvider):
    def __init__(self, source: InMemoryDataSource):
        self._source = source

    async def count_pending(self, user_id: str, date_range: DateRange) -> int:
        self._source.check_available(self.name)
        return sum(
            1
            for on, status in self._source.statement_lines[user_id]
            if status == "pending" and date_range.contains(on)
        )


class InMemoryTransactionProvider(TransactionProvider):
    def __init__(self, source: InMemoryDataSource):
        self._source = source

    async def list_transactions(
        self,
        user_id: str,
        date_range: DateRange,
    ) -> list[TransactionRecord]:
        self._source.check_available(self.name)
        return [
            tx
            for tx in self._source.transactions[user_id]
            if tx.transaction_date and date_range.contains(tx.transaction_date)
        ]


class InMemoryBalanceProvider(BalanceProvider):
    def __init__(self, source: InMemoryDataSource):
        self._source = source

    async def list_active_wallets(self, user_id: str) -> list[WalletRecord]:
        self._source.check_available(self.name)
        return [w for w in self._source.wallets[user_id] if w.is_active]


class InMemoryGoalProvider(GoalProvider):
    def __init__(self, source: InMemoryDataSource):
        self._source = source

    async def count(self, user_id: str) -> int:
        self._source.check_available(self.name)
        return self._source.goals[user_id]


class InMemoryInvoiceProvider(InvoiceProvider):
    def __init__(self, source: InMemoryDataSource):
        self._source = source

    async def count_open_in_range(self, user_id: str, date_range: DateRange) -> int:
        self._source.check_available(self.name)
        return sum(
            1
            for due, status in self._source.invoices[user_id]
            if status == "open" and date_range.contains(due)
        )


def create_in_memory_providers(
    source: Optional[InMemoryDataSource] = None,
) -> tuple[ClosingProviders, InMemoryDataSource]:
    """Build the provider bundle over one in-memory data source."""
    source = source or InMemoryDataSource()
    providers = ClosingProviders(
        reconciliation=InMemoryReconciliationProvider(source),
        transactions=InMemoryTransactionProvider(source),
        balances=InMemoryBalanceProvider(source),
        goals=InMemoryGoalProvider(source),
        invoices=InMemoryInvoiceProvider(source),
    )
    return providers, source
