"""
Shared fixtures for the closing engine tests.

Every fixture works on in-memory providers and storage: no real Google
Sheets calls in tests. The seeded month is September 2026 for "user-1".
"""

from datetime import date, datetime, timedelta

import pytest

from monthly_closing.audit import AuditLog
from monthly_closing.checklist import ChecklistEvaluator
from monthly_closing.closing import ClosureStore
from monthly_closing.engine import MonthlyClosingEngine
from monthly_closing.services.providers import InMemoryDataSource, create_in_memory_providers
from monthly_closing.services.storage import (
    InMemoryClosureAuditStorage,
    InMemoryClosureStorage,
)
from monthly_closing.snapshot import SnapshotGenerator


class FakeClock:
    """Deterministic clock for the closure store."""

    def __init__(self, start: datetime = datetime(2026, 10, 5, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def source() -> InMemoryDataSource:
    """
    A month that is ready to close:
    income 5000, expenses 1250.50 (transfer of 300 excluded), 4 transactions,
    1 cash adjustment, everything reconciled.
    """
    source = InMemoryDataSource()
    user = "user-1"

    source.add_transaction(user, date(2026, 9, 1), "5000.00", type="income", category="salary")
    source.add_transaction(user, date(2026, 9, 5), "1200.50", category="rent")
    source.add_transaction(user, date(2026, 9, 10), "300.00", subtype="transfer", category="transfer")
    source.add_transaction(user, date(2026, 9, 30), "50.00", subtype="cash_adjustment", category="cash")
    # Outside the period
    source.add_transaction(user, date(2026, 10, 1), "999.00", category="groceries")

    source.add_wallet(user, "w-1", "Checking", "checking", "4000.00")
    source.add_wallet(user, "w-2", "Wallet", "cash", "150.25")
    source.add_wallet(user, "w-3", "Old savings", "savings", "10.00", is_active=False)

    source.add_statement_line(user, date(2026, 9, 5), status="reconciled")
    source.add_goal(user)
    return source


@pytest.fixture
def closure_storage() -> InMemoryClosureStorage:
    return InMemoryClosureStorage()


@pytest.fixture
def audit_storage() -> InMemoryClosureAuditStorage:
    return InMemoryClosureAuditStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(source, closure_storage, audit_storage, clock) -> ClosureStore:
    providers, _ = create_in_memory_providers(source)
    return ClosureStore(
        storage=closure_storage,
        audit_log=AuditLog(audit_storage),
        checklist_evaluator=ChecklistEvaluator(providers),
        snapshot_generator=SnapshotGenerator(providers),
        clock=clock,
    )


@pytest.fixture
def engine(source, closure_storage, audit_storage) -> MonthlyClosingEngine:
    providers, _ = create_in_memory_providers(source)
    return MonthlyClosingEngine(
        providers=providers,
        closure_storage=closure_storage,
        audit_storage=audit_storage,
    )
