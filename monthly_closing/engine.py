"""
Monthly Closing Engine

This module ties together all the components and defines the operations
the presentation layer uses:

    list_candidate_periods   - months offered for closing
    get_closure_for_period   - OpenPeriod | ClosedPeriod | ReopenedPeriod
    generate_checklist       - readiness gate, live data
    generate_snapshot        - preview of the totals, live data
    close / reopen           - the two transitions
    history                  - audit entries of a period

plus closed-month protection for transaction editing screens.

DESIGN DECISION: The engine holds no server truth in memory. Every call
reads the store, so two screens (or two processes) never disagree about
whether a month is closed.
"""

import asyncio
from datetime import date
from typing import Optional, Union

import structlog

from monthly_closing.audit import AuditLog
from monthly_closing.checklist import ChecklistEvaluator
from monthly_closing.closing import ClosureStore
from monthly_closing.config import get_settings
from monthly_closing.models.audit import ClosureAuditEntry
from monthly_closing.models.checklist import ClosingChecklist
from monthly_closing.models.closure import (
    CandidatePeriod,
    ClosedPeriod,
    ClosedPeriodInfo,
    Closure,
    ClosureSnapshot,
    ClosureStatus,
    OpenPeriod,
    ReopenedPeriod,
)
from monthly_closing.periods import list_candidate_periods, period_label
from monthly_closing.services.providers import (
    ClosingProviders,
    InMemoryDataSource,
    create_in_memory_providers,
    create_sheets_providers,
)
from monthly_closing.services.storage import (
    ClosureAuditStorageInterface,
    ClosureStorageInterface,
    GoogleSheetsClient,
    GoogleSheetsClosureAuditStorage,
    GoogleSheetsClosureStorage,
    InMemoryClosureAuditStorage,
    InMemoryClosureStorage,
)
from monthly_closing.snapshot import SnapshotGenerator


logger = structlog.get_logger(__name__)


class MonthlyClosingEngine:
    """
    Stateless service over the closure store and the providers.

    Every operation takes the acting user id explicitly; authentication
    happens in front of the engine.
    """

    def __init__(
        self,
        providers: ClosingProviders,
        closure_storage: ClosureStorageInterface,
        audit_storage: ClosureAuditStorageInterface,
    ):
        self._checklist = ChecklistEvaluator(providers)
        self._snapshots = SnapshotGenerator(providers)
        self._audit_log = AuditLog(audit_storage)
        self._store = ClosureStore(
            storage=closure_storage,
            audit_log=self._audit_log,
            checklist_evaluator=self._checklist,
            snapshot_generator=self._snapshots,
        )

    @property
    def store(self) -> ClosureStore:
        return self._store

    @property
    def audit_log(self) -> AuditLog:
        return self._audit_log

    # -------------------------------------------------------------------------
    # Period selection
    # -------------------------------------------------------------------------

    def list_candidate_periods(
        self,
        reference_date: Optional[date] = None,
        window_months: Optional[int] = None,
    ) -> list[CandidatePeriod]:
        return list_candidate_periods(reference_date or date.today(), window_months)

    async def get_closure_for_period(
        self,
        user_id: str,
        year: int,
        month: int,
    ) -> Union[OpenPeriod, ClosedPeriod, ReopenedPeriod]:
        return await self._store.get_period_status(user_id, year, month)

    async def list_closures(self, user_id: str) -> list[Closure]:
        """All closures of a user, newest period first."""
        return await self._store.list_closures(user_id)

    # -------------------------------------------------------------------------
    # Live data (preview)
    # -------------------------------------------------------------------------

    async def generate_checklist(self, user_id: str, year: int, month: int) -> ClosingChecklist:
        return await self._checklist.evaluate(user_id, year, month)

    async def generate_snapshot(self, user_id: str, year: int, month: int) -> ClosureSnapshot:
        """
        Preview totals from live data.

        For a CLOSED period show ``get_closure_for_period`` instead: the
        frozen numbers are the official ones.
        """
        return await self._snapshots.generate(user_id, year, month)

    async def preview_period(
        self,
        user_id: str,
        year: int,
        month: int,
    ) -> tuple[ClosingChecklist, ClosureSnapshot]:
        """
        Checklist and snapshot side by side, read concurrently.

        Raises:
            ProviderUnavailable: If the snapshot sources cannot be read
        """
        checklist, snapshot = await asyncio.gather(
            self.generate_checklist(user_id, year, month),
            self.generate_snapshot(user_id, year, month),
        )
        return checklist, snapshot

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def close(
        self,
        user_id: str,
        year: int,
        month: int,
        notes: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> Closure:
        return await self._store.close(user_id, year, month, notes=notes, request_id=request_id)

    async def reopen(self, user_id: str, year: int, month: int, reason: str) -> Closure:
        return await self._store.reopen(user_id, year, month, reason)

    async def history(self, user_id: str, year: int, month: int) -> list[ClosureAuditEntry]:
        """Audit entries of a period, oldest first (empty while never closed)."""
        closure = await self._store.get(user_id, year, month)
        if closure is None:
            return []
        return await self._audit_log.list_for(closure.id)

    # -------------------------------------------------------------------------
    # Closed-month protection
    # -------------------------------------------------------------------------

    async def is_month_closed(self, user_id: str, year: int, month: int) -> bool:
        """True only while CLOSED; a reopened month is editable again."""
        closure = await self._store.get(user_id, year, month)
        return closure is not None and closure.status == ClosureStatus.CLOSED

    async def is_date_in_closed_month(self, user_id: str, day: date) -> bool:
        return await self.is_month_closed(user_id, day.year, day.month)

    async def can_edit_transaction(self, user_id: str, transaction_date: date) -> bool:
        return not await self.is_date_in_closed_month(user_id, transaction_date)

    async def closed_periods(self, user_id: str) -> list[ClosedPeriodInfo]:
        closures = await self._store.list_closures(user_id)
        return [
            ClosedPeriodInfo(
                year=c.period_year,
                month=c.period_month,
                label=period_label(c.period_year, c.period_month),
                closed_at=c.closed_at,
            )
            for c in closures
            if c.status == ClosureStatus.CLOSED
        ]


def create_engine(
    backend: Optional[str] = None,
    data_source: Optional[InMemoryDataSource] = None,
) -> tuple[MonthlyClosingEngine, Optional[InMemoryDataSource]]:
    """
    Factory function to create the engine.

    Args:
        backend: 'google_sheets' or 'memory' (defaults to the configured backend)
        data_source: Data for the in-memory providers (memory backend only)

    Returns:
        (engine, in_memory_data_source) - the data source is None for Google Sheets
    """
    backend = backend or get_settings().closing.storage_backend

    if backend == "memory":
        providers, source = create_in_memory_providers(data_source)
        engine = MonthlyClosingEngine(
            providers=providers,
            closure_storage=InMemoryClosureStorage(),
            audit_storage=InMemoryClosureAuditStorage(),
        )
        logger.info("engine_created", backend=backend)
        return engine, source

    if backend == "google_sheets":
        sheets_client = GoogleSheetsClient()
        engine = MonthlyClosingEngine(
            providers=create_sheets_providers(sheets_client),
            closure_storage=GoogleSheetsClosureStorage(sheets_client),
            audit_storage=GoogleSheetsClosureAuditStorage(sheets_client),
        )
        logger.info("engine_created", backend=backend)
        return engine, None

    raise ValueError(f"Unknown storage backend: {backend}")
