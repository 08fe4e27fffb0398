"""Tests for the engine facade: period selection, preview and closed-month protection."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from monthly_closing.audit import create_request_id
from monthly_closing.engine import MonthlyClosingEngine, create_engine
from monthly_closing.errors import PersistenceFailure
from monthly_closing.models.audit import ClosureAuditAction
from monthly_closing.models.closure import ClosureStatus
from monthly_closing.services.providers import InMemoryDataSource, create_in_memory_providers
from monthly_closing.services.storage import (
    InMemoryClosureAuditStorage,
    InMemoryClosureStorage,
    StorageError,
)


USER = "user-1"


def run(coro):
    return asyncio.run(coro)


class UnreadableAuditStorage(InMemoryClosureAuditStorage):
    """Appends work, every read fails."""

    async def list_entries(self, closure_id):
        raise StorageError("Simulated audit read failure")

    async def list_entries_for_user(self, user_id, limit=100):
        raise StorageError("Simulated audit read failure")


class TestPeriodSelection:
    """Tests for the months offered and their status."""

    def test_candidate_periods(self, engine):
        periods = engine.list_candidate_periods(date(2026, 10, 19), window_months=2)
        assert [p.label for p in periods] == ["October 2026", "September 2026"]

    def test_status_of_open_period(self, engine):
        status = run(engine.get_closure_for_period(USER, 2026, 9))
        assert status.state == "open"
        assert (status.period_year, status.period_month) == (2026, 9)

    def test_status_of_closed_period(self, engine):
        run(engine.close(USER, 2026, 9))
        status = run(engine.get_closure_for_period(USER, 2026, 9))
        assert status.state == "closed"
        assert status.closure.total_income == Decimal("5000.00")

    def test_list_closures_newest_first(self, engine):
        run(engine.close(USER, 2026, 7))
        run(engine.close(USER, 2026, 9))
        run(engine.close(USER, 2025, 12))

        closures = run(engine.list_closures(USER))
        assert [(c.period_year, c.period_month) for c in closures] == [
            (2026, 9), (2026, 7), (2025, 12),
        ]


class TestPreview:
    """Tests for live checklist and snapshot."""

    def test_preview_period(self, engine):
        checklist, snapshot = run(engine.preview_period(USER, 2026, 9))
        assert checklist.can_close
        assert snapshot.net_result == Decimal("3749.50")

    def test_preview_follows_live_data(self, engine, source):
        """Unlike a closure, the preview changes with the data."""
        run(engine.close(USER, 2026, 9))
        source.add_transaction(USER, date(2026, 9, 20), "1000.00", type="income", category="bonus")

        snapshot = run(engine.generate_snapshot(USER, 2026, 9))
        closure = run(engine.get_closure_for_period(USER, 2026, 9)).closure
        assert snapshot.total_income == Decimal("6000.00")
        assert closure.total_income == Decimal("5000.00")

    def test_checklist(self, engine, source):
        source.add_statement_line(USER, date(2026, 9, 3))
        checklist = run(engine.generate_checklist(USER, 2026, 9))
        assert not checklist.can_close


class TestHistory:
    """Tests for the audit history of a period."""

    def test_history_of_open_period_is_empty(self, engine):
        assert run(engine.history(USER, 2026, 9)) == []

    def test_history_after_transitions(self, engine):
        run(engine.close(USER, 2026, 9, request_id=create_request_id()))
        run(engine.reopen(USER, 2026, 9, "late invoice"))

        entries = run(engine.history(USER, 2026, 9))
        assert [e.action for e in entries] == [ClosureAuditAction.CLOSE, ClosureAuditAction.REOPEN]

    def test_user_history_newest_first(self, engine):
        run(engine.close(USER, 2026, 8))
        run(engine.close(USER, 2026, 9))
        run(engine.reopen(USER, 2026, 9, "late invoice"))

        entries = run(engine.audit_log.list_for_user(USER, limit=2))
        assert [e.action for e in entries] == [ClosureAuditAction.REOPEN, ClosureAuditAction.CLOSE]

    def test_unreadable_audit_is_persistence_failure(self, source):
        """A failing audit read surfaces as an engine error, not a storage error."""
        providers, _ = create_in_memory_providers(source)
        engine = MonthlyClosingEngine(
            providers=providers,
            closure_storage=InMemoryClosureStorage(),
            audit_storage=UnreadableAuditStorage(),
        )
        run(engine.close(USER, 2026, 9))

        with pytest.raises(PersistenceFailure):
            run(engine.history(USER, 2026, 9))
        with pytest.raises(PersistenceFailure):
            run(engine.audit_log.list_for_user(USER))


class TestClosedMonthProtection:
    """Tests for the checks transaction screens use."""

    def test_open_month_is_editable(self, engine):
        assert not run(engine.is_month_closed(USER, 2026, 9))
        assert run(engine.can_edit_transaction(USER, date(2026, 9, 15)))

    def test_closed_month_is_locked(self, engine):
        run(engine.close(USER, 2026, 9))
        assert run(engine.is_month_closed(USER, 2026, 9))
        assert run(engine.is_date_in_closed_month(USER, date(2026, 9, 30)))
        assert not run(engine.can_edit_transaction(USER, date(2026, 9, 1)))
        assert run(engine.can_edit_transaction(USER, date(2026, 10, 1)))

    def test_reopened_month_is_editable_again(self, engine):
        run(engine.close(USER, 2026, 9))
        run(engine.reopen(USER, 2026, 9, "fix a category"))
        assert not run(engine.is_month_closed(USER, 2026, 9))
        assert run(engine.can_edit_transaction(USER, date(2026, 9, 15)))

    def test_closed_periods(self, engine):
        run(engine.close(USER, 2026, 8))
        run(engine.close(USER, 2026, 9))
        run(engine.reopen(USER, 2026, 8, "recheck"))

        periods = run(engine.closed_periods(USER))
        assert [(p.year, p.month, p.label) for p in periods] == [(2026, 9, "September 2026")]
        assert periods[0].closed_at is not None

    def test_other_user_unaffected(self, engine):
        run(engine.close(USER, 2026, 9))
        assert run(engine.can_edit_transaction("user-2", date(2026, 9, 15)))


class TestCreateEngine:
    """Tests for the engine factory."""

    def test_memory_backend(self):
        engine, source = create_engine(backend="memory")
        assert isinstance(engine, MonthlyClosingEngine)
        assert isinstance(source, InMemoryDataSource)

    def test_memory_backend_uses_given_source(self, source):
        engine, returned = create_engine(backend="memory", data_source=source)
        assert returned is source
        closure = run(engine.close(USER, 2026, 9))
        assert closure.status == ClosureStatus.CLOSED

    def test_backend_from_settings(self, monkeypatch):
        monkeypatch.setenv("CLOSING_STORAGE_BACKEND", "memory")
        _, source = create_engine()
        assert isinstance(source, InMemoryDataSource)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_engine(backend="postgres")
