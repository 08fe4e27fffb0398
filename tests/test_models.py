"""
Tests for Monthly Closing models

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (in-memory providers and storage)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from pydantic import TypeAdapter, ValidationError

from monthly_closing.errors import (
    ClosingBlocked,
    InvalidCloseRequest,
    InvalidReopenRequest,
    PersistenceFailure,
    ProviderUnavailable,
)
from monthly_closing.models.audit import (
    ClosureAuditAction,
    ClosureAuditEntry,
    ClosureAuditEntryBuilder,
    entry_from_sheets_row,
)
from monthly_closing.models.checklist import (
    ChecklistItem,
    ChecklistItemStatus,
    ClosingChecklist,
)
from monthly_closing.models.closure import (
    ClosedPeriod,
    Closure,
    ClosureStatus,
    FrozenSnapshot,
    OpenPeriod,
    PeriodStatus,
    ReopenedPeriod,
    WalletBalanceSnapshot,
    period_status_for,
)
from monthly_closing.models.records import DateRange, TransactionRecord


def make_closure(**overrides) -> Closure:
    data = dict(
        user_id="user-1",
        period_year=2026,
        period_month=9,
        status=ClosureStatus.CLOSED,
        total_income=Decimal("5000.00"),
        total_expenses=Decimal("1250.50"),
        net_result=Decimal("3749.50"),
        transaction_count=4,
        cash_adjustment_count=1,
        wallet_balances=(
            WalletBalanceSnapshot(
                id="w-1", name="Checking", type="checking",
                balance=Decimal("4000.00"), currency="BRL",
            ),
        ),
        closed_at=datetime(2026, 10, 5, 12, 0),
        closed_by="user-1",
    )
    data.update(overrides)
    return Closure(**data)


class TestRecordModels:
    """Tests for the read models of external data."""

    def test_date_range_contains_bounds(self):
        """Both ends of the range are inclusive."""
        r = DateRange(start=date(2026, 9, 1), end=date(2026, 9, 30))
        assert r.contains(date(2026, 9, 1))
        assert r.contains(date(2026, 9, 30))
        assert not r.contains(date(2026, 10, 1))

    def test_date_range_rejects_reversed(self):
        """End before start is invalid."""
        with pytest.raises(ValueError):
            DateRange(start=date(2026, 9, 30), end=date(2026, 9, 1))

    def test_transaction_type_is_normalized(self):
        """Type and subtype are compared lowercase."""
        tx = TransactionRecord(amount=Decimal("10"), type=" INCOME ", subtype="Transfer")
        assert tx.type == "income"
        assert tx.subtype == "transfer"
        assert tx.is_income

    def test_blank_category_is_uncategorized(self):
        """Whitespace-only category counts as missing."""
        assert not TransactionRecord(amount=Decimal("1"), type="expense", category="  ").is_categorized
        assert not TransactionRecord(amount=Decimal("1"), type="expense").is_categorized
        assert TransactionRecord(amount=Decimal("1"), type="expense", category="food").is_categorized


class TestClosureModels:
    """Tests for the Closure record and its value objects."""

    def test_closure_defaults(self):
        """A new closure starts at version 1 with no reopen details."""
        closure = make_closure()
        assert closure.version == 1
        assert closure.reopened_at is None
        assert closure.previous_closure_snapshot is None
        assert closure.period_key == ("user-1", 2026, 9)

    def test_rejects_partial_reopen_fields(self):
        """Reopen details are all set or all empty."""
        with pytest.raises(ValidationError):
            make_closure(reopened_at=datetime(2026, 10, 6))

    def test_reopened_requires_details(self):
        """A REOPENED closure must say when, by whom and why."""
        with pytest.raises(ValidationError):
            make_closure(status=ClosureStatus.REOPENED)

    def test_rejects_invalid_month(self):
        """Month outside 1-12 is rejected."""
        with pytest.raises(ValidationError):
            make_closure(period_month=13)

    def test_frozen_snapshot_copies_values(self):
        """frozen_snapshot carries totals, wallets and closed_at."""
        closure = make_closure()
        snap = closure.frozen_snapshot()
        assert snap.total_income == Decimal("5000.00")
        assert snap.net_result == Decimal("3749.50")
        assert snap.wallet_balances == closure.wallet_balances
        assert snap.closed_at == closure.closed_at
        assert snap.schema_version == 1

    def test_unknown_wallet_schema_version_rejected(self):
        """Only known snapshot schema versions load."""
        with pytest.raises(ValidationError):
            WalletBalanceSnapshot.model_validate({
                "schema_version": 2,
                "id": "w-1",
                "name": "Checking",
                "type": "checking",
                "balance": "1",
                "currency": "BRL",
            })

    def test_snapshot_is_immutable(self):
        """Frozen value objects cannot be modified."""
        snap = make_closure().frozen_snapshot()
        with pytest.raises(ValidationError):
            snap.total_income = Decimal("0")


class TestPeriodStatus:
    """Tests for the tagged period status."""

    def test_no_closure_is_open(self):
        """A missing record is an explicit OpenPeriod."""
        status = period_status_for("user-1", 2026, 9, None)
        assert isinstance(status, OpenPeriod)
        assert status.state == "open"

    def test_wraps_by_status(self):
        """CLOSED and REOPENED records map to their own variants."""
        closed = make_closure()
        reopened = make_closure(
            status=ClosureStatus.REOPENED,
            reopened_at=datetime(2026, 10, 6),
            reopened_by="user-1",
            reopen_reason="late invoice",
        )
        assert isinstance(period_status_for("user-1", 2026, 9, closed), ClosedPeriod)
        assert isinstance(period_status_for("user-1", 2026, 9, reopened), ReopenedPeriod)

    def test_discriminated_union_parses(self):
        """PeriodStatus validates by its 'state' tag."""
        adapter = TypeAdapter(PeriodStatus)
        status = adapter.validate_python({
            "state": "open",
            "user_id": "user-1",
            "period_year": 2026,
            "period_month": 9,
        })
        assert isinstance(status, OpenPeriod)


class TestChecklistModels:
    """Tests for checklist gating."""

    def test_only_critical_pending_blocks(self):
        """Warnings and non-critical pending items never block."""
        checklist = ClosingChecklist(items=[
            ChecklistItem(id="a", label="A", status=ChecklistItemStatus.WARNING, critical=True),
            ChecklistItem(id="b", label="B", status=ChecklistItemStatus.PENDING, critical=False),
        ])
        assert checklist.can_close
        assert checklist.blocking_items == []

    def test_critical_pending_blocks(self):
        """A critical PENDING item turns can_close off."""
        checklist = ClosingChecklist(items=[
            ChecklistItem(id="a", label="A", status=ChecklistItemStatus.PENDING, critical=True),
        ])
        assert not checklist.can_close
        assert [i.id for i in checklist.blocking_items] == ["a"]

    def test_outage_never_closes(self):
        """An empty checklist from an outage is not 'all clear'."""
        checklist = ClosingChecklist(
            items=[],
            provider_errors={"goals": "down", "balances": "down"},
            outage=True,
        )
        assert not checklist.can_close
        assert isinstance(checklist.error, ProviderUnavailable)
        assert checklist.error.providers == ["balances", "goals"]

    def test_can_close_is_serialized(self):
        """can_close is part of the dumped checklist."""
        assert ClosingChecklist().model_dump()["can_close"] is True


class TestAuditModels:
    """Tests for closure audit entries."""

    def test_reopen_requires_reason(self):
        """A reopen entry without a reason is rejected."""
        with pytest.raises(ValidationError):
            ClosureAuditEntry(
                closure_id=uuid4(),
                user_id="user-1",
                action=ClosureAuditAction.REOPEN,
                reason="   ",
                snapshot_data=make_closure().frozen_snapshot(),
            )

    def test_builder_closed(self):
        """Close entries carry the new frozen values and the request id."""
        closure = make_closure()
        entry = ClosureAuditEntryBuilder.closed(closure, request_id="req-1")
        assert entry.action == ClosureAuditAction.CLOSE
        assert entry.closure_id == closure.id
        assert entry.request_id == "req-1"
        assert entry.snapshot_data == closure.frozen_snapshot()

    def test_builder_reopened_uses_previous_snapshot(self):
        """Reopen entries carry the values being discarded."""
        previous = FrozenSnapshot(
            total_income=Decimal("1"),
            total_expenses=Decimal("2"),
            net_result=Decimal("-1"),
            transaction_count=2,
        )
        closure = make_closure(
            status=ClosureStatus.REOPENED,
            reopened_at=datetime(2026, 10, 6),
            reopened_by="user-1",
            reopen_reason="late invoice",
            previous_closure_snapshot=previous,
        )
        entry = ClosureAuditEntryBuilder.reopened(closure, "late invoice")
        assert entry.snapshot_data == previous
        assert entry.reason == "late invoice"

    def test_sheets_row_is_readable_back(self):
        """A stored row reads back into the same entry."""
        entry = ClosureAuditEntryBuilder.closed(make_closure(), request_id="req-1")
        entry = entry.model_copy(update={"sequence": 7})
        row = entry.to_sheets_row()
        assert len(row) == 9
        assert entry_from_sheets_row(row) == entry

    def test_log_dict_is_flat_strings(self):
        """Structured log payload uses plain strings for ids and amounts."""
        data = ClosureAuditEntryBuilder.closed(make_closure()).to_log_dict()
        assert data["action"] == "close"
        assert data["net_result"] == "3749.50"


class TestErrors:
    """Tests for the engine error codes."""

    def test_codes(self):
        """Every error exposes a stable code."""
        assert ProviderUnavailable(["goals"]).to_dict()["code"] == "provider_unavailable"
        assert InvalidReopenRequest("no").to_dict()["code"] == "invalid_reopen_request"
        assert InvalidCloseRequest("no").to_dict()["code"] == "invalid_close_request"
        assert PersistenceFailure("x", compensated=False).to_dict() == {
            "code": "persistence_failure",
            "message": "x",
            "compensated": False,
        }

    def test_closing_blocked_lists_items(self):
        """ClosingBlocked names the items that blocked the close."""
        item = ChecklistItem(
            id="reconciliation",
            label="All bank accounts reconciled",
            status=ChecklistItemStatus.PENDING,
            critical=True,
        )
        data = ClosingBlocked([item]).to_dict()
        assert data["code"] == "closing_blocked"
        assert data["blocking_items"][0]["id"] == "reconciliation"
        assert "reconciliation" in data["message"]
