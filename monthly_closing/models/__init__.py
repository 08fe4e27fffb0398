"""
Data Models Package

This package contains all Pydantic models used by the closing engine.
All data flowing through the engine must conform to these schemas.
"""

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
    SNAPSHOT_SCHEMA_VERSION,
    CandidatePeriod,
    Closure,
    ClosedPeriod,
    ClosedPeriodInfo,
    ClosureSnapshot,
    ClosureStatus,
    FrozenSnapshot,
    OpenPeriod,
    PeriodState,
    PeriodStatus,
    ReopenedPeriod,
    WalletBalanceSnapshot,
    period_status_for,
)
from monthly_closing.models.records import (
    DateRange,
    TransactionRecord,
    WalletRecord,
)

__all__ = [
    # Closure models
    "SNAPSHOT_SCHEMA_VERSION",
    "CandidatePeriod",
    "Closure",
    "ClosedPeriod",
    "ClosedPeriodInfo",
    "ClosureSnapshot",
    "ClosureStatus",
    "FrozenSnapshot",
    "OpenPeriod",
    "PeriodState",
    "PeriodStatus",
    "ReopenedPeriod",
    "WalletBalanceSnapshot",
    "period_status_for",
    # Checklist models
    "ChecklistItem",
    "ChecklistItemStatus",
    "ClosingChecklist",
    # Audit models
    "ClosureAuditAction",
    "ClosureAuditEntry",
    "ClosureAuditEntryBuilder",
    "entry_from_sheets_row",
    # External records
    "DateRange",
    "TransactionRecord",
    "WalletRecord",
]
