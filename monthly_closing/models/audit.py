"""
Audit Models for Monthly Closing

Every close and reopen is recorded for forensic traceability.
This provides:
1. Complete history of who froze or unfroze a period, and when
2. The values that were frozen (close) or thrown away (reopen)
3. The reason behind every reopen

DESIGN DECISION: Audit entries are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator

from monthly_closing.models.closure import MAX_TEXT_LENGTH, Closure, FrozenSnapshot


class ClosureAuditAction(str, Enum):
    """Actions we audit."""
    CLOSE = "close"
    REOPEN = "reopen"


class ClosureAuditEntry(BaseModel):
    """
    A single audit entry.

    This is the core unit of our audit trail.
    Every successful close or reopen creates exactly one of these.
    """

    # Identity
    entry_id: UUID = Field(
        default_factory=uuid4,
        description="Unique entry identifier"
    )
    sequence: int = Field(
        default=0,
        ge=0,
        description="Monotonic position assigned by the storage on append"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the action happened (UTC)"
    )

    # What happened, to which closure, by whom
    closure_id: UUID
    user_id: str = Field(..., min_length=1)
    action: ClosureAuditAction
    reason: Optional[str] = Field(
        default=None,
        max_length=MAX_TEXT_LENGTH,
        description="Why the period was reopened (required for reopen)"
    )
    snapshot_data: FrozenSnapshot = Field(
        ...,
        description="Frozen values at the moment of the action"
    )
    request_id: Optional[str] = None

    @model_validator(mode='after')
    def validate_reason(self) -> 'ClosureAuditEntry':
        """A reopen without a reason is not auditable."""
        if self.action == ClosureAuditAction.REOPEN and not (
            self.reason and self.reason.strip()
        ):
            raise ValueError("A reopen audit entry requires a reason")
        return self

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "entry_id": str(self.entry_id),
            "timestamp": self.timestamp.isoformat(),
            "closure_id": str(self.closure_id),
            "user_id": self.user_id,
            "action": self.action.value,
            "reason": self.reason,
            "request_id": self.request_id,
            "total_income": str(self.snapshot_data.total_income),
            "total_expenses": str(self.snapshot_data.total_expenses),
            "net_result": str(self.snapshot_data.net_result),
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [entry_id, sequence, timestamp, closure_id, user_id, action,
         reason, request_id, snapshot_json]
        """
        return [
            str(self.entry_id),
            str(self.sequence),
            self.timestamp.isoformat(),
            str(self.closure_id),
            self.user_id,
            self.action.value,
            self.reason or "",
            self.request_id or "",
            json.dumps(self.snapshot_data.model_dump(mode="json")),
        ]


class ClosureAuditEntryBuilder:
    """
    Helper class to build audit entries for each transition.

    Usage:
        entry = ClosureAuditEntryBuilder.closed(closure, request_id)
        entry = ClosureAuditEntryBuilder.reopened(closure, reason)
    """

    @staticmethod
    def closed(
        closure: Closure,
        request_id: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ClosureAuditEntry:
        return ClosureAuditEntry(
            closure_id=closure.id,
            user_id=closure.closed_by or closure.user_id,
            action=ClosureAuditAction.CLOSE,
            snapshot_data=closure.frozen_snapshot(),
            request_id=request_id,
            timestamp=timestamp or datetime.utcnow(),
        )

    @staticmethod
    def reopened(
        closure: Closure,
        reason: str,
        timestamp: Optional[datetime] = None,
    ) -> ClosureAuditEntry:
        if closure.previous_closure_snapshot is None:
            raise ValueError("Reopened closure has no previous snapshot")
        return ClosureAuditEntry(
            closure_id=closure.id,
            user_id=closure.reopened_by or closure.user_id,
            action=ClosureAuditAction.REOPEN,
            reason=reason,
            snapshot_data=closure.previous_closure_snapshot,
            timestamp=timestamp or datetime.utcnow(),
        )


def entry_from_sheets_row(row: list) -> ClosureAuditEntry:
    """Inverse of ClosureAuditEntry.to_sheets_row."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default

    data: dict[str, Any] = json.loads(safe_get(8) or "{}")
    return ClosureAuditEntry(
        entry_id=UUID(safe_get(0)),
        sequence=int(safe_get(1, "0")),
        timestamp=datetime.fromisoformat(safe_get(2)),
        closure_id=UUID(safe_get(3)),
        user_id=safe_get(4),
        action=ClosureAuditAction(safe_get(5)),
        reason=safe_get(6) or None,
        request_id=safe_get(7) or None,
        snapshot_data=FrozenSnapshot.model_validate(data),
    )
