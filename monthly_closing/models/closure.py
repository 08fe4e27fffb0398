"""
Closure Models

A Closure is the persisted record of a period's closing state and its
frozen totals. There is at most one per (user, year, month).

DESIGN DECISION: "open" is never stored. A period without a Closure record
is open. At the API boundary this is made explicit with the PeriodStatus
union (OpenPeriod | ClosedPeriod | ReopenedPeriod) so callers cannot
mistake a missing record for an error.

DESIGN DECISION: Wallet balances and the previous-closure copy are typed,
versioned value objects rather than free-form JSON, so a change of shape
is a schema version bump instead of silent drift.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator


SNAPSHOT_SCHEMA_VERSION = 1

# Limit for free-text fields (closing notes, reopen reason)
MAX_TEXT_LENGTH = 2000


# =============================================================================
# ENUMS
# =============================================================================

class ClosureStatus(str, Enum):
    """Stored status of a Closure record."""
    CLOSED = "closed"
    REOPENED = "reopened"


class PeriodState(str, Enum):
    """State of a period as seen by callers (includes the implicit OPEN)."""
    OPEN = "open"
    CLOSED = "closed"
    REOPENED = "reopened"


# =============================================================================
# VALUE OBJECTS
# =============================================================================

class WalletBalanceSnapshot(BaseModel):
    """Point-in-time balance of one wallet."""
    model_config = ConfigDict(frozen=True)

    schema_version: Literal[1] = SNAPSHOT_SCHEMA_VERSION
    id: str
    name: str
    type: str
    balance: Decimal
    currency: str = Field(..., min_length=1, max_length=10)


class FrozenSnapshot(BaseModel):
    """
    Copy of a Closure's frozen values.

    Used both as ``previous_closure_snapshot`` (captured at reopen) and as
    the ``snapshot_data`` of audit entries.
    """
    model_config = ConfigDict(frozen=True)

    schema_version: Literal[1] = SNAPSHOT_SCHEMA_VERSION
    total_income: Decimal
    total_expenses: Decimal
    net_result: Decimal
    transaction_count: int = Field(..., ge=0)
    cash_adjustment_count: int = Field(default=0, ge=0)
    wallet_balances: tuple[WalletBalanceSnapshot, ...] = ()
    closed_at: Optional[datetime] = None


class ClosureSnapshot(BaseModel):
    """
    Aggregate computed for a period from live data.

    Can be produced speculatively (preview of an open period) or
    authoritatively (at close time, when it gets frozen into the Closure).
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    period_year: int
    period_month: int = Field(..., ge=1, le=12)
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    net_result: Decimal = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)
    cash_adjustment_count: int = Field(default=0, ge=0)
    wallet_balances: tuple[WalletBalanceSnapshot, ...] = ()
    generated_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# CLOSURE RECORD
# =============================================================================

class Closure(BaseModel):
    """
    Persisted closing state of one period.

    CRITICAL: While status is CLOSED the totals and wallet balances are
    frozen. Only an explicit close transition writes them.
    """

    # Identity
    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    period_year: int = Field(..., ge=1900, le=9999)
    period_month: int = Field(..., ge=1, le=12)

    status: ClosureStatus

    # Frozen values
    total_income: Decimal
    total_expenses: Decimal
    net_result: Decimal
    transaction_count: int = Field(..., ge=0)
    cash_adjustment_count: int = Field(default=0, ge=0)
    wallet_balances: tuple[WalletBalanceSnapshot, ...] = ()

    # Close details
    closed_at: Optional[datetime] = None
    closed_by: Optional[str] = None
    closing_notes: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)

    # Reopen details (all set or all empty)
    reopened_at: Optional[datetime] = None
    reopened_by: Optional[str] = None
    reopen_reason: Optional[str] = Field(default=None, max_length=MAX_TEXT_LENGTH)
    previous_closure_snapshot: Optional[FrozenSnapshot] = None

    # Bookkeeping
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = Field(
        default=1,
        ge=1,
        description="Incremented on every committed transition"
    )
    last_close_request_id: Optional[str] = Field(
        default=None,
        description="Request id of the last close, used to detect retries"
    )

    @model_validator(mode='after')
    def validate_reopen_fields(self) -> 'Closure':
        """Reopen fields are recorded together or not at all."""
        reopen_fields = (self.reopened_at, self.reopened_by, self.reopen_reason)
        if any(f is not None for f in reopen_fields) and not all(
            f is not None for f in reopen_fields
        ):
            raise ValueError(
                "reopened_at, reopened_by and reopen_reason must be set together"
            )
        if self.status == ClosureStatus.REOPENED and self.reopened_at is None:
            raise ValueError("A reopened closure must carry its reopen details")
        return self

    @property
    def period_key(self) -> tuple[str, int, int]:
        return (self.user_id, self.period_year, self.period_month)

    def frozen_snapshot(self) -> FrozenSnapshot:
        """Copy of the current frozen values."""
        return FrozenSnapshot(
            total_income=self.total_income,
            total_expenses=self.total_expenses,
            net_result=self.net_result,
            transaction_count=self.transaction_count,
            cash_adjustment_count=self.cash_adjustment_count,
            wallet_balances=self.wallet_balances,
            closed_at=self.closed_at,
        )


# =============================================================================
# PERIODS
# =============================================================================

class CandidatePeriod(BaseModel):
    """A month offered for closing."""
    model_config = ConfigDict(frozen=True)

    year: int
    month: int = Field(..., ge=1, le=12)
    label: str


class ClosedPeriodInfo(BaseModel):
    """A currently closed period, for closed-month protection displays."""
    model_config = ConfigDict(frozen=True)

    year: int
    month: int
    label: str
    closed_at: Optional[datetime] = None


class OpenPeriod(BaseModel):
    """No Closure record exists: the period is open."""
    state: Literal["open"] = "open"
    user_id: str
    period_year: int
    period_month: int


class ClosedPeriod(BaseModel):
    state: Literal["closed"] = "closed"
    closure: Closure


class ReopenedPeriod(BaseModel):
    state: Literal["reopened"] = "reopened"
    closure: Closure


PeriodStatus = Annotated[
    Union[OpenPeriod, ClosedPeriod, ReopenedPeriod],
    Field(discriminator="state"),
]


def period_status_for(
    user_id: str,
    year: int,
    month: int,
    closure: Optional[Closure],
) -> Union[OpenPeriod, ClosedPeriod, ReopenedPeriod]:
    """Wrap an optional Closure into the tagged period status."""
    if closure is None:
        return OpenPeriod(user_id=user_id, period_year=year, period_month=month)
    if closure.status == ClosureStatus.CLOSED:
        return ClosedPeriod(closure=closure)
    return ReopenedPeriod(closure=closure)
