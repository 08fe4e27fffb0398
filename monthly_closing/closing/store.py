"""
Closure Store - the closing state machine

States (per user and period):

    OPEN (no record) --close--> CLOSED --reopen--> REOPENED --close--> CLOSED ...

OPEN is only the initial state; a Closure is never deleted once committed.

CRITICAL BOUNDARIES:
1. close is gated by a checklist evaluated fresh on every call
2. reopen needs a CLOSED period and a non-empty reason
3. reopen copies the frozen values into previous_closure_snapshot before
   touching anything, and does NOT recompute totals
4. Every committed transition appends exactly one audit entry

ATOMICITY: The storage has no transactions, so a transition is committed
in a fixed order - closure write first, audit append second. If the
append fails the closure write is undone (compensation) and the caller
gets PersistenceFailure with no state change.

IDEMPOTENCY: A close carrying the request_id of the close that produced
the current CLOSED state is a retry and returns the stored closure as-is.
"""

from datetime import datetime
from typing import Callable, Optional, Union

import structlog

from monthly_closing.audit import AuditLog
from monthly_closing.checklist import ChecklistEvaluator
from monthly_closing.closing.locks import PeriodLocks
from monthly_closing.errors import (
    ClosingBlocked,
    InvalidCloseRequest,
    InvalidReopenRequest,
    PersistenceFailure,
)
from monthly_closing.models.audit import ClosureAuditEntry, ClosureAuditEntryBuilder
from monthly_closing.models.closure import (
    MAX_TEXT_LENGTH,
    ClosedPeriod,
    Closure,
    ClosureSnapshot,
    ClosureStatus,
    OpenPeriod,
    ReopenedPeriod,
    period_status_for,
)
from monthly_closing.periods import validate_period
from monthly_closing.services.storage import ClosureStorageInterface, StorageError
from monthly_closing.snapshot import SnapshotGenerator


logger = structlog.get_logger(__name__)


def _transitioned(closure: Closure, update: dict) -> Closure:
    """Copy of ``closure`` with ``update`` applied, validated like a new record."""
    return Closure.model_validate({**closure.model_dump(), **update})


def _snapshot_fields(snapshot: ClosureSnapshot) -> dict:
    return {
        "total_income": snapshot.total_income,
        "total_expenses": snapshot.total_expenses,
        "net_result": snapshot.net_result,
        "transaction_count": snapshot.transaction_count,
        "cash_adjustment_count": snapshot.cash_adjustment_count,
        "wallet_balances": snapshot.wallet_balances,
    }


class ClosureStore:
    """
    Owns Closure records and their close/reopen transitions.

    Stateless apart from the per-period locks: every read goes to storage.
    """

    def __init__(
        self,
        storage: ClosureStorageInterface,
        audit_log: AuditLog,
        checklist_evaluator: ChecklistEvaluator,
        snapshot_generator: SnapshotGenerator,
        locks: Optional[PeriodLocks] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self._storage = storage
        self._audit_log = audit_log
        self._checklist = checklist_evaluator
        self._snapshots = snapshot_generator
        self._locks = locks or PeriodLocks()
        self._clock = clock

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, user_id: str, year: int, month: int) -> Optional[Closure]:
        """Stored closure of a period, None while the period is open."""
        validate_period(year, month)
        try:
            return await self._storage.get_closure(user_id, year, month)
        except StorageError as e:
            raise PersistenceFailure(f"Could not read closure: {e}") from e

    async def get_period_status(
        self,
        user_id: str,
        year: int,
        month: int,
    ) -> Union[OpenPeriod, ClosedPeriod, ReopenedPeriod]:
        closure = await self.get(user_id, year, month)
        return period_status_for(user_id, year, month, closure)

    async def list_closures(self, user_id: str) -> list[Closure]:
        try:
            return await self._storage.list_closures(user_id)
        except StorageError as e:
            raise PersistenceFailure(f"Could not list closures: {e}") from e

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    async def close(
        self,
        user_id: str,
        year: int,
        month: int,
        notes: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> Closure:
        """
        Close a period.

        - No record: a fresh snapshot is frozen into a new CLOSED closure
        - REOPENED: a fresh snapshot replaces the totals, reopen fields stay
          as history
        - CLOSED, same request_id: retry, returned unchanged
        - CLOSED, new request: close re-confirmed, frozen totals untouched,
          earlier notes kept unless new ones are given

        Raises:
            ProviderUnavailable: If the checklist or snapshot sources are down
            ClosingBlocked: If a critical checklist item is pending
            InvalidCloseRequest: If the notes are longer than the record allows
            PersistenceFailure: If the transition could not be committed
        """
        validate_period(year, month)
        notes = notes.strip() if notes and notes.strip() else None
        if notes is not None and len(notes) > MAX_TEXT_LENGTH:
            raise InvalidCloseRequest(
                f"Closing notes are limited to {MAX_TEXT_LENGTH} characters"
            )
        log = logger.bind(user_id=user_id, period_year=year, period_month=month)

        async with self._locks.hold(user_id, year, month):
            existing = await self.get(user_id, year, month)

            if (
                existing is not None
                and existing.status == ClosureStatus.CLOSED
                and request_id is not None
                and existing.last_close_request_id == request_id
            ):
                log.info("closure_close_retry_ignored", request_id=request_id)
                return existing

            checklist = await self._checklist.evaluate(user_id, year, month)
            if checklist.outage:
                log.error("closure_close_provider_outage")
                raise checklist.error
            if not checklist.can_close:
                blocking = checklist.blocking_items
                log.warning(
                    "closure_close_blocked",
                    blocking=[item.id for item in blocking],
                )
                raise ClosingBlocked(blocking_items=blocking)

            now = self._clock()
            if existing is None:
                snapshot = await self._snapshots.generate(user_id, year, month)
                closure = Closure(
                    user_id=user_id,
                    period_year=year,
                    period_month=month,
                    status=ClosureStatus.CLOSED,
                    closed_at=now,
                    closed_by=user_id,
                    closing_notes=notes,
                    created_at=now,
                    updated_at=now,
                    last_close_request_id=request_id,
                    **_snapshot_fields(snapshot),
                )
            elif existing.status == ClosureStatus.REOPENED:
                snapshot = await self._snapshots.generate(user_id, year, month)
                closure = _transitioned(
                    existing,
                    {
                        "status": ClosureStatus.CLOSED,
                        "closed_at": now,
                        "closed_by": user_id,
                        "closing_notes": notes,
                        "updated_at": now,
                        "version": existing.version + 1,
                        "last_close_request_id": request_id,
                        **_snapshot_fields(snapshot),
                    }
                )
            else:
                # Already CLOSED by another request: totals stay frozen
                closure = _transitioned(
                    existing,
                    {
                        "closed_at": now,
                        "closed_by": user_id,
                        "closing_notes": notes if notes is not None else existing.closing_notes,
                        "updated_at": now,
                        "version": existing.version + 1,
                        "last_close_request_id": request_id,
                    }
                )

            entry = ClosureAuditEntryBuilder.closed(closure, request_id, timestamp=now)
            await self._commit(existing, closure, entry)

        log.info(
            "closure_closed",
            closure_id=str(closure.id),
            version=closure.version,
            net_result=str(closure.net_result),
        )
        return closure

    async def reopen(
        self,
        user_id: str,
        year: int,
        month: int,
        reason: str,
    ) -> Closure:
        """
        Reopen a closed period.

        The frozen values are kept (and copied to previous_closure_snapshot);
        only the next close refreshes them.

        Raises:
            InvalidReopenRequest: If the period is not CLOSED or reason is empty or too long
            PersistenceFailure: If the transition could not be committed
        """
        validate_period(year, month)
        reason = (reason or "").strip()
        if not reason:
            raise InvalidReopenRequest("A reason is required to reopen a period")
        if len(reason) > MAX_TEXT_LENGTH:
            raise InvalidReopenRequest(
                f"The reopen reason is limited to {MAX_TEXT_LENGTH} characters"
            )
        log = logger.bind(user_id=user_id, period_year=year, period_month=month)

        async with self._locks.hold(user_id, year, month):
            existing = await self.get(user_id, year, month)
            if existing is None:
                raise InvalidReopenRequest("Period is open: there is nothing to reopen")
            if existing.status != ClosureStatus.CLOSED:
                raise InvalidReopenRequest(
                    f"Period is {existing.status.value}: only a closed period can be reopened"
                )

            now = self._clock()
            closure = _transitioned(
                existing,
                {
                    "previous_closure_snapshot": existing.frozen_snapshot(),
                    "status": ClosureStatus.REOPENED,
                    "reopened_at": now,
                    "reopened_by": user_id,
                    "reopen_reason": reason,
                    "updated_at": now,
                    "version": existing.version + 1,
                }
            )
            entry = ClosureAuditEntryBuilder.reopened(closure, reason, timestamp=now)
            await self._commit(existing, closure, entry)

        log.info("closure_reopened", closure_id=str(closure.id), version=closure.version)
        return closure

    # =========================================================================
    # COMMIT / COMPENSATION
    # =========================================================================

    async def _commit(
        self,
        previous: Optional[Closure],
        closure: Closure,
        entry: ClosureAuditEntry,
    ) -> None:
        """Write the closure, then the audit entry; undo the write if the entry fails."""
        try:
            if previous is None:
                await self._storage.insert_closure(closure)
            else:
                await self._storage.update_closure(closure, expected_version=previous.version)
        except StorageError as e:
            logger.error(
                "closure_write_failed",
                closure_id=str(closure.id),
                error=str(e),
            )
            raise PersistenceFailure(f"Could not save closure: {e}") from e

        try:
            await self._audit_log.append(entry)
        except Exception as e:
            compensated = await self._compensate(previous, closure)
            raise PersistenceFailure(
                f"Could not record audit entry, transition undone: {e}"
                if compensated
                else f"Could not record audit entry and could not undo the transition: {e}",
                compensated=compensated,
            ) from e

    async def _compensate(self, previous: Optional[Closure], closure: Closure) -> bool:
        try:
            if previous is None:
                await self._storage.rollback_insert(closure.id)
            else:
                await self._storage.update_closure(previous, expected_version=closure.version)
        except Exception as e:
            logger.critical(
                "closure_compensation_failed",
                closure_id=str(closure.id),
                error=str(e),
            )
            return False

        logger.warning("closure_transition_compensated", closure_id=str(closure.id))
        return True
