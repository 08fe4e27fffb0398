"""
In-Memory Storage Implementation

Used for tests and for running the app without Google credentials.
Stored objects are copied on the way in and out so callers can never
mutate a stored closure by accident.

``fail_next(...)`` makes the next write raise StorageError, to exercise
the compensation path of the closure store.
"""

import itertools
from typing import Optional
from uuid import UUID

from monthly_closing.models.audit import ClosureAuditEntry
from monthly_closing.models.closure import Closure
from monthly_closing.services.storage.interface import (
    ClosureAuditStorageInterface,
    ClosureStorageInterface,
    ConcurrentModificationError,
    DuplicateError,
    NotFoundError,
    StorageError,
)


class InMemoryClosureStorage(ClosureStorageInterface):
    """Closures kept in a dict keyed by closure id."""

    def __init__(self):
        self._closures: dict[UUID, Closure] = {}
        self._failures: list[str] = []

    def fail_next(self, operation: str) -> None:
        """operation: 'insert', 'update' or 'rollback'."""
        self._failures.append(operation)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self._failures:
            self._failures.remove(operation)
            raise StorageError(f"Simulated {operation} failure")

    def _find(self, user_id: str, year: int, month: int) -> Optional[Closure]:
        for closure in self._closures.values():
            if closure.period_key == (user_id, year, month):
                return closure
        return None

    async def get_closure(
        self,
        user_id: str,
        year: int,
        month: int,
    ) -> Optional[Closure]:
        closure = self._find(user_id, year, month)
        return closure.model_copy(deep=True) if closure else None

    async def get_closure_by_id(self, closure_id: UUID) -> Optional[Closure]:
        closure = self._closures.get(closure_id)
        return closure.model_copy(deep=True) if closure else None

    async def list_closures(self, user_id: str) -> list[Closure]:
        closures = [
            c.model_copy(deep=True)
            for c in self._closures.values()
            if c.user_id == user_id
        ]
        closures.sort(key=lambda c: (c.period_year, c.period_month), reverse=True)
        return closures

    async def insert_closure(self, closure: Closure) -> None:
        self._maybe_fail("insert")
        if self._find(*closure.period_key) is not None or closure.id in self._closures:
            raise DuplicateError(
                f"Closure already exists for {closure.period_year}-{closure.period_month:02d}"
            )
        self._closures[closure.id] = closure.model_copy(deep=True)

    async def update_closure(self, closure: Closure, expected_version: int) -> None:
        self._maybe_fail("update")
        stored = self._closures.get(closure.id)
        if stored is None:
            raise NotFoundError(f"Closure not found: {closure.id}")
        if stored.version != expected_version:
            raise ConcurrentModificationError(
                f"Closure {closure.id} is at version {stored.version}, "
                f"expected {expected_version}"
            )
        self._closures[closure.id] = closure.model_copy(deep=True)

    async def rollback_insert(self, closure_id: UUID) -> None:
        self._maybe_fail("rollback")
        self._closures.pop(closure_id, None)

    def count(self) -> int:
        return len(self._closures)


class InMemoryClosureAuditStorage(ClosureAuditStorageInterface):
    """Append-only list of audit entries."""

    def __init__(self):
        self._entries: list[ClosureAuditEntry] = []
        self._sequence = itertools.count(1)
        self._fail_next_append = False

    def fail_next(self) -> None:
        self._fail_next_append = True

    async def append_entry(self, entry: ClosureAuditEntry) -> ClosureAuditEntry:
        if self._fail_next_append:
            self._fail_next_append = False
            raise StorageError("Simulated audit append failure")
        stored = entry.model_copy(update={"sequence": next(self._sequence)}, deep=True)
        self._entries.append(stored)
        return stored.model_copy(deep=True)

    async def list_entries(self, closure_id: UUID) -> list[ClosureAuditEntry]:
        entries = [e for e in self._entries if e.closure_id == closure_id]
        entries.sort(key=lambda e: (e.timestamp, e.sequence))
        return [e.model_copy(deep=True) for e in entries]

    async def list_entries_for_user(
        self,
        user_id: str,
        limit: int = 100,
    ) -> list[ClosureAuditEntry]:
        entries = [e for e in self._entries if e.user_id == user_id]
        entries.sort(key=lambda e: (e.timestamp, e.sequence), reverse=True)
        return [e.model_copy(deep=True) for e in entries[:limit]]

    def count(self) -> int:
        return len(self._entries)
