"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the closing state machine decoupled from storage implementation

The interface is intentionally simple - we're not building a full ORM.
Just the operations the closing engine needs.

Closure writes are conditional on the ``version`` that was read, so two
processes cannot silently overwrite each other's transition.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from monthly_closing.models.audit import ClosureAuditEntry
from monthly_closing.models.closure import Closure


class ClosureStorageInterface(ABC):
    """
    Abstract interface for closure record storage.

    Records are unique per (user_id, period_year, period_month).
    """

    @abstractmethod
    async def get_closure(
        self,
        user_id: str,
        year: int,
        month: int,
    ) -> Optional[Closure]:
        """
        Retrieve the closure of a period.

        Returns:
            The closure if one exists, None if the period is open
        """
        pass

    @abstractmethod
    async def get_closure_by_id(self, closure_id: UUID) -> Optional[Closure]:
        """Retrieve a closure by its ID."""
        pass

    @abstractmethod
    async def list_closures(self, user_id: str) -> list[Closure]:
        """
        List all closures of a user.

        Returns:
            Closures ordered by period, newest first
        """
        pass

    @abstractmethod
    async def insert_closure(self, closure: Closure) -> None:
        """
        Insert the first closure of a period.

        Raises:
            DuplicateError: If the period already has a closure
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_closure(self, closure: Closure, expected_version: int) -> None:
        """
        Replace a stored closure.

        The stored record must still be at ``expected_version``.

        Raises:
            NotFoundError: If the closure doesn't exist
            ConcurrentModificationError: If the stored version moved on
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def rollback_insert(self, closure_id: UUID) -> None:
        """
        Undo an ``insert_closure`` whose transition failed to commit.

        This is compensation only. Committed closures are never deleted.
        """
        pass


class ClosureAuditStorageInterface(ABC):
    """
    Abstract interface for closure audit storage.

    Audit entries are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_entry(self, entry: ClosureAuditEntry) -> ClosureAuditEntry:
        """
        Append an audit entry.

        Returns:
            The entry as stored (with its sequence assigned)

        Raises:
            StorageError: If the append fails
        """
        pass

    @abstractmethod
    async def list_entries(self, closure_id: UUID) -> list[ClosureAuditEntry]:
        """
        Get all entries for a closure.

        Returns:
            Entries in chronological order
        """
        pass

    @abstractmethod
    async def list_entries_for_user(
        self,
        user_id: str,
        limit: int = 100,
    ) -> list[ClosureAuditEntry]:
        """
        Get the most recent entries recorded for a user.

        Returns:
            Entries newest first
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConcurrentModificationError(StorageError):
    """The stored record changed since it was read."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
