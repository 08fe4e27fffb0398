"""
Closure Audit Log

DESIGN DECISION: Every close and reopen is recorded.
This provides:
1. Complete traceability of who froze or unfroze a period
2. The frozen values (close) or discarded values (reopen) at that moment
3. The reason behind every reopen

The audit log:
- Is insert-only: no update or delete is exposed
- Logs every entry locally (structlog) as well as persisting it
- Raises when persistence fails - the closure store relies on that to
  undo the transition. An audit failure is never swallowed.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from monthly_closing.errors import PersistenceFailure
from monthly_closing.models.audit import ClosureAuditEntry
from monthly_closing.services.storage import ClosureAuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLog:
    """
    Append-only record of close/reopen actions.

    Persists entries to the audit storage and mirrors each one to the
    structured local log.
    """

    def __init__(self, storage: ClosureAuditStorageInterface):
        """
        Initialize audit log.

        Args:
            storage: Storage backend for persistence (required - an audit
                    log that only prints is not an audit log).
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def append(self, entry: ClosureAuditEntry) -> ClosureAuditEntry:
        """
        Append an audit entry.

        Returns:
            The stored entry (with its sequence)

        Raises:
            StorageError: If the entry could not be persisted
        """
        try:
            stored = await self._storage.append_entry(entry)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                entry_id=str(entry.entry_id),
                closure_id=str(entry.closure_id),
                action=entry.action.value,
            )
            raise

        self._logger.info("audit_entry", **stored.to_log_dict())
        return stored

    async def list_for(self, closure_id: UUID) -> list[ClosureAuditEntry]:
        """
        Entries of a closure, oldest first.

        Raises:
            PersistenceFailure: If the audit trail could not be read
        """
        try:
            return await self._storage.list_entries(closure_id)
        except StorageError as e:
            self._logger.error("audit_read_failed", closure_id=str(closure_id), error=str(e))
            raise PersistenceFailure(f"Could not read audit trail: {e}") from e

    async def list_for_user(
        self,
        user_id: str,
        limit: int = 100,
    ) -> list[ClosureAuditEntry]:
        """Most recent entries of a user, newest first."""
        try:
            return await self._storage.list_entries_for_user(user_id, limit=limit)
        except StorageError as e:
            self._logger.error("audit_read_failed", user_id=user_id, error=str(e))
            raise PersistenceFailure(f"Could not read audit trail: {e}") from e


def create_request_id(prefix: Optional[str] = None) -> str:
    """
    Create a new request ID for a close action.

    Generate it once when the user clicks "close" and pass the same value
    on every retry of that click.
    """
    request_id = str(uuid4())
    return f"{prefix}-{request_id}" if prefix else request_id
