"""
Storage Services Package

Provides abstract interfaces and concrete implementations for closure storage.
Google Sheets is the production backend; the in-memory backend serves tests
and the demo mode.
"""

from monthly_closing.services.storage.interface import (
    ClosureAuditStorageInterface,
    ClosureStorageInterface,
    ConcurrentModificationError,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
)
from monthly_closing.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsClosureAuditStorage,
    GoogleSheetsClosureStorage,
)
from monthly_closing.services.storage.memory import (
    InMemoryClosureAuditStorage,
    InMemoryClosureStorage,
)

__all__ = [
    # Interfaces
    "ClosureAuditStorageInterface",
    "ClosureStorageInterface",
    # Exceptions
    "ConcurrentModificationError",
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsClosureAuditStorage",
    "GoogleSheetsClosureStorage",
    # In-memory implementation
    "InMemoryClosureAuditStorage",
    "InMemoryClosureStorage",
]
