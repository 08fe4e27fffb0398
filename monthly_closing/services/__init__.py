"""Services package."""

from monthly_closing.services.providers import (
    ClosingProviders,
    InMemoryDataSource,
    ProviderError,
    create_in_memory_providers,
    create_sheets_providers,
)
from monthly_closing.services.storage import (
    ClosureAuditStorageInterface,
    ClosureStorageInterface,
    ConcurrentModificationError,
    ConnectionError,
    DuplicateError,
    GoogleSheetsClient,
    GoogleSheetsClosureAuditStorage,
    GoogleSheetsClosureStorage,
    InMemoryClosureAuditStorage,
    InMemoryClosureStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Providers
    "ClosingProviders",
    "InMemoryDataSource",
    "ProviderError",
    "create_in_memory_providers",
    "create_sheets_providers",
    # Storage services
    "ClosureAuditStorageInterface",
    "ClosureStorageInterface",
    "ConcurrentModificationError",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsClient",
    "GoogleSheetsClosureAuditStorage",
    "GoogleSheetsClosureStorage",
    "InMemoryClosureAuditStorage",
    "InMemoryClosureStorage",
    "NotFoundError",
    "StorageError",
]
