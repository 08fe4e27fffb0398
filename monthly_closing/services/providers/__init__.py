"""Read-only external data providers."""

from monthly_closing.services.providers.interface import (
    BalanceProvider,
    ClosingProviders,
    GoalProvider,
    InvoiceProvider,
    ProviderError,
    ReconciliationStatusProvider,
    TransactionProvider,
)
from monthly_closing.services.providers.google_sheets import create_sheets_providers
from monthly_closing.services.providers.memory import (
    InMemoryDataSource,
    create_in_memory_providers,
)

__all__ = [
    "BalanceProvider",
    "ClosingProviders",
    "GoalProvider",
    "InMemoryDataSource",
    "InvoiceProvider",
    "ProviderError",
    "ReconciliationStatusProvider",
    "TransactionProvider",
    "create_in_memory_providers",
    "create_sheets_providers",
]
