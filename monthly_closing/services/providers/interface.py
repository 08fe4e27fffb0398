"""
Abstract Provider Interfaces

DESIGN DECISION: The closing engine does not own transactions, wallets,
bank statements, goals or invoices. It only reads aggregates from them
through these narrow, read-only interfaces. This allows us to:
1. Read from Google Sheets today and a real database later
2. Use in-memory providers for testing
3. Keep the closing rules decoupled from where the data lives

Every provider raises ProviderError when its source cannot be read.
A provider must never answer "0" for a source it could not reach.
"""

from abc import ABC, abstractmethod

from monthly_closing.models.records import DateRange, TransactionRecord, WalletRecord


class ProviderError(Exception):
    """An external data source could not be read."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(f"{provider}: {message}")


class ReconciliationStatusProvider(ABC):
    """Bank statement reconciliation status."""

    name = "reconciliation"

    @abstractmethod
    async def count_pending(self, user_id: str, date_range: DateRange) -> int:
        """
        Count statement lines still pending reconciliation in the range.

        Raises:
            ProviderError: If the source cannot be read
        """
        pass


class TransactionProvider(ABC):
    """User transactions."""

    name = "transactions"

    @abstractmethod
    async def list_transactions(
        self,
        user_id: str,
        date_range: DateRange,
    ) -> list[TransactionRecord]:
        """
        List every transaction of the user dated within the range.

        Raises:
            ProviderError: If the source cannot be read
        """
        pass


class BalanceProvider(ABC):
    """Current wallet balances."""

    name = "balances"

    @abstractmethod
    async def list_active_wallets(self, user_id: str) -> list[WalletRecord]:
        """
        List the user's active wallets with their current balance.

        Raises:
            ProviderError: If the source cannot be read
        """
        pass


class GoalProvider(ABC):
    """Category goals."""

    name = "goals"

    @abstractmethod
    async def count(self, user_id: str) -> int:
        """
        Count the category goals the user has defined.

        Raises:
            ProviderError: If the source cannot be read
        """
        pass


class InvoiceProvider(ABC):
    """Credit-card invoices."""

    name = "invoices"

    @abstractmethod
    async def count_open_in_range(self, user_id: str, date_range: DateRange) -> int:
        """
        Count invoices still open whose due date falls in the range.

        Raises:
            ProviderError: If the source cannot be read
        """
        pass


class ClosingProviders:
    """The five read-only sources the engine consults, bundled together."""

    def __init__(
        self,
        reconciliation: ReconciliationStatusProvider,
        transactions: TransactionProvider,
        balances: BalanceProvider,
        goals: GoalProvider,
        invoices: InvoiceProvider,
    ):
        self.reconciliation = reconciliation
        self.transactions = transactions
        self.balances = balances
        self.goals = goals
        self.invoices = invoices
