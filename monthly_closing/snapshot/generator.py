"""
Closure Snapshot Generator

DESIGN DECISION: Snapshot generation is a pure read-aggregate.
It reads live transactions and wallet balances and returns totals.
It never writes anything, so it can be called speculatively for a preview
or authoritatively at close time.

RULES:
- Internal transfers are excluded from income and expense totals
- Income adds to total_income, every other type adds to total_expenses
- transaction_count counts every transaction in the period
- Wallet balances are the current balances at generation time, which is
  only meaningful when generation happens at close time

A provider failure raises ProviderUnavailable. Zero totals are never
returned in place of data we could not read.
"""

import asyncio
from datetime import datetime
from decimal import Decimal

import structlog

from monthly_closing.config import get_settings
from monthly_closing.errors import ProviderUnavailable
from monthly_closing.models.closure import ClosureSnapshot, WalletBalanceSnapshot
from monthly_closing.models.records import TransactionRecord, WalletRecord
from monthly_closing.periods import month_date_range
from monthly_closing.services.providers import ClosingProviders


logger = structlog.get_logger(__name__)


class SnapshotGenerator:
    """
    Aggregates a period's transactions and current wallet balances.

    GUARANTEES:
    - Only reports real data from the providers
    - Never invents or estimates
    - Loud failure if a provider cannot be read
    """

    def __init__(self, providers: ClosingProviders):
        self._providers = providers
        self._settings = get_settings().closing

    async def generate(self, user_id: str, year: int, month: int) -> ClosureSnapshot:
        """
        Build the snapshot of a period.

        Raises:
            ProviderUnavailable: If transactions or balances cannot be read
        """
        date_range = month_date_range(year, month)
        p = self._providers

        transactions, wallets = await asyncio.gather(
            p.transactions.list_transactions(user_id, date_range),
            p.balances.list_active_wallets(user_id),
            return_exceptions=True,
        )

        failed = []
        for name, result in ((p.transactions.name, transactions), (p.balances.name, wallets)):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failed.append(name)
                logger.error(
                    "snapshot_provider_failed",
                    provider=name,
                    user_id=user_id,
                    period_year=year,
                    period_month=month,
                    error=str(result),
                )
        if failed:
            raise ProviderUnavailable(providers=failed)

        snapshot = self._aggregate(user_id, year, month, transactions, wallets)
        logger.info(
            "snapshot_generated",
            user_id=user_id,
            period_year=year,
            period_month=month,
            transaction_count=snapshot.transaction_count,
            net_result=str(snapshot.net_result),
        )
        return snapshot

    def _aggregate(
        self,
        user_id: str,
        year: int,
        month: int,
        transactions: list[TransactionRecord],
        wallets: list[WalletRecord],
    ) -> ClosureSnapshot:
        transfer_subtypes = self._settings.transfer_subtypes_set
        cash_adjustment = self._settings.cash_adjustment_subtype

        total_income = Decimal("0")
        total_expenses = Decimal("0")
        cash_adjustment_count = 0

        for tx in transactions:
            if tx.subtype == cash_adjustment:
                cash_adjustment_count += 1
            if tx.subtype in transfer_subtypes:
                continue

            if tx.is_income:
                total_income += tx.amount
            else:
                total_expenses += tx.amount

        wallet_balances = tuple(
            WalletBalanceSnapshot(
                id=w.id,
                name=w.name,
                type=w.type,
                balance=w.balance,
                currency=w.currency or self._settings.default_currency,
            )
            for w in wallets
        )

        return ClosureSnapshot(
            user_id=user_id,
            period_year=year,
            period_month=month,
            total_income=total_income,
            total_expenses=total_expenses,
            net_result=total_income - total_expenses,
            transaction_count=len(transactions),
            cash_adjustment_count=cash_adjustment_count,
            wallet_balances=wallet_balances,
            generated_at=datetime.utcnow(),
        )
