"""
Closing Checklist Evaluator

Runs the fixed, ordered readiness checks for a period:

    1. reconciliation  - bank statement lines all reconciled   (CRITICAL)
    2. categorized     - every transaction has a category      (warning)
    3. cash            - cash wallet balance shown for review  (info)
    4. goals           - category goals shown for review       (info)
    5. invoices        - credit-card invoices of the period    (warning)

Only the reconciliation check can block a close.

FAILURE SEMANTICS:
- One provider failing degrades only its own check: a critical check
  becomes PENDING, a non-critical one becomes WARNING. Other checks still run.
- Every provider failing is an outage: the checklist comes back with no
  items, ``outage=True`` and can_close False. It is never reported as OK.
"""

import asyncio
from typing import Any

import structlog

from monthly_closing.config import get_settings
from monthly_closing.models.checklist import (
    ChecklistItem,
    ChecklistItemStatus,
    ClosingChecklist,
)
from monthly_closing.periods import month_date_range
from monthly_closing.services.providers import ClosingProviders


logger = structlog.get_logger(__name__)


class ChecklistEvaluator:
    """
    Produces a ClosingChecklist from the read-only providers.

    Stateless: every call reads live data, nothing is cached.
    """

    def __init__(self, providers: ClosingProviders):
        self._providers = providers
        self._settings = get_settings().closing

    async def evaluate(self, user_id: str, year: int, month: int) -> ClosingChecklist:
        """
        Evaluate every check for the period.

        Returns:
            The checklist. Inspect ``outage`` / ``error`` before trusting it.
        """
        date_range = month_date_range(year, month)
        p = self._providers

        results = await asyncio.gather(
            p.reconciliation.count_pending(user_id, date_range),
            p.transactions.list_transactions(user_id, date_range),
            p.balances.list_active_wallets(user_id),
            p.goals.count(user_id),
            p.invoices.count_open_in_range(user_id, date_range),
            return_exceptions=True,
        )
        names = [
            p.reconciliation.name,
            p.transactions.name,
            p.balances.name,
            p.goals.name,
            p.invoices.name,
        ]

        provider_errors: dict[str, str] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                provider_errors[name] = str(result)
                logger.warning(
                    "checklist_provider_failed",
                    provider=name,
                    user_id=user_id,
                    period_year=year,
                    period_month=month,
                    error=str(result),
                )

        if len(provider_errors) == len(names):
            logger.error(
                "checklist_provider_outage",
                user_id=user_id,
                period_year=year,
                period_month=month,
            )
            return ClosingChecklist(items=[], provider_errors=provider_errors, outage=True)

        pending_lines, transactions, wallets, goal_count, open_invoices = results
        items = [
            self._reconciliation_item(pending_lines),
            self._categorized_item(transactions),
            self._cash_item(wallets),
            self._goals_item(goal_count),
            self._invoices_item(open_invoices),
        ]
        checklist = ClosingChecklist(items=items, provider_errors=provider_errors)

        logger.info(
            "checklist_evaluated",
            user_id=user_id,
            period_year=year,
            period_month=month,
            can_close=checklist.can_close,
            degraded=sorted(provider_errors),
        )
        return checklist

    # -------------------------------------------------------------------------
    # Individual checks. Each receives either the provider result or the
    # exception the provider raised.
    # -------------------------------------------------------------------------

    @staticmethod
    def _unavailable(item_id: str, label: str, link: str, critical: bool) -> ChecklistItem:
        return ChecklistItem(
            id=item_id,
            label=label,
            status=ChecklistItemStatus.PENDING if critical else ChecklistItemStatus.WARNING,
            message="Could not be verified: data source unavailable",
            action_link=link,
            critical=critical,
        )

    def _reconciliation_item(self, pending_lines: Any) -> ChecklistItem:
        label = "All bank accounts reconciled"
        link = "/wallets/reconciliation"
        if isinstance(pending_lines, Exception):
            return self._unavailable("reconciliation", label, link, critical=True)

        return ChecklistItem(
            id="reconciliation",
            label=label,
            status=ChecklistItemStatus.PENDING if pending_lines else ChecklistItemStatus.OK,
            message=f"{pending_lines} pending line(s)" if pending_lines else None,
            action_link=link,
            critical=True,
        )

    def _categorized_item(self, transactions: Any) -> ChecklistItem:
        label = "All transactions categorized"
        link = "/reports"
        if isinstance(transactions, Exception):
            return self._unavailable("categorized", label, link, critical=False)

        uncategorized = sum(1 for tx in transactions if not tx.is_categorized)
        return ChecklistItem(
            id="categorized",
            label=label,
            status=ChecklistItemStatus.WARNING if uncategorized else ChecklistItemStatus.OK,
            message=(
                f"{uncategorized} transaction(s) without category" if uncategorized else None
            ),
            action_link=link,
            critical=False,
        )

    def _cash_item(self, wallets: Any) -> ChecklistItem:
        label = "Cash balance verified"
        link = "/wallets/accounts"
        if isinstance(wallets, Exception):
            return self._unavailable("cash", label, link, critical=False)

        cash_wallet = next(
            (w for w in wallets if w.type.lower() == self._settings.cash_wallet_type),
            None,
        )
        # Informational: the user checks the amount by hand
        if cash_wallet is not None:
            currency = cash_wallet.currency or self._settings.default_currency
            message = f"Current balance: {cash_wallet.balance:.2f} {currency}"
        else:
            message = "No cash wallet"
        return ChecklistItem(
            id="cash",
            label=label,
            status=ChecklistItemStatus.OK,
            message=message,
            action_link=link,
            critical=False,
        )

    def _goals_item(self, goal_count: Any) -> ChecklistItem:
        label = "Category goals reviewed"
        link = "/goals"
        if isinstance(goal_count, Exception):
            return self._unavailable("goals", label, link, critical=False)

        return ChecklistItem(
            id="goals",
            label=label,
            status=ChecklistItemStatus.OK,
            message=f"{goal_count} goal(s) defined" if goal_count else "No goals defined",
            action_link=link,
            critical=False,
        )

    def _invoices_item(self, open_invoices: Any) -> ChecklistItem:
        label = "Credit-card invoices of the period closed"
        link = "/wallets/cards"
        if isinstance(open_invoices, Exception):
            return self._unavailable("invoices", label, link, critical=False)

        return ChecklistItem(
            id="invoices",
            label=label,
            status=ChecklistItemStatus.WARNING if open_invoices else ChecklistItemStatus.OK,
            message=f"{open_invoices} open invoice(s)" if open_invoices else None,
            action_link=link,
            critical=False,
        )
