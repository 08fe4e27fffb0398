"""Tests for the closing checklist evaluator."""

import asyncio
from datetime import date

from monthly_closing.checklist import ChecklistEvaluator
from monthly_closing.errors import ProviderUnavailable
from monthly_closing.models.checklist import ChecklistItemStatus
from monthly_closing.services.providers import InMemoryDataSource, create_in_memory_providers


USER = "user-1"
ALL_PROVIDERS = ["reconciliation", "transactions", "balances", "goals", "invoices"]


def evaluate(source, year=2026, month=9):
    providers, _ = create_in_memory_providers(source)
    return asyncio.run(ChecklistEvaluator(providers).evaluate(USER, year, month))


class TestChecklistItems:
    """Tests for the individual checks."""

    def test_ready_month(self, source):
        """All five checks in fixed order, closable."""
        checklist = evaluate(source)
        assert [i.id for i in checklist.items] == [
            "reconciliation", "categorized", "cash", "goals", "invoices",
        ]
        assert all(i.status == ChecklistItemStatus.OK for i in checklist.items)
        assert checklist.can_close
        assert not checklist.outage
        assert checklist.provider_errors == {}

    def test_only_reconciliation_is_critical(self, source):
        critical = [i.id for i in evaluate(source).items if i.critical]
        assert critical == ["reconciliation"]

    def test_items_carry_action_links(self, source):
        """Every item points the user to where it can be fixed."""
        assert all(i.action_link for i in evaluate(source).items)

    def test_pending_lines_block(self, source):
        """Pending statement lines in the period block the close."""
        source.add_statement_line(USER, date(2026, 9, 12))
        source.add_statement_line(USER, date(2026, 9, 20))
        checklist = evaluate(source)

        item = checklist.get_item("reconciliation")
        assert item.status == ChecklistItemStatus.PENDING
        assert item.message == "2 pending line(s)"
        assert not checklist.can_close
        assert [i.id for i in checklist.blocking_items] == ["reconciliation"]

    def test_pending_lines_outside_period_ignored(self, source):
        source.add_statement_line(USER, date(2026, 10, 1))
        assert evaluate(source).can_close

    def test_uncategorized_only_warns(self, source):
        """Uncategorized transactions warn but never block."""
        source.add_transaction(USER, date(2026, 9, 15), "20.00", category=None)
        checklist = evaluate(source)

        item = checklist.get_item("categorized")
        assert item.status == ChecklistItemStatus.WARNING
        assert item.message == "1 transaction(s) without category"
        assert checklist.can_close

    def test_cash_balance_is_shown(self, source):
        """The cash check reports the cash wallet balance."""
        item = evaluate(source).get_item("cash")
        assert item.status == ChecklistItemStatus.OK
        assert item.message == "Current balance: 150.25 BRL"

    def test_cash_wallet_type_setting_any_case(self, source, monkeypatch):
        """A capitalized configured wallet type still finds the cash wallet."""
        monkeypatch.setenv("CLOSING_CASH_WALLET_TYPE", "Cash")
        item = evaluate(source).get_item("cash")
        assert item.message == "Current balance: 150.25 BRL"

    def test_every_transaction_is_checked(self, source):
        """Each record the provider returns counts toward the categorized check."""
        source.add_transaction(USER, date(2026, 9, 15), "20.00", category=None)
        source.add_transaction(USER, date(2026, 9, 16), "30.00", category=None)
        item = evaluate(source).get_item("categorized")
        assert item.message == "2 transaction(s) without category"

    def test_no_cash_wallet(self):
        item = evaluate(InMemoryDataSource()).get_item("cash")
        assert item.status == ChecklistItemStatus.OK
        assert item.message == "No cash wallet"

    def test_goals_message(self, source):
        assert evaluate(source).get_item("goals").message == "1 goal(s) defined"

    def test_open_invoice_warns(self, source):
        """Open invoices due in the period warn; paid ones are ignored."""
        source.add_invoice(USER, date(2026, 9, 10))
        source.add_invoice(USER, date(2026, 9, 11), status="paid")
        source.add_invoice(USER, date(2026, 10, 10))
        checklist = evaluate(source)

        item = checklist.get_item("invoices")
        assert item.status == ChecklistItemStatus.WARNING
        assert item.message == "1 open invoice(s)"
        assert checklist.can_close

    def test_other_users_data_ignored(self, source):
        source.add_statement_line("user-2", date(2026, 9, 12))
        assert evaluate(source).can_close


class TestChecklistDegradation:
    """Tests for provider failures."""

    def test_critical_provider_failure_blocks(self, source):
        """An unreadable critical check is PENDING, never OK."""
        source.fail("reconciliation")
        checklist = evaluate(source)

        item = checklist.get_item("reconciliation")
        assert item.status == ChecklistItemStatus.PENDING
        assert "unavailable" in item.message
        assert not checklist.can_close
        assert not checklist.outage
        assert list(checklist.provider_errors) == ["reconciliation"]

    def test_non_critical_failure_degrades_one_item(self, source):
        """Other checks still run when one non-critical provider fails."""
        source.fail("goals")
        checklist = evaluate(source)

        assert checklist.get_item("goals").status == ChecklistItemStatus.WARNING
        assert checklist.get_item("reconciliation").status == ChecklistItemStatus.OK
        assert len(checklist.items) == 5
        assert checklist.can_close

    def test_total_outage(self, source):
        """Every provider down: no items, outage flag, error attached."""
        for name in ALL_PROVIDERS:
            source.fail(name)
        checklist = evaluate(source)

        assert checklist.items == []
        assert checklist.outage
        assert not checklist.can_close
        assert isinstance(checklist.error, ProviderUnavailable)
        assert sorted(checklist.error.providers) == sorted(ALL_PROVIDERS)

    def test_recovery(self, source):
        """A recovered provider is read again on the next evaluation."""
        source.fail("reconciliation")
        assert not evaluate(source).can_close
        source.recover("reconciliation")
        assert evaluate(source).can_close
