"""Tests for the dashboard aggregation."""

import random

import pytest

from conftest import transaction_row
from src.ledger.aggregator import LedgerAggregator, compute_live_balances
from src.models.finance import DashboardData, Transaction
from src.orchestrator import PersonalLedger
from src.services.storage import InMemoryTableStore


def _transaction(type_, category, amount, account="", payment_method="Cash"):
    return Transaction(
        type=type_,
        category=category,
        amount=amount,
        account=account,
        payment_method=payment_method,
    )


class TestLiveBalances:
    """Tests for compute_live_balances()."""

    def test_expense_raises_and_payment_lowers(self):
        balances = compute_live_balances([
            _transaction("Expense", "Groceries", 500, account="CARD-2000"),
            _transaction("Expense", "Dining", 250, account="CARD-2000"),
            _transaction("Expense", "Credit Card Payment", 300, account="CARD-2000"),
        ])
        assert balances == {"CARD-2000": 450.0}

    def test_payment_is_subtracted_even_when_typed_expense(self):
        """A card payment never also counts as a charge."""
        balances = compute_live_balances([
            _transaction("Expense", "Credit Card Payment", 100, account="CARD-2000"),
        ])
        assert balances == {"CARD-2000": -100.0}

    def test_income_on_card_is_ignored(self):
        balances = compute_live_balances([
            _transaction("Income", "Cashback", 50, account="CARD-2000"),
        ])
        assert balances == {}

    def test_non_card_accounts_are_ignored(self):
        balances = compute_live_balances([
            _transaction("Expense", "Groceries", 500, account="GOAL-3000"),
            _transaction("Expense", "Groceries", 500, account=""),
        ])
        assert balances == {}


class TestDashboard:
    """Tests for get_dashboard_data()."""

    def _add(self, store, tables, *rows):
        for row in rows:
            store.append_row(tables.transactions, row)

    def test_empty_ledger(self, ledger):
        data = ledger.get_dashboard_data(user="ana")

        assert data.user == "ana"
        assert data.total_income == 0
        assert data.total_expenses == 0
        assert data.net_income == 0
        assert data.savings_rate == 0
        assert data.error_message is None

    def test_totals_and_net_income(self, ledger, store, tables):
        self._add(
            store, tables,
            transaction_row("TR-1", "2024-01-01", "Income", "Salary", 30000),
            transaction_row("TR-2", "2024-01-02", "Income", "Freelance", "5,000"),
            transaction_row("TR-3", "2024-01-03", "Expense", "Rent", 12000),
            transaction_row("TR-4", "2024-01-04", "Expense", "Savings Deposit", 3500,
                            related_id="GOAL-3000"),
        )

        data = ledger.get_dashboard_data()

        assert data.total_income == 35000
        assert data.total_expenses == 15500
        assert data.net_income == data.total_income - data.total_expenses
        assert data.total_savings_deposits == 3500
        assert data.savings_rate == pytest.approx(0.1)

    def test_other_types_are_not_counted(self, ledger, store, tables):
        """Only exact "Income" and "Expense" contribute to the totals."""
        self._add(
            store, tables,
            transaction_row("TR-1", "2024-01-01", "Income", "Salary", 1000),
            transaction_row("TR-2", "2024-01-02", "Transfer", "Move", 9999),
            transaction_row("TR-3", "2024-01-03", "expense", "Lowercase", 9999),
        )

        data = ledger.get_dashboard_data()

        assert data.total_income == 1000
        assert data.total_expenses == 0

    def test_nan_amount_counts_as_zero(self, ledger, store, tables, settings):
        self._add(
            store, tables,
            transaction_row("TR-1", "2024-01-01", "Income", "Salary", "NaN"),
            transaction_row("TR-2", "2024-01-02", "Income", "Salary", 100),
        )

        data = ledger.get_dashboard_data()

        assert data.total_income == 100
        assert data.net_income == 100
        assert data.motivational_message == settings.positive_message

    def test_motivational_message_follows_net_income(self, ledger, store, tables, settings):
        assert ledger.get_dashboard_data().motivational_message == settings.positive_message

        self._add(
            store, tables,
            transaction_row("TR-1", "2024-01-01", "Expense", "Rent", 100),
        )
        data = ledger.get_dashboard_data()
        assert data.net_income == -100
        assert data.motivational_message == settings.negative_message

    def test_stored_balance_shown_without_transactions(self, ledger):
        data = ledger.get_dashboard_data()

        card = data.cards[0]
        assert card.id == "CARD-2000"
        assert card.balance == 1000
        assert card.usage == pytest.approx(0.02)
        assert data.total_credit_limit == 50000
        assert data.available_credit == 49000
        assert data.credit_usage == pytest.approx(0.02)

    def test_live_balance_replaces_stored_balance(self, ledger, store, tables):
        self._add(
            store, tables,
            transaction_row("TR-1", "2024-01-01", "Expense", "Groceries", 5000,
                            payment_method="Credit Card", account="CARD-2000"),
            transaction_row("TR-2", "2024-01-05", "Expense", "Credit Card Payment", 2000,
                            account="CARD-2000"),
        )

        data = ledger.get_dashboard_data()

        assert data.cards[0].balance == 3000
        assert data.total_card_balance == 3000
        assert data.available_credit == 47000
        # Display only: the stored row is untouched
        assert store.read_table(tables.cards)[1][3] == 1000

    def test_goal_progress(self, ledger):
        goal = ledger.get_dashboard_data().goals[0]
        assert goal.id == "GOAL-3000"
        assert goal.progress == pytest.approx(0.8)

    def test_recent_transactions_newest_first(self, ledger, store, tables, settings):
        for day in range(1, 16):
            self._add(
                store, tables,
                transaction_row(f"TR-{day}", f"2024-01-{day:02d}", "Expense", "Food", 10),
            )

        recent = ledger.get_dashboard_data().recent_transactions

        assert len(recent) == settings.recent_transactions_limit
        assert recent[0].id == "TR-15"
        assert recent[-1].id == "TR-6"

    def test_upcoming_reminders_exclude_paid(self, ledger, store, tables):
        store.append_row(tables.reminders, [
            "REM-4002", "Water", "Utilities", 300, "2024-01-10", "No", "Cash", "Paid", 0,
        ])

        upcoming = ledger.get_dashboard_data().upcoming_reminders

        assert [r.id for r in upcoming] == ["REM-4000", "REM-4001"]

    def test_serializes_camel_case(self, ledger):
        payload = ledger.get_dashboard_data().model_dump(by_alias=True)
        assert "netIncome" in payload
        assert "motivationalMessage" in payload
        assert "targetAmount" in payload["goals"][0]


class TestDashboardFailures:
    """The dashboard degrades instead of raising."""

    def test_missing_table_yields_empty_dashboard(self, tables, settings):
        ledger = PersonalLedger(InMemoryTableStore(), tables=tables, settings=settings)

        data = ledger.get_dashboard_data(user="ana")

        assert isinstance(data, DashboardData)
        assert data.total_income == 0
        assert data.cards == []
        assert data.user == "ana"
        assert "Transactions" in data.error_message
        assert data.motivational_message == data.error_message

    def test_store_error_yields_empty_dashboard(self, ledger, store, tables, monkeypatch):
        def broken(name):
            raise RuntimeError("quota exceeded")

        monkeypatch.setattr(store, "read_table", broken)

        data = ledger.get_dashboard_data()

        assert data.net_income == 0
        assert "quota exceeded" in data.error_message


class TestSummaryInvariants:
    """Totals hold for arbitrary transaction mixes."""

    @pytest.mark.parametrize("seed", range(5))
    def test_net_income_and_type_separation(self, seed, tables, settings):
        rng = random.Random(seed)
        transactions = [
            _transaction(
                rng.choice(["Income", "Expense", "Transfer"]),
                rng.choice(["Salary", "Food", "Savings Deposit", "Credit Card Payment"]),
                round(rng.uniform(0, 5000), 2),
                account=rng.choice(["", "CARD-2000"]),
            )
            for _ in range(40)
        ]

        data = LedgerAggregator(None, tables, settings).summarize(transactions, [], [])

        income = sum(t.amount for t in transactions if t.type == "Income")
        expenses = sum(t.amount for t in transactions if t.type == "Expense")
        assert data.total_income == pytest.approx(income)
        assert data.total_expenses == pytest.approx(expenses)
        assert data.net_income == pytest.approx(data.total_income - data.total_expenses)
        assert data.total_income >= 0 and data.total_expenses >= 0
