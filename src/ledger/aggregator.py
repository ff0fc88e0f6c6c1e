"""
Ledger Aggregation Engine

DESIGN DECISION: Everything the dashboard shows is derived from the
transaction log at read time. Stored card balances can drift (rows edited
by hand, a failed side effect); the live balance computed here replaces
the stored one for display, but is never written back. Writing back is
the batch recalculation job's responsibility.

GUARANTEES:
- netIncome == totalIncome - totalExpenses
- A card with no matching transactions shows its stored balance
- get_dashboard_data() never raises; on failure it returns a zero-valued
  dashboard carrying an explanatory message
"""

from datetime import date
from typing import Iterable, Optional, Sequence

import structlog

from src.config import LedgerSettings
from src.ledger.tables import TableRepository
from src.models.finance import (
    CardSummary,
    CreditCard,
    DashboardData,
    Goal,
    GoalSummary,
    Reminder,
    Transaction,
)
from src.models.schema import LedgerTables, parse_date


logger = structlog.get_logger(__name__)


def compute_live_balances(
    transactions: Iterable[Transaction],
    card_prefix: str = "CARD",
) -> dict[str, float]:
    """
    Running balance per card account, from the transaction log alone.

    A "Credit Card Payment" lowers the balance, any other Expense raises
    it, and everything else (income, transfers) leaves it alone.
    """
    balances: dict[str, float] = {}
    marker = f"{card_prefix}-"
    for transaction in transactions:
        account = transaction.account
        if not account.startswith(marker):
            continue
        if transaction.is_card_payment:
            balances[account] = balances.get(account, 0.0) - transaction.amount
        elif transaction.is_expense:
            balances[account] = balances.get(account, 0.0) + transaction.amount
    return balances


def apply_live_balances(
    cards: Iterable[CreditCard],
    balances: dict[str, float],
) -> list[CreditCard]:
    """Cards with their live balance substituted where one exists."""
    return [
        card.model_copy(update={"balance": balances[card.id]})
        if card.id in balances
        else card
        for card in cards
    ]


def _newest_first(transactions: Sequence[Transaction]) -> list[Transaction]:
    # Undated rows sink to the bottom; sort is stable for equal dates
    dated = [(parse_date(t.date), t) for t in transactions]
    with_date = [pair for pair in dated if pair[0] is not None]
    without_date = [t for d, t in dated if d is None]
    with_date.sort(key=lambda pair: pair[0], reverse=True)
    return [t for _, t in with_date] + without_date


def _pending_by_due_date(reminders: Sequence[Reminder]) -> list[Reminder]:
    def due(reminder: Reminder) -> tuple[bool, date]:
        due_date = parse_date(reminder.due_date)
        return (due_date is None, due_date or date.min)

    return sorted((r for r in reminders if not r.is_paid), key=due)


class LedgerAggregator:
    """Builds the dashboard view model from the ledger tables."""

    def __init__(
        self,
        repository: TableRepository,
        tables: LedgerTables,
        settings: LedgerSettings,
    ):
        self._repository = repository
        self._tables = tables
        self._settings = settings

    def summarize(
        self,
        transactions: Sequence[Transaction],
        cards: Sequence[CreditCard],
        goals: Sequence[Goal],
        reminders: Sequence[Reminder] = (),
        user: Optional[str] = None,
    ) -> DashboardData:
        """Pure computation of every dashboard metric."""
        total_income = 0.0
        total_expenses = 0.0
        total_savings = 0.0
        for transaction in transactions:
            if transaction.is_income:
                total_income += transaction.amount
            elif transaction.is_expense:
                total_expenses += transaction.amount
            # Deposits are tracked on their own even when also counted as expenses
            if transaction.is_savings_deposit:
                total_savings += transaction.amount

        net_income = total_income - total_expenses
        savings_rate = total_savings / total_income if total_income > 0 else 0.0

        live_cards = apply_live_balances(
            cards,
            compute_live_balances(transactions, self._settings.card_prefix),
        )
        total_limit = 0.0
        total_balance = 0.0
        card_summaries = []
        for card in live_cards:
            total_limit += card.limit
            total_balance += card.balance
            card_summaries.append(CardSummary(
                id=card.id,
                name=card.name,
                limit=card.limit,
                balance=card.balance,
                usage=card.usage,
                apr=card.apr,
                last_payment=card.last_payment,
                last_payment_date=card.last_payment_date,
            ))
        credit_usage = total_balance / total_limit if total_limit > 0 else 0.0

        goal_summaries = [
            GoalSummary(
                id=goal.id,
                name=goal.name,
                target_amount=goal.target_amount,
                saved_amount=goal.saved_amount,
                progress=goal.progress,
                priority_level=goal.priority_level,
                target_date=goal.target_date,
            )
            for goal in goals
        ]

        message = (
            self._settings.positive_message
            if net_income >= 0
            else self._settings.negative_message
        )

        return DashboardData(
            user=user,
            total_income=total_income,
            total_expenses=total_expenses,
            total_savings_deposits=total_savings,
            net_income=net_income,
            savings_rate=savings_rate,
            total_credit_limit=total_limit,
            total_card_balance=total_balance,
            credit_usage=credit_usage,
            available_credit=total_limit - total_balance,
            cards=card_summaries,
            goals=goal_summaries,
            recent_transactions=_newest_first(transactions)[: self._settings.recent_transactions_limit],
            upcoming_reminders=_pending_by_due_date(reminders),
            motivational_message=message,
        )

    def load_transactions(self) -> list[Transaction]:
        snapshot = self._repository.load(self._tables.transactions)
        return [Transaction.model_validate(r) for r in snapshot.records]

    def load_cards(self) -> list[CreditCard]:
        snapshot = self._repository.load(self._tables.cards)
        return [CreditCard.model_validate(r) for r in snapshot.records]

    def load_goals(self) -> list[Goal]:
        snapshot = self._repository.load(self._tables.goals)
        return [Goal.model_validate(r) for r in snapshot.records]

    def load_reminders(self) -> list[Reminder]:
        snapshot = self._repository.load(self._tables.reminders)
        return [Reminder.model_validate(r) for r in snapshot.records]

    def live_cards(self) -> list[CreditCard]:
        """Stored cards with live balances substituted, for display."""
        balances = compute_live_balances(self.load_transactions(), self._settings.card_prefix)
        return apply_live_balances(self.load_cards(), balances)

    def get_dashboard_data(self, user: Optional[str] = None) -> DashboardData:
        """
        Read every table and build the dashboard.

        Never raises: any failure yields a zero-valued dashboard with the
        reason in its message.
        """
        try:
            return self.summarize(
                transactions=self.load_transactions(),
                cards=self.load_cards(),
                goals=self.load_goals(),
                reminders=self.load_reminders(),
                user=user,
            )
        except Exception as e:
            logger.error("dashboard_failed", error=str(e), exc_info=True)
            return DashboardData.empty(
                f"Could not load dashboard data: {e}",
                user=user,
            )
