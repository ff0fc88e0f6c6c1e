"""
Credit Card Recalculation Job

Recomputes every card's balance, last payment and last payment date from
the full transaction log and rewrites the card table in one bulk write.
Run it to correct drift between stored and true balances.

The job is idempotent: with no new transactions in between, a second run
writes exactly what the first one did.

FAIL FAST: the card table must have BALANCE, LASTPAYMENT and
LASTPAYMENTDATE columns. If one is missing the job raises before writing
anything.
"""

from datetime import date
from typing import Optional

import structlog
from pydantic import BaseModel

from src.audit import AuditLogger
from src.config import LedgerSettings
from src.ledger.tables import ID_KEY, TableRepository
from src.models.audit import AuditEventBuilder
from src.models.finance import CreditCard, Transaction
from src.models.schema import (
    LedgerTables,
    SchemaValidationError,
    encode_cell,
    parse_date,
)


logger = structlog.get_logger(__name__)


REQUIRED_CARD_KEYS = ("BALANCE", "LASTPAYMENT", "LASTPAYMENTDATE")


class _CardTotals(BaseModel):
    balance: float = 0.0
    last_payment: float = 0.0
    last_payment_date: Optional[date] = None
    payment_seen: bool = False

    def add_payment(self, amount: float, paid_on: Optional[date]) -> None:
        self.balance -= amount
        # Strictly later only: on a tie the payment seen first is kept
        if not self.payment_seen or (
            paid_on is not None
            and (self.last_payment_date is None or paid_on > self.last_payment_date)
        ):
            self.last_payment = amount
            self.last_payment_date = paid_on
            self.payment_seen = True


class CardRecalculationJob:
    """Full reconciliation of the card table against the transaction log."""

    def __init__(
        self,
        repository: TableRepository,
        tables: LedgerTables,
        settings: LedgerSettings,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._tables = tables
        self._settings = settings
        self._audit = audit_logger or AuditLogger()

    def _format_date(self, value: Optional[date]) -> str:
        return value.strftime(self._settings.display_date_format) if value else ""

    def run(self) -> list[CreditCard]:
        """
        Recompute and rewrite every card.

        Returns the recalculated cards.

        Raises:
            SchemaValidationError: If the card table lacks a required column
            TableNotFoundError: If the card or transaction table doesn't exist
        """
        cards = self._repository.load(self._tables.cards)
        missing = [
            key for key in (ID_KEY, *REQUIRED_CARD_KEYS)
            if cards.column_index(key) is None
        ]
        if missing:
            raise SchemaValidationError(self._tables.cards, missing)

        totals: dict[str, _CardTotals] = {}
        for record in cards.records:
            card_id = str(record.get(ID_KEY) or "").strip()
            if card_id:
                totals.setdefault(card_id, _CardTotals())

        transactions = self._repository.load(self._tables.transactions)
        for record in transactions.records:
            transaction = Transaction.model_validate(record)
            card_totals = totals.get(transaction.account)
            if card_totals is None:
                continue
            if transaction.is_card_payment:
                card_totals.add_payment(transaction.amount, parse_date(transaction.date))
            elif transaction.is_expense:
                card_totals.balance += transaction.amount

        balance_col = cards.column_index("BALANCE")
        payment_col = cards.column_index("LASTPAYMENT")
        date_col = cards.column_index("LASTPAYMENTDATE")

        rows = []
        for position, record in enumerate(cards.records):
            row = cards.raw_row(position)
            card_totals = totals.get(str(record.get(ID_KEY) or "").strip())
            if card_totals is not None:
                row[balance_col] = card_totals.balance
                row[payment_col] = card_totals.last_payment
                row[date_col] = encode_cell(self._format_date(card_totals.last_payment_date))
            rows.append(row)

        if rows:
            self._repository.store.write_rows(self._tables.cards, cards.row_number(0), rows)

        balances = {card_id: t.balance for card_id, t in totals.items()}
        logger.info("cards_recalculated", cards=len(balances))
        self._audit.log(AuditEventBuilder.cards_recalculated(balances))

        recalculated = []
        for card_id, card_totals in totals.items():
            record = dict(cards.find(card_id) or {})
            record.update({
                "BALANCE": card_totals.balance,
                "LASTPAYMENT": card_totals.last_payment,
                "LASTPAYMENTDATE": self._format_date(card_totals.last_payment_date),
            })
            recalculated.append(CreditCard.model_validate(record))
        return recalculated
