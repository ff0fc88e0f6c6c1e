"""
Relational Update Protocol

Keeps derived fields consistent when the ledger is written to:

1. Creating a transaction appends it to the log, then
   - adjusts the card balance when it was paid by credit card
   - adds to a goal's saved amount when it is a savings deposit
2. Marking a reminder paid creates the matching expense (running the
   steps above), marks the reminder Paid and, for recurring reminders,
   moves the due date one month ahead.

DESIGN DECISION: Each entry point runs inside a ChangeSet. When any step
fails, every write already made by that call is undone, including the
appended transaction row, and the caller receives an error result. The
id counter is the only thing not rolled back: allocated ids are never
reused.

Unresolvable references (a card or goal id that doesn't exist) are not
errors. The side effect is skipped and the transaction stands.
"""

from datetime import date
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog
from dateutil.relativedelta import relativedelta
from pydantic import ValidationError

from src.audit import AuditLogger, create_correlation_id
from src.config import LedgerSettings
from src.ledger.ids import IdAllocator
from src.ledger.tables import TableRepository
from src.ledger.unit_of_work import ChangeSet
from src.models.audit import AuditEventBuilder
from src.models.finance import (
    BILL_PAYMENT,
    CREDIT_CARD_METHOD,
    CreditCard,
    Goal,
    OperationResult,
    ReminderStatus,
    Reminder,
    Transaction,
    TransactionForm,
    TransactionType,
)
from src.models.schema import LedgerTables, canonical_key, parse_date


logger = structlog.get_logger(__name__)


class LedgerError(Exception):
    """A ledger operation could not be completed."""
    pass


class RecordNotFoundError(LedgerError):
    """A record the operation depends on doesn't exist."""
    pass


def next_due_date(due: date) -> date:
    """Same day next month; clamped to the month's last day when it doesn't exist."""
    return due + relativedelta(months=1)


def _form_errors(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()
    )


class RelationalUpdateProtocol:
    """Write paths that touch more than one table."""

    def __init__(
        self,
        repository: TableRepository,
        id_allocator: IdAllocator,
        tables: LedgerTables,
        settings: LedgerSettings,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._ids = id_allocator
        self._tables = tables
        self._settings = settings
        self._audit = audit_logger or AuditLogger()

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def add_transaction(
        self,
        form: Union[TransactionForm, Mapping[str, Any]],
    ) -> OperationResult:
        """
        Record a transaction and apply its side effects.

        Returns an error result (never raises) when the form is invalid or
        any step fails; in the latter case all writes are undone.
        """
        try:
            if not isinstance(form, TransactionForm):
                form = TransactionForm.model_validate(dict(form))
        except ValidationError as e:
            return OperationResult.error(f"Invalid transaction: {_form_errors(e)}")

        correlation_id = create_correlation_id()
        change_set = ChangeSet(self._repository.store)
        try:
            with change_set:
                transaction = self.create_transaction(form, change_set, correlation_id)
        except Exception as e:
            self._report_failure("add_transaction", change_set, e, correlation_id)
            return OperationResult.error(f"Failed to add transaction: {e}")

        return OperationResult.success(
            f"Transaction {transaction.id} added successfully",
            record_id=transaction.id,
        )

    def mark_reminder_paid(
        self,
        reminder_id: str,
        form: Optional[Mapping[str, Any]] = None,
    ) -> OperationResult:
        """
        Settle a reminder: record the payment, mark it Paid, reschedule.

        `form` may carry DATE, ACCOUNT and PAYMENTMETHOD for the payment;
        everything else comes from the reminder itself.
        """
        correlation_id = create_correlation_id()
        change_set = ChangeSet(self._repository.store)
        try:
            with change_set:
                transaction, next_due = self._settle_reminder(
                    reminder_id, dict(form or {}), change_set, correlation_id
                )
        except RecordNotFoundError as e:
            return OperationResult.error(str(e))
        except ValidationError as e:
            self._report_failure("mark_reminder_paid", change_set, e, correlation_id)
            return OperationResult.error(f"Invalid payment: {_form_errors(e)}")
        except Exception as e:
            self._report_failure("mark_reminder_paid", change_set, e, correlation_id)
            return OperationResult.error(f"Failed to mark reminder as paid: {e}")

        self._audit.log(AuditEventBuilder.reminder_paid(
            reminder_id=reminder_id,
            transaction_id=transaction.id,
            next_due_date=next_due,
            correlation_id=correlation_id,
        ))
        message = f"Reminder {reminder_id} marked as paid"
        if next_due:
            message += f"; next due on {next_due}"
        return OperationResult.success(message, record_id=transaction.id)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    def create_transaction(
        self,
        form: TransactionForm,
        change_set: ChangeSet,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Append the transaction row, then run whichever side effects apply.

        Raises on failure; the caller owns the change set and its rollback.
        """
        snapshot = self._repository.load(self._tables.transactions)
        transaction = Transaction(
            id=self._ids.next_id(self._settings.transaction_prefix),
            date=form.date or date.today().isoformat(),
            type=form.type.value,
            category=form.category,
            amount=form.amount,
            description=form.description,
            payment_method=form.payment_method,
            account=form.account or "",
            related_id=form.related_id or "",
        )
        self._repository.append(snapshot, transaction.to_record(), change_set)
        self._audit.log(AuditEventBuilder.transaction_created(
            transaction_id=transaction.id,
            transaction_type=transaction.type,
            category=transaction.category,
            amount=transaction.amount,
            correlation_id=correlation_id,
        ))

        if transaction.payment_method == CREDIT_CARD_METHOD and transaction.account:
            self.apply_card_side_effect(transaction, change_set, correlation_id)
        if transaction.is_savings_deposit and transaction.related_id:
            self.apply_goal_side_effect(transaction, change_set, correlation_id)

        return transaction

    def apply_card_side_effect(
        self,
        transaction: Transaction,
        change_set: ChangeSet,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Move the card balance by the transaction amount.

        Expenses raise the balance, income (refunds, cashback) lowers it.
        A card payment also becomes the card's last payment.
        Returns False when the card doesn't exist.
        """
        snapshot = self._repository.load(self._tables.cards)
        record = snapshot.find(transaction.account)
        if record is None:
            logger.info("card_not_found", card_id=transaction.account, transaction_id=transaction.id)
            return False

        card = CreditCard.model_validate(record)
        balance = card.balance
        if transaction.is_expense:
            balance += transaction.amount
        elif transaction.is_income:
            balance -= transaction.amount

        changes: dict[str, Any] = {"BALANCE": balance}
        if transaction.is_card_payment:
            changes["LASTPAYMENT"] = transaction.amount
            changes["LASTPAYMENTDATE"] = date.today().strftime(self._settings.display_date_format)

        self._repository.update(snapshot, card.id, changes, change_set)
        self._audit.log(AuditEventBuilder.card_balance_updated(
            card_id=card.id,
            old_balance=card.balance,
            new_balance=balance,
            transaction_id=transaction.id,
            correlation_id=correlation_id,
        ))
        return True

    def apply_goal_side_effect(
        self,
        transaction: Transaction,
        change_set: ChangeSet,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Add a savings deposit to its goal. Returns False when the goal doesn't exist."""
        snapshot = self._repository.load(self._tables.goals)
        record = snapshot.find(transaction.related_id)
        if record is None:
            logger.info("goal_not_found", goal_id=transaction.related_id, transaction_id=transaction.id)
            return False

        goal = Goal.model_validate(record)
        saved = goal.saved_amount + transaction.amount
        self._repository.update(snapshot, goal.id, {"SAVEDAMOUNT": saved}, change_set)
        self._audit.log(AuditEventBuilder.goal_progress_updated(
            goal_id=goal.id,
            old_saved=goal.saved_amount,
            new_saved=saved,
            transaction_id=transaction.id,
            correlation_id=correlation_id,
        ))
        return True

    def _settle_reminder(
        self,
        reminder_id: str,
        form: dict[str, Any],
        change_set: ChangeSet,
        correlation_id: UUID,
    ) -> tuple[Transaction, Optional[str]]:
        snapshot = self._repository.load(self._tables.reminders)
        record = snapshot.find(reminder_id)
        if record is None:
            raise RecordNotFoundError(f"Reminder not found: {reminder_id}")
        reminder = Reminder.model_validate(record)

        overrides = {canonical_key(k): v for k, v in form.items()}
        payment = TransactionForm.model_validate({
            "DATE": overrides.get("DATE"),
            "TYPE": TransactionType.EXPENSE.value,
            "CATEGORY": reminder.category or BILL_PAYMENT,
            "AMOUNT": reminder.amount,
            "DESCRIPTION": reminder.description,
            "PAYMENTMETHOD": overrides.get("PAYMENTMETHOD") or reminder.payment_channel,
            "ACCOUNT": overrides.get("ACCOUNT"),
            "RELATED_ID": reminder.id,
        })
        transaction = self.create_transaction(payment, change_set, correlation_id)

        changes: dict[str, Any] = {"STATUS": ReminderStatus.PAID.value}
        next_due = None
        if reminder.is_recurring:
            due = parse_date(reminder.due_date)
            if due is None:
                logger.warning(
                    "reminder_due_date_unparseable",
                    reminder_id=reminder.id,
                    due_date=reminder.due_date,
                )
            else:
                next_due = next_due_date(due).isoformat()
                changes["DUEDATE"] = next_due

        self._repository.update(snapshot, reminder.id, changes, change_set)
        return transaction, next_due

    def _report_failure(
        self,
        operation: str,
        change_set: ChangeSet,
        error: Exception,
        correlation_id: UUID,
    ) -> None:
        logger.error(operation + "_failed", error=str(error), exc_info=True)
        if change_set.rolled_back:
            self._audit.log(AuditEventBuilder.rollback_applied(
                operation=operation,
                undone_steps=change_set.undone_steps,
                failures=change_set.rollback_failures,
                error_message=str(error),
                correlation_id=correlation_id,
            ))
        else:
            self._audit.log_error(
                error_type=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )
