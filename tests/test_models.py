"""
Tests for Personal Ledger

Test strategy:
1. Unit tests for individual components (models, decoder, aggregation)
2. Flow tests against the in-memory table store
3. No real API calls in tests
"""

import pytest
from datetime import date
from uuid import uuid4

from pydantic import ValidationError

from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from src.models.finance import (
    CreditCard,
    DashboardData,
    Goal,
    OperationResult,
    Reminder,
    Transaction,
    TransactionForm,
    TransactionType,
)


class TestTransactionForm:
    """Tests for the transaction input form."""

    def test_form_creation(self):
        """Test TransactionForm creation from upper-cased keys."""
        form = TransactionForm.model_validate({
            "DATE": "2024-01-05",
            "TYPE": "Expense",
            "CATEGORY": "Groceries",
            "AMOUNT": 500,
            "PAYMENTMETHOD": "Credit Card",
            "ACCOUNT": "CARD-2000",
            "RELATED_ID": "",
        })
        assert form.type == TransactionType.EXPENSE
        assert form.amount == 500
        assert form.account == "CARD-2000"
        assert form.related_id is None

    def test_form_accepts_header_style_keys(self):
        """Test that 'Payment Method' and 'relatedId' map to their fields."""
        form = TransactionForm.model_validate({
            "Type": "Income",
            "Amount": "2,500",
            "Payment Method": "Bank Transfer",
            "relatedId": "GOAL-3000",
        })
        assert form.payment_method == "Bank Transfer"
        assert form.related_id == "GOAL-3000"
        assert form.amount == 2500

    def test_form_rejects_negative_amount(self):
        """Test that amounts are non-negative magnitudes."""
        with pytest.raises(ValidationError):
            TransactionForm.model_validate({"TYPE": "Expense", "AMOUNT": -1})

    def test_form_rejects_unknown_type(self):
        """Test that only Income and Expense are accepted."""
        with pytest.raises(ValidationError):
            TransactionForm.model_validate({"TYPE": "Transfer", "AMOUNT": 1})

    def test_form_converts_dates(self):
        """Test that date objects become ISO strings."""
        form = TransactionForm.model_validate({
            "TYPE": "Expense",
            "AMOUNT": 1,
            "DATE": date(2024, 2, 29),
        })
        assert form.date == "2024-02-29"


class TestStoredEntities:
    """Tests for entities built from decoded records."""

    def test_transaction_from_record(self):
        """Test that decoded records validate by canonical key."""
        transaction = Transaction.model_validate({
            "ID": "TR-1000",
            "TYPE": "Expense",
            "CATEGORY": "Credit Card Payment",
            "AMOUNT": 300.0,
            "ACCOUNT": "CARD-2000",
            "RELATEDID": "",
            "SOMETHINGELSE": "ignored",
        })
        assert transaction.id == "TR-1000"
        assert transaction.is_expense
        assert transaction.is_card_payment
        assert not transaction.is_savings_deposit

    def test_null_cells_fall_back_to_defaults(self):
        """Test that cells the decoder gave up on don't break the record."""
        card = CreditCard.model_validate({"ID": "CARD-2000", "BALANCE": None, "LIMIT": 1000})
        assert card.balance == 0.0
        assert card.usage == 0.0

    def test_numeric_ids_become_strings(self):
        """Test that a number typed into an id column is read as text."""
        goal = Goal.model_validate({"ID": 3000, "NAME": "Trip"})
        assert goal.id == "3000"

    def test_goal_progress_can_exceed_one(self):
        """Test that over-saved goals report progress above 1."""
        goal = Goal(target_amount=1000, saved_amount=1500)
        assert goal.progress == 1.5

    def test_goal_progress_zero_target(self):
        """Test that a zero target yields zero progress."""
        assert Goal(target_amount=0, saved_amount=100).progress == 0.0

    def test_reminder_flags(self):
        """Test recurring and paid flags."""
        reminder = Reminder.model_validate({"RECURRING": "Yes", "STATUS": "Paid"})
        assert reminder.is_recurring
        assert reminder.is_paid
        assert not Reminder().is_recurring

    def test_to_record_uses_canonical_keys(self):
        """Test that entities serialize back to column keys."""
        record = Transaction(id="TR-1", payment_method="Cash").to_record()
        assert record["ID"] == "TR-1"
        assert record["PAYMENTMETHOD"] == "Cash"


class TestResults:
    """Tests for values returned across the entry boundary."""

    def test_operation_result(self):
        """Test success and error results."""
        ok = OperationResult.success("Added", record_id="TR-1000")
        failed = OperationResult.error("Nope")
        assert ok.ok and ok.record_id == "TR-1000"
        assert not failed.ok
        assert failed.status == "error"
        assert failed.record_id is None

    def test_empty_dashboard(self):
        """Test that the fallback dashboard is zero-valued but complete."""
        data = DashboardData.empty("Could not load", user="ana")
        assert data.net_income == 0
        assert data.cards == []
        assert data.error_message == "Could not load"
        assert data.model_dump(by_alias=True)["errorMessage"] == "Could not load"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Test transaction recorded",
        )
        assert event.event_type == AuditEventType.TRANSACTION_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_ADDED,
            description="Record added",
            details={"table": "SavingsGoals"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "record_added"
        assert log_dict["details"]["table"] == "SavingsGoals"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.REMINDER_PAID,
            description="Reminder marked as paid",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "reminder_paid"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_card_balance_updated(self):
        """Test AuditEventBuilder.card_balance_updated."""
        correlation_id = uuid4()

        event = AuditEventBuilder.card_balance_updated(
            card_id="CARD-2000",
            old_balance=1000,
            new_balance=1500,
            transaction_id="TR-1000",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.CARD_BALANCE_UPDATED
        assert event.entity_id == "CARD-2000"
        assert event.correlation_id == correlation_id
        assert event.details["new_balance"] == 1500

    def test_audit_event_builder_reminder_rescheduled(self):
        """Test that paying a recurring reminder is logged as a reschedule."""
        event = AuditEventBuilder.reminder_paid(
            reminder_id="REM-4000",
            transaction_id="TR-1000",
            next_due_date="2024-02-29",
        )

        assert event.event_type == AuditEventType.REMINDER_RESCHEDULED
        assert event.is_user_action is True
        assert "2024-02-29" in event.description

    def test_audit_event_builder_rollback_severity(self):
        """Test that a rollback with failed undo steps is an error."""
        clean = AuditEventBuilder.rollback_applied("add_transaction", 2, [], "boom")
        dirty = AuditEventBuilder.rollback_applied("add_transaction", 2, ["append x!2"], "boom")

        assert clean.severity == AuditSeverity.WARNING
        assert dirty.severity == AuditSeverity.ERROR
