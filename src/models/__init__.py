"""
Data Models Package

This package contains the Pydantic models and table schemas used in the
Personal Ledger system. All data flowing through the system must conform
to these schemas.
"""

from src.models.finance import (
    BILL_PAYMENT,
    CREDIT_CARD_METHOD,
    CREDIT_CARD_PAYMENT,
    SAVINGS_DEPOSIT,
    CardSummary,
    CreditCard,
    DashboardData,
    Goal,
    GoalSummary,
    OperationResult,
    RecurringFlag,
    Reminder,
    ReminderStatus,
    Transaction,
    TransactionForm,
    TransactionType,
)
from src.models.schema import (
    FieldType,
    LedgerTables,
    SchemaValidationError,
    TableSchema,
    build_schemas,
    canonical_key,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BILL_PAYMENT",
    "CREDIT_CARD_METHOD",
    "CREDIT_CARD_PAYMENT",
    "SAVINGS_DEPOSIT",
    "CardSummary",
    "CreditCard",
    "DashboardData",
    "Goal",
    "GoalSummary",
    "OperationResult",
    "RecurringFlag",
    "Reminder",
    "ReminderStatus",
    "Transaction",
    "TransactionForm",
    "TransactionType",
    # Schemas
    "FieldType",
    "LedgerTables",
    "SchemaValidationError",
    "TableSchema",
    "build_schemas",
    "canonical_key",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
