"""
Audit Models for Personal Ledger

Every write the ledger performs is logged for audit purposes.
This provides:
1. Traceability of every balance and goal change
2. Debugging information when derived values drift
3. A record of what was undone when a multi-step update failed

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions and side effects
    TRANSACTION_CREATED = "transaction_created"
    CARD_BALANCE_UPDATED = "card_balance_updated"
    GOAL_PROGRESS_UPDATED = "goal_progress_updated"

    # Reminders
    REMINDER_PAID = "reminder_paid"
    REMINDER_RESCHEDULED = "reminder_rescheduled"

    # Generic records
    RECORD_ADDED = "record_added"
    RECORD_UPDATED = "record_updated"
    TABLE_EXPORTED = "table_exported"

    # Reconciliation
    CARDS_RECALCULATED = "cards_recalculated"
    ROLLBACK_APPLIED = "rollback_applied"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'card', 'goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Prefixed ID of the entity (e.g., 'TR-1001')"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """Convert to a row in AUDIT_COLUMNS order."""
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(transaction, correlation_id)
    """

    @staticmethod
    def transaction_created(
        transaction_id: str,
        transaction_type: str,
        category: str,
        amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{transaction_type} recorded: {category} - ₱{amount:,.2f}",
            details={
                "type": transaction_type,
                "category": category,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def card_balance_updated(
        card_id: str,
        old_balance: float,
        new_balance: float,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARD_BALANCE_UPDATED,
            entity_type="card",
            entity_id=card_id,
            correlation_id=correlation_id,
            description=f"Card balance changed from {old_balance:,.2f} to {new_balance:,.2f}",
            details={
                "old_balance": old_balance,
                "new_balance": new_balance,
                "transaction_id": transaction_id,
            },
        )

    @staticmethod
    def goal_progress_updated(
        goal_id: str,
        old_saved: float,
        new_saved: float,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_PROGRESS_UPDATED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Goal savings changed from {old_saved:,.2f} to {new_saved:,.2f}",
            details={
                "old_saved_amount": old_saved,
                "new_saved_amount": new_saved,
                "transaction_id": transaction_id,
            },
        )

    @staticmethod
    def reminder_paid(
        reminder_id: str,
        transaction_id: str,
        next_due_date: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.REMINDER_RESCHEDULED
            if next_due_date
            else AuditEventType.REMINDER_PAID
        )
        description = "Reminder marked as paid"
        if next_due_date:
            description += f", next due {next_due_date}"
        return AuditEvent(
            event_type=event_type,
            entity_type="reminder",
            entity_id=reminder_id,
            correlation_id=correlation_id,
            description=description,
            details={
                "transaction_id": transaction_id,
                "next_due_date": next_due_date,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_added(
        table: str,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_ADDED,
            entity_type=table,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record added to {table}",
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        table: str,
        record_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=table,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Record updated in {table}: {', '.join(fields)}",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def table_exported(table: str, row_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TABLE_EXPORTED,
            entity_type=table,
            description=f"Exported {row_count} rows from {table}",
            details={"row_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def cards_recalculated(balances: dict[str, float]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CARDS_RECALCULATED,
            entity_type="card",
            description=f"Recalculated {len(balances)} credit card balances",
            details={"balances": balances},
        )

    @staticmethod
    def rollback_applied(
        operation: str,
        undone_steps: int,
        failures: list[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ROLLBACK_APPLIED,
            severity=AuditSeverity.ERROR if failures else AuditSeverity.WARNING,
            description=f"{operation} failed; undid {undone_steps} step(s)",
            error_message=error_message,
            details={
                "operation": operation,
                "undone_steps": undone_steps,
                "undo_failures": failures,
            },
            correlation_id=correlation_id,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
