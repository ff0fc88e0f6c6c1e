"""
Audit Logger

DESIGN DECISION: Every write the ledger performs is logged.
This provides:
1. Complete traceability of derived-value changes
2. Debugging capability when balances drift
3. A record of compensating actions after failed updates

The audit logger:
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from src.services.storage import TableStore


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and therefore structlog) to stderr at `level`."""
    logging.basicConfig(format="%(message)s", level=level.upper())


# structlog method per audit severity
_LEVELS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit table (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[TableStore] = None,
        table_name: str = "AuditLog",
    ):
        """
        Initialize audit logger.

        Args:
            storage: Table store for persistence.
                    If None, only logs locally.
            table_name: Table that receives audit rows.
        """
        self._storage = storage
        self._table_name = table_name
        self._logger = structlog.get_logger(__name__)

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        emit = _LEVELS.get(event.severity, "info")
        getattr(self._logger, emit)("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            self._storage.append_row(self._table_name, event.to_sheets_row())
        except Exception as e:
            # Audit failures never reach the caller
            self._logger.error(
                "audit_storage_failed",
                table=self._table_name,
                event_type=event.event_type.value,
                error=str(e),
            )
            return False
        return True

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., adding a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
