"""
Main Orchestrator for Personal Ledger

This module ties together all the components and exposes the entry points
the rendering layer calls, one per user action:

- get_dashboard_data()                       -> DashboardData
- add_transaction(form)                      -> OperationResult
- add_record(table, form, prefix)            -> OperationResult
- mark_reminder_paid(reminder_id, form)      -> OperationResult
- update_record_by_id(table, id, data)       -> bool
- export_to_csv(table)                       -> base64 CSV or None
- generate_unique_id(prefix)                 -> "<PREFIX>-<N>"
- recalculate_credit_cards()                 -> list[CreditCard]

DESIGN DECISION: The store is created once and passed explicitly to every
component. Nothing reaches for a global spreadsheet handle, so the whole
ledger runs unchanged against the in-memory store in tests.

Reads never raise across this boundary and writes return error results,
except for recalculate_credit_cards(), which raises on a broken card
table schema before touching any row.
"""

from typing import Any, Mapping, Optional

import structlog

from src.audit import AuditLogger, configure_logging
from src.config import LedgerSettings, get_settings
from src.ledger import (
    CardRecalculationJob,
    IdAllocator,
    LedgerAggregator,
    RecordService,
    RelationalUpdateProtocol,
    TableRepository,
)
from src.models.audit import AUDIT_COLUMNS
from src.models.finance import CreditCard, DashboardData, OperationResult
from src.models.schema import CONFIG_HEADERS, LedgerTables, build_schemas
from src.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsTableStore,
    TableStore,
)


logger = structlog.get_logger(__name__)


class PersonalLedger:
    """
    Facade over the ledger engine.

    Owns one store handle and one instance of each component.
    """

    def __init__(
        self,
        store: TableStore,
        tables: Optional[LedgerTables] = None,
        settings: Optional[LedgerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._tables = tables or LedgerTables()
        self._settings = settings or LedgerSettings()
        self._audit = audit_logger or AuditLogger()

        schemas = build_schemas(
            self._tables,
            transaction_prefix=self._settings.transaction_prefix,
            card_prefix=self._settings.card_prefix,
            goal_prefix=self._settings.goal_prefix,
            reminder_prefix=self._settings.reminder_prefix,
        )
        self._repository = TableRepository(store, schemas)
        self._ids = IdAllocator.from_settings(store, self._tables.config, self._settings)
        self._aggregator = LedgerAggregator(self._repository, self._tables, self._settings)
        self._protocol = RelationalUpdateProtocol(
            self._repository,
            self._ids,
            self._tables,
            self._settings,
            audit_logger=self._audit,
        )
        self._records = RecordService(
            self._repository,
            self._ids,
            self._protocol,
            self._tables,
            audit_logger=self._audit,
        )
        self._recalculation = CardRecalculationJob(
            self._repository,
            self._tables,
            self._settings,
            audit_logger=self._audit,
        )

    @property
    def tables(self) -> LedgerTables:
        return self._tables

    def validate_schemas(self) -> None:
        """
        Startup check of every ledger table's header.

        Raises:
            TableNotFoundError: If a table doesn't exist
            SchemaValidationError: If a required column is missing
        """
        self._repository.validate_schemas()

    def get_dashboard_data(self, user: Optional[str] = None) -> DashboardData:
        return self._aggregator.get_dashboard_data(user=user)

    def get_credit_cards(self) -> list[CreditCard]:
        """Cards with live balances, for display."""
        return self._aggregator.live_cards()

    def add_transaction(self, form: Mapping[str, Any]) -> OperationResult:
        return self._protocol.add_transaction(form)

    def add_record(
        self,
        table_name: str,
        form: Mapping[str, Any],
        prefix: str,
    ) -> OperationResult:
        return self._records.add_record(table_name, form, prefix)

    def mark_reminder_paid(
        self,
        reminder_id: str,
        form: Optional[Mapping[str, Any]] = None,
    ) -> OperationResult:
        return self._protocol.mark_reminder_paid(reminder_id, form)

    def update_record_by_id(
        self,
        table_name: str,
        record_id: str,
        data: Mapping[str, Any],
    ) -> bool:
        return self._records.update_record_by_id(table_name, record_id, data)

    def export_to_csv(self, table_name: str) -> Optional[str]:
        return self._records.export_to_csv(table_name)

    def generate_unique_id(self, prefix: str) -> str:
        return self._records.generate_unique_id(prefix)

    def recalculate_credit_cards(self) -> list[CreditCard]:
        return self._recalculation.run()


def create_app_components(
    store: Optional[TableStore] = None,
    validate: bool = True,
) -> PersonalLedger:
    """
    Factory function to create the ledger from settings.

    Args:
        store: Table store to use. Defaults to Google Sheets as
              configured through GOOGLE_SHEETS_* environment variables.
        validate: Check every table's schema before returning.

    Returns:
        A ready-to-use PersonalLedger
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    if store is None:
        sheets_settings = settings.google_sheets
        tables = LedgerTables.from_settings(sheets_settings)
        store = GoogleSheetsTableStore(GoogleSheetsClient(
            credentials_path=sheets_settings.credentials_path,
            spreadsheet_id=sheets_settings.spreadsheet_id,
        ))
    else:
        tables = LedgerTables()

    store.ensure_table(tables.config, CONFIG_HEADERS)
    try:
        store.ensure_table(tables.audit, AUDIT_COLUMNS)
        audit_logger = AuditLogger(store, tables.audit)
    except Exception as e:
        # Audit table unavailable - continue with local-only logging
        logger.warning("audit_storage_unavailable", error=str(e))
        audit_logger = AuditLogger()

    ledger = PersonalLedger(
        store,
        tables=tables,
        settings=settings.ledger,
        audit_logger=audit_logger,
    )
    if validate:
        ledger.validate_schemas()
    return ledger
