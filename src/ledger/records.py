"""
Generic Record Operations

Add, update and export rows of any ledger table. Transactions are the
exception: adding one always goes through the relational update protocol
so its side effects run.
"""

import base64
import csv
import io
from datetime import date
from typing import Any, Mapping, Optional

import structlog

from src.audit import AuditLogger
from src.ledger.ids import IdAllocator
from src.ledger.protocol import RelationalUpdateProtocol
from src.ledger.tables import ID_KEY, TableRepository
from src.models.audit import AuditEventBuilder
from src.models.finance import OperationResult, RecurringFlag, ReminderStatus
from src.models.schema import (
    FieldType,
    LedgerTables,
    canonical_key,
    encode_cell,
    parse_date,
    parse_number,
)
from src.services.storage import NotFoundError, StorageError


logger = structlog.get_logger(__name__)


def encode_csv(values: list[list[Any]]) -> str:
    """Every cell quoted, embedded quotes doubled, one line per row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in values:
        writer.writerow([str(encode_cell(cell)) for cell in row])
    return buffer.getvalue()


class RecordService:
    """Table-agnostic record operations."""

    def __init__(
        self,
        repository: TableRepository,
        id_allocator: IdAllocator,
        protocol: RelationalUpdateProtocol,
        tables: LedgerTables,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._ids = id_allocator
        self._protocol = protocol
        self._tables = tables
        self._audit = audit_logger or AuditLogger()

    def generate_unique_id(self, prefix: str) -> str:
        """Next "<PREFIX>-<N>" id; the counter advances even if the id goes unused."""
        return self._ids.next_id(prefix)

    def _defaults_for(self, table_name: str, record: dict[str, Any]) -> dict[str, Any]:
        """Fill in the fields each table derives at creation time."""
        defaults: dict[str, Any] = {}
        if table_name == self._tables.reminders:
            defaults["STATUS"] = ReminderStatus.PENDING.value
            defaults["RECURRING"] = RecurringFlag.NO.value
            due = parse_date(record.get("DUEDATE"))
            if due is not None:
                record["DAYSLEFT"] = (due - date.today()).days
        elif table_name == self._tables.goals:
            defaults["SAVEDAMOUNT"] = 0
        elif table_name == self._tables.cards:
            defaults.update({"BALANCE": 0, "LASTPAYMENT": 0})
        for key, value in defaults.items():
            if record.get(key) in (None, ""):
                record[key] = value
        return record

    def add_record(
        self,
        table_name: str,
        form: Mapping[str, Any],
        prefix: str,
    ) -> OperationResult:
        """
        Append a record with a freshly allocated id.

        Transactions are delegated to the relational update protocol.
        """
        if table_name == self._tables.transactions:
            return self._protocol.add_transaction(form)

        try:
            snapshot = self._repository.load(table_name)
            record = {canonical_key(k): v for k, v in form.items()}
            for key, value in list(record.items()):
                if snapshot.field_type(key) is FieldType.NUMBER:
                    record[key] = parse_number(value)
            record = self._defaults_for(table_name, record)
            record[ID_KEY] = self._ids.next_id(prefix)
            self._repository.append(snapshot, record)
        except Exception as e:
            logger.error("add_record_failed", table=table_name, error=str(e))
            return OperationResult.error(f"Failed to add record to {table_name}: {e}")

        self._audit.log(AuditEventBuilder.record_added(table_name, record[ID_KEY]))
        return OperationResult.success(
            f"Record {record[ID_KEY]} added to {table_name}",
            record_id=record[ID_KEY],
        )

    def update_record_by_id(
        self,
        table_name: str,
        record_id: str,
        data: Mapping[str, Any],
    ) -> bool:
        """
        Overwrite the columns present in `data` on the matching record.

        Returns False when the table or the id doesn't exist, or when the
        store rejects the read or the write.
        """
        try:
            snapshot = self._repository.load(table_name)
        except NotFoundError:
            logger.info("update_table_not_found", table=table_name)
            return False
        except StorageError as e:
            logger.error("update_record_failed", table=table_name, error=str(e))
            return False

        changes = {k: v for k, v in data.items() if canonical_key(k) != ID_KEY}
        try:
            updated = self._repository.update(snapshot, record_id, changes)
        except StorageError as e:
            logger.error(
                "update_record_failed",
                table=table_name,
                record_id=record_id,
                error=str(e),
            )
            return False
        if not updated:
            logger.info("update_record_not_found", table=table_name, record_id=record_id)
            return False

        self._audit.log(AuditEventBuilder.record_updated(
            table_name,
            record_id,
            [canonical_key(k) for k in changes],
        ))
        return True

    def export_to_csv(self, table_name: str) -> Optional[str]:
        """
        Whole table as base64-encoded CSV.

        Returns None when the table doesn't exist or can't be read.
        """
        try:
            values = self._repository.store.read_table(table_name)
        except NotFoundError:
            return None
        except StorageError as e:
            logger.error("export_failed", table=table_name, error=str(e))
            return None

        content = encode_csv(values)
        self._audit.log(AuditEventBuilder.table_exported(table_name, max(len(values) - 1, 0)))
        return base64.b64encode(content.encode("utf-8")).decode("ascii")
