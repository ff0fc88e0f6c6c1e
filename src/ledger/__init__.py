"""Ledger engine package: decoding, aggregation, updates and reconciliation."""

from src.ledger.aggregator import (
    LedgerAggregator,
    apply_live_balances,
    compute_live_balances,
)
from src.ledger.decoder import decode_row, decode_rows, decode_value
from src.ledger.ids import IdAllocator
from src.ledger.protocol import (
    LedgerError,
    RecordNotFoundError,
    RelationalUpdateProtocol,
    next_due_date,
)
from src.ledger.recalculation import CardRecalculationJob
from src.ledger.records import RecordService, encode_csv
from src.ledger.tables import TableRepository, TableSnapshot
from src.ledger.unit_of_work import ChangeSet

__all__ = [
    "CardRecalculationJob",
    "ChangeSet",
    "IdAllocator",
    "LedgerAggregator",
    "LedgerError",
    "RecordNotFoundError",
    "RecordService",
    "RelationalUpdateProtocol",
    "TableRepository",
    "TableSnapshot",
    "apply_live_balances",
    "compute_live_balances",
    "decode_row",
    "decode_rows",
    "decode_value",
    "encode_csv",
    "next_due_date",
]
