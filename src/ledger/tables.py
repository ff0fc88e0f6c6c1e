"""
Table Repository

Loads tables from the store into snapshots and writes records back.

A TableSnapshot holds the header, the raw rows, the decoded records and
an index from record id to sheet row number, built once per load. Updates
by id use that index instead of rescanning the id column, and each write
can register its undo action in a ChangeSet.
"""

from typing import Any, Mapping, Optional, Sequence

from pydantic import BaseModel, PrivateAttr

from src.ledger.decoder import decode_row
from src.ledger.unit_of_work import ChangeSet
from src.models.schema import (
    FieldType,
    TableSchema,
    canonical_key,
    encode_cell,
    field_type_for,
    parse_number,
)
from src.services.storage import TableStore


ID_KEY = "ID"
HEADER_ROW = 1


class TableSnapshot(BaseModel):
    """A table as read at one point in time."""

    name: str
    header: list[Any]
    raw_rows: list[list[Any]]
    records: list[dict[str, Any]]
    table_schema: Optional[TableSchema] = None

    _keys: list[str] = PrivateAttr(default_factory=list)
    _id_index: dict[str, int] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._keys = [canonical_key(h) for h in self.header]
        for position, record in enumerate(self.records):
            record_id = str(record.get(ID_KEY) or "").strip()
            # First occurrence wins, like a top-down scan of the id column
            if record_id and record_id not in self._id_index:
                self._id_index[record_id] = position

    @property
    def keys(self) -> list[str]:
        """Canonical key of every column, in header order."""
        return self._keys

    def row_number(self, position: int) -> int:
        """Sheet row number of the record at `position`."""
        return position + HEADER_ROW + 1

    def position_of(self, record_id: str) -> Optional[int]:
        return self._id_index.get(str(record_id).strip())

    def find(self, record_id: str) -> Optional[dict[str, Any]]:
        position = self.position_of(record_id)
        return None if position is None else self.records[position]

    def column_index(self, key: str) -> Optional[int]:
        """Column position of a canonical key ('RELATED_ID' matches 'RELATEDID')."""
        key = canonical_key(key)
        if key in self.keys:
            return self.keys.index(key)
        relaxed = key.replace("_", "")
        for index, existing in enumerate(self.keys):
            if existing.replace("_", "") == relaxed:
                return index
        return None

    def field_type(self, key: str) -> FieldType:
        return (
            self.table_schema.field_type(key)
            if self.table_schema
            else field_type_for(key)
        )

    def encode(self, record: Mapping[str, Any]) -> list[Any]:
        """Lay a {key: value} record out in header order."""
        row = [""] * len(self.header)
        for key, value in record.items():
            index = self.column_index(key)
            if index is not None:
                row[index] = encode_cell(value)
        return row

    def raw_row(self, position: int) -> list[Any]:
        """Raw cells of a record, padded to the header width."""
        row = list(self.raw_rows[position])
        return row + [""] * (len(self.header) - len(row))


class TableRepository:
    """Reads snapshots from, and writes records to, a TableStore."""

    def __init__(
        self,
        store: TableStore,
        schemas: Optional[Mapping[str, TableSchema]] = None,
    ):
        self._store = store
        self._schemas = dict(schemas or {})

    @property
    def store(self) -> TableStore:
        return self._store

    def schema_for(self, name: str) -> Optional[TableSchema]:
        return self._schemas.get(name)

    def validate_schemas(self, names: Optional[Sequence[str]] = None) -> None:
        """
        Check that every table has the columns its schema requires.

        Raises:
            TableNotFoundError: If a table doesn't exist
            SchemaValidationError: If a required column is missing
        """
        for name in names or list(self._schemas):
            values = self._store.read_table(name)
            header = values[0] if values else []
            self._schemas[name].validate_header(header)

    def load(self, name: str) -> TableSnapshot:
        """
        Read and decode a whole table.

        Raises:
            TableNotFoundError: If the table doesn't exist
        """
        values = self._store.read_table(name)
        schema = self.schema_for(name)
        header = list(values[0]) if values else []
        raw_rows = [list(row) for row in values[1:]]
        keys = [canonical_key(h) for h in header]
        records = [decode_row(keys, row, schema) for row in raw_rows]
        return TableSnapshot(
            name=name,
            header=header,
            raw_rows=raw_rows,
            records=records,
            table_schema=schema,
        )

    def append(
        self,
        snapshot: TableSnapshot,
        record: Mapping[str, Any],
        change_set: Optional[ChangeSet] = None,
    ) -> int:
        """Append a record to the snapshot's table; returns its row number."""
        row_number = self._store.append_row(snapshot.name, snapshot.encode(record))
        if change_set is not None:
            change_set.record_append(snapshot.name, row_number)
        return row_number

    def update(
        self,
        snapshot: TableSnapshot,
        record_id: str,
        changes: Mapping[str, Any],
        change_set: Optional[ChangeSet] = None,
    ) -> bool:
        """
        Overwrite the given fields of one record.

        Keys not present in the table are ignored; numeric fields are
        re-parsed. Returns False when the id is not in the table.
        """
        position = snapshot.position_of(record_id)
        if position is None:
            return False

        previous = snapshot.raw_row(position)
        row = list(previous)
        for key, value in changes.items():
            index = snapshot.column_index(key)
            if index is None:
                continue
            if snapshot.field_type(snapshot.keys[index]) is FieldType.NUMBER:
                value = parse_number(value)
            row[index] = encode_cell(value)

        row_number = snapshot.row_number(position)
        self._store.update_row(snapshot.name, row_number, row)
        if change_set is not None:
            change_set.record_update(snapshot.name, row_number, previous)

        # Keep the snapshot usable for follow-up reads in the same operation
        snapshot.raw_rows[position] = row
        snapshot.records[position] = decode_row(snapshot.keys, row, snapshot.table_schema)
        return True
