"""
In-Memory Storage Implementation

Keeps every table as a list of rows in a dict. Used by the test suite
and for running the ledger locally without a Google account.

Reads return copies, so callers can never mutate stored rows by accident.
"""

import copy
from typing import Any, Optional, Sequence

from src.services.storage.interface import (
    NotFoundError,
    TableNotFoundError,
    TableStore,
)


class InMemoryTableStore(TableStore):
    """Table store backed by plain Python lists."""

    def __init__(self, tables: Optional[dict[str, list[list[Any]]]] = None):
        self._tables: dict[str, list[list[Any]]] = {
            name: [list(row) for row in rows]
            for name, rows in (tables or {}).items()
        }

    def _table(self, name: str) -> list[list[Any]]:
        try:
            return self._tables[name]
        except KeyError:
            raise TableNotFoundError(name)

    def _check_row(self, name: str, row_number: int) -> None:
        if not 1 <= row_number <= len(self._table(name)):
            raise NotFoundError(f"Row {row_number} is outside table {name}")

    def table_names(self) -> list[str]:
        return list(self._tables)

    def read_table(self, name: str) -> list[list[Any]]:
        return copy.deepcopy(self._table(name))

    def append_row(self, name: str, values: Sequence[Any]) -> int:
        table = self._table(name)
        table.append(list(values))
        return len(table)

    def update_row(self, name: str, row_number: int, values: Sequence[Any]) -> None:
        self._check_row(name, row_number)
        row = self._tables[name][row_number - 1]
        values = list(values)
        # Like a sheet range write: cells past the written values stay put
        self._tables[name][row_number - 1] = values + row[len(values):]

    def write_rows(
        self,
        name: str,
        start_row: int,
        rows: Sequence[Sequence[Any]],
    ) -> None:
        table = self._table(name)
        for offset, values in enumerate(rows):
            row_number = start_row + offset
            if row_number > len(table):
                table.append(list(values))
            else:
                self.update_row(name, row_number, values)

    def delete_row(self, name: str, row_number: int) -> None:
        self._check_row(name, row_number)
        del self._tables[name][row_number - 1]

    def ensure_table(self, name: str, header: Sequence[str]) -> None:
        if name not in self._tables:
            self._tables[name] = [list(header)]
