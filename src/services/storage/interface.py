"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Pass the store explicitly to every component instead of reaching
   for a global spreadsheet handle

The interface is intentionally simple - we're not building a full ORM.
A table is a header row followed by data rows. Rows are addressed the
way a spreadsheet addresses them: 1-based, with the header at row 1.

CONCURRENCY: Calls are blocking and there is no locking. Two callers that
read-modify-write the same table can lose an update.
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence


class TableStore(ABC):
    """
    Abstract interface for tabular storage.

    Any storage implementation (Google Sheets, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    def table_names(self) -> list[str]:
        """Names of all tables in the store."""
        pass

    @abstractmethod
    def read_table(self, name: str) -> list[list[Any]]:
        """
        Read a whole table, header row first.

        Raises:
            TableNotFoundError: If the table doesn't exist
        """
        pass

    @abstractmethod
    def append_row(self, name: str, values: Sequence[Any]) -> int:
        """
        Append a row to the end of a table.

        Returns:
            The row number the values were written to

        Raises:
            TableNotFoundError: If the table doesn't exist
        """
        pass

    @abstractmethod
    def update_row(self, name: str, row_number: int, values: Sequence[Any]) -> None:
        """
        Overwrite a row, starting at the first column.

        Raises:
            TableNotFoundError: If the table doesn't exist
            NotFoundError: If the row is outside the table
        """
        pass

    @abstractmethod
    def write_rows(
        self,
        name: str,
        start_row: int,
        rows: Sequence[Sequence[Any]],
    ) -> None:
        """Overwrite a block of consecutive rows in a single write."""
        pass

    @abstractmethod
    def delete_row(self, name: str, row_number: int) -> None:
        """Delete a row; rows below it move up by one."""
        pass

    @abstractmethod
    def ensure_table(self, name: str, header: Sequence[str]) -> None:
        """Create the table with the given header if it doesn't exist."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class TableNotFoundError(NotFoundError):
    """The named table doesn't exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Table not found: {name}")


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
