"""Services package."""

from src.services.storage import (
    ConnectionError,
    GoogleSheetsClient,
    GoogleSheetsTableStore,
    InMemoryTableStore,
    NotFoundError,
    StorageError,
    TableNotFoundError,
    TableStore,
)

__all__ = [
    "ConnectionError",
    "GoogleSheetsClient",
    "GoogleSheetsTableStore",
    "InMemoryTableStore",
    "NotFoundError",
    "StorageError",
    "TableNotFoundError",
    "TableStore",
]
