"""
Storage Services Package

Provides the abstract table store interface and concrete implementations.
Google Sheets is the production backend; the in-memory store serves tests
and local runs.
"""

from src.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    StorageError,
    TableNotFoundError,
    TableStore,
)
from src.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsTableStore,
)
from src.services.storage.memory import InMemoryTableStore

__all__ = [
    # Interface
    "TableStore",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    "TableNotFoundError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsTableStore",
    "InMemoryTableStore",
]
