"""
Id Allocation

Issues prefix-scoped ids ("TR-1000", "CARD-2000", ...) from counters kept
in the key/value Config table.

Counters are not transactional with the rows that use them: an id is
consumed as soon as it is handed out, even if the insert that follows
fails or is rolled back. Ids are therefore unique but may have gaps.
"""

from typing import Optional

import structlog

from src.config import LedgerSettings
from src.models.schema import canonical_key, parse_number
from src.services.storage import TableStore


logger = structlog.get_logger(__name__)


COUNTER_KEYS = {
    "transaction": "NEXT_TRANSACTION_ID",
    "card": "NEXT_CARD_ID",
    "goal": "NEXT_GOAL_ID",
    "reminder": "NEXT_REMINDER_ID",
}

DEFAULT_START = 1


class IdAllocator:
    """Allocates ids by incrementing a per-prefix counter."""

    def __init__(
        self,
        store: TableStore,
        table_name: str = "Config",
        counters: Optional[dict[str, tuple[str, int]]] = None,
    ):
        """
        Args:
            store: Table store holding the counter table.
            table_name: Key/value table with one row per counter.
            counters: prefix -> (counter key, first value).
        """
        self._store = store
        self._table_name = table_name
        self._counters = dict(counters or {})

    @classmethod
    def from_settings(
        cls,
        store: TableStore,
        table_name: str,
        settings: LedgerSettings,
    ) -> "IdAllocator":
        return cls(
            store,
            table_name,
            counters={
                settings.transaction_prefix: (COUNTER_KEYS["transaction"], settings.transaction_id_start),
                settings.card_prefix: (COUNTER_KEYS["card"], settings.card_id_start),
                settings.goal_prefix: (COUNTER_KEYS["goal"], settings.goal_id_start),
                settings.reminder_prefix: (COUNTER_KEYS["reminder"], settings.reminder_id_start),
            },
        )

    def counter_for(self, prefix: str) -> tuple[str, int]:
        """Counter key and starting value for a prefix."""
        return self._counters.get(prefix, (f"NEXT_{canonical_key(prefix)}_ID", DEFAULT_START))

    def next_id(self, prefix: str) -> str:
        """
        Allocate the next id for `prefix` and advance its counter.

        Raises:
            TableNotFoundError: If the counter table doesn't exist
        """
        key, start = self.counter_for(prefix)
        values = self._store.read_table(self._table_name)

        for row_number, row in enumerate(values[1:], start=2):
            if row and canonical_key(row[0]) == key:
                current = int(parse_number(row[1] if len(row) > 1 else "")) or start
                self._store.update_row(self._table_name, row_number, [row[0], current + 1])
                break
        else:
            current = start
            self._store.append_row(self._table_name, [key, current + 1])

        new_id = f"{prefix}-{current}"
        logger.debug("id_allocated", prefix=prefix, id=new_id)
        return new_id
