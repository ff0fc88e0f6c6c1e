"""
Compensating Change Sets

The spreadsheet has no transactions, so a multi-step update (append the
transaction, adjust the card, adjust the goal) can fail half way. A
ChangeSet records how to undo every write as it happens; when the
operation fails, the writes are undone in reverse order.

Undo is best effort: an undo that itself fails is logged and the
remaining undo steps still run.

Usage:
    with ChangeSet(store) as changes:
        row = store.append_row(...)
        changes.record_append(table, row)
        ...
"""

from typing import Any, Literal, Optional, Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from src.services.storage import TableStore


logger = structlog.get_logger(__name__)


class _Step(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["append", "update"]
    table: str
    row_number: int
    previous: Optional[tuple[Any, ...]] = None


class ChangeSet:
    """Undo log for one logical operation."""

    def __init__(self, store: TableStore):
        self._store = store
        self._steps: list[_Step] = []
        self.rollback_failures: list[str] = []
        self.undone_steps = 0
        self.rolled_back = False

    def __len__(self) -> int:
        return len(self._steps)

    def record_append(self, table: str, row_number: int) -> None:
        self._steps.append(_Step(kind="append", table=table, row_number=row_number))

    def record_update(
        self,
        table: str,
        row_number: int,
        previous: Sequence[Any],
    ) -> None:
        self._steps.append(_Step(
            kind="update",
            table=table,
            row_number=row_number,
            previous=tuple(previous),
        ))

    def rollback(self) -> list[str]:
        """
        Undo every recorded step, newest first.

        Returns the descriptions of undo steps that failed.
        """
        self.undone_steps = len(self._steps)
        failures = []
        for step in reversed(self._steps):
            try:
                if step.kind == "append":
                    self._store.delete_row(step.table, step.row_number)
                else:
                    self._store.update_row(step.table, step.row_number, list(step.previous))
            except Exception as e:
                description = f"{step.kind} {step.table}!{step.row_number}: {e}"
                logger.error("rollback_step_failed", step=description)
                failures.append(description)
        self.rolled_back = True
        self.rollback_failures = failures
        self._steps.clear()
        return failures

    def __enter__(self) -> "ChangeSet":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None and self._steps:
            logger.warning(
                "rolling_back_changes",
                steps=len(self._steps),
                error=str(exc),
            )
            self.rollback()
        return False
