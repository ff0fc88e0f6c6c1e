"""
Row Decoder

Turns the raw cells of a table (strings, numbers, date objects, whatever
the backend hands back) into records keyed by canonical column names.

Decoding never fails as a whole: a cell that cannot be decoded becomes
None and is logged, and the rest of the row survives.
"""

from typing import Any, Optional, Sequence

import structlog

from src.models.schema import (
    FieldType,
    TableSchema,
    canonical_key,
    field_type_for,
    format_date_cell,
    parse_number,
)


logger = structlog.get_logger(__name__)


def decode_value(value: Any, field_type: FieldType) -> Any:
    """Decode one cell according to its column's semantic type."""
    if field_type is FieldType.NUMBER:
        return parse_number(value)
    if field_type is FieldType.DATE:
        return format_date_cell(value)
    return value


def decode_row(
    keys: Sequence[str],
    row: Sequence[Any],
    schema: Optional[TableSchema] = None,
) -> dict[str, Any]:
    """Decode one data row into a {canonical key: value} record."""
    record: dict[str, Any] = {}
    for index, key in enumerate(keys):
        if not key:
            continue
        raw = row[index] if index < len(row) else ""
        field_type = schema.field_type(key) if schema else field_type_for(key)
        try:
            record[key] = decode_value(raw, field_type)
        except Exception as e:
            logger.warning(
                "field_decode_failed",
                key=key,
                raw_value=repr(raw),
                error=str(e),
            )
            record[key] = None
    return record


def decode_rows(
    values: Sequence[Sequence[Any]],
    schema: Optional[TableSchema] = None,
) -> list[dict[str, Any]]:
    """
    Decode a whole table (header row first).

    A table with only a header, or nothing at all, decodes to [].
    """
    if len(values) < 2:
        return []
    keys = [canonical_key(h) for h in values[0]]
    return [decode_row(keys, row, schema) for row in values[1:]]
