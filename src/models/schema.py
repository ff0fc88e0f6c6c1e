"""
Table Schemas and Cell Parsing

Every table in the spreadsheet is described by a TableSchema: an ordered
list of (canonical key, field type, column name) entries. Column headers
are free text in the sheet ("Amount(₱)", "Payment Method"); the rest of
the system only ever sees canonical keys ("AMOUNT", "PAYMENTMETHOD").

DESIGN DECISION: Schemas are validated once, when the application starts.
Decoding and encoding rows is then a pure function of the schema and the
cell values, instead of ad hoc header matching scattered through the code.
"""

import math
import re
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Iterable, Optional

from dateutil import parser as date_parser
from pydantic import BaseModel, ConfigDict


class FieldType(str, Enum):
    """Semantic type of a column."""
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"


NUMERIC_KEYS = frozenset({
    "AMOUNT",
    "LIMIT",
    "BALANCE",
    "LASTPAYMENT",
    "APR",
    "TARGETAMOUNT",
    "SAVEDAMOUNT",
    "MONTHLYSAVINGS",
    "DAYSLEFT",
})

DATE_KEYS = frozenset({
    "DATE",
    "LASTPAYMENTDATE",
    "DUEDATE",
    "STATEMENTDATE",
    "TARGETDATE",
})

# Day zero of spreadsheet serial dates
SPREADSHEET_EPOCH = datetime(1899, 12, 30)

_NON_KEY_CHARS = re.compile(r"[^A-Za-z0-9_]")


class SchemaValidationError(Exception):
    """A table is missing columns the system cannot work without."""

    def __init__(self, table: str, missing: Iterable[str]):
        self.table = table
        self.missing = sorted(missing)
        super().__init__(
            f"Table '{table}' is missing required columns: {', '.join(self.missing)}"
        )


# =============================================================================
# CELL PARSING
# =============================================================================

def canonical_key(name: Any) -> str:
    """Normalize a column header: keep [A-Za-z0-9_] and uppercase."""
    return _NON_KEY_CHARS.sub("", str(name)).upper()


def field_type_for(key: str) -> FieldType:
    """Semantic type of a canonical key."""
    if key in NUMERIC_KEYS:
        return FieldType.NUMBER
    if key in DATE_KEYS:
        return FieldType.DATE
    return FieldType.TEXT


def serial_from_datetime(value: date) -> float:
    """Spreadsheet serial number (days since 1899-12-30) of a date cell."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if value.tzinfo is not None:
        value = value.replace(tzinfo=None)
    return (value - SPREADSHEET_EPOCH) / timedelta(days=1)


def parse_number(value: Any) -> float:
    """
    Parse a numeric cell.

    Text has its thousands separators removed first; anything that does
    not parse becomes 0. A date-typed cell in a numeric column is read
    back as its serial number, which is what the sheet actually stores.
    """
    if isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        if not cleaned:
            return 0.0
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
    elif isinstance(value, (date, datetime)):
        return serial_from_datetime(value)
    elif value is None:
        return 0.0
    else:
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
    # NaN counts as a failed parse
    return 0.0 if math.isnan(number) else number


def format_date_cell(value: Any) -> Any:
    """Date-typed cells become ISO strings; everything else passes through."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def parse_date(value: Any) -> Optional[date]:
    """
    Best-effort conversion of a stored date value to a date.

    Accepts date objects, ISO strings and the locale-formatted strings
    Google Sheets renders for date cells. Returns None when unparseable.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def encode_cell(value: Any) -> Any:
    """Convert a Python value to something a sheet cell accepts."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return format_date_cell(value)
    return value


# =============================================================================
# SCHEMA DESCRIPTORS
# =============================================================================

class ColumnSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    field_type: FieldType
    column_name: str


class TableSchema(BaseModel):
    """Ordered column layout of one table."""
    model_config = ConfigDict(frozen=True)

    name: str
    columns: tuple[ColumnSpec, ...]
    id_prefix: Optional[str] = None
    required_keys: frozenset[str] = frozenset()

    @classmethod
    def from_headers(
        cls,
        name: str,
        headers: Iterable[str],
        id_prefix: Optional[str] = None,
        required: Iterable[str] = (),
    ) -> "TableSchema":
        columns = tuple(
            ColumnSpec(
                key=canonical_key(h),
                field_type=field_type_for(canonical_key(h)),
                column_name=h,
            )
            for h in headers
        )
        return cls(
            name=name,
            columns=columns,
            id_prefix=id_prefix,
            required_keys=frozenset(required),
        )

    @property
    def header(self) -> list[str]:
        return [column.column_name for column in self.columns]

    @property
    def keys(self) -> list[str]:
        return [column.key for column in self.columns]

    def field_type(self, key: str) -> FieldType:
        for column in self.columns:
            if column.key == key:
                return column.field_type
        return field_type_for(key)

    def validate_header(self, header: Iterable[Any]) -> None:
        """Raise SchemaValidationError if a required column is absent."""
        present = {canonical_key(h) for h in header}
        missing = self.required_keys - present
        if missing:
            raise SchemaValidationError(self.name, missing)


TRANSACTION_HEADERS = (
    "ID", "Date", "Type", "Category", "Amount(₱)", "Description",
    "Payment Method", "Account", "Related ID",
)
CARD_HEADERS = (
    "ID", "Name", "Limit(₱)", "Balance(₱)", "Last Payment(₱)",
    "Last Payment Date", "APR(%)", "Statement Date",
)
GOAL_HEADERS = (
    "ID", "Name", "Target Amount(₱)", "Saved Amount(₱)",
    "Monthly Savings(₱)", "Priority Level", "Target Date",
)
REMINDER_HEADERS = (
    "ID", "Description", "Category", "Amount(₱)", "Due Date", "Recurring",
    "Payment Channel", "Status", "Days Left",
)
CONFIG_HEADERS = ("Key", "Value")


class LedgerTables(BaseModel):
    """Names of the tables the ledger works with."""
    model_config = ConfigDict(frozen=True)

    transactions: str = "Transactions"
    cards: str = "CreditCards"
    goals: str = "SavingsGoals"
    reminders: str = "BillReminders"
    config: str = "Config"
    audit: str = "AuditLog"

    @classmethod
    def from_settings(cls, sheets_settings) -> "LedgerTables":
        return cls(
            transactions=sheets_settings.transactions_sheet_name,
            cards=sheets_settings.cards_sheet_name,
            goals=sheets_settings.goals_sheet_name,
            reminders=sheets_settings.reminders_sheet_name,
            config=sheets_settings.config_sheet_name,
            audit=sheets_settings.audit_sheet_name,
        )


def build_schemas(
    tables: LedgerTables,
    transaction_prefix: str = "TR",
    card_prefix: str = "CARD",
    goal_prefix: str = "GOAL",
    reminder_prefix: str = "REM",
) -> dict[str, TableSchema]:
    """Schemas for every ledger table, keyed by table name."""
    schemas = [
        TableSchema.from_headers(
            tables.transactions,
            TRANSACTION_HEADERS,
            id_prefix=transaction_prefix,
            required={"ID", "TYPE", "CATEGORY", "AMOUNT", "PAYMENTMETHOD", "ACCOUNT"},
        ),
        TableSchema.from_headers(
            tables.cards,
            CARD_HEADERS,
            id_prefix=card_prefix,
            required={"ID", "LIMIT", "BALANCE", "LASTPAYMENT", "LASTPAYMENTDATE"},
        ),
        TableSchema.from_headers(
            tables.goals,
            GOAL_HEADERS,
            id_prefix=goal_prefix,
            required={"ID", "TARGETAMOUNT", "SAVEDAMOUNT"},
        ),
        TableSchema.from_headers(
            tables.reminders,
            REMINDER_HEADERS,
            id_prefix=reminder_prefix,
            required={"ID", "AMOUNT", "DUEDATE", "RECURRING", "STATUS"},
        ),
        TableSchema.from_headers(
            tables.config,
            CONFIG_HEADERS,
            required={"KEY", "VALUE"},
        ),
    ]
    return {schema.name: schema for schema in schemas}
