"""Tests for cell parsing and the row decoder."""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from src.ledger.decoder import decode_row, decode_rows, decode_value
from src.models.schema import (
    FieldType,
    SchemaValidationError,
    TableSchema,
    canonical_key,
    field_type_for,
    parse_date,
    parse_number,
)


class TestCanonicalKey:
    """Tests for header normalization."""

    @pytest.mark.parametrize("header, expected", [
        ("AMOUNT(₱)", "AMOUNT"),
        ("Payment Method", "PAYMENTMETHOD"),
        ("Last Payment Date", "LASTPAYMENTDATE"),
        ("related_id", "RELATED_ID"),
        ("APR(%)", "APR"),
        ("  id ", "ID"),
    ])
    def test_canonical_key(self, header, expected):
        assert canonical_key(header) == expected

    def test_field_types(self):
        """Numeric and date keys are typed, everything else is text."""
        assert field_type_for("AMOUNT") is FieldType.NUMBER
        assert field_type_for("DAYSLEFT") is FieldType.NUMBER
        assert field_type_for("DUEDATE") is FieldType.DATE
        assert field_type_for("DESCRIPTION") is FieldType.TEXT


class TestParseNumber:
    """Tests for numeric cell parsing."""

    def test_thousands_separators_removed(self):
        assert parse_number("1,234.50") == 1234.5

    def test_unparseable_text_is_zero(self):
        assert parse_number("N/A") == 0.0

    def test_blank_text_is_zero(self):
        assert parse_number("") == 0.0
        assert parse_number("   ") == 0.0

    def test_numbers_pass_through(self):
        assert parse_number(42) == 42.0
        assert parse_number(12.5) == 12.5

    def test_none_is_zero(self):
        assert parse_number(None) == 0.0

    @pytest.mark.parametrize("value", ["NaN", "nan", " -nan ", float("nan")])
    def test_nan_is_zero(self, value):
        """Not-a-number never leaks into the totals."""
        assert parse_number(value) == 0.0

    def test_date_cell_becomes_serial_number(self):
        """A number mis-formatted as a date is read back as its serial value."""
        assert parse_number(date(2024, 1, 1)) == 45292.0
        assert parse_number(datetime(1900, 1, 1, 12, 0)) == 2.5


class TestParseDate:
    """Tests for best-effort date parsing."""

    def test_iso_string(self):
        assert parse_date("2024-01-31") == date(2024, 1, 31)

    def test_sheet_formatted_string(self):
        assert parse_date("1/31/2024") == date(2024, 1, 31)

    def test_date_objects(self):
        assert parse_date(datetime(2024, 5, 1, 9, 30)) == date(2024, 5, 1)

    def test_garbage_is_none(self):
        assert parse_date("not a date") is None
        assert parse_date("") is None
        assert parse_date(None) is None


class TestDecodeRows:
    """Tests for whole-table decoding."""

    def test_header_only_table_is_empty(self):
        assert decode_rows([["ID", "Amount(₱)", "Date"]]) == []

    def test_empty_table_is_empty(self):
        assert decode_rows([]) == []

    def test_decodes_by_canonical_key(self):
        values = [
            ["ID", "Date", "Amount(₱)", "Description"],
            ["TR-1000", date(2024, 3, 5), "2,500", "Groceries"],
        ]
        records = decode_rows(values)
        assert records == [{
            "ID": "TR-1000",
            "DATE": "2024-03-05",
            "AMOUNT": 2500.0,
            "DESCRIPTION": "Groceries",
        }]

    def test_string_dates_pass_through(self):
        records = decode_rows([["Due Date"], ["1/31/2024"]])
        assert records[0]["DUEDATE"] == "1/31/2024"

    def test_short_rows_are_padded(self):
        records = decode_rows([["ID", "Amount", "Account"], ["TR-1"]])
        assert records[0] == {"ID": "TR-1", "AMOUNT": 0.0, "ACCOUNT": ""}

    def test_failed_field_becomes_none(self):
        """One bad cell doesn't take the row down with it."""
        class Unreadable:
            def __float__(self):
                raise RuntimeError("corrupt cell")

        record = decode_row(["ID", "AMOUNT"], ["TR-1", Unreadable()])
        assert record == {"ID": "TR-1", "AMOUNT": None}

    def test_schema_without_column_falls_back_to_key_sets(self):
        schema = TableSchema(
            name="Custom",
            columns=(),
        )
        assert decode_value("7", schema.field_type("AMOUNT")) == 7.0
        assert decode_value("7", schema.field_type("NOTES")) == "7"


class TestTableSchema:
    """Tests for schema validation."""

    def test_missing_required_columns(self):
        schema = TableSchema.from_headers(
            "CreditCards",
            ["ID", "Balance(₱)"],
            required={"ID", "BALANCE", "LASTPAYMENT"},
        )
        with pytest.raises(SchemaValidationError, match="LASTPAYMENT"):
            schema.validate_header(["ID", "Name"])

    def test_valid_header(self):
        schema = TableSchema.from_headers("Goals", ["ID"], required={"ID"})
        schema.validate_header(["ID", "Name"])

    def test_columns_are_typed(self):
        schema = TableSchema.from_headers("Transactions", ["ID", "Amount(₱)", "Date"])
        assert schema.keys == ["ID", "AMOUNT", "DATE"]
        assert schema.field_type("AMOUNT") is FieldType.NUMBER
        assert schema.field_type("DATE") is FieldType.DATE
        assert schema.header == ["ID", "Amount(₱)", "Date"]

    def test_schema_is_immutable(self):
        schema = TableSchema.from_headers("Goals", ["ID"], required={"ID"})

        with pytest.raises(ValidationError):
            schema.name = "Other"
        with pytest.raises(ValidationError):
            schema.columns[0].key = "NAME"

    def test_columns_validate_field_type(self):
        schema = TableSchema(
            name="Custom",
            columns=[{"key": "PRICE", "field_type": "number", "column_name": "Price"}],
        )
        assert schema.columns[0].field_type is FieldType.NUMBER
        assert schema.field_type("PRICE") is FieldType.NUMBER

        with pytest.raises(ValidationError):
            TableSchema(
                name="Custom",
                columns=[{"key": "PRICE", "field_type": "money", "column_name": "Price"}],
            )
