"""
Shared fixtures.

Every test runs against the in-memory store; no Google API is touched.
"""

import pytest

from src.config import LedgerSettings
from src.ledger.decoder import decode_rows
from src.models.schema import (
    CARD_HEADERS,
    CONFIG_HEADERS,
    GOAL_HEADERS,
    REMINDER_HEADERS,
    TRANSACTION_HEADERS,
    LedgerTables,
)
from src.orchestrator import PersonalLedger
from src.services.storage import InMemoryTableStore


def transaction_row(
    tr_id,
    date,
    type_,
    category,
    amount,
    payment_method="Cash",
    account="",
    related_id="",
    description="",
):
    """A raw Transactions row in TRANSACTION_HEADERS order."""
    return [tr_id, date, type_, category, amount, description, payment_method, account, related_id]


def read_records(store, table):
    """Decoded records of a table, straight from the store."""
    return decode_rows(store.read_table(table))


def find_record(store, table, record_id):
    for record in read_records(store, table):
        if record["ID"] == record_id:
            return record
    return None


@pytest.fixture
def tables():
    return LedgerTables()


@pytest.fixture
def settings():
    return LedgerSettings()


@pytest.fixture
def seed_tables(tables):
    """Minimal ledger: one card, one goal, two reminders, no transactions."""
    return {
        tables.transactions: [list(TRANSACTION_HEADERS)],
        tables.cards: [
            list(CARD_HEADERS),
            ["CARD-2000", "Visa Gold", 50000, 1000, 0, "", 24, ""],
        ],
        tables.goals: [
            list(GOAL_HEADERS),
            ["GOAL-3000", "Emergency Fund", 1000, 800, 100, "High", "2024-12-31"],
        ],
        tables.reminders: [
            list(REMINDER_HEADERS),
            ["REM-4000", "Electricity", "Utilities", 1500, "2024-01-31", "Yes", "Bank Transfer", "Pending", 10],
            ["REM-4001", "Car Insurance", "Insurance", 3000, "2024-02-15", "No", "Credit Card", "Pending", 25],
        ],
        tables.config: [
            list(CONFIG_HEADERS),
            ["NEXT_TRANSACTION_ID", 1000],
            ["NEXT_CARD_ID", 2001],
            ["NEXT_GOAL_ID", 3001],
            ["NEXT_REMINDER_ID", 4002],
        ],
    }


@pytest.fixture
def store(seed_tables):
    return InMemoryTableStore(seed_tables)


@pytest.fixture
def ledger(store, tables, settings):
    return PersonalLedger(store, tables=tables, settings=settings)
