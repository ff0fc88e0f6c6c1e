"""
Core Data Models for Personal Ledger

These models define the schemas for all data flowing through the system:
- Stored entities (transactions, credit cards, goals, reminders), built
  from decoded sheet records keyed by canonical column names
- Input forms submitted by the rendering layer
- Results handed back across the entry boundary (operation results,
  dashboard view model)

DESIGN DECISION: Stored entities are lenient. The spreadsheet is edited by
hand, so a stray value must never make a whole table unreadable. Input forms
are strict, because that is where bad data can still be rejected.
"""

from datetime import date
from enum import Enum
from typing import Literal, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from src.models.schema import canonical_key, parse_number


# =============================================================================
# ENUMS AND SPECIAL VALUES
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "Income"
    EXPENSE = "Expense"


class ReminderStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"


class RecurringFlag(str, Enum):
    YES = "Yes"
    NO = "No"


# Categories and payment methods are free text, but these values drive
# the cross-entity updates.
SAVINGS_DEPOSIT = "Savings Deposit"
CREDIT_CARD_PAYMENT = "Credit Card Payment"
BILL_PAYMENT = "Bill Payment"
CREDIT_CARD_METHOD = "Credit Card"


# =============================================================================
# STORED ENTITIES
# =============================================================================

class SheetRecord(BaseModel):
    """
    Base for entities read from a table.

    Field aliases are the canonical column keys, so a decoded record can be
    validated directly. Missing or null cells fall back to field defaults.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def drop_null_cells(cls, data):
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    def to_record(self) -> dict:
        """Canonical-key dict, ready to be encoded into a row."""
        return self.model_dump(by_alias=True)


class Transaction(SheetRecord):
    """A single income or expense entry. Immutable once written."""

    id: str = Field(default="", alias="ID")
    date: str = Field(default="", alias="DATE")
    type: str = Field(default="", alias="TYPE")
    category: str = Field(default="", alias="CATEGORY")
    amount: float = Field(default=0.0, alias="AMOUNT")
    description: str = Field(default="", alias="DESCRIPTION")
    payment_method: str = Field(default="", alias="PAYMENTMETHOD")
    account: str = Field(default="", alias="ACCOUNT")
    related_id: str = Field(default="", alias="RELATEDID")

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME.value

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE.value

    @property
    def is_card_payment(self) -> bool:
        return self.category == CREDIT_CARD_PAYMENT

    @property
    def is_savings_deposit(self) -> bool:
        return self.category == SAVINGS_DEPOSIT


class CreditCard(SheetRecord):
    """
    A credit card account.

    `balance` is derived from the transaction log. The stored value can
    drift; the live value is recomputed on every read and the batch job
    writes the true value back.
    """

    id: str = Field(default="", alias="ID")
    name: str = Field(default="", alias="NAME")
    limit: float = Field(default=0.0, alias="LIMIT")
    balance: float = Field(default=0.0, alias="BALANCE")
    last_payment: float = Field(default=0.0, alias="LASTPAYMENT")
    last_payment_date: str = Field(default="", alias="LASTPAYMENTDATE")
    apr: float = Field(default=0.0, alias="APR")
    statement_date: str = Field(default="", alias="STATEMENTDATE")

    @property
    def usage(self) -> float:
        return self.balance / self.limit if self.limit > 0 else 0.0


class Goal(SheetRecord):
    """A savings goal. Progress may exceed 1.0 when over-saved."""

    id: str = Field(default="", alias="ID")
    name: str = Field(default="", alias="NAME")
    target_amount: float = Field(default=0.0, alias="TARGETAMOUNT")
    saved_amount: float = Field(default=0.0, alias="SAVEDAMOUNT")
    monthly_savings: float = Field(default=0.0, alias="MONTHLYSAVINGS")
    priority_level: str = Field(default="", alias="PRIORITYLEVEL")
    target_date: str = Field(default="", alias="TARGETDATE")

    @property
    def progress(self) -> float:
        return self.saved_amount / self.target_amount if self.target_amount > 0 else 0.0


class Reminder(SheetRecord):
    """
    A bill reminder.

    `days_left` is computed once, when the reminder is created.
    """

    id: str = Field(default="", alias="ID")
    description: str = Field(default="", alias="DESCRIPTION")
    category: str = Field(default="", alias="CATEGORY")
    amount: float = Field(default=0.0, alias="AMOUNT")
    due_date: str = Field(default="", alias="DUEDATE")
    recurring: str = Field(default=RecurringFlag.NO.value, alias="RECURRING")
    payment_channel: str = Field(default="", alias="PAYMENTCHANNEL")
    status: str = Field(default=ReminderStatus.PENDING.value, alias="STATUS")
    days_left: float = Field(default=0.0, alias="DAYSLEFT")

    @property
    def is_recurring(self) -> bool:
        return self.recurring == RecurringFlag.YES.value

    @property
    def is_paid(self) -> bool:
        return self.status == ReminderStatus.PAID.value


# =============================================================================
# INPUT FORMS
# =============================================================================

class TransactionForm(BaseModel):
    """
    Form data for a new transaction.

    Keys arrive upper-cased from the rendering layer (TYPE, AMOUNT,
    RELATED_ID, ...); snake_case names are accepted as well.
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    date: Optional[str] = Field(default=None, alias="DATE")
    type: TransactionType = Field(..., alias="TYPE")
    category: str = Field(default="", alias="CATEGORY")
    amount: float = Field(..., ge=0, alias="AMOUNT")
    description: str = Field(default="", alias="DESCRIPTION")
    payment_method: str = Field(default="", alias="PAYMENTMETHOD")
    account: Optional[str] = Field(default=None, alias="ACCOUNT")
    related_id: Optional[str] = Field(default=None, alias="RELATED_ID")

    @model_validator(mode="before")
    @classmethod
    def canonicalize_keys(cls, data):
        """Accept 'Payment Method', 'paymentMethod', 'RELATEDID' and friends."""
        if not isinstance(data, dict):
            return data
        aliases = {
            canonical_key(f.alias).replace("_", ""): f.alias
            for f in cls.model_fields.values()
        }
        normalized = {}
        for key, value in data.items():
            alias = aliases.get(canonical_key(key).replace("_", ""))
            normalized[alias or key] = value
        return normalized

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, v):
        if isinstance(v, str):
            cleaned = v.replace(",", "").strip()
            if not cleaned:
                raise ValueError("Amount is required")
            return cleaned
        return v

    @field_validator("date", "account", "related_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, date):
            return v.isoformat()
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# RESULTS
# =============================================================================

class OperationResult(BaseModel):
    """Outcome of a write operation, returned instead of raising."""

    status: Literal["success", "error"]
    message: str
    record_id: Optional[str] = None

    @classmethod
    def success(cls, message: str, record_id: Optional[str] = None) -> "OperationResult":
        return cls(status="success", message=message, record_id=record_id)

    @classmethod
    def error(cls, message: str) -> "OperationResult":
        return cls(status="error", message=message)

    @property
    def ok(self) -> bool:
        return self.status == "success"


class ViewModel(BaseModel):
    """Dashboard payloads serialize with camelCase keys for the renderer."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CardSummary(ViewModel):
    id: str
    name: str
    limit: float
    balance: float
    usage: float
    apr: float = 0.0
    last_payment: float = 0.0
    last_payment_date: str = ""


class GoalSummary(ViewModel):
    id: str
    name: str
    target_amount: float
    saved_amount: float
    progress: float
    priority_level: str = ""
    target_date: str = ""


class DashboardData(ViewModel):
    """
    Everything the dashboard shows.

    Always structurally complete: when computation fails the numbers are
    zero and `error_message` explains why.
    """

    user: Optional[str] = None

    total_income: float = 0.0
    total_expenses: float = 0.0
    total_savings_deposits: float = 0.0
    net_income: float = 0.0
    savings_rate: float = 0.0

    total_credit_limit: float = 0.0
    total_card_balance: float = 0.0
    credit_usage: float = 0.0
    available_credit: float = 0.0

    cards: list[CardSummary] = Field(default_factory=list)
    goals: list[GoalSummary] = Field(default_factory=list)
    recent_transactions: list[Transaction] = Field(default_factory=list)
    upcoming_reminders: list[Reminder] = Field(default_factory=list)

    motivational_message: str = ""
    error_message: Optional[str] = None

    @classmethod
    def empty(cls, message: str, user: Optional[str] = None) -> "DashboardData":
        return cls(user=user, motivational_message=message, error_message=message)
