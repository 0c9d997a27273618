"""
Core Data Models for Envelope Ledger

These models define the schemas for every record the ledger persists.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Round-trip through the persisted JSON format unchanged
4. Support the audit trail

DESIGN DECISION: Python attributes are snake_case, persisted keys are
camelCase (envelopeId, dayOfMonth, ...). Always serialize through
to_record() so the stored shape matches existing backups.
"""

from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


def new_id() -> str:
    """Generate a unique record id."""
    return uuid4().hex


def to_money(value: float) -> float:
    """Round a computed amount to cents."""
    return round(float(value), 2)


def month_key_for(year: int, month: int) -> str:
    """Format a month key such as '2025-01'."""
    return f"{year}-{month:02d}"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionStatus(str, Enum):
    """
    Clearing status of a transaction.

    Only CLEARED expenses count against an envelope's spent amount.
    """
    CLEARED = "cleared"
    PENDING = "pending"


class TransactionType(str, Enum):
    """Direction of a ledger entry."""
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


class IncomeFrequency(str, Enum):
    """How often an income source pays."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    SEMIMONTHLY = "semimonthly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"
    OTHER = "other"

    @property
    def label(self) -> str:
        return {
            "weekly": "Weekly",
            "biweekly": "Biweekly (Every 2 weeks)",
            "semimonthly": "Twice Monthly",
            "monthly": "Monthly",
            "quarterly": "Quarterly",
            "annually": "Annually",
            "other": "One-time/Other",
        }[self.value]


class TransferDirection(str, Enum):
    """Direction of a transfer relative to the account it is entered on."""
    IN = "in"
    OUT = "out"


# =============================================================================
# BASE
# =============================================================================

class LedgerModel(BaseModel):
    """Base for every persisted record."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted (camelCase, JSON-safe) shape."""
        return self.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENVELOPES, INCOME, TRANSACTIONS
# =============================================================================

class Envelope(LedgerModel):
    """
    A spending category with a plan, an allocation and a spent total.

    balance = funded - spent, and may be negative (overdraft).
    """
    id: str = Field(default_factory=new_id)
    name: str = Field(..., description="Envelope name")
    planned: float = Field(default=0.0, description="Monthly target")
    funded: float = Field(default=0.0, description="Money allocated from income")
    spent: float = Field(default=0.0, description="Cleared expenses charged against it")
    category: str = Field(default="needs", description="Grouping such as needs/wants/savings")

    @property
    def balance(self) -> float:
        return to_money(self.funded - self.spent)


class Income(LedgerModel):
    """An income record (paycheck or other deposit)."""
    id: str = Field(default_factory=new_id)
    source: str
    frequency: IncomeFrequency = IncomeFrequency.OTHER
    amount: float
    date: date
    # Informational only; funding works off the derived pool.
    allocated: bool = False
    account_id: Optional[str] = None


class Transaction(LedgerModel):
    """
    A ledger entry.

    envelope_id and account_id are non-owning references and may point
    at records that no longer exist.
    """
    id: str = Field(default_factory=new_id)
    envelope_id: Optional[str] = None
    amount: float
    description: str = ""
    date: date
    account_id: Optional[str] = None
    status: TransactionStatus = TransactionStatus.CLEARED
    type: TransactionType = TransactionType.EXPENSE

    @property
    def is_cleared_expense(self) -> bool:
        return (
            self.status == TransactionStatus.CLEARED
            and self.type == TransactionType.EXPENSE
        )


# =============================================================================
# ACCOUNTS
# =============================================================================

class Account(LedgerModel):
    """
    A bank, credit or cash account.

    balance is the STARTING balance. The live balance is always derived
    from income and transactions and is never stored.
    """
    id: str = Field(default_factory=new_id)
    name: str
    type: str = "checking"
    balance: float = 0.0
    created_at: datetime = Field(default_factory=datetime.now)


class RegisterEntry(LedgerModel):
    """One row of an account register with its running balance."""
    id: str
    date: date
    description: str = ""
    amount: float
    account_id: Optional[str] = None
    envelope_id: Optional[str] = None
    type: TransactionType
    status: TransactionStatus
    is_income: bool = False
    balance: float


# =============================================================================
# TEMPLATES
# =============================================================================

class FundingTemplate(LedgerModel):
    """A reusable funding plan: envelope id -> amount."""
    id: str = Field(default_factory=new_id)
    name: str
    day_of_month: int = Field(..., ge=1, le=31)
    expected_amount: float = 0.0
    allocations: dict[str, float] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def total_allocated(self) -> float:
        return to_money(sum(self.allocations.values()))


class SpendingTemplateExpense(LedgerModel):
    """One planned expense inside a spending template."""
    envelope_id: str
    amount: float
    description: str = ""
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    account_id: Optional[str] = None


class SpendingTemplate(LedgerModel):
    """A reusable list of expenses replayed as independent transactions."""
    id: str = Field(default_factory=new_id)
    name: str
    expenses: list[SpendingTemplateExpense] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class FailedExpense(LedgerModel):
    """A spending-template expense that could not be recorded."""
    description: str
    error: str


class SpendingTemplateResult(LedgerModel):
    """Outcome of applying a spending template, one entry per expense."""
    success: list[str] = Field(default_factory=list)
    failed: list[FailedExpense] = Field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed


# =============================================================================
# MONTHS & ARCHIVES
# =============================================================================

class CurrentMonth(LedgerModel):
    """The active accounting period."""
    year: int
    month: int = Field(..., ge=1, le=12)
    month_key: str

    @classmethod
    def for_date(cls, when: date) -> "CurrentMonth":
        return cls(
            year=when.year,
            month=when.month,
            month_key=month_key_for(when.year, when.month),
        )

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month - 1]


class ArchiveSummary(LedgerModel):
    """Aggregate totals at archive time."""
    model_config = ConfigDict(frozen=True)

    total_planned: float
    total_funded: float
    total_spent: float


class EnvelopeSnapshot(LedgerModel):
    """Immutable copy of an envelope's state at archive time."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    category: str
    planned: float
    funded: float
    spent: float
    balance: float


class MonthArchive(LedgerModel):
    """
    Write-once snapshot produced by the month rollover.

    Frozen: archives are never mutated after creation.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    month_key: str
    year: int
    month: int = Field(..., ge=1, le=12)
    month_name: str
    archived_date: datetime = Field(default_factory=datetime.now)
    summary: ArchiveSummary
    envelope_snapshots: tuple[EnvelopeSnapshot, ...] = ()


class RolloverResult(LedgerModel):
    """What start_new_month archived and where the marker moved."""
    archived: MonthArchive
    new_month: CurrentMonth


# =============================================================================
# BUDGETS
# =============================================================================

class Budget(LedgerModel):
    """A named, fully isolated collection namespace."""
    id: str = Field(default_factory=new_id)
    name: str
    created_at: datetime = Field(default_factory=datetime.now)


# =============================================================================
# TRANSACTION KINDS (account register entry variants)
# =============================================================================

class ExpenseKind(BaseModel):
    """Money leaving the account, optionally charged to an envelope."""
    kind: Literal["expense"] = "expense"
    envelope_id: Optional[str] = None


class IncomeKind(BaseModel):
    """Money arriving in the account outside of an income record."""
    kind: Literal["income"] = "income"


class TransferKind(BaseModel):
    """Money moving between this account and a counterpart account."""
    kind: Literal["transfer"] = "transfer"
    counterpart_account_id: str
    direction: TransferDirection = TransferDirection.OUT


TransactionKind = Annotated[
    Union[ExpenseKind, IncomeKind, TransferKind],
    Field(discriminator="kind"),
]


# =============================================================================
# BACKUP MODELS
# =============================================================================

EXPORT_VERSION = "2.0"


class BudgetData(LedgerModel):
    """
    All collections of one budget as they appear in a backup.

    Every field is optional: absent collections are left untouched on import.
    """
    envelopes: Optional[list[Envelope]] = None
    income: Optional[list[Income]] = None
    transactions: Optional[list[Transaction]] = None
    bank_balance: Optional[float] = None
    templates: Optional[list[FundingTemplate]] = None
    spending_templates: Optional[list[SpendingTemplate]] = None
    accounts: Optional[list[Account]] = None
    current_month: Optional[CurrentMonth] = None
    month_archives: Optional[list[MonthArchive]] = None

    @property
    def is_empty(self) -> bool:
        return self.envelopes is None and self.income is None and self.transactions is None


class ExportBundle(LedgerModel):
    """Multi-budget backup (export format 2.0)."""
    export_version: str = EXPORT_VERSION
    export_date: datetime = Field(default_factory=datetime.now)
    budgets: list[Budget]
    active_budget: Optional[str] = None
    budget_data: dict[str, BudgetData] = Field(default_factory=dict)

    @field_validator('export_version')
    @classmethod
    def validate_version(cls, v: str) -> str:
        if v != EXPORT_VERSION:
            raise ValueError(f"Unsupported export version: {v}")
        return v
