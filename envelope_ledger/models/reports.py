"""
Report Models

Read-only views computed from stored ledger data. Nothing here is ever
persisted.
"""

from datetime import date
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field

from envelope_ledger.models.ledger import Envelope, EnvelopeSnapshot


class MonthReport(BaseModel):
    """Income, allocation and spending for one month."""

    month_key: Optional[str] = Field(
        default=None,
        description="Month reported on; None for the live current month"
    )
    archived: bool = False
    total_income: float = Field(
        ...,
        description="Income recorded; for archived months the funded total stands in"
    )
    total_allocated: float
    total_spent: float
    unspent: float
    envelopes: list[Union[Envelope, EnvelopeSnapshot]] = Field(default_factory=list)
    category_spending: dict[str, float] = Field(
        default_factory=dict,
        description="Spent per category, only categories with spending"
    )


class CashFlowWarning(str, Enum):
    """How worrying a projected day's balance is."""
    OVERDRAFT = "overdraft"
    LOW = "low"


class CashFlowItem(BaseModel):
    """One income or expense landing on a projected day."""
    type: str = Field(..., pattern="^(income|expense)$")
    description: str
    amount: float


class CashFlowDay(BaseModel):
    """Projected bank balance at the end of one day."""
    date: date
    balance: float
    items: list[CashFlowItem] = Field(default_factory=list)
    warning: Optional[CashFlowWarning] = None


class CashFlowProjection(BaseModel):
    """Day-by-day bank balance projection."""
    start_date: date
    days: list[CashFlowDay]
    starting_balance: float
    total_income: float
    total_expenses: float
    ending_balance: float
    lowest_balance: float

    @property
    def has_overdraft(self) -> bool:
        return any(day.warning == CashFlowWarning.OVERDRAFT for day in self.days)


class DashboardSummary(BaseModel):
    """Headline totals for the budget."""
    total_planned: float
    total_funded: float
    total_spent: float
    available_to_fund: float
    total_accounts_balance: float
    bank_balance: float
    envelope_count: int
    current_month_key: str
