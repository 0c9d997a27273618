"""
Ledger Exceptions

Every failure the ledger can report is a LedgerError subclass carrying
enough context (ids, exact amounts) for the caller to tell the user
precisely what went wrong. A raised LedgerError means nothing was written.
"""

from typing import Optional


def format_money(amount: float, symbol: str = "$") -> str:
    """Format an amount the way error messages show it, e.g. $1,234.50."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


# =============================================================================
# LOOKUP MISSES
# =============================================================================

class NotFoundError(LedgerError):
    """A referenced record does not exist in the budget."""

    entity = "Record"

    def __init__(self, entity_id: Optional[str], message: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message or f"{self.entity} not found: {entity_id}")


class EnvelopeNotFoundError(NotFoundError):
    entity = "Envelope"


class AccountNotFoundError(NotFoundError):
    entity = "Account"


class TemplateNotFoundError(NotFoundError):
    entity = "Template"


class TransactionNotFoundError(NotFoundError):
    entity = "Transaction"


class IncomeNotFoundError(NotFoundError):
    entity = "Income record"


class ArchiveNotFoundError(NotFoundError):
    entity = "Month archive"


class BudgetNotFoundError(NotFoundError):
    entity = "Budget"


# =============================================================================
# BALANCE FAILURES
# =============================================================================

class InsufficientFundsError(LedgerError):
    """
    A funding plan exceeds the available pool, or a strict expense
    exceeds the envelope balance.
    """

    def __init__(
        self,
        requested: float,
        available: float,
        message: Optional[str] = None,
        envelope_id: Optional[str] = None,
    ):
        self.requested = requested
        self.available = available
        self.envelope_id = envelope_id
        super().__init__(
            message
            or (
                f"Cannot allocate {format_money(requested)}. "
                f"Only {format_money(available)} available."
            )
        )

    @property
    def shortfall(self) -> float:
        return round(self.requested - self.available, 2)


class OverdraftConfirmationRequired(LedgerError):
    """
    Applying the change would overdraw an envelope.

    Raised by the confirm-overdraft variants when the caller has not
    confirmed; retry with confirm_overdraft=True to proceed.
    """

    def __init__(self, envelope_id: str, amount: float, balance: float):
        self.envelope_id = envelope_id
        self.amount = amount
        self.balance = balance
        super().__init__(
            f"This will overdraw the envelope by {format_money(self.overdraft)}. "
            f"Balance: {format_money(balance)}."
        )

    @property
    def overdraft(self) -> float:
        return round(self.amount - self.balance, 2)


# =============================================================================
# INPUT & GUARDS
# =============================================================================

class ValidationError(LedgerError):
    """Malformed input at the boundary (non-numeric amount, bad date, ...)."""

    def __init__(self, message: str, issues: Optional[list] = None):
        self.issues = issues or []
        super().__init__(message)


class AccountIdRequired(LedgerError):
    """An account-scoped entry was submitted without an account."""

    def __init__(self, message: str = "Account ID required"):
        super().__init__(message)


class LastBudgetError(LedgerError):
    """The only remaining budget cannot be deleted."""

    def __init__(self, message: str = "Cannot delete the last budget"):
        super().__init__(message)


class ActiveBudgetError(LedgerError):
    """The active budget cannot be deleted."""

    def __init__(
        self,
        message: str = "Cannot delete the active budget. Switch to another budget first.",
    ):
        super().__init__(message)
