"""
Ledger Engine

The single entry point for every ledger operation on one budget.

DESIGN DECISION: The engine is bound to an explicit BudgetContext.
Switching budgets means building another engine from another context
(see BudgetManager.context), never mutating global state. Two engines
over the same store but different budgets never see each other's data.
"""

from envelope_ledger.ledger.accounts import AccountOperations
from envelope_ledger.ledger.envelopes import EnvelopeOperations
from envelope_ledger.ledger.funding import FundingOperations
from envelope_ledger.ledger.months import MonthOperations
from envelope_ledger.ledger.templates import TemplateOperations
from envelope_ledger.ledger.transactions import TransactionOperations


class LedgerEngine(
    EnvelopeOperations,
    FundingOperations,
    TransactionOperations,
    AccountOperations,
    TemplateOperations,
    MonthOperations,
):
    """
    Envelope budgeting ledger for one budget namespace.

    Usage:
        ctx = budgets.context()
        engine = LedgerEngine(ctx, audit_logger=audit)
        rent = engine.create_envelope("Rent", 1200)
        engine.add_income("Paycheck", 2000, "2025-01-15")
        engine.fund_envelopes({rent.id: 1200})
    """
    pass
