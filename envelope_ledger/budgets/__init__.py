"""Multi-budget management package."""

from envelope_ledger.budgets.manager import BudgetManager

__all__ = ["BudgetManager"]
