"""
Envelope Ledger - Source Package

A personal envelope-budgeting ledger: envelopes, income, accounts,
funding/spending templates and month rollover archiving, persisted
in a namespaced key-value store with one namespace per budget.

DESIGN PRINCIPLES:
1. Every balance is either stored with its lock-step rule or derived
2. Fail the single operation, leave prior state unchanged
3. No silent overdrafts
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Envelope Ledger Team"
