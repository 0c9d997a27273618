"""Ledger engine package."""

from envelope_ledger.ledger.engine import LedgerEngine
from envelope_ledger.ledger.templates import clamp_day

__all__ = ["LedgerEngine", "clamp_day"]
