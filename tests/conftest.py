"""
Shared fixtures for Envelope Ledger tests.

Everything runs against an in-memory store and a fixed clock, so tests
never touch the filesystem (unless they ask for tmp_path) and dates are
predictable.
"""

from datetime import datetime

import pytest

from envelope_ledger.audit import AuditLogger
from envelope_ledger.budgets import BudgetManager
from envelope_ledger.config import get_settings
from envelope_ledger.ledger import LedgerEngine
from envelope_ledger.orchestrator import create_ledger_components
from envelope_ledger.reports import ReportExecutor
from envelope_ledger.services.storage import InMemoryKeyValueStore, KeyValueAuditStorage


FIXED_NOW = datetime(2025, 1, 15, 10, 0)


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def audit_storage(store):
    return KeyValueAuditStorage(store)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def budgets(store, audit_logger, clock):
    manager = BudgetManager(store, audit_logger=audit_logger, clock=clock)
    manager.initialize()
    return manager


@pytest.fixture
def engine(budgets, audit_logger, clock):
    return LedgerEngine(
        budgets.context(),
        audit_logger=audit_logger,
        settings=get_settings().ledger,
        clock=clock,
    )


@pytest.fixture
def reports(engine):
    return ReportExecutor(engine, settings=get_settings().reports)


@pytest.fixture
def components(store, clock):
    return create_ledger_components(store=store, clock=clock)


@pytest.fixture
def funded_engine(engine):
    """Engine with 1000 of income, a Groceries envelope funded with 300."""
    engine.add_income("Paycheck", 1000, "2025-01-01")
    groceries = engine.create_envelope("Groceries", planned=400)
    engine.fund_envelopes({groceries.id: 300})
    return engine
