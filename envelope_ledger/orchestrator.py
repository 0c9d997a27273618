"""
Component Wiring for Envelope Ledger

This module ties together the store, the audit trail, the budget
manager and the per-budget ledger engines.

DESIGN DECISION: There is exactly one store per process and one engine
per budget. Engines are cheap: they hold no data of their own, every
call reads the store, so callers build one whenever they need it.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import structlog

from envelope_ledger.audit import AuditLogger
from envelope_ledger.budgets import BudgetManager
from envelope_ledger.config import Settings, get_settings
from envelope_ledger.ledger import LedgerEngine
from envelope_ledger.reports import ReportExecutor
from envelope_ledger.services.storage import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
)


logger = structlog.get_logger(__name__)


def create_store(settings: Optional[Settings] = None) -> KeyValueStoreInterface:
    """Build the configured key-value store backend."""
    storage_settings = (settings or get_settings()).storage
    if storage_settings.backend == "memory":
        return InMemoryKeyValueStore()
    return JsonFileKeyValueStore(
        storage_settings.data_file,
        write_retry_attempts=storage_settings.write_retry_attempts,
        indent=storage_settings.indent,
    )


@dataclass
class LedgerComponents:
    """Everything an application needs to work with its budgets."""

    store: KeyValueStoreInterface
    budgets: BudgetManager
    audit_logger: AuditLogger
    settings: Settings
    clock: Optional[Callable[[], datetime]] = None

    def engine(self, budget_id: Optional[str] = None) -> LedgerEngine:
        """Ledger engine for a budget (the active one by default)."""
        return LedgerEngine(
            self.budgets.context(budget_id),
            audit_logger=self.audit_logger,
            settings=self.settings.ledger,
            clock=self.clock,
        )

    def reports(self, budget_id: Optional[str] = None) -> ReportExecutor:
        """Report executor for a budget (the active one by default)."""
        return ReportExecutor(self.engine(budget_id), settings=self.settings.reports)


def create_ledger_components(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStoreInterface] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> LedgerComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Root settings; get_settings() if omitted
        store: Key-value store to use instead of the configured backend
        clock: Returns the current datetime; datetime.now if omitted

    Returns:
        LedgerComponents with migrated legacy data and a valid active budget
    """
    settings = settings or get_settings()
    store = store or create_store(settings)

    audit_settings = settings.audit
    audit_storage = None
    if audit_settings.persist_events:
        audit_storage = KeyValueAuditStorage(
            store,
            key=f"{settings.storage.key_prefix}auditLog",
            max_events=audit_settings.max_events,
        )
    audit_logger = AuditLogger(audit_storage, enabled=audit_settings.enabled)

    budgets = BudgetManager(store, settings=settings, audit_logger=audit_logger, clock=clock)
    active = budgets.initialize()
    logger.info("ledger_initialized", backend=type(store).__name__, active_budget=active)

    return LedgerComponents(
        store=store,
        budgets=budgets,
        audit_logger=audit_logger,
        settings=settings,
        clock=clock,
    )
