"""
Ledger Base

Shared state and helpers for the ledger subsystems. Every subsystem
works against one BudgetContext; none of them knows which budget is
"active".

Mutators follow one pattern: read the latest collections, validate,
compute the new state, then write every touched collection in a single
commit. Any failing check raises before the commit, so a failed
operation leaves storage unchanged.
"""

import functools
from datetime import date, datetime
from typing import Any, Callable, Optional, Sequence, TypeVar

from envelope_ledger.audit import AuditLogger
from envelope_ledger.config import LedgerSettings, get_settings
from envelope_ledger.models.audit import AuditEventType
from envelope_ledger.services.storage import BudgetContext
from envelope_ledger.validation import InputValidator


RecordT = TypeVar("RecordT")
FuncT = TypeVar("FuncT", bound=Callable[..., Any])


def audited(func: FuncT) -> FuncT:
    """Record a rejected or failed call of a ledger operation in the audit log."""

    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        with self._audit.track(func.__name__, budget_id=getattr(self, "budget_id", None)):
            return func(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


def find_by_id(records: Sequence[RecordT], record_id: Optional[str]) -> Optional[RecordT]:
    """First record with the given id, or None."""
    if not record_id:
        return None
    for record in records:
        if getattr(record, "id") == record_id:
            return record
    return None


class LedgerBase:
    """
    State shared by every ledger subsystem.

    Args:
        context: Namespace the ledger reads and writes
        audit_logger: Where mutations are recorded (local log only if omitted)
        settings: Ledger defaults, from get_settings() if omitted
        clock: Returns the current datetime; dates derive from it
        validator: Boundary input validator
    """

    def __init__(
        self,
        context: BudgetContext,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        validator: Optional[InputValidator] = None,
    ):
        self._ctx = context
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().ledger
        self._clock = clock or datetime.now
        self._validator = validator or InputValidator()

    @property
    def context(self) -> BudgetContext:
        return self._ctx

    @property
    def budget_id(self) -> str:
        return self._ctx.budget_id

    def _now(self) -> datetime:
        return self._clock()

    def today(self) -> date:
        return self._clock().date()

    def _log(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
        correlation_id=None,
    ) -> None:
        self._audit.log_entity_event(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
            budget_id=self.budget_id,
            correlation_id=correlation_id,
        )
