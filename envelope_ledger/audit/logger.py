"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Complete traceability of balance changes
2. Debugging capability when totals look wrong
3. The exact reason behind every rejected operation

The audit logger:
- Gracefully handles failures (a storage error while auditing never
  fails the ledger operation that triggered it)
- Supports correlation IDs to trace related events, e.g. all
  expenses recorded by one spending template
"""

from contextlib import contextmanager
from typing import Iterator, Optional
from uuid import UUID, uuid4

import structlog

from envelope_ledger.errors import LedgerError
from envelope_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from envelope_ledger.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The key-value store (for persistence), when a storage is given
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
        enabled: bool = True,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
            enabled: When False, events are dropped silently.
        """
        self._storage = storage
        self._enabled = enabled
        self._logger = structlog.get_logger("envelope_ledger.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if not self._enabled:
            return True

        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_entity_event(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
        budget_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a create/update/delete of a single record."""
        event = AuditEventBuilder.entity_event(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
            budget_id=budget_id,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_envelopes_funded(
        self,
        plan: dict[str, float],
        total: float,
        available_before: float,
        budget_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful funding allocation."""
        event = AuditEventBuilder.envelopes_funded(
            plan=plan,
            total=total,
            available_before=available_before,
            budget_id=budget_id,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_overdraft_accepted(
        self,
        envelope_id: str,
        transaction_id: str,
        overdraft: float,
        budget_id: Optional[str] = None,
    ) -> None:
        """Log an expense the caller confirmed despite the overdraft."""
        event = AuditEventBuilder.overdraft_accepted(
            envelope_id=envelope_id,
            transaction_id=transaction_id,
            overdraft=overdraft,
            budget_id=budget_id,
        )
        self.log(event)

    def log_month_rolled_over(
        self,
        archive_id: str,
        archived_month_key: str,
        new_month_key: str,
        rollover_unspent: bool,
        budget_id: Optional[str] = None,
    ) -> None:
        """Log a month rollover."""
        event = AuditEventBuilder.month_rolled_over(
            archive_id=archive_id,
            archived_month_key=archived_month_key,
            new_month_key=new_month_key,
            rollover_unspent=rollover_unspent,
            budget_id=budget_id,
        )
        self.log(event)

    def log_rejected(
        self,
        operation: str,
        error: Exception,
        budget_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an operation refused by a ledger rule."""
        event = AuditEventBuilder.operation_rejected(
            operation=operation,
            error=error,
            budget_id=budget_id,
            correlation_id=correlation_id,
        )
        self.log(event)

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        self.log(event)

    @contextmanager
    def track(
        self,
        operation: str,
        budget_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Iterator[None]:
        """
        Audit failures of the wrapped operation, then re-raise them.

        Ledger rule violations become OPERATION_REJECTED events,
        storage failures become SYSTEM_ERROR events.
        """
        try:
            yield
        except LedgerError as e:
            self.log_rejected(operation, e, budget_id=budget_id, correlation_id=correlation_id)
            raise
        except StorageError as e:
            self.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"operation": operation, "budget_id": budget_id},
                correlation_id=correlation_id,
            )
            raise


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a compound operation (e.g., applying a
    spending template) and pass it to every event it produces.
    """
    return uuid4()
