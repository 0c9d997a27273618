"""
Audit Models for Envelope Ledger

Every ledger mutation, and every rejected mutation, is recorded as an
audit event. This provides:
1. Traceability of every balance change
2. Debugging information when balances look wrong
3. The specific reason behind each rejected operation

DESIGN DECISION: Audit logs are append-only. We never modify events;
the persisted log is only trimmed from the oldest end.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Envelopes & funding
    ENVELOPE_CREATED = "envelope_created"
    ENVELOPE_UPDATED = "envelope_updated"
    ENVELOPE_DELETED = "envelope_deleted"
    ENVELOPES_FUNDED = "envelopes_funded"

    # Income
    INCOME_RECORDED = "income_recorded"
    INCOME_UPDATED = "income_updated"
    INCOME_DELETED = "income_deleted"

    # Transactions
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    OVERDRAFT_ACCEPTED = "overdraft_accepted"

    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_DELETED = "account_deleted"
    BANK_BALANCE_SET = "bank_balance_set"

    # Templates
    TEMPLATE_SAVED = "template_saved"
    TEMPLATE_DELETED = "template_deleted"
    TEMPLATE_APPLIED = "template_applied"
    SPENDING_TEMPLATE_APPLIED = "spending_template_applied"

    # Months
    MONTH_ROLLED_OVER = "month_rolled_over"

    # Budgets
    BUDGET_CREATED = "budget_created"
    BUDGET_RENAMED = "budget_renamed"
    BUDGET_DELETED = "budget_deleted"
    BUDGET_SWITCHED = "budget_switched"
    LEGACY_DATA_MIGRATED = "legacy_data_migrated"
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    DATA_CLEARED = "data_cleared"

    # Failures
    OPERATION_REJECTED = "operation_rejected"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    budget_id: Optional[str] = Field(
        default=None,
        description="Budget namespace the event happened in"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'envelope', 'transaction')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by events of one compound operation"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "budget_id": self.budget_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_event(
            AuditEventType.ENVELOPE_CREATED, "envelope", env.id, "Envelope created: Rent"
        )
        event = AuditEventBuilder.operation_rejected("fund_envelopes", error)
    """

    @staticmethod
    def entity_event(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
        budget_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            budget_id=budget_id,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description[:500],
            details=details or {},
        )

    @staticmethod
    def envelopes_funded(
        plan: dict[str, float],
        total: float,
        available_before: float,
        budget_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENVELOPES_FUNDED,
            budget_id=budget_id,
            entity_type="envelope",
            correlation_id=correlation_id,
            description=f"Funded {len(plan)} envelope(s) with {total:,.2f}",
            details={
                "plan": plan,
                "total": total,
                "available_before": available_before,
            },
        )

    @staticmethod
    def overdraft_accepted(
        envelope_id: str,
        transaction_id: str,
        overdraft: float,
        budget_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OVERDRAFT_ACCEPTED,
            severity=AuditSeverity.WARNING,
            budget_id=budget_id,
            entity_type="envelope",
            entity_id=envelope_id,
            description=f"Envelope overdrawn by {overdraft:,.2f} after confirmation",
            details={
                "transaction_id": transaction_id,
                "overdraft": overdraft,
            },
        )

    @staticmethod
    def month_rolled_over(
        archive_id: str,
        archived_month_key: str,
        new_month_key: str,
        rollover_unspent: bool,
        budget_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MONTH_ROLLED_OVER,
            budget_id=budget_id,
            entity_type="month_archive",
            entity_id=archive_id,
            description=f"Archived {archived_month_key}, now in {new_month_key}",
            details={
                "archived_month_key": archived_month_key,
                "new_month_key": new_month_key,
                "rollover_unspent": rollover_unspent,
            },
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error: Exception,
        budget_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            budget_id=budget_id,
            correlation_id=correlation_id,
            description=f"Operation rejected: {operation}",
            error_code=type(error).__name__,
            error_message=str(error),
            details={"operation": operation},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
