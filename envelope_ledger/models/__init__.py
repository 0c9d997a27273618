"""
Data Models Package

This package contains all Pydantic models used in the Envelope Ledger.
Every record read from or written to storage conforms to these schemas.
"""

from envelope_ledger.models.ledger import (
    EXPORT_VERSION,
    MONTH_NAMES,
    Account,
    ArchiveSummary,
    Budget,
    BudgetData,
    CurrentMonth,
    Envelope,
    EnvelopeSnapshot,
    ExpenseKind,
    ExportBundle,
    FailedExpense,
    FundingTemplate,
    Income,
    IncomeFrequency,
    IncomeKind,
    MonthArchive,
    RegisterEntry,
    RolloverResult,
    SpendingTemplate,
    SpendingTemplateExpense,
    SpendingTemplateResult,
    Transaction,
    TransactionKind,
    TransactionStatus,
    TransactionType,
    TransferDirection,
    TransferKind,
    month_key_for,
    new_id,
    to_money,
)
from envelope_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from envelope_ledger.models.reports import (
    CashFlowDay,
    CashFlowItem,
    CashFlowProjection,
    CashFlowWarning,
    DashboardSummary,
    MonthReport,
)

__all__ = [
    # Ledger models
    "EXPORT_VERSION",
    "MONTH_NAMES",
    "Account",
    "ArchiveSummary",
    "Budget",
    "BudgetData",
    "CurrentMonth",
    "Envelope",
    "EnvelopeSnapshot",
    "ExpenseKind",
    "ExportBundle",
    "FailedExpense",
    "FundingTemplate",
    "Income",
    "IncomeFrequency",
    "IncomeKind",
    "MonthArchive",
    "RegisterEntry",
    "RolloverResult",
    "SpendingTemplate",
    "SpendingTemplateExpense",
    "SpendingTemplateResult",
    "Transaction",
    "TransactionKind",
    "TransactionStatus",
    "TransactionType",
    "TransferDirection",
    "TransferKind",
    "month_key_for",
    "new_id",
    "to_money",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Report models
    "CashFlowDay",
    "CashFlowItem",
    "CashFlowProjection",
    "CashFlowWarning",
    "DashboardSummary",
    "MonthReport",
]
