"""Configuration package."""

from envelope_ledger.config.settings import (
    AuditSettings,
    LedgerSettings,
    ReportSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AuditSettings",
    "LedgerSettings",
    "ReportSettings",
    "Settings",
    "StorageSettings",
    "get_settings",
    "validate_all_settings",
]
