"""
Configuration Management for Envelope Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Every tunable the ledger reads (storage location, default budget,
report windows, audit retention) is declared and validated in one place.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Key-value store backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ENVELOPE_LEDGER_STORAGE_",
        extra="ignore"
    )

    backend: Literal["memory", "json"] = Field(
        default="json",
        description="Which key-value store implementation to use"
    )
    data_file: Path = Field(
        default=Path("budget_data.json"),
        description="Path of the JSON document used by the json backend"
    )
    key_prefix: str = Field(
        default="budgetApp_",
        description="Prefix of global (un-namespaced) keys"
    )
    write_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed file write is attempted"
    )
    indent: int = Field(
        default=2,
        ge=0,
        le=8,
        description="JSON indentation of the data file"
    )

    @field_validator('key_prefix')
    @classmethod
    def validate_key_prefix(cls, v: str) -> str:
        """Namespaced keys are joined with '_', the global prefix must end with it."""
        if not v.endswith("_"):
            raise ValueError("key_prefix must end with '_'")
        return v


class LedgerSettings(BaseSettings):
    """
    Ledger behaviour settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ENVELOPE_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    default_budget_id: str = Field(
        default="default",
        min_length=1,
        description="Id of the budget created on first run"
    )
    default_budget_name: str = Field(
        default="My Budget",
        min_length=1,
        description="Name of the budget created on first run"
    )
    default_envelope_category: str = Field(
        default="needs",
        description="Category given to envelopes created without one"
    )


class ReportSettings(BaseSettings):
    """Read-only report configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ENVELOPE_LEDGER_REPORT_",
        extra="ignore"
    )

    cash_flow_days: int = Field(
        default=30,
        ge=1,
        le=366,
        description="Days covered by the cash flow projection"
    )
    low_balance_threshold: float = Field(
        default=500.0,
        ge=0.0,
        description="Projected balances below this are flagged as low"
    )


class AuditSettings(BaseSettings):
    """Audit trail configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ENVELOPE_LEDGER_AUDIT_",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Emit audit events for ledger mutations"
    )
    persist_events: bool = Field(
        default=True,
        description="Also append audit events to the key-value store"
    )
    max_events: int = Field(
        default=1000,
        ge=10,
        le=100000,
        description="Oldest persisted events are dropped beyond this count"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def reports(self) -> ReportSettings:
        return ReportSettings()

    @property
    def audit(self) -> AuditSettings:
        return AuditSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for the ones that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("storage", "ledger", "reports", "audit"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
