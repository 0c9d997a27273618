"""Input validation package."""

from envelope_ledger.validation.validator import (
    InputValidator,
    ValidationIssue,
    ValidationResult,
    require_valid,
    to_amount,
    to_choice,
    to_date,
    to_day_of_month,
    to_non_negative_amount,
)

__all__ = [
    "InputValidator",
    "ValidationIssue",
    "ValidationResult",
    "require_valid",
    "to_amount",
    "to_choice",
    "to_date",
    "to_day_of_month",
    "to_non_negative_amount",
]
