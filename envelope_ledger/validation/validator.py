"""
Two-Stage Input Validation

DESIGN DECISION: Caller input is validated in two distinct stages before
the ledger touches storage:

STAGE 1 - STRUCTURAL VALIDATION:
- Amounts parse as finite numbers
- Dates parse as calendar dates
- Required text is present
- This catches malformed form input

STAGE 2 - SEMANTIC VALIDATION:
- Amounts that must not be negative
- Day-of-month within 1-31
- Template allocations exceeding the expected amount (warning only)
- This catches input that parses but makes no sense for a budget

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes issues. Errors are raised as
ValidationError carrying every issue found; warnings are reported but
do not block the operation.
"""

import math
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional, TypeVar

from pydantic import BaseModel, Field

from envelope_ledger.errors import ValidationError, format_money


EnumT = TypeVar("EnumT", bound=Enum)

# =============================================================================
# RESULT MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Structural validation (parsing, required fields)
    Stage 2: Semantic validation (budget rules)
    """

    validated_at: datetime = Field(default_factory=datetime.now)
    structure_valid: bool
    semantic_valid: bool
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == "error"]


def require_valid(result: ValidationResult, context: str) -> ValidationResult:
    """Raise ValidationError listing every error of a failed result."""
    if not result.is_valid:
        reasons = "; ".join(issue.message for issue in result.errors)
        raise ValidationError(f"{context}: {reasons}", issues=result.issues)
    return result


# =============================================================================
# COERCION HELPERS
# =============================================================================

def _parse_amount(value: Any) -> Optional[float]:
    """Parse a finite number, or None if the value is not one."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _parse_day(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def to_amount(value: Any, field: str = "amount") -> float:
    """Coerce caller input to an amount, or raise ValidationError."""
    number = _parse_amount(value)
    if number is None:
        issue = ValidationIssue(
            field=field,
            issue_type="invalid_format",
            message=f"{field} must be a number, got {value!r}",
            severity="error",
        )
        raise ValidationError(issue.message, issues=[issue])
    return number


def to_non_negative_amount(value: Any, field: str = "amount") -> float:
    """Coerce an amount that must be zero or more, or raise ValidationError."""
    number = to_amount(value, field)
    if number < 0:
        issue = ValidationIssue(
            field=field,
            issue_type="negative_amount",
            message=f"{field} cannot be negative ({format_money(number)})",
            severity="error",
        )
        raise ValidationError(issue.message, issues=[issue])
    return number


def to_choice(enum_cls: type[EnumT], value: Any, field: str) -> EnumT:
    """Coerce a member of enum_cls or its value, or raise ValidationError."""
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        issue = ValidationIssue(
            field=field,
            issue_type="invalid_choice",
            message=f"{field} must be one of {choices}, got {value!r}",
            severity="error",
        )
        raise ValidationError(issue.message, issues=[issue]) from None


def to_date(value: Any, field: str = "date") -> date:
    """Coerce a date or an ISO 'YYYY-MM-DD' string, or raise ValidationError."""
    parsed = _parse_date(value)
    if parsed is None:
        issue = ValidationIssue(
            field=field,
            issue_type="invalid_format",
            message=f"{field} must be a date (YYYY-MM-DD), got {value!r}",
            severity="error",
        )
        raise ValidationError(issue.message, issues=[issue])
    return parsed


def to_day_of_month(value: Any, field: str = "day_of_month") -> int:
    """Coerce a day of month in 1-31, or raise ValidationError."""
    day = _parse_day(value)
    if day is None or not 1 <= day <= 31:
        issue = ValidationIssue(
            field=field,
            issue_type="out_of_range",
            message=f"{field} must be a whole number between 1 and 31, got {value!r}",
            severity="error",
        )
        raise ValidationError(issue.message, issues=[issue])
    return day


# =============================================================================
# VALIDATOR
# =============================================================================

class InputValidator:
    """
    Validates caller input for the ledger's compound writes.

    Stage 1: Structural validation
    Stage 2: Semantic validation
    """

    @staticmethod
    def _has_errors(issues: Iterable[ValidationIssue]) -> bool:
        return any(issue.severity == "error" for issue in issues)

    def _result(
        self,
        structural: list[ValidationIssue],
        semantic: Optional[list[ValidationIssue]],
    ) -> ValidationResult:
        structure_valid = not self._has_errors(structural)
        semantic_valid = semantic is not None and not self._has_errors(semantic)
        issues = structural + (semantic or [])
        return ValidationResult(
            structure_valid=structure_valid,
            semantic_valid=semantic_valid,
            is_valid=structure_valid and semantic_valid,
            issues=issues,
            warnings=[issue.message for issue in issues if issue.severity == "warning"],
        )

    @staticmethod
    def _check_amounts(
        amounts: dict[str, Any],
        issues: list[ValidationIssue],
    ) -> dict[str, float]:
        parsed = {}
        for field, raw in amounts.items():
            number = _parse_amount(raw)
            if number is None:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="invalid_format",
                    message=f"{field} must be a number, got {raw!r}",
                    severity="error",
                    suggested_fix="Enter the amount as digits, e.g. 125.50",
                ))
            else:
                parsed[field] = number
        return parsed

    @staticmethod
    def _check_non_negative(
        amounts: dict[str, float],
        issues: list[ValidationIssue],
    ) -> None:
        for field, number in amounts.items():
            if number < 0:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="negative_amount",
                    message=f"{field} cannot be negative ({format_money(number)})",
                    severity="error",
                ))

    @staticmethod
    def _check_name(name: Any, field: str, issues: list[ValidationIssue]) -> None:
        if not isinstance(name, str) or not name.strip():
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{field} is required",
                severity="error",
            ))

    def validate_fund_plan(self, plan: dict[str, Any]) -> ValidationResult:
        """A funding plan maps envelope ids to non-negative amounts."""
        structural: list[ValidationIssue] = []
        amounts = self._check_amounts(
            {f"plan[{envelope_id}]": raw for envelope_id, raw in plan.items()},
            structural,
        )
        if self._has_errors(structural):
            return self._result(structural, None)

        semantic: list[ValidationIssue] = []
        self._check_non_negative(amounts, semantic)
        return self._result(structural, semantic)

    def validate_funding_template(
        self,
        name: Any,
        day_of_month: Any,
        expected_amount: Any,
        allocations: dict[str, Any],
    ) -> ValidationResult:
        """Check a funding template before it is created or replaced."""
        structural: list[ValidationIssue] = []
        self._check_name(name, "name", structural)
        day = _parse_day(day_of_month)
        if day is None:
            structural.append(ValidationIssue(
                field="day_of_month",
                issue_type="invalid_format",
                message=f"day_of_month must be a whole number, got {day_of_month!r}",
                severity="error",
            ))
        expected = self._check_amounts({"expected_amount": expected_amount}, structural)
        amounts = self._check_amounts(
            {f"allocations[{envelope_id}]": raw for envelope_id, raw in allocations.items()},
            structural,
        )
        if self._has_errors(structural):
            return self._result(structural, None)

        semantic: list[ValidationIssue] = []
        if not 1 <= day <= 31:
            semantic.append(ValidationIssue(
                field="day_of_month",
                issue_type="out_of_range",
                message=f"day_of_month must be between 1 and 31, got {day}",
                severity="error",
            ))
        self._check_non_negative({**expected, **amounts}, semantic)

        total = round(sum(amounts.values()), 2)
        expected_amount = expected["expected_amount"]
        if expected_amount > 0 and total > expected_amount:
            semantic.append(ValidationIssue(
                field="allocations",
                issue_type="over_allocated",
                message=(
                    f"Total allocations ({format_money(total)}) exceed "
                    f"expected amount ({format_money(expected_amount)})"
                ),
                severity="warning",
                suggested_fix="Lower some allocations or raise the expected amount",
            ))
        return self._result(structural, semantic)

    def validate_spending_template(
        self,
        name: Any,
        expenses: list[dict[str, Any]],
    ) -> ValidationResult:
        """Check a spending template's expense lines."""
        structural: list[ValidationIssue] = []
        self._check_name(name, "name", structural)
        amounts: dict[str, float] = {}
        days: dict[str, int] = {}
        for index, expense in enumerate(expenses):
            prefix = f"expenses[{index}]"
            if not expense.get("envelope_id"):
                structural.append(ValidationIssue(
                    field=f"{prefix}.envelope_id",
                    issue_type="missing",
                    message=f"{prefix} needs an envelope",
                    severity="error",
                ))
            amounts.update(self._check_amounts({f"{prefix}.amount": expense.get("amount")}, structural))
            raw_day = expense.get("day_of_month")
            if raw_day is not None:
                day = _parse_day(raw_day)
                if day is None:
                    structural.append(ValidationIssue(
                        field=f"{prefix}.day_of_month",
                        issue_type="invalid_format",
                        message=f"{prefix}.day_of_month must be a whole number, got {raw_day!r}",
                        severity="error",
                    ))
                else:
                    days[f"{prefix}.day_of_month"] = day
        if self._has_errors(structural):
            return self._result(structural, None)

        semantic: list[ValidationIssue] = []
        self._check_non_negative(amounts, semantic)
        for field, day in days.items():
            if not 1 <= day <= 31:
                semantic.append(ValidationIssue(
                    field=field,
                    issue_type="out_of_range",
                    message=f"{field} must be between 1 and 31, got {day}",
                    severity="error",
                ))
        if not expenses:
            semantic.append(ValidationIssue(
                field="expenses",
                issue_type="empty",
                message="Template has no expenses",
                severity="warning",
            ))
        return self._result(structural, semantic)
