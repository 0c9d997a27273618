"""
Funding and spending templates.

A funding template is a saved funding plan; applying it is exactly
fund_envelopes(template.allocations), checked against the pool at
apply time.

A spending template is a list of expenses replayed as independent
transactions. It is the one operation that may partially succeed:
each expense is recorded or rejected on its own and the outcome of
every line is reported.
"""

import calendar
from datetime import date
from typing import Any, Optional, Union

from pydantic.alias_generators import to_snake

from envelope_ledger.audit import create_correlation_id
from envelope_ledger.errors import (
    InsufficientFundsError,
    LedgerError,
    TemplateNotFoundError,
    format_money,
)
from envelope_ledger.ledger.base import LedgerBase, audited, find_by_id
from envelope_ledger.models.audit import AuditEventType
from envelope_ledger.models.ledger import (
    FailedExpense,
    FundingTemplate,
    SpendingTemplate,
    SpendingTemplateExpense,
    SpendingTemplateResult,
    TransactionStatus,
    TransactionType,
)
from envelope_ledger.validation import require_valid, to_amount, to_day_of_month


ExpenseInput = Union[SpendingTemplateExpense, dict[str, Any]]


def clamp_day(year: int, month: int, day: int) -> date:
    """The given day of a month, or its last day if the month is shorter."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last_day))


class TemplateOperations(LedgerBase):
    """
    Template CRUD and application.

    Relies on fund_envelopes, get_available_to_fund and _record from the
    funding and transaction subsystems.
    """

    # ------------------------------------------------------------------
    # Funding templates
    # ------------------------------------------------------------------

    def _validated_funding_template(
        self,
        name: Any,
        day_of_month: Any,
        expected_amount: Any,
        allocations: dict[str, Any],
    ) -> dict[str, Any]:
        result = require_valid(
            self._validator.validate_funding_template(name, day_of_month, expected_amount, allocations),
            "Invalid funding template",
        )
        return {
            "name": name,
            "day_of_month": to_day_of_month(day_of_month),
            "expected_amount": to_amount(expected_amount, "expected_amount"),
            "allocations": {
                envelope_id: to_amount(raw) for envelope_id, raw in allocations.items()
            },
            "warnings": result.warnings,
        }

    @audited
    def create_template(
        self,
        name: str,
        day_of_month: Any,
        expected_amount: Any,
        allocations: dict[str, Any],
    ) -> FundingTemplate:
        fields = self._validated_funding_template(name, day_of_month, expected_amount, allocations)
        warnings = fields.pop("warnings")
        template = FundingTemplate(created_at=self._now(), **fields)

        templates = self._ctx.funding_templates()
        templates.append(template)
        self._ctx.save_funding_templates(templates)

        self._log(
            AuditEventType.TEMPLATE_SAVED, "funding_template", template.id,
            f"Funding template created: {template.name}",
            details={"total_allocated": template.total_allocated, "warnings": warnings},
        )
        return template

    def get_template(self, template_id: str) -> Optional[FundingTemplate]:
        return find_by_id(self._ctx.funding_templates(), template_id)

    def get_all_templates(self) -> list[FundingTemplate]:
        return self._ctx.funding_templates()

    @audited
    def update_template(
        self,
        template_id: str,
        name: Optional[str] = None,
        day_of_month: Any = None,
        expected_amount: Any = None,
        allocations: Optional[dict[str, Any]] = None,
    ) -> FundingTemplate:
        templates = self._ctx.funding_templates()
        template = find_by_id(templates, template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)

        fields = self._validated_funding_template(
            name if name is not None else template.name,
            day_of_month if day_of_month is not None else template.day_of_month,
            expected_amount if expected_amount is not None else template.expected_amount,
            allocations if allocations is not None else template.allocations,
        )
        warnings = fields.pop("warnings")
        for field, value in fields.items():
            setattr(template, field, value)
        self._ctx.save_funding_templates(templates)

        self._log(
            AuditEventType.TEMPLATE_SAVED, "funding_template", template_id,
            f"Funding template updated: {template.name}",
            details={"total_allocated": template.total_allocated, "warnings": warnings},
        )
        return template

    @audited
    def delete_template(self, template_id: str) -> None:
        templates = self._ctx.funding_templates()
        template = find_by_id(templates, template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)

        self._ctx.save_funding_templates([t for t in templates if t.id != template_id])
        self._log(
            AuditEventType.TEMPLATE_DELETED, "funding_template", template_id,
            f"Funding template deleted: {template.name}",
        )

    @audited
    def apply_template(self, template_id: str) -> FundingTemplate:
        """Fund envelopes from a template's allocations."""
        template = self.get_template(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)

        available = self.get_available_to_fund()
        needed = template.total_allocated
        if needed > available:
            raise InsufficientFundsError(
                requested=needed,
                available=available,
                message=(
                    f"Template requires {format_money(needed)} "
                    f"but only {format_money(available)} is available."
                ),
            )

        self.fund_envelopes(template.allocations)
        self._log(
            AuditEventType.TEMPLATE_APPLIED, "funding_template", template_id,
            f"Funding template applied: {template.name}",
            details={"total": needed},
        )
        return template

    def get_templates_for_today(self) -> list[FundingTemplate]:
        today = self.today().day
        return [t for t in self._ctx.funding_templates() if t.day_of_month == today]

    # ------------------------------------------------------------------
    # Spending templates
    # ------------------------------------------------------------------

    @staticmethod
    def _expense_fields(expense: ExpenseInput) -> dict[str, Any]:
        if isinstance(expense, SpendingTemplateExpense):
            return expense.model_dump()
        return {to_snake(key): value for key, value in expense.items()}

    def _validated_expenses(
        self,
        name: Any,
        expenses: list[ExpenseInput],
    ) -> list[SpendingTemplateExpense]:
        raw = [self._expense_fields(expense) for expense in expenses]
        require_valid(
            self._validator.validate_spending_template(name, raw),
            "Invalid spending template",
        )
        return [
            SpendingTemplateExpense(
                envelope_id=fields["envelope_id"],
                amount=to_amount(fields["amount"]),
                description=fields.get("description") or "",
                day_of_month=(
                    to_day_of_month(fields["day_of_month"])
                    if fields.get("day_of_month") is not None
                    else None
                ),
                account_id=fields.get("account_id") or None,
            )
            for fields in raw
        ]

    @audited
    def create_spending_template(
        self,
        name: str,
        expenses: list[ExpenseInput],
    ) -> SpendingTemplate:
        template = SpendingTemplate(
            name=name,
            expenses=self._validated_expenses(name, expenses),
            created_at=self._now(),
        )
        templates = self._ctx.spending_templates()
        templates.append(template)
        self._ctx.save_spending_templates(templates)

        self._log(
            AuditEventType.TEMPLATE_SAVED, "spending_template", template.id,
            f"Spending template created: {template.name}",
            details={"expenses": len(template.expenses)},
        )
        return template

    def get_spending_template(self, template_id: str) -> Optional[SpendingTemplate]:
        return find_by_id(self._ctx.spending_templates(), template_id)

    def get_all_spending_templates(self) -> list[SpendingTemplate]:
        return self._ctx.spending_templates()

    @audited
    def update_spending_template(
        self,
        template_id: str,
        name: Optional[str] = None,
        expenses: Optional[list[ExpenseInput]] = None,
    ) -> SpendingTemplate:
        templates = self._ctx.spending_templates()
        template = find_by_id(templates, template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)

        new_name = name if name is not None else template.name
        template.expenses = self._validated_expenses(
            new_name,
            expenses if expenses is not None else template.expenses,
        )
        template.name = new_name
        self._ctx.save_spending_templates(templates)

        self._log(
            AuditEventType.TEMPLATE_SAVED, "spending_template", template_id,
            f"Spending template updated: {template.name}",
            details={"expenses": len(template.expenses)},
        )
        return template

    @audited
    def delete_spending_template(self, template_id: str) -> None:
        templates = self._ctx.spending_templates()
        template = find_by_id(templates, template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)

        self._ctx.save_spending_templates([t for t in templates if t.id != template_id])
        self._log(
            AuditEventType.TEMPLATE_DELETED, "spending_template", template_id,
            f"Spending template deleted: {template.name}",
        )

    @audited
    def apply_spending_template(
        self,
        template_id: str,
        use_template_date: bool = False,
    ) -> SpendingTemplateResult:
        """
        Record every expense of a template as its own strict transaction.

        Dates are today, or this month's dayOfMonth when use_template_date
        is set and the expense has one. One failing expense never stops
        the rest.
        """
        template = self.get_spending_template(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)

        today = self.today()
        correlation_id = create_correlation_id()
        result = SpendingTemplateResult()

        for expense in template.expenses:
            if use_template_date and expense.day_of_month:
                when = clamp_day(today.year, today.month, expense.day_of_month)
            else:
                when = today
            try:
                self._record(
                    expense.envelope_id,
                    expense.amount,
                    expense.description,
                    when,
                    expense.account_id,
                    TransactionStatus.CLEARED,
                    TransactionType.EXPENSE,
                    strict=True,
                    correlation_id=correlation_id,
                )
            except LedgerError as e:
                self._audit.log_rejected(
                    "apply_spending_template", e,
                    budget_id=self.budget_id,
                    correlation_id=correlation_id,
                )
                result.failed.append(FailedExpense(description=expense.description, error=str(e)))
            else:
                result.success.append(expense.description)

        self._log(
            AuditEventType.SPENDING_TEMPLATE_APPLIED, "spending_template", template_id,
            f"Spending template applied: {template.name}",
            details={"succeeded": len(result.success), "failed": len(result.failed)},
            correlation_id=correlation_id,
        )
        return result

    def get_spending_templates_for_today(self) -> list[SpendingTemplate]:
        today = self.today().day
        return [
            template for template in self._ctx.spending_templates()
            if any(expense.day_of_month == today for expense in template.expenses)
        ]
