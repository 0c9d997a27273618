"""
Income records and funding allocation.

The unallocated pool is never stored: it is always
Σ income - Σ envelope funded, and may go negative when income is
edited or deleted after it was allocated.
"""

from typing import Any, Optional, Union

from envelope_ledger.errors import IncomeNotFoundError, InsufficientFundsError
from envelope_ledger.ledger.base import LedgerBase, audited, find_by_id
from envelope_ledger.models.audit import AuditEventType
from envelope_ledger.models.ledger import Income, IncomeFrequency, to_money
from envelope_ledger.validation import (
    require_valid,
    to_amount,
    to_choice,
    to_date,
    to_non_negative_amount,
)


class FundingOperations(LedgerBase):
    """Income recording and moving money from the pool into envelopes."""

    # ------------------------------------------------------------------
    # Income
    # ------------------------------------------------------------------

    @audited
    def add_income(
        self,
        source: str,
        amount: Any,
        date: Any,
        frequency: Union[IncomeFrequency, str] = IncomeFrequency.OTHER,
        account_id: Optional[str] = None,
    ) -> Income:
        """Record a paycheck or other deposit; it joins the pool immediately."""
        income = Income(
            source=source,
            amount=to_non_negative_amount(amount),
            date=to_date(date),
            frequency=to_choice(IncomeFrequency, frequency, "frequency"),
            account_id=account_id or None,
        )
        records = self._ctx.income()
        records.append(income)
        self._ctx.save_income(records)

        self._log(
            AuditEventType.INCOME_RECORDED, "income", income.id,
            f"Income recorded: {income.source}",
            details={"amount": income.amount, "account_id": income.account_id},
        )
        return income

    def get_income(self, income_id: str) -> Optional[Income]:
        return find_by_id(self._ctx.income(), income_id)

    def get_all_income(self) -> list[Income]:
        return self._ctx.income()

    @audited
    def update_income(
        self,
        income_id: str,
        source: Optional[str] = None,
        amount: Any = None,
        date: Any = None,
        frequency: Optional[Union[IncomeFrequency, str]] = None,
        account_id: Optional[str] = None,
    ) -> Income:
        """
        Edit an income record.

        Lowering an amount that was already allocated can push the
        available pool below zero; that is allowed.
        """
        records = self._ctx.income()
        income = find_by_id(records, income_id)
        if income is None:
            raise IncomeNotFoundError(income_id)

        changes: dict[str, Any] = {}
        if source is not None:
            changes["source"] = source
        if amount is not None:
            changes["amount"] = to_non_negative_amount(amount)
        if date is not None:
            changes["date"] = to_date(date)
        if frequency is not None:
            changes["frequency"] = to_choice(IncomeFrequency, frequency, "frequency")
        if account_id is not None:
            changes["account_id"] = account_id

        for field, value in changes.items():
            setattr(income, field, value)
        self._ctx.save_income(records)

        self._log(
            AuditEventType.INCOME_UPDATED, "income", income_id,
            f"Income updated: {income.source}",
            details={key: str(value) for key, value in changes.items()},
        )
        return income

    @audited
    def delete_income(self, income_id: str) -> None:
        records = self._ctx.income()
        income = find_by_id(records, income_id)
        if income is None:
            raise IncomeNotFoundError(income_id)

        self._ctx.save_income([inc for inc in records if inc.id != income_id])
        self._log(
            AuditEventType.INCOME_DELETED, "income", income_id,
            f"Income deleted: {income.source}",
            details={"amount": income.amount},
        )

    # ------------------------------------------------------------------
    # Funding
    # ------------------------------------------------------------------

    def get_available_to_fund(self) -> float:
        """Σ income - Σ envelope funded."""
        total_income = sum(inc.amount for inc in self._ctx.income())
        total_funded = sum(env.funded for env in self._ctx.envelopes())
        return to_money(total_income - total_funded)

    @audited
    def fund_envelopes(self, plan: dict[str, Any]) -> dict[str, float]:
        """
        Allocate pool money to envelopes.

        Args:
            plan: envelope id -> amount to add

        Returns:
            The amounts actually added, per envelope

        Raises:
            ValidationError: A plan amount is negative or not a number
            InsufficientFundsError: The plan total exceeds the pool

        Zero amounts and unknown envelope ids are skipped. The whole plan
        is applied in one write or not at all.
        """
        require_valid(self._validator.validate_fund_plan(plan), "Invalid funding plan")
        amounts = {envelope_id: to_amount(raw) for envelope_id, raw in plan.items()}

        available = self.get_available_to_fund()
        total = to_money(sum(amounts.values()))
        if total > available:
            raise InsufficientFundsError(requested=total, available=available)

        envelopes = self._ctx.envelopes()
        applied: dict[str, float] = {}
        for envelope_id, amount in amounts.items():
            if amount <= 0:
                continue
            envelope = find_by_id(envelopes, envelope_id)
            if envelope is None:
                continue
            envelope.funded = to_money(envelope.funded + amount)
            applied[envelope_id] = amount
        self._ctx.save_envelopes(envelopes)

        self._audit.log_envelopes_funded(
            plan=applied,
            total=total,
            available_before=available,
            budget_id=self.budget_id,
        )
        return applied
