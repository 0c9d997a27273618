"""
Report Execution Engine

DESIGN DECISION: Reports are DETERMINISTIC and READ-ONLY.
Every figure is computed from what is stored at call time; nothing is
estimated, cached or written back.
"""

from datetime import timedelta
from typing import Any, Optional

from envelope_ledger.config import ReportSettings, get_settings
from envelope_ledger.errors import ArchiveNotFoundError, ValidationError
from envelope_ledger.ledger import LedgerEngine
from envelope_ledger.models.ledger import TransactionType, to_money
from envelope_ledger.models.reports import (
    CashFlowDay,
    CashFlowItem,
    CashFlowProjection,
    CashFlowWarning,
    DashboardSummary,
    MonthReport,
)
from envelope_ledger.validation import to_date


class ReportExecutor:
    """
    Executes read-only reports against one budget's ledger.

    GUARANTEES:
    - Only reports stored data
    - Never mutates the ledger (apart from the lazy current-month marker)
    """

    def __init__(
        self,
        engine: LedgerEngine,
        settings: Optional[ReportSettings] = None,
    ):
        self._engine = engine
        self._settings = settings or get_settings().reports

    @staticmethod
    def _category_spending(envelopes) -> dict[str, float]:
        spending: dict[str, float] = {}
        for envelope in envelopes:
            if envelope.spent > 0:
                spending[envelope.category] = to_money(
                    spending.get(envelope.category, 0.0) + envelope.spent
                )
        return spending

    def month_report(self, month_key: Optional[str] = None) -> MonthReport:
        """
        Income, allocation and spending for the current month, or for an
        archived month when month_key is given.

        Raises:
            ArchiveNotFoundError: No archive exists for month_key
        """
        if month_key is None:
            envelopes = self._engine.get_all_envelopes()
            total_allocated = self._engine.get_total_funded()
            total_spent = self._engine.get_total_spent()
            return MonthReport(
                total_income=to_money(sum(inc.amount for inc in self._engine.get_all_income())),
                total_allocated=total_allocated,
                total_spent=total_spent,
                unspent=to_money(total_allocated - total_spent),
                envelopes=envelopes,
                category_spending=self._category_spending(envelopes),
            )

        archive = self._engine.get_month_archive(month_key)
        if archive is None:
            raise ArchiveNotFoundError(month_key)

        summary = archive.summary
        return MonthReport(
            month_key=archive.month_key,
            archived=True,
            # Archives do not keep income; funded is the closest figure
            total_income=summary.total_funded,
            total_allocated=summary.total_funded,
            total_spent=summary.total_spent,
            unspent=to_money(summary.total_funded - summary.total_spent),
            envelopes=list(archive.envelope_snapshots),
            category_spending=self._category_spending(archive.envelope_snapshots),
        )

    def cash_flow_projection(
        self,
        days: Optional[int] = None,
        start: Any = None,
    ) -> CashFlowProjection:
        """
        Project the bank balance day by day.

        Starts from the stored bank balance and applies income and
        transactions dated on each day of the window.

        Raises:
            ValidationError: days is less than 1
        """
        if days is None:
            days = self._settings.cash_flow_days
        if days < 1:
            raise ValidationError(f"days must be at least 1, got {days}")
        start_date = to_date(start) if start is not None else self._engine.today()
        end_date = start_date + timedelta(days=days - 1)

        starting_balance = self._engine.get_bank_balance()
        envelopes = {env.id: env.name for env in self._engine.get_all_envelopes()}
        income = [
            inc for inc in self._engine.get_all_income()
            if start_date <= inc.date <= end_date
        ]
        transactions = [
            txn for txn in self._engine.get_all_transactions()
            if start_date <= txn.date <= end_date
        ]

        balance = starting_balance
        total_income = 0.0
        total_expenses = 0.0
        timeline: list[CashFlowDay] = []
        for offset in range(days):
            day = start_date + timedelta(days=offset)
            items: list[CashFlowItem] = []

            for inc in income:
                if inc.date != day:
                    continue
                items.append(CashFlowItem(
                    type="income",
                    description=f"{inc.source} ({inc.frequency.label})",
                    amount=inc.amount,
                ))
                balance += inc.amount
                total_income += inc.amount

            for txn in transactions:
                if txn.date != day:
                    continue
                if txn.type == TransactionType.INCOME:
                    items.append(CashFlowItem(type="income", description=txn.description, amount=txn.amount))
                    balance += txn.amount
                    total_income += txn.amount
                else:
                    label = envelopes.get(txn.envelope_id, "Unknown")
                    items.append(CashFlowItem(
                        type="expense",
                        description=f"{txn.description} ({label})",
                        amount=txn.amount,
                    ))
                    balance -= txn.amount
                    total_expenses += txn.amount

            warning = None
            if balance < 0:
                warning = CashFlowWarning.OVERDRAFT
            elif balance < self._settings.low_balance_threshold:
                warning = CashFlowWarning.LOW
            timeline.append(CashFlowDay(date=day, balance=to_money(balance), items=items, warning=warning))

        return CashFlowProjection(
            start_date=start_date,
            days=timeline,
            starting_balance=starting_balance,
            total_income=to_money(total_income),
            total_expenses=to_money(total_expenses),
            ending_balance=timeline[-1].balance if timeline else starting_balance,
            lowest_balance=min((d.balance for d in timeline), default=starting_balance),
        )

    def dashboard_summary(self) -> DashboardSummary:
        """Headline totals for the budget."""
        return DashboardSummary(
            total_planned=self._engine.get_total_planned(),
            total_funded=self._engine.get_total_funded(),
            total_spent=self._engine.get_total_spent(),
            available_to_fund=self._engine.get_available_to_fund(),
            total_accounts_balance=self._engine.get_total_accounts_balance(),
            bank_balance=self._engine.get_bank_balance(),
            envelope_count=len(self._engine.get_all_envelopes()),
            current_month_key=self._engine.get_current_month().month_key,
        )
