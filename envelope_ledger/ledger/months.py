"""Current month marker, rollover and month archives."""

from typing import Optional

from envelope_ledger.errors import ValidationError
from envelope_ledger.ledger.base import LedgerBase, audited
from envelope_ledger.models.ledger import (
    MONTH_NAMES,
    ArchiveSummary,
    CurrentMonth,
    EnvelopeSnapshot,
    MonthArchive,
    RolloverResult,
    to_money,
)
from envelope_ledger.services.storage import Collection


class MonthOperations(LedgerBase):
    """Month-to-month rollover with write-once archives."""

    def get_current_month(self) -> CurrentMonth:
        """The active period, initialised to the real current month on first read."""
        current = self._ctx.current_month()
        if current is None:
            current = CurrentMonth.for_date(self.today())
            self._ctx.save_current_month(current)
        return current

    @staticmethod
    def get_month_name(month: int) -> str:
        if not 1 <= month <= 12:
            raise ValidationError(f"month must be between 1 and 12, got {month}")
        return MONTH_NAMES[month - 1]

    @audited
    def start_new_month(self, rollover_unspent: bool = True) -> RolloverResult:
        """
        Archive the current month and reset envelopes for the next one.

        Every envelope keeps its plan, spent goes to 0, and funded becomes
        its unspent balance when rolling over a positive balance, else 0.
        The archive, the envelopes and the month marker are written in
        one commit.
        """
        current = self.get_current_month()
        envelopes = self._ctx.envelopes()

        archive = MonthArchive(
            month_key=current.month_key,
            year=current.year,
            month=current.month,
            month_name=self.get_month_name(current.month),
            archived_date=self._now(),
            summary=ArchiveSummary(
                total_planned=to_money(sum(env.planned for env in envelopes)),
                total_funded=to_money(sum(env.funded for env in envelopes)),
                total_spent=to_money(sum(env.spent for env in envelopes)),
            ),
            envelope_snapshots=tuple(
                EnvelopeSnapshot(
                    id=env.id,
                    name=env.name,
                    category=env.category,
                    planned=env.planned,
                    funded=env.funded,
                    spent=env.spent,
                    balance=env.balance,
                )
                for env in envelopes
            ),
        )

        for envelope in envelopes:
            unspent = envelope.balance
            envelope.funded = unspent if rollover_unspent and unspent > 0 else 0.0
            envelope.spent = 0.0

        new_month = CurrentMonth.for_date(self.today())
        archives = self._ctx.month_archives()
        archives.append(archive)
        self._ctx.commit({
            Collection.MONTH_ARCHIVES: archives,
            Collection.ENVELOPES: envelopes,
            Collection.CURRENT_MONTH: new_month,
        })

        self._audit.log_month_rolled_over(
            archive_id=archive.id,
            archived_month_key=archive.month_key,
            new_month_key=new_month.month_key,
            rollover_unspent=rollover_unspent,
            budget_id=self.budget_id,
        )
        return RolloverResult(archived=archive, new_month=new_month)

    def get_month_archives(self) -> list[MonthArchive]:
        return self._ctx.month_archives()

    def get_month_archive(self, month_key: str) -> Optional[MonthArchive]:
        for archive in self._ctx.month_archives():
            if archive.month_key == month_key:
                return archive
        return None
