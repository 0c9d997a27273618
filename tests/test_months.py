"""Tests for the current month marker and the month rollover."""

from datetime import datetime

import pytest

from envelope_ledger.errors import ValidationError
from envelope_ledger.ledger import LedgerEngine
from envelope_ledger.models import AuditEventType, CurrentMonth


@pytest.fixture
def groceries(funded_engine):
    return next(env for env in funded_engine.get_all_envelopes() if env.name == "Groceries")


class TestCurrentMonth:
    """Tests for the month marker."""

    def test_initialised_from_clock(self, engine):
        """Test the marker starts at the clock's month and is stored."""
        current = engine.get_current_month()
        assert current == CurrentMonth(year=2025, month=1, month_key="2025-01")
        assert engine.context.current_month() == current

    def test_month_name(self):
        """Test month numbers map to names."""
        assert LedgerEngine.get_month_name(2) == "February"
        with pytest.raises(ValidationError):
            LedgerEngine.get_month_name(13)


class TestRollover:
    """Tests for start_new_month."""

    def test_archive_snapshot(self, funded_engine, groceries):
        """Test the archive captures every envelope as it was."""
        funded_engine.add_transaction(groceries.id, 120, "Shop", "2025-01-10")

        result = funded_engine.start_new_month()

        archive = result.archived
        assert archive.month_key == "2025-01"
        assert archive.month_name == "January"
        assert archive.summary.total_planned == 400
        assert archive.summary.total_funded == 300
        assert archive.summary.total_spent == 120
        [snapshot] = archive.envelope_snapshots
        assert snapshot.balance == 180
        assert funded_engine.get_month_archive("2025-01") == archive

    def test_rollover_keeps_unspent(self, funded_engine, groceries):
        """Test unspent money carries over and spent resets."""
        funded_engine.add_transaction(groceries.id, 120, "Shop", "2025-01-10")
        funded_engine.start_new_month(rollover_unspent=True)

        envelope = funded_engine.get_envelope(groceries.id)
        assert envelope.funded == 180
        assert envelope.spent == 0
        assert envelope.planned == 400

    def test_rollover_without_carry(self, funded_engine, groceries):
        """Test funded resets to 0 when not rolling over."""
        funded_engine.start_new_month(rollover_unspent=False)
        envelope = funded_engine.get_envelope(groceries.id)
        assert envelope.funded == 0
        assert envelope.spent == 0

    def test_overdrawn_envelope_does_not_carry_debt(self, funded_engine, groceries):
        """Test a negative balance rolls over as 0."""
        funded_engine.create_expense_with_confirmation(
            groceries.id, 350, "Party", "2025-01-10", confirm_overdraft=True
        )
        funded_engine.start_new_month()
        assert funded_engine.get_envelope(groceries.id).funded == 0

    def test_marker_moves_to_clock_month(self, budgets, audit_logger):
        """Test the new marker is the real current month."""
        now = {"value": datetime(2025, 1, 31, 9, 0)}
        engine = LedgerEngine(budgets.context(), audit_logger=audit_logger, clock=lambda: now["value"])
        engine.get_current_month()

        now["value"] = datetime(2025, 2, 1, 9, 0)
        result = engine.start_new_month()

        assert result.archived.month_key == "2025-01"
        assert result.new_month.month_key == "2025-02"
        assert engine.get_current_month().month_key == "2025-02"

    def test_archives_accumulate(self, funded_engine):
        """Test archives are appended, never replaced."""
        funded_engine.start_new_month()
        funded_engine.start_new_month()
        assert len(funded_engine.get_month_archives()) == 2

    def test_missing_archive(self, engine):
        """Test an unknown month key has no archive."""
        assert engine.get_month_archive("1999-01") is None

    def test_rollover_is_audited(self, funded_engine, audit_storage):
        """Test a rollover leaves a MONTH_ROLLED_OVER event."""
        funded_engine.start_new_month()
        latest = audit_storage.get_recent_events(limit=1)[0]
        assert latest.event_type == AuditEventType.MONTH_ROLLED_OVER
        assert latest.details["archived_month_key"] == "2025-01"
