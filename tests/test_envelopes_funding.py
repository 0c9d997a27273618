"""Tests for envelopes, income and funding allocation."""

import pytest

from envelope_ledger.errors import (
    EnvelopeNotFoundError,
    IncomeNotFoundError,
    InsufficientFundsError,
    ValidationError,
)
from envelope_ledger.models import AuditEventType, IncomeFrequency


def _envelope(engine, name):
    return next(env for env in engine.get_all_envelopes() if env.name == name)


class TestEnvelopes:
    """Tests for envelope CRUD and totals."""

    def test_create_envelope_defaults(self, engine):
        """Test a new envelope has nothing funded or spent."""
        envelope = engine.create_envelope("Rent", planned="1200")
        assert envelope.planned == 1200.0
        assert envelope.funded == 0.0
        assert envelope.spent == 0.0
        assert envelope.category == "needs"
        assert engine.get_envelope(envelope.id) == envelope

    def test_create_envelope_rejects_non_numeric_plan(self, engine):
        """Test a plan that is not a number is refused."""
        with pytest.raises(ValidationError):
            engine.create_envelope("Rent", planned="lots")
        assert engine.get_all_envelopes() == []

    def test_update_envelope_keeps_balances(self, funded_engine):
        """Test editing an envelope never touches funded or spent."""
        groceries = _envelope(funded_engine, "Groceries")
        updated = funded_engine.update_envelope(groceries.id, name="Food", category="wants")
        assert updated.name == "Food"
        assert updated.category == "wants"
        assert updated.planned == 400
        assert updated.funded == 300

    def test_update_unknown_envelope(self, engine):
        """Test updating a missing envelope raises."""
        with pytest.raises(EnvelopeNotFoundError):
            engine.update_envelope("missing", name="x")

    def test_delete_envelope_cascades_transactions(self, funded_engine):
        """Test deleting an envelope removes its transactions too."""
        groceries = _envelope(funded_engine, "Groceries")
        other = funded_engine.create_envelope("Gas")
        funded_engine.fund_envelopes({other.id: 50})
        funded_engine.add_transaction(groceries.id, 20, "Milk", "2025-01-10")
        kept = funded_engine.add_transaction(other.id, 10, "Fuel", "2025-01-10")

        funded_engine.delete_envelope(groceries.id)

        assert funded_engine.get_envelope(groceries.id) is None
        assert [txn.id for txn in funded_engine.get_all_transactions()] == [kept.id]

    def test_envelope_balance_of_unknown_is_zero(self, engine):
        """Test the balance of a missing envelope is 0."""
        assert engine.get_envelope_balance("missing") == 0.0

    def test_totals_and_categories(self, engine):
        """Test totals add up across envelopes."""
        engine.create_envelope("Rent", planned=1000)
        engine.create_envelope("Movies", planned=50, category="wants")
        engine.create_envelope("Power", planned=100)
        assert engine.get_total_planned() == 1150
        assert engine.get_categories() == {"needs": 2, "wants": 1}


class TestIncome:
    """Tests for income records."""

    def test_add_income(self, engine):
        """Test income joins the pool immediately."""
        income = engine.add_income("Paycheck", "1500.50", "2025-01-01", frequency="biweekly")
        assert income.frequency == IncomeFrequency.BIWEEKLY
        assert income.allocated is False
        assert engine.get_available_to_fund() == 1500.5

    def test_add_income_rejects_bad_date(self, engine):
        """Test an unparseable date is refused."""
        with pytest.raises(ValidationError):
            engine.add_income("Paycheck", 100, "not a date")

    def test_add_income_rejects_negative_amount(self, engine):
        """Test a negative deposit is refused and the pool is unchanged."""
        with pytest.raises(ValidationError, match="cannot be negative"):
            engine.add_income("Paycheck", -100, "2025-01-01")
        assert engine.get_all_income() == []
        assert engine.get_available_to_fund() == 0

    def test_add_income_rejects_unknown_frequency(self, engine, audit_storage):
        """Test an unknown frequency is a ValidationError and is audited."""
        with pytest.raises(ValidationError) as exc:
            engine.add_income("Paycheck", 100, "2025-01-01", frequency="yearly")
        assert exc.value.issues[0].field == "frequency"
        assert engine.get_all_income() == []

        latest = audit_storage.get_recent_events(limit=1)[0]
        assert latest.event_type == AuditEventType.OPERATION_REJECTED
        assert latest.details["operation"] == "add_income"

    def test_update_income_validates_input(self, funded_engine):
        """Test edits refuse negative amounts and unknown frequencies."""
        income = funded_engine.get_all_income()[0]
        with pytest.raises(ValidationError):
            funded_engine.update_income(income.id, amount=-5)
        with pytest.raises(ValidationError):
            funded_engine.update_income(income.id, frequency="yearly")
        assert funded_engine.get_income(income.id) == income

    def test_lowering_income_can_make_pool_negative(self, funded_engine):
        """Test editing allocated income may push the pool below zero."""
        income = funded_engine.get_all_income()[0]
        funded_engine.update_income(income.id, amount=100)
        assert funded_engine.get_available_to_fund() == -200

    def test_delete_income(self, funded_engine):
        """Test deleting income shrinks the pool."""
        income = funded_engine.get_all_income()[0]
        funded_engine.delete_income(income.id)
        assert funded_engine.get_all_income() == []
        assert funded_engine.get_available_to_fund() == -300

    def test_delete_unknown_income(self, engine):
        """Test deleting a missing income record raises."""
        with pytest.raises(IncomeNotFoundError):
            engine.delete_income("missing")


class TestFunding:
    """Tests for fund_envelopes."""

    def test_fund_envelopes_moves_pool_money(self, funded_engine):
        """Test funding adds to envelopes and shrinks the pool."""
        groceries = _envelope(funded_engine, "Groceries")
        rent = funded_engine.create_envelope("Rent")

        applied = funded_engine.fund_envelopes({groceries.id: 100, rent.id: "200"})

        assert applied == {groceries.id: 100, rent.id: 200}
        assert funded_engine.get_envelope(groceries.id).funded == 400
        assert funded_engine.get_envelope(rent.id).funded == 200
        assert funded_engine.get_available_to_fund() == 400

    def test_fund_envelopes_over_pool_changes_nothing(self, funded_engine):
        """Test a plan over the pool is refused as a whole."""
        groceries = _envelope(funded_engine, "Groceries")
        rent = funded_engine.create_envelope("Rent")

        with pytest.raises(InsufficientFundsError) as exc:
            funded_engine.fund_envelopes({groceries.id: 500, rent.id: 500})

        assert str(exc.value) == "Cannot allocate $1,000.00. Only $700.00 available."
        assert funded_engine.get_envelope(groceries.id).funded == 300
        assert funded_engine.get_envelope(rent.id).funded == 0

    def test_fund_envelopes_skips_unknown_and_zero(self, funded_engine):
        """Test unknown envelope ids and zero amounts are skipped."""
        groceries = _envelope(funded_engine, "Groceries")
        applied = funded_engine.fund_envelopes({groceries.id: 0, "missing": 10})
        assert applied == {}
        assert funded_engine.get_envelope(groceries.id).funded == 300

    def test_fund_envelopes_rejects_negative(self, funded_engine):
        """Test negative plan amounts are refused."""
        groceries = _envelope(funded_engine, "Groceries")
        with pytest.raises(ValidationError) as exc:
            funded_engine.fund_envelopes({groceries.id: -50})
        assert exc.value.issues[0].issue_type == "negative_amount"
        assert funded_engine.get_envelope(groceries.id).funded == 300

    def test_funding_is_audited(self, funded_engine, audit_storage):
        """Test funding leaves an ENVELOPES_FUNDED event."""
        types = [event.event_type for event in audit_storage.get_recent_events()]
        assert AuditEventType.ENVELOPES_FUNDED in types

    def test_rejected_funding_is_audited(self, funded_engine, audit_storage):
        """Test a refused plan leaves an OPERATION_REJECTED event."""
        groceries = _envelope(funded_engine, "Groceries")
        with pytest.raises(InsufficientFundsError):
            funded_engine.fund_envelopes({groceries.id: 5000})

        latest = audit_storage.get_recent_events(limit=1)[0]
        assert latest.event_type == AuditEventType.OPERATION_REJECTED
        assert latest.details["operation"] == "fund_envelopes"
        assert latest.budget_id == "default"
