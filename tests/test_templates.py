"""Tests for funding and spending templates."""

from datetime import date

import pytest

from envelope_ledger.errors import InsufficientFundsError, TemplateNotFoundError, ValidationError
from envelope_ledger.ledger import clamp_day
from envelope_ledger.models import AuditEventType, SpendingTemplateExpense


@pytest.fixture
def groceries(funded_engine):
    return next(env for env in funded_engine.get_all_envelopes() if env.name == "Groceries")


class TestClampDay:
    """Tests for day-of-month clamping."""

    def test_short_month(self):
        """Test day 31 lands on the last day of a short month."""
        assert clamp_day(2025, 2, 31) == date(2025, 2, 28)
        assert clamp_day(2024, 2, 30) == date(2024, 2, 29)

    def test_day_in_range(self):
        """Test a valid day is kept."""
        assert clamp_day(2025, 1, 15) == date(2025, 1, 15)


class TestFundingTemplates:
    """Tests for funding template CRUD and application."""

    def test_create_template(self, funded_engine, groceries):
        """Test a template stores parsed allocations."""
        template = funded_engine.create_template(
            "Paycheck split", "15", "1000", {groceries.id: "150"}
        )
        assert template.day_of_month == 15
        assert template.allocations == {groceries.id: 150.0}
        assert funded_engine.get_template(template.id) == template

    def test_create_template_rejects_bad_day(self, engine):
        """Test day_of_month outside 1-31 is refused."""
        with pytest.raises(ValidationError):
            engine.create_template("Bad", 0, 100, {})
        assert engine.get_all_templates() == []

    def test_over_allocation_is_a_warning(self, funded_engine, groceries, audit_storage):
        """Test allocations above the expected amount are allowed but noted."""
        template = funded_engine.create_template("Big", 1, 100, {groceries.id: 200})
        assert template.total_allocated == 200
        latest = audit_storage.get_recent_events(limit=1)[0]
        assert latest.event_type == AuditEventType.TEMPLATE_SAVED
        assert latest.details["warnings"]

    def test_update_template(self, funded_engine, groceries):
        """Test updating keeps unspecified fields."""
        template = funded_engine.create_template("Split", 1, 500, {groceries.id: 100})
        updated = funded_engine.update_template(template.id, name="Renamed")
        assert updated.name == "Renamed"
        assert updated.allocations == {groceries.id: 100}
        assert funded_engine.get_template(template.id).name == "Renamed"

    def test_delete_template(self, funded_engine):
        """Test deleting a template."""
        template = funded_engine.create_template("Split", 1, 0, {})
        funded_engine.delete_template(template.id)
        assert funded_engine.get_all_templates() == []
        with pytest.raises(TemplateNotFoundError):
            funded_engine.delete_template(template.id)

    def test_apply_template_funds_envelopes(self, funded_engine, groceries):
        """Test applying a template is fund_envelopes of its allocations."""
        rent = funded_engine.create_envelope("Rent")
        template = funded_engine.create_template(
            "Split", 1, 700, {groceries.id: 100, rent.id: 600}
        )
        funded_engine.apply_template(template.id)
        assert funded_engine.get_envelope(groceries.id).funded == 400
        assert funded_engine.get_envelope(rent.id).funded == 600
        assert funded_engine.get_available_to_fund() == 0

    def test_apply_template_over_pool(self, funded_engine, groceries):
        """Test a template larger than the pool is refused."""
        template = funded_engine.create_template("Split", 1, 0, {groceries.id: 800})
        with pytest.raises(InsufficientFundsError) as exc:
            funded_engine.apply_template(template.id)
        assert str(exc.value) == "Template requires $800.00 but only $700.00 is available."
        assert funded_engine.get_envelope(groceries.id).funded == 300

    def test_templates_for_today(self, engine):
        """Test templates due on the clock's day of month."""
        due = engine.create_template("Mid month", 15, 0, {})
        engine.create_template("Start", 1, 0, {})
        assert [t.id for t in engine.get_templates_for_today()] == [due.id]


class TestSpendingTemplates:
    """Tests for spending template CRUD and application."""

    def test_create_from_dicts(self, funded_engine, groceries):
        """Test expense lines may use stored camelCase keys."""
        template = funded_engine.create_spending_template(
            "Weekly",
            [{"envelopeId": groceries.id, "amount": "50", "description": "Shop", "dayOfMonth": 31}],
        )
        [expense] = template.expenses
        assert expense.envelope_id == groceries.id
        assert expense.amount == 50
        assert expense.day_of_month == 31

    def test_create_rejects_missing_envelope(self, engine):
        """Test every expense line needs an envelope."""
        with pytest.raises(ValidationError):
            engine.create_spending_template("Bad", [{"amount": 10}])

    def test_update_spending_template(self, funded_engine, groceries):
        """Test replacing the expense lines."""
        template = funded_engine.create_spending_template(
            "Weekly", [SpendingTemplateExpense(envelope_id=groceries.id, amount=10)]
        )
        updated = funded_engine.update_spending_template(
            template.id,
            expenses=[
                SpendingTemplateExpense(envelope_id=groceries.id, amount=20),
                SpendingTemplateExpense(envelope_id=groceries.id, amount=30),
            ],
        )
        assert updated.name == "Weekly"
        assert [e.amount for e in funded_engine.get_spending_template(template.id).expenses] == [20, 30]

    def test_delete_spending_template(self, engine):
        """Test deleting a spending template."""
        template = engine.create_spending_template("Empty", [])
        engine.delete_spending_template(template.id)
        assert engine.get_all_spending_templates() == []

    def test_apply_records_each_expense(self, funded_engine, groceries):
        """Test every expense becomes its own transaction dated today."""
        template = funded_engine.create_spending_template(
            "Weekly",
            [
                {"envelope_id": groceries.id, "amount": 50, "description": "Milk"},
                {"envelope_id": groceries.id, "amount": 25, "description": "Bread"},
            ],
        )
        result = funded_engine.apply_spending_template(template.id)

        assert result.success == ["Milk", "Bread"]
        assert result.all_succeeded
        assert funded_engine.get_envelope(groceries.id).spent == 75
        assert {txn.date for txn in funded_engine.get_all_transactions()} == {date(2025, 1, 15)}

    def test_apply_partially_succeeds(self, funded_engine, groceries):
        """Test one failing expense never stops the others."""
        template = funded_engine.create_spending_template(
            "Mixed",
            [
                {"envelope_id": groceries.id, "amount": 250, "description": "Big shop"},
                {"envelope_id": groceries.id, "amount": 100, "description": "Too much"},
                {"envelope_id": "gone", "amount": 5, "description": "Orphan"},
                {"envelope_id": groceries.id, "amount": 50, "description": "Fits"},
            ],
        )
        result = funded_engine.apply_spending_template(template.id)

        assert result.success == ["Big shop", "Fits"]
        assert [failure.description for failure in result.failed] == ["Too much", "Orphan"]
        assert result.failed[0].error == "Insufficient funds in envelope. Balance: $50.00"
        assert result.failed[1].error == "Envelope not found"
        assert funded_engine.get_envelope(groceries.id).spent == 300

    def test_apply_uses_template_date(self, funded_engine, groceries):
        """Test use_template_date dates expenses on their clamped day."""
        template = funded_engine.create_spending_template(
            "Monthly",
            [
                {"envelope_id": groceries.id, "amount": 10, "description": "Late", "day_of_month": 31},
                {"envelope_id": groceries.id, "amount": 10, "description": "Anytime"},
            ],
        )
        funded_engine.apply_spending_template(template.id, use_template_date=True)
        dates = {txn.description: txn.date for txn in funded_engine.get_all_transactions()}
        assert dates == {"Late": date(2025, 1, 31), "Anytime": date(2025, 1, 15)}

    def test_apply_shares_correlation_id(self, funded_engine, groceries, audit_storage):
        """Test every event of one application shares a correlation id."""
        template = funded_engine.create_spending_template(
            "Weekly", [{"envelope_id": groceries.id, "amount": 10, "description": "Milk"}]
        )
        funded_engine.apply_spending_template(template.id)

        latest = audit_storage.get_recent_events(limit=1)[0]
        assert latest.event_type == AuditEventType.SPENDING_TEMPLATE_APPLIED
        related = audit_storage.get_events_by_correlation_id(latest.correlation_id)
        assert {event.event_type for event in related} == {
            AuditEventType.TRANSACTION_RECORDED,
            AuditEventType.SPENDING_TEMPLATE_APPLIED,
        }

    def test_apply_unknown_template(self, engine):
        """Test applying a missing template raises."""
        with pytest.raises(TemplateNotFoundError):
            engine.apply_spending_template("missing")

    def test_spending_templates_for_today(self, funded_engine, groceries):
        """Test templates with an expense due today."""
        due = funded_engine.create_spending_template(
            "Due", [{"envelope_id": groceries.id, "amount": 1, "day_of_month": 15}]
        )
        funded_engine.create_spending_template(
            "Later", [{"envelope_id": groceries.id, "amount": 1, "day_of_month": 20}]
        )
        assert [t.id for t in funded_engine.get_spending_templates_for_today()] == [due.id]
