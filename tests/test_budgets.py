"""Tests for the multi-budget manager: registry, isolation, migration and backups."""

import pytest

from envelope_ledger.budgets import BudgetManager
from envelope_ledger.errors import (
    ActiveBudgetError,
    BudgetNotFoundError,
    LastBudgetError,
    ValidationError,
)
from envelope_ledger.ledger import LedgerEngine
from envelope_ledger.models import EXPORT_VERSION
from envelope_ledger.services.storage import Collection, InMemoryKeyValueStore, namespaced_key


class TestRegistry:
    """Tests for the budget registry and active pointer."""

    def test_default_budget_created_lazily(self, store, clock):
        """Test an empty store gets the default budget."""
        manager = BudgetManager(store, clock=clock)
        [budget] = manager.get_budgets()
        assert budget.id == "default"
        assert budget.name == "My Budget"
        assert manager.get_active_budget_id() == "default"
        assert store.get("budgetApp_activeBudget") == "default"

    def test_create_and_switch(self, budgets):
        """Test creating a budget and making it active."""
        budget = budgets.create_budget("Vacation")
        budgets.switch_active_budget(budget.id)
        assert budgets.get_active_budget() == budget
        assert len(budgets.get_budgets()) == 2

    def test_switch_to_unknown_budget(self, budgets):
        """Test switching to a missing budget is refused."""
        with pytest.raises(BudgetNotFoundError):
            budgets.switch_active_budget("missing")
        assert budgets.get_active_budget_id() == "default"

    def test_rename_budget(self, budgets):
        """Test renaming keeps the id."""
        budgets.rename_budget("default", "Household")
        assert budgets.get_budget("default").name == "Household"

    def test_cannot_delete_last_budget(self, budgets):
        """Test the last budget is protected."""
        with pytest.raises(LastBudgetError):
            budgets.delete_budget("default")

    def test_cannot_delete_active_budget(self, budgets):
        """Test the active budget is protected."""
        budgets.create_budget("Other")
        with pytest.raises(ActiveBudgetError):
            budgets.delete_budget("default")

    def test_delete_unknown_budget(self, budgets):
        """Test deleting a missing budget raises."""
        budgets.create_budget("Other")
        with pytest.raises(BudgetNotFoundError):
            budgets.delete_budget("missing")

    def test_delete_budget_removes_namespace(self, budgets, store):
        """Test deleting a budget drops every key it owns."""
        other = budgets.create_budget("Other")
        LedgerEngine(budgets.context(other.id)).create_envelope("Rent")
        assert store.contains(namespaced_key(other.id, Collection.ENVELOPES))

        budgets.delete_budget(other.id)

        assert not any(key.startswith(f"{other.id}_") for key in store.keys())
        assert budgets.get_budget(other.id) is None

    def test_context_of_unknown_budget(self, budgets):
        """Test asking for a missing budget's context raises."""
        with pytest.raises(BudgetNotFoundError):
            budgets.context("missing")


class TestIsolation:
    """Tests that budgets never see each other's data."""

    def test_budgets_are_isolated(self, budgets, clock):
        """Test writes to one budget leave the other untouched."""
        other = budgets.create_budget("Other")
        home = LedgerEngine(budgets.context("default"), clock=clock)
        away = LedgerEngine(budgets.context(other.id), clock=clock)

        home.add_income("Paycheck", 1000, "2025-01-01")
        home.create_envelope("Rent")

        assert away.get_all_envelopes() == []
        assert away.get_available_to_fund() == 0
        assert home.get_available_to_fund() == 1000


class TestLegacyMigration:
    """Tests for moving pre-namespacing keys into the first budget."""

    def test_migrates_and_deletes_legacy_keys(self, clock):
        """Test legacy keys land in the default budget and disappear."""
        store = InMemoryKeyValueStore({
            "budgetApp_envelopes": [{"id": "e1", "name": "Rent", "funded": 100}],
            "budgetApp_bankBalance": 500,
        })
        manager = BudgetManager(store, clock=clock)

        assert manager.migrate_legacy_data() is True

        assert store.get("budgetApp_envelopes") is None
        assert store.get("budgetApp_bankBalance") is None
        engine = LedgerEngine(manager.context("default"), clock=clock)
        assert engine.get_envelope("e1").funded == 100
        assert engine.get_bank_balance() == 500

    def test_migration_runs_once(self, clock):
        """Test a second migration is a no-op."""
        store = InMemoryKeyValueStore({"budgetApp_income": []})
        manager = BudgetManager(store, clock=clock)
        assert manager.migrate_legacy_data() is True
        assert manager.migrate_legacy_data() is False

    def test_initialize_repairs_dangling_pointer(self, clock):
        """Test an active pointer to a missing budget is reset."""
        store = InMemoryKeyValueStore({"budgetApp_activeBudget": "gone"})
        manager = BudgetManager(store, clock=clock)
        assert manager.initialize() == "default"
        assert manager.get_active_budget_id() == "default"


class TestBackups:
    """Tests for export and import."""

    def test_export_shape(self, budgets, engine):
        """Test the export holds every budget's collections."""
        engine.create_envelope("Rent")
        budgets.create_budget("Other")

        data = budgets.export_data()

        assert data["exportVersion"] == EXPORT_VERSION
        assert data["activeBudget"] == "default"
        assert len(data["budgets"]) == 2
        assert data["budgetData"]["default"]["envelopes"][0]["name"] == "Rent"
        assert data["budgetData"]["default"]["bankBalance"] == 0.0

    def test_export_import_round_trip(self, budgets, engine, clock):
        """Test importing an export into a fresh store restores everything."""
        engine.add_income("Paycheck", 1000, "2025-01-01")
        rent = engine.create_envelope("Rent", planned=800)
        engine.fund_envelopes({rent.id: 800})
        engine.add_transaction(rent.id, 800, "January rent", "2025-01-02")
        engine.start_new_month()
        other = budgets.create_budget("Other")
        budgets.switch_active_budget(other.id)
        exported = budgets.export_data()

        fresh = BudgetManager(InMemoryKeyValueStore(), clock=clock)
        assert fresh.import_data(exported) == EXPORT_VERSION

        assert fresh.get_active_budget_id() == other.id
        assert [b.name for b in fresh.get_budgets()] == ["My Budget", "Other"]
        restored = LedgerEngine(fresh.context("default"), clock=clock)
        assert restored.get_envelope(rent.id).planned == 800
        assert restored.get_available_to_fund() == engine.get_available_to_fund()
        assert len(restored.get_month_archives()) == 1
        assert fresh.export_data()["budgetData"] == exported["budgetData"]

    def test_export_clear_import(self, budgets, engine):
        """Test clearing and re-importing an export restores the envelopes."""
        groceries = engine.create_envelope("Groceries", planned=400)
        rent = engine.create_envelope("Rent", planned=1200)
        engine.add_income("Salary", 2000, "2025-01-01")
        engine.fund_envelopes({groceries.id: 400, rent.id: 1200})
        before = engine.get_all_envelopes()
        exported = budgets.export_data()

        budgets.clear_all()
        assert engine.get_all_envelopes() == []
        budgets.import_data(exported)

        assert engine.get_all_envelopes() == before
        assert [env.funded for env in engine.get_all_envelopes()] == [400, 1200]

    def test_import_repairs_unknown_active_budget(self, budgets, engine, clock):
        """Test an active pointer missing from the backup's budgets is reset."""
        engine.create_envelope("Rent")
        exported = budgets.export_data()
        exported["activeBudget"] = "gone"

        fresh = BudgetManager(InMemoryKeyValueStore(), clock=clock)
        fresh.import_data(exported)

        assert fresh.get_active_budget_id() == "default"
        assert fresh.get_active_budget().name == "My Budget"

    def test_legacy_import_into_active_budget(self, budgets, engine):
        """Test a legacy backup restores into the active budget only."""
        engine.set_bank_balance(50)
        result = budgets.import_data({
            "envelopes": [{"id": "e1", "name": "Rent"}],
            "income": [{"id": "i1", "source": "Pay", "amount": 200, "date": "2025-01-01"}],
        })
        assert result == "legacy"
        assert engine.get_envelope("e1").name == "Rent"
        assert engine.get_available_to_fund() == 200
        assert engine.get_bank_balance() == 50

    def test_invalid_import_is_refused(self, budgets, engine):
        """Test a file in neither format changes nothing."""
        engine.create_envelope("Rent")
        with pytest.raises(ValidationError, match="Invalid backup file format"):
            budgets.import_data({"hello": "world"})
        with pytest.raises(ValidationError):
            budgets.import_data({"envelopes": [{"name": 5, "funded": "lots"}]})
        assert [env.name for env in engine.get_all_envelopes()] == ["Rent"]

    def test_clear_all(self, budgets, engine):
        """Test clearing removes every collection of the active budget."""
        engine.create_envelope("Rent")
        engine.set_bank_balance(10)
        budgets.clear_all()
        assert engine.get_all_envelopes() == []
        assert engine.get_bank_balance() == 0.0
