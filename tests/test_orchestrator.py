"""Tests for component wiring."""

import pytest

from envelope_ledger.config import get_settings, validate_all_settings
from envelope_ledger.errors import BudgetNotFoundError
from envelope_ledger.models import AuditEventType
from envelope_ledger.orchestrator import create_ledger_components, create_store
from envelope_ledger.services.storage import InMemoryKeyValueStore, JsonFileKeyValueStore


class TestCreateStore:
    """Tests for picking the store backend from settings."""

    def test_memory_backend(self, monkeypatch):
        """Test the memory backend."""
        monkeypatch.setenv("ENVELOPE_LEDGER_STORAGE_BACKEND", "memory")
        assert isinstance(create_store(get_settings()), InMemoryKeyValueStore)

    def test_json_backend(self, monkeypatch, tmp_path):
        """Test the json backend writes to the configured file."""
        path = tmp_path / "ledger.json"
        monkeypatch.setenv("ENVELOPE_LEDGER_STORAGE_BACKEND", "json")
        monkeypatch.setenv("ENVELOPE_LEDGER_STORAGE_DATA_FILE", str(path))
        store = create_store(get_settings())
        assert isinstance(store, JsonFileKeyValueStore)
        assert store.path == path


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults_are_valid(self):
        """Test every settings group loads with defaults."""
        results = validate_all_settings()
        assert all(results[name] for name in ("storage", "ledger", "reports", "audit"))

    def test_invalid_key_prefix(self, monkeypatch):
        """Test a key prefix without a trailing '_' is reported."""
        monkeypatch.setenv("ENVELOPE_LEDGER_STORAGE_KEY_PREFIX", "budgetApp")
        results = validate_all_settings()
        assert results["storage"] is False
        assert "storage_error" in results

    def test_ledger_defaults_from_env(self, monkeypatch, store, clock):
        """Test the default budget name comes from the environment."""
        monkeypatch.setenv("ENVELOPE_LEDGER_DEFAULT_BUDGET_NAME", "Household")
        components = create_ledger_components(store=store, clock=clock)
        assert components.budgets.get_active_budget().name == "Household"


class TestLedgerComponents:
    """Tests for create_ledger_components."""

    def test_initializes_store(self, components, store):
        """Test startup creates the registry and the active pointer."""
        assert [b.id for b in components.budgets.get_budgets()] == ["default"]
        assert store.get("budgetApp_activeBudget") == "default"

    def test_migrates_legacy_data_on_startup(self, clock):
        """Test legacy keys are migrated when components are built."""
        store = InMemoryKeyValueStore({"budgetApp_envelopes": [{"id": "e1", "name": "Rent"}]})
        components = create_ledger_components(store=store, clock=clock)
        assert components.engine().get_envelope("e1").name == "Rent"
        assert store.get("budgetApp_envelopes") is None

    def test_engine_follows_active_budget(self, components):
        """Test engine() without an id works on the active budget."""
        other = components.budgets.create_budget("Other")
        components.budgets.switch_active_budget(other.id)
        components.engine().create_envelope("Trip")

        assert components.engine(other.id).get_all_envelopes()[0].name == "Trip"
        assert components.engine("default").get_all_envelopes() == []

    def test_engine_for_unknown_budget(self, components):
        """Test asking for a missing budget raises."""
        with pytest.raises(BudgetNotFoundError):
            components.engine("missing")

    def test_audit_events_are_persisted(self, components, store):
        """Test audit events land under the global audit key."""
        components.engine().create_envelope("Rent")
        stored = store.get("budgetApp_auditLog")
        assert stored[-1]["event_type"] == AuditEventType.ENVELOPE_CREATED.value

    def test_reports(self, components):
        """Test reports() reads the same budget as engine()."""
        engine = components.engine()
        engine.add_income("Paycheck", 250, "2025-01-01")
        assert components.reports().dashboard_summary().available_to_fund == 250
