"""
Multi-Budget Namespace Manager

Each budget owns an isolated set of collection keys
("{budget_id}_{collection}"). The manager keeps the budget registry and
the active-budget pointer under two global keys, hands out a
BudgetContext per budget, and moves whole namespaces in and out of
backups.

DESIGN DECISION: "Active budget" is a stored user preference, not
process state. Code that works on budget data receives a BudgetContext;
only this module reads the active pointer.
"""

from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from envelope_ledger.audit import AuditLogger
from envelope_ledger.config import Settings, get_settings
from envelope_ledger.errors import (
    ActiveBudgetError,
    BudgetNotFoundError,
    LastBudgetError,
    ValidationError,
)
from envelope_ledger.ledger.base import audited, find_by_id
from envelope_ledger.models.audit import AuditEventType
from envelope_ledger.models.ledger import (
    EXPORT_VERSION,
    Budget,
    BudgetData,
    ExportBundle,
)
from envelope_ledger.services.storage import (
    BudgetContext,
    Collection,
    CorruptDataError,
    KeyValueStoreInterface,
)


class BudgetManager:
    """
    Budget registry, active pointer, legacy migration and backups.

    Args:
        store: The shared key-value store
        settings: Root settings, from get_settings() if omitted
        audit_logger: Where budget-level events are recorded
        clock: Returns the current datetime
    """

    def __init__(
        self,
        store: KeyValueStoreInterface,
        settings: Optional[Settings] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        settings = settings or get_settings()
        self._store = store
        self._ledger_settings = settings.ledger
        self._prefix = settings.storage.key_prefix
        self._audit = audit_logger or AuditLogger()
        self._clock = clock or datetime.now

    @property
    def budgets_key(self) -> str:
        return f"{self._prefix}budgets"

    @property
    def active_budget_key(self) -> str:
        return f"{self._prefix}activeBudget"

    def legacy_key(self, collection: Collection) -> str:
        """Pre-namespacing key of a collection, e.g. budgetApp_envelopes."""
        return f"{self._prefix}{collection.value}"

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _default_budget(self) -> Budget:
        return Budget(
            id=self._ledger_settings.default_budget_id,
            name=self._ledger_settings.default_budget_name,
            created_at=self._clock(),
        )

    def _save_budgets(self, budgets: list[Budget]) -> None:
        self._store.set(self.budgets_key, [budget.to_record() for budget in budgets])

    def get_budgets(self) -> list[Budget]:
        """Every budget, creating the default one on first use."""
        raw = self._store.get(self.budgets_key)
        if not raw:
            budgets = [self._default_budget()]
            self._save_budgets(budgets)
            return budgets
        if not isinstance(raw, list):
            raise CorruptDataError(self.budgets_key, "expected a list of budgets")
        try:
            return [Budget.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise CorruptDataError(self.budgets_key, str(e)) from e

    def get_budget(self, budget_id: str) -> Optional[Budget]:
        return find_by_id(self.get_budgets(), budget_id)

    def get_active_budget_id(self) -> str:
        """The selected budget, defaulting to the default budget id."""
        active = self._store.get(self.active_budget_key)
        if not active:
            active = self._ledger_settings.default_budget_id
            self._store.set(self.active_budget_key, active)
        return active

    def get_active_budget(self) -> Optional[Budget]:
        return self.get_budget(self.get_active_budget_id())

    @audited
    def create_budget(self, name: str) -> Budget:
        budget = Budget(name=name, created_at=self._clock())
        budgets = self.get_budgets()
        budgets.append(budget)
        self._save_budgets(budgets)

        self._log(AuditEventType.BUDGET_CREATED, budget.id, f"Budget created: {name}")
        return budget

    @audited
    def rename_budget(self, budget_id: str, name: str) -> Budget:
        """Rename a budget; names need not be unique."""
        budgets = self.get_budgets()
        budget = find_by_id(budgets, budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id)

        old_name = budget.name
        budget.name = name
        self._save_budgets(budgets)

        self._log(
            AuditEventType.BUDGET_RENAMED, budget_id,
            f"Budget renamed: {old_name} -> {name}",
        )
        return budget

    @audited
    def delete_budget(self, budget_id: str) -> None:
        """
        Delete a budget and every collection in its namespace.

        Raises:
            LastBudgetError: It is the only budget
            ActiveBudgetError: It is the active budget
            BudgetNotFoundError: No such budget
        """
        budgets = self.get_budgets()
        if len(budgets) <= 1:
            raise LastBudgetError()
        if self.get_active_budget_id() == budget_id:
            raise ActiveBudgetError()
        budget = find_by_id(budgets, budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id)

        BudgetContext(self._store, budget_id).clear()
        self._save_budgets([b for b in budgets if b.id != budget_id])

        self._log(AuditEventType.BUDGET_DELETED, budget_id, f"Budget deleted: {budget.name}")

    @audited
    def switch_active_budget(self, budget_id: str) -> Budget:
        budget = self.get_budget(budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id)

        previous = self.get_active_budget_id()
        self._store.set(self.active_budget_key, budget_id)
        self._log(
            AuditEventType.BUDGET_SWITCHED, budget_id,
            f"Switched to budget: {budget.name}",
            details={"previous_budget_id": previous},
        )
        return budget

    def context(self, budget_id: Optional[str] = None) -> BudgetContext:
        """
        Gateway bound to one budget's namespace (the active one by default).

        Raises:
            BudgetNotFoundError: budget_id is not in the registry
        """
        target = budget_id or self.get_active_budget_id()
        if budget_id is not None and self.get_budget(budget_id) is None:
            raise BudgetNotFoundError(budget_id)
        return BudgetContext(self._store, target)

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def migrate_legacy_data(self) -> bool:
        """
        Move pre-namespacing keys into the first budget's namespace.

        Returns True if anything was migrated. Running it again is a no-op
        because the legacy keys are deleted afterwards.
        """
        legacy = {
            collection: self._store.get(self.legacy_key(collection))
            for collection in Collection
        }
        found = {collection: value for collection, value in legacy.items() if value is not None}
        if not found:
            return False

        target = self.get_budgets()[0]
        context = BudgetContext(self._store, target.id)
        self._store.set_many({context.key(collection): value for collection, value in found.items()})
        self._store.delete_many(self.legacy_key(collection) for collection in Collection)

        self._log(
            AuditEventType.LEGACY_DATA_MIGRATED, target.id,
            f"Migrated {len(found)} legacy collection(s) into {target.name}",
            details={"collections": [collection.value for collection in found]},
        )
        return True

    def initialize(self) -> str:
        """
        Prepare the store for use: migrate legacy data, make sure the
        registry exists and point the active budget at a real budget.

        Returns the active budget id.
        """
        self.migrate_legacy_data()
        budgets = self.get_budgets()
        active = self.get_active_budget_id()
        if find_by_id(budgets, active) is None:
            active = budgets[0].id
            self._store.set(self.active_budget_key, active)
        return active

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def export_data(self) -> dict[str, Any]:
        """Every budget's collections in the 2.0 backup format."""
        budgets = self.get_budgets()
        bundle = ExportBundle(
            export_date=self._clock(),
            budgets=budgets,
            active_budget=self.get_active_budget_id(),
            budget_data={
                budget.id: BudgetContext(self._store, budget.id).snapshot()
                for budget in budgets
            },
        )
        self._log(
            AuditEventType.DATA_EXPORTED, None,
            f"Exported {len(budgets)} budget(s)",
        )
        return bundle.to_record()

    @audited
    def import_data(self, data: dict[str, Any]) -> str:
        """
        Restore a backup.

        A 2.0 backup replaces the budget registry and restores every
        budget it contains. A legacy single-budget backup is restored into
        the active budget. Collections absent from the backup are kept.

        Returns "2.0" or "legacy".

        Raises:
            ValidationError: The data is neither format
        """
        if not isinstance(data, dict):
            raise ValidationError("Invalid backup file format: expected a JSON object")

        if data.get("exportVersion") == EXPORT_VERSION and data.get("budgets") and data.get("budgetData"):
            try:
                bundle = ExportBundle.model_validate(data)
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid backup file format: {e}") from e

            items: dict[str, Any] = {
                self.budgets_key: [budget.to_record() for budget in bundle.budgets],
            }
            active = bundle.active_budget
            if find_by_id(bundle.budgets, active) is None:
                active = bundle.budgets[0].id
            items[self.active_budget_key] = active
            for budget_id, budget_data in bundle.budget_data.items():
                items.update(BudgetContext(self._store, budget_id).restore_items(budget_data))
            self._store.set_many(items)

            self._log(
                AuditEventType.DATA_IMPORTED, None,
                f"Imported {len(bundle.budgets)} budget(s)",
                details={"format": EXPORT_VERSION},
            )
            return EXPORT_VERSION

        try:
            legacy = BudgetData.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid backup file format: {e}") from e
        if legacy.is_empty:
            raise ValidationError(
                "Invalid backup file format: expected a 2.0 backup or "
                "envelopes, income or transactions"
            )

        context = self.context()
        context.restore(legacy)
        self._log(
            AuditEventType.DATA_IMPORTED, context.budget_id,
            "Imported legacy backup into the active budget",
            details={"format": "legacy"},
        )
        return "legacy"

    @audited
    def clear_all(self) -> None:
        """Delete every collection of the active budget."""
        context = self.context()
        context.clear()
        self._log(AuditEventType.DATA_CLEARED, context.budget_id, "Cleared all budget data")

    def _log(
        self,
        event_type: AuditEventType,
        budget_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
    ) -> None:
        self._audit.log_entity_event(
            event_type=event_type,
            entity_type="budget",
            entity_id=budget_id,
            description=description,
            details=details,
            budget_id=budget_id,
        )
