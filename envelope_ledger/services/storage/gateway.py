"""
Persistence Gateway

Typed access to the collections of ONE budget. Every collection lives
under the key "{budget_id}_{collection}" in the shared key-value store.

A BudgetContext is passed explicitly to everything that reads or writes
budget data; there is no ambient "active budget" at this level. Two
contexts over the same store are fully isolated from each other.
"""

from enum import Enum
from typing import Any, Optional, Sequence, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from envelope_ledger.models.ledger import (
    Account,
    BudgetData,
    CurrentMonth,
    Envelope,
    FundingTemplate,
    Income,
    LedgerModel,
    MonthArchive,
    SpendingTemplate,
    Transaction,
)
from envelope_ledger.services.storage.interface import (
    CorruptDataError,
    KeyValueStoreInterface,
)


ModelT = TypeVar("ModelT", bound=BaseModel)


class Collection(str, Enum):
    """Budget-scoped collections and their storage key suffixes."""
    ENVELOPES = "envelopes"
    INCOME = "income"
    TRANSACTIONS = "transactions"
    BANK_BALANCE = "bankBalance"
    FUNDING_TEMPLATES = "fundingTemplates"
    SPENDING_TEMPLATES = "spendingTemplates"
    ACCOUNTS = "accounts"
    CURRENT_MONTH = "currentMonth"
    MONTH_ARCHIVES = "monthArchives"


def namespaced_key(budget_id: str, collection: Collection) -> str:
    """Storage key of a collection inside a budget namespace."""
    return f"{budget_id}_{collection.value}"


class BudgetContext:
    """
    Read/write view of one budget's collections.

    Readers always fetch the latest stored collection; writers always
    store the complete collection.
    """

    def __init__(self, store: KeyValueStoreInterface, budget_id: str):
        self._store = store
        self._budget_id = budget_id

    @property
    def budget_id(self) -> str:
        return self._budget_id

    @property
    def store(self) -> KeyValueStoreInterface:
        return self._store

    def key(self, collection: Collection) -> str:
        return namespaced_key(self._budget_id, collection)

    # ------------------------------------------------------------------
    # Generic access
    # ------------------------------------------------------------------

    def _parse_list(self, collection: Collection, model: type[ModelT]) -> list[ModelT]:
        key = self.key(collection)
        raw = self._store.get(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise CorruptDataError(key, "expected a list of records")
        try:
            return [model.model_validate(item) for item in raw]
        except PydanticValidationError as e:
            raise CorruptDataError(key, str(e)) from e

    @staticmethod
    def _serialize(value: Any) -> Any:
        if isinstance(value, LedgerModel):
            return value.to_record()
        if isinstance(value, (list, tuple)):
            return [item.to_record() for item in value]
        return value

    def commit(self, changes: dict[Collection, Any]) -> None:
        """
        Write several collections in one store call.

        Values are models, sequences of models, or plain JSON values.
        """
        self._store.set_many(
            {self.key(collection): self._serialize(value) for collection, value in changes.items()}
        )

    # ------------------------------------------------------------------
    # Typed readers
    # ------------------------------------------------------------------

    def envelopes(self) -> list[Envelope]:
        return self._parse_list(Collection.ENVELOPES, Envelope)

    def income(self) -> list[Income]:
        return self._parse_list(Collection.INCOME, Income)

    def transactions(self) -> list[Transaction]:
        return self._parse_list(Collection.TRANSACTIONS, Transaction)

    def accounts(self) -> list[Account]:
        return self._parse_list(Collection.ACCOUNTS, Account)

    def funding_templates(self) -> list[FundingTemplate]:
        return self._parse_list(Collection.FUNDING_TEMPLATES, FundingTemplate)

    def spending_templates(self) -> list[SpendingTemplate]:
        return self._parse_list(Collection.SPENDING_TEMPLATES, SpendingTemplate)

    def month_archives(self) -> list[MonthArchive]:
        return self._parse_list(Collection.MONTH_ARCHIVES, MonthArchive)

    def current_month(self) -> Optional[CurrentMonth]:
        key = self.key(Collection.CURRENT_MONTH)
        raw = self._store.get(key)
        if raw is None:
            return None
        try:
            return CurrentMonth.model_validate(raw)
        except PydanticValidationError as e:
            raise CorruptDataError(key, str(e)) from e

    def bank_balance(self) -> float:
        key = self.key(Collection.BANK_BALANCE)
        raw = self._store.get(key)
        if raw is None:
            return 0.0
        try:
            return float(raw)
        except (TypeError, ValueError) as e:
            raise CorruptDataError(key, f"not a number: {raw!r}") from e

    # ------------------------------------------------------------------
    # Typed writers
    # ------------------------------------------------------------------

    def save_envelopes(self, envelopes: Sequence[Envelope]) -> None:
        self.commit({Collection.ENVELOPES: envelopes})

    def save_income(self, income: Sequence[Income]) -> None:
        self.commit({Collection.INCOME: income})

    def save_transactions(self, transactions: Sequence[Transaction]) -> None:
        self.commit({Collection.TRANSACTIONS: transactions})

    def save_accounts(self, accounts: Sequence[Account]) -> None:
        self.commit({Collection.ACCOUNTS: accounts})

    def save_funding_templates(self, templates: Sequence[FundingTemplate]) -> None:
        self.commit({Collection.FUNDING_TEMPLATES: templates})

    def save_spending_templates(self, templates: Sequence[SpendingTemplate]) -> None:
        self.commit({Collection.SPENDING_TEMPLATES: templates})

    def save_month_archives(self, archives: Sequence[MonthArchive]) -> None:
        self.commit({Collection.MONTH_ARCHIVES: archives})

    def save_current_month(self, current: CurrentMonth) -> None:
        self.commit({Collection.CURRENT_MONTH: current})

    def save_bank_balance(self, balance: float) -> None:
        self.commit({Collection.BANK_BALANCE: float(balance)})

    # ------------------------------------------------------------------
    # Whole-namespace operations
    # ------------------------------------------------------------------

    def snapshot(self) -> BudgetData:
        """Everything stored for this budget, in backup shape."""
        return BudgetData(
            envelopes=self.envelopes(),
            income=self.income(),
            transactions=self.transactions(),
            bank_balance=self.bank_balance(),
            templates=self.funding_templates(),
            spending_templates=self.spending_templates(),
            accounts=self.accounts(),
            current_month=self.current_month(),
            month_archives=self.month_archives(),
        )

    def restore_items(self, data: BudgetData) -> dict[str, Any]:
        """
        Store keys and values that restoring a backup would write.

        Lets a caller restore several budgets in one set_many.
        """
        candidates = {
            Collection.ENVELOPES: data.envelopes,
            Collection.INCOME: data.income,
            Collection.TRANSACTIONS: data.transactions,
            Collection.BANK_BALANCE: data.bank_balance,
            Collection.FUNDING_TEMPLATES: data.templates,
            Collection.SPENDING_TEMPLATES: data.spending_templates,
            Collection.ACCOUNTS: data.accounts,
            Collection.CURRENT_MONTH: data.current_month,
            Collection.MONTH_ARCHIVES: data.month_archives,
        }
        return {
            self.key(collection): self._serialize(value)
            for collection, value in candidates.items()
            if value is not None
        }

    def restore(self, data: BudgetData) -> None:
        """Overwrite the collections present in a backup; absent ones are kept."""
        items = self.restore_items(data)
        if items:
            self._store.set_many(items)

    def clear(self) -> None:
        """Remove every collection of this budget."""
        self._store.delete_many(self.key(collection) for collection in Collection)
