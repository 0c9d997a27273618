"""Services package."""

from envelope_ledger.services.storage import (
    AuditStorageInterface,
    BudgetContext,
    Collection,
    CorruptDataError,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueAuditStorage,
    KeyValueStoreInterface,
    StorageError,
    StorageUnavailableError,
)

__all__ = [
    "AuditStorageInterface",
    "BudgetContext",
    "Collection",
    "CorruptDataError",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    "KeyValueStoreInterface",
    "StorageError",
    "StorageUnavailableError",
]
