"""
Storage Services Package

Provides the key-value store contract, its implementations, and the
budget-scoped gateway the ledger reads and writes through.
Currently implements a JSON file as the backend, but designed to be swappable.
"""

from envelope_ledger.services.storage.interface import (
    AuditStorageInterface,
    CorruptDataError,
    KeyValueStoreInterface,
    StorageError,
    StorageUnavailableError,
)
from envelope_ledger.services.storage.memory import InMemoryKeyValueStore
from envelope_ledger.services.storage.json_file import JsonFileKeyValueStore
from envelope_ledger.services.storage.audit_log import KeyValueAuditStorage
from envelope_ledger.services.storage.gateway import (
    BudgetContext,
    Collection,
    namespaced_key,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "KeyValueStoreInterface",
    # Exceptions
    "CorruptDataError",
    "StorageError",
    "StorageUnavailableError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueAuditStorage",
    # Gateway
    "BudgetContext",
    "Collection",
    "namespaced_key",
]
