"""
Abstract Storage Interface

DESIGN DECISION: The ledger persists through a plain key-value contract.
This allows us to:
1. Swap the JSON file for another backend later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

Values are JSON-compatible (dicts, lists, strings, numbers, booleans).
Collections are always written whole, never as diffs.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional
from uuid import UUID

from envelope_ledger.models.audit import AuditEvent


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for the key-value store behind every budget.

    Any storage implementation (JSON file, in-memory, ...) must
    implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """
        Read the value stored under a key.

        Returns:
            A copy of the stored value, or None if the key is absent

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """
        Store a value under a key, replacing any previous value.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def set_many(self, items: dict[str, Any]) -> None:
        """
        Store several keys in a single write.

        Either all keys are written or, on failure, none are.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def delete_many(self, keys: Iterable[str]) -> None:
        """Remove several keys in a single write. Missing keys are ignored."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List every stored key."""
        pass

    def contains(self, key: str) -> bool:
        """Check whether a key holds a value."""
        return self.get(key) is not None


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify stored events.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one compound operation, oldest first."""
        pass

    @abstractmethod
    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get all events for a specific entity, oldest first."""
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent audit events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """The storage backend could not be read or written."""
    pass


class CorruptDataError(StorageError):
    """Stored data could not be decoded into the expected shape."""

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Corrupt data under '{key}': {message}")
