"""
Key-Value Audit Storage

Persists audit events as a list under one global key of the same
key-value store the budgets live in. The list is append-only and capped:
beyond max_events the oldest entries are dropped.
"""

from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError

from envelope_ledger.models.audit import AuditEvent
from envelope_ledger.services.storage.interface import (
    AuditStorageInterface,
    CorruptDataError,
    KeyValueStoreInterface,
)


class KeyValueAuditStorage(AuditStorageInterface):
    """Audit log stored as a JSON list in the key-value store."""

    def __init__(
        self,
        store: KeyValueStoreInterface,
        key: str = "budgetApp_auditLog",
        max_events: int = 1000,
    ):
        self._store = store
        self._key = key
        self._max_events = max_events

    @property
    def key(self) -> str:
        return self._key

    def _raw_events(self) -> list[dict[str, Any]]:
        raw = self._store.get(self._key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise CorruptDataError(self._key, "expected a list of audit events")
        return raw

    def _load_events(self) -> list[AuditEvent]:
        try:
            return [AuditEvent.model_validate(item) for item in self._raw_events()]
        except PydanticValidationError as e:
            raise CorruptDataError(self._key, str(e)) from e

    def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event, dropping the oldest beyond the cap."""
        events = self._raw_events()
        events.append(event.model_dump(mode="json"))
        if len(events) > self._max_events:
            events = events[-self._max_events:]
        self._store.set(self._key, events)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._load_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._load_events()
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        # Stored oldest first; timestamps can tie, so reverse stored order
        events = list(reversed(self._load_events()))
        return events[:limit]
