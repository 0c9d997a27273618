"""In-memory key-value store, used by tests and throwaway sessions."""

import copy
from typing import Any, Iterable, Optional

from envelope_ledger.services.storage.interface import KeyValueStoreInterface


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """
    Dict-backed store.

    Values are deep-copied on the way in and out so callers can never
    mutate stored state without calling set().
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def set_many(self, items: dict[str, Any]) -> None:
        self._data.update(copy.deepcopy(items))

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
