"""
JSON File Storage Implementation

DESIGN DECISION: The whole store is one JSON document (a flat object of
key -> value), the same shape a browser's localStorage holds.

TRADEOFFS:
- Every write rewrites the whole file (fine for a single user's budget)
- Writes go to a temporary file first and replace the original, so a
  crash mid-write leaves the previous document intact
- Transient OS errors on write are retried
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from envelope_ledger.services.storage.interface import (
    CorruptDataError,
    KeyValueStoreInterface,
    StorageUnavailableError,
)


logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """
    Key-value store persisted as a single JSON file.

    The file is re-read on every operation so the file on disk is always
    the single source of truth.
    """

    def __init__(
        self,
        path: Path,
        write_retry_attempts: int = 3,
        indent: int = 2,
    ):
        self._path = Path(path)
        self._write_retry_attempts = write_retry_attempts
        self._indent = indent or None

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict[str, Any]:
        """Load the whole document; a missing file is an empty store."""
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                document = json.load(handle)
        except json.JSONDecodeError as e:
            raise CorruptDataError(str(self._path), f"invalid JSON ({e})") from e
        except OSError as e:
            raise StorageUnavailableError(f"Failed to read {self._path}: {e}") from e

        if not isinstance(document, dict):
            raise CorruptDataError(str(self._path), "top-level value is not an object")
        return document

    def _log_retry(self, retry_state: RetryCallState) -> None:
        logger.warning(
            "storage_write_retry",
            path=str(self._path),
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    def _replace_file(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=self._indent, sort_keys=True)
            os.replace(tmp_name, self._path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _write_document(self, document: dict[str, Any]) -> None:
        """Write the whole document, retrying transient OS errors."""
        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._write_retry_attempts),
                wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    self._replace_file(document)
        except OSError as e:
            raise StorageUnavailableError(f"Failed to write {self._path}: {e}") from e

    def get(self, key: str) -> Optional[Any]:
        return self._read_document().get(key)

    def set(self, key: str, value: Any) -> None:
        self.set_many({key: value})

    def set_many(self, items: dict[str, Any]) -> None:
        document = self._read_document()
        document.update(items)
        self._write_document(document)

    def delete(self, key: str) -> bool:
        document = self._read_document()
        if key not in document:
            return False
        del document[key]
        self._write_document(document)
        return True

    def delete_many(self, keys: Iterable[str]) -> None:
        document = self._read_document()
        removed = False
        for key in keys:
            if key in document:
                del document[key]
                removed = True
        if removed:
            self._write_document(document)

    def keys(self) -> list[str]:
        return list(self._read_document())
