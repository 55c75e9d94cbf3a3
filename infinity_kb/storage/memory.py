"""In-memory repository backend (tests, ephemeral runs)."""
import threading
from enum import Enum
from typing import Any, Optional, Type

from .base import Repository, T


class InMemoryRepository(Repository[T]):
    """
    Dict-backed repository.

    Records are deep-copied on the way in and out so callers never hold a
    reference into the store. Every method holds ``_lock`` so the session
    sweeper thread can run alongside the caller's thread.
    """

    def __init__(self, name: str, model: Type[T]):
        super().__init__(name, model)
        self._records: dict[str, T] = {}
        self._lock = threading.Lock()

    def add(self, record: T) -> T:
        with self._lock:
            if record.id in self._records:
                raise ValueError(f"{self.name}: record {record.id} already exists")
            self._records[record.id] = record.model_copy(deep=True)
        return record

    def get(self, record_id: str) -> Optional[T]:
        with self._lock:
            record = self._records.get(record_id)
            return record.model_copy(deep=True) if record is not None else None

    def update(self, record: T) -> T:
        with self._lock:
            if record.id not in self._records:
                raise KeyError(f"{self.name}: record {record.id} not found")
            self._records[record.id] = record.model_copy(deep=True)
        return record

    def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._records.pop(record_id, None) is not None

    def _matches(self, record: T, filters: dict[str, Any]) -> bool:
        for key, expected in filters.items():
            actual = getattr(record, key)
            if isinstance(actual, Enum):
                actual = actual.value
            if actual != expected:
                return False
        return True

    def find(self, **filters: Any) -> list[T]:
        filters = self._check_filters(filters)
        with self._lock:
            return [
                record.model_copy(deep=True)
                for record in self._records.values()
                if self._matches(record, filters)
            ]

    def count(self, **filters: Any) -> int:
        filters = self._check_filters(filters)
        with self._lock:
            return sum(1 for record in self._records.values() if self._matches(record, filters))

    def delete_where(self, **filters: Any) -> int:
        filters = self._check_filters(filters)
        with self._lock:
            doomed = [rid for rid, record in self._records.items() if self._matches(record, filters)]
            for rid in doomed:
                del self._records[rid]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
