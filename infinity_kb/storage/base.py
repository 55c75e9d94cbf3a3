"""
Repository interface shared by the storage backends.

A repository holds one collection of pydantic records keyed by ``id``.
Query filters are keyword equality matches on model fields, e.g.
``users.find(organization_id=org.id, is_active=True)``.
"""
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class Repository(ABC, Generic[T]):
    """Abstract CRUD + equality-filter access to one collection."""

    def __init__(self, name: str, model: Type[T]):
        self.name = name
        self.model = model

    def _check_filters(self, filters: dict[str, Any]) -> dict[str, Any]:
        """Reject unknown field names and normalize enum values."""
        unknown = set(filters) - set(self.model.model_fields)
        if unknown:
            raise ValueError(
                f"Unknown filter field(s) for {self.name}: {', '.join(sorted(unknown))}"
            )
        return {
            key: value.value if isinstance(value, Enum) else value
            for key, value in filters.items()
        }

    @abstractmethod
    def add(self, record: T) -> T:
        """Insert a new record. Raises ValueError if the id already exists."""

    @abstractmethod
    def get(self, record_id: str) -> Optional[T]:
        """Fetch a record by id."""

    @abstractmethod
    def update(self, record: T) -> T:
        """Replace an existing record. Raises KeyError if it does not exist."""

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Delete by id. Returns True if a record was removed."""

    @abstractmethod
    def find(self, **filters: Any) -> list[T]:
        """All records matching every filter, in insertion order."""

    @abstractmethod
    def delete_where(self, **filters: Any) -> int:
        """Delete all matching records. Returns the number removed."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every record in the collection."""

    def find_one(self, **filters: Any) -> Optional[T]:
        matches = self.find(**filters)
        return matches[0] if matches else None

    def count(self, **filters: Any) -> int:
        return len(self.find(**filters))
