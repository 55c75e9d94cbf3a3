"""
infinity_kb.storage — repository interface and backends.
"""
from .base import Repository
from .database import COLLECTIONS, Database
from .memory import InMemoryRepository
from .sqlite import SQLiteRepository

__all__ = [
    "COLLECTIONS",
    "Database",
    "InMemoryRepository",
    "Repository",
    "SQLiteRepository",
]
