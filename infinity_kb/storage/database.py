"""
Database — the set of logical collections backing the auth core.

    users, organizations, sessions, projects, project_members,
    access_requests, audit_logs

Build one per application with ``Database.in_memory()`` or
``Database.sqlite(path)`` and pass it to the stores and services.
Writes are last-write-wins; there is no record versioning.
"""
import logging
from typing import Callable, Type

from ..auth.models import (
    AccessRequest,
    AuditLogEntry,
    Organization,
    Project,
    ProjectMember,
    Session,
    User,
)
from .base import Repository
from .memory import InMemoryRepository
from .sqlite import SQLiteRepository

logger = logging.getLogger(__name__)

COLLECTIONS: dict[str, Type] = {
    "users": User,
    "organizations": Organization,
    "sessions": Session,
    "projects": Project,
    "project_members": ProjectMember,
    "access_requests": AccessRequest,
    "audit_logs": AuditLogEntry,
}


class Database:
    """Container for the repositories of every collection."""

    users: Repository[User]
    organizations: Repository[Organization]
    sessions: Repository[Session]
    projects: Repository[Project]
    project_members: Repository[ProjectMember]
    access_requests: Repository[AccessRequest]
    audit_logs: Repository[AuditLogEntry]

    def __init__(self, factory: Callable[[str, Type], Repository], backend: str):
        self.backend = backend
        for name, model in COLLECTIONS.items():
            setattr(self, name, factory(name, model))

    @classmethod
    def in_memory(cls) -> "Database":
        return cls(InMemoryRepository, backend="memory")

    @classmethod
    def sqlite(cls, db_path: str) -> "Database":
        db = cls(lambda name, model: SQLiteRepository(name, model, db_path), backend="sqlite")
        logger.info(f"SQLite database initialized: {db_path}")
        return db

    def clear(self) -> None:
        for name in COLLECTIONS:
            getattr(self, name).clear()
