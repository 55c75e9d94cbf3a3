"""
Audit trail for authentication and organization changes.

Each security-relevant action (login, registration, membership and project
changes, access-request reviews) is appended to the ``audit_logs``
collection as an immutable AuditLogEntry.
"""
import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Optional

if TYPE_CHECKING:
    from ..storage.database import Database
from .models import AuditLogEntry, Severity, utcnow

logger = logging.getLogger(__name__)


class AuditLog:
    """Append-only audit writer/reader over the ``audit_logs`` collection."""

    def __init__(self, db: "Database", clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def record(
        self,
        action: str,
        resource: str,
        user_id: Optional[str] = None,
        organization_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        severity: Severity = Severity.LOW,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            user_id=user_id,
            organization_id=organization_id,
            action=action,
            resource=resource,
            resource_id=resource_id,
            details=details or {},
            severity=severity,
            timestamp=self.clock(),
        )
        self.db.audit_logs.add(entry)
        logger.debug(f"Audit: action={action}, resource={resource}, user_id={user_id}")
        return entry

    def entries(
        self,
        organization_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> list[AuditLogEntry]:
        """Audit entries, newest first, optionally filtered."""
        filters: dict[str, Any] = {}
        if organization_id is not None:
            filters["organization_id"] = organization_id
        if action is not None:
            filters["action"] = action
        return sorted(self.db.audit_logs.find(**filters), key=lambda e: e.timestamp, reverse=True)
