"""
infinity_kb.auth — authentication and authorization package.

Provides the credential store, session manager, RBAC evaluator, audit log
and the AuthService that composes them.
"""
from .audit import AuditLog
from .credentials import CredentialStore
from .errors import AuthError, ErrorCode, OperationResult
from .models import (
    AccessRequest,
    AuditLogEntry,
    Organization,
    Plan,
    Project,
    ProjectMember,
    ProjectRole,
    ProjectStatus,
    RequestStatus,
    RequestType,
    Role,
    Session,
    User,
)
from .passwords import PasswordHasher
from .rbac import AccessControl, Permission, is_admin, is_approver, is_member
from .seed import seed_demo_data
from .service import AuthResult, AuthService, LoginCredentials, RegisterCredentials
from .sessions import FileTokenStore, MemoryTokenStore, SessionManager, SessionSweeper

__all__ = [
    "AccessControl",
    "AccessRequest",
    "AuditLog",
    "AuditLogEntry",
    "AuthError",
    "AuthResult",
    "AuthService",
    "CredentialStore",
    "ErrorCode",
    "FileTokenStore",
    "LoginCredentials",
    "MemoryTokenStore",
    "OperationResult",
    "Organization",
    "PasswordHasher",
    "Permission",
    "Plan",
    "Project",
    "ProjectMember",
    "ProjectRole",
    "ProjectStatus",
    "RegisterCredentials",
    "RequestStatus",
    "RequestType",
    "Role",
    "Session",
    "SessionManager",
    "SessionSweeper",
    "User",
    "is_admin",
    "is_approver",
    "is_member",
    "seed_demo_data",
]
