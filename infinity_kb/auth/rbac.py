"""
RBAC Permission System — role hierarchy and permission checks.

Two layers only:
- the user's organization-wide Role, mapped to a fixed permission set
- the user's ProjectRole on one project, which can add permissions for
  that project only

Every check is total: unknown permissions, missing users and foreign
projects all answer False.
"""
import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from ..storage.database import Database
from .models import ProjectRole, Role, User

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    USERS_READ = "users:read"
    USERS_WRITE = "users:write"
    USERS_DELETE = "users:delete"
    ORGANIZATIONS_READ = "organizations:read"
    ORGANIZATIONS_WRITE = "organizations:write"
    PROJECTS_READ = "projects:read"
    PROJECTS_WRITE = "projects:write"
    PROJECTS_DELETE = "projects:delete"
    PROJECT_MEMBERS_MANAGE = "project_members:manage"
    REQUESTS_READ = "requests:read"
    REQUESTS_CREATE = "requests:create"
    REQUESTS_APPROVE = "requests:approve"
    REQUESTS_REJECT = "requests:reject"
    ANALYTICS_READ = "analytics:read"
    SETTINGS_WRITE = "settings:write"
    PROFILE_WRITE = "profile:write"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.SUPER_ADMIN: frozenset(Permission),
    Role.ADMIN: frozenset({
        Permission.USERS_READ, Permission.USERS_WRITE, Permission.USERS_DELETE,
        Permission.ORGANIZATIONS_READ, Permission.ORGANIZATIONS_WRITE,
        Permission.PROJECTS_READ, Permission.PROJECTS_WRITE, Permission.PROJECTS_DELETE,
        Permission.PROJECT_MEMBERS_MANAGE,
        Permission.REQUESTS_READ, Permission.REQUESTS_CREATE,
        Permission.REQUESTS_APPROVE, Permission.REQUESTS_REJECT,
        Permission.ANALYTICS_READ, Permission.SETTINGS_WRITE, Permission.PROFILE_WRITE,
    }),
    Role.APPROVER: frozenset({
        Permission.USERS_READ,
        Permission.PROJECTS_READ, Permission.PROJECTS_WRITE,
        Permission.REQUESTS_READ, Permission.REQUESTS_CREATE,
        Permission.REQUESTS_APPROVE, Permission.REQUESTS_REJECT,
        Permission.ANALYTICS_READ, Permission.PROFILE_WRITE,
    }),
    Role.MEMBER: frozenset({
        Permission.PROJECTS_READ, Permission.REQUESTS_CREATE, Permission.PROFILE_WRITE,
    }),
    Role.VIEWER: frozenset({Permission.PROJECTS_READ}),
}

PROJECT_ROLE_PERMISSIONS: dict[ProjectRole, frozenset[Permission]] = {
    ProjectRole.ADMIN: frozenset({
        Permission.PROJECTS_READ, Permission.PROJECTS_WRITE, Permission.PROJECTS_DELETE,
        Permission.PROJECT_MEMBERS_MANAGE,
    }),
    ProjectRole.MEMBER: frozenset({Permission.PROJECTS_READ, Permission.PROJECTS_WRITE}),
    ProjectRole.VIEWER: frozenset({Permission.PROJECTS_READ}),
}

ADMIN_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN})
APPROVER_ROLES = ADMIN_ROLES | {Role.APPROVER}
MEMBER_ROLES = APPROVER_ROLES | {Role.MEMBER}

ROLE_RANK: dict[Role, int] = {
    Role.VIEWER: 0,
    Role.MEMBER: 1,
    Role.APPROVER: 2,
    Role.ADMIN: 3,
    Role.SUPER_ADMIN: 4,
}


def role_rank(role: Role) -> int:
    return ROLE_RANK.get(role, -1)


def can_manage_role(user: Optional[User], role: Role) -> bool:
    """True if ``user`` may grant ``role`` or act on someone holding it."""
    return is_admin(user) and role_rank(role) <= role_rank(user.role)


def is_admin(user: Optional[User]) -> bool:
    return user is not None and user.role in ADMIN_ROLES


def is_approver(user: Optional[User]) -> bool:
    return user is not None and user.role in APPROVER_ROLES


def is_member(user: Optional[User]) -> bool:
    return user is not None and user.role in MEMBER_ROLES


def parse_permission(permission: Union[Permission, str]) -> Optional[Permission]:
    """Permission for a string, or None if it is not a known permission."""
    if isinstance(permission, Permission):
        return permission
    try:
        return Permission(permission)
    except ValueError:
        return None


def role_permissions(role: Role) -> frozenset[Permission]:
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_role_permission(role: Role, permission: Union[Permission, str]) -> bool:
    """Check if an organization role grants a permission."""
    perm = parse_permission(permission)
    return perm is not None and perm in role_permissions(role)


class AccessControl:
    """Answers "can this user do X", consulting project membership when scoped."""

    def __init__(self, db: "Database"):
        self.db = db

    is_admin = staticmethod(is_admin)
    is_approver = staticmethod(is_approver)
    is_member = staticmethod(is_member)

    def project_role(self, user: Optional[User], project_id: str) -> Optional[ProjectRole]:
        """The user's role on a project inside their own organization, if any."""
        if user is None or not user.is_active:
            return None
        project = self.db.projects.get(project_id)
        if project is None or project.organization_id != user.organization_id:
            return None
        member = self.db.project_members.find_one(project_id=project_id, user_id=user.id)
        return member.role if member is not None else None

    def has_permission(
        self,
        user: Optional[User],
        permission: Union[Permission, str],
        resource: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> bool:
        """
        Role-based permission check.

        Args:
            user: User to check (None answers False)
            permission: Permission or its "resource:action" string
            resource: Resource kind the caller is acting on (informational)
            project_id: When given, the user's project role may grant the
                permission for that project only

        Returns:
            True if the org role or the project role grants the permission
        """
        perm = parse_permission(permission)
        if user is None or perm is None or not user.is_active:
            return False

        if perm in role_permissions(user.role):
            return True

        if project_id is not None:
            role = self.project_role(user, project_id)
            if role is not None and perm in PROJECT_ROLE_PERMISSIONS[role]:
                return True

        logger.debug(
            f"Permission denied: user_id={user.id}, permission={perm.value}, "
            f"resource={resource}, project_id={project_id}"
        )
        return False
