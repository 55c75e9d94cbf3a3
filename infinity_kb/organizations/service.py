"""
Organization Service — members, projects, project members and the
access-request workflow, scoped to the signed-in user's organization.

Mutations return result envelopes (see ``returns_result``); reads answer an
empty value when nobody is signed in.
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from ..auth.audit import AuditLog
from ..auth.errors import (
    DuplicateEmailError,
    ForbiddenError,
    InvalidStateError,
    MemberLimitError,
    NotFoundError,
    OperationResult,
    UnauthenticatedError,
    ValidationError,
    returns_result,
)
from ..auth.models import (
    AccessRequest,
    Organization,
    Project,
    ProjectMember,
    ProjectRole,
    ProjectStatus,
    PROJECT_ROLE_GRANTS,
    RequestStatus,
    RequestType,
    Role,
    Severity,
    User,
    utcnow,
)
from ..auth.passwords import generate_temporary_password
from ..auth.rbac import ADMIN_ROLES, AccessControl, Permission, can_manage_role
from ..auth.service import AuthService
from ..storage.database import Database
from .models import (
    AccessRequestData,
    AccessRequestResult,
    MemberInvite,
    OrganizationStats,
    ProjectData,
    ProjectResult,
    ProjectUpdate,
    UserResult,
)

logger = logging.getLogger(__name__)


class OrganizationService:
    """Organization-scoped CRUD gated by the caller's role and project roles."""

    def __init__(
        self,
        auth: AuthService,
        access: AccessControl,
        db: Database,
        audit: AuditLog,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.auth = auth
        self.access = access
        self.db = db
        self.audit = audit
        self.clock = clock

    # ── Helpers ───────────────────────────────────────────────────────

    def _caller(self) -> tuple[User, Organization]:
        user = self.auth.get_current_user()
        organization = self.auth.get_current_organization()
        if user is None or organization is None:
            raise UnauthenticatedError()
        return user, organization

    def _require_admin(self, user: User, action: str) -> None:
        if not self.access.is_admin(user):
            raise ForbiddenError(f"Insufficient permissions to {action}")

    def _org_user(self, user_id: str, organization: Organization) -> User:
        user = self.db.users.get(user_id)
        if user is None or user.organization_id != organization.id:
            raise NotFoundError("User not found")
        return user

    def _org_project(self, project_id: str, organization: Organization) -> Project:
        project = self.db.projects.get(project_id)
        if project is None or project.organization_id != organization.id:
            raise NotFoundError("Project not found")
        return project

    def _org_request(self, request_id: str, organization: Organization) -> AccessRequest:
        request = self.db.access_requests.get(request_id)
        if request is None:
            raise NotFoundError("Access request not found")
        requester = self.db.users.get(request.user_id)
        if requester is None or requester.organization_id != organization.id:
            raise NotFoundError("Access request not found")
        return request

    def _record(
        self,
        action: str,
        resource: str,
        caller: User,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None,
        severity: Severity = Severity.LOW,
    ) -> None:
        self.audit.record(
            action, resource,
            user_id=caller.id,
            organization_id=caller.organization_id,
            resource_id=resource_id,
            details=details,
            severity=severity,
        )

    def _add_project_member(
        self, project_id: str, user_id: str, role: ProjectRole, added_by: str
    ) -> ProjectMember:
        member = ProjectMember(
            project_id=project_id,
            user_id=user_id,
            role=role,
            permissions=list(PROJECT_ROLE_GRANTS[role]),
            added_by=added_by,
            added_at=self.clock(),
        )
        return self.db.project_members.add(member)

    # ── Members ───────────────────────────────────────────────────────

    def get_members(self) -> list[User]:
        """Active users of the caller's organization."""
        organization = self.auth.get_current_organization()
        if organization is None:
            return []
        return self.db.users.find(organization_id=organization.id, is_active=True)

    @returns_result(UserResult)
    def invite_member(self, invite: MemberInvite) -> UserResult:
        """
        Add a user to the caller's organization with a temporary password.

        The temporary password is returned once on the result so it can be
        handed to the invitee; only its hash is stored.
        """
        caller, organization = self._caller()
        self._require_admin(caller, "invite members")
        if not can_manage_role(caller, invite.role):
            raise ForbiddenError("Cannot grant a role above your own")

        email = invite.email.strip().lower()
        if "@" not in email or not invite.name.strip():
            raise ValidationError("A name and a valid email address are required")
        if self.db.users.find(email=email):
            raise DuplicateEmailError()
        members = self.db.users.count(organization_id=organization.id, is_active=True)
        if members >= organization.settings.max_members:
            raise MemberLimitError()

        temporary_password = generate_temporary_password()
        now = self.clock()
        user = User(
            email=email,
            name=invite.name.strip(),
            password_hash=self.auth.credentials.hasher.hash(temporary_password),
            role=invite.role,
            organization_id=organization.id,
            created_at=now,
            updated_at=now,
        )
        self.db.users.add(user)
        self._record(
            "member_invited", "user", caller, resource_id=user.id,
            details={"email": email, "role": invite.role.value, "invited_by": caller.id},
        )
        logger.info(f"Member invited: user_id={user.id}, org_id={organization.id}")
        return UserResult(user=user, temporary_password=temporary_password)

    @returns_result(OperationResult)
    def update_member_role(self, user_id: str, role: Role) -> OperationResult:
        caller, organization = self._caller()
        self._require_admin(caller, "update member roles")
        if not isinstance(role, Role):
            raise ValidationError(f"Unknown role: {role!r}")

        target = self._org_user(user_id, organization)
        if not can_manage_role(caller, target.role):
            raise ForbiddenError("Cannot change the role of a member above your own")
        if not can_manage_role(caller, role):
            raise ForbiddenError("Cannot grant a role above your own")
        if target.id == caller.id and caller.role in ADMIN_ROLES and role not in ADMIN_ROLES:
            raise ValidationError("Cannot demote yourself from admin role")

        old_role = target.role
        target.role = role
        target.updated_at = self.clock()
        self.db.users.update(target)
        self._record(
            "member_role_updated", "user", caller, resource_id=target.id,
            details={"old_role": old_role.value, "new_role": role.value},
            severity=Severity.MEDIUM,
        )
        return OperationResult()

    @returns_result(OperationResult)
    def remove_member(self, user_id: str) -> OperationResult:
        """
        Delete a member and everything that belongs to them.

        Removes the user record, their project memberships, their sessions
        and their access requests.
        """
        caller, organization = self._caller()
        self._require_admin(caller, "remove members")

        target = self._org_user(user_id, organization)
        if target.id == caller.id:
            raise ValidationError("Cannot remove yourself")
        if target.id == organization.owner_id:
            raise ValidationError("Cannot remove organization owner")
        if not can_manage_role(caller, target.role):
            raise ForbiddenError("Cannot remove a member above your own role")

        memberships = self.db.project_members.delete_where(user_id=target.id)
        sessions = self.auth.sessions.destroy_user_sessions(target.id)
        requests = self.db.access_requests.delete_where(user_id=target.id)
        self.db.users.delete(target.id)

        self._record(
            "member_removed", "user", caller, resource_id=target.id,
            details={
                "email": target.email,
                "project_memberships": memberships,
                "sessions": sessions,
                "access_requests": requests,
            },
            severity=Severity.HIGH,
        )
        logger.info(f"Member removed: user_id={target.id}, org_id={organization.id}")
        return OperationResult()

    # ── Projects ──────────────────────────────────────────────────────

    def get_projects(self, include_archived: bool = False) -> list[Project]:
        organization = self.auth.get_current_organization()
        if organization is None:
            return []
        if include_archived:
            return self.db.projects.find(organization_id=organization.id)
        return self.db.projects.find(organization_id=organization.id, status=ProjectStatus.ACTIVE)

    def get_project(self, project_id: str) -> Optional[Project]:
        organization = self.auth.get_current_organization()
        if organization is None:
            return None
        project = self.db.projects.get(project_id)
        if project is None or project.organization_id != organization.id:
            return None
        return project

    @returns_result(ProjectResult)
    def create_project(self, data: ProjectData) -> ProjectResult:
        """Create a project; the creator becomes its project admin."""
        caller, organization = self._caller()
        self._require_admin(caller, "create projects")
        if not data.name.strip():
            raise ValidationError("Project name is required")

        now = self.clock()
        project = Project(
            name=data.name.strip(),
            description=data.description,
            organization_id=organization.id,
            created_by=caller.id,
            llm_config=data.llm_config,
            permissions=data.permissions,
            created_at=now,
            updated_at=now,
        )
        self.db.projects.add(project)
        self._add_project_member(project.id, caller.id, ProjectRole.ADMIN, caller.id)
        self._record(
            "project_created", "project", caller, resource_id=project.id,
            details={"name": project.name},
        )
        logger.info(f"Project created: project_id={project.id}, org_id={organization.id}")
        return ProjectResult(project=project)

    @returns_result(ProjectResult)
    def update_project(self, project_id: str, update: ProjectUpdate) -> ProjectResult:
        caller, organization = self._caller()
        project = self._org_project(project_id, organization)
        if not self.access.has_permission(caller, Permission.PROJECTS_WRITE, "project", project.id):
            raise ForbiddenError("Insufficient permissions to edit this project")

        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        if "name" in changes and not changes["name"].strip():
            raise ValidationError("Project name is required")
        if changes:
            project = project.model_copy(update={
                **{key: getattr(update, key) for key in changes},
                "updated_at": self.clock(),
            })
            self.db.projects.update(project)
        self._record(
            "project_updated", "project", caller, resource_id=project.id,
            details={"changes": sorted(changes)},
        )
        return ProjectResult(project=project)

    @returns_result(OperationResult)
    def delete_project(self, project_id: str) -> OperationResult:
        """Delete a project with its memberships and the access requests that reference it."""
        caller, organization = self._caller()
        self._require_admin(caller, "delete projects")
        project = self._org_project(project_id, organization)

        members = self.db.project_members.delete_where(project_id=project.id)
        requests = self.db.access_requests.delete_where(project_id=project.id)
        self.db.projects.delete(project.id)
        self._record(
            "project_deleted", "project", caller, resource_id=project.id,
            details={"name": project.name, "project_members": members, "access_requests": requests},
            severity=Severity.MEDIUM,
        )
        logger.info(f"Project deleted: project_id={project.id}, org_id={organization.id}")
        return OperationResult()

    # ── Project members ───────────────────────────────────────────────

    def get_project_members(self, project_id: str) -> list[tuple[ProjectMember, User]]:
        """Members of a project in the caller's organization, each with its user."""
        if self.get_project(project_id) is None:
            return []
        pairs = []
        for member in self.db.project_members.find(project_id=project_id):
            user = self.db.users.get(member.user_id)
            if user is not None:
                pairs.append((member, user))
        return pairs

    @returns_result(OperationResult)
    def add_project_member(
        self, project_id: str, user_id: str, role: ProjectRole = ProjectRole.MEMBER
    ) -> OperationResult:
        caller, organization = self._caller()
        project = self._org_project(project_id, organization)
        if not self.access.has_permission(caller, Permission.PROJECT_MEMBERS_MANAGE, "project", project.id):
            raise ForbiddenError("Insufficient permissions to manage project members")
        if not isinstance(role, ProjectRole):
            raise ValidationError(f"Unknown project role: {role!r}")

        user = self._org_user(user_id, organization)
        if self.db.project_members.find_one(project_id=project.id, user_id=user.id) is not None:
            raise InvalidStateError("User is already a member of this project")

        self._add_project_member(project.id, user.id, role, caller.id)
        self._record(
            "project_member_added", "project_member", caller, resource_id=project.id,
            details={"user_id": user.id, "role": role.value},
        )
        return OperationResult()

    @returns_result(OperationResult)
    def remove_project_member(self, project_id: str, user_id: str) -> OperationResult:
        caller, organization = self._caller()
        project = self._org_project(project_id, organization)
        if not self.access.has_permission(caller, Permission.PROJECT_MEMBERS_MANAGE, "project", project.id):
            raise ForbiddenError("Insufficient permissions to manage project members")

        removed = self.db.project_members.delete_where(project_id=project.id, user_id=user_id)
        if not removed:
            raise NotFoundError("User is not a member of this project")
        self._record(
            "project_member_removed", "project_member", caller, resource_id=project.id,
            details={"user_id": user_id},
        )
        return OperationResult()

    # ── Access requests ───────────────────────────────────────────────

    def get_access_requests(self, status: Optional[RequestStatus] = None) -> list[AccessRequest]:
        """
        Access requests of the caller's organization, newest first.

        Approvers see every request in the organization; other members see
        only their own.
        """
        user = self.auth.get_current_user()
        organization = self.auth.get_current_organization()
        if user is None or organization is None:
            return []

        if self.access.is_approver(user):
            requesters = {u.id for u in self.db.users.find(organization_id=organization.id)}
        else:
            requesters = {user.id}

        filters = {"status": status} if status is not None else {}
        requests = [
            r for r in self.db.access_requests.find(**filters)
            if r.user_id in requesters
        ]
        return sorted(requests, key=lambda r: r.requested_at, reverse=True)

    @returns_result(AccessRequestResult)
    def create_access_request(self, data: AccessRequestData) -> AccessRequestResult:
        caller, organization = self._caller()
        if not self.access.is_member(caller):
            raise ForbiddenError("Insufficient permissions to create access requests")
        if data.project_id is not None:
            self._org_project(data.project_id, organization)
        elif data.request_type == RequestType.PROJECT_ACCESS:
            raise ValidationError("Project access requests need a project")

        pending = self.db.access_requests.find_one(
            user_id=caller.id,
            project_id=data.project_id,
            request_type=data.request_type,
            status=RequestStatus.PENDING,
        )
        if pending is not None:
            raise InvalidStateError("You already have a pending request for this resource")

        request = AccessRequest(
            user_id=caller.id,
            project_id=data.project_id,
            request_type=data.request_type,
            requested_role=data.requested_role,
            requested_permissions=data.requested_permissions,
            message=data.message,
            requested_at=self.clock(),
        )
        self.db.access_requests.add(request)
        self._record(
            "access_request_created", "access_request", caller, resource_id=request.id,
            details={"project_id": data.project_id, "request_type": data.request_type.value},
        )
        return AccessRequestResult(request=request)

    def _review(
        self, request_id: str, status: RequestStatus, notes: Optional[str]
    ) -> AccessRequestResult:
        caller, organization = self._caller()
        if not self.access.is_approver(caller):
            raise ForbiddenError("Insufficient permissions to review requests")

        request = self._org_request(request_id, organization)
        if request.status != RequestStatus.PENDING:
            raise InvalidStateError(f"Request already {request.status.value}")

        request.status = status
        request.reviewed_at = self.clock()
        request.reviewed_by = caller.id
        request.review_notes = notes
        self.db.access_requests.update(request)

        if (
            status == RequestStatus.APPROVED
            and request.request_type == RequestType.PROJECT_ACCESS
            and request.project_id is not None
            and self.db.projects.get(request.project_id) is not None
            and self.db.project_members.find_one(
                project_id=request.project_id, user_id=request.user_id
            ) is None
        ):
            try:
                role = ProjectRole(request.requested_role)
            except ValueError:
                role = ProjectRole.MEMBER
            self._add_project_member(request.project_id, request.user_id, role, caller.id)

        self._record(
            f"access_request_{status.value}", "access_request", caller, resource_id=request.id,
            details={"requester_id": request.user_id, "notes": notes},
            severity=Severity.MEDIUM,
        )
        logger.info(f"Access request {status.value}: request_id={request.id}, reviewer={caller.id}")
        return AccessRequestResult(request=request)

    @returns_result(AccessRequestResult)
    def approve_access_request(self, request_id: str, notes: Optional[str] = None) -> AccessRequestResult:
        return self._review(request_id, RequestStatus.APPROVED, notes)

    @returns_result(AccessRequestResult)
    def reject_access_request(self, request_id: str, notes: Optional[str] = None) -> AccessRequestResult:
        return self._review(request_id, RequestStatus.REJECTED, notes)

    # ── Stats ─────────────────────────────────────────────────────────

    def get_organization_stats(self) -> OrganizationStats:
        organization = self.auth.get_current_organization()
        if organization is None:
            return OrganizationStats()

        member_ids = {u.id for u in self.db.users.find(organization_id=organization.id)}
        projects = self.db.projects.find(organization_id=organization.id)
        pending = [
            r for r in self.db.access_requests.find(status=RequestStatus.PENDING)
            if r.user_id in member_ids
        ]
        return OrganizationStats(
            total_members=self.db.users.count(organization_id=organization.id, is_active=True),
            total_projects=len(projects),
            pending_requests=len(pending),
            active_projects=sum(1 for p in projects if p.status == ProjectStatus.ACTIVE),
        )
