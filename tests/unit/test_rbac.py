"""
Unit tests for infinity_kb.auth.rbac — role hierarchy and permission matrix.
"""

import pytest

from infinity_kb.auth.models import Project, ProjectMember, ProjectRole, Role, User
from infinity_kb.auth.rbac import (
    ROLE_PERMISSIONS,
    ROLE_RANK,
    Permission,
    can_manage_role,
    has_role_permission,
    is_admin,
    is_approver,
    is_member,
    parse_permission,
)


def make_user(role: Role, org_id: str = "org-1", **kwargs) -> User:
    return User(email=f"{role.value}@x.test", name=role.value, password_hash="h",
                role=role, organization_id=org_id, **kwargs)


# ============================================================================
# Role hierarchy
# ============================================================================


class TestHierarchy:
    @pytest.mark.parametrize("role", list(Role))
    def test_monotonic(self, role):
        user = make_user(role)
        if is_admin(user):
            assert is_approver(user)
        if is_approver(user):
            assert is_member(user)

    @pytest.mark.parametrize("role,admin,approver,member", [
        (Role.SUPER_ADMIN, True, True, True),
        (Role.ADMIN, True, True, True),
        (Role.APPROVER, False, True, True),
        (Role.MEMBER, False, False, True),
        (Role.VIEWER, False, False, False),
    ])
    def test_role_predicates(self, role, admin, approver, member):
        user = make_user(role)
        assert is_admin(user) is admin
        assert is_approver(user) is approver
        assert is_member(user) is member

    def test_none_user_is_nothing(self):
        assert not is_admin(None)
        assert not is_approver(None)
        assert not is_member(None)

    @pytest.mark.parametrize("higher,lower", [
        (Role.SUPER_ADMIN, Role.ADMIN),
        (Role.ADMIN, Role.APPROVER),
        (Role.APPROVER, Role.MEMBER),
        (Role.MEMBER, Role.VIEWER),
    ])
    def test_permission_sets_nest(self, higher, lower):
        assert ROLE_PERMISSIONS[lower] <= ROLE_PERMISSIONS[higher]

    def test_every_role_is_ranked(self):
        assert set(ROLE_RANK) == set(Role)

    @pytest.mark.parametrize("actor,target,allowed", [
        (Role.SUPER_ADMIN, Role.SUPER_ADMIN, True),
        (Role.ADMIN, Role.SUPER_ADMIN, False),
        (Role.ADMIN, Role.ADMIN, True),
        (Role.ADMIN, Role.VIEWER, True),
        (Role.APPROVER, Role.MEMBER, False),
    ])
    def test_can_manage_role(self, actor, target, allowed):
        assert can_manage_role(make_user(actor), target) is allowed

    def test_nobody_manages_roles_when_signed_out(self):
        assert not can_manage_role(None, Role.VIEWER)


# ============================================================================
# Permission matrix
# ============================================================================


class TestRolePermissions:
    def test_every_role_is_mapped(self):
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_super_admin_has_everything(self):
        assert ROLE_PERMISSIONS[Role.SUPER_ADMIN] == frozenset(Permission)

    def test_viewer_only_reads_projects(self):
        assert ROLE_PERMISSIONS[Role.VIEWER] == {Permission.PROJECTS_READ}

    @pytest.mark.parametrize("role,permission,expected", [
        (Role.ADMIN, "users:delete", True),
        (Role.APPROVER, "requests:approve", True),
        (Role.APPROVER, "users:write", False),
        (Role.MEMBER, "requests:create", True),
        (Role.MEMBER, "requests:approve", False),
        (Role.MEMBER, "projects:write", False),
        (Role.VIEWER, "projects:read", True),
    ])
    def test_matrix(self, role, permission, expected):
        assert has_role_permission(role, permission) is expected

    def test_unknown_permission_string(self):
        assert parse_permission("projects:explode") is None
        assert has_role_permission(Role.SUPER_ADMIN, "projects:explode") is False


# ============================================================================
# AccessControl with project roles
# ============================================================================


class TestAccessControl:
    @pytest.fixture
    def project(self, db):
        project = Project(name="P", organization_id="org-1", created_by="someone")
        db.projects.add(project)
        return project

    def _join(self, db, project, user, role):
        db.users.add(user)
        db.project_members.add(ProjectMember(
            project_id=project.id, user_id=user.id, role=role, added_by="someone",
        ))

    def test_org_role_grants(self, access):
        assert access.has_permission(make_user(Role.ADMIN), Permission.PROJECTS_DELETE)
        assert not access.has_permission(make_user(Role.MEMBER), Permission.PROJECTS_WRITE)

    def test_project_role_adds_scoped_permission(self, access, db, project):
        member = make_user(Role.MEMBER)
        self._join(db, project, member, ProjectRole.MEMBER)
        assert access.has_permission(member, "projects:write", "project", project.id)
        assert not access.has_permission(member, "projects:write")
        assert not access.has_permission(member, "projects:delete", "project", project.id)

    def test_project_admin_manages_members(self, access, db, project):
        viewer = make_user(Role.VIEWER)
        self._join(db, project, viewer, ProjectRole.ADMIN)
        assert access.has_permission(viewer, Permission.PROJECT_MEMBERS_MANAGE, project_id=project.id)
        assert access.project_role(viewer, project.id) == ProjectRole.ADMIN

    def test_foreign_project_grants_nothing(self, access, db, project):
        outsider = make_user(Role.MEMBER, org_id="org-2")
        self._join(db, project, outsider, ProjectRole.ADMIN)
        assert access.project_role(outsider, project.id) is None
        assert not access.has_permission(outsider, "projects:write", project_id=project.id)

    def test_inactive_user_has_nothing(self, access):
        assert not access.has_permission(make_user(Role.SUPER_ADMIN, is_active=False), "projects:read")

    def test_total_for_bad_input(self, access):
        assert access.has_permission(None, "projects:read") is False
        assert access.has_permission(make_user(Role.ADMIN), "nonsense") is False
        assert access.has_permission(make_user(Role.MEMBER), "projects:write",
                                     project_id="missing") is False
