"""
Integration tests for the full auth lifecycle on the SQLite backend.

Wires the real Application (SQLite database + file token store) and drives
it the way a client would: seed, sign in, act on the organization, restart
the process, expire sessions and sweep them.
"""

from pathlib import Path

import pytest

from infinity_kb.app import Application
from infinity_kb.auth.errors import ErrorCode
from infinity_kb.auth.models import ProjectRole, RequestStatus, RequestType
from infinity_kb.auth.service import LoginCredentials, RegisterCredentials
from infinity_kb.config import AuthConfig
from infinity_kb.organizations import AccessRequestData, ProjectData


# ============================================================================
# Fixtures — an application that can be "restarted" on the same files
# ============================================================================


@pytest.fixture
def sqlite_config(tmp_path):
    return AuthConfig(
        storage_backend="sqlite",
        database_path=str(tmp_path / "data" / "infinity_kb.db"),
        token_path=str(tmp_path / "data" / "session_token"),
        password_hash_rounds=4,
    )


@pytest.fixture
def make_app(sqlite_config, clock):
    started = []

    def _make():
        application = Application(sqlite_config, clock=clock)
        application.start(run_sweeper=False)
        started.append(application)
        return application

    yield _make
    for application in started:
        application.shutdown()


def login(app, email, password, remember_me=False):
    result = app.auth.login(LoginCredentials(email=email, password=password, remember_me=remember_me))
    assert result.success, result.error
    return result


# ============================================================================
# Lifecycle
# ============================================================================


class TestSessionLifecycle:
    def test_login_survives_restart(self, make_app):
        first = make_app()
        result = login(first, "admin@example.com", "admin123")

        second = make_app()
        session = second.auth.get_current_session()
        assert session is not None
        assert session.id == result.session.id
        assert second.auth.get_current_user().email == "admin@example.com"

    def test_token_file_holds_plaintext_but_db_does_not(self, make_app, sqlite_config):
        app = make_app()
        result = login(app, "admin@example.com", "admin123")
        with open(sqlite_config.token_path) as fh:
            assert fh.read() == result.session.token
        db_path = Path(sqlite_config.database_path)
        db_files = list(db_path.parent.glob(db_path.name + "*"))
        assert db_files
        for path in db_files:
            assert result.session.token.encode() not in path.read_bytes()

    def test_expiry_is_fail_closed_then_swept(self, make_app, clock):
        app = make_app()
        result = login(app, "member@example.com", "member123")
        clock.advance(hours=24, seconds=1)

        assert app.db.sessions.get(result.session.id) is not None
        assert app.auth.get_current_session() is None
        assert app.sessions.cleanup_expired_sessions() == 1
        assert app.db.sessions.get(result.session.id) is None

    def test_remember_me_outlives_default(self, make_app, clock):
        app = make_app()
        login(app, "member@example.com", "member123", remember_me=True)
        clock.advance(days=29)
        assert app.auth.get_current_user() is not None
        clock.advance(days=1)
        assert app.auth.get_current_user() is None

    def test_restart_seeds_nothing_new(self, make_app):
        make_app()
        second = make_app()
        assert second.db.users.count(email="admin@example.com") == 1
        assert second.db.organizations.count() == 1

    def test_removed_demo_records_do_not_return_after_restart(self, make_app):
        app = make_app()
        login(app, "admin@example.com", "admin123")
        member = app.credentials.find_user_by_email("member@example.com")
        assert app.organizations.remove_member(member.id).success
        for project in app.organizations.get_projects(include_archived=True):
            assert app.organizations.delete_project(project.id).success

        restarted = make_app()
        result = restarted.auth.login(LoginCredentials(email="member@example.com", password="member123"))
        assert result.error_code == ErrorCode.INVALID_CREDENTIALS
        assert restarted.db.projects.count() == 0
        assert restarted.db.access_requests.count() == 0


class TestAccessRequestWorkflow:
    def test_request_approve_and_use(self, make_app):
        app = make_app()

        login(app, "admin@example.com", "admin123")
        project = app.organizations.create_project(ProjectData(name="Knowledge Graph")).project

        app.auth.logout()
        login(app, "member@example.com", "member123")
        created = app.organizations.create_access_request(AccessRequestData(
            project_id=project.id,
            request_type=RequestType.PROJECT_ACCESS,
            requested_role="member",
            message="Please add me",
        ))
        assert created.success, created.error

        app.auth.logout()
        login(app, "approver@example.com", "approver123")
        approved = app.organizations.approve_access_request(created.request.id, notes="ok")
        assert approved.success, approved.error
        again = app.organizations.reject_access_request(created.request.id)
        assert again.error_code == ErrorCode.INVALID_STATE

        app.auth.logout()
        member = login(app, "member@example.com", "member123").user
        assert app.access.project_role(member, project.id) == ProjectRole.MEMBER
        assert app.auth.has_permission("projects:write", "project", project.id)
        stored = app.db.access_requests.get(created.request.id)
        assert stored.status == RequestStatus.APPROVED
        assert stored.review_notes == "ok"


class TestRegistrationAndRemoval:
    def test_register_join_and_remove(self, make_app):
        app = make_app()
        founder = app.auth.register(RegisterCredentials(
            name="Ada", email="ada@acme.test", password="engine42",
            confirm_password="engine42", organization_name="Acme",
        ))
        assert founder.success, founder.error
        invite_code = founder.organization.invite_code

        app.auth.logout()
        joiner = app.auth.register(RegisterCredentials(
            name="Bob", email="bob@acme.test", password="builder1",
            confirm_password="builder1", invite_code=invite_code,
        ))
        assert joiner.success, joiner.error
        assert joiner.organization.id == founder.organization.id

        app.auth.logout()
        login(app, "ada@acme.test", "engine42")
        project = app.organizations.create_project(ProjectData(name="Acme KB")).project
        assert app.organizations.add_project_member(project.id, joiner.user.id).success

        assert app.organizations.remove_member(joiner.user.id).success
        assert app.organizations.get_project_members(project.id)[0][1].id == founder.user.id
        assert len(app.organizations.get_project_members(project.id)) == 1
        stats = app.organizations.get_organization_stats()
        assert stats.total_members == 1
        assert stats.total_projects == 1

        audit_actions = {e.action for e in app.audit.entries(organization_id=founder.organization.id)}
        assert {"user_registered", "login_success", "project_created", "member_removed"} <= audit_actions
