"""
Unit tests for infinity_kb.auth.seed — demo data and idempotent seeding.
"""

from infinity_kb.auth.models import Plan, RequestStatus, Role
from infinity_kb.auth.seed import DEMO_INVITE_CODE, DEMO_USERS, seed_demo_data


class TestSeedDemoData:
    def test_creates_demo_organization_and_accounts(self, credentials):
        result = seed_demo_data(credentials)
        assert result.created_organization
        org = credentials.get_organization(result.organization_id)
        assert org.name == "Demo Organization"
        assert org.plan == Plan.PRO
        assert org.invite_code == DEMO_INVITE_CODE
        assert org.settings.max_members == 100

        for demo in DEMO_USERS:
            user = credentials.find_user_by_email(demo["email"])
            assert user.role == demo["role"]
            assert user.email_verified
            assert credentials.verify_password(user, demo["password"])

        admin = credentials.find_user_by_email("admin@example.com")
        assert org.owner_id == admin.id

    def test_creates_projects_members_and_pending_requests(self, credentials, db):
        result = seed_demo_data(credentials)
        assert sorted(result.created_projects) == ["Customer Support Bot", "Marketing Analytics"]
        assert db.project_members.count() == 4
        assert db.access_requests.count(status=RequestStatus.PENDING) == 2

    def test_idempotent(self, credentials, db):
        seed_demo_data(credentials)
        second = seed_demo_data(credentials)

        assert not second.created_anything
        for demo in DEMO_USERS:
            assert db.users.count(email=demo["email"]) == 1
        assert db.organizations.count() == 1
        assert db.projects.count() == 2
        assert db.project_members.count() == 4
        assert db.access_requests.count() == 2

    def test_removed_demo_records_stay_removed(self, credentials, db):
        seed_demo_data(credentials)
        member = credentials.find_user_by_email("member@example.com")
        db.users.delete(member.id)
        db.projects.clear()
        db.access_requests.clear()

        result = seed_demo_data(credentials)
        assert not result.created_anything
        assert result.organization_id is None
        assert credentials.find_user_by_email("member@example.com") is None
        assert db.projects.count() == 0
        assert db.access_requests.count() == 0

    def test_skips_when_any_user_exists(self, credentials, db):
        org = credentials.create_organization(name="Acme")
        credentials.create_user(
            email="ada@acme.test", name="Ada", password="engine42",
            organization_id=org.id, role=Role.ADMIN,
        )

        result = seed_demo_data(credentials)
        assert not result.created_anything
        assert credentials.find_user_by_email("admin@example.com") is None
        assert db.organizations.count() == 1

    def test_seeds_through_application(self, app):
        assert app.db.users.count() == 3
        assert not app.seed().created_anything
        assert app.db.users.count() == 3
