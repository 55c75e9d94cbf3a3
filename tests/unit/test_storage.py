"""
Unit tests for infinity_kb.storage — repository contract on both backends.

Every test runs against the in-memory and the SQLite repository.
"""

import threading

import pytest

from infinity_kb.auth.models import (
    AccessRequest,
    Organization,
    RequestStatus,
    RequestType,
    Role,
    User,
)
from infinity_kb.storage import Database


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture(params=["memory", "sqlite"])
def database(request, tmp_path):
    if request.param == "memory":
        return Database.in_memory()
    return Database.sqlite(str(tmp_path / "storage_test.db"))


def make_user(email="a@example.com", role=Role.MEMBER, org_id="org-1", **kwargs):
    return User(
        email=email, name=email.split("@")[0], password_hash="hash",
        role=role, organization_id=org_id, **kwargs,
    )


# ============================================================================
# CRUD
# ============================================================================


class TestCrud:
    def test_add_and_get(self, database):
        user = make_user()
        database.users.add(user)
        loaded = database.users.get(user.id)
        assert loaded.model_dump() == user.model_dump()

    def test_get_missing_returns_none(self, database):
        assert database.users.get("missing") is None

    def test_add_duplicate_id_raises(self, database):
        user = make_user()
        database.users.add(user)
        with pytest.raises(ValueError):
            database.users.add(user)

    def test_update_replaces_record(self, database):
        user = make_user()
        database.users.add(user)
        user.name = "renamed"
        user.role = Role.ADMIN
        database.users.update(user)
        loaded = database.users.get(user.id)
        assert loaded.name == "renamed"
        assert loaded.role == Role.ADMIN

    def test_update_missing_raises_key_error(self, database):
        with pytest.raises(KeyError):
            database.users.update(make_user())

    def test_delete(self, database):
        user = make_user()
        database.users.add(user)
        assert database.users.delete(user.id) is True
        assert database.users.delete(user.id) is False
        assert database.users.get(user.id) is None

    def test_returned_records_are_copies(self, database):
        user = make_user()
        database.users.add(user)
        loaded = database.users.get(user.id)
        loaded.name = "changed locally"
        assert database.users.get(user.id).name == user.name

    def test_clear(self, database):
        database.users.add(make_user("a@example.com"))
        database.users.add(make_user("b@example.com"))
        database.users.clear()
        assert database.users.count() == 0


# ============================================================================
# Filters
# ============================================================================


class TestFilters:
    @pytest.fixture
    def populated(self, database):
        database.users.add(make_user("admin@example.com", Role.ADMIN))
        database.users.add(make_user("m1@example.com", Role.MEMBER))
        database.users.add(make_user("m2@example.com", Role.MEMBER, is_active=False))
        database.users.add(make_user("other@example.com", Role.MEMBER, org_id="org-2"))
        return database

    def test_find_preserves_insertion_order(self, populated):
        emails = [u.email for u in populated.users.find()]
        assert emails == [
            "admin@example.com", "m1@example.com", "m2@example.com", "other@example.com",
        ]

    def test_find_by_enum(self, populated):
        admins = populated.users.find(role=Role.ADMIN)
        assert [u.email for u in admins] == ["admin@example.com"]

    def test_find_by_enum_value_string(self, populated):
        assert populated.users.count(role="member") == 3

    def test_find_by_multiple_fields(self, populated):
        active = populated.users.find(organization_id="org-1", is_active=True)
        assert {u.email for u in active} == {"admin@example.com", "m1@example.com"}

    def test_find_by_false(self, populated):
        inactive = populated.users.find(is_active=False)
        assert [u.email for u in inactive] == ["m2@example.com"]

    def test_find_one(self, populated):
        assert populated.users.find_one(email="m1@example.com").role == Role.MEMBER
        assert populated.users.find_one(email="nobody@example.com") is None

    def test_count(self, populated):
        assert populated.users.count() == 4
        assert populated.users.count(organization_id="org-2") == 1

    def test_delete_where(self, populated):
        assert populated.users.delete_where(organization_id="org-1") == 3
        assert populated.users.count() == 1
        assert populated.users.delete_where(organization_id="org-1") == 0

    def test_none_filter_matches_missing_value(self, database):
        database.access_requests.add(AccessRequest(
            user_id="u-1", request_type=RequestType.FEATURE_ACCESS,
        ))
        database.access_requests.add(AccessRequest(
            user_id="u-1", project_id="p-1", request_type=RequestType.PROJECT_ACCESS,
        ))
        unscoped = database.access_requests.find(project_id=None)
        assert len(unscoped) == 1
        assert unscoped[0].request_type == RequestType.FEATURE_ACCESS
        assert database.access_requests.count(status=RequestStatus.PENDING) == 2

    def test_unknown_filter_field_raises(self, database):
        with pytest.raises(ValueError, match="Unknown filter field"):
            database.users.find(username="x")


# ============================================================================
# Concurrent access
# ============================================================================


class TestConcurrentAccess:
    def test_memory_store_tolerates_parallel_writers(self):
        database = Database.in_memory()
        errors = []

        def write(prefix):
            try:
                for i in range(100):
                    user = make_user(email=f"{prefix}{i}@example.com")
                    database.users.add(user)
                    database.users.find(role=Role.MEMBER)
                    if i % 2:
                        database.users.delete(user.id)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=write, args=(p,)) for p in "abcd"]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert database.users.count() == 4 * 50


# ============================================================================
# SQLite specifics
# ============================================================================


class TestSQLitePersistence:
    def test_records_survive_reopen(self, tmp_path):
        path = str(tmp_path / "persist.db")
        first = Database.sqlite(path)
        org = Organization(name="Acme")
        first.organizations.add(org)

        second = Database.sqlite(path)
        loaded = second.organizations.get(org.id)
        assert loaded.name == "Acme"
        assert loaded.created_at == org.created_at

    def test_backend_names(self, tmp_path):
        assert Database.in_memory().backend == "memory"
        assert Database.sqlite(str(tmp_path / "x.db")).backend == "sqlite"

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "auth.db"
        Database.sqlite(str(path))
        assert path.exists()
