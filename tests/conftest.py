"""
Shared pytest fixtures for the Infinity KB auth core tests.

Provides fixtures for:
- A controllable clock for expiry tests
- In-memory and SQLite databases
- Wired stores and services (bcrypt cost 4 for speed)
- A seeded application with the demo accounts
- Logging capture
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from infinity_kb.app import Application
from infinity_kb.auth.audit import AuditLog
from infinity_kb.auth.credentials import CredentialStore
from infinity_kb.auth.passwords import PasswordHasher
from infinity_kb.auth.rbac import AccessControl
from infinity_kb.auth.service import LoginCredentials
from infinity_kb.auth.sessions import MemoryTokenStore, SessionManager
from infinity_kb.config import AuthConfig
from infinity_kb.storage import Database


# ============================================================================
# Logging Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def configure_test_logging(caplog):
    """Configure logging for all tests."""
    caplog.set_level(logging.DEBUG)
    return caplog


# ============================================================================
# Clock
# ============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


# ============================================================================
# Storage and stores
# ============================================================================


@pytest.fixture
def db():
    return Database.in_memory()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=4)


@pytest.fixture
def credentials(db, hasher, clock):
    return CredentialStore(db, hasher=hasher, clock=clock)


@pytest.fixture
def token_store():
    return MemoryTokenStore()


@pytest.fixture
def sessions(db, token_store, clock):
    return SessionManager(db, token_store=token_store, clock=clock)


@pytest.fixture
def access(db):
    return AccessControl(db)


@pytest.fixture
def audit(db, clock):
    return AuditLog(db, clock=clock)


# ============================================================================
# Application
# ============================================================================


@pytest.fixture
def config():
    return AuthConfig(
        storage_backend="memory",
        password_hash_rounds=4,
        seed_demo_data=True,
    )


@pytest.fixture
def app(config, clock):
    """Application on in-memory storage, started without the sweeper thread."""
    application = Application(config, clock=clock)
    application.start(run_sweeper=False)
    yield application
    application.shutdown()


@pytest.fixture
def login_as(app):
    """
    Sign the application's client in as a demo (or any) account.

    Usage:
        def test_something(app, login_as):
            result = login_as("admin@example.com", "admin123")
    """
    def _login(email: str, password: str, remember_me: bool = False):
        result = app.auth.login(LoginCredentials(
            email=email, password=password, remember_me=remember_me,
        ))
        assert result.success, result.error
        return result
    return _login
