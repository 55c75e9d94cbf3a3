"""
Application — composition root for the auth core.

Builds one Database and passes it by reference to every store and
service. The session sweeper is owned by the application lifecycle:
started by ``start()``, stopped by ``shutdown()``.

Usage:
    config = load_config()
    with Application(config) as app:
        result = app.auth.login(LoginCredentials(email=..., password=...))
"""
import logging
from datetime import datetime
from typing import Callable, Optional

from .auth.audit import AuditLog
from .auth.credentials import CredentialStore
from .auth.models import utcnow
from .auth.passwords import PasswordHasher
from .auth.rbac import AccessControl
from .auth.seed import SeedResult, seed_demo_data
from .auth.service import AuthService
from .auth.sessions import (
    FileTokenStore,
    MemoryTokenStore,
    SessionManager,
    SessionSweeper,
    TokenStore,
)
from .config import AuthConfig
from .organizations.service import OrganizationService
from .storage.database import Database

logger = logging.getLogger(__name__)


class Application:
    """Wires storage, stores, services and the session sweeper together."""

    def __init__(
        self,
        config: Optional[AuthConfig] = None,
        database: Optional[Database] = None,
        token_store: Optional[TokenStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config or AuthConfig()

        if database is not None:
            self.db = database
        elif self.config.storage_backend == "memory":
            self.db = Database.in_memory()
        else:
            self.db = Database.sqlite(self.config.database_path)

        if token_store is None:
            if self.config.storage_backend == "memory":
                token_store = MemoryTokenStore()
            else:
                token_store = FileTokenStore(self.config.token_path)

        self.hasher = PasswordHasher(rounds=self.config.password_hash_rounds)
        self.credentials = CredentialStore(self.db, hasher=self.hasher, clock=clock)
        self.sessions = SessionManager(
            self.db,
            token_store=token_store,
            session_ttl=self.config.session_ttl,
            remember_me_ttl=self.config.remember_me_ttl,
            clock=clock,
        )
        self.access = AccessControl(self.db)
        self.audit = AuditLog(self.db, clock=clock)
        self.auth = AuthService(
            self.credentials,
            self.sessions,
            self.access,
            self.audit,
            min_password_length=self.config.min_password_length,
            clock=clock,
        )
        self.organizations = OrganizationService(
            self.auth, self.access, self.db, self.audit, clock=clock,
        )
        self.sweeper = SessionSweeper(
            self.sessions, interval_seconds=self.config.cleanup_interval_seconds,
        )

    def seed(self) -> SeedResult:
        return seed_demo_data(self.credentials)

    def start(self, run_sweeper: bool = True) -> None:
        """Seed demo data (if configured), drop stale sessions and start the sweeper."""
        if self.config.seed_demo_data:
            self.seed()
        self.sessions.cleanup_expired_sessions()
        if run_sweeper:
            self.sweeper.start()
        logger.info(f"Application started: backend={self.db.backend}")

    def shutdown(self) -> None:
        self.sweeper.stop()
        logger.info("Application stopped")

    def __enter__(self) -> "Application":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
