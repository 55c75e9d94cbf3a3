"""
Session Manager — issue, validate, destroy and sweep login sessions.

Lifecycle: Created -> Valid -> Expired. Logout deletes the record, which is
equivalent to immediate expiry. Validity is computed on every read
(``now < expires_at``), so an expired session is rejected even if the
sweeper has not removed it yet.

Tokens look like ``sess_<urlsafe random>``. Only the SHA-256 digest is
stored; the plaintext lives in the caller's TokenStore.
"""
import hashlib
import logging
import secrets
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from ..storage.database import Database
from .models import Session, utcnow

logger = logging.getLogger(__name__)

TOKEN_PREFIX = "sess_"


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_token() -> str:
    return TOKEN_PREFIX + secrets.token_urlsafe(32)


# ── Token stores ─────────────────────────────────────────────────────────


class TokenStore(ABC):
    """Where the current session token is persisted between calls."""

    @abstractmethod
    def get(self) -> Optional[str]: ...

    @abstractmethod
    def set(self, token: str) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...


class MemoryTokenStore(TokenStore):
    def __init__(self, token: Optional[str] = None):
        self._token = token

    def get(self) -> Optional[str]:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileTokenStore(TokenStore):
    """Token persisted to a file (mode 0600), surviving process restarts."""

    def __init__(self, path: str):
        self.path = Path(path)

    def get(self) -> Optional[str]:
        try:
            token = self.path.read_text().strip()
        except FileNotFoundError:
            return None
        return token or None

    def set(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token)
        self.path.chmod(0o600)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


# ── Session manager ──────────────────────────────────────────────────────


class SessionManager:
    """Issues and validates sessions against the ``sessions`` collection."""

    def __init__(
        self,
        db: "Database",
        token_store: Optional[TokenStore] = None,
        session_ttl: timedelta = timedelta(hours=24),
        remember_me_ttl: timedelta = timedelta(days=30),
        clock: Callable[[], datetime] = utcnow,
    ):
        if session_ttl >= remember_me_ttl:
            raise ValueError("session_ttl must be shorter than remember_me_ttl")
        self.db = db
        self.token_store = token_store or MemoryTokenStore()
        self.session_ttl = session_ttl
        self.remember_me_ttl = remember_me_ttl
        self.clock = clock

    def create_session(self, user_id: str, remember_me: bool = False) -> Session:
        """
        Issue a session for ``user_id`` and persist its token.

        The returned Session carries the plaintext ``token``; stored copies
        do not.
        """
        now = self.clock()
        ttl = self.remember_me_ttl if remember_me else self.session_ttl
        token = generate_token()
        session = Session(
            user_id=user_id,
            token_hash=hash_token(token),
            remember_me=remember_me,
            expires_at=now + ttl,
            created_at=now,
            last_used_at=now,
        )
        self.db.sessions.add(session)
        self.token_store.set(token)
        session.token = token
        logger.info(
            f"Session created: session_id={session.id}, user_id={user_id}, "
            f"expires_at={session.expires_at.isoformat()}"
        )
        return session

    def validate_token(self, token: Optional[str]) -> Optional[Session]:
        """Resolve a token to a live session; None if absent, malformed, unknown or expired."""
        if not token or not token.startswith(TOKEN_PREFIX):
            return None
        session = self.db.sessions.find_one(token_hash=hash_token(token))
        if session is None:
            return None
        now = self.clock()
        if not session.is_valid(now):
            logger.debug(f"Session expired: session_id={session.id}")
            return None
        session.last_used_at = now
        self.db.sessions.update(session)
        return session

    def get_current_session(self) -> Optional[Session]:
        """The session behind the persisted token, failing closed to None."""
        token = self.token_store.get()
        session = self.validate_token(token)
        if session is None and token is not None:
            self.token_store.clear()
        return session

    def destroy_session(self, session_id: str) -> None:
        """Delete a session. Destroying an unknown session is a no-op."""
        session = self.db.sessions.get(session_id)
        if session is None:
            return
        self.db.sessions.delete(session_id)
        token = self.token_store.get()
        if token and hash_token(token) == session.token_hash:
            self.token_store.clear()
        logger.info(f"Session destroyed: session_id={session_id}")

    def destroy_user_sessions(self, user_id: str) -> int:
        """Delete every session belonging to a user."""
        return self.db.sessions.delete_where(user_id=user_id)

    def cleanup_expired_sessions(self) -> int:
        """Delete every session with ``expires_at <= now``. Returns the count removed."""
        now = self.clock()
        removed = 0
        for session in self.db.sessions.find():
            if not session.is_valid(now) and self.db.sessions.delete(session.id):
                removed += 1
        if removed:
            logger.info(f"Cleaned up {removed} expired session(s)")
        return removed


class SessionSweeper:
    """Background thread that periodically removes expired sessions."""

    def __init__(self, sessions: SessionManager, interval_seconds: float = 300.0):
        self._sessions = sessions
        self._interval = interval_seconds
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name="session-sweeper"
        )
        self._thread.start()
        logger.info(f"Session sweeper started: interval={self._interval}s")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Session sweeper stopped")

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self._sessions.cleanup_expired_sessions()
            except Exception:
                logger.exception("Session cleanup failed")
