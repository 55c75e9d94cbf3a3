"""
Auth Service — login, registration, logout and current-identity lookups.

Composes the CredentialStore, SessionManager and AccessControl. Expected
failures come back as ``AuthResult(success=False, ...)``; only storage
failures raise.
"""
import logging
from datetime import datetime
from typing import Callable, Optional, Union

from pydantic import BaseModel

from ..observability import LogContext
from .audit import AuditLog
from .credentials import CredentialStore, normalize_email
from .errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidInviteCodeError,
    MemberLimitError,
    OperationResult,
    ValidationError,
    returns_result,
)
from .models import Organization, Plan, Role, Session, Severity, User, utcnow
from .passwords import MAX_PASSWORD_BYTES
from .rbac import AccessControl, Permission
from .sessions import SessionManager

logger = logging.getLogger(__name__)

DEFAULT_MIN_PASSWORD_LENGTH = 6


class LoginCredentials(BaseModel):
    email: str
    password: str
    remember_me: bool = False


class RegisterCredentials(BaseModel):
    name: str
    email: str
    password: str
    confirm_password: str
    organization_name: Optional[str] = None
    organization_domain: Optional[str] = None
    invite_code: Optional[str] = None


class AuthResult(OperationResult):
    user: Optional[User] = None
    organization: Optional[Organization] = None
    session: Optional[Session] = None


def _present(value: Optional[str]) -> bool:
    return value is not None and value.strip() != ""


class AuthService:
    """Top-level authentication workflow for one client (one token store)."""

    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionManager,
        access: AccessControl,
        audit: AuditLog,
        min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.credentials = credentials
        self.sessions = sessions
        self.access = access
        self.audit = audit
        self.min_password_length = min_password_length
        self.clock = clock
        self._dummy_hash: Optional[str] = None

    # ── Login ─────────────────────────────────────────────────────────

    def _burn_password_check(self, password: str) -> None:
        """Spend one hash verification so unknown emails cost as much as wrong passwords."""
        if self._dummy_hash is None:
            self._dummy_hash = self.credentials.hasher.hash("infinity-kb-dummy-password")
        self.credentials.hasher.verify(password, self._dummy_hash)

    def _authenticate(self, email: str, password: str) -> tuple[User, Organization]:
        candidates = [u for u in self.credentials.find_users_by_email(email) if u.is_active]
        if not candidates:
            self._burn_password_check(password)
            self.audit.record(
                "login_failed", "user",
                details={"email": normalize_email(email), "reason": "user_not_found"},
                severity=Severity.MEDIUM,
            )
            raise InvalidCredentialsError()

        for user in candidates:
            if not self.credentials.verify_password(user, password):
                continue
            organization = self.credentials.get_organization(user.organization_id)
            if organization is None or not organization.is_active:
                self.audit.record(
                    "login_failed", "user", user_id=user.id,
                    organization_id=user.organization_id,
                    details={"email": user.email, "reason": "organization_inactive"},
                    severity=Severity.HIGH,
                )
                continue
            return user, organization

        self.audit.record(
            "login_failed", "user", user_id=candidates[0].id,
            organization_id=candidates[0].organization_id,
            details={"email": normalize_email(email), "reason": "invalid_password"},
            severity=Severity.MEDIUM,
        )
        raise InvalidCredentialsError()

    @returns_result(AuthResult)
    def login(self, credentials: LoginCredentials) -> AuthResult:
        """
        Authenticate by email and password and open a session.

        Unknown email, inactive user, wrong password and inactive
        organization all produce the same "Invalid email or password".
        """
        user, organization = self._authenticate(credentials.email, credentials.password)

        with LogContext(user_id=user.id, organization_id=organization.id):
            session = self.sessions.create_session(user.id, remember_me=credentials.remember_me)
            user.last_login = self.clock()
            user = self.credentials.save_user(user)
            self.audit.record(
                "login_success", "user", user_id=user.id,
                organization_id=organization.id,
                details={"email": user.email, "session_id": session.id},
            )
            logger.info(f"Login succeeded: user_id={user.id}")

        return AuthResult(user=user, organization=organization, session=session)

    # ── Registration ──────────────────────────────────────────────────

    def _validate_registration(self, data: RegisterCredentials) -> None:
        if not data.name.strip():
            raise ValidationError("Name is required")
        email = normalize_email(data.email)
        if "@" not in email or email.startswith("@") or email.endswith("@"):
            raise ValidationError("A valid email address is required")
        if data.password != data.confirm_password:
            raise ValidationError("Passwords do not match")
        if len(data.password) < self.min_password_length:
            raise ValidationError(
                f"Password must be at least {self.min_password_length} characters"
            )
        if len(data.password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        creating = _present(data.organization_name)
        joining = _present(data.invite_code)
        if creating and joining:
            raise ValidationError("Provide either an organization name or an invite code, not both")
        if not creating and not joining:
            raise ValidationError("Organization name or invite code required")

    def _resolve_invite(self, invite_code: str) -> Organization:
        organization = self.credentials.find_organization_by_invite_code(invite_code)
        if organization is None or not organization.is_active:
            raise InvalidInviteCodeError()
        if not organization.settings.allow_self_registration:
            raise InvalidInviteCodeError()
        if self.credentials.member_count(organization.id) >= organization.settings.max_members:
            raise MemberLimitError()
        return organization

    @returns_result(AuthResult)
    def register(self, data: RegisterCredentials) -> AuthResult:
        """
        Create an account and sign it in.

        Exactly one path applies: ``organization_name`` creates a new
        organization whose first user is its admin; ``invite_code`` joins an
        existing organization as a member.
        """
        self._validate_registration(data)
        if self.credentials.find_users_by_email(data.email):
            raise DuplicateEmailError()

        creating = _present(data.organization_name)
        if creating:
            organization = self.credentials.create_organization(
                name=data.organization_name,
                domain=data.organization_domain,
                plan=Plan.FREE,
            )
            role = Role.ADMIN
        else:
            organization = self._resolve_invite(data.invite_code)
            role = Role.MEMBER

        user = self.credentials.create_user(
            email=data.email,
            name=data.name,
            password=data.password,
            organization_id=organization.id,
            role=role,
        )

        if creating:
            organization.owner_id = user.id
            self.credentials.save_organization(organization)

        self.audit.record(
            "user_registered", "user", user_id=user.id,
            organization_id=organization.id,
            details={
                "email": user.email,
                "role": user.role.value,
                "organization_type": "new" if creating else "existing",
            },
        )
        logger.info(f"User registered: user_id={user.id}, org_id={organization.id}")

        return self.login(LoginCredentials(
            email=data.email, password=data.password, remember_me=True,
        ))

    # ── Logout / current identity ─────────────────────────────────────

    def logout(self) -> None:
        """Destroy the current session, if any. Never fails for a missing session."""
        session = self.sessions.get_current_session()
        if session is None:
            self.sessions.token_store.clear()
            return
        user = self.credentials.get_user(session.user_id)
        self.sessions.destroy_session(session.id)
        self.audit.record(
            "logout", "user", user_id=session.user_id,
            organization_id=user.organization_id if user else None,
            details={"session_id": session.id},
        )

    def get_current_session(self) -> Optional[Session]:
        return self.sessions.get_current_session()

    def get_current_user(self) -> Optional[User]:
        session = self.sessions.get_current_session()
        if session is None:
            return None
        user = self.credentials.get_user(session.user_id)
        if user is None or not user.is_active:
            return None
        return user

    def get_current_organization(self) -> Optional[Organization]:
        user = self.get_current_user()
        if user is None:
            return None
        organization = self.credentials.get_organization(user.organization_id)
        if organization is None or not organization.is_active:
            return None
        return organization

    def has_permission(
        self,
        permission: Union[Permission, str],
        resource: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> bool:
        """Permission check for the currently signed-in user."""
        return self.access.has_permission(self.get_current_user(), permission, resource, project_id)
