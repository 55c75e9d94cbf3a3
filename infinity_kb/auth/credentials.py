"""
Credential Store — users and organizations.

Owns the lifetime of User and Organization records. Emails are stored
lower-cased and must be unique within an organization; passwords are kept
only as bcrypt hashes.
"""
import logging
import secrets
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from ..storage.database import Database
from .errors import DuplicateEmailError, NotFoundError, ValidationError
from .models import Organization, OrganizationSettings, Plan, Role, User, utcnow
from .passwords import PasswordHasher

logger = logging.getLogger(__name__)

INVITE_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_invite_code(length: int = 8) -> str:
    return "".join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(length))


class CredentialStore:
    """User and organization persistence with password verification."""

    def __init__(
        self,
        db: "Database",
        hasher: Optional[PasswordHasher] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.hasher = hasher or PasswordHasher()
        self.clock = clock

    # ── Users ─────────────────────────────────────────────────────────

    def find_user_by_email(
        self, email: str, organization_id: Optional[str] = None
    ) -> Optional[User]:
        """Look up a user by email, optionally scoped to one organization."""
        filters = {"email": normalize_email(email)}
        if organization_id is not None:
            filters["organization_id"] = organization_id
        return self.db.users.find_one(**filters)

    def find_users_by_email(self, email: str) -> list[User]:
        """Every user with this email, across organizations."""
        return self.db.users.find(email=normalize_email(email))

    def get_user(self, user_id: str) -> Optional[User]:
        return self.db.users.get(user_id)

    def list_users(self, organization_id: str, active_only: bool = True) -> list[User]:
        if active_only:
            return self.db.users.find(organization_id=organization_id, is_active=True)
        return self.db.users.find(organization_id=organization_id)

    def create_user(
        self,
        email: str,
        name: str,
        password: str,
        organization_id: str,
        role: Role = Role.MEMBER,
        email_verified: bool = False,
    ) -> User:
        """
        Create a user inside an organization.

        Raises:
            ValidationError: role is not a Role or the email is empty
            NotFoundError: the organization does not exist
            DuplicateEmailError: email already used in the organization
        """
        if not isinstance(role, Role):
            raise ValidationError(f"Unknown role: {role!r}")
        normalized = normalize_email(email)
        if not normalized:
            raise ValidationError("Email is required")
        if self.db.organizations.get(organization_id) is None:
            raise NotFoundError("Organization not found")
        if self.find_user_by_email(normalized, organization_id) is not None:
            raise DuplicateEmailError()

        now = self.clock()
        user = User(
            email=normalized,
            name=name.strip(),
            password_hash=self.hasher.hash(password),
            role=role,
            organization_id=organization_id,
            email_verified=email_verified,
            created_at=now,
            updated_at=now,
        )
        self.db.users.add(user)
        logger.info(f"User created: user_id={user.id}, org_id={organization_id}, role={role.value}")
        return user

    def save_user(self, user: User) -> User:
        user.updated_at = self.clock()
        return self.db.users.update(user)

    def verify_password(self, user: User, password: str) -> bool:
        return self.hasher.verify(password, user.password_hash)

    # ── Organizations ─────────────────────────────────────────────────

    def get_organization(self, organization_id: str) -> Optional[Organization]:
        return self.db.organizations.get(organization_id)

    def find_organization_by_name(self, name: str) -> Optional[Organization]:
        return self.db.organizations.find_one(name=name)

    def find_organization_by_invite_code(self, invite_code: str) -> Optional[Organization]:
        code = invite_code.strip().upper()
        if not code:
            return None
        return self.db.organizations.find_one(invite_code=code)

    def create_organization(
        self,
        name: str,
        domain: Optional[str] = None,
        plan: Plan = Plan.FREE,
        settings: Optional[OrganizationSettings] = None,
        invite_code: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> Organization:
        """Create an organization with plan-based default settings."""
        if not name.strip():
            raise ValidationError("Organization name is required")
        now = self.clock()
        organization = Organization(
            name=name.strip(),
            domain=(domain or "").strip() or None,
            plan=plan,
            owner_id=owner_id,
            invite_code=(invite_code or generate_invite_code()).strip().upper(),
            settings=settings or OrganizationSettings.for_plan(plan),
            created_at=now,
            updated_at=now,
        )
        self.db.organizations.add(organization)
        logger.info(f"Organization created: org_id={organization.id}, name={organization.name}")
        return organization

    def save_organization(self, organization: Organization) -> Organization:
        organization.updated_at = self.clock()
        return self.db.organizations.update(organization)

    def member_count(self, organization_id: str) -> int:
        return self.db.users.count(organization_id=organization_id, is_active=True)
