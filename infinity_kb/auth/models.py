"""
Auth Models — Pydantic records for users, organizations, sessions,
projects, project members, access requests and audit entries.

Every persisted record carries a UUID4 string ``id``; timestamps are
timezone-aware UTC datetimes.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    APPROVER = "approver"
    MEMBER = "member"
    VIEWER = "viewer"


class ProjectRole(str, Enum):
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


class Plan(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class RequestType(str, Enum):
    PROJECT_ACCESS = "project_access"
    MODEL_KEY_ACCESS = "model_key_access"
    ROLE_UPGRADE = "role_upgrade"
    FEATURE_ACCESS = "feature_access"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


PLAN_DEFAULTS: dict[Plan, dict[str, Any]] = {
    Plan.FREE: {"max_members": 10, "features": ["projects", "basic_analytics"]},
    Plan.PRO: {
        "max_members": 100,
        "features": ["projects", "analytics", "api_access", "advanced_permissions"],
    },
    Plan.ENTERPRISE: {
        "max_members": 1000,
        "features": ["projects", "analytics", "api_access", "advanced_permissions", "sso"],
    },
}


class OrganizationSettings(BaseModel):
    allow_self_registration: bool = True
    require_email_verification: bool = False
    max_members: int = Field(default=10, ge=1)
    features: list[str] = Field(default_factory=list)

    @classmethod
    def for_plan(cls, plan: Plan) -> "OrganizationSettings":
        defaults = PLAN_DEFAULTS[plan]
        return cls(max_members=defaults["max_members"], features=list(defaults["features"]))


class Organization(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    domain: Optional[str] = None
    plan: Plan = Plan.FREE
    owner_id: Optional[str] = None
    invite_code: Optional[str] = Field(default=None, description="Code used to join via registration")
    settings: OrganizationSettings = Field(default_factory=OrganizationSettings)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class User(BaseModel):
    id: str = Field(default_factory=new_id)
    email: str
    name: str
    password_hash: str = Field(repr=False)
    role: Role = Role.MEMBER
    organization_id: str
    is_active: bool = True
    email_verified: bool = False
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    """
    A time-bounded login for one user.

    ``token`` holds the plaintext bearer token only on the instance returned
    at issue time; it is excluded from serialization, so storage only ever
    sees ``token_hash``.
    """
    id: str = Field(default_factory=new_id)
    user_id: str
    token_hash: str
    remember_me: bool = False
    expires_at: datetime
    created_at: datetime = Field(default_factory=utcnow)
    last_used_at: datetime = Field(default_factory=utcnow)
    token: Optional[str] = Field(default=None, exclude=True, repr=False)

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) < self.expires_at


class ProjectPermissions(BaseModel):
    allowed_roles: list[str] = Field(default_factory=list)
    restricted_features: list[str] = Field(default_factory=list)


class Project(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    organization_id: str
    created_by: str
    status: ProjectStatus = ProjectStatus.ACTIVE
    llm_config: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque model/provider configuration",
    )
    permissions: ProjectPermissions = Field(default_factory=ProjectPermissions)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


PROJECT_ROLE_GRANTS: dict[ProjectRole, list[str]] = {
    ProjectRole.ADMIN: ["read", "write", "delete", "manage_members"],
    ProjectRole.MEMBER: ["read", "write"],
    ProjectRole.VIEWER: ["read"],
}


class ProjectMember(BaseModel):
    id: str = Field(default_factory=new_id)
    project_id: str
    user_id: str
    role: ProjectRole = ProjectRole.MEMBER
    permissions: list[str] = Field(default_factory=list)
    added_by: str
    added_at: datetime = Field(default_factory=utcnow)


class AccessRequest(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: str
    project_id: Optional[str] = None
    request_type: RequestType
    requested_role: Optional[str] = None
    requested_permissions: list[str] = Field(default_factory=list)
    message: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    requested_at: datetime = Field(default_factory=utcnow)
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    review_notes: Optional[str] = None


class AuditLogEntry(BaseModel):
    id: str = Field(default_factory=new_id)
    user_id: Optional[str] = None
    organization_id: Optional[str] = None
    action: str
    resource: str
    resource_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    severity: Severity = Severity.LOW
    timestamp: datetime = Field(default_factory=utcnow)
