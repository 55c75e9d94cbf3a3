"""
Demo seed data.

Creates the demo organization, its three demo accounts (relied on by the
login screen), two demo projects with members and two pending access
requests. Runs only against an empty users collection: once any account
exists the store is left untouched, so demo records an admin removed stay
removed across restarts.
"""
import logging
from typing import Optional

from pydantic import BaseModel, Field

from .credentials import CredentialStore
from .models import (
    AccessRequest,
    OrganizationSettings,
    Plan,
    Project,
    ProjectMember,
    ProjectPermissions,
    ProjectRole,
    PROJECT_ROLE_GRANTS,
    RequestType,
    Role,
)

logger = logging.getLogger(__name__)

DEMO_ORGANIZATION_NAME = "Demo Organization"
DEMO_INVITE_CODE = "DEMO123"

DEMO_USERS = [
    {"email": "admin@example.com", "name": "Admin User", "password": "admin123", "role": Role.ADMIN},
    {"email": "approver@example.com", "name": "Approver User", "password": "approver123", "role": Role.APPROVER},
    {"email": "member@example.com", "name": "Member User", "password": "member123", "role": Role.MEMBER},
]


class SeedResult(BaseModel):
    organization_id: Optional[str] = None
    created_organization: bool = False
    created_users: list[str] = Field(default_factory=list)
    created_projects: list[str] = Field(default_factory=list)

    @property
    def created_anything(self) -> bool:
        return self.created_organization or bool(self.created_users) or bool(self.created_projects)


def seed_demo_data(credentials: CredentialStore) -> SeedResult:
    """Populate the demo organization, accounts and projects on first initialization."""
    db = credentials.db

    if db.users.count() > 0:
        logger.info("Users already present, skipping demo seed")
        return SeedResult()

    organization = credentials.create_organization(
        name=DEMO_ORGANIZATION_NAME,
        domain="example.com",
        plan=Plan.PRO,
        invite_code=DEMO_INVITE_CODE,
        settings=OrganizationSettings(
            max_members=100,
            features=["projects", "analytics", "api_access", "advanced_permissions"],
        ),
    )
    result = SeedResult(organization_id=organization.id, created_organization=True)

    users = {}
    for demo in DEMO_USERS:
        user = credentials.create_user(
            email=demo["email"],
            name=demo["name"],
            password=demo["password"],
            organization_id=organization.id,
            role=demo["role"],
            email_verified=True,
        )
        result.created_users.append(user.email)
        users[demo["role"]] = user

    admin = users[Role.ADMIN]
    organization.owner_id = admin.id
    credentials.save_organization(organization)

    now = credentials.clock()
    analytics = Project(
        name="Marketing Analytics",
        description="AI-powered marketing insights and analytics",
        organization_id=organization.id,
        created_by=admin.id,
        llm_config={
            "provider": "openai",
            "model_id": "gpt-4o",
            "api_key": "sk-demo-key-1",
            "settings": {"temperature": 0.7, "max_tokens": 2000},
        },
        permissions=ProjectPermissions(allowed_roles=["admin", "approver", "member"]),
        created_at=now,
        updated_at=now,
    )
    support = Project(
        name="Customer Support Bot",
        description="Automated customer service chatbot",
        organization_id=organization.id,
        created_by=admin.id,
        llm_config={
            "provider": "anthropic",
            "model_id": "claude-3-sonnet",
            "api_key": "sk-ant-demo-key-2",
            "settings": {"temperature": 0.5, "max_tokens": 1500},
        },
        permissions=ProjectPermissions(
            allowed_roles=["admin", "approver"],
            restricted_features=["model_config_edit"],
        ),
        created_at=now,
        updated_at=now,
    )
    for project in (analytics, support):
        db.projects.add(project)
        result.created_projects.append(project.name)

    memberships = [
        (analytics, users[Role.ADMIN], ProjectRole.ADMIN),
        (analytics, users[Role.MEMBER], ProjectRole.MEMBER),
        (support, users[Role.ADMIN], ProjectRole.ADMIN),
        (support, users[Role.APPROVER], ProjectRole.MEMBER),
    ]
    for project, user, role in memberships:
        db.project_members.add(ProjectMember(
            project_id=project.id,
            user_id=user.id,
            role=role,
            permissions=list(PROJECT_ROLE_GRANTS[role]),
            added_by=admin.id,
            added_at=now,
        ))

    member = users[Role.MEMBER]
    db.access_requests.add(AccessRequest(
        user_id=member.id,
        project_id=support.id,
        request_type=RequestType.PROJECT_ACCESS,
        message="I would like to contribute to the customer support bot project.",
        requested_at=now,
    ))
    db.access_requests.add(AccessRequest(
        user_id=member.id,
        project_id=analytics.id,
        request_type=RequestType.MODEL_KEY_ACCESS,
        message="Need access to the OpenAI model for advanced analytics.",
        requested_at=now,
    ))

    logger.info(
        f"Seeded demo data: org_id={organization.id}, users={result.created_users}, "
        f"projects={result.created_projects}"
    )
    return result
