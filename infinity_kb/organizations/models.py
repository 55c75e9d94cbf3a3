"""
Organization Models — inputs and result envelopes for OrganizationService.
"""
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..auth.errors import OperationResult
from ..auth.models import (
    AccessRequest,
    Project,
    ProjectPermissions,
    ProjectStatus,
    RequestType,
    Role,
    User,
)


class MemberInvite(BaseModel):
    email: str
    name: str
    role: Role = Role.MEMBER


class ProjectData(BaseModel):
    name: str
    description: str = ""
    llm_config: dict[str, Any] = Field(default_factory=dict)
    permissions: ProjectPermissions = Field(default_factory=ProjectPermissions)


class ProjectUpdate(BaseModel):
    """Partial project update; only fields that are set are applied."""
    name: Optional[str] = None
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    llm_config: Optional[dict[str, Any]] = None
    permissions: Optional[ProjectPermissions] = None


class AccessRequestData(BaseModel):
    request_type: RequestType
    project_id: Optional[str] = None
    requested_role: Optional[str] = None
    requested_permissions: list[str] = Field(default_factory=list)
    message: Optional[str] = None


class UserResult(OperationResult):
    user: Optional[User] = None
    temporary_password: Optional[str] = Field(default=None, repr=False)


class ProjectResult(OperationResult):
    project: Optional[Project] = None


class AccessRequestResult(OperationResult):
    request: Optional[AccessRequest] = None


class OrganizationStats(BaseModel):
    total_members: int = 0
    total_projects: int = 0
    pending_requests: int = 0
    active_projects: int = 0
