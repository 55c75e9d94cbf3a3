"""
infinity_kb.organizations — organization-scoped members, projects and
access requests.
"""
from .models import (
    AccessRequestData,
    AccessRequestResult,
    MemberInvite,
    OrganizationStats,
    ProjectData,
    ProjectResult,
    ProjectUpdate,
    UserResult,
)
from .service import OrganizationService

__all__ = [
    "AccessRequestData",
    "AccessRequestResult",
    "MemberInvite",
    "OrganizationService",
    "OrganizationStats",
    "ProjectData",
    "ProjectResult",
    "ProjectUpdate",
    "UserResult",
]
