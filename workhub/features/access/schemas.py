"""
Access result value objects.

Every resolver returns one of these immutable models. They are recomputed on
each request and never persisted.
"""
import enum
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field

from workhub.features.access.route_map import AppRouteKey, ProjectRouteKey
from workhub.features.org_permissions.models import OrgPermissionKey
from workhub.features.organizations.models import OrganizationRole
from workhub.features.projects.models import ProjectMemberRole


class PermissionSource(str, enum.Enum):
    """Where a resolved permission set came from."""
    OWNER = "OWNER"
    DEPARTMENT = "DEPARTMENT"
    EXPLICIT_GRANT = "EXPLICIT_GRANT"
    ROLE_DEFAULT = "ROLE_DEFAULT"
    PROJECT_ROLE = "PROJECT_ROLE"
    ORG_OVERRIDE = "ORG_OVERRIDE"
    WORKSPACE_OVERRIDE = "WORKSPACE_OVERRIDE"
    NONE = "NONE"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ============================================================================
# Membership (tagged union)
# ============================================================================

class DirectMember(_Frozen):
    """A persisted membership record."""
    kind: Literal["direct"] = "direct"
    member_id: str
    role: Optional[str] = None


class SyntheticOverrideMember(_Frozen):
    """
    Membership fabricated by an override rule.

    Has no backing record and must never be written back to the store.
    """
    kind: Literal["synthetic"] = "synthetic"
    reason: PermissionSource
    role: str
    org_member_id: Optional[str] = None


Membership = Annotated[
    Union[DirectMember, SyntheticOverrideMember],
    Field(discriminator="kind"),
]


# ============================================================================
# Organization
# ============================================================================

class OrgAccessResult(_Frozen):
    organization_id: str
    org_member_id: Optional[str] = None
    role: Optional[OrganizationRole] = None
    is_owner: bool = False
    department_ids: tuple[str, ...] = ()
    permissions: tuple[OrgPermissionKey, ...] = ()
    allowed_route_keys: tuple[AppRouteKey, ...] = ()
    allowed_paths: tuple[str, ...] = ()
    has_department_access: bool = False
    source: PermissionSource = PermissionSource.NONE

    @classmethod
    def no_access(cls, organization_id: str) -> "OrgAccessResult":
        return cls(organization_id=organization_id)


# ============================================================================
# Workspace
# ============================================================================

class WorkspaceAccessResult(_Frozen):
    workspace_id: str
    organization_id: Optional[str] = None
    is_personal: bool = False
    # Explicit workspace role; None when access comes only from the org
    role: Optional[str] = None
    can_list: bool = False
    can_read: bool = False
    can_write: bool = False
    can_delete: bool = False
    is_direct_member: bool = False
    is_org_owner: bool = False
    membership: Optional[Membership] = None

    @classmethod
    def no_access(cls, workspace_id: str) -> "WorkspaceAccessResult":
        return cls(workspace_id=workspace_id)


# ============================================================================
# Project
# ============================================================================

class ProjectTeamAccess(_Frozen):
    team_id: str
    team_name: str
    team_role: Optional[str] = None


class ProjectAccessResult(_Frozen):
    project_id: str
    user_id: str
    has_access: bool = False
    role: Optional[ProjectMemberRole] = None
    is_owner: bool = False
    is_admin: bool = False
    # Custom role documents may carry keys outside ProjectPermissionKey
    permissions: tuple[str, ...] = ()
    teams: tuple[ProjectTeamAccess, ...] = ()
    allowed_route_keys: tuple[ProjectRouteKey, ...] = ()
    source: PermissionSource = PermissionSource.NONE
    membership: Optional[Membership] = None

    @classmethod
    def no_access(cls, project_id: str, user_id: str) -> "ProjectAccessResult":
        return cls(project_id=project_id, user_id=user_id)


# ============================================================================
# Navigation
# ============================================================================

class UserAccess(_Frozen):
    """Combined navigation access for the current user."""
    user_id: str
    organization_id: Optional[str] = None
    workspace_id: Optional[str] = None
    org_member_id: Optional[str] = None
    role: Optional[OrganizationRole] = None
    is_owner: bool = False
    has_department_access: bool = False
    department_ids: tuple[str, ...] = ()
    permissions: tuple[OrgPermissionKey, ...] = ()
    allowed_route_keys: tuple[AppRouteKey, ...] = ()
    allowed_paths: tuple[str, ...] = ()


class RouteDecision(_Frozen):
    allowed: bool
    redirect_to: Optional[str] = None
