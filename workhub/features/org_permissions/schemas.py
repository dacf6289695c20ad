"""
Pydantic schemas for explicit org permission grants.
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from workhub.features.org_permissions.models import OrgPermissionKey
from workhub.features.organizations.models import OrganizationRole


# ============================================================================
# Requests
# ============================================================================

class GrantPermissionRequest(BaseModel):
    org_member_id: str = Field(..., min_length=1, description="Target organization member ID")
    permission_key: str = Field(..., min_length=1, description="Org permission key, e.g. 'org.billing.view'")


class RevokePermissionRequest(GrantPermissionRequest):
    pass


class BulkGrantPermissionsRequest(BaseModel):
    org_member_id: str = Field(..., min_length=1)
    permission_keys: List[str] = Field(..., min_length=1)


class SetMemberPermissionsRequest(BaseModel):
    """Full target permission set; anything not listed is revoked."""
    permission_keys: List[str] = Field(default_factory=list)


# ============================================================================
# Responses
# ============================================================================

class OrgMemberPermissionResponse(BaseModel):
    id: str
    org_member_id: str
    permission_key: str
    granted_by: str
    granted_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberPermissionsResponse(BaseModel):
    member_id: str
    permissions: List[str]
    is_owner: bool


class OrgMemberPermissionSummary(BaseModel):
    member_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: OrganizationRole
    is_owner: bool
    permissions: List[str]


class BulkGrantResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    granted: int
    skipped: int
    permissions: tuple[OrgPermissionKey, ...]


class PermissionSetChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    granted: tuple[OrgPermissionKey, ...]
    revoked: tuple[OrgPermissionKey, ...]
    permissions: tuple[OrgPermissionKey, ...]
