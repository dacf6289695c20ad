"""
Org permission checks.

Two independent mechanisms live side by side:

- The explicit-grant model: OWNER has everything, otherwise explicit
  OrgMemberPermission records, falling back to role defaults.
- The department model (``access.org_access``), used by
  ``require_org_permission`` to guard routes.

They are deliberately not merged; their rules differ (no department means
no permission in one, role defaults always apply in the other).
"""
from typing import Annotated, Optional
from fastapi import Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core.database.engine import get_db
from workhub.features.access.org_access import (
    get_active_org_member,
    has_org_permission_from_access,
    resolve_user_org_access,
)
from workhub.features.access.schemas import OrgAccessResult, PermissionSource
from workhub.features.org_permissions.models import (
    ALL_ORG_PERMISSIONS,
    OrgMemberPermission,
    OrgPermissionKey,
    parse_org_permission,
)
from workhub.features.organizations.models import OrganizationRole
from workhub.features.users.dependencies import get_current_user_id
from workhub.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Role -> Permission Defaults
# ============================================================================

ROLE_DEFAULT_PERMISSIONS: dict[OrganizationRole, tuple[OrgPermissionKey, ...]] = {
    OrganizationRole.OWNER: ALL_ORG_PERMISSIONS,
    OrganizationRole.ADMIN: (
        OrgPermissionKey.BILLING_VIEW,
        OrgPermissionKey.MEMBERS_VIEW,
        OrgPermissionKey.MEMBERS_MANAGE,
        OrgPermissionKey.SETTINGS_MANAGE,
        OrgPermissionKey.AUDIT_VIEW,
        OrgPermissionKey.DEPARTMENTS_MANAGE,
        OrgPermissionKey.SECURITY_VIEW,
        OrgPermissionKey.WORKSPACE_CREATE,
        OrgPermissionKey.WORKSPACE_ASSIGN,
    ),
    OrganizationRole.MODERATOR: (
        OrgPermissionKey.MEMBERS_VIEW,
        OrgPermissionKey.WORKSPACE_ASSIGN,
    ),
    OrganizationRole.MEMBER: (),
}

ROLE_HIERARCHY: dict[OrganizationRole, int] = {
    OrganizationRole.OWNER: 4,
    OrganizationRole.ADMIN: 3,
    OrganizationRole.MODERATOR: 2,
    OrganizationRole.MEMBER: 1,
}


def has_minimum_role(current_role: OrganizationRole, required_role: OrganizationRole) -> bool:
    return ROLE_HIERARCHY[current_role] >= ROLE_HIERARCHY[required_role]


# ============================================================================
# Explicit-grant model
# ============================================================================

async def has_org_permission_explicit(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    permission: OrgPermissionKey
) -> bool:
    """
    Check an org permission under the explicit-grant model.

    1. OWNER always passes (no grant lookup)
    2. An explicit grant record passes
    3. Otherwise fall back to the role defaults
    """
    member = await get_active_org_member(db, user_id, organization_id)
    if member is None:
        return False

    if member.role == OrganizationRole.OWNER:
        return True

    stmt = select(OrgMemberPermission.id).where(
        OrgMemberPermission.org_member_id == member.id,
        OrgMemberPermission.permission_key == permission.value,
    )
    result = await db.execute(stmt)
    if result.first() is not None:
        return True

    return permission in ROLE_DEFAULT_PERMISSIONS.get(member.role, ())


async def get_org_permissions(
    db: AsyncSession,
    user_id: str,
    organization_id: str
) -> tuple[list[OrgPermissionKey], Optional[OrganizationRole], PermissionSource]:
    """
    Explicit grants combined with role defaults.

    Returns:
        (permissions, role, source); source is OWNER, EXPLICIT_GRANT when at
        least one explicit record exists, ROLE_DEFAULT otherwise, or NONE for
        non-members
    """
    member = await get_active_org_member(db, user_id, organization_id)
    if member is None:
        return [], None, PermissionSource.NONE

    role = OrganizationRole(member.role)
    if role == OrganizationRole.OWNER:
        return list(ALL_ORG_PERMISSIONS), role, PermissionSource.OWNER

    stmt = select(OrgMemberPermission.permission_key).where(
        OrgMemberPermission.org_member_id == member.id
    )
    result = await db.execute(stmt)
    explicit_keys = [key for key in map(parse_org_permission, result.scalars().all()) if key is not None]

    combined = list(dict.fromkeys(explicit_keys + list(ROLE_DEFAULT_PERMISSIONS.get(role, ()))))
    source = PermissionSource.EXPLICIT_GRANT if explicit_keys else PermissionSource.ROLE_DEFAULT
    return combined, role, source


# ============================================================================
# FastAPI Dependencies
# ============================================================================

def require_org_permission(permission: OrgPermissionKey):
    """
    FastAPI dependency requiring a department-granted org permission.

    The route must take an ``org_id`` path parameter.

    Usage:
        @router.post("/{org_id}")
        async def create_department(
            access: OrgAccessResult = Depends(require_org_permission(OrgPermissionKey.DEPARTMENTS_MANAGE))
        ):
            ...

    Raises:
        HTTPException: 403 if the caller lacks the permission
    """
    async def permission_dependency(
        org_id: str,
        db: Annotated[AsyncSession, Depends(get_db)],
        user_id: Annotated[str, Depends(get_current_user_id)]
    ) -> OrgAccessResult:
        access = await resolve_user_org_access(db, user_id, org_id)
        if not has_org_permission_from_access(access, permission):
            log.debug(f"User {user_id} denied {permission.value} in org {org_id}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission.value}"
            )
        return access

    return permission_dependency
