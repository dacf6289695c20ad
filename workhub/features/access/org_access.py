"""
Department-driven organization access resolver.

    DEPARTMENT -> PERMISSIONS -> ROUTES -> NAVIGATION

Rules:
1. OWNER gets every permission and route, without any department lookup.
2. Non-owners get permissions only from their departments.
3. No department means zero org permissions (role defaults never apply here).
4. Permissions are the union across all of the member's departments.

This resolver is the only authority for department-based org decisions.
The explicit-grant model in ``org_permissions`` is a separate mechanism.
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core.invariants import assert_owner_has_full_access
from workhub.features.access import route_map
from workhub.features.access.route_map import AppRouteKey
from workhub.features.access.schemas import OrgAccessResult, PermissionSource
from workhub.features.org_permissions.models import (
    ALL_ORG_PERMISSIONS,
    OrgPermissionKey,
    parse_org_permission,
)
from workhub.features.organizations.models import (
    Department,
    DepartmentPermission,
    OrganizationMember,
    OrganizationRole,
    OrgMemberDepartment,
    OrgMemberStatus,
)
from workhub.utils import get_logger


log = get_logger(__name__)


async def get_active_org_member(
    db: AsyncSession,
    user_id: str,
    organization_id: str
) -> Optional[OrganizationMember]:
    """Return the caller's ACTIVE membership in the organization, if any."""
    stmt = select(OrganizationMember).where(
        OrganizationMember.organization_id == organization_id,
        OrganizationMember.user_id == user_id,
        OrganizationMember.status == OrgMemberStatus.ACTIVE,
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def _get_department_ids(
    db: AsyncSession,
    org_member_id: str,
    organization_id: str
) -> list[str]:
    stmt = (
        select(OrgMemberDepartment.department_id)
        .join(Department, Department.id == OrgMemberDepartment.department_id)
        .where(
            OrgMemberDepartment.org_member_id == org_member_id,
            Department.organization_id == organization_id,
        )
    )
    result = await db.execute(stmt)
    return list(dict.fromkeys(result.scalars().all()))


async def _get_department_permissions(
    db: AsyncSession,
    department_ids: list[str]
) -> list[OrgPermissionKey]:
    stmt = select(DepartmentPermission.permission_key).where(
        DepartmentPermission.department_id.in_(department_ids)
    )
    result = await db.execute(stmt)

    granted: set[OrgPermissionKey] = set()
    for raw_key in result.scalars().all():
        key = parse_org_permission(raw_key)
        if key is None:
            log.warning(f"Ignoring unknown department permission key {raw_key!r}")
            continue
        granted.add(key)

    # Stable enumeration order
    return [key for key in ALL_ORG_PERMISSIONS if key in granted]


async def resolve_user_org_access(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    workspace_id: Optional[str] = None
) -> OrgAccessResult:
    """
    Resolve a user's complete org access from their department memberships.

    Args:
        db: Database session
        user_id: User ID
        organization_id: Organization ID
        workspace_id: Active workspace, used only to build workspace paths

    Returns:
        OrgAccessResult; the zero-access result when the user is not an
        active member or when any lookup fails
    """
    no_access = OrgAccessResult.no_access(organization_id)

    try:
        member = await get_active_org_member(db, user_id, organization_id)
        if member is None:
            return no_access

        role = OrganizationRole(member.role)

        # OWNER bypass, evaluated before anything else
        if role == OrganizationRole.OWNER:
            route_keys = route_map.all_route_keys()
            return OrgAccessResult(
                organization_id=organization_id,
                org_member_id=member.id,
                role=role,
                is_owner=True,
                permissions=ALL_ORG_PERMISSIONS,
                allowed_route_keys=tuple(route_keys),
                allowed_paths=tuple(route_map.paths_for(route_keys, workspace_id)),
                has_department_access=True,
                source=PermissionSource.OWNER,
            )

        department_ids = await _get_department_ids(db, member.id, organization_id)

        # No department, no permission
        if not department_ids:
            return OrgAccessResult(
                organization_id=organization_id,
                org_member_id=member.id,
                role=role,
            )

        permissions = await _get_department_permissions(db, department_ids)
        route_keys = route_map.route_keys_for(permissions)

        result = OrgAccessResult(
            organization_id=organization_id,
            org_member_id=member.id,
            role=role,
            department_ids=tuple(department_ids),
            permissions=tuple(permissions),
            allowed_route_keys=tuple(route_keys),
            allowed_paths=tuple(route_map.paths_for(route_keys, workspace_id)),
            has_department_access=True,
            source=PermissionSource.DEPARTMENT,
        )

        # OWNER returns above; this only fires on a logic error
        assert_owner_has_full_access(
            role.value,
            result.has_department_access,
            {"user_id": user_id, "organization_id": organization_id, "org_member_id": member.id},
        )
        return result

    except Exception:
        log.exception(f"Error resolving org access for user {user_id} in org {organization_id}")
        return no_access


# ============================================================================
# Helper Functions
# ============================================================================

def has_org_permission_from_access(access: OrgAccessResult, permission: OrgPermissionKey) -> bool:
    """OWNER always passes; everyone else needs the department-granted key."""
    if access.is_owner:
        return True
    return permission in access.permissions


def can_access_org_route_key(access: OrgAccessResult, route_key: AppRouteKey) -> bool:
    if access.is_owner:
        return True
    return route_key in access.allowed_route_keys


def has_any_org_access(access: OrgAccessResult) -> bool:
    """True if the user is OWNER or belongs to at least one department."""
    return access.is_owner or access.has_department_access
