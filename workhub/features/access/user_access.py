"""
Navigation access for the current user.

Composes the department-driven org access with routes every authenticated
user has (profile, welcome) and with workspace routes once a workspace
context exists.
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.features.access import route_map
from workhub.features.access.org_access import resolve_user_org_access
from workhub.features.access.route_map import AppRouteKey
from workhub.features.access.schemas import UserAccess
from workhub.features.org_permissions.models import OrgPermissionKey


# Accessible to every authenticated user regardless of org permissions
ALWAYS_ACCESSIBLE_ROUTES: tuple[AppRouteKey, ...] = (
    AppRouteKey.PROFILE,
    AppRouteKey.PROFILE_ACCOUNT,
    AppRouteKey.PROFILE_PASSWORD,
    AppRouteKey.WELCOME,
)

# Org members with department access (members without departments don't see the list)
ORG_MEMBER_BASE_ROUTES: tuple[AppRouteKey, ...] = (
    AppRouteKey.WORKSPACES,
)

WORKSPACE_MEMBER_ROUTES: tuple[AppRouteKey, ...] = (
    AppRouteKey.WORKSPACE_HOME,
    AppRouteKey.WORKSPACE_TASKS,
    AppRouteKey.WORKSPACE_TEAMS,
    AppRouteKey.WORKSPACE_PROGRAMS,
    AppRouteKey.WORKSPACE_TIMELINE,
    AppRouteKey.WORKSPACE_SETTINGS,
    AppRouteKey.WORKSPACE_SPACES,
    AppRouteKey.WORKSPACE_PROJECTS,
)


def _base_access(user_id: str, organization_id: Optional[str], workspace_id: Optional[str]) -> UserAccess:
    return UserAccess(
        user_id=user_id,
        organization_id=organization_id,
        workspace_id=workspace_id,
        allowed_route_keys=ALWAYS_ACCESSIBLE_ROUTES,
        allowed_paths=tuple(route_map.paths_for(ALWAYS_ACCESSIBLE_ROUTES, workspace_id)),
    )


async def resolve_user_access(
    db: AsyncSession,
    user_id: str,
    organization_id: Optional[str] = None,
    workspace_id: Optional[str] = None
) -> UserAccess:
    """
    Resolve the user's navigable routes within an organization.

    Without an organization (or without an active membership) only the
    always-accessible routes are returned.
    """
    if not organization_id:
        return _base_access(user_id, None, workspace_id)

    org_access = await resolve_user_org_access(db, user_id, organization_id, workspace_id)
    if not org_access.org_member_id:
        return _base_access(user_id, organization_id, workspace_id)

    route_keys: list[AppRouteKey] = list(ALWAYS_ACCESSIBLE_ROUTES)
    if org_access.has_department_access:
        route_keys.extend(ORG_MEMBER_BASE_ROUTES)
        route_keys.extend(org_access.allowed_route_keys)
    if workspace_id or org_access.has_department_access or org_access.is_owner:
        route_keys.extend(WORKSPACE_MEMBER_ROUTES)

    unique_keys = tuple(dict.fromkeys(route_keys))
    return UserAccess(
        user_id=user_id,
        organization_id=organization_id,
        workspace_id=workspace_id,
        org_member_id=org_access.org_member_id,
        role=org_access.role,
        is_owner=org_access.is_owner,
        has_department_access=org_access.has_department_access,
        department_ids=org_access.department_ids,
        permissions=org_access.permissions,
        allowed_route_keys=unique_keys,
        allowed_paths=tuple(route_map.paths_for(unique_keys, workspace_id)),
    )


def resolve_personal_user_access(user_id: str, workspace_id: Optional[str] = None) -> UserAccess:
    """
    Access for PERSONAL accounts (no organization).

    Workspace routes are always included so navigation is stable before the
    workspace context is known.
    """
    route_keys = (
        ALWAYS_ACCESSIBLE_ROUTES
        + (AppRouteKey.WORKSPACES, AppRouteKey.WORKSPACE_CREATE)
        + WORKSPACE_MEMBER_ROUTES
    )
    return UserAccess(
        user_id=user_id,
        workspace_id=workspace_id,
        allowed_route_keys=route_keys,
        allowed_paths=tuple(route_map.paths_for(route_keys, workspace_id)),
    )


def has_permission(access: UserAccess, permission: OrgPermissionKey) -> bool:
    return permission in access.permissions


def can_access_route_key(access: UserAccess, route_key: AppRouteKey) -> bool:
    return route_key in access.allowed_route_keys
