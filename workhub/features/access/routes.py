"""
Access resolution API routes.

Resolvers never fail: an unknown scope or a store error answers with the
zero-access result rather than an error status.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core.database.engine import get_db
from workhub.features.access.dependencies import get_user_access
from workhub.features.access.guards import check_route_access, get_fallback_route, resolve_org_tab
from workhub.features.access.org_access import resolve_user_org_access
from workhub.features.access.project_access import ProjectAccessDenied, assert_project_access, resolve_user_project_access
from workhub.features.access.route_map import visible_org_tabs
from workhub.features.access.schemas import (
    OrgAccessResult,
    ProjectAccessResult,
    RouteDecision,
    UserAccess,
    WorkspaceAccessResult,
)
from workhub.features.access.workspace_access import resolve_user_workspace_access
from workhub.features.projects.models import ProjectPermissionKey
from workhub.features.users.dependencies import get_current_user_id


router = APIRouter()


@router.get("/organizations/{organization_id}", response_model=OrgAccessResult)
async def get_org_access(
    organization_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    workspace_id: Optional[str] = None
):
    """Department-driven org access of the caller."""
    return await resolve_user_org_access(db, user_id, organization_id, workspace_id)


@router.get("/workspaces/{workspace_id}", response_model=WorkspaceAccessResult)
async def get_workspace_access(
    workspace_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    return await resolve_user_workspace_access(db, user_id, workspace_id)


@router.get("/projects/{project_id}", response_model=ProjectAccessResult)
async def get_project_access(
    project_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    return await resolve_user_project_access(db, user_id, project_id)


@router.get("/projects/{project_id}/require", response_model=ProjectAccessResult)
async def require_project_access(
    project_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)],
    permission: Optional[ProjectPermissionKey] = None
):
    """Project access, or 403 when the caller is not a member or lacks ``permission``."""
    try:
        return await assert_project_access(db, user_id, project_id, permission)
    except ProjectAccessDenied as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=e.detail)


@router.get("/me", response_model=UserAccess)
async def get_my_access(access: Annotated[UserAccess, Depends(get_user_access)]):
    """Navigable routes for the caller."""
    return access


@router.get("/navigation", response_model=RouteDecision)
async def check_navigation(
    access: Annotated[UserAccess, Depends(get_user_access)],
    path: str = Query(..., min_length=1)
):
    """Whether ``path`` may be rendered, and where to go if not."""
    return check_route_access(path, access)


@router.get("/fallback")
async def get_fallback(access: Annotated[UserAccess, Depends(get_user_access)]):
    return {"path": get_fallback_route(access)}


@router.get("/organization-tabs")
async def get_org_tabs(
    access: Annotated[UserAccess, Depends(get_user_access)],
    tab: Optional[str] = None
):
    """Visible organization settings tabs and the one to open."""
    selected = resolve_org_tab(tab, access)
    if selected is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No organization tabs available")
    return {"tab": selected, "visible_tabs": visible_org_tabs(access.allowed_route_keys)}
