"""
Org permission API routes.

Only OWNER can grant or revoke. OWNER implicitly holds every permission;
that is never stored.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core import config
from workhub.core.database.engine import get_db
from workhub.core.limiter import limiter
from workhub.features.org_permissions import service
from workhub.features.org_permissions.models import ORG_PERMISSION_METADATA, PERMISSION_CATEGORIES
from workhub.features.org_permissions.schemas import (
    BulkGrantPermissionsRequest,
    BulkGrantResult,
    GrantPermissionRequest,
    MemberPermissionsResponse,
    OrgMemberPermissionResponse,
    OrgMemberPermissionSummary,
    PermissionSetChange,
    RevokePermissionRequest,
    SetMemberPermissionsRequest,
)
from workhub.features.org_permissions.service import GrantErrorReason, PermissionGrantError
from workhub.features.users.dependencies import get_current_user_id
from workhub.utils import get_logger


log = get_logger(__name__)
router = APIRouter()

REASON_STATUS: dict[GrantErrorReason, int] = {
    GrantErrorReason.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    GrantErrorReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    GrantErrorReason.MEMBER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    GrantErrorReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    GrantErrorReason.OWNER_TARGET: status.HTTP_400_BAD_REQUEST,
    GrantErrorReason.INVALID_PERMISSION: status.HTTP_400_BAD_REQUEST,
    GrantErrorReason.ALREADY_GRANTED: status.HTTP_409_CONFLICT,
}


def _to_http(exc: PermissionGrantError) -> HTTPException:
    log.info(f"Permission request rejected: {exc.reason.value} {exc.message}")
    return HTTPException(status_code=REASON_STATUS[exc.reason], detail=exc.message)


@router.get("/catalog")
async def get_permission_catalog():
    """Every org permission key with its label and UI category."""
    return {
        "permissions": [
            {"key": key.value, **metadata} for key, metadata in ORG_PERMISSION_METADATA.items()
        ],
        "categories": [
            {
                "id": category["id"],
                "label": category["label"],
                "permissions": [key.value for key in category["permissions"]],
            }
            for category in PERMISSION_CATEGORIES
        ],
    }


@router.get("/{org_id}/member/{org_member_id}", response_model=MemberPermissionsResponse)
async def get_member_permissions(
    org_id: str,
    org_member_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Explicit permissions of one member."""
    try:
        return await service.get_member_permissions(db, user_id, org_id, org_member_id)
    except PermissionGrantError as e:
        raise _to_http(e)


@router.put("/{org_id}/member/{org_member_id}", response_model=PermissionSetChange)
@limiter.limit(config.GRANT_RATE_LIMIT)
async def set_member_permissions(
    request: Request,
    org_id: str,
    org_member_id: str,
    body: SetMemberPermissionsRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Replace the member's explicit permissions with the given set (OWNER only)."""
    try:
        return await service.set_member_permissions(db, user_id, org_id, org_member_id, body.permission_keys)
    except PermissionGrantError as e:
        raise _to_http(e)


@router.get("/{org_id}/all", response_model=List[OrgMemberPermissionSummary])
async def list_org_member_permissions(
    org_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """All member permissions in the org (OWNER or ADMIN)."""
    try:
        return await service.list_org_member_permissions(db, user_id, org_id)
    except PermissionGrantError as e:
        raise _to_http(e)


@router.post("/{org_id}/grant", response_model=OrgMemberPermissionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(config.GRANT_RATE_LIMIT)
async def grant_permission(
    request: Request,
    org_id: str,
    body: GrantPermissionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Grant a permission to a member (OWNER only)."""
    try:
        return await service.grant_permission(db, user_id, org_id, body.org_member_id, body.permission_key)
    except PermissionGrantError as e:
        raise _to_http(e)


@router.post("/{org_id}/bulk-grant", response_model=BulkGrantResult, status_code=status.HTTP_201_CREATED)
@limiter.limit(config.GRANT_RATE_LIMIT)
async def bulk_grant_permissions(
    request: Request,
    org_id: str,
    body: BulkGrantPermissionsRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Grant several permissions at once; already-held keys are skipped."""
    try:
        return await service.bulk_grant_permissions(db, user_id, org_id, body.org_member_id, body.permission_keys)
    except PermissionGrantError as e:
        raise _to_http(e)


@router.post("/{org_id}/revoke")
@limiter.limit(config.GRANT_RATE_LIMIT)
async def revoke_permission(
    request: Request,
    org_id: str,
    body: RevokePermissionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Revoke a permission from a member (OWNER only)."""
    try:
        await service.revoke_permission(db, user_id, org_id, body.org_member_id, body.permission_key)
    except PermissionGrantError as e:
        raise _to_http(e)
    return {"success": True}
