"""
Audit log API routes.
"""
from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core.database.engine import get_db
from workhub.features.access.schemas import OrgAccessResult
from workhub.features.audit_logs.models import AuditLog
from workhub.features.audit_logs.schemas import AuditLogListResponse, AuditLogResponse
from workhub.features.org_permissions.dependencies import require_org_permission
from workhub.features.org_permissions.models import OrgPermissionKey


router = APIRouter()


@router.get("/{org_id}", response_model=AuditLogListResponse)
async def list_audit_logs(
    org_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    _access: Annotated[OrgAccessResult, Depends(require_org_permission(OrgPermissionKey.AUDIT_VIEW))],
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    resource_type: Optional[str] = None,
    action: Optional[str] = None
):
    """Permission and department changes in an organization, newest first."""
    stmt = select(AuditLog).where(AuditLog.organization_id == org_id)
    if resource_type:
        stmt = stmt.where(AuditLog.resource_type == resource_type)
    if action:
        stmt = stmt.where(AuditLog.action == action)

    count_stmt = select(func.count()).select_from(stmt.subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    stmt = stmt.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(stmt)

    logs = result.scalars().all()

    return AuditLogListResponse(
        logs=[AuditLogResponse.model_validate(entry) for entry in logs],
        total=total
    )
