"""
Department API routes.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core.database.engine import get_db
from workhub.features.departments import service
from workhub.features.departments.schemas import (
    AddDepartmentPermissionRequest,
    AssignMemberRequest,
    DepartmentCreate,
    DepartmentMemberResponse,
    DepartmentPermissionResponse,
    DepartmentResponse,
    DepartmentUpdate,
)
from workhub.features.departments.service import DepartmentError, DepartmentErrorReason
from workhub.features.users.dependencies import get_current_user_id


router = APIRouter()

REASON_STATUS: dict[DepartmentErrorReason, int] = {
    DepartmentErrorReason.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    DepartmentErrorReason.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    DepartmentErrorReason.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DepartmentErrorReason.MEMBER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DepartmentErrorReason.DUPLICATE: status.HTTP_409_CONFLICT,
    DepartmentErrorReason.INVALID_PERMISSION: status.HTTP_400_BAD_REQUEST,
    DepartmentErrorReason.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
}


def _to_http(exc: DepartmentError) -> HTTPException:
    return HTTPException(status_code=REASON_STATUS[exc.reason], detail=exc.message)


# ============================================================================
# Department Routes
# ============================================================================

@router.get("/{org_id}", response_model=List[DepartmentResponse])
async def list_departments(
    org_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """List all departments in an organization."""
    try:
        return await service.list_departments(db, user_id, org_id)
    except DepartmentError as e:
        raise _to_http(e)


@router.post("/{org_id}", response_model=DepartmentResponse, status_code=status.HTTP_201_CREATED)
async def create_department(
    org_id: str,
    department: DepartmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Create a new department."""
    try:
        return await service.create_department(db, user_id, org_id, department.name, department.description)
    except DepartmentError as e:
        raise _to_http(e)


@router.patch("/{org_id}/{department_id}", response_model=DepartmentResponse)
async def update_department(
    org_id: str,
    department_id: str,
    department_update: DepartmentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Rename or describe a department."""
    try:
        return await service.update_department(
            db, user_id, org_id, department_id, department_update.model_dump(exclude_unset=True)
        )
    except DepartmentError as e:
        raise _to_http(e)


@router.delete("/{org_id}/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department(
    org_id: str,
    department_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Delete a department and its assignments."""
    try:
        await service.delete_department(db, user_id, org_id, department_id)
    except DepartmentError as e:
        raise _to_http(e)
    return None


# ============================================================================
# Member Routes
# ============================================================================

@router.get("/{org_id}/{department_id}/members", response_model=List[DepartmentMemberResponse])
async def list_department_members(
    org_id: str,
    department_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    try:
        return await service.list_department_members(db, user_id, org_id, department_id)
    except DepartmentError as e:
        raise _to_http(e)


@router.post("/{org_id}/{department_id}/members", status_code=status.HTTP_201_CREATED)
async def assign_member(
    org_id: str,
    department_id: str,
    body: AssignMemberRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Assign an org member to a department."""
    try:
        assignment = await service.assign_member(db, user_id, org_id, department_id, body.org_member_id)
    except DepartmentError as e:
        raise _to_http(e)
    return {"id": assignment.id, "org_member_id": assignment.org_member_id, "department_id": assignment.department_id}


@router.delete("/{org_id}/{department_id}/members/{org_member_id}")
async def remove_member(
    org_id: str,
    department_id: str,
    org_member_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    try:
        await service.remove_member(db, user_id, org_id, department_id, org_member_id)
    except DepartmentError as e:
        raise _to_http(e)
    return {"success": True}


# ============================================================================
# Permission Routes
# ============================================================================

@router.get("/{org_id}/{department_id}/permissions", response_model=List[DepartmentPermissionResponse])
async def list_department_permissions(
    org_id: str,
    department_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    try:
        return await service.list_department_permissions(db, user_id, org_id, department_id)
    except DepartmentError as e:
        raise _to_http(e)


@router.post(
    "/{org_id}/{department_id}/permissions",
    response_model=DepartmentPermissionResponse,
    status_code=status.HTTP_201_CREATED
)
async def add_department_permission(
    org_id: str,
    department_id: str,
    body: AddDepartmentPermissionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    """Grant an org permission to every member of the department."""
    try:
        return await service.add_department_permission(db, user_id, org_id, department_id, body.permission_key)
    except DepartmentError as e:
        raise _to_http(e)


@router.delete("/{org_id}/{department_id}/permissions/{permission_key}")
async def remove_department_permission(
    org_id: str,
    department_id: str,
    permission_key: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    user_id: Annotated[str, Depends(get_current_user_id)]
):
    try:
        await service.remove_department_permission(db, user_id, org_id, department_id, permission_key)
    except DepartmentError as e:
        raise _to_http(e)
    return {"success": True}
