"""
Department management.

    DEPARTMENT -> PERMISSIONS -> ROUTES -> NAVIGATION

Departments own org permission keys and members gain org access only
through them. Managing departments requires the department-granted
``org.departments.manage`` permission (OWNER always passes). Reading
requires an active org membership.
"""
import enum
from typing import Any, Dict
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.features.access.org_access import (
    get_active_org_member,
    has_org_permission_from_access,
    resolve_user_org_access,
)
from workhub.features.audit_logs.service import record_audit_log
from workhub.features.departments.schemas import DepartmentResponse
from workhub.features.org_permissions.models import OrgPermissionKey, parse_org_permission
from workhub.features.organizations.models import (
    Department,
    DepartmentPermission,
    OrganizationMember,
    OrgMemberDepartment,
)
from workhub.utils import get_logger


log = get_logger(__name__)

RESOURCE_TYPE = "department"


class DepartmentErrorReason(str, enum.Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    DUPLICATE = "DUPLICATE"
    INVALID_PERMISSION = "INVALID_PERMISSION"
    INVALID_INPUT = "INVALID_INPUT"


class DepartmentError(Exception):
    """Typed rejection of a department-management call."""

    def __init__(self, reason: DepartmentErrorReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


# ============================================================================
# Checks
# ============================================================================

async def _require_member(db: AsyncSession, actor_user_id: str, org_id: str) -> OrganizationMember:
    member = await get_active_org_member(db, actor_user_id, org_id)
    if member is None:
        raise DepartmentError(DepartmentErrorReason.UNAUTHORIZED, "Unauthorized - not an org member")
    return member


async def _require_manage(db: AsyncSession, actor_user_id: str, org_id: str) -> None:
    access = await resolve_user_org_access(db, actor_user_id, org_id)
    if not has_org_permission_from_access(access, OrgPermissionKey.DEPARTMENTS_MANAGE):
        raise DepartmentError(
            DepartmentErrorReason.FORBIDDEN,
            "Forbidden - requires department management permission"
        )


async def _get_department(db: AsyncSession, org_id: str, department_id: str) -> Department:
    department = await db.get(Department, department_id)
    if department is None or department.organization_id != org_id:
        raise DepartmentError(DepartmentErrorReason.NOT_FOUND, "Department not found in this organization")
    return department


async def _name_taken(db: AsyncSession, org_id: str, name: str) -> bool:
    stmt = select(Department.id).where(Department.organization_id == org_id, Department.name == name)
    result = await db.execute(stmt)
    return result.first() is not None


async def _commit(db: AsyncSession, duplicate_message: str) -> None:
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        # Only unique-constraint violations are duplicates
        if "UNIQUE" not in str(exc.orig).upper():
            log.error(f"Department integrity error: {exc.orig}")
            raise
        raise DepartmentError(DepartmentErrorReason.DUPLICATE, duplicate_message)
    except SQLAlchemyError:
        await db.rollback()
        raise


def _audit(db: AsyncSession, actor_user_id: str, org_id: str, action: str, department_id: str, details: Dict[str, Any]):
    record_audit_log(
        db,
        actor_user_id,
        action=action,
        resource_type=RESOURCE_TYPE,
        resource_id=department_id,
        organization_id=org_id,
        details=details,
    )


# ============================================================================
# Departments
# ============================================================================

async def list_departments(db: AsyncSession, actor_user_id: str, org_id: str) -> list[DepartmentResponse]:
    """Departments of the org ordered by name, with member counts."""
    await _require_member(db, actor_user_id, org_id)

    member_count = (
        select(func.count(OrgMemberDepartment.id))
        .where(OrgMemberDepartment.department_id == Department.id)
        .correlate(Department)
        .scalar_subquery()
    )
    stmt = (
        select(Department, member_count)
        .where(Department.organization_id == org_id)
        .order_by(Department.name)
    )
    result = await db.execute(stmt)

    departments = []
    for department, count in result.all():
        response = DepartmentResponse.model_validate(department)
        departments.append(response.model_copy(update={"member_count": count}))
    return departments


async def create_department(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    name: str,
    description: str | None = None
) -> Department:
    await _require_manage(db, actor_user_id, org_id)

    if await _name_taken(db, org_id, name):
        raise DepartmentError(DepartmentErrorReason.DUPLICATE, "Department with this name already exists")

    department = Department(organization_id=org_id, name=name, description=description)
    db.add(department)
    await db.flush()
    _audit(db, actor_user_id, org_id, "create", department.id, {"name": name})
    await _commit(db, "Department with this name already exists")

    log.info(f"Created department {department.id} ({name!r}) in org {org_id}")
    return department


async def update_department(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    department_id: str,
    update_data: Dict[str, Any]
) -> Department:
    await _require_manage(db, actor_user_id, org_id)
    department = await _get_department(db, org_id, department_id)

    if "name" in update_data and not update_data["name"]:
        raise DepartmentError(DepartmentErrorReason.INVALID_INPUT, "Department name cannot be empty")

    new_name = update_data.get("name")
    if new_name and new_name != department.name and await _name_taken(db, org_id, new_name):
        raise DepartmentError(DepartmentErrorReason.DUPLICATE, "Department with this name already exists")

    for key, value in update_data.items():
        setattr(department, key, value)

    _audit(db, actor_user_id, org_id, "update", department_id, update_data)
    await _commit(db, "Department with this name already exists")
    return department


async def delete_department(db: AsyncSession, actor_user_id: str, org_id: str, department_id: str) -> None:
    """Delete a department along with its member assignments and permissions."""
    await _require_manage(db, actor_user_id, org_id)
    department = await _get_department(db, org_id, department_id)

    await db.execute(delete(OrgMemberDepartment).where(OrgMemberDepartment.department_id == department_id))
    await db.execute(delete(DepartmentPermission).where(DepartmentPermission.department_id == department_id))
    await db.delete(department)
    _audit(db, actor_user_id, org_id, "delete", department_id, {"name": department.name})
    await _commit(db, "Department could not be deleted")

    log.info(f"Deleted department {department_id} in org {org_id}")


# ============================================================================
# Members
# ============================================================================

async def list_department_members(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    department_id: str
) -> list[OrganizationMember]:
    await _require_member(db, actor_user_id, org_id)
    await _get_department(db, org_id, department_id)

    stmt = (
        select(OrganizationMember)
        .join(OrgMemberDepartment, OrgMemberDepartment.org_member_id == OrganizationMember.id)
        .where(OrgMemberDepartment.department_id == department_id)
        .order_by(OrganizationMember.created_at)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def assign_member(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    department_id: str,
    org_member_id: str
) -> OrgMemberDepartment:
    """Assign an org member to a department; the member gains its permissions."""
    await _require_manage(db, actor_user_id, org_id)
    await _get_department(db, org_id, department_id)

    member = await db.get(OrganizationMember, org_member_id)
    if member is None or member.organization_id != org_id:
        raise DepartmentError(DepartmentErrorReason.MEMBER_NOT_FOUND, "Member not found in this organization")

    stmt = select(OrgMemberDepartment.id).where(
        OrgMemberDepartment.org_member_id == org_member_id,
        OrgMemberDepartment.department_id == department_id,
    )
    if (await db.execute(stmt)).first() is not None:
        raise DepartmentError(DepartmentErrorReason.DUPLICATE, "Member is already in this department")

    assignment = OrgMemberDepartment(org_member_id=org_member_id, department_id=department_id)
    db.add(assignment)
    _audit(db, actor_user_id, org_id, "assign_member", department_id, {"org_member_id": org_member_id})
    await _commit(db, "Member is already in this department")

    log.info(f"Assigned org member {org_member_id} to department {department_id}")
    return assignment


async def remove_member(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    department_id: str,
    org_member_id: str
) -> None:
    await _require_manage(db, actor_user_id, org_id)
    await _get_department(db, org_id, department_id)

    stmt = select(OrgMemberDepartment).where(
        OrgMemberDepartment.org_member_id == org_member_id,
        OrgMemberDepartment.department_id == department_id,
    )
    assignment = (await db.execute(stmt)).scalars().first()
    if assignment is None:
        raise DepartmentError(DepartmentErrorReason.MEMBER_NOT_FOUND, "Member is not in this department")

    await db.delete(assignment)
    _audit(db, actor_user_id, org_id, "remove_member", department_id, {"org_member_id": org_member_id})
    await _commit(db, "Member could not be removed")

    log.info(f"Removed org member {org_member_id} from department {department_id}")


# ============================================================================
# Permissions
# ============================================================================

async def list_department_permissions(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    department_id: str
) -> list[DepartmentPermission]:
    await _require_member(db, actor_user_id, org_id)
    await _get_department(db, org_id, department_id)

    stmt = (
        select(DepartmentPermission)
        .where(DepartmentPermission.department_id == department_id)
        .order_by(DepartmentPermission.permission_key)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def add_department_permission(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    department_id: str,
    permission_key: str
) -> DepartmentPermission:
    key = parse_org_permission(permission_key)
    if key is None:
        raise DepartmentError(DepartmentErrorReason.INVALID_PERMISSION, f"Unknown permission key: {permission_key}")

    await _require_manage(db, actor_user_id, org_id)
    await _get_department(db, org_id, department_id)

    stmt = select(DepartmentPermission.id).where(
        DepartmentPermission.department_id == department_id,
        DepartmentPermission.permission_key == key.value,
    )
    if (await db.execute(stmt)).first() is not None:
        raise DepartmentError(DepartmentErrorReason.DUPLICATE, "Permission already assigned to this department")

    permission = DepartmentPermission(
        department_id=department_id,
        permission_key=key.value,
        granted_by=actor_user_id,
    )
    db.add(permission)
    _audit(db, actor_user_id, org_id, "add_permission", department_id, {"permission_key": key.value})
    await _commit(db, "Permission already assigned to this department")

    log.info(f"Added {key.value} to department {department_id}")
    return permission


async def remove_department_permission(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    department_id: str,
    permission_key: str
) -> None:
    await _require_manage(db, actor_user_id, org_id)
    await _get_department(db, org_id, department_id)

    stmt = select(DepartmentPermission).where(
        DepartmentPermission.department_id == department_id,
        DepartmentPermission.permission_key == permission_key,
    )
    permission = (await db.execute(stmt)).scalars().first()
    if permission is None:
        raise DepartmentError(DepartmentErrorReason.NOT_FOUND, "Permission not found on this department")

    await db.delete(permission)
    _audit(db, actor_user_id, org_id, "remove_permission", department_id, {"permission_key": permission_key})
    await _commit(db, "Permission could not be removed")

    log.info(f"Removed {permission_key} from department {department_id}")
