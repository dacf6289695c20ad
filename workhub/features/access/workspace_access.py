"""
Workspace access resolver.

Rules:
1. Org OWNER: full access to every workspace of the organization.
2. Personal workspace: direct membership required.
3. Org workspace, non-owner:
   - list: department-based org access OR direct membership
   - read: direct membership
   - write: direct membership with a writing role
   - delete: direct OWNER/ADMIN
"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.features.access.org_access import has_any_org_access, resolve_user_org_access
from workhub.features.access.schemas import (
    DirectMember,
    PermissionSource,
    SyntheticOverrideMember,
    WorkspaceAccessResult,
)
from workhub.features.workspaces.models import (
    WORKSPACE_ADMIN_ROLES,
    WORKSPACE_WRITE_ROLES,
    Workspace,
    WorkspaceMember,
    WorkspaceMemberRole,
)
from workhub.utils import get_logger


log = get_logger(__name__)

_WRITE_ROLE_NAMES = frozenset(role.value for role in WORKSPACE_WRITE_ROLES)
_ADMIN_ROLE_NAMES = frozenset(role.value for role in WORKSPACE_ADMIN_ROLES)


async def get_active_workspace_member(
    db: AsyncSession,
    user_id: str,
    workspace_id: str
) -> Optional[WorkspaceMember]:
    """Direct workspace membership; a DELETED record counts as none."""
    stmt = select(WorkspaceMember).where(
        WorkspaceMember.workspace_id == workspace_id,
        WorkspaceMember.user_id == user_id,
    )
    result = await db.execute(stmt)
    member = result.scalars().first()
    if member is None or member.is_deleted:
        return None
    return member


def is_workspace_admin_role(role: Optional[str]) -> bool:
    return role in _ADMIN_ROLE_NAMES


async def resolve_user_workspace_access(
    db: AsyncSession,
    user_id: str,
    workspace_id: str
) -> WorkspaceAccessResult:
    """Resolve a user's access to a single workspace. Never raises."""
    no_access = WorkspaceAccessResult.no_access(workspace_id)

    try:
        workspace = await db.get(Workspace, workspace_id)
        if workspace is None:
            return no_access

        organization_id = workspace.organization_id
        is_personal = workspace.is_personal

        direct_member = await get_active_workspace_member(db, user_id, workspace_id)
        direct_role = direct_member.role if direct_member else None

        is_org_owner = False
        has_department_access = False
        org_member_id = None
        org_role = None
        if organization_id:
            org_access = await resolve_user_org_access(db, user_id, organization_id)
            is_org_owner = org_access.is_owner
            has_department_access = has_any_org_access(org_access)
            org_member_id = org_access.org_member_id
            org_role = org_access.role.value if org_access.role else None

        # Case 1: org OWNER override
        if is_org_owner:
            if direct_member:
                membership = DirectMember(member_id=direct_member.id, role=direct_role)
            else:
                membership = SyntheticOverrideMember(
                    reason=PermissionSource.ORG_OVERRIDE,
                    role=WorkspaceMemberRole.OWNER.value,
                    org_member_id=org_member_id,
                )
            return WorkspaceAccessResult(
                workspace_id=workspace_id,
                organization_id=organization_id,
                is_personal=is_personal,
                role=direct_role or WorkspaceMemberRole.OWNER.value,
                can_list=True,
                can_read=True,
                can_write=True,
                can_delete=True,
                is_direct_member=direct_member is not None,
                is_org_owner=True,
                membership=membership,
            )

        # Case 2: personal workspace, no org fallback
        if is_personal:
            if direct_member is None:
                return no_access
            return WorkspaceAccessResult(
                workspace_id=workspace_id,
                organization_id=None,
                is_personal=True,
                role=direct_role,
                can_list=True,
                can_read=True,
                can_write=True,
                can_delete=direct_role == WorkspaceMemberRole.OWNER.value,
                is_direct_member=True,
                membership=DirectMember(member_id=direct_member.id, role=direct_role),
            )

        # Case 3: org workspace, non-owner. Listing is decoupled from reading.
        can_list = has_department_access or direct_member is not None
        if not can_list:
            return no_access

        if direct_member:
            membership = DirectMember(member_id=direct_member.id, role=direct_role)
        else:
            # Visible through departments only; never durable state
            membership = SyntheticOverrideMember(
                reason=PermissionSource.DEPARTMENT,
                role=org_role or WorkspaceMemberRole.MEMBER.value,
                org_member_id=org_member_id,
            )

        return WorkspaceAccessResult(
            workspace_id=workspace_id,
            organization_id=organization_id,
            is_personal=False,
            role=direct_role,
            can_list=True,
            can_read=direct_member is not None,
            can_write=direct_member is not None and direct_role in _WRITE_ROLE_NAMES,
            can_delete=direct_member is not None and direct_role in _ADMIN_ROLE_NAMES,
            is_direct_member=direct_member is not None,
            membership=membership,
        )

    except Exception:
        log.exception(f"Error resolving workspace access for user {user_id} in workspace {workspace_id}")
        return no_access
