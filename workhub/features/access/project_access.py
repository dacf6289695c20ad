"""
Project access resolver.

Override evaluation, first match wins:
1. Org OWNER/ADMIN/MODERATOR on the project's organization -> full access
2. Workspace OWNER/ADMIN/WS_ADMIN on the project's workspace -> full access
3. Direct project membership (ACTIVE, else any non-REMOVED record)

For direct members the permission set is the union of role defaults, the
custom role document, team grants within this project and direct user
grants. Workspace membership alone never grants project access, and team
grants never cross projects.
"""
from typing import Optional, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.core.invariants import assert_invariant
from workhub.features.access.org_access import get_active_org_member
from workhub.features.access.route_map import project_route_keys_for
from workhub.features.access.schemas import (
    DirectMember,
    PermissionSource,
    ProjectAccessResult,
    ProjectTeamAccess,
    SyntheticOverrideMember,
)
from workhub.features.access.workspace_access import get_active_workspace_member, is_workspace_admin_role
from workhub.features.organizations.models import OrganizationRole
from workhub.features.projects.models import (
    ALL_PROJECT_PERMISSIONS,
    Project,
    ProjectMember,
    ProjectMemberRole,
    ProjectMemberStatus,
    ProjectPermission,
    ProjectPermissionKey,
    ProjectRole,
    ProjectTeam,
    ProjectTeamMember,
)
from workhub.features.workspaces.models import Workspace
from workhub.utils import get_logger


log = get_logger(__name__)


class ProjectAccessDenied(Exception):
    """Raised by assert_project_access when the caller lacks access."""

    def __init__(self, project_id: str, detail: str):
        super().__init__(detail)
        self.project_id = project_id
        self.detail = detail


# ============================================================================
# Role defaults
# ============================================================================

_VIEW_PERMISSIONS = (
    ProjectPermissionKey.VIEW_PROJECT,
    ProjectPermissionKey.VIEW_TASKS,
    ProjectPermissionKey.VIEW_SPRINTS,
    ProjectPermissionKey.VIEW_DOCS,
    ProjectPermissionKey.VIEW_MEMBERS,
    ProjectPermissionKey.VIEW_TEAMS,
)

ROLE_PERMISSIONS: dict[ProjectMemberRole, tuple[ProjectPermissionKey, ...]] = {
    ProjectMemberRole.PROJECT_OWNER: ALL_PROJECT_PERMISSIONS,
    # Everything except deleting the project
    ProjectMemberRole.PROJECT_ADMIN: tuple(
        key for key in ALL_PROJECT_PERMISSIONS if key != ProjectPermissionKey.DELETE_PROJECT
    ),
    ProjectMemberRole.MEMBER: _VIEW_PERMISSIONS + (
        ProjectPermissionKey.CREATE_TASKS,
        ProjectPermissionKey.EDIT_TASKS,
    ),
    ProjectMemberRole.VIEWER: _VIEW_PERMISSIONS,
}

# Denormalized role names written alongside a role_id
ROLE_NAME_MAP: dict[str, ProjectMemberRole] = {
    "OWNER": ProjectMemberRole.PROJECT_OWNER,
    "ADMIN": ProjectMemberRole.PROJECT_ADMIN,
    "MEMBER": ProjectMemberRole.MEMBER,
    "VIEWER": ProjectMemberRole.VIEWER,
}

ORG_OVERRIDE_ROLES = frozenset({
    OrganizationRole.OWNER,
    OrganizationRole.ADMIN,
    OrganizationRole.MODERATOR,
})


def resolve_member_role(member: ProjectMember) -> ProjectMemberRole:
    """
    Resolve the canonical role of a membership record.

    The ``role`` enum field wins; otherwise ``role_name`` is mapped. Unknown
    or missing values resolve to MEMBER.
    """
    if member.role:
        try:
            return ProjectMemberRole(member.role)
        except ValueError:
            pass
    if member.role_name:
        return ROLE_NAME_MAP.get(member.role_name.upper(), ProjectMemberRole.MEMBER)
    return ProjectMemberRole.MEMBER


def _full_access(
    project_id: str,
    user_id: str,
    reason: PermissionSource,
    org_member_id: Optional[str] = None
) -> ProjectAccessResult:
    return ProjectAccessResult(
        project_id=project_id,
        user_id=user_id,
        has_access=True,
        role=ProjectMemberRole.PROJECT_OWNER,
        is_owner=True,
        is_admin=True,
        permissions=tuple(key.value for key in ALL_PROJECT_PERMISSIONS),
        allowed_route_keys=tuple(project_route_keys_for(ALL_PROJECT_PERMISSIONS)),
        source=reason,
        membership=SyntheticOverrideMember(
            reason=reason,
            role=ProjectMemberRole.PROJECT_OWNER.value,
            org_member_id=org_member_id,
        ),
    )


# ============================================================================
# Lookups
# ============================================================================

async def get_project_membership(
    db: AsyncSession,
    user_id: str,
    project_id: str
) -> Optional[ProjectMember]:
    """
    ACTIVE membership, falling back to any record that is not REMOVED.

    Older records may have no status at all.
    """
    stmt = (
        select(ProjectMember)
        .where(ProjectMember.project_id == project_id, ProjectMember.user_id == user_id)
        .order_by(ProjectMember.created_at)
    )
    result = await db.execute(stmt)
    members = result.scalars().all()

    for member in members:
        if member.status == ProjectMemberStatus.ACTIVE.value:
            return member
    for member in members:
        if member.status != ProjectMemberStatus.REMOVED.value:
            return member
    return None


async def _get_custom_role_permissions(
    db: AsyncSession,
    role_id: str,
    project_id: str
) -> list[str]:
    try:
        role_doc = await db.get(ProjectRole, role_id)
    except Exception:
        log.exception(f"Failed to load project role {role_id}; using role defaults only")
        return []

    if role_doc is None or not role_doc.permissions:
        return []
    if role_doc.project_id is not None and role_doc.project_id != project_id:
        log.warning(f"Project role {role_id} belongs to project {role_doc.project_id}, not {project_id}")
        return []
    return [str(key) for key in role_doc.permissions]


async def _get_team_memberships(
    db: AsyncSession,
    user_id: str,
    project_id: str
) -> Sequence[tuple[ProjectTeamMember, ProjectTeam]]:
    # Both sides pinned to this project so a team never leaks across projects
    stmt = (
        select(ProjectTeamMember, ProjectTeam)
        .join(ProjectTeam, ProjectTeam.id == ProjectTeamMember.team_id)
        .where(
            ProjectTeamMember.project_id == project_id,
            ProjectTeamMember.user_id == user_id,
            ProjectTeam.project_id == project_id,
        )
    )
    result = await db.execute(stmt)
    return [(row[0], row[1]) for row in result.all()]


async def _get_team_permissions(db: AsyncSession, project_id: str, team_ids: list[str]) -> list[str]:
    if not team_ids:
        return []
    stmt = select(ProjectPermission.permission_key).where(
        ProjectPermission.project_id == project_id,
        ProjectPermission.assigned_to_team_id.in_(team_ids),
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _get_direct_permissions(db: AsyncSession, project_id: str, user_id: str) -> list[str]:
    stmt = select(ProjectPermission.permission_key).where(
        ProjectPermission.project_id == project_id,
        ProjectPermission.assigned_to_user_id == user_id,
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# ============================================================================
# Main Resolver
# ============================================================================

async def resolve_user_project_access(
    db: AsyncSession,
    user_id: str,
    project_id: str
) -> ProjectAccessResult:
    """
    Resolve a user's project role, merged permissions and route keys.

    Never raises: a missing project or any store failure yields the
    zero-access result.
    """
    no_access = ProjectAccessResult.no_access(project_id, user_id)

    try:
        project = await db.get(Project, project_id)
        if project is None:
            return no_access
        workspace_id = project.workspace_id

        organization_id = None
        try:
            workspace = await db.get(Workspace, workspace_id)
            if workspace is not None:
                organization_id = workspace.organization_id
        except Exception:
            log.exception(f"Workspace lookup failed for project {project_id}; continuing without org context")

        # 1. Organization override
        if organization_id:
            try:
                org_member = await get_active_org_member(db, user_id, organization_id)
                if org_member is not None and org_member.role in ORG_OVERRIDE_ROLES:
                    return _full_access(project_id, user_id, PermissionSource.ORG_OVERRIDE, org_member.id)
            except Exception:
                log.exception(f"Org override check failed for user {user_id} on project {project_id}")

        # 2. Workspace admin override
        try:
            ws_member = await get_active_workspace_member(db, user_id, workspace_id)
            if ws_member is not None and is_workspace_admin_role(ws_member.role):
                return _full_access(project_id, user_id, PermissionSource.WORKSPACE_OVERRIDE)
        except Exception:
            log.exception(f"Workspace admin check failed for user {user_id} on project {project_id}")

        # 3. Direct project membership
        member = await get_project_membership(db, user_id, project_id)
        if member is None:
            return no_access

        # 4. Role
        role = resolve_member_role(member)

        # 5. Role defaults plus custom role document
        role_permissions = [key.value for key in ROLE_PERMISSIONS[role]]
        if member.role_id:
            role_permissions.extend(await _get_custom_role_permissions(db, member.role_id, project_id))

        # 6. Team permissions
        team_rows = await _get_team_memberships(db, user_id, project_id)
        team_ids = list(dict.fromkeys(team_member.team_id for team_member, _ in team_rows))
        team_permissions = await _get_team_permissions(db, project_id, team_ids)

        # 7. Direct user permissions
        direct_permissions = await _get_direct_permissions(db, project_id, user_id)

        # 8. Union, deduplicated in first-seen order
        permissions = tuple(dict.fromkeys(role_permissions + team_permissions + direct_permissions))

        teams = tuple(
            ProjectTeamAccess(team_id=team.id, team_name=team.name, team_role=team_member.team_role)
            for team_member, team in team_rows
        )

        # 9. Owner/admin flags
        is_owner = role == ProjectMemberRole.PROJECT_OWNER
        is_admin = role in (ProjectMemberRole.PROJECT_OWNER, ProjectMemberRole.PROJECT_ADMIN)
        if is_owner:
            assert_invariant(
                len(permissions) > 0,
                "PROJECT_OWNER_NO_PERMISSIONS",
                "Project owner should have permissions",
                {"project_id": project_id, "user_id": user_id},
            )

        # 10. Route keys
        return ProjectAccessResult(
            project_id=project_id,
            user_id=user_id,
            has_access=True,
            role=role,
            is_owner=is_owner,
            is_admin=is_admin,
            permissions=permissions,
            teams=teams,
            allowed_route_keys=tuple(project_route_keys_for(permissions)),
            source=PermissionSource.PROJECT_ROLE,
            membership=DirectMember(member_id=member.id, role=role.value),
        )

    except Exception:
        log.exception(f"Error resolving project access for user {user_id} in project {project_id}")
        return no_access


# ============================================================================
# Helper Functions
# ============================================================================

def has_project_permission(access: ProjectAccessResult, permission: ProjectPermissionKey | str) -> bool:
    """Owners and admins pass every check."""
    if access.is_owner or access.is_admin:
        return True
    key = permission.value if isinstance(permission, ProjectPermissionKey) else permission
    return key in access.permissions


async def is_project_member(db: AsyncSession, user_id: str, project_id: str) -> bool:
    """Quick membership check, ignoring overrides."""
    return await get_project_membership(db, user_id, project_id) is not None


async def assert_project_access(
    db: AsyncSession,
    user_id: str,
    project_id: str,
    required_permission: Optional[ProjectPermissionKey] = None
) -> ProjectAccessResult:
    """
    Resolve access and raise ProjectAccessDenied if it is insufficient.
    """
    access = await resolve_user_project_access(db, user_id, project_id)

    if not access.has_access:
        raise ProjectAccessDenied(project_id, "Not a project member")

    if required_permission and not has_project_permission(access, required_permission):
        raise ProjectAccessDenied(project_id, f"Missing permission {required_permission.value}")

    return access
