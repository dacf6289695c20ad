"""
Explicit org permission grant service.

Rules:
- Only the organization OWNER may grant or revoke, checked against the
  OrganizationMember record (not against departments).
- Permissions are explicit records; OWNER implicitly has all of them and
  can never be the target of a grant or revoke.
- Mutations fail loud: store errors roll back and propagate.
- Bulk grant and set-replace write their whole diff in one transaction.
"""
import enum
from typing import Iterable
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from workhub.features.access.org_access import get_active_org_member
from workhub.features.audit_logs.service import record_audit_log
from workhub.features.org_permissions.models import (
    ALL_ORG_PERMISSIONS,
    OrgMemberPermission,
    OrgPermissionKey,
    parse_org_permission,
)
from workhub.features.org_permissions.schemas import (
    BulkGrantResult,
    MemberPermissionsResponse,
    OrgMemberPermissionSummary,
    PermissionSetChange,
)
from workhub.features.organizations.models import (
    OrganizationMember,
    OrganizationRole,
    OrgMemberStatus,
)
from workhub.utils import get_logger


log = get_logger(__name__)

RESOURCE_TYPE = "org_permission"


class GrantErrorReason(str, enum.Enum):
    UNAUTHORIZED = "UNAUTHORIZED"              # actor is not an active member
    FORBIDDEN = "FORBIDDEN"                    # actor lacks the required role
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"      # target missing or in another org
    OWNER_TARGET = "OWNER_TARGET"              # OWNER permissions are immutable
    INVALID_PERMISSION = "INVALID_PERMISSION"
    ALREADY_GRANTED = "ALREADY_GRANTED"
    NOT_FOUND = "NOT_FOUND"                    # revoke of a missing grant


class PermissionGrantError(Exception):
    """Typed rejection of a grant-service call."""

    def __init__(self, reason: GrantErrorReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


# ============================================================================
# Checks
# ============================================================================

def _validate_keys(permission_keys: Iterable[str]) -> list[OrgPermissionKey]:
    keys = []
    for raw_key in permission_keys:
        key = parse_org_permission(raw_key)
        if key is None:
            raise PermissionGrantError(
                GrantErrorReason.INVALID_PERMISSION,
                f"Unknown permission key: {raw_key}"
            )
        keys.append(key)
    return keys


async def _require_actor(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    allowed_roles: frozenset[OrganizationRole]
) -> OrganizationMember:
    actor = await get_active_org_member(db, actor_user_id, org_id)
    if actor is None:
        raise PermissionGrantError(GrantErrorReason.UNAUTHORIZED, "Not a member of this organization")
    if actor.role not in allowed_roles:
        allowed = " or ".join(sorted(role.value for role in allowed_roles))
        raise PermissionGrantError(GrantErrorReason.FORBIDDEN, f"Forbidden - requires {allowed}")
    return actor


async def _require_target(
    db: AsyncSession,
    org_id: str,
    org_member_id: str,
    allow_owner: bool = False
) -> OrganizationMember:
    target = await db.get(OrganizationMember, org_member_id)
    if target is None or target.organization_id != org_id:
        raise PermissionGrantError(GrantErrorReason.MEMBER_NOT_FOUND, "Member not found")
    if not allow_owner and target.role == OrganizationRole.OWNER:
        raise PermissionGrantError(GrantErrorReason.OWNER_TARGET, "OWNER already has all permissions")
    return target


_OWNER_ONLY = frozenset({OrganizationRole.OWNER})
_OWNER_OR_ADMIN = frozenset({OrganizationRole.OWNER, OrganizationRole.ADMIN})
_ANY_ROLE = frozenset(OrganizationRole)


async def _current_keys(db: AsyncSession, org_member_id: str) -> dict[str, OrgMemberPermission]:
    stmt = select(OrgMemberPermission).where(OrgMemberPermission.org_member_id == org_member_id)
    result = await db.execute(stmt)
    return {grant.permission_key: grant for grant in result.scalars().all()}


def _ordered(keys: Iterable[str | OrgPermissionKey]) -> tuple[OrgPermissionKey, ...]:
    wanted = {OrgPermissionKey(key) for key in keys if parse_org_permission(key) is not None}
    return tuple(key for key in ALL_ORG_PERMISSIONS if key in wanted)


async def _commit(db: AsyncSession) -> None:
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        raise


# ============================================================================
# Mutations
# ============================================================================

async def grant_permission(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    org_member_id: str,
    permission_key: str
) -> OrgMemberPermission:
    """
    Grant one permission to an org member.

    Raises:
        PermissionGrantError: on any rejected precondition
        SQLAlchemyError: if the store fails (after rollback)
    """
    (key,) = _validate_keys([permission_key])
    await _require_actor(db, actor_user_id, org_id, _OWNER_ONLY)
    await _require_target(db, org_id, org_member_id)

    existing = await _current_keys(db, org_member_id)
    if key.value in existing:
        raise PermissionGrantError(GrantErrorReason.ALREADY_GRANTED, "Permission already granted")

    grant = OrgMemberPermission(
        org_member_id=org_member_id,
        permission_key=key.value,
        granted_by=actor_user_id,
    )
    db.add(grant)
    record_audit_log(
        db,
        actor_user_id,
        action="grant",
        resource_type=RESOURCE_TYPE,
        resource_id=org_member_id,
        organization_id=org_id,
        details={"permission_key": key.value},
    )

    try:
        await db.commit()
    except IntegrityError:
        # Concurrent grant of the same key won the race
        await db.rollback()
        raise PermissionGrantError(GrantErrorReason.ALREADY_GRANTED, "Permission already granted")
    except SQLAlchemyError:
        await db.rollback()
        raise

    log.info(f"Granted {key.value} to org member {org_member_id} in org {org_id} by {actor_user_id}")
    return grant


async def revoke_permission(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    org_member_id: str,
    permission_key: str
) -> None:
    """
    Revoke one permission. A missing grant is reported, never ignored.

    Raises:
        PermissionGrantError: NOT_FOUND if the grant does not exist
    """
    (key,) = _validate_keys([permission_key])
    await _require_actor(db, actor_user_id, org_id, _OWNER_ONLY)
    await _require_target(db, org_id, org_member_id)

    existing = await _current_keys(db, org_member_id)
    grant = existing.get(key.value)
    if grant is None:
        raise PermissionGrantError(GrantErrorReason.NOT_FOUND, "Permission not found")

    await db.delete(grant)
    record_audit_log(
        db,
        actor_user_id,
        action="revoke",
        resource_type=RESOURCE_TYPE,
        resource_id=org_member_id,
        organization_id=org_id,
        details={"permission_key": key.value},
    )
    await _commit(db)

    log.info(f"Revoked {key.value} from org member {org_member_id} in org {org_id} by {actor_user_id}")


async def bulk_grant_permissions(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    org_member_id: str,
    permission_keys: list[str]
) -> BulkGrantResult:
    """
    Grant every key the member does not already hold.

    All keys are validated up front and the missing grants are written in a
    single transaction: either all of them land or none do.
    """
    keys = _validate_keys(permission_keys)
    await _require_actor(db, actor_user_id, org_id, _OWNER_ONLY)
    await _require_target(db, org_id, org_member_id)

    existing = await _current_keys(db, org_member_id)
    to_grant = [key for key in dict.fromkeys(keys) if key.value not in existing]

    for key in to_grant:
        db.add(OrgMemberPermission(
            org_member_id=org_member_id,
            permission_key=key.value,
            granted_by=actor_user_id,
        ))
    if to_grant:
        record_audit_log(
            db,
            actor_user_id,
            action="bulk_grant",
            resource_type=RESOURCE_TYPE,
            resource_id=org_member_id,
            organization_id=org_id,
            details={"permission_keys": [key.value for key in to_grant]},
        )
    await _commit(db)

    log.info(f"Bulk granted {len(to_grant)} permission(s) to org member {org_member_id} in org {org_id}")
    return BulkGrantResult(
        granted=len(to_grant),
        skipped=len(permission_keys) - len(to_grant),
        permissions=_ordered(list(existing) + [key.value for key in to_grant]),
    )


async def set_member_permissions(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    org_member_id: str,
    permission_keys: list[str]
) -> PermissionSetChange:
    """
    Replace the member's explicit grants with exactly ``permission_keys``.

    Computes the diff against current state and applies every revoke and
    grant in one transaction.
    """
    target_keys = set(_validate_keys(permission_keys))
    await _require_actor(db, actor_user_id, org_id, _OWNER_ONLY)
    await _require_target(db, org_id, org_member_id)

    existing = await _current_keys(db, org_member_id)
    current_keys = {key for key in map(parse_org_permission, existing) if key is not None}

    to_revoke = _ordered(current_keys - target_keys)
    to_grant = _ordered(target_keys - current_keys)

    if to_revoke:
        await db.execute(
            delete(OrgMemberPermission).where(
                OrgMemberPermission.org_member_id == org_member_id,
                OrgMemberPermission.permission_key.in_([key.value for key in to_revoke]),
            )
        )
    for key in to_grant:
        db.add(OrgMemberPermission(
            org_member_id=org_member_id,
            permission_key=key.value,
            granted_by=actor_user_id,
        ))
    if to_grant or to_revoke:
        record_audit_log(
            db,
            actor_user_id,
            action="set_permissions",
            resource_type=RESOURCE_TYPE,
            resource_id=org_member_id,
            organization_id=org_id,
            details={
                "granted": [key.value for key in to_grant],
                "revoked": [key.value for key in to_revoke],
            },
        )
    await _commit(db)

    log.info(
        f"Set permissions for org member {org_member_id} in org {org_id}: "
        f"+{len(to_grant)} -{len(to_revoke)}"
    )
    return PermissionSetChange(
        granted=to_grant,
        revoked=to_revoke,
        permissions=_ordered(target_keys),
    )


# ============================================================================
# Reads
# ============================================================================

async def get_member_permissions(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str,
    org_member_id: str
) -> MemberPermissionsResponse:
    """Explicit grants of one member; OWNER reports the full enumeration."""
    await _require_actor(db, actor_user_id, org_id, _ANY_ROLE)
    target = await _require_target(db, org_id, org_member_id, allow_owner=True)

    if target.role == OrganizationRole.OWNER:
        return MemberPermissionsResponse(
            member_id=org_member_id,
            permissions=[key.value for key in ALL_ORG_PERMISSIONS],
            is_owner=True,
        )

    existing = await _current_keys(db, org_member_id)
    return MemberPermissionsResponse(
        member_id=org_member_id,
        permissions=list(existing),
        is_owner=False,
    )


async def list_org_member_permissions(
    db: AsyncSession,
    actor_user_id: str,
    org_id: str
) -> list[OrgMemberPermissionSummary]:
    """Every active member with their explicit grants. OWNER or ADMIN only."""
    await _require_actor(db, actor_user_id, org_id, _OWNER_OR_ADMIN)

    stmt = (
        select(OrganizationMember)
        .where(
            OrganizationMember.organization_id == org_id,
            OrganizationMember.status == OrgMemberStatus.ACTIVE,
        )
        .order_by(OrganizationMember.created_at)
    )
    result = await db.execute(stmt)
    members = result.scalars().all()

    permissions_by_member: dict[str, list[str]] = {}
    member_ids = [member.id for member in members]
    if member_ids:
        stmt = select(OrgMemberPermission).where(OrgMemberPermission.org_member_id.in_(member_ids))
        result = await db.execute(stmt)
        for grant in result.scalars().all():
            permissions_by_member.setdefault(grant.org_member_id, []).append(grant.permission_key)

    summaries = []
    for member in members:
        is_owner = member.role == OrganizationRole.OWNER
        summaries.append(OrgMemberPermissionSummary(
            member_id=member.id,
            name=member.name or member.email,
            email=member.email,
            role=member.role,
            is_owner=is_owner,
            permissions=(
                [key.value for key in ALL_ORG_PERMISSIONS]
                if is_owner
                else permissions_by_member.get(member.id, [])
            ),
        ))
    return summaries
