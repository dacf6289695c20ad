"""Tests for the explicit org permission grant service."""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from workhub.features.access.schemas import PermissionSource
from workhub.features.audit_logs.models import AuditLog
from workhub.features.org_permissions import service
from workhub.features.org_permissions.dependencies import (
    get_org_permissions,
    has_minimum_role,
    has_org_permission_explicit,
)
from workhub.features.org_permissions.models import (
    ALL_ORG_PERMISSIONS,
    OrgMemberPermission,
    OrgPermissionKey,
)
from workhub.features.org_permissions.service import GrantErrorReason, PermissionGrantError
from workhub.features.organizations.models import OrganizationRole


async def _grant_count(session_factory, org_member_id: str, key: str | None = None) -> int:
    async with session_factory() as db:
        stmt = select(func.count(OrgMemberPermission.id)).where(OrgMemberPermission.org_member_id == org_member_id)
        if key:
            stmt = stmt.where(OrgMemberPermission.permission_key == key)
        return (await db.execute(stmt)).scalar_one()


@pytest_asyncio.fixture()
async def org_setup(seed):
    org = await seed.org()
    owner = await seed.org_member(org, "owner", OrganizationRole.OWNER)
    admin = await seed.org_member(org, "admin", OrganizationRole.ADMIN)
    member = await seed.org_member(org, "member")
    return org, owner, admin, member


@pytest.mark.asyncio
async def test_owner_grants_permission(org_setup, session, session_factory) -> None:
    org, _, _, member = org_setup

    grant = await service.grant_permission(session, "owner", org.id, member.id, "org.billing.view")

    assert grant.permission_key == "org.billing.view"
    assert grant.granted_by == "owner"
    assert await _grant_count(session_factory, member.id) == 1

    async with session_factory() as db:
        entries = (await db.execute(select(AuditLog))).scalars().all()
    assert [(entry.action, entry.resource_type) for entry in entries] == [("grant", "org_permission")]


@pytest.mark.asyncio
async def test_duplicate_grant_is_rejected(org_setup, session, session_factory) -> None:
    org, _, _, member = org_setup
    await service.grant_permission(session, "owner", org.id, member.id, "org.audit.view")

    with pytest.raises(PermissionGrantError) as exc_info:
        await service.grant_permission(session, "owner", org.id, member.id, "org.audit.view")

    assert exc_info.value.reason == GrantErrorReason.ALREADY_GRANTED
    assert await _grant_count(session_factory, member.id, "org.audit.view") == 1


@pytest.mark.asyncio
async def test_revoke_of_missing_grant_is_not_found_and_changes_nothing(org_setup, session, session_factory) -> None:
    org, _, _, member = org_setup
    await service.grant_permission(session, "owner", org.id, member.id, "org.members.view")

    with pytest.raises(PermissionGrantError) as exc_info:
        await service.revoke_permission(session, "owner", org.id, member.id, "org.billing.view")

    assert exc_info.value.reason == GrantErrorReason.NOT_FOUND
    assert await _grant_count(session_factory, member.id) == 1


@pytest.mark.asyncio
async def test_revoke_removes_grant(org_setup, session, session_factory) -> None:
    org, _, _, member = org_setup
    await service.grant_permission(session, "owner", org.id, member.id, "org.members.view")

    await service.revoke_permission(session, "owner", org.id, member.id, "org.members.view")

    assert await _grant_count(session_factory, member.id) == 0


@pytest.mark.parametrize(
    ("actor", "reason"),
    [
        ("admin", GrantErrorReason.FORBIDDEN),
        ("member", GrantErrorReason.FORBIDDEN),
        ("stranger", GrantErrorReason.UNAUTHORIZED),
    ],
)
@pytest.mark.asyncio
async def test_only_owner_may_grant(org_setup, session, session_factory, actor, reason) -> None:
    org, _, _, member = org_setup

    with pytest.raises(PermissionGrantError) as exc_info:
        await service.grant_permission(session, actor, org.id, member.id, "org.billing.view")

    assert exc_info.value.reason == reason
    assert await _grant_count(session_factory, member.id) == 0


@pytest.mark.asyncio
async def test_owner_cannot_be_a_grant_target(org_setup, session) -> None:
    org, owner, _, _ = org_setup

    with pytest.raises(PermissionGrantError) as exc_info:
        await service.grant_permission(session, "owner", org.id, owner.id, "org.billing.view")

    assert exc_info.value.reason == GrantErrorReason.OWNER_TARGET


@pytest.mark.asyncio
async def test_owner_permissions_cannot_be_revoked_or_replaced(org_setup, session, session_factory) -> None:
    org, owner, _, _ = org_setup
    calls = [
        lambda: service.revoke_permission(session, "owner", org.id, owner.id, "org.billing.view"),
        lambda: service.bulk_grant_permissions(session, "owner", org.id, owner.id, ["org.audit.view"]),
        lambda: service.set_member_permissions(session, "owner", org.id, owner.id, []),
    ]

    for call in calls:
        with pytest.raises(PermissionGrantError) as exc_info:
            await call()
        assert exc_info.value.reason == GrantErrorReason.OWNER_TARGET

    assert await _grant_count(session_factory, owner.id) == 0
    access = await get_org_permissions(session, "owner", org.id)
    assert access[0] == list(ALL_ORG_PERMISSIONS)


@pytest.mark.asyncio
async def test_target_in_another_org_is_not_found(org_setup, seed, session) -> None:
    org, _, _, _ = org_setup
    other = await seed.org("Globex")
    outsider = await seed.org_member(other, "outsider")

    with pytest.raises(PermissionGrantError) as exc_info:
        await service.grant_permission(session, "owner", org.id, outsider.id, "org.billing.view")

    assert exc_info.value.reason == GrantErrorReason.MEMBER_NOT_FOUND


@pytest.mark.asyncio
async def test_unknown_key_is_rejected_before_any_lookup(org_setup, session) -> None:
    org, _, _, member = org_setup

    with pytest.raises(PermissionGrantError) as exc_info:
        await service.grant_permission(session, "stranger", org.id, member.id, "org.everything")

    assert exc_info.value.reason == GrantErrorReason.INVALID_PERMISSION


@pytest.mark.asyncio
async def test_bulk_grant_skips_held_keys(org_setup, session) -> None:
    org, _, _, member = org_setup
    await service.grant_permission(session, "owner", org.id, member.id, "org.billing.view")

    result = await service.bulk_grant_permissions(
        session, "owner", org.id, member.id, ["org.billing.view", "org.audit.view", "org.security.view"]
    )

    assert result.granted == 2
    assert result.skipped == 1
    assert result.permissions == (
        OrgPermissionKey.BILLING_VIEW,
        OrgPermissionKey.AUDIT_VIEW,
        OrgPermissionKey.SECURITY_VIEW,
    )


@pytest.mark.asyncio
async def test_bulk_grant_with_invalid_key_writes_nothing(org_setup, session, session_factory) -> None:
    org, _, _, member = org_setup

    with pytest.raises(PermissionGrantError):
        await service.bulk_grant_permissions(session, "owner", org.id, member.id, ["org.audit.view", "bogus"])

    assert await _grant_count(session_factory, member.id) == 0


@pytest.mark.asyncio
async def test_bulk_grant_is_atomic_on_store_failure(org_setup, session, session_factory, monkeypatch) -> None:
    org, _, _, member = org_setup

    async def _failing_commit():
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(session, "commit", _failing_commit)

    with pytest.raises(OperationalError):
        await service.bulk_grant_permissions(
            session, "owner", org.id, member.id, ["org.audit.view", "org.billing.view"]
        )

    assert await _grant_count(session_factory, member.id) == 0


@pytest.mark.asyncio
async def test_set_member_permissions_applies_diff(org_setup, session, session_factory) -> None:
    org, _, _, member = org_setup
    await service.bulk_grant_permissions(session, "owner", org.id, member.id, ["org.billing.view", "org.audit.view"])

    change = await service.set_member_permissions(
        session, "owner", org.id, member.id, ["org.audit.view", "org.members.view"]
    )

    assert change.granted == (OrgPermissionKey.MEMBERS_VIEW,)
    assert change.revoked == (OrgPermissionKey.BILLING_VIEW,)
    assert change.permissions == (OrgPermissionKey.MEMBERS_VIEW, OrgPermissionKey.AUDIT_VIEW)
    assert await _grant_count(session_factory, member.id) == 2
    assert await _grant_count(session_factory, member.id, "org.billing.view") == 0


@pytest.mark.asyncio
async def test_get_member_permissions(org_setup, session) -> None:
    org, owner, _, member = org_setup
    await service.grant_permission(session, "owner", org.id, member.id, "org.security.view")

    own = await service.get_member_permissions(session, "member", org.id, member.id)
    of_owner = await service.get_member_permissions(session, "member", org.id, owner.id)

    assert own.permissions == ["org.security.view"]
    assert not own.is_owner
    assert of_owner.is_owner
    assert of_owner.permissions == [key.value for key in ALL_ORG_PERMISSIONS]


@pytest.mark.asyncio
async def test_list_org_member_permissions_requires_owner_or_admin(org_setup, session) -> None:
    org, owner, admin, member = org_setup
    await service.grant_permission(session, "owner", org.id, member.id, "org.billing.view")

    summaries = await service.list_org_member_permissions(session, "admin", org.id)
    by_id = {summary.member_id: summary for summary in summaries}

    assert by_id[owner.id].is_owner
    assert by_id[member.id].permissions == ["org.billing.view"]
    assert by_id[admin.id].permissions == []

    with pytest.raises(PermissionGrantError) as exc_info:
        await service.list_org_member_permissions(session, "member", org.id)
    assert exc_info.value.reason == GrantErrorReason.FORBIDDEN


@pytest.mark.asyncio
async def test_explicit_model_falls_back_to_role_defaults(org_setup, session) -> None:
    """The explicit-grant model applies role defaults even without departments."""
    org, _, _, member = org_setup

    assert await has_org_permission_explicit(session, "admin", org.id, OrgPermissionKey.MEMBERS_MANAGE)
    assert not await has_org_permission_explicit(session, "admin", org.id, OrgPermissionKey.BILLING_MANAGE)
    assert await has_org_permission_explicit(session, "owner", org.id, OrgPermissionKey.BILLING_MANAGE)
    assert not await has_org_permission_explicit(session, "member", org.id, OrgPermissionKey.AUDIT_VIEW)

    await service.grant_permission(session, "owner", org.id, member.id, "org.audit.view")
    assert await has_org_permission_explicit(session, "member", org.id, OrgPermissionKey.AUDIT_VIEW)


@pytest.mark.asyncio
async def test_get_org_permissions_reports_source(org_setup, session) -> None:
    org, _, _, member = org_setup

    _, _, owner_source = await get_org_permissions(session, "owner", org.id)
    admin_keys, admin_role, admin_source = await get_org_permissions(session, "admin", org.id)
    _, _, stranger_source = await get_org_permissions(session, "stranger", org.id)

    assert owner_source == PermissionSource.OWNER
    assert admin_role == OrganizationRole.ADMIN
    assert admin_source == PermissionSource.ROLE_DEFAULT
    assert OrgPermissionKey.DEPARTMENTS_MANAGE in admin_keys
    assert stranger_source == PermissionSource.NONE

    await service.grant_permission(session, "owner", org.id, member.id, "org.billing.view")
    member_keys, _, member_source = await get_org_permissions(session, "member", org.id)
    assert member_keys == [OrgPermissionKey.BILLING_VIEW]
    assert member_source == PermissionSource.EXPLICIT_GRANT


def test_role_hierarchy() -> None:
    assert has_minimum_role(OrganizationRole.OWNER, OrganizationRole.ADMIN)
    assert has_minimum_role(OrganizationRole.MODERATOR, OrganizationRole.MODERATOR)
    assert not has_minimum_role(OrganizationRole.MEMBER, OrganizationRole.MODERATOR)
