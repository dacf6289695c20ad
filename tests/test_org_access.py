"""Tests for the department-driven organization access resolver."""

from __future__ import annotations

import pytest
from sqlalchemy import event

from workhub.features.access.org_access import (
    can_access_org_route_key,
    has_any_org_access,
    has_org_permission_from_access,
    resolve_user_org_access,
)
from workhub.features.access.route_map import AppRouteKey
from workhub.features.access.schemas import PermissionSource
from workhub.features.org_permissions.models import ALL_ORG_PERMISSIONS, OrgPermissionKey
from workhub.features.organizations.models import OrganizationRole, OrgMemberStatus


@pytest.mark.asyncio
async def test_owner_gets_everything_without_department_lookups(seed, session, engine) -> None:
    """OWNER resolves to the full enumeration and never touches department tables."""
    org = await seed.org()
    owner = await seed.org_member(org, "u1", OrganizationRole.OWNER)

    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", _record)
    try:
        access = await resolve_user_org_access(session, "u1", org.id)
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", _record)

    assert access.is_owner
    assert access.org_member_id == owner.id
    assert access.permissions == ALL_ORG_PERMISSIONS
    assert access.allowed_route_keys == tuple(AppRouteKey)
    assert access.has_department_access
    assert access.source == PermissionSource.OWNER
    assert not any("org_member_departments" in statement for statement in statements)
    assert not any("department_permissions" in statement for statement in statements)


@pytest.mark.asyncio
async def test_owner_bypass_ignores_department_state(seed, session) -> None:
    org = await seed.org()
    owner = await seed.org_member(org, "u1", OrganizationRole.OWNER)
    empty = await seed.department(org, "Empty")
    await seed.assign(owner, empty)

    access = await resolve_user_org_access(session, "u1", org.id)

    assert access.permissions == ALL_ORG_PERMISSIONS


@pytest.mark.asyncio
async def test_member_without_department_has_zero_access(seed, session) -> None:
    org = await seed.org()
    member = await seed.org_member(org, "u2", OrganizationRole.ADMIN)

    access = await resolve_user_org_access(session, "u2", org.id)

    assert access.org_member_id == member.id
    assert access.role == OrganizationRole.ADMIN
    assert access.permissions == ()
    assert access.allowed_route_keys == ()
    assert access.allowed_paths == ()
    assert not access.has_department_access
    assert not has_any_org_access(access)


@pytest.mark.asyncio
async def test_billing_department_scenario(seed, session) -> None:
    org = await seed.org()
    await seed.org_member(org, "u1", OrganizationRole.OWNER)
    member = await seed.org_member(org, "u2")
    billing = await seed.department(org, "Billing", (OrgPermissionKey.BILLING_VIEW,))
    await seed.assign(member, billing)

    access = await resolve_user_org_access(session, "u2", org.id)

    assert access.permissions == (OrgPermissionKey.BILLING_VIEW,)
    assert not access.is_owner
    assert access.department_ids == (billing.id,)
    assert access.allowed_route_keys == (AppRouteKey.ORG_BILLING, AppRouteKey.ORG_USAGE)
    assert access.allowed_paths == ("/organization?tab=billing", "/organization/usage")
    assert access.source == PermissionSource.DEPARTMENT
    assert has_org_permission_from_access(access, OrgPermissionKey.BILLING_VIEW)
    assert not has_org_permission_from_access(access, OrgPermissionKey.BILLING_MANAGE)
    assert can_access_org_route_key(access, AppRouteKey.ORG_BILLING)
    assert not can_access_org_route_key(access, AppRouteKey.ORG_AUDIT)


@pytest.mark.asyncio
async def test_permissions_are_the_union_of_departments(seed, session) -> None:
    org = await seed.org()
    member = await seed.org_member(org, "u2")
    d1 = await seed.department(org, "D1", (OrgPermissionKey.BILLING_VIEW, OrgPermissionKey.MEMBERS_VIEW))
    d2 = await seed.department(org, "D2", (OrgPermissionKey.MEMBERS_VIEW, OrgPermissionKey.AUDIT_VIEW))
    await seed.assign(member, d1)
    await seed.assign(member, d2)

    access = await resolve_user_org_access(session, "u2", org.id)

    assert set(access.permissions) == {
        OrgPermissionKey.BILLING_VIEW,
        OrgPermissionKey.MEMBERS_VIEW,
        OrgPermissionKey.AUDIT_VIEW,
    }
    assert len(access.permissions) == 3


@pytest.mark.asyncio
async def test_department_with_no_permissions_still_counts_as_access(seed, session) -> None:
    org = await seed.org()
    member = await seed.org_member(org, "u2")
    await seed.assign(member, await seed.department(org, "Empty"))

    access = await resolve_user_org_access(session, "u2", org.id)

    assert access.has_department_access
    assert access.permissions == ()


@pytest.mark.asyncio
async def test_unknown_department_keys_are_ignored(seed, session) -> None:
    org = await seed.org()
    member = await seed.org_member(org, "u2")
    department = await seed.department(org, "Legacy", ("org.legacy.key", OrgPermissionKey.SECURITY_VIEW))
    await seed.assign(member, department)

    access = await resolve_user_org_access(session, "u2", org.id)

    assert access.permissions == (OrgPermissionKey.SECURITY_VIEW,)


@pytest.mark.asyncio
async def test_department_of_another_org_is_ignored(seed, session) -> None:
    org = await seed.org("Acme")
    other = await seed.org("Globex")
    member = await seed.org_member(org, "u2")
    foreign = await seed.department(other, "Foreign", (OrgPermissionKey.BILLING_MANAGE,))
    await seed.assign(member, foreign)

    access = await resolve_user_org_access(session, "u2", org.id)

    assert access.permissions == ()
    assert not access.has_department_access


@pytest.mark.asyncio
async def test_workspace_paths_need_workspace_context(seed, session) -> None:
    org = await seed.org()
    await seed.org_member(org, "u1", OrganizationRole.OWNER)

    without_ws = await resolve_user_org_access(session, "u1", org.id)
    with_ws = await resolve_user_org_access(session, "u1", org.id, "ws1")

    assert "/workspaces/ws1/tasks" not in without_ws.allowed_paths
    assert "/workspaces/ws1/tasks" in with_ws.allowed_paths
    assert AppRouteKey.WORKSPACE_TASKS in without_ws.allowed_route_keys


@pytest.mark.asyncio
async def test_non_member_and_inactive_member_have_no_access(seed, session) -> None:
    org = await seed.org()
    await seed.org_member(org, "gone", OrganizationRole.OWNER, OrgMemberStatus.INACTIVE)

    stranger = await resolve_user_org_access(session, "nobody", org.id)
    inactive = await resolve_user_org_access(session, "gone", org.id)

    assert stranger.org_member_id is None
    assert not inactive.is_owner
    assert inactive.permissions == ()


@pytest.mark.asyncio
async def test_store_failure_fails_closed(failing_session) -> None:
    access = await resolve_user_org_access(failing_session, "u1", "org1")

    assert access.organization_id == "org1"
    assert access.permissions == ()
    assert not access.is_owner
    assert access.source == PermissionSource.NONE
