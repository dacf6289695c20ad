"""Repeated resolution returns the same answer and writes nothing."""

from __future__ import annotations

import pytest
from sqlalchemy import event

from workhub.features.access.org_access import resolve_user_org_access
from workhub.features.access.project_access import resolve_user_project_access
from workhub.features.access.user_access import resolve_user_access
from workhub.features.access.workspace_access import resolve_user_workspace_access
from workhub.features.org_permissions.models import OrgPermissionKey
from workhub.features.organizations.models import OrganizationRole


WRITE_VERBS = ("INSERT", "UPDATE", "DELETE")


@pytest.mark.parametrize("user_id", ["owner", "member", "stranger"])
@pytest.mark.asyncio
async def test_repeated_resolution_is_stable_and_read_only(seed, session, engine, user_id) -> None:
    org = await seed.org()
    await seed.org_member(org, "owner", OrganizationRole.OWNER)
    member = await seed.org_member(org, "member")
    await seed.assign(member, await seed.department(org, "Audit", (OrgPermissionKey.AUDIT_VIEW,)))
    workspace = await seed.workspace(org)
    await seed.workspace_member(workspace, "member", "MEMBER")
    project = await seed.project(workspace)
    await seed.project_member(project, "member", role="VIEWER")

    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    async def _resolve_all():
        return (
            await resolve_user_org_access(session, user_id, org.id, workspace.id),
            await resolve_user_workspace_access(session, user_id, workspace.id),
            await resolve_user_project_access(session, user_id, project.id),
            await resolve_user_access(session, user_id, org.id, workspace.id),
        )

    event.listen(engine.sync_engine, "before_cursor_execute", _record)
    try:
        first = await _resolve_all()
        second = await _resolve_all()
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", _record)

    assert first == second
    assert statements
    assert not any(statement.lstrip().upper().startswith(WRITE_VERBS) for statement in statements)
