"""Tests for the permission -> route key -> path map."""

from __future__ import annotations

import pytest

from workhub.features.access import route_map
from workhub.features.access.route_map import (
    AppRouteKey,
    ProjectRouteKey,
    WorkspaceContextRequired,
)
from workhub.features.org_permissions.models import OrgPermissionKey
from workhub.features.projects.models import ProjectPermissionKey


def test_every_route_key_has_metadata_and_path() -> None:
    for key in AppRouteKey:
        assert key in route_map.ROUTE_KEY_METADATA
        assert key in route_map.ROUTE_KEY_TO_PATH


def test_every_org_permission_maps_to_routes() -> None:
    for key in OrgPermissionKey:
        assert route_map.PERMISSION_TO_ROUTE_KEYS[key]


def test_route_keys_for_dedupes_in_first_seen_order() -> None:
    keys = route_map.route_keys_for([
        OrgPermissionKey.BILLING_VIEW,
        OrgPermissionKey.BILLING_MANAGE,
        OrgPermissionKey.AUDIT_VIEW,
    ])

    assert keys == [AppRouteKey.ORG_BILLING, AppRouteKey.ORG_USAGE, AppRouteKey.ORG_AUDIT]


def test_route_keys_for_ignores_unknown_permissions() -> None:
    assert route_map.route_keys_for(["org.unknown.key", "org.audit.view"]) == [AppRouteKey.ORG_AUDIT]
    assert route_map.route_keys_for([]) == []


def test_workspace_path_substitutes_workspace_id() -> None:
    path = route_map.path_for_route_key(AppRouteKey.WORKSPACE_TASKS, "ws1")

    assert path == "/workspaces/ws1/tasks"


def test_workspace_path_without_workspace_raises() -> None:
    with pytest.raises(WorkspaceContextRequired) as exc_info:
        route_map.path_for_route_key(AppRouteKey.WORKSPACE_HOME)

    assert exc_info.value.route_key == AppRouteKey.WORKSPACE_HOME


def test_paths_for_omits_workspace_routes_without_context() -> None:
    keys = [AppRouteKey.ORG_BILLING, AppRouteKey.WORKSPACE_HOME, AppRouteKey.PROFILE]

    assert route_map.paths_for(keys) == ["/organization?tab=billing", "/profile"]
    assert route_map.paths_for(keys, "ws9") == ["/organization?tab=billing", "/workspaces/ws9", "/profile"]


def test_route_categories() -> None:
    assert AppRouteKey.ORG_AUDIT in route_map.org_route_keys()
    assert AppRouteKey.WORKSPACE_PROJECTS in route_map.workspace_route_keys()
    assert AppRouteKey.WORKSPACE_HOME not in route_map.workspace_independent_route_keys()
    assert route_map.is_org_route_key(AppRouteKey.ORG_DASHBOARD)
    assert not route_map.is_org_route_key(AppRouteKey.WELCOME)
    assert route_map.all_route_keys() == list(AppRouteKey)


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/organization", AppRouteKey.ORG_DASHBOARD),
        ("/organization?tab=billing", AppRouteKey.ORG_BILLING),
        ("/organization?tab=audit", AppRouteKey.ORG_AUDIT),
        ("/organization?tab=audit&view=recent", AppRouteKey.ORG_AUDIT),
        ("/organization?tab=membersX", AppRouteKey.ORG_DASHBOARD),
        ("/organization/departments", AppRouteKey.ORG_DEPARTMENTS),
        ("/workspaces/abc123/tasks", AppRouteKey.WORKSPACE_TASKS),
        ("/workspaces/abc123", AppRouteKey.WORKSPACE_HOME),
        ("/workspaces/create", AppRouteKey.WORKSPACE_CREATE),
        ("/profile/password", AppRouteKey.PROFILE_PASSWORD),
        ("/nowhere", None),
    ],
)
def test_route_key_for_path(path: str, expected) -> None:
    assert route_map.route_key_for_path(path) == expected


def test_org_tabs_follow_allowed_route_keys() -> None:
    allowed = [AppRouteKey.ORG_BILLING, AppRouteKey.ORG_MEMBERS]

    assert route_map.visible_org_tabs(allowed) == ["members", "billing"]
    assert route_map.default_org_tab(allowed) == "members"
    assert route_map.can_access_org_tab("billing", allowed)
    assert not route_map.can_access_org_tab("audit", allowed)
    assert not route_map.can_access_org_tab("missing", allowed)
    assert route_map.default_org_tab([]) is None


def test_project_route_keys_for() -> None:
    keys = route_map.project_route_keys_for([
        ProjectPermissionKey.VIEW_PROJECT,
        ProjectPermissionKey.VIEW_TASKS,
        "custom.key",
        ProjectPermissionKey.EDIT_SETTINGS,
    ])

    assert keys == [
        ProjectRouteKey.PROJECT_DASHBOARD,
        ProjectRouteKey.PROJECT_TASKS,
        ProjectRouteKey.PROJECT_BACKLOG,
        ProjectRouteKey.PROJECT_SETTINGS,
    ]
