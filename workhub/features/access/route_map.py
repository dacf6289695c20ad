"""
Route authorization map.

The only place where permissions are translated into navigable surfaces:

    permission key -> route key -> concrete path

Route keys are abstract identifiers; each carries static metadata saying
which category it belongs to and whether a workspace context is needed to
build its path.
"""
import enum
import re
from dataclasses import dataclass
from typing import Iterable, Optional
from urllib.parse import parse_qs

from workhub.features.org_permissions.models import OrgPermissionKey
from workhub.features.projects.models import ProjectPermissionKey


WORKSPACE_PLACEHOLDER = "[workspaceId]"


class WorkspaceContextRequired(ValueError):
    """Raised when a workspace-scoped route is resolved without a workspace id."""

    def __init__(self, route_key: "AppRouteKey"):
        super().__init__(f"Route {route_key.value} requires a workspace id")
        self.route_key = route_key


# ============================================================================
# Route Keys
# ============================================================================

class AppRouteKey(str, enum.Enum):
    # Organization routes (work without workspace)
    ORG_DASHBOARD = "ORG_DASHBOARD"
    ORG_MEMBERS = "ORG_MEMBERS"
    ORG_SETTINGS = "ORG_SETTINGS"
    ORG_BILLING = "ORG_BILLING"
    ORG_USAGE = "ORG_USAGE"
    ORG_AUDIT = "ORG_AUDIT"
    ORG_DEPARTMENTS = "ORG_DEPARTMENTS"
    ORG_SECURITY = "ORG_SECURITY"
    ORG_PERMISSIONS = "ORG_PERMISSIONS"

    # Workspace routes
    WORKSPACES = "WORKSPACES"
    WORKSPACE_CREATE = "WORKSPACE_CREATE"
    WORKSPACE_HOME = "WORKSPACE_HOME"
    WORKSPACE_TASKS = "WORKSPACE_TASKS"
    WORKSPACE_TEAMS = "WORKSPACE_TEAMS"
    WORKSPACE_PROGRAMS = "WORKSPACE_PROGRAMS"
    WORKSPACE_TIMELINE = "WORKSPACE_TIMELINE"
    WORKSPACE_SETTINGS = "WORKSPACE_SETTINGS"
    WORKSPACE_SPACES = "WORKSPACE_SPACES"
    WORKSPACE_PROJECTS = "WORKSPACE_PROJECTS"

    # Profile routes (always accessible to authenticated users)
    PROFILE = "PROFILE"
    PROFILE_ACCOUNT = "PROFILE_ACCOUNT"
    PROFILE_PASSWORD = "PROFILE_PASSWORD"

    # Welcome/onboarding
    WELCOME = "WELCOME"


class RouteCategory(str, enum.Enum):
    ORG = "org"
    WORKSPACE = "workspace"
    PROFILE = "profile"
    SYSTEM = "system"


@dataclass(frozen=True)
class RouteKeyMetadata:
    label: str
    description: str
    category: RouteCategory
    requires_workspace: bool


ROUTE_KEY_METADATA: dict[AppRouteKey, RouteKeyMetadata] = {
    # Org routes
    AppRouteKey.ORG_DASHBOARD: RouteKeyMetadata(
        "Organization Dashboard", "Organization overview and summary", RouteCategory.ORG, False
    ),
    AppRouteKey.ORG_MEMBERS: RouteKeyMetadata(
        "Members", "View and manage organization members", RouteCategory.ORG, False
    ),
    AppRouteKey.ORG_SETTINGS: RouteKeyMetadata(
        "Organization Settings", "Manage organization settings", RouteCategory.ORG, False
    ),
    AppRouteKey.ORG_BILLING: RouteKeyMetadata(
        "Billing", "View and manage billing", RouteCategory.ORG, False
    ),
    AppRouteKey.ORG_USAGE: RouteKeyMetadata(
        "Usage", "View organization usage metrics", RouteCategory.ORG, False
    ),
    AppRouteKey.ORG_AUDIT: RouteKeyMetadata(
        "Audit Logs", "View audit logs and activity", RouteCategory.ORG, False
    ),
    AppRouteKey.ORG_DEPARTMENTS: RouteKeyMetadata(
        "Departments", "Manage departments", RouteCategory.ORG, False
    ),
    AppRouteKey.ORG_SECURITY: RouteKeyMetadata(
        "Security", "View security settings", RouteCategory.ORG, False
    ),
    AppRouteKey.ORG_PERMISSIONS: RouteKeyMetadata(
        "Permissions", "Manage member permissions", RouteCategory.ORG, False
    ),

    # Workspace routes
    AppRouteKey.WORKSPACES: RouteKeyMetadata(
        "Workspaces", "View all workspaces", RouteCategory.WORKSPACE, False
    ),
    AppRouteKey.WORKSPACE_CREATE: RouteKeyMetadata(
        "Create Workspace", "Create a new workspace", RouteCategory.WORKSPACE, False
    ),
    AppRouteKey.WORKSPACE_HOME: RouteKeyMetadata(
        "Home", "Workspace home/dashboard", RouteCategory.WORKSPACE, True
    ),
    AppRouteKey.WORKSPACE_TASKS: RouteKeyMetadata(
        "My Spaces", "View and manage tasks", RouteCategory.WORKSPACE, True
    ),
    AppRouteKey.WORKSPACE_TEAMS: RouteKeyMetadata(
        "Teams", "View and manage teams", RouteCategory.WORKSPACE, True
    ),
    AppRouteKey.WORKSPACE_PROGRAMS: RouteKeyMetadata(
        "Programs", "View and manage programs", RouteCategory.WORKSPACE, True
    ),
    AppRouteKey.WORKSPACE_TIMELINE: RouteKeyMetadata(
        "Timeline", "View timeline", RouteCategory.WORKSPACE, True
    ),
    AppRouteKey.WORKSPACE_SETTINGS: RouteKeyMetadata(
        "Settings", "Workspace settings", RouteCategory.WORKSPACE, True
    ),
    AppRouteKey.WORKSPACE_SPACES: RouteKeyMetadata(
        "Spaces", "View and manage spaces", RouteCategory.WORKSPACE, True
    ),
    AppRouteKey.WORKSPACE_PROJECTS: RouteKeyMetadata(
        "Projects", "View and manage projects", RouteCategory.WORKSPACE, True
    ),

    # Profile routes
    AppRouteKey.PROFILE: RouteKeyMetadata(
        "Profile", "User profile", RouteCategory.PROFILE, False
    ),
    AppRouteKey.PROFILE_ACCOUNT: RouteKeyMetadata(
        "Account Info", "Account information settings", RouteCategory.PROFILE, False
    ),
    AppRouteKey.PROFILE_PASSWORD: RouteKeyMetadata(
        "Password", "Password settings", RouteCategory.PROFILE, False
    ),

    # System routes
    AppRouteKey.WELCOME: RouteKeyMetadata(
        "Welcome", "Welcome page", RouteCategory.SYSTEM, False
    ),
}


# ============================================================================
# Permission -> Route Key
# ============================================================================

PERMISSION_TO_ROUTE_KEYS: dict[OrgPermissionKey, tuple[AppRouteKey, ...]] = {
    # Billing
    OrgPermissionKey.BILLING_VIEW: (AppRouteKey.ORG_BILLING, AppRouteKey.ORG_USAGE),
    OrgPermissionKey.BILLING_MANAGE: (AppRouteKey.ORG_BILLING, AppRouteKey.ORG_USAGE),

    # Members
    OrgPermissionKey.MEMBERS_VIEW: (AppRouteKey.ORG_DASHBOARD, AppRouteKey.ORG_MEMBERS),
    OrgPermissionKey.MEMBERS_MANAGE: (AppRouteKey.ORG_DASHBOARD, AppRouteKey.ORG_MEMBERS),

    # Settings
    OrgPermissionKey.SETTINGS_MANAGE: (AppRouteKey.ORG_SETTINGS,),

    # Audit
    OrgPermissionKey.AUDIT_VIEW: (AppRouteKey.ORG_AUDIT,),
    OrgPermissionKey.COMPLIANCE_VIEW: (AppRouteKey.ORG_AUDIT,),

    # Departments
    OrgPermissionKey.DEPARTMENTS_MANAGE: (AppRouteKey.ORG_DEPARTMENTS,),

    # Security
    OrgPermissionKey.SECURITY_VIEW: (AppRouteKey.ORG_SECURITY,),

    # Workspaces
    OrgPermissionKey.WORKSPACE_CREATE: (AppRouteKey.WORKSPACES, AppRouteKey.WORKSPACE_CREATE),
    OrgPermissionKey.WORKSPACE_ASSIGN: (AppRouteKey.WORKSPACES,),

    # Permissions management
    OrgPermissionKey.PERMISSIONS_MANAGE: (AppRouteKey.ORG_PERMISSIONS,),
}


# ============================================================================
# Route Key -> Path
# ============================================================================

ROUTE_KEY_TO_PATH: dict[AppRouteKey, str] = {
    # Org routes (dashboard-level, no workspace prefix)
    AppRouteKey.ORG_DASHBOARD: "/organization",
    AppRouteKey.ORG_MEMBERS: "/organization?tab=members",
    AppRouteKey.ORG_SETTINGS: "/organization?tab=general",
    AppRouteKey.ORG_BILLING: "/organization?tab=billing",
    AppRouteKey.ORG_USAGE: "/organization/usage",
    AppRouteKey.ORG_AUDIT: "/organization?tab=audit",
    AppRouteKey.ORG_DEPARTMENTS: "/organization/departments",
    AppRouteKey.ORG_SECURITY: "/organization?tab=security",
    AppRouteKey.ORG_PERMISSIONS: "/organization?tab=permissions",

    # Workspace routes
    AppRouteKey.WORKSPACES: "/",
    AppRouteKey.WORKSPACE_CREATE: "/workspaces/create",
    AppRouteKey.WORKSPACE_HOME: "/workspaces/[workspaceId]",
    AppRouteKey.WORKSPACE_TASKS: "/workspaces/[workspaceId]/tasks",
    AppRouteKey.WORKSPACE_TEAMS: "/workspaces/[workspaceId]/teams",
    AppRouteKey.WORKSPACE_PROGRAMS: "/workspaces/[workspaceId]/programs",
    AppRouteKey.WORKSPACE_TIMELINE: "/workspaces/[workspaceId]/timeline",
    AppRouteKey.WORKSPACE_SETTINGS: "/workspaces/[workspaceId]/settings",
    AppRouteKey.WORKSPACE_SPACES: "/workspaces/[workspaceId]/spaces",
    AppRouteKey.WORKSPACE_PROJECTS: "/workspaces/[workspaceId]/projects",

    # Profile routes
    AppRouteKey.PROFILE: "/profile",
    AppRouteKey.PROFILE_ACCOUNT: "/profile/accountinfo",
    AppRouteKey.PROFILE_PASSWORD: "/profile/password",

    # System routes
    AppRouteKey.WELCOME: "/welcome",
}


# ============================================================================
# Org settings tabs
# ============================================================================

@dataclass(frozen=True)
class TabRouteMapping:
    tab: str
    route_key: AppRouteKey
    permission: OrgPermissionKey


ORG_SETTINGS_TABS: tuple[TabRouteMapping, ...] = (
    TabRouteMapping("general", AppRouteKey.ORG_SETTINGS, OrgPermissionKey.SETTINGS_MANAGE),
    TabRouteMapping("members", AppRouteKey.ORG_MEMBERS, OrgPermissionKey.MEMBERS_VIEW),
    TabRouteMapping("security", AppRouteKey.ORG_SECURITY, OrgPermissionKey.SECURITY_VIEW),
    TabRouteMapping("departments", AppRouteKey.ORG_DEPARTMENTS, OrgPermissionKey.DEPARTMENTS_MANAGE),
    TabRouteMapping("billing", AppRouteKey.ORG_BILLING, OrgPermissionKey.BILLING_VIEW),
    TabRouteMapping("audit", AppRouteKey.ORG_AUDIT, OrgPermissionKey.AUDIT_VIEW),
    TabRouteMapping("permissions", AppRouteKey.ORG_PERMISSIONS, OrgPermissionKey.PERMISSIONS_MANAGE),
)


# ============================================================================
# Helper Functions
# ============================================================================

def route_keys_for(permissions: Iterable[OrgPermissionKey | str]) -> list[AppRouteKey]:
    """
    Get all route keys granted by a set of permissions.

    Keys are returned once each, in the order they are first granted.
    Permission strings outside the enumeration grant nothing.
    """
    route_keys: dict[AppRouteKey, None] = {}
    for permission in permissions:
        try:
            key = OrgPermissionKey(permission)
        except ValueError:
            continue
        for route_key in PERMISSION_TO_ROUTE_KEYS.get(key, ()):
            route_keys.setdefault(route_key, None)
    return list(route_keys)


def route_requires_workspace(key: AppRouteKey) -> bool:
    """Check if a route key requires workspace context."""
    metadata = ROUTE_KEY_METADATA.get(key)
    return metadata.requires_workspace if metadata else False


def path_for_route_key(key: AppRouteKey, workspace_id: Optional[str] = None) -> str:
    """
    Get the concrete path for a route key.

    Raises:
        WorkspaceContextRequired: if the route needs a workspace and none is given
    """
    path = ROUTE_KEY_TO_PATH[key]
    if route_requires_workspace(key):
        if not workspace_id:
            raise WorkspaceContextRequired(key)
        path = path.replace(WORKSPACE_PLACEHOLDER, workspace_id)
    return path


def paths_for(route_keys: Iterable[AppRouteKey], workspace_id: Optional[str] = None) -> list[str]:
    """
    Get concrete paths for a set of route keys.

    Workspace-scoped keys are left out when no workspace id is supplied;
    callers without a workspace context only get the route-key list for them.
    """
    paths = []
    for key in route_keys:
        if route_requires_workspace(key) and not workspace_id:
            continue
        paths.append(path_for_route_key(key, workspace_id))
    return paths


def all_route_keys() -> list[AppRouteKey]:
    """All route keys, used for the OWNER super-role."""
    return list(AppRouteKey)


def workspace_independent_route_keys() -> list[AppRouteKey]:
    return [key for key, meta in ROUTE_KEY_METADATA.items() if not meta.requires_workspace]


def org_route_keys() -> list[AppRouteKey]:
    return [key for key, meta in ROUTE_KEY_METADATA.items() if meta.category == RouteCategory.ORG]


def workspace_route_keys() -> list[AppRouteKey]:
    return [key for key, meta in ROUTE_KEY_METADATA.items() if meta.category == RouteCategory.WORKSPACE]


def is_org_route_key(key: AppRouteKey) -> bool:
    metadata = ROUTE_KEY_METADATA.get(key)
    return metadata is not None and metadata.category == RouteCategory.ORG


def path_matches_route_key(path: str, key: AppRouteKey) -> bool:
    """Check if a concrete path matches a route key pattern."""
    pattern = ROUTE_KEY_TO_PATH[key]

    if path == pattern:
        return True

    # Tab-based routes (e.g. /organization?tab=billing)
    if "?tab=" in pattern:
        base_path, tab_query = pattern.split("?", 1)
        path_base, _, path_query = path.partition("?")
        if path_base == base_path:
            return parse_qs(path_query).get("tab") == parse_qs(tab_query)["tab"]
        return False

    # Workspace-scoped routes
    if WORKSPACE_PLACEHOLDER in pattern:
        regex = "^" + re.escape(pattern).replace(re.escape(WORKSPACE_PLACEHOLDER), "[^/]+") + r"(?:\?.*)?$"
        return re.match(regex, path) is not None

    return path.split("?", 1)[0] == pattern


def route_key_for_path(path: str) -> Optional[AppRouteKey]:
    """
    Get the route key for a concrete path.

    Tab routes are checked before the bare /organization dashboard so a
    tab URL resolves to its tab.
    """
    candidates = sorted(ROUTE_KEY_TO_PATH, key=lambda k: "?tab=" not in ROUTE_KEY_TO_PATH[k])
    for key in candidates:
        if path_matches_route_key(path, key):
            return key
    return None


def visible_org_tabs(allowed_route_keys: Iterable[AppRouteKey]) -> list[str]:
    allowed = set(allowed_route_keys)
    return [tab.tab for tab in ORG_SETTINGS_TABS if tab.route_key in allowed]


def default_org_tab(allowed_route_keys: Iterable[AppRouteKey]) -> Optional[str]:
    tabs = visible_org_tabs(allowed_route_keys)
    return tabs[0] if tabs else None


def can_access_org_tab(tab: str, allowed_route_keys: Iterable[AppRouteKey]) -> bool:
    for mapping in ORG_SETTINGS_TABS:
        if mapping.tab == tab:
            return mapping.route_key in set(allowed_route_keys)
    return False


# ============================================================================
# Project route keys
# ============================================================================

class ProjectRouteKey(str, enum.Enum):
    PROJECT_DASHBOARD = "PROJECT_DASHBOARD"
    PROJECT_TASKS = "PROJECT_TASKS"
    PROJECT_BACKLOG = "PROJECT_BACKLOG"
    PROJECT_SPRINTS = "PROJECT_SPRINTS"
    PROJECT_DOCS = "PROJECT_DOCS"
    PROJECT_MEMBERS = "PROJECT_MEMBERS"
    PROJECT_TEAMS = "PROJECT_TEAMS"
    PROJECT_SETTINGS = "PROJECT_SETTINGS"


PROJECT_PERMISSION_TO_ROUTE_KEYS: dict[ProjectPermissionKey, tuple[ProjectRouteKey, ...]] = {
    ProjectPermissionKey.VIEW_PROJECT: (ProjectRouteKey.PROJECT_DASHBOARD,),
    ProjectPermissionKey.VIEW_TASKS: (ProjectRouteKey.PROJECT_TASKS, ProjectRouteKey.PROJECT_BACKLOG),
    ProjectPermissionKey.VIEW_SPRINTS: (ProjectRouteKey.PROJECT_SPRINTS,),
    ProjectPermissionKey.VIEW_DOCS: (ProjectRouteKey.PROJECT_DOCS,),
    ProjectPermissionKey.VIEW_MEMBERS: (ProjectRouteKey.PROJECT_MEMBERS,),
    ProjectPermissionKey.MANAGE_TEAMS: (ProjectRouteKey.PROJECT_TEAMS,),
    ProjectPermissionKey.EDIT_SETTINGS: (ProjectRouteKey.PROJECT_SETTINGS,),
}


def project_route_keys_for(permissions: Iterable[ProjectPermissionKey | str]) -> list[ProjectRouteKey]:
    """Project route keys unlocked by a set of project permissions."""
    route_keys: dict[ProjectRouteKey, None] = {}
    for permission in permissions:
        try:
            key = ProjectPermissionKey(permission)
        except ValueError:
            continue
        for route_key in PROJECT_PERMISSION_TO_ROUTE_KEYS.get(key, ()):
            route_keys.setdefault(route_key, None)
    return list(route_keys)
