"""
Route guards.

Turn a resolved UserAccess into allow/redirect decisions for a concrete
path. Paths that match no route key are not governed here and are allowed.
"""
from typing import Optional

from workhub.features.access import route_map
from workhub.features.access.route_map import AppRouteKey
from workhub.features.access.schemas import RouteDecision, UserAccess


FORBIDDEN_PATH = "/403"
WELCOME_PATH = "/welcome"

FALLBACK_ORDER: tuple[AppRouteKey, ...] = (
    AppRouteKey.ORG_DASHBOARD,
    AppRouteKey.WORKSPACES,
    AppRouteKey.WELCOME,
    AppRouteKey.PROFILE,
)


def is_path_allowed(path: str, access: UserAccess) -> bool:
    route_key = route_map.route_key_for_path(path)
    if route_key is None:
        return True
    return route_key in access.allowed_route_keys


def is_route_key_allowed(route_key: AppRouteKey, access: UserAccess) -> bool:
    return route_key in access.allowed_route_keys


def check_route_access(path: str, access: UserAccess) -> RouteDecision:
    """
    Decide whether ``path`` may be rendered.

    Org routes for users without any org access go to the welcome page;
    anything else that is not allowed goes to the forbidden page.
    """
    route_key = route_map.route_key_for_path(path)
    if route_key is not None and route_map.is_org_route_key(route_key) and not access.has_department_access:
        return RouteDecision(allowed=False, redirect_to=WELCOME_PATH)

    if is_path_allowed(path, access):
        return RouteDecision(allowed=True)

    return RouteDecision(allowed=False, redirect_to=FORBIDDEN_PATH)


def get_fallback_route(access: UserAccess) -> str:
    """First allowed landing page, for redirects after a denial."""
    if not access.has_department_access:
        return WELCOME_PATH

    for route_key in FALLBACK_ORDER:
        if route_key in access.allowed_route_keys:
            return route_map.path_for_route_key(route_key)

    return WELCOME_PATH


def resolve_org_tab(requested_tab: Optional[str], access: UserAccess) -> Optional[str]:
    """
    Tab to show on the organization page.

    The requested tab if visible, else the first visible one, else None
    (the caller should deny the page).
    """
    visible_tabs = route_map.visible_org_tabs(access.allowed_route_keys)
    if not visible_tabs:
        return None
    if requested_tab and requested_tab in visible_tabs:
        return requested_tab
    return visible_tabs[0]
