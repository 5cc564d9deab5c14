"""
Role layout dispatch — which shell, dashboard and navigation a role gets.

Every role maps to exactly one RoleLayout. ``layout_for`` handles the five
known roles and then an explicit fallback for anything else (a profile with
no role yet, or a role added to the identity provider before this map): the
fallback gets the restricted layout with the dashboard only, never another
role's navigation.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class NavItem:
    label: str
    href: str
    icon: str
    end: bool = True

    def to_dict(self) -> dict:
        return {"label": self.label, "href": self.href, "icon": self.icon, "end": self.end}


@dataclass(frozen=True)
class RoleLayout:
    layout: str
    dashboard: str
    nav_items: tuple[NavItem, ...] = field(default_factory=tuple)

    def to_dict(self, mobile_limit: int = 4) -> dict:
        return {
            "layout": self.layout,
            "dashboard": self.dashboard,
            "nav_items": [item.to_dict() for item in self.nav_items],
            "mobile_nav_items": [
                item.to_dict() for item in self.nav_items if item.label != "Dashboard"
            ][:mobile_limit],
        }


_DASHBOARD = NavItem("Dashboard", "/dashboard", "layout-dashboard")
_DOCUMENTS = NavItem("Documents", "/documents", "package")
_SUBMISSIONS = NavItem("Submissions", "/submissions", "file-text")
_USERS = NavItem("Users", "/users", "users")
_MY_CHECKLISTS = NavItem("My Checklists", "/checklists", "check-square", end=False)

ADMIN_LAYOUT = RoleLayout("admin", "admin_dashboard", (
    _DASHBOARD,
    NavItem("Create Task", "/tasks/create", "plus-circle"),
    NavItem("All Tasks", "/tasks", "clipboard-list"),
    _SUBMISSIONS,
    _DOCUMENTS,
    _USERS,
    NavItem("Checklist Templates", "/checklist-templates", "list-checks"),
    NavItem("Settings", "/settings", "settings"),
))

DRIVER_LAYOUT = RoleLayout("driver", "driver_dashboard", (
    _DASHBOARD,
    NavItem("My Tasks", "/tasks", "truck"),
    _MY_CHECKLISTS,
    _DOCUMENTS,
))

WAREHOUSE_LAYOUT = RoleLayout("warehouse", "warehouse_dashboard", (
    _DASHBOARD,
    NavItem("Tasks", "/tasks", "clipboard-list"),
    _MY_CHECKLISTS,
    _SUBMISSIONS,
    _DOCUMENTS,
))

_EXECUTIVE_NAV = (
    _DASHBOARD,
    NavItem("All Tasks", "/tasks", "clipboard-list"),
    _SUBMISSIONS,
    _DOCUMENTS,
    _USERS,
)
EXECUTIVE_LAYOUT = RoleLayout("executive", "executive_dashboard", _EXECUTIVE_NAV)
OPERATIONAL_LEAD_LAYOUT = RoleLayout("executive", "operational_lead_dashboard", _EXECUTIVE_NAV)

RESTRICTED_LAYOUT = RoleLayout("restricted", "restricted_dashboard", (_DASHBOARD,))

ROLE_LAYOUTS: dict[str, RoleLayout] = {
    "admin": ADMIN_LAYOUT,
    "driver": DRIVER_LAYOUT,
    "warehouse": WAREHOUSE_LAYOUT,
    "executive": EXECUTIVE_LAYOUT,
    "operational_lead": OPERATIONAL_LEAD_LAYOUT,
}


def layout_for(role: str | None) -> RoleLayout:
    """Layout for ``role``; unknown or missing roles get the restricted layout."""
    if role in ROLE_LAYOUTS:
        return ROLE_LAYOUTS[role]
    return RESTRICTED_LAYOUT
