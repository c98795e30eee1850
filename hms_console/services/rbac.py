"""
Role-based access control: route guards, navigation and action affordances.

Decisions depend only on the operator's role tag. Route guards and action
checks are separate; passing a screen's guard says nothing about the actions
on it.
"""
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from hms_console.models.user import Identity, Role

A, D, N, R, P = Role.ADMIN, Role.DOCTOR, Role.NURSE, Role.RECEPTIONIST, Role.PATIENT

LOGIN_PATH = "/login"
LANDING_PATH = "/dashboard"


class RouteDecision(str, Enum):
    LOADING = "loading"
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_DASHBOARD = "redirect_dashboard"


@dataclass(frozen=True)
class NavItem:
    name: str
    href: str
    roles: frozenset[Role]


# None means any signed-in operator.
ROUTE_ROLES: dict[str, frozenset[Role] | None] = {
    "dashboard": None,
    "patients": frozenset({A, D, N, R}),
    "doctors": frozenset({A, D, N, R, P}),
    "appointments": frozenset({A, D, N, R, P}),
    "billing": frozenset({A, R}),
    "inventory": frozenset({A, N, D}),
    "reports": frozenset({A}),
    "settings": frozenset({A}),
}

NAVIGATION: tuple[NavItem, ...] = (
    NavItem("Dashboard", "/dashboard", frozenset({A, D, N, R, P})),
    NavItem("Patients", "/patients", frozenset({A, D, N, R})),
    NavItem("Doctors", "/doctors", frozenset({A, D, N, R, P})),
    NavItem("Appointments", "/appointments", frozenset({A, D, N, R, P})),
    NavItem("Billing", "/billing", frozenset({A, R})),
    NavItem("Inventory", "/inventory", frozenset({A, N, D})),
    NavItem("Reports", "/reports", frozenset({A})),
    NavItem("Settings", "/settings", frozenset({A})),
)

ACTION_ROLES: dict[str, dict[str, frozenset[Role]]] = {
    "appointments": {
        "edit": frozenset({A, R, D}),
        "delete": frozenset({A, R}),
        "confirm": frozenset({A, D, R}),
        "complete": frozenset({A, D}),
        "cancel": frozenset({A, R, P}),
    },
    "patients": {
        "create": frozenset({A, R}),
        "edit": frozenset({A, R}),
        "delete": frozenset({A, R}),
    },
    "doctors": {
        "create": frozenset({A}),
        "edit": frozenset({A}),
        "delete": frozenset({A}),
    },
    "billing": {
        "create": frozenset({A, R}),
        "edit": frozenset({A, R}),
        "delete": frozenset({A, R}),
        "record_payment": frozenset({A, R}),
    },
    "inventory": {
        "create": frozenset({A}),
        "edit": frozenset({A}),
        "delete": frozenset({A}),
        "restock": frozenset({A}),
    },
    "reports": {
        "generate": frozenset({A}),
    },
}


def _as_roles(required: Role | str | Iterable[Role | str]) -> set[Role]:
    if isinstance(required, (Role, str)):
        required = [required]
    roles = set()
    for r in required:
        try:
            roles.add(Role(r))
        except ValueError:
            continue  # unknown tags grant nothing
    return roles


def has_role(identity: Identity | None, required: Role | str | Iterable[Role | str]) -> bool:
    if identity is None or identity.role is None:
        return False
    return identity.role in _as_roles(required)


def can_book_appointment(identity: Identity | None) -> bool:
    # Patients see the appointments screen but cannot book from it.
    return has_role(identity, [A, R, P]) and identity.role != P


def can(identity: Identity | None, screen: str, action: str) -> bool:
    if screen == "appointments" and action == "book":
        return can_book_appointment(identity)
    roles = ACTION_ROLES.get(screen, {}).get(action)
    if roles is None:
        return False
    return has_role(identity, roles)


def allowed_actions(identity: Identity | None, screen: str) -> list[str]:
    names = list(ACTION_ROLES.get(screen, {}))
    if screen == "appointments":
        names.insert(0, "book")
    return [name for name in names if can(identity, screen, name)]


def guard_route(
    identity: Identity | None,
    roles: Iterable[Role | str] | None = None,
    loading: bool = False,
) -> RouteDecision:
    if loading:
        return RouteDecision.LOADING
    if identity is None:
        return RouteDecision.REDIRECT_LOGIN
    if roles and not has_role(identity, roles):
        return RouteDecision.REDIRECT_DASHBOARD
    return RouteDecision.ALLOW


def guard_screen(identity: Identity | None, screen: str, loading: bool = False) -> RouteDecision:
    """Unknown screens are treated like the catch-all route: send to the dashboard."""
    if screen not in ROUTE_ROLES:
        if loading:
            return RouteDecision.LOADING
        return RouteDecision.REDIRECT_DASHBOARD
    return guard_route(identity, ROUTE_ROLES[screen], loading=loading)


def navigation_for(identity: Identity | None) -> list[NavItem]:
    return [item for item in NAVIGATION if has_role(identity, item.roles)]
