"""
Unit tests for RBAC: role checks, route guards, navigation and action affordances.
"""

import pytest

from hms_console.models.user import Identity, Role
from hms_console.services import rbac
from hms_console.services.rbac import RouteDecision


def who(role):
    return Identity(id="u1", name="Test", role=role)


ROLE_SETS = [
    frozenset(),
    frozenset({Role.ADMIN}),
    frozenset({Role.ADMIN, Role.RECEPTIONIST}),
    frozenset({Role.DOCTOR, Role.NURSE}),
    frozenset({Role.PATIENT}),
    frozenset(Role),
]


# ── Tests: has_role ──────────────────────────────────────────────────

@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("required", ROLE_SETS)
def test_has_role_is_membership(role, required):
    assert rbac.has_role(who(role), required) == (role in required)


@pytest.mark.parametrize("role", list(Role))
@pytest.mark.parametrize("required", ROLE_SETS)
def test_guard_renders_iff_identity_and_role_allowed(role, required):
    decision = rbac.guard_route(who(role), required)
    allowed = not required or role in required
    assert (decision == RouteDecision.ALLOW) == allowed
    if not allowed:
        assert decision == RouteDecision.REDIRECT_DASHBOARD


def test_has_role_accepts_single_role_and_strings():
    admin = who(Role.ADMIN)
    assert rbac.has_role(admin, Role.ADMIN)
    assert rbac.has_role(admin, "Admin")
    assert rbac.has_role(admin, ["Doctor", "Admin"])
    assert not rbac.has_role(admin, "Doctor")


def test_has_role_false_without_identity():
    assert not rbac.has_role(None, Role)


def test_unknown_role_tags_grant_nothing():
    admin = who(Role.ADMIN)
    assert not rbac.has_role(admin, "Janitor")
    assert rbac.has_role(admin, ["Janitor", "Admin"])
    assert rbac.guard_route(admin, ["Janitor"]) == RouteDecision.REDIRECT_DASHBOARD


def test_guard_without_identity_redirects_to_login():
    assert rbac.guard_route(None, None) == RouteDecision.REDIRECT_LOGIN
    assert rbac.guard_route(None, {Role.ADMIN}) == RouteDecision.REDIRECT_LOGIN


def test_guard_reports_loading_first():
    assert rbac.guard_route(None, None, loading=True) == RouteDecision.LOADING
    assert rbac.guard_route(who(Role.ADMIN), None, loading=True) == RouteDecision.LOADING


# ── Tests: screens and navigation ────────────────────────────────────

def test_screen_table():
    assert rbac.guard_screen(who(Role.PATIENT), "patients") == RouteDecision.REDIRECT_DASHBOARD
    assert rbac.guard_screen(who(Role.PATIENT), "appointments") == RouteDecision.ALLOW
    assert rbac.guard_screen(who(Role.NURSE), "billing") == RouteDecision.REDIRECT_DASHBOARD
    assert rbac.guard_screen(who(Role.NURSE), "inventory") == RouteDecision.ALLOW
    assert rbac.guard_screen(who(Role.DOCTOR), "reports") == RouteDecision.REDIRECT_DASHBOARD
    assert rbac.guard_screen(who(Role.PATIENT), "dashboard") == RouteDecision.ALLOW


def test_unknown_screen_goes_to_dashboard():
    assert rbac.guard_screen(who(Role.ADMIN), "nowhere") == RouteDecision.REDIRECT_DASHBOARD


def test_navigation_for_receptionist():
    names = [item.name for item in rbac.navigation_for(who(Role.RECEPTIONIST))]
    assert names == ["Dashboard", "Patients", "Doctors", "Appointments", "Billing"]


def test_navigation_empty_when_signed_out():
    assert rbac.navigation_for(None) == []


# ── Tests: action affordances ────────────────────────────────────────

def test_patient_cannot_book_from_appointments_screen():
    assert not rbac.can_book_appointment(who(Role.PATIENT))
    assert "book" not in rbac.allowed_actions(who(Role.PATIENT), "appointments")


@pytest.mark.parametrize("role,expected", [
    (Role.ADMIN, True),
    (Role.RECEPTIONIST, True),
    (Role.DOCTOR, False),
    (Role.NURSE, False),
    (Role.PATIENT, False),
])
def test_book_button(role, expected):
    assert rbac.can(who(role), "appointments", "book") is expected


def test_appointment_actions_for_doctor():
    assert rbac.allowed_actions(who(Role.DOCTOR), "appointments") == ["edit", "confirm", "complete"]


def test_appointment_actions_for_patient():
    assert rbac.allowed_actions(who(Role.PATIENT), "appointments") == ["cancel"]


def test_inventory_actions_admin_only():
    assert rbac.allowed_actions(who(Role.NURSE), "inventory") == []
    assert rbac.allowed_actions(who(Role.ADMIN), "inventory") == ["create", "edit", "delete", "restock"]


def test_billing_actions_have_no_print():
    actions = rbac.allowed_actions(who(Role.RECEPTIONIST), "billing")
    assert actions == ["create", "edit", "delete", "record_payment"]


def test_reports_generation_admin_only():
    assert rbac.allowed_actions(who(Role.ADMIN), "reports") == ["generate"]
    assert rbac.allowed_actions(who(Role.DOCTOR), "reports") == []


def test_unknown_action_denied():
    assert not rbac.can(who(Role.ADMIN), "appointments", "teleport")
    assert not rbac.can(None, "patients", "create")
