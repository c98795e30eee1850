"""
Tests for the appointment board: filtering, status transitions and deletion.
"""

import asyncio

import pytest

from hms_console.core.exceptions import TransitionNotAllowed
from hms_console.models.appointment import Appointment, AppointmentStatus
from hms_console.models.user import Identity, Role
from hms_console.services.appointment_service import AppointmentBoard, item_actions, transitions_for


def who(role, uid="u1"):
    return Identity(id=uid, name="Test", role=role)


def row(aid="A1", status="Scheduled"):
    return {
        "_id": aid,
        "patient": {"_id": "P1", "name": "Pat"},
        "doctor": {"_id": "D1", "name": "Doc"},
        "date": "2024-06-10",
        "timeSlot": {"start": "09:00", "end": "09:30"},
        "appointmentType": "Consultation",
        "status": status,
        "reason": "Checkup",
        "symptoms": [],
    }


def appt(status):
    return Appointment.model_validate(row(status=status))


@pytest.fixture
def board(api, notifier):
    return AppointmentBoard(api, notifier)


# ── Tests: transitions ───────────────────────────────────────────────

@pytest.mark.parametrize("role,status,expected", [
    (Role.ADMIN, "Scheduled", [AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED]),
    (Role.ADMIN, "Confirmed", [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED]),
    (Role.DOCTOR, "Scheduled", [AppointmentStatus.CONFIRMED]),
    (Role.DOCTOR, "Confirmed", [AppointmentStatus.COMPLETED]),
    (Role.RECEPTIONIST, "Confirmed", [AppointmentStatus.CANCELLED]),
    (Role.PATIENT, "Scheduled", [AppointmentStatus.CANCELLED]),
    (Role.NURSE, "Scheduled", []),
    (Role.ADMIN, "Completed", []),
    (Role.ADMIN, "Cancelled", []),
    (Role.ADMIN, "No-Show", []),
])
def test_transitions(role, status, expected):
    assert transitions_for(who(role), appt(status)) == expected


def test_item_actions_append_edit_and_delete():
    assert item_actions(who(Role.RECEPTIONIST), appt("Scheduled")) == [
        "confirm", "cancel", "edit", "delete",
    ]
    assert item_actions(who(Role.PATIENT), appt("Completed")) == []


# ── Tests: refresh ───────────────────────────────────────────────────

def test_patient_listing_is_scoped_to_self(board, fake_api):
    fake_api.set("GET", "/appointments", body={"data": [row()]})

    asyncio.run(board.refresh(who(Role.PATIENT, uid="pat-7"), status="Scheduled"))

    params = fake_api.calls_to("GET", "/appointments")[0].url.params
    assert params["patientId"] == "pat-7"
    assert params["status"] == "Scheduled"
    assert "search" not in params
    assert board.appointments[0].patient_ref == "P1"


def test_staff_listing_is_not_scoped(board, fake_api):
    fake_api.set("GET", "/appointments", body={"data": [row()]})

    asyncio.run(board.refresh(who(Role.RECEPTIONIST), search="Pat", date="2024-06-10"))

    params = fake_api.calls_to("GET", "/appointments")[0].url.params
    assert "patientId" not in params
    assert params["search"] == "Pat"
    assert params["date"] == "2024-06-10"


def test_refresh_failure_keeps_previous_list(board, fake_api, notifier):
    fake_api.set("GET", "/appointments", body={"data": [row()]})
    asyncio.run(board.refresh(who(Role.ADMIN)))
    fake_api.set("GET", "/appointments", status=500, body={})

    asyncio.run(board.refresh(who(Role.ADMIN)))

    assert [a.id for a in board.appointments] == ["A1"]
    assert notifier.drain()[-1].message == "Failed to fetch appointments"


def test_unreadable_rows_are_skipped(board, fake_api):
    fake_api.set("GET", "/appointments", body={"data": [row(), {"status": "Scheduled"}]})

    asyncio.run(board.refresh(who(Role.ADMIN)))

    assert len(board.appointments) == 1


# ── Tests: status changes ────────────────────────────────────────────

def test_confirm_then_refresh(board, fake_api, notifier):
    fake_api.set("GET", "/appointments", body={"data": [row()]})
    fake_api.set("PUT", "/appointments/A1", body={"success": True})
    doctor = who(Role.DOCTOR)
    asyncio.run(board.refresh(doctor))
    fake_api.set("GET", "/appointments", body={"data": [row(status="Confirmed")]})

    ok = asyncio.run(board.change_status(doctor, "A1", "Confirmed"))

    assert ok
    put = fake_api.calls_to("PUT", "/appointments/A1")[0]
    assert fake_api.body_of(put) == {"status": "Confirmed"}
    assert board.find("A1").status == AppointmentStatus.CONFIRMED
    assert notifier.drain()[-1].message == "Appointment confirmed successfully"


def test_failed_status_change_leaves_board_untouched(board, fake_api, notifier):
    fake_api.set("GET", "/appointments", body={"data": [row()]})
    fake_api.set("PUT", "/appointments/A1", status=500, body={})
    admin = who(Role.ADMIN)
    asyncio.run(board.refresh(admin))

    ok = asyncio.run(board.change_status(admin, "A1", AppointmentStatus.CANCELLED))

    assert not ok
    assert board.find("A1").status == AppointmentStatus.SCHEDULED
    assert notifier.drain()[-1].message == "Failed to update status"
    assert len(fake_api.calls_to("GET", "/appointments")) == 1


def test_disallowed_transition_is_refused_locally(board, fake_api):
    fake_api.set("GET", "/appointments", body={"data": [row()]})
    asyncio.run(board.refresh(who(Role.DOCTOR)))

    with pytest.raises(TransitionNotAllowed):
        asyncio.run(board.change_status(who(Role.DOCTOR), "A1", "Completed"))
    with pytest.raises(TransitionNotAllowed):
        asyncio.run(board.change_status(who(Role.DOCTOR), "missing", "Confirmed"))
    assert fake_api.calls_to("PUT", "/appointments/A1") == []


# ── Tests: delete and view ───────────────────────────────────────────

def test_delete(board, fake_api, notifier):
    fake_api.set("GET", "/appointments", body={"data": []})
    fake_api.set("DELETE", "/appointments/A1", body={"success": True})

    assert asyncio.run(board.delete(who(Role.RECEPTIONIST), "A1"))
    assert notifier.drain()[-1].message == "Appointment cancelled successfully"

    fake_api.set("DELETE", "/appointments/A1", status=404, body={})
    assert not asyncio.run(board.delete(who(Role.ADMIN), "A1"))
    assert notifier.drain()[-1].message == "Failed to cancel appointment"


def test_delete_requires_permission(board):
    with pytest.raises(TransitionNotAllowed):
        asyncio.run(board.delete(who(Role.DOCTOR), "A1"))


def test_view_for_patient_hides_book_button(board, fake_api):
    fake_api.set("GET", "/appointments", body={"data": [row()]})
    patient = who(Role.PATIENT)
    asyncio.run(board.refresh(patient))

    view = board.view(patient)

    assert view["can_book"] is False
    assert view["appointments"][0]["actions"] == ["cancel"]
    assert view["appointments"][0]["timeSlot"] == {"start": "09:00", "end": "09:30"}
