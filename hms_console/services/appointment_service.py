import logging
from typing import Any

from pydantic import ValidationError

from hms_console.core.exceptions import ApiError, TransitionNotAllowed
from hms_console.core.notifications import Notifier
from hms_console.models.appointment import TERMINAL_STATUSES, Appointment, AppointmentStatus
from hms_console.models.user import Identity, Role
from hms_console.services import rbac
from hms_console.services.api_client import HospitalApiClient

logger = logging.getLogger(__name__)

# status -> (action name in the permission table, statuses it may be applied from)
_TRANSITIONS: dict[AppointmentStatus, tuple[str, frozenset[AppointmentStatus] | None]] = {
    AppointmentStatus.CONFIRMED: ("confirm", frozenset({AppointmentStatus.SCHEDULED})),
    AppointmentStatus.COMPLETED: ("complete", frozenset({AppointmentStatus.CONFIRMED})),
    AppointmentStatus.CANCELLED: ("cancel", None),  # None: any non-terminal status
}


def transitions_for(identity: Identity | None, appointment: Appointment) -> list[AppointmentStatus]:
    """Next statuses this operator may move the appointment to, in display order."""
    if appointment.status in TERMINAL_STATUSES:
        return []
    out = []
    for target, (action, sources) in _TRANSITIONS.items():
        if sources is not None and appointment.status not in sources:
            continue
        if rbac.can(identity, "appointments", action):
            out.append(target)
    return out


def item_actions(identity: Identity | None, appointment: Appointment) -> list[str]:
    actions = [_TRANSITIONS[t][0] for t in transitions_for(identity, appointment)]
    for name in ("edit", "delete"):
        if rbac.can(identity, "appointments", name):
            actions.append(name)
    return actions


class AppointmentBoard:
    """The appointment list screen. Only refreshed from the server; never updated optimistically."""

    def __init__(self, api: HospitalApiClient, notifier: Notifier) -> None:
        self.api = api
        self.notifier = notifier
        self.appointments: list[Appointment] = []
        self.filters: dict[str, Any] = {"search": "", "date": "", "status": ""}

    def find(self, appointment_id: str) -> Appointment | None:
        for a in self.appointments:
            if a.id == appointment_id:
                return a
        return None

    async def refresh(self, identity: Identity | None, **filters: Any) -> list[Appointment]:
        self.filters.update({k: v for k, v in filters.items() if k in self.filters})
        params = dict(self.filters)
        if identity is not None and identity.role == Role.PATIENT:
            params["patientId"] = identity.id
        try:
            rows = await self.api.list_appointments(params)
        except ApiError as e:
            logger.warning("Fetch appointments failed: %s", e)
            self.notifier.error("Failed to fetch appointments")
            return self.appointments
        loaded = []
        for row in rows:
            try:
                loaded.append(Appointment.model_validate(row))
            except ValidationError:
                logger.warning("Skipping unreadable appointment row: %r", row.get("_id", row.get("id")))
        self.appointments = loaded
        return self.appointments

    async def change_status(
        self, identity: Identity | None, appointment_id: str, status: AppointmentStatus | str
    ) -> bool:
        target = AppointmentStatus(status)
        appointment = self.find(appointment_id)
        if appointment is None:
            raise TransitionNotAllowed(f"Appointment {appointment_id} is not on the board")
        if target not in transitions_for(identity, appointment):
            raise TransitionNotAllowed(
                f"Cannot move appointment from {appointment.status.value} to {target.value}"
            )
        try:
            await self.api.set_appointment_status(appointment_id, target.value)
        except ApiError as e:
            logger.warning("Status change for %s failed: %s", appointment_id, e)
            self.notifier.error("Failed to update status")
            return False
        self.notifier.success(f"Appointment {target.value.lower()} successfully")
        await self.refresh(identity)
        return True

    async def delete(self, identity: Identity | None, appointment_id: str) -> bool:
        if not rbac.can(identity, "appointments", "delete"):
            raise TransitionNotAllowed("Not allowed to delete appointments")
        try:
            await self.api.delete_appointment(appointment_id)
        except ApiError as e:
            logger.warning("Delete appointment %s failed: %s", appointment_id, e)
            self.notifier.error("Failed to cancel appointment")
            return False
        self.notifier.success("Appointment cancelled successfully")
        await self.refresh(identity)
        return True

    def view(self, identity: Identity | None) -> dict[str, Any]:
        return {
            "can_book": rbac.can_book_appointment(identity),
            "filters": self.filters,
            "appointments": [
                {
                    **a.model_dump(by_alias=True, mode="json"),
                    "actions": item_actions(identity, a),
                }
                for a in self.appointments
            ],
        }
