"""Book / edit appointment form: reference data, slot resolution and submission.

Availability is keyed on (doctor, date). Every change of that pair clears the
chosen time and tags a new fetch; a response is applied only while its tag is
still the current one, so late answers for a superseded selection are dropped.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from enum import Enum
from typing import Any

from hms_console.core.config import settings
from hms_console.core.exceptions import ApiError, SlotSelectionError
from hms_console.core.notifications import Notifier
from hms_console.models.appointment import (
    Appointment,
    AppointmentDraft,
    AppointmentPayload,
    AppointmentType,
    AvailableSlot,
    TimeSlot,
)
from hms_console.services.api_client import HospitalApiClient

logger = logging.getLogger(__name__)

_DRAFT_FIELDS = {"patient", "doctor", "date", "appointment_type", "reason", "symptoms", "notes"}


class BookingState(str, Enum):
    IDLE = "idle"
    LOADING_REFERENCE_DATA = "loading_reference_data"
    READY_NO_SLOT_CONTEXT = "ready_no_slot_context"
    LOADING_SLOTS = "loading_slots"
    READY_WITH_SLOTS = "ready_with_slots"
    READY_NO_PUBLISHED_SLOTS = "ready_no_published_slots"
    SUBMITTING = "submitting"
    CLOSED = "closed"


def _parse_date(value: date | str | None) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


class BookingWorkflow:
    def __init__(
        self,
        api: HospitalApiClient,
        notifier: Notifier,
        on_saved: Callable[[], Awaitable[Any]] | None = None,
        clock: Callable[[], date] = date.today,
        page_limit: int | None = None,
    ) -> None:
        self.api = api
        self.notifier = notifier
        self.on_saved = on_saved
        self.clock = clock
        self.page_limit = page_limit or settings.directory_page_limit
        self.state = BookingState.IDLE
        self.draft = AppointmentDraft()
        self.appointment: Appointment | None = None
        self.patients: list[dict] = []
        self.doctors: list[dict] = []
        self.available_slots: list[AvailableSlot] = []
        self.errors: dict[str, str] = {}
        self._slot_tag: tuple[int, str, date | None] = (0, "", None)

    @property
    def editing(self) -> bool:
        return self.appointment is not None

    @property
    def free_text_time(self) -> bool:
        """Time inputs accept any value when the doctor has no published slots."""
        return not self.available_slots

    async def open(self, appointment: Appointment | None = None) -> None:
        self.appointment = appointment
        self.draft = AppointmentDraft()
        self.errors = {}
        self.state = BookingState.LOADING_REFERENCE_DATA
        await self._load_reference_data()
        if appointment is not None:
            self.draft = AppointmentDraft.from_appointment(appointment)
        await self._resolve_availability()

    async def _load_reference_data(self) -> None:
        patients, doctors = await asyncio.gather(
            self.api.list_patients({"limit": self.page_limit}),
            self.api.list_doctors({"isActive": True, "limit": self.page_limit}),
            return_exceptions=True,
        )
        failed = False
        if isinstance(patients, ApiError):
            logger.warning("Patient directory unavailable: %s", patients)
            patients, failed = [], True
        elif isinstance(patients, BaseException):
            raise patients
        if isinstance(doctors, ApiError):
            logger.warning("Doctor directory unavailable: %s", doctors)
            doctors, failed = [], True
        elif isinstance(doctors, BaseException):
            raise doctors
        self.patients = patients
        self.doctors = doctors
        if failed:
            self.notifier.error("Failed to fetch patients/doctors")

    async def update(self, **fields: Any) -> None:
        unknown = set(fields) - _DRAFT_FIELDS
        if unknown:
            raise TypeError(f"Unknown draft fields: {', '.join(sorted(unknown))}")
        if "appointment_type" in fields:
            fields["appointment_type"] = AppointmentType(fields["appointment_type"])
        if "date" in fields:
            fields["date"] = _parse_date(fields["date"])

        before = (self.draft.doctor, self.draft.date)
        for name, value in fields.items():
            setattr(self.draft, name, "" if value is None and name != "date" else value)
        if (self.draft.doctor, self.draft.date) != before:
            # never carry a slot across a doctor/date change
            self.draft.time_slot = TimeSlot()
            await self._resolve_availability()

    async def _resolve_availability(self) -> None:
        doctor, day = self.draft.doctor, self.draft.date
        tag = (self._slot_tag[0] + 1, doctor, day)
        self._slot_tag = tag
        if not doctor or not day:
            self.available_slots = []
            self.state = BookingState.READY_NO_SLOT_CONTEXT
            return

        self.state = BookingState.LOADING_SLOTS
        try:
            slots = await self.api.get_available_slots(doctor, day)
        except ApiError as e:
            if tag != self._slot_tag:
                logger.debug("Dropping stale slot failure for %s on %s", doctor, day)
                return
            logger.warning("Slot lookup failed for doctor %s on %s: %s", doctor, day, e)
            self.notifier.error("Failed to fetch slots")
            self.available_slots = []
            self.state = BookingState.READY_NO_PUBLISHED_SLOTS
            return

        if tag != self._slot_tag:
            logger.debug("Dropping stale slots for %s on %s", doctor, day)
            return
        self.available_slots = slots
        self.draft.time_slot = TimeSlot()
        self.state = (
            BookingState.READY_WITH_SLOTS if slots else BookingState.READY_NO_PUBLISHED_SLOTS
        )

    def choose_time(self, start: str | None = None, end: str | None = None) -> None:
        if self.available_slots:
            if start and start not in {s.start for s in self.available_slots}:
                raise SlotSelectionError(f"{start} is not an available start time")
            if end and end not in {s.end for s in self.available_slots}:
                raise SlotSelectionError(f"{end} is not an available end time")
        if start is not None:
            self.draft.time_slot.start = start
        if end is not None:
            self.draft.time_slot.end = end

    def validate(self, today: date | None = None) -> dict[str, str]:
        today = today or self.clock()
        d = self.draft
        errors: dict[str, str] = {}
        if not d.patient:
            errors["patient"] = "Patient is required"
        if not d.doctor:
            errors["doctor"] = "Doctor is required"
        if d.date is None:
            errors["date"] = "Date is required"
        elif d.date < today:
            errors["date"] = "Date cannot be in the past"
        if not d.time_slot.start:
            errors["time_slot.start"] = "Start time is required"
        elif self.available_slots and d.time_slot.start not in {s.start for s in self.available_slots}:
            errors["time_slot.start"] = "Select an available start time"
        if not d.time_slot.end:
            errors["time_slot.end"] = "End time is required"
        elif self.available_slots and d.time_slot.end not in {s.end for s in self.available_slots}:
            errors["time_slot.end"] = "Select an available end time"
        if not d.reason.strip():
            errors["reason"] = "Reason is required"
        return errors

    def payload(self) -> dict[str, Any]:
        return AppointmentPayload.from_draft(self.draft).to_wire()

    async def submit(self) -> bool:
        if self.state in (BookingState.SUBMITTING, BookingState.CLOSED):
            return False
        self.errors = self.validate()
        if self.errors:
            return False

        body = self.payload()
        resume_state = self.state
        self.state = BookingState.SUBMITTING
        try:
            if self.appointment is not None:
                await self.api.update_appointment(self.appointment.id, body)
            else:
                await self.api.create_appointment(body)
        except ApiError as e:
            default = "Failed to update appointment" if self.editing else "Failed to book appointment"
            self.notifier.error(e.server_message or default)
            self.state = resume_state
            return False

        if self.editing:
            self.notifier.success("Appointment updated successfully")
        else:
            self.notifier.success("Appointment booked successfully")
        self.state = BookingState.CLOSED
        if self.on_saved is not None:
            await self.on_saved()
        return True

    def close(self) -> None:
        self.state = BookingState.CLOSED
        self.draft = AppointmentDraft()
        self.available_slots = []
        self.errors = {}

    def snapshot(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "editing": self.appointment.id if self.appointment else None,
            "draft": self.draft.model_dump(mode="json"),
            "patients": self.patients,
            "doctors": self.doctors,
            "available_slots": [s.model_dump() for s in self.available_slots],
            "time_entry": "free_text" if self.free_text_time else "select",
            "errors": self.errors,
        }
