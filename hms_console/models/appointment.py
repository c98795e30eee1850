import datetime as dt
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class AppointmentType(str, Enum):
    CONSULTATION = "Consultation"
    FOLLOW_UP = "Follow-up"
    EMERGENCY = "Emergency"
    ROUTINE_CHECKUP = "Routine Checkup"
    TEST = "Test"


class AppointmentStatus(str, Enum):
    SCHEDULED = "Scheduled"
    CONFIRMED = "Confirmed"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No-Show"


TERMINAL_STATUSES = frozenset(
    {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)


class TimeSlot(BaseModel):
    start: str = ""
    end: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.start and not self.end


class AvailableSlot(BaseModel):
    start: str
    end: str


class Appointment(BaseModel):
    """Appointment as listed by the remote API. Patient/doctor may arrive populated."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    patient: dict[str, Any] | str | None = None
    doctor: dict[str, Any] | str | None = None
    date: str | None = None
    time_slot: TimeSlot | None = Field(default=None, alias="timeSlot")
    appointment_type: AppointmentType = Field(
        default=AppointmentType.CONSULTATION, alias="appointmentType"
    )
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reason: str | None = None
    symptoms: list[str] = Field(default_factory=list)
    notes: str | None = None

    @property
    def patient_ref(self) -> str:
        return _ref(self.patient)

    @property
    def doctor_ref(self) -> str:
        return _ref(self.doctor)

    @property
    def calendar_date(self) -> dt.date | None:
        """Stored date reduced to a calendar date (timestamps lose their time part)."""
        if not self.date:
            return None
        raw = self.date.replace("Z", "+00:00")
        try:
            return dt.datetime.fromisoformat(raw).date()
        except ValueError:
            return dt.date.fromisoformat(raw[:10])


def _ref(value: dict[str, Any] | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value.get("_id") or value.get("id") or "")


def split_symptoms(text: str | None) -> list[str]:
    """Comma separated input -> trimmed, non-empty pieces in order."""
    if not text:
        return []
    return [piece.strip() for piece in text.split(",") if piece.strip()]


class AppointmentDraft(BaseModel):
    """Unsaved state of the booking form."""

    patient: str = ""
    doctor: str = ""
    date: dt.date | None = None
    time_slot: TimeSlot = Field(default_factory=TimeSlot)
    appointment_type: AppointmentType = AppointmentType.CONSULTATION
    reason: str = ""
    symptoms: str = ""
    notes: str = ""

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentDraft":
        slot = appointment.time_slot or TimeSlot()
        return cls(
            patient=appointment.patient_ref,
            doctor=appointment.doctor_ref,
            date=appointment.calendar_date,
            time_slot=TimeSlot(start=slot.start, end=slot.end),
            appointment_type=appointment.appointment_type,
            reason=appointment.reason or "",
            symptoms=", ".join(appointment.symptoms),
            notes=appointment.notes or "",
        )


class AppointmentPayload(BaseModel):
    """Body of POST /appointments and PUT /appointments/{id}."""

    model_config = ConfigDict(populate_by_name=True)

    patient: str
    doctor: str
    date: str  # YYYY-MM-DD
    time_slot: TimeSlot = Field(alias="timeSlot")
    appointment_type: AppointmentType = Field(alias="appointmentType")
    reason: str
    symptoms: list[str]
    notes: str = ""

    @field_validator("date")
    @classmethod
    def _calendar_date(cls, v: str) -> str:
        return dt.date.fromisoformat(v).isoformat()

    @classmethod
    def from_draft(cls, draft: AppointmentDraft) -> "AppointmentPayload":
        return cls(
            patient=draft.patient,
            doctor=draft.doctor,
            date=draft.date.isoformat(),
            time_slot=TimeSlot(start=draft.time_slot.start, end=draft.time_slot.end),
            appointment_type=draft.appointment_type,
            reason=draft.reason,
            symptoms=split_symptoms(draft.symptoms),
            notes=draft.notes,
        )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
