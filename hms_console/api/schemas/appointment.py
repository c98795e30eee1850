import datetime as dt

from pydantic import BaseModel

from hms_console.models.appointment import AppointmentStatus, AppointmentType


class OpenFormRequest(BaseModel):
    appointment_id: str | None = None  # None books a new appointment


class DraftUpdate(BaseModel):
    patient: str | None = None
    doctor: str | None = None
    date: dt.date | None = None
    appointment_type: AppointmentType | None = None
    reason: str | None = None
    symptoms: str | None = None
    notes: str | None = None


class ChooseTimeRequest(BaseModel):
    start: str | None = None
    end: str | None = None


class StatusChangeRequest(BaseModel):
    status: AppointmentStatus
