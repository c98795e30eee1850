from hms_console.models.appointment import (
    Appointment,
    AppointmentDraft,
    AppointmentPayload,
    AppointmentStatus,
    AppointmentType,
    AvailableSlot,
    TimeSlot,
    split_symptoms,
)
from hms_console.models.billing import BillItem, BillTotals, compute_bill_totals
from hms_console.models.client_state import ClientState
from hms_console.models.dashboard import DashboardStats
from hms_console.models.user import AuthResult, Identity, Role

__all__ = [
    "Appointment",
    "AppointmentDraft",
    "AppointmentPayload",
    "AppointmentStatus",
    "AppointmentType",
    "AvailableSlot",
    "TimeSlot",
    "split_symptoms",
    "BillItem",
    "BillTotals",
    "compute_bill_totals",
    "ClientState",
    "DashboardStats",
    "AuthResult",
    "Identity",
    "Role",
]
