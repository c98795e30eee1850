import asyncio
import logging

from hms_console.core.exceptions import ApiError
from hms_console.models.dashboard import DashboardStats
from hms_console.models.user import Identity, Role
from hms_console.services import rbac
from hms_console.services.api_client import HospitalApiClient

logger = logging.getLogger(__name__)

A, D, N, R = Role.ADMIN, Role.DOCTOR, Role.NURSE, Role.RECEPTIONIST

# statistic -> roles that see it
STAT_ROLES: dict[str, frozenset[Role]] = {
    "patients": frozenset({A, D, N}),
    "doctors": frozenset({A, D}),
    "appointments": frozenset({A, D}),
    "bills": frozenset({A, R}),
    "inventory": frozenset({A, N}),
}


async def load_dashboard(api: HospitalApiClient, identity: Identity | None) -> DashboardStats:
    """Fetch each statistic the role may see, concurrently, one typed call apiece."""
    calls = {
        "patients": api.get_patient_stats,
        "doctors": api.get_doctor_stats,
        "appointments": api.get_appointment_stats,
        "bills": api.get_bill_stats,
        "inventory": api.get_inventory_stats,
    }
    wanted = [name for name in calls if rbac.has_role(identity, STAT_ROLES[name])]
    results = await asyncio.gather(*(calls[name]() for name in wanted), return_exceptions=True)

    stats = DashboardStats()
    for name, result in zip(wanted, results):
        if isinstance(result, ApiError):
            logger.warning("Dashboard %s stats unavailable: %s", name, result)
            continue
        if isinstance(result, BaseException):
            raise result
        setattr(stats, name, result)
    return stats
