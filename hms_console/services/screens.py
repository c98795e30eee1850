"""List screens for patients, doctors, billing, inventory and reports."""
import logging
from typing import Any

from hms_console.core.exceptions import ApiError
from hms_console.core.notifications import Notifier
from hms_console.models.user import Identity
from hms_console.services import rbac
from hms_console.services.api_client import HospitalApiClient

logger = logging.getLogger(__name__)

_LOADERS = {
    "patients": ("list_patients", "Failed to fetch patients"),
    "doctors": ("list_doctors", "Failed to fetch doctors"),
    "billing": ("list_bills", "Failed to fetch bills"),
    "inventory": ("list_inventory", "Failed to fetch inventory"),
    "reports": ("list_reports", "Failed to fetch report data"),
}

LIST_SCREENS = frozenset(_LOADERS)


async def load_list_screen(
    api: HospitalApiClient,
    notifier: Notifier,
    identity: Identity | None,
    screen: str,
    params: dict[str, Any] | None = None,
) -> dict[str, Any]:
    method_name, failure = _LOADERS[screen]
    try:
        items = await getattr(api, method_name)(params or {})
    except ApiError as e:
        logger.warning("%s screen load failed: %s", screen, e)
        notifier.error(failure)
        items = []
    return {
        "screen": screen,
        "items": items,
        "actions": rbac.allowed_actions(identity, screen),
    }
