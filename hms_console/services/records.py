"""Single-record operations behind the directory screens, plus restock and reports."""
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Any

from hms_console.core.exceptions import ApiError
from hms_console.core.notifications import Notifier
from hms_console.services.api_client import HospitalApiClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordKind:
    noun: str
    get: str
    create: str | None = None
    update: str | None = None
    delete: str | None = None
    # (verb, past tense) used in notifications
    created: tuple[str, str] = ("create", "created")
    deleted: tuple[str, str] = ("delete", "deleted")


RECORD_KINDS: dict[str, RecordKind] = {
    "patients": RecordKind(
        "Patient", "get_patient", "create_patient", "update_patient", "delete_patient"
    ),
    "doctors": RecordKind(
        "Doctor", "get_doctor", "create_doctor", "update_doctor", "delete_doctor",
        deleted=("deactivate", "deactivated"),
    ),
    "inventory": RecordKind(
        "Item", "get_inventory_item", "create_inventory_item", "update_inventory_item",
        "delete_inventory_item",
        created=("add", "added"),
        deleted=("deactivate", "deactivated"),
    ),
    # bills are created and edited through the totals-aware billing endpoints
    "billing": RecordKind("Bill", "get_bill", delete="delete_bill"),
}


def supports(screen: str, operation: str) -> bool:
    kind = RECORD_KINDS.get(screen)
    return kind is not None and getattr(kind, operation) is not None


async def _notify_outcome(
    notifier: Notifier, call: Awaitable[Any], done: str, failed: str
) -> bool:
    try:
        await call
    except ApiError as e:
        logger.warning("%s: %s", failed, e)
        notifier.error(e.server_message or failed)
        return False
    notifier.success(done)
    return True


async def get_record(api: HospitalApiClient, screen: str, record_id: str) -> dict[str, Any]:
    """Raises ApiError; the caller decides how a missing record is reported."""
    kind = RECORD_KINDS[screen]
    body = await getattr(api, kind.get)(record_id)
    data = body.get("data") if isinstance(body, dict) else None
    return data if isinstance(data, dict) else {}


async def create_record(
    api: HospitalApiClient, notifier: Notifier, screen: str, data: dict[str, Any]
) -> bool:
    kind = RECORD_KINDS[screen]
    verb, past = kind.created
    return await _notify_outcome(
        notifier,
        getattr(api, kind.create)(data),
        f"{kind.noun} {past} successfully",
        f"Failed to {verb} {kind.noun.lower()}",
    )


async def update_record(
    api: HospitalApiClient,
    notifier: Notifier,
    screen: str,
    record_id: str,
    data: dict[str, Any],
) -> bool:
    kind = RECORD_KINDS[screen]
    return await _notify_outcome(
        notifier,
        getattr(api, kind.update)(record_id, data),
        f"{kind.noun} updated successfully",
        f"Failed to update {kind.noun.lower()}",
    )


async def delete_record(
    api: HospitalApiClient, notifier: Notifier, screen: str, record_id: str
) -> bool:
    kind = RECORD_KINDS[screen]
    verb, past = kind.deleted
    return await _notify_outcome(
        notifier,
        getattr(api, kind.delete)(record_id),
        f"{kind.noun} {past} successfully",
        f"Failed to {verb} {kind.noun.lower()}",
    )


async def restock_item(
    api: HospitalApiClient,
    notifier: Notifier,
    item_id: str,
    quantity: int,
    batch_number: str | None = None,
    expiry_date: str | None = None,
) -> bool:
    if quantity < 1:
        notifier.error("Quantity must be at least 1")
        return False
    data: dict[str, Any] = {"quantity": quantity}
    if batch_number:
        data["batchNumber"] = batch_number
    if expiry_date:
        data["expiryDate"] = expiry_date
    return await _notify_outcome(
        notifier,
        api.restock_inventory_item(item_id, data),
        "Item restocked successfully",
        "Failed to restock item",
    )


async def generate_report(
    api: HospitalApiClient, notifier: Notifier, criteria: dict[str, Any]
) -> dict[str, Any] | None:
    try:
        body = await api.generate_report(criteria)
    except ApiError as e:
        logger.warning("Report generation failed: %s", e)
        notifier.error(e.server_message or "Failed to generate report")
        return None
    notifier.success("Report generated successfully")
    data = body.get("data") if isinstance(body, dict) else None
    return data if isinstance(data, dict) else {}
