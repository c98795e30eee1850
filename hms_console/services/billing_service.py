import logging
from decimal import Decimal
from typing import Any

from hms_console.core.exceptions import ApiError
from hms_console.core.notifications import Notifier
from hms_console.models.billing import BillItem, compute_bill_totals
from hms_console.services.api_client import HospitalApiClient

logger = logging.getLogger(__name__)


def bill_payload(
    fields: dict[str, Any],
    items: list[BillItem],
    tax: Decimal | int | str = 0,
    discount: Decimal | int | str = 0,
    paid_amount: Decimal | int | str = 0,
) -> dict[str, Any]:
    totals = compute_bill_totals(items, tax=tax, discount=discount, paid_amount=paid_amount)
    return {
        **fields,
        "items": [
            {**item.model_dump(by_alias=True, mode="json"), "amount": str(item.amount)}
            for item in items
        ],
        **totals.model_dump(by_alias=True, mode="json"),
    }


async def save_bill(
    api: HospitalApiClient,
    notifier: Notifier,
    payload: dict[str, Any],
    bill_id: str | None = None,
) -> bool:
    try:
        if bill_id:
            await api.update_bill(bill_id, payload)
        else:
            await api.create_bill(payload)
    except ApiError as e:
        default = "Failed to update bill" if bill_id else "Failed to create bill"
        notifier.error(e.server_message or default)
        return False
    notifier.success("Bill updated successfully" if bill_id else "Bill created successfully")
    return True


def _outstanding(bill: dict[str, Any]) -> Decimal:
    """Balance due on a bill record; derived from the totals when the server omits it."""
    if bill.get("balance") is not None:
        return Decimal(str(bill["balance"]))
    total = Decimal(str(bill.get("totalAmount") or 0))
    paid = Decimal(str(bill.get("paidAmount") or 0))
    return total - paid


async def record_payment(
    api: HospitalApiClient,
    notifier: Notifier,
    bill_id: str,
    amount: Decimal,
    payment_method: str = "Cash",
    payment_date: str | None = None,
) -> bool:
    try:
        body = await api.get_bill(bill_id)
    except ApiError as e:
        logger.warning("Bill %s unavailable for payment: %s", bill_id, e)
        notifier.error("Failed to record payment")
        return False
    bill = body.get("data") if isinstance(body, dict) else None
    if not isinstance(bill, dict):
        notifier.error("Failed to record payment")
        return False

    balance = _outstanding(bill)
    if amount <= 0 or amount > balance:
        notifier.error(f"Payment must be between 0 and {balance}")
        return False
    data = {"amount": str(amount), "paymentMethod": payment_method}
    if payment_date:
        data["paymentDate"] = payment_date
    try:
        await api.record_payment(bill_id, data)
    except ApiError as e:
        logger.warning("Payment for bill %s failed: %s", bill_id, e)
        notifier.error("Failed to record payment")
        return False
    notifier.success("Payment recorded successfully")
    return True
