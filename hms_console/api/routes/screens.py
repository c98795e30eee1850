import logging

from fastapi import APIRouter, Depends, Query, Response, status

from hms_console.api.deps import (
    Console,
    current_identity,
    enforce,
    get_console,
    require_action,
    require_screen,
    respond,
)
from hms_console.api.schemas.billing import BillRequest, BillTotalsRequest, PaymentRequest
from hms_console.core.exceptions import AccessDenied
from hms_console.models.billing import compute_bill_totals
from hms_console.models.user import Identity
from hms_console.services import rbac
from hms_console.services.billing_service import bill_payload, record_payment, save_bill
from hms_console.services.dashboard_service import load_dashboard
from hms_console.services.screens import LIST_SCREENS, load_list_screen

logger = logging.getLogger(__name__)
router = APIRouter(tags=["screens"])


@router.get("/navigation")
async def navigation(
    identity: Identity = Depends(current_identity),
    console: Console = Depends(get_console),
) -> dict:
    return respond(
        console,
        user={"name": identity.name, "role": identity.role.value},
        items=[{"name": n.name, "href": n.href} for n in rbac.navigation_for(identity)],
    )


@router.get("/dashboard")
async def dashboard(
    identity: Identity = Depends(require_screen("dashboard")),
    console: Console = Depends(get_console),
) -> dict:
    stats = await load_dashboard(console.api, identity)
    return respond(console, screen="dashboard", stats=stats.model_dump(mode="json"))


@router.get("/screens/{name}")
async def screen(
    name: str,
    search: str = Query(""),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    console: Console = Depends(get_console),
) -> dict:
    session = console.session
    identity = enforce(console, rbac.guard_screen(session.identity, name, loading=session.loading))
    # these two have their own endpoints
    if name in ("dashboard", "appointments"):
        raise AccessDenied(f"/{name}")
    if name not in LIST_SCREENS:
        return respond(console, screen=name, items=[], actions=rbac.allowed_actions(identity, name))
    view = await load_list_screen(
        console.api,
        console.notifier,
        identity,
        name,
        {"search": search, "page": page, "limit": limit},
    )
    return respond(console, **view)


@router.post("/billing/totals")
async def bill_totals(
    body: BillTotalsRequest,
    identity: Identity = Depends(require_screen("billing")),
    console: Console = Depends(get_console),
) -> dict:
    require_action(identity, "billing", "create")
    totals = compute_bill_totals(body.items, body.tax, body.discount, body.paid_amount)
    return respond(
        console,
        **totals.model_dump(by_alias=True, mode="json"),
        balance=str(totals.balance),
    )


async def _save_bill(
    console: Console, body: BillRequest, response: Response, bill_id: str | None
) -> dict:
    payload = bill_payload(
        body.model_dump(
            by_alias=True,
            mode="json",
            exclude={"items", "tax", "discount", "paid_amount"},
            exclude_none=True,
        ),
        body.items,
        tax=body.tax,
        discount=body.discount,
        paid_amount=body.paid_amount,
    )
    ok = await save_bill(console.api, console.notifier, payload, bill_id=bill_id)
    if not ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, saved=ok)


@router.post("/billing")
async def create_bill(
    body: BillRequest,
    response: Response,
    identity: Identity = Depends(require_screen("billing")),
    console: Console = Depends(get_console),
) -> dict:
    require_action(identity, "billing", "create")
    return await _save_bill(console, body, response, None)


@router.put("/billing/{bill_id}")
async def update_bill(
    bill_id: str,
    body: BillRequest,
    response: Response,
    identity: Identity = Depends(require_screen("billing")),
    console: Console = Depends(get_console),
) -> dict:
    require_action(identity, "billing", "edit")
    return await _save_bill(console, body, response, bill_id)


@router.post("/billing/{bill_id}/payments")
async def bill_payment(
    bill_id: str,
    body: PaymentRequest,
    response: Response,
    identity: Identity = Depends(require_screen("billing")),
    console: Console = Depends(get_console),
) -> dict:
    require_action(identity, "billing", "record_payment")
    ok = await record_payment(
        console.api,
        console.notifier,
        bill_id,
        amount=body.amount,
        payment_method=body.payment_method,
        payment_date=body.payment_date,
    )
    if not ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, recorded=ok)
