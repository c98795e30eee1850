import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status

from hms_console.api.deps import Console, enforce, get_console, require_action, require_screen, respond
from hms_console.api.schemas.records import RecordFields, ReportRequest, RestockRequest
from hms_console.core.exceptions import ApiError
from hms_console.models.user import Identity
from hms_console.services import rbac, records

logger = logging.getLogger(__name__)
router = APIRouter(tags=["records"])


def _record_screen(console: Console, name: str, operation: str) -> Identity:
    session = console.session
    identity = enforce(console, rbac.guard_screen(session.identity, name, loading=session.loading))
    if not records.supports(name, operation):
        raise HTTPException(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            detail=f"Cannot {operation} records on {name}",
        )
    return identity


def _outcome(console: Console, response: Response, ok: bool) -> dict:
    if not ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, saved=ok)


@router.get("/screens/{name}/{record_id}")
async def get_record(
    name: str,
    record_id: str,
    console: Console = Depends(get_console),
) -> dict:
    _record_screen(console, name, "get")
    try:
        record = await records.get_record(console.api, name, record_id)
    except ApiError as e:
        raise HTTPException(
            status_code=e.status_code or status.HTTP_502_BAD_GATEWAY,
            detail=e.server_message or "Record not found",
        ) from e
    return respond(console, screen=name, record=record)


@router.post("/screens/{name}")
async def create_record(
    name: str,
    body: RecordFields,
    response: Response,
    console: Console = Depends(get_console),
) -> dict:
    identity = _record_screen(console, name, "create")
    require_action(identity, name, "create")
    ok = await records.create_record(console.api, console.notifier, name, body.model_dump())
    return _outcome(console, response, ok)


@router.put("/screens/{name}/{record_id}")
async def update_record(
    name: str,
    record_id: str,
    body: RecordFields,
    response: Response,
    console: Console = Depends(get_console),
) -> dict:
    identity = _record_screen(console, name, "update")
    require_action(identity, name, "edit")
    ok = await records.update_record(console.api, console.notifier, name, record_id, body.model_dump())
    return _outcome(console, response, ok)


@router.delete("/screens/{name}/{record_id}")
async def delete_record(
    name: str,
    record_id: str,
    response: Response,
    console: Console = Depends(get_console),
) -> dict:
    identity = _record_screen(console, name, "delete")
    require_action(identity, name, "delete")
    ok = await records.delete_record(console.api, console.notifier, name, record_id)
    if not ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, deleted=ok)


@router.post("/screens/inventory/{item_id}/restock")
async def restock_item(
    item_id: str,
    body: RestockRequest,
    response: Response,
    identity: Identity = Depends(require_screen("inventory")),
    console: Console = Depends(get_console),
) -> dict:
    require_action(identity, "inventory", "restock")
    ok = await records.restock_item(
        console.api,
        console.notifier,
        item_id,
        body.quantity,
        batch_number=body.batch_number,
        expiry_date=body.expiry_date.isoformat() if body.expiry_date else None,
    )
    return _outcome(console, response, ok)


@router.post("/reports/generate")
async def generate_report(
    body: ReportRequest,
    response: Response,
    identity: Identity = Depends(require_screen("reports")),
    console: Console = Depends(get_console),
) -> dict:
    require_action(identity, "reports", "generate")
    report = await records.generate_report(
        console.api,
        console.notifier,
        body.model_dump(by_alias=True, mode="json", exclude_none=True),
    )
    if report is None:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, report=report)
