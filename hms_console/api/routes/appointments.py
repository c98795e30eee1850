import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import ValidationError

from hms_console.api.deps import Console, get_console, require_action, require_screen, respond
from hms_console.api.schemas.appointment import (
    ChooseTimeRequest,
    DraftUpdate,
    OpenFormRequest,
    StatusChangeRequest,
)
from hms_console.core.exceptions import ApiError, SlotSelectionError, TransitionNotAllowed
from hms_console.models.appointment import Appointment
from hms_console.models.user import Identity
from hms_console.services.booking_service import BookingWorkflow

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])

guard = require_screen("appointments")


def _form_or_404(console: Console, form_id: str) -> BookingWorkflow:
    form = console.forms.get(form_id)
    if form is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Form not found or closed")
    return form


def _require_form_action(identity: Identity, form: BookingWorkflow) -> None:
    require_action(identity, "appointments", "edit" if form.editing else "book")


async def _load_appointment(console: Console, appointment_id: str) -> Appointment:
    appointment = console.board.find(appointment_id)
    if appointment is not None:
        return appointment
    try:
        body = await console.api.get_appointment(appointment_id)
    except ApiError as e:
        raise HTTPException(
            status_code=e.status_code or status.HTTP_502_BAD_GATEWAY,
            detail=e.server_message or "Appointment not found",
        ) from e
    data = body.get("data") if isinstance(body, dict) else None
    try:
        return Appointment.model_validate(data or {})
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Unreadable appointment") from e


@router.get("")
async def list_appointments(
    search: str = Query(""),
    date: str = Query(""),
    status_filter: str = Query("", alias="status"),
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> dict:
    await console.board.refresh(identity, search=search, date=date, status=status_filter)
    return respond(console, **console.board.view(identity))


@router.post("/forms", status_code=status.HTTP_201_CREATED)
async def open_form(
    body: OpenFormRequest,
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> dict:
    appointment = None
    if body.appointment_id:
        require_action(identity, "appointments", "edit")
        appointment = await _load_appointment(console, body.appointment_id)
    else:
        require_action(identity, "appointments", "book")

    async def refresh_board() -> None:
        await console.board.refresh(console.session.identity)

    form = BookingWorkflow(console.api, console.notifier, on_saved=refresh_board)
    form_id = str(uuid4())
    console.add_form(form_id, form)
    await form.open(appointment)
    return respond(console, form_id=form_id, **form.snapshot())


@router.get("/forms/{form_id}")
async def get_form(
    form_id: str,
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> dict:
    form = _form_or_404(console, form_id)
    _require_form_action(identity, form)
    return respond(console, form_id=form_id, **form.snapshot())


@router.patch("/forms/{form_id}")
async def update_form(
    form_id: str,
    body: DraftUpdate,
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> dict:
    form = _form_or_404(console, form_id)
    _require_form_action(identity, form)
    await form.update(**body.model_dump(exclude_unset=True))
    return respond(console, form_id=form_id, **form.snapshot())


@router.post("/forms/{form_id}/time")
async def choose_time(
    form_id: str,
    body: ChooseTimeRequest,
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> dict:
    form = _form_or_404(console, form_id)
    _require_form_action(identity, form)
    try:
        form.choose_time(start=body.start, end=body.end)
    except SlotSelectionError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return respond(console, form_id=form_id, **form.snapshot())


@router.post("/forms/{form_id}/submit")
async def submit_form(
    form_id: str,
    response: Response,
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> dict:
    form = _form_or_404(console, form_id)
    _require_form_action(identity, form)
    saved = await form.submit()
    if saved:
        console.forms.pop(form_id, None)
        return respond(console, saved=True, **console.board.view(identity))
    if form.errors:
        response.status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, saved=False, form_id=form_id, **form.snapshot())


@router.delete("/forms/{form_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_form(
    form_id: str,
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> None:
    form = console.forms.pop(form_id, None)
    if form is not None:
        form.close()


@router.post("/{appointment_id}/status")
async def change_status(
    appointment_id: str,
    body: StatusChangeRequest,
    response: Response,
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> dict:
    if console.board.find(appointment_id) is None:
        await console.board.refresh(identity)
    try:
        ok = await console.board.change_status(identity, appointment_id, body.status)
    except TransitionNotAllowed as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e
    if not ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, updated=ok, **console.board.view(identity))


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    response: Response,
    identity: Identity = Depends(guard),
    console: Console = Depends(get_console),
) -> dict:
    require_action(identity, "appointments", "delete")
    ok = await console.board.delete(identity, appointment_id)
    if not ok:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, deleted=ok, **console.board.view(identity))
