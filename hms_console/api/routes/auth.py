import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import RedirectResponse

from hms_console.api.deps import Console, current_identity, get_console, respond
from hms_console.api.schemas.auth import LoginRequest, ProfileUpdate, RegisterRequest
from hms_console.models.user import Identity
from hms_console.services import rbac

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/login")
async def login_screen(console: Console = Depends(get_console)):
    if console.session.is_authenticated:
        return RedirectResponse(url=rbac.LANDING_PATH, status_code=status.HTTP_303_SEE_OTHER)
    return respond(console, screen="login")


@router.post("/auth/login")
async def login(
    body: LoginRequest,
    response: Response,
    console: Console = Depends(get_console),
) -> dict:
    result = await console.session.login(body.email, body.password)
    if not result.success:
        response.status_code = status.HTTP_401_UNAUTHORIZED
    return respond(console, **result.model_dump(mode="json"))


@router.post("/auth/register")
async def register(
    body: RegisterRequest,
    response: Response,
    console: Console = Depends(get_console),
) -> dict:
    result = await console.session.register(body.model_dump(mode="json", exclude_none=True))
    if not result.success:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, **result.model_dump(mode="json"))


@router.post("/auth/logout")
async def logout(console: Console = Depends(get_console)) -> dict:
    console.session.logout()
    console.clear_operator_state()
    return respond(console, message="Logged out")


@router.get("/auth/session")
async def session_state(console: Console = Depends(get_console)) -> dict:
    session = console.session
    return respond(
        console,
        loading=session.loading,
        authenticated=session.is_authenticated,
        user=session.identity.model_dump(mode="json") if session.identity else None,
    )


@router.get("/auth/profile")
async def profile(
    identity: Identity = Depends(current_identity),
    console: Console = Depends(get_console),
) -> dict:
    return respond(console, user=identity.model_dump(mode="json"))


@router.put("/auth/profile")
async def update_profile(
    body: ProfileUpdate,
    response: Response,
    identity: Identity = Depends(current_identity),
    console: Console = Depends(get_console),
) -> dict:
    result = await console.session.update_profile(body.model_dump(mode="json", exclude_none=True))
    if not result.success:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return respond(console, **result.model_dump(mode="json"))
