import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import Depends, HTTPException, Request, status

from hms_console.core.config import Settings, settings
from hms_console.core.exceptions import AccessDenied
from hms_console.core.notifications import Notifier
from hms_console.core.storage import ClientStorage, SqlClientStorage
from hms_console.models.user import Identity
from hms_console.services import rbac
from hms_console.services.api_client import HospitalApiClient
from hms_console.services.appointment_service import AppointmentBoard
from hms_console.services.booking_service import BookingWorkflow
from hms_console.services.session_service import SessionManager

logger = logging.getLogger(__name__)


@dataclass
class Console:
    """Everything one operator's console holds for the life of the process."""

    api: HospitalApiClient
    session: SessionManager
    notifier: Notifier
    board: AppointmentBoard
    forms: dict[str, BookingWorkflow] = field(default_factory=dict)
    max_open_forms: int = 20

    def add_form(self, form_id: str, form: BookingWorkflow) -> None:
        """Register a form, evicting the oldest open ones beyond max_open_forms."""
        while self.forms and len(self.forms) >= self.max_open_forms:
            stale_id = next(iter(self.forms))
            self.forms.pop(stale_id).close()
            logger.info("Evicted booking form %s", stale_id)
        self.forms[form_id] = form

    def clear_operator_state(self) -> None:
        """Drop open forms and the listed appointments of the operator who just left."""
        for form in self.forms.values():
            form.close()
        self.forms.clear()
        self.board.appointments = []


def build_console(
    storage: ClientStorage | None = None,
    api: HospitalApiClient | None = None,
    config: Settings | None = None,
) -> Console:
    config = config or settings
    storage = storage or SqlClientStorage()
    api = api or HospitalApiClient(
        storage,
        base_url=config.api_base_url,
        token_key=config.token_storage_key,
        timeout=config.request_timeout_seconds,
    )
    notifier = Notifier()
    console = Console(
        api=api,
        session=SessionManager(api, storage, notifier),
        notifier=notifier,
        board=AppointmentBoard(api, notifier),
        max_open_forms=config.max_open_forms,
    )
    # drafts belong to the operator whose session just ended
    api.on_unauthorized(console.clear_operator_state)
    return console


def get_console(request: Request) -> Console:
    return request.app.state.console


def respond(console: Console, **data: Any) -> dict[str, Any]:
    """Attach and clear pending notifications."""
    data["notifications"] = [
        {"level": n.level, "message": n.message} for n in console.notifier.drain()
    ]
    return data


def enforce(console: Console, decision: rbac.RouteDecision) -> Identity:
    """Turn a guard decision into the operator, a 503 while loading, or a redirect."""
    if decision == rbac.RouteDecision.LOADING:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session is still loading",
        )
    if decision == rbac.RouteDecision.REDIRECT_LOGIN:
        raise AccessDenied(rbac.LOGIN_PATH)
    if decision == rbac.RouteDecision.REDIRECT_DASHBOARD:
        raise AccessDenied(rbac.LANDING_PATH)
    return console.session.identity


def require_screen(screen: str):
    """Create a dependency that guards one route of the console."""

    def screen_guard(console: Console = Depends(get_console)) -> Identity:
        session = console.session
        return enforce(console, rbac.guard_screen(session.identity, screen, loading=session.loading))

    return screen_guard


def current_identity(console: Console = Depends(get_console)) -> Identity:
    session = console.session
    return enforce(console, rbac.guard_route(session.identity, None, loading=session.loading))


def require_action(identity: Identity | None, screen: str, action: str) -> None:
    if not rbac.can(identity, screen, action):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not allowed to {action.replace('_', ' ')} on {screen}",
        )
