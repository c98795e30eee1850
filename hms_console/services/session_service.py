import logging
from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError

from hms_console.core.exceptions import ApiError
from hms_console.core.notifications import Notifier
from hms_console.core.storage import ClientStorage
from hms_console.models.user import AuthResult, Identity, Role
from hms_console.services import rbac
from hms_console.services.api_client import HospitalApiClient

logger = logging.getLogger(__name__)

LOGIN_FAILED = "Login failed. Please try again."
REGISTRATION_FAILED = "Registration failed"
UPDATE_FAILED = "Update failed"


def _error_message(exc: ApiError, default: str) -> str:
    return exc.server_message or default


def _unwrap_auth(body: Any) -> tuple[Identity, str] | None:
    """{success: true, data: {user, token}} -> (identity, token)."""
    if not isinstance(body, dict) or not body.get("success"):
        return None
    data = body.get("data") or {}
    token = data.get("token")
    user = data.get("user")
    if not token or not isinstance(user, dict):
        return None
    try:
        return Identity.model_validate(user), token
    except ValidationError:
        logger.warning("Auth response carried an unreadable user record")
        return None


def _unwrap_profile(body: Any) -> Identity | None:
    if not isinstance(body, dict) or not body.get("success"):
        return None
    try:
        return Identity.model_validate(body.get("data") or {})
    except ValidationError:
        logger.warning("Profile response carried an unreadable user record")
        return None


class SessionManager:
    """The operator's authenticated identity. One per process, injected where needed."""

    def __init__(
        self,
        api: HospitalApiClient,
        storage: ClientStorage,
        notifier: Notifier | None = None,
    ) -> None:
        self.api = api
        self.storage = storage
        self.notifier = notifier or Notifier()
        self.identity: Identity | None = None
        self.loading = True
        api.on_unauthorized(self._on_unauthorized)

    @property
    def token_key(self) -> str:
        return self.api.token_key

    def _on_unauthorized(self) -> None:
        if self.identity is not None:
            logger.info("Session for user %s ended by authorization failure", self.identity.id)
        self.identity = None

    def _discard_token(self) -> None:
        self.storage.remove_item(self.token_key)
        self.api.credential.clear()

    def _establish(self, identity: Identity, token: str) -> None:
        self.storage.set_item(self.token_key, token)
        self.api.credential.attach(token)
        self.identity = identity

    async def initialize(self) -> None:
        """Restore the session from a stored token. Always ends with loading=False."""
        self.loading = True
        try:
            token = self.storage.get_item(self.token_key)
            if not token:
                return
            self.api.credential.attach(token)
            try:
                body = await self.api.get_profile()
            except ApiError as e:
                logger.info("Stored token rejected during startup: %s", e)
                self._discard_token()
                return
            identity = _unwrap_profile(body)
            if identity is None:
                self._discard_token()
                return
            self.identity = identity
            logger.info("Session restored for %s (role=%s)", identity.name, identity.role.value)
        finally:
            self.loading = False

    async def login(self, email: str, password: str) -> AuthResult:
        try:
            body = await self.api.login(email, password)
        except ApiError as e:
            msg = _error_message(e, LOGIN_FAILED)
            self.notifier.error(msg)
            return AuthResult(success=False, error=msg)
        pair = _unwrap_auth(body)
        if pair is None:
            msg = (body or {}).get("message") if isinstance(body, dict) else None
            msg = msg or LOGIN_FAILED
            self.notifier.error(msg)
            return AuthResult(success=False, error=msg)
        identity, token = pair
        self._establish(identity, token)
        self.notifier.success("Login successful")
        return AuthResult(success=True, user=identity)

    async def register(self, fields: dict[str, Any]) -> AuthResult:
        try:
            body = await self.api.register(fields)
        except ApiError as e:
            msg = _error_message(e, REGISTRATION_FAILED)
            self.notifier.error(msg)
            return AuthResult(success=False, error=msg)
        pair = _unwrap_auth(body)
        if pair is None:
            msg = (body or {}).get("message") if isinstance(body, dict) else None
            msg = msg or REGISTRATION_FAILED
            self.notifier.error(msg)
            return AuthResult(success=False, error=msg)
        identity, token = pair
        self._establish(identity, token)
        self.notifier.success("Registration successful")
        return AuthResult(success=True, user=identity)

    def logout(self) -> None:
        self._discard_token()
        self.identity = None

    async def update_profile(self, fields: dict[str, Any]) -> AuthResult:
        try:
            body = await self.api.update_profile(fields)
        except ApiError as e:
            msg = _error_message(e, UPDATE_FAILED)
            self.notifier.error(msg)
            return AuthResult(success=False, error=msg)
        identity = _unwrap_profile(body)
        if identity is None:
            self.notifier.error(UPDATE_FAILED)
            return AuthResult(success=False, error=UPDATE_FAILED)
        self.identity = identity
        self.notifier.success("Profile updated successfully")
        return AuthResult(success=True, user=identity)

    @property
    def is_authenticated(self) -> bool:
        # Both checked: the token may vanish before identity is cleared.
        has_identity = self.identity is not None
        has_token = bool(self.storage.get_item(self.token_key))
        return has_identity and has_token

    def has_role(self, required: Role | str | Iterable[Role | str]) -> bool:
        return rbac.has_role(self.identity, required)
