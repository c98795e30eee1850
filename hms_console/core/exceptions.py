from typing import Any


class ApiError(Exception):
    """A remote API call failed. status_code is None for transport failures."""

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    @property
    def server_message(self) -> str | None:
        """Message field of the JSON error body, if the server sent one."""
        if isinstance(self.payload, dict):
            msg = self.payload.get("message")
            if isinstance(msg, str) and msg:
                return msg
        return None


class AuthorizationFailure(ApiError):
    """401 from an authenticated call. The stored credential has already been discarded."""


class TransportFailure(ApiError):
    pass


class SlotSelectionError(ValueError):
    pass


class TransitionNotAllowed(Exception):
    pass


class AccessDenied(Exception):
    """Raised by console guards; redirect_to is where the operator should be sent."""

    def __init__(self, redirect_to: str) -> None:
        super().__init__(f"Redirect to {redirect_to}")
        self.redirect_to = redirect_to
