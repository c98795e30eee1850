import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"


@dataclass
class Notification:
    level: str
    message: str


class Notifier:
    """Transient user-facing messages. Drained into each console response."""

    def __init__(self) -> None:
        self._pending: list[Notification] = []

    def _push(self, level: str, message: str) -> None:
        self._pending.append(Notification(level=level, message=message))
        if level == ERROR:
            logger.warning("Notify %s: %s", level, message)
        else:
            logger.info("Notify %s: %s", level, message)

    def success(self, message: str) -> None:
        self._push(SUCCESS, message)

    def error(self, message: str) -> None:
        self._push(ERROR, message)

    def drain(self) -> list[Notification]:
        out = self._pending
        self._pending = []
        return out
