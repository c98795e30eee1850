"""Durable key/value client state, the console's equivalent of browser localStorage.

Access is synchronous: logout must drop the token without awaiting anything.
"""
import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel

from hms_console.core.config import settings
from hms_console.models.client_state import ClientState, _utc_now

logger = logging.getLogger(__name__)


class ClientStorage:
    def get_item(self, key: str) -> str | None:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryClientStorage(ClientStorage):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


def build_engine(url: str) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


class SqlClientStorage(ClientStorage):
    """Rows of client_state keyed by name. Tables are created on construction."""

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine or build_engine(settings.storage_url)
        SQLModel.metadata.create_all(self.engine, tables=[ClientState.__table__])

    def get_item(self, key: str) -> str | None:
        with Session(self.engine) as session:
            row = session.get(ClientState, key)
            return row.value if row else None

    def set_item(self, key: str, value: str) -> None:
        with Session(self.engine) as session:
            row = session.get(ClientState, key)
            if row:
                row.value = value
                row.updated_at = _utc_now()
            else:
                row = ClientState(key=key, value=value)
            session.add(row)
            session.commit()

    def remove_item(self, key: str) -> None:
        with Session(self.engine) as session:
            row = session.get(ClientState, key)
            if row:
                session.delete(row)
                session.commit()
                logger.debug("Removed client state %s", key)
