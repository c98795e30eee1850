from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ClientState(SQLModel, table=True):
    __tablename__ = "client_state"
    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=_utc_now, sa_type=DateTime(timezone=True))
