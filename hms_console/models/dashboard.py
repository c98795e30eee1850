from typing import Any

from pydantic import BaseModel


class DashboardStats(BaseModel):
    """One field per statistic; None means the role does not see it or the call failed."""

    patients: dict[str, Any] | None = None
    doctors: dict[str, Any] | None = None
    appointments: dict[str, Any] | None = None
    bills: dict[str, Any] | None = None
    inventory: dict[str, Any] | None = None
