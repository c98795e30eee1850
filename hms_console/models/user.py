from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Role(str, Enum):
    ADMIN = "Admin"
    DOCTOR = "Doctor"
    NURSE = "Nurse"
    RECEPTIONIST = "Receptionist"
    PATIENT = "Patient"


ALL_ROLES = frozenset(Role)


class Identity(BaseModel):
    """Profile of the signed-in operator as returned by /auth/profile."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    name: str
    role: Role
    email: str | None = None


class AuthResult(BaseModel):
    success: bool
    user: Identity | None = None
    error: str | None = None
