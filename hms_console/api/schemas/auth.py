from pydantic import BaseModel, ConfigDict, EmailStr

from hms_console.models.user import Role


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    email: EmailStr
    password: str
    role: Role | None = None
    phone: str | None = None


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
