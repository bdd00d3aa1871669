"""User projections returned by the API."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from accounts.models.enums import Role


class UserResponse(BaseModel):
    """Public view of a user: no password hash, no reset state."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    image: str = ""


class AdminUserResponse(UserResponse):
    """User view for administrators."""

    role: Role
    created_at: datetime


class Identity(BaseModel):
    """The authenticated caller, as resolved by the authorization gate."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    name: str
    email: str
    image: str = ""
    role: Role = Role.USER
    created_at: datetime
