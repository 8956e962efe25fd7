"""Request/response schemas for account administration."""

from datetime import datetime

from pydantic import ConfigDict, Field

from app.core.permissions import Role
from app.schemas.auth import CamelModel


class CreateUserRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    hospital_name: str = Field(..., min_length=1, max_length=255)
    role: Role | None = Field(default=None, description="Defaults to guest")


class UpdateUserRequest(CamelModel):
    """Only these fields are editable here; passwords go through change/reset."""

    role: Role | None = None
    hospital_name: str | None = Field(default=None, max_length=255)
    is_active: bool | None = None


class UserOut(CamelModel):
    """Account as shown to administrators (no hash, no token fingerprints)."""

    id: int
    email: str
    hospital_name: str
    role: Role
    is_active: bool
    last_login_at: datetime | None = None
    created_by: str | None = None
    updated_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class UserResponse(CamelModel):
    message: str
    user: UserOut


class UsersListResponse(CamelModel):
    users: list[UserOut]
