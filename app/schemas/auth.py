"""Request/response schemas for auth endpoints. JSON fields are camelCase on the wire."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.permissions import Role


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LoginRequest(CamelModel):
    """Credentials for login."""

    email: str = Field(..., min_length=1, max_length=255, description="Account email")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class PublicUser(CamelModel):
    """Minimal profile returned at login (no hash, no fingerprints)."""

    email: str
    tenant: str = Field(..., description="Hospital the account belongs to")
    role: Role


class TokenPairResponse(CamelModel):
    """Access/refresh pair returned by /refresh-token."""

    access_token: str = Field(..., description="JWT access token (15 min)")
    refresh_token: str = Field(..., description="JWT refresh token (1 day, single use)")


class LoginResponse(TokenPairResponse):
    message: str = "Login successful"
    user: PublicUser


class RefreshTokenRequest(CamelModel):
    refresh_token: str | None = Field(default=None, description="Refresh token from login or last refresh")


class ForgetPasswordRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=255)


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1, max_length=256, description="Raw token from the reset link")
    new_password: str = Field(..., min_length=1, max_length=128)


class ChangePasswordRequest(CamelModel):
    old_password: str | None = Field(
        default=None,
        max_length=128,
        description="Required when changing your own password without admin rights",
    )
    new_password: str = Field(..., min_length=1, max_length=128)


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    message: str
    errors: list[str] | None = None


class AuthContext(CamelModel):
    """Identity attached to the request by the access-token gate (no DB lookup)."""

    user_id: int
    email: str
    role: Role
