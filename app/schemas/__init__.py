"""Pydantic request/response schemas."""

from app.schemas.auth import (
    AuthContext,
    ChangePasswordRequest,
    ErrorResponse,
    ForgetPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PublicUser,
    RefreshTokenRequest,
    ResetPasswordRequest,
    TokenPairResponse,
)
from app.schemas.health import HealthResponse
from app.schemas.users import (
    CreateUserRequest,
    UpdateUserRequest,
    UserOut,
    UserResponse,
    UsersListResponse,
)

__all__ = [
    "AuthContext",
    "ChangePasswordRequest",
    "CreateUserRequest",
    "ErrorResponse",
    "ForgetPasswordRequest",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MessageResponse",
    "PublicUser",
    "RefreshTokenRequest",
    "ResetPasswordRequest",
    "TokenPairResponse",
    "UpdateUserRequest",
    "UserOut",
    "UserResponse",
    "UsersListResponse",
]
