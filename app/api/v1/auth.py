"""Auth endpoints and the access-token gate (verify_access_token, check_role, check_admin_permission)."""

from collections.abc import Callable, Iterable
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import AuthenticationRequired, Forbidden, MissingToken
from app.core.permissions import Action, Role, authorize
from app.core.tokens import TokenType, parse_token
from app.schemas.auth import (
    AuthContext,
    ChangePasswordRequest,
    ForgetPasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    RefreshTokenRequest,
    ResetPasswordRequest,
    TokenPairResponse,
)
from app.services import passwords, sessions
from app.services.notifications import ResetLinkNotifier, SmtpEmailSender

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_notifier(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ResetLinkNotifier:
    return SmtpEmailSender.from_settings(settings)


def verify_access_token(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> AuthContext:
    """
    Dependency: require a valid Bearer access token and attach its identity to
    request.state.auth. Stateless: no database lookup, so a revoked account
    keeps access until its token expires.
    """
    if credentials is None:
        raise MissingToken()
    token = credentials.credentials
    if not token or not token.strip():
        raise MissingToken("Access token is required")
    claims = parse_token(token, TokenType.ACCESS, settings)
    context = AuthContext(user_id=claims.subject_id, email=claims.email, role=claims.role)
    request.state.auth = context
    return context


def ensure_role(
    context: AuthContext | None,
    allowed_roles: Iterable[Role],
    message: str | None = None,
) -> AuthContext:
    """Pure role predicate over an attached identity."""
    if context is None:
        raise AuthenticationRequired()
    allowed = tuple(allowed_roles)
    if context.role not in allowed:
        raise Forbidden(
            message or f"Access denied. Required roles: {', '.join(r.value for r in allowed)}"
        )
    return context


def check_role(*roles: Role, message: str | None = None) -> Callable[..., AuthContext]:
    """Dependency factory: valid access token whose role is one of ``roles``."""

    def dependency(
        context: Annotated[AuthContext, Depends(verify_access_token)],
    ) -> AuthContext:
        return ensure_role(context, roles, message)

    return dependency


check_admin_permission = check_role(
    Role.ADMIN,
    Role.SYSTEM_ADMIN,
    message="Only admin and system admin can perform this action",
)


def require_capability(action: Action) -> Callable[..., AuthContext]:
    """Dependency factory: valid access token whose role holds ``action`` in the capability table."""

    def dependency(
        context: Annotated[AuthContext, Depends(verify_access_token)],
    ) -> AuthContext:
        authorize(context.role, action)
        return context

    return dependency


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LoginResponse:
    """
    Authenticate with email and password; returns an access/refresh pair.
    Include the access token in the Authorization header as: Bearer <accessToken>
    """
    return sessions.login(db, body.email, body.password, settings)


@router.post("/logout", response_model=MessageResponse)
def logout(
    current_user: Annotated[AuthContext, Depends(verify_access_token)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Revoke the caller's refresh token."""
    sessions.logout(db, current_user.user_id)
    return MessageResponse(message="Logout successful")


@router.post("/refresh-token", response_model=TokenPairResponse)
def refresh_token(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    body: RefreshTokenRequest | None = None,
) -> TokenPairResponse:
    """Exchange a refresh token for a new pair. The presented token cannot be used again."""
    return sessions.refresh_session(db, body.refresh_token if body else None, settings)


@router.post("/forget-password", response_model=MessageResponse)
def forget_password(
    body: ForgetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    notifier: Annotated[ResetLinkNotifier, Depends(get_notifier)],
) -> MessageResponse:
    """E-mail a one-time reset link valid for RESET_TOKEN_EXPIRE_MINUTES."""
    passwords.request_password_reset(db, notifier, body.email, settings)
    return MessageResponse(message="Reset password link has been sent to your email.")


@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    body: ResetPasswordRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    passwords.reset_password(db, body.token, body.new_password)
    return MessageResponse(message="Password reset successfully")


@router.post("/change-password/{account_id}", response_model=MessageResponse)
def change_password(
    account_id: int,
    body: ChangePasswordRequest,
    current_user: Annotated[AuthContext, Depends(require_capability(Action.CHANGE_OWN_PASSWORD))],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """
    Admins change any password except a system admin's; system admins change any.
    Other roles change only their own and must send oldPassword.
    """
    passwords.change_password(db, current_user, account_id, body.old_password, body.new_password)
    return MessageResponse(message="Password updated successfully")


@router.get("/me", response_model=AuthContext)
def me(
    current_user: Annotated[AuthContext, Depends(verify_access_token)],
) -> AuthContext:
    """Identity carried by the presented access token."""
    return current_user
