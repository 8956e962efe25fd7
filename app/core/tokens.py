"""
Signed, time-boxed access and refresh tokens (JWT).

Every token carries a ``type`` claim. Access and refresh tokens are signed
with different secrets, and parse_token rejects a token of the wrong class
with InvalidTokenType before it attempts signature verification.
"""

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

import jwt

from app.core.errors import InvalidToken, InvalidTokenType, TokenExpired
from app.core.permissions import Role, parse_role
from app.core.security import fingerprint

if TYPE_CHECKING:
    from app.core.config import Settings


class TokenType(str, Enum):
    ACCESS = "ACCESS"
    REFRESH = "REFRESH"


class TokenSubject(Protocol):
    id: int
    email: str
    role: str


@dataclass(frozen=True)
class TokenClaims:
    subject_id: int
    token_type: TokenType
    expires_at: datetime
    email: str | None = None
    role: Role | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str

    @property
    def refresh_fingerprint(self) -> str:
        return fingerprint(self.refresh_token)


_REQUIRED_CLAIMS = ["exp", "iat", "sub", "type"]

_EXPIRED_MESSAGES = {
    TokenType.ACCESS: "Token has expired",
    TokenType.REFRESH: "Refresh token has expired",
}
_INVALID_MESSAGES = {
    TokenType.ACCESS: "Invalid token",
    TokenType.REFRESH: "Invalid refresh token",
}


def _secret_for(token_type: TokenType, settings: "Settings") -> str:
    if token_type is TokenType.ACCESS:
        return settings.JWT_ACCESS_SECRET.get_secret_value()
    return settings.JWT_REFRESH_SECRET.get_secret_value()


def _ttl_for(token_type: TokenType, settings: "Settings") -> timedelta:
    if token_type is TokenType.ACCESS:
        return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES)


def issue_token(
    subject_id: int,
    token_type: TokenType,
    settings: "Settings",
    *,
    role: str | None = None,
    email: str | None = None,
    now: datetime | None = None,
) -> str:
    """Create a JWT with sub, type, iat, exp and a random jti; access tokens also carry email and role."""
    now = now or datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": str(subject_id),
        "type": token_type.value,
        "iat": now,
        "exp": now + _ttl_for(token_type, settings),
        "jti": secrets.token_hex(16),
    }
    if token_type is TokenType.ACCESS:
        payload["email"] = email
        payload["role"] = role
    return jwt.encode(
        payload,
        _secret_for(token_type, settings),
        algorithm=settings.JWT_ALGORITHM,
    )


def issue_token_pair(
    user: TokenSubject,
    settings: "Settings",
    *,
    now: datetime | None = None,
) -> TokenPair:
    """Create a fresh access/refresh pair for an account."""
    now = now or datetime.now(UTC)
    access = issue_token(
        user.id, TokenType.ACCESS, settings, role=user.role, email=user.email, now=now
    )
    refresh = issue_token(user.id, TokenType.REFRESH, settings, now=now)
    return TokenPair(access_token=access, refresh_token=refresh)


def parse_token(token: str, expected_type: TokenType, settings: "Settings") -> TokenClaims:
    """
    Verify a token of the expected class and return its claims.

    Raises InvalidTokenType when the token belongs to the other class,
    TokenExpired when the signature is valid but exp has passed, and
    InvalidToken for anything malformed or unsigned.
    """
    invalid_message = _INVALID_MESSAGES[expected_type]
    if not token or not token.strip():
        raise InvalidToken(invalid_message)

    try:
        unverified = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise InvalidToken(invalid_message) from e
    if unverified.get("type") != expected_type.value:
        raise InvalidTokenType()

    try:
        payload = jwt.decode(
            token,
            _secret_for(expected_type, settings),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpired(_EXPIRED_MESSAGES[expected_type]) from e
    except jwt.PyJWTError as e:
        raise InvalidToken(invalid_message) from e

    if payload.get("type") != expected_type.value:
        raise InvalidTokenType()
    try:
        subject_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise InvalidToken(invalid_message) from e

    role = None
    email = None
    if expected_type is TokenType.ACCESS:
        role = parse_role(payload.get("role"))
        email = payload.get("email")
        if role is None or not email:
            raise InvalidToken(invalid_message)

    return TokenClaims(
        subject_id=subject_id,
        token_type=expected_type,
        expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        email=email,
        role=role,
    )
