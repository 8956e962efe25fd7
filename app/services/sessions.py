"""Login, logout and refresh-token rotation."""

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.core.errors import InvalidCredentials, InvalidRefreshToken, MissingToken
from app.core.security import burn_password_check, fingerprint, fingerprints_match, verify_password
from app.core.tokens import TokenType, issue_token_pair, parse_token
from app.schemas.auth import LoginResponse, PublicUser, TokenPairResponse
from app.services import credential_store

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def login(db: Session, email: str, password: str, settings: "Settings") -> LoginResponse:
    """
    Verify credentials and open a session.

    Unknown email, inactive account and wrong password all raise the same
    InvalidCredentials. The new refresh fingerprint overwrites the previous
    one, so any refresh token issued earlier for this account stops working.
    """
    user = credential_store.get_user_by_email(db, email)
    if user is None or not user.is_active:
        burn_password_check(password)
        raise InvalidCredentials()
    if not verify_password(password, user.password_hash):
        raise InvalidCredentials()

    now = datetime.now(UTC)
    pair = issue_token_pair(user, settings, now=now)
    profile = PublicUser(email=user.email, tenant=user.hospital_name, role=user.role)
    user_id = user.id
    credential_store.record_login(db, user_id, pair.refresh_fingerprint, now)
    logger.info("Login succeeded", extra={"user_id": user_id, "role": profile.role.value})

    return LoginResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        user=profile,
    )


def logout(db: Session, user_id: int) -> None:
    """Revoke the outstanding refresh token. Access tokens stay valid until they expire."""
    credential_store.set_refresh_fingerprint(db, user_id, None)
    logger.info("Logout", extra={"user_id": user_id})


def refresh_session(db: Session, refresh_token: str | None, settings: "Settings") -> TokenPairResponse:
    """
    Exchange a refresh token for a new pair (rotation on use).

    The presented token must match the fingerprint stored on the account; the
    replacement is written with a compare-and-swap so two concurrent refreshes
    with the same token cannot both succeed.
    """
    if not refresh_token or not refresh_token.strip():
        raise MissingToken("Refresh token is required")

    claims = parse_token(refresh_token, TokenType.REFRESH, settings)
    presented = fingerprint(refresh_token)

    user = credential_store.get_user_by_id(db, claims.subject_id)
    if (
        user is None
        or not user.is_active
        or not fingerprints_match(user.refresh_token_fingerprint, presented)
    ):
        logger.warning(
            "Rejected refresh token",
            extra={"user_id": claims.subject_id, "account_found": user is not None},
        )
        raise InvalidRefreshToken()

    pair = issue_token_pair(user, settings)
    user_id = user.id
    if not credential_store.swap_refresh_fingerprint(
        db, user_id, expected=presented, new=pair.refresh_fingerprint
    ):
        logger.warning("Refresh token lost rotation race", extra={"user_id": user_id})
        raise InvalidRefreshToken()

    return TokenPairResponse(access_token=pair.access_token, refresh_token=pair.refresh_token)
