"""Password change, complexity policy, and the one-time reset-token protocol."""

import logging
import re
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.core.errors import (
    Forbidden,
    InvalidOldPassword,
    InvalidOrExpiredToken,
    NotFound,
    NotificationFailed,
    PasswordReused,
    ValidationError,
)
from app.core.permissions import Action, Role, authorize, has_capability, parse_role
from app.core.security import (
    PASSWORD_MIN_LEN,
    fingerprint,
    generate_reset_token,
    hash_password,
    verify_password,
)
from app.schemas.auth import AuthContext
from app.services import credential_store
from app.services.notifications import NotificationError, ResetLinkNotifier

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

# (check, message) pairs; messages are returned in this order when they fail.
PASSWORD_RULES = (
    (lambda p: len(p) >= PASSWORD_MIN_LEN, "Password must be at least 8 characters long"),
    (lambda p: re.search(r"[A-Z]", p) is not None, "Password must contain at least one uppercase letter"),
    (lambda p: re.search(r"[a-z]", p) is not None, "Password must contain at least one lowercase letter"),
    (lambda p: re.search(r"[0-9]", p) is not None, "Password must contain at least one number"),
)


def validate_password_complexity(password: str) -> list[str]:
    """Return the messages of every failed rule; an empty list means the password is acceptable."""
    return [message for check, message in PASSWORD_RULES if not check(password)]


def change_password(
    db: Session,
    actor: AuthContext,
    target_id: int,
    old_password: str | None,
    new_password: str,
) -> None:
    """
    Change an account's password on behalf of ``actor``.

    Holders of CHANGE_ANY_PASSWORD may change any account except a systemAdmin,
    which additionally needs CHANGE_SYSTEM_ADMIN_PASSWORD. Everyone else may
    only change their own password and must present the current one.
    """
    privileged = has_capability(actor.role, Action.CHANGE_ANY_PASSWORD)
    if not privileged:
        authorize(actor.role, Action.CHANGE_OWN_PASSWORD)
        if target_id != actor.user_id:
            raise Forbidden("You can only change your own password")

    target = credential_store.get_user_by_id(db, target_id)
    if target is None:
        raise NotFound("User not found")

    if privileged:
        if parse_role(target.role) is Role.SYSTEM_ADMIN:
            authorize(
                actor.role,
                Action.CHANGE_SYSTEM_ADMIN_PASSWORD,
                "Admins cannot change the password of a system admin",
            )
    elif not old_password or not verify_password(old_password, target.password_hash):
        raise InvalidOldPassword()

    if len(new_password) < PASSWORD_MIN_LEN:
        raise ValidationError("New password must be at least 8 characters long")
    if verify_password(new_password, target.password_hash):
        raise PasswordReused()

    credential_store.set_password_hash(db, target_id, hash_password(new_password))
    logger.info(
        "Password changed",
        extra={"user_id": target_id, "actor_id": actor.user_id, "actor_role": actor.role.value},
    )


def request_password_reset(
    db: Session,
    notifier: ResetLinkNotifier,
    email: str,
    settings: "Settings",
) -> None:
    """
    Store a fresh reset fingerprint and e-mail the raw token inside a link.

    Unknown emails raise NotFound unless RESET_REQUEST_REVEALS_UNKNOWN_EMAIL
    is disabled, in which case they return silently.
    """
    user = credential_store.get_user_by_email(db, email)
    if user is None:
        if settings.RESET_REQUEST_REVEALS_UNKNOWN_EMAIL:
            raise NotFound("User not found")
        logger.info("Password reset requested for unknown email")
        return

    user_id = user.id
    to_email = user.email
    hospital_name = user.hospital_name or "Hospital"

    raw_token = generate_reset_token()
    expires_at = datetime.now(UTC) + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    credential_store.set_reset_token(db, user_id, fingerprint(raw_token), expires_at)

    reset_link = f"{settings.FRONTEND_URL}/reset-password?token={raw_token}"
    try:
        notifier.send_password_reset(to_email, hospital_name, reset_link)
    except NotificationError as e:
        raise NotificationFailed(e.message) from e
    logger.info("Password reset link issued", extra={"user_id": user_id})


def reset_password(
    db: Session,
    raw_token: str,
    new_password: str,
) -> None:
    """
    Consume a reset token and set a new password.

    Wrong and expired tokens produce the same InvalidOrExpiredToken. The
    token's fingerprint and expiry are cleared in the same write that stores
    the new hash, so the token works at most once.
    """
    token_fingerprint = fingerprint(raw_token)
    user = credential_store.find_user_by_reset_token(db, token_fingerprint, datetime.now(UTC))
    if user is None:
        credential_store.clear_expired_reset_tokens(
            db, datetime.now(UTC), token_fingerprint=token_fingerprint
        )
        raise InvalidOrExpiredToken()

    errors = validate_password_complexity(new_password)
    if errors:
        raise ValidationError("Invalid password format", errors=errors)
    if verify_password(new_password, user.password_hash):
        raise PasswordReused()

    user_id = user.id
    consumed = credential_store.consume_reset_token(
        db,
        user_id,
        token_fingerprint,
        hash_password(new_password),
        datetime.now(UTC),
    )
    if not consumed:
        raise InvalidOrExpiredToken()
    logger.info("Password reset completed", extra={"user_id": user_id})
