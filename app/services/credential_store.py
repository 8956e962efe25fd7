"""
Account reads and conditional writes over a SQLAlchemy session.

Every write is a single UPDATE committed immediately. Writes that must not
race (refresh rotation, reset-token consumption) put the expected current
value in the WHERE clause and report whether a row matched.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, StoreUnavailable
from app.models import User

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


@contextmanager
def _store_call(db: Session, operation: str) -> Iterator[None]:
    """Roll back and raise StoreUnavailable when the database is unreachable or times out."""
    try:
        yield
    except _TRANSIENT_ERRORS as e:
        db.rollback()
        logger.error(
            "Credential store unavailable",
            extra={"operation": operation, "error_type": type(e).__name__},
        )
        raise StoreUnavailable() from e


def normalize_email(email: str) -> str:
    return email.strip().lower()


def get_user_by_id(db: Session, user_id: int) -> User | None:
    with _store_call(db, "get_user_by_id"):
        return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    with _store_call(db, "get_user_by_email"):
        return db.query(User).filter(User.email == normalize_email(email)).first()


def list_users(db: Session) -> list[User]:
    with _store_call(db, "list_users"):
        return db.query(User).order_by(User.id).all()


def _execute_update(db: Session, operation: str, stmt: Any) -> int:
    with _store_call(db, operation):
        result = db.execute(stmt.execution_options(synchronize_session=False))
        db.commit()
        return result.rowcount


def record_login(db: Session, user_id: int, refresh_fingerprint: str, now: datetime) -> None:
    """Overwrite the refresh slot and stamp last_login_at in one write."""
    _execute_update(
        db,
        "record_login",
        update(User)
        .where(User.id == user_id)
        .values(refresh_token_fingerprint=refresh_fingerprint, last_login_at=now),
    )


def swap_refresh_fingerprint(
    db: Session, user_id: int, expected: str, new: str
) -> bool:
    """
    Replace the refresh fingerprint only if it still equals ``expected`` and
    the account is active. Returns False when another request got there first.
    """
    updated = _execute_update(
        db,
        "swap_refresh_fingerprint",
        update(User)
        .where(
            User.id == user_id,
            User.refresh_token_fingerprint == expected,
            User.is_active.is_(True),
        )
        .values(refresh_token_fingerprint=new),
    )
    return updated == 1


def set_refresh_fingerprint(db: Session, user_id: int, value: str | None) -> None:
    """Unconditional overwrite; None revokes whatever refresh token is outstanding."""
    _execute_update(
        db,
        "set_refresh_fingerprint",
        update(User).where(User.id == user_id).values(refresh_token_fingerprint=value),
    )


def set_password_hash(db: Session, user_id: int, password_hash: str) -> None:
    """Store a new hash and revoke the refresh slot."""
    _execute_update(
        db,
        "set_password_hash",
        update(User)
        .where(User.id == user_id)
        .values(password_hash=password_hash, refresh_token_fingerprint=None),
    )


def set_reset_token(
    db: Session, user_id: int, token_fingerprint: str, expires_at: datetime
) -> None:
    _execute_update(
        db,
        "set_reset_token",
        update(User)
        .where(User.id == user_id)
        .values(reset_token_fingerprint=token_fingerprint, reset_token_expires_at=expires_at),
    )


def find_user_by_reset_token(
    db: Session, token_fingerprint: str, now: datetime
) -> User | None:
    """Return the account holding this reset fingerprint if it has not expired."""
    with _store_call(db, "find_user_by_reset_token"):
        return (
            db.query(User)
            .filter(
                User.reset_token_fingerprint == token_fingerprint,
                User.reset_token_expires_at > now,
            )
            .first()
        )


def clear_expired_reset_tokens(
    db: Session, now: datetime, token_fingerprint: str | None = None
) -> int:
    """Clear reset pairs whose expiry has passed (optionally only the one matching a fingerprint)."""
    stmt = update(User).where(
        User.reset_token_fingerprint.is_not(None),
        User.reset_token_expires_at <= now,
    )
    if token_fingerprint is not None:
        stmt = stmt.where(User.reset_token_fingerprint == token_fingerprint)
    return _execute_update(
        db,
        "clear_expired_reset_tokens",
        stmt.values(reset_token_fingerprint=None, reset_token_expires_at=None),
    )


def consume_reset_token(
    db: Session,
    user_id: int,
    token_fingerprint: str,
    password_hash: str,
    now: datetime,
) -> bool:
    """
    Store the new hash and clear the reset pair and refresh slot, only if the
    reset fingerprint is still present and unexpired. False means the token was
    already used or expired in the meantime.
    """
    updated = _execute_update(
        db,
        "consume_reset_token",
        update(User)
        .where(
            User.id == user_id,
            User.reset_token_fingerprint == token_fingerprint,
            User.reset_token_expires_at > now,
        )
        .values(
            password_hash=password_hash,
            reset_token_fingerprint=None,
            reset_token_expires_at=None,
            refresh_token_fingerprint=None,
        ),
    )
    return updated == 1


def create_user(db: Session, **fields: Any) -> User:
    """Insert an account; raises Conflict when the email is taken."""
    user = User(**fields)
    with _store_call(db, "create_user"):
        db.add(user)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise Conflict() from e
        db.refresh(user)
    return user


def update_user(db: Session, user: User, changes: dict[str, Any]) -> User:
    with _store_call(db, "update_user"):
        for field, value in changes.items():
            setattr(user, field, value)
        db.commit()
        db.refresh(user)
    return user


def delete_user(db: Session, user: User) -> None:
    """Permanent delete; there is no soft-delete state."""
    with _store_call(db, "delete_user"):
        db.delete(user)
        db.commit()
