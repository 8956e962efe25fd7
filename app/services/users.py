"""Account administration: create, read, update and permanently delete accounts."""

import logging
import re

from sqlalchemy.orm import Session

from app.core.errors import Conflict, Forbidden, NotFound, ValidationError
from app.core.permissions import (
    DEFAULT_ROLE,
    PRIVILEGED_ROLES,
    Action,
    Role,
    authorize,
    parse_role,
)
from app.core.security import hash_password
from app.models import User
from app.schemas.auth import AuthContext
from app.schemas.users import CreateUserRequest, UpdateUserRequest
from app.services import credential_store
from app.services.passwords import validate_password_complexity

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,6}$")


def _ensure_can_grant(actor: AuthContext, role: Role) -> None:
    if role in PRIVILEGED_ROLES:
        authorize(
            actor.role,
            Action.ASSIGN_ADMIN_ROLES,
            f"Only system admin can assign the {role.value} role",
        )


def _ensure_can_manage(actor: AuthContext, target: User) -> None:
    if parse_role(target.role) is Role.SYSTEM_ADMIN:
        authorize(
            actor.role,
            Action.MANAGE_SYSTEM_ADMINS,
            "Only system admin can modify system admin accounts",
        )


def get_user(db: Session, user_id: int) -> User:
    user = credential_store.get_user_by_id(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def create_user(db: Session, actor: AuthContext, body: CreateUserRequest) -> User:
    """Create an active account. Accounts only come into existence this way (no self-registration)."""
    authorize(actor.role, Action.MANAGE_USERS, "Only admin and system admin can create users")

    email = credential_store.normalize_email(body.email)
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")
    hospital_name = body.hospital_name.strip()
    if not hospital_name:
        raise ValidationError("Hospital name cannot be empty")
    errors = validate_password_complexity(body.password)
    if errors:
        raise ValidationError("Invalid password format", errors=errors)

    role = body.role or DEFAULT_ROLE
    _ensure_can_grant(actor, role)
    if credential_store.get_user_by_email(db, email) is not None:
        raise Conflict()

    user = credential_store.create_user(
        db,
        email=email,
        password_hash=hash_password(body.password),
        hospital_name=hospital_name,
        role=role.value,
        is_active=True,
        created_by=actor.email,
    )
    logger.info(
        "User created",
        extra={"user_id": user.id, "role": role.value, "actor_id": actor.user_id},
    )
    return user


def update_user(
    db: Session, actor: AuthContext, user_id: int, body: UpdateUserRequest
) -> User:
    """Update role, hospital or active flag. Deactivating an account revokes its refresh token."""
    authorize(actor.role, Action.MANAGE_USERS, "Only admin and system admin can modify users")
    user = get_user(db, user_id)
    _ensure_can_manage(actor, user)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if "role" in changes:
        _ensure_can_grant(actor, changes["role"])
        changes["role"] = changes["role"].value
    if "hospital_name" in changes:
        changes["hospital_name"] = changes["hospital_name"].strip()
        if not changes["hospital_name"]:
            raise ValidationError("Hospital name cannot be empty")
    if changes.get("is_active") is False:
        changes["refresh_token_fingerprint"] = None
    changes["updated_by"] = actor.email

    user = credential_store.update_user(db, user, changes)
    logger.info(
        "User updated",
        extra={"user_id": user_id, "fields": sorted(changes), "actor_id": actor.user_id},
    )
    return user


def delete_user(db: Session, actor: AuthContext, user_id: int) -> None:
    """Delete permanently. Nobody can delete their own account."""
    authorize(actor.role, Action.MANAGE_USERS, "Only admin and system admin can delete users")
    user = get_user(db, user_id)
    if user_id == actor.user_id:
        raise Forbidden("You cannot delete your own account")
    _ensure_can_manage(actor, user)
    credential_store.delete_user(db, user)
    logger.info("User deleted", extra={"user_id": user_id, "actor_id": actor.user_id})
