"""Account administration endpoints (admin and system admin only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.v1.auth import check_admin_permission
from app.core.database import get_db
from app.schemas.auth import AuthContext, MessageResponse
from app.schemas.users import (
    CreateUserRequest,
    UpdateUserRequest,
    UserOut,
    UserResponse,
    UsersListResponse,
)
from app.services import credential_store, users

router = APIRouter()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserRequest,
    admin: Annotated[AuthContext, Depends(check_admin_permission)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    """Create an account. Only system admins may create admins or system admins."""
    user = users.create_user(db, admin, body)
    return UserResponse(message="User created successfully", user=UserOut.model_validate(user))


@router.get("", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[AuthContext, Depends(check_admin_permission)],
    db: Annotated[Session, Depends(get_db)],
) -> UsersListResponse:
    return UsersListResponse(
        users=[UserOut.model_validate(u) for u in credential_store.list_users(db)]
    )


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    _admin: Annotated[AuthContext, Depends(check_admin_permission)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    user = users.get_user(db, user_id)
    return UserResponse(message="User fetched successfully", user=UserOut.model_validate(user))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: UpdateUserRequest,
    admin: Annotated[AuthContext, Depends(check_admin_permission)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse:
    """Update role, hospitalName or isActive."""
    user = users.update_user(db, admin, user_id, body)
    return UserResponse(message="User updated successfully", user=UserOut.model_validate(user))


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    admin: Annotated[AuthContext, Depends(check_admin_permission)],
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    """Delete permanently; this cannot be undone."""
    users.delete_user(db, admin, user_id)
    return MessageResponse(message="User deleted permanently")
