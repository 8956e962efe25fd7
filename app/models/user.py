"""ORM model for hospital portal accounts (auth and RBAC)."""

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, func

from app.models.base import Base


class User(Base):
    """
    Account for JWT authentication and role-based access control.

    role: 'user', 'guest', 'admin' or 'systemAdmin'
    refresh_token_fingerprint: SHA-256 of the only refresh token that may be redeemed.
    reset_token_fingerprint / reset_token_expires_at: set together, cleared together.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'guest', 'admin', 'systemAdmin')",
            name="ck_users_role",
        ),
        CheckConstraint(
            "(reset_token_fingerprint IS NULL) = (reset_token_expires_at IS NULL)",
            name="ck_users_reset_token_pair",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    hospital_name = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="guest")
    is_active = Column(Boolean, nullable=False, default=True)
    refresh_token_fingerprint = Column(String(64), nullable=True)
    reset_token_fingerprint = Column(String(64), nullable=True, index=True)
    reset_token_expires_at = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(255), nullable=True)
    updated_by = Column(String(255), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
