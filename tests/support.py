"""Shared test helpers: in-memory SQLite sessions, account builder, settings and a recording notifier."""

import bcrypt
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.models import Base, User
from app.services.notifications import NotificationError

ACCESS_SECRET = "test-access-secret-0123456789abcdef0123"
REFRESH_SECRET = "test-refresh-secret-0123456789abcdef012"


def make_session_factory() -> sessionmaker:
    """Fresh in-memory database shared by every session from the factory."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "JWT_ACCESS_SECRET": ACCESS_SECRET,
        "JWT_REFRESH_SECRET": REFRESH_SECRET,
        "FRONTEND_URL": "https://portal.example.com",
    }
    values.update(overrides)
    return Settings(**values)


def fast_hash(password: str) -> str:
    """Low-cost bcrypt hash so fixtures stay quick."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


def add_user(
    db: Session,
    email: str = "a@h.com",
    password: str = "Secret123",
    role: str = "user",
    hospital_name: str = "Central Hospital",
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        password_hash=fast_hash(password),
        hospital_name=hospital_name,
        role=role,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


class RecordingNotifier:
    """Captures reset links instead of sending e-mail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str, str]] = []

    def send_password_reset(self, to_email: str, hospital_name: str, reset_link: str) -> None:
        if self.fail:
            raise NotificationError("SMTP server unreachable")
        self.sent.append((to_email, hospital_name, reset_link))

    @property
    def last_token(self) -> str:
        return self.sent[-1][2].split("token=", 1)[1]
