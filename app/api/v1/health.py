"""Health check: credential store connectivity and reset e-mail readiness."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse
from app.services.notifications import SmtpEmailSender

router = APIRouter()


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """
    Used by load balancers and monitoring. Reports "degraded" when the
    database is unreachable, since no login or refresh can succeed then.
    """
    connected = check_db_connected(db)
    email_ready = SmtpEmailSender.from_settings(settings).is_configured
    return HealthResponse(
        status="ok" if connected else "degraded",
        environment=settings.APP_ENV,
        database="connected" if connected else "disconnected",
        email="configured" if email_ready else "not_configured",
    )
