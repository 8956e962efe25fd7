"""Maintenance: clear password-reset tokens whose expiry has passed."""

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.services import credential_store

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def run_retention(session: Session, settings: "Settings") -> int:
    """
    Clear every expired reset fingerprint/expiry pair so no account keeps a
    dangling reset token. Returns the number of accounts cleared. Idempotent:
    safe to run repeatedly.
    """
    if not settings.RETENTION_ENABLED:
        logger.info("Retention is disabled (RETENTION_ENABLED=false); skipping.")
        return 0

    now = datetime.now(timezone.utc)
    cleared = credential_store.clear_expired_reset_tokens(session, now)

    if cleared > 0:
        logger.info(
            "Retention run: now=%s, reset_tokens_cleared=%s",
            now.isoformat(),
            cleared,
        )
    return cleared
