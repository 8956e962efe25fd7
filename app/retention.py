"""
CLI entrypoint for the maintenance job. Run from cron, e.g.:

  python -m app.retention

Or every 15 minutes: */15 * * * * cd /path/to/hospital-portal && .venv/bin/python -m app.retention
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.errors import StoreUnavailable
from app.services.retention import run_retention

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run retention: clear expired password-reset tokens."""
    settings = get_settings()
    db = SessionLocal()
    try:
        cleared = run_retention(db, settings)
        logger.info("Retention completed: reset_tokens_cleared=%s", cleared)
        return 0
    except StoreUnavailable as e:
        logger.exception("Retention job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
