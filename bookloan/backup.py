"""
CLI entrypoint for a full-store backup. Run from cron, e.g.:

  python -m bookloan.backup

Or nightly: 0 3 * * * cd /path/to/bookloan && .venv/bin/python -m bookloan.backup
"""

import logging
import sys

from bookloan.core.config import get_settings
from bookloan.core.database import SessionLocal
from bookloan.core.logs import configure_logging
from bookloan.services.backup import create_backup

configure_logging()
logger = logging.getLogger(__name__)


def main() -> int:
    """Write every table to BACKUP_DIR as one JSON file."""
    settings = get_settings()
    db = SessionLocal()
    try:
        path, counts = create_backup(db, settings)
        logger.info("Backup completed: file=%s counts=%s", path, counts)
        return 0
    except Exception as e:
        logger.exception("Backup job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
