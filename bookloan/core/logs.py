"""Root logging setup shared by the API and the CLI entrypoints."""

import logging
import time

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%SZ"


def configure_logging(level: str | int = logging.INFO) -> None:
    """ISO-8601 timestamps in UTC, matching the trailing Z in LOG_DATEFMT."""
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
