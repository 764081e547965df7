import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty at INFO; per-request and per-page lines drown out sync progress
QUIET_LOGGERS = (
    "httpx",
    "httpcore",
    "asyncpg",
    "uvicorn.access",
    "alembic.runtime.migration",
)


def setup_logging(level: Optional[str] = None, echo_sql: bool = False) -> None:
    """
    Configure logging for the API server and maintenance scripts.

    Args:
        level: Log level name for ``app.*`` loggers. Defaults to INFO.
        echo_sql: Log every SQL statement (sqlalchemy.engine at INFO).
    """
    log_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if echo_sql else logging.WARNING)

    # Transcript extraction diagnostics log at DEBUG under app.ingestion
    logging.getLogger("app").setLevel(log_level)

    logging.getLogger(__name__).info(
        f"Logging configured at {logging.getLevelName(log_level)} level"
    )
