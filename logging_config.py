"""Logging configuration for the application and scripts."""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Library loggers that are noisy at INFO
_LIBRARY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite")


def _level(name: str, default: int) -> int:
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default


def setup_logging(level: str = "INFO", sql_level: str = "WARNING") -> None:
    """
    Configure root logging to stdout.

    Workflow services log through ``logging.getLogger(__name__)`` and inherit
    the root level; SQL and driver loggers get their own level.

    Args:
        level: Level name for the application (unknown names fall back to INFO)
        sql_level: Level name for SQLAlchemy and driver loggers
    """
    logging.basicConfig(
        level=_level(level, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    for name in _LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(_level(sql_level, logging.WARNING))
