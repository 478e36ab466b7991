"""Logging setup shared by the API server and the CLI jobs.

Everything goes to stdout and to one log file per process kind
(logs/server.log for the API, logs/jobs.log for jobs). The level comes from
LOG_LEVEL (via settings); SQL statements are only logged when DATABASE_ECHO
is on.
"""

import logging
import sys
from pathlib import Path

from rentbill.config import settings

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Third-party loggers that flood INFO output
QUIET_LOGGERS = ("uvicorn.access", "httpx")


def get_log_level(name: str | None = None) -> int:
    """Resolve a level name (default: settings.log_level); unknown names mean INFO."""
    level_name = (name or settings.log_level or "INFO").upper()
    return LOG_LEVEL_MAP.get(level_name, logging.INFO)


def setup_server_logging(log_file: str | None = None, level: str | None = None) -> None:
    """
    Configure the root logger with a stdout and a file handler.

    Args:
        log_file: Log file path (default: settings.log_file); parent dirs are created
        level: Level name overriding settings.log_level

    Calling it again replaces the handlers instead of adding more.
    """
    log_path = Path(log_file or settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    log_level = get_log_level(level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(log_path)):
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    quiet_level = max(log_level, logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.database_echo else logging.WARNING
    )


__all__ = ["setup_server_logging", "get_log_level", "LOG_FORMAT"]
