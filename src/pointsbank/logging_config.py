"""
Logging configuration for the points service.

Everything under the ``pointsbank`` logger goes to a rotating file in
LOG_DIR; warnings and errors are echoed to the console as well.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pointsbank import config

SERVICE_LOGGER = "pointsbank"
LOG_FILE = "pointsbank.log"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def setup_logging(log_dir: Path = None) -> logging.Logger:
    """
    Attach the file and console handlers to the service logger and return it.

    Safe to call repeatedly: previously attached handlers are closed and
    replaced rather than stacked.
    """
    level = getattr(logging, config.LOG_LEVEL, logging.INFO)
    log_dir = Path(log_dir or config.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.getLogger().setLevel(level)
    service = logging.getLogger(SERVICE_LOGGER)
    service.setLevel(level)
    for handler in list(service.handlers):
        service.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)
    to_file = RotatingFileHandler(log_dir / LOG_FILE, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    to_file.setLevel(level)
    to_file.setFormatter(formatter)
    to_console = logging.StreamHandler()
    to_console.setLevel(logging.WARNING)
    to_console.setFormatter(formatter)
    service.addHandler(to_file)
    service.addHandler(to_console)

    # Engine echo is controlled by SQL_ECHO; keep the logger itself quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return service


def get_logger(name: str) -> logging.Logger:
    """
    Convenience wrapper to get a named logger.
    """
    return logging.getLogger(name)
