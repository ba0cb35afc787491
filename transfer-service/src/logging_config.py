"""
Logging configuration for the JustBank transfer service.

Creates rotating file-based loggers under transfer-service/logs/ (or LOG_DIR).
"""

import logging
import os
from pathlib import Path
from logging.handlers import RotatingFileHandler

DEFAULT_LOG_DIR = Path(__file__).parent.parent / "logs"

APP_LOG_FILE_NAME = "transfer_service.log"
CLIENTS_LOG_FILE_NAME = "clients.log"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5


def _setup_file_logger(name: str, log_file: Path, level: int) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    # Avoid duplicate handlers if setup_logging is called multiple times
    logger.handlers = []

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.WARNING)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    return logger


def setup_logging(log_level: str = None, log_dir: str = None) -> Path:
    """
    Configure root + service loggers for the transfer service.

    Returns the directory the log files are written to.
    """
    log_level = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, log_level, logging.INFO)

    directory = Path(log_dir or os.getenv("LOG_DIR") or DEFAULT_LOG_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Service loggers; children (justbank.api.*, justbank.services.*) propagate here
    _setup_file_logger("justbank", directory / APP_LOG_FILE_NAME, level)
    clients_logger = _setup_file_logger("justbank.clients", directory / CLIENTS_LOG_FILE_NAME, level)
    # Outbound calls get their own file only
    clients_logger.propagate = False

    # httpx logs every request at INFO; our clients already do that
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logging.getLogger("justbank").info("Logging configured. Log files in: %s", directory)
    return directory


def get_logger(name: str) -> logging.Logger:
    """
    Convenience wrapper to get a named logger.
    """
    return logging.getLogger(name)
