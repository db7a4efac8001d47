"""
Logging setup for the scheduling service.

Level, log directory and file output come from Settings (LOG_LEVEL, LOG_DIR,
LOG_TO_FILE). Modules call setup_logging(__name__) and may name a file of
their own; explicit arguments win over the configured defaults.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from config import settings

DEFAULT_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

MAX_BYTES = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5


def resolve_level(log_level: Optional[str] = None) -> int:
    """Level constant for a name; the configured LOG_LEVEL when omitted."""
    name = (log_level or settings.log_level or "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _handlers(log_file: Optional[str], log_dir: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file and settings.log_to_file:
        directory = Path(log_dir or settings.log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                directory / log_file,
                maxBytes=MAX_BYTES,
                backupCount=BACKUP_COUNT,
                encoding="utf-8",
            )
        )
    return handlers


def setup_logging(
    name: str,
    log_level: Optional[str] = None,
    log_file: Optional[str] = None,
    log_dir: Optional[str] = None,
    format_string: Optional[str] = None,
) -> logging.Logger:
    """
    Configure and return the logger for a module.

    Args:
        name: Logger name (typically __name__)
        log_level: Level name overriding settings.log_level
        log_file: File name under the log directory; console only when omitted
        log_dir: Directory overriding settings.log_dir
        format_string: Custom format string

    Returns:
        Configured logger instance. A logger that already has handlers is
        returned unchanged.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    level = resolve_level(log_level)
    logger.setLevel(level)
    logger.propagate = False

    formatter = logging.Formatter(format_string or DEFAULT_FORMAT, datefmt=DATE_FORMAT)
    for handler in _handlers(log_file, log_dir):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
