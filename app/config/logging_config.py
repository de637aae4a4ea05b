"""
Configure logging for the voice session service.

All modules log through the single application logger named by LOGGER_NAME.
This module attaches a console handler and, when the log directory can be
created, a rotating file handler. Chatty third-party loggers (the websocket
client and the uvicorn access log) are capped at WARNING unless
SHOW_LIBRARY_LOGS is set.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from app.config.constants import LOGGER_NAME

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

LOG_DIR = Path(os.getenv("LOG_DIR", "logs"))
LOG_FILE_NAME = "voice_session.log"
MAX_LOG_SIZE = 5 * 1024 * 1024  # 5 MB
BACKUP_COUNT = 3

NOISY_LIBRARY_LOGGERS = ("websockets", "websockets.client", "uvicorn.access")


def _quiet_library_loggers() -> None:
    if os.getenv("SHOW_LIBRARY_LOGS", "").strip().lower() in {"1", "true", "yes"}:
        return
    for name in NOISY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def configure_logging(level: Optional[str] = None, log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure the application logger with console and file handlers.

    Args:
        level: Level name overriding LOG_LEVEL
        log_dir: Directory for the rotating log file, defaults to LOG_DIR

    Returns:
        logging.Logger: The configured logger instance
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))

    # Reconfiguring must not stack handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    target_dir = log_dir or LOG_DIR
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            target_dir / LOG_FILE_NAME,
            maxBytes=MAX_LOG_SIZE,
            backupCount=BACKUP_COUNT,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    except OSError as e:
        logger.warning(f"Could not set up file logging in {target_dir}: {e}")

    logger.propagate = False
    _quiet_library_loggers()

    logger.info(f"Logging configured at level {logging.getLevelName(logger.level)}")
    return logger
