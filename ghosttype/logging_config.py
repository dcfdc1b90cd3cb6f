"""Logging configuration for GhostType."""

import logging
import sys
from pathlib import Path

LOG_DIR = Path.home() / ".ghosttype" / "logs"
LOG_FILE = LOG_DIR / "ghosttype.log"

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
# Hotkey dispatch and pipeline stages run on named worker threads
DEBUG_CONSOLE_FORMAT = "%(asctime)s.%(msecs)03d - %(threadName)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """
    Configure the ``ghosttype`` logger.

    Args:
        level: Console logging level (default: INFO). At DEBUG the console
            lines also carry milliseconds and the thread name.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger("ghosttype")
    logger.setLevel(min(level, logging.DEBUG))

    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(
            DEBUG_CONSOLE_FORMAT if level <= logging.DEBUG else CONSOLE_FORMAT,
            datefmt="%H:%M:%S",
        )
    )
    logger.addHandler(console_handler)

    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(file_handler)
    except OSError as e:
        # PermissionError is an OSError; the console handler is enough
        logger.warning("Could not set up file logging: %s", e)

    return logger
