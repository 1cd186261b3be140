"""Logging configuration using loguru"""

import os
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

LOG_LEVEL_ENV_VAR = "CF_SCRAPER_LOG_LEVEL"

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} | {message}"
)


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
    json_file: bool = False,
) -> None:
    """
    Configure loguru sinks for a scraper run.

    Args:
        verbose: Enable debug-level console output
        log_file: Optional file path for a rotating log
        json_file: Write the file sink as one JSON record per line
    """
    logger.remove()

    # Console goes to stderr; stdout is reserved for command output
    log_level = "DEBUG" if verbose else os.environ.get(LOG_LEVEL_ENV_VAR, "INFO").upper()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=log_level, colorize=True)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            serialize=json_file,
            enqueue=True,
        )
        logger.debug(f"Logging to file: {log_file}")
