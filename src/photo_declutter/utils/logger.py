"""Logging for photo-declutter.

Every module calls ``setup_logger(__name__)`` once at import time. Scan
progress (files indexed, photos analysed, groups found) goes out at INFO;
per-photo decode failures at WARNING; failing category scanners and rejected
deletions at ERROR.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "photo_declutter"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure a photo-declutter module logger.

    Args:
        name: Logger name, normally the calling module's ``__name__``
        level: Console level (default: INFO)
        log_file: Also keep a DEBUG-level scan log in this file

    Returns:
        The configured logger; calling again replaces its handlers
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(fmt=CONSOLE_FORMAT))
    logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


def set_package_level(level: int) -> None:
    """Apply *level* to every photo_declutter logger created so far (CLI ``--verbose``)."""
    for name, candidate in logging.root.manager.loggerDict.items():
        if name.startswith(PACKAGE_LOGGER) and isinstance(candidate, logging.Logger):
            candidate.setLevel(level)
            for handler in candidate.handlers:
                if not isinstance(handler, logging.FileHandler):
                    handler.setLevel(level)
