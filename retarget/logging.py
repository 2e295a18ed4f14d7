"""
Log setup for the ``retarget`` command and library loggers.

Library modules only create named loggers under ``retarget.``; handlers are
attached here, once, by the entry point.
"""

from __future__ import annotations

import logging
import sys
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)sZ %(levelname)s %(name)s %(message)s"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3


class UTCFormatter(logging.Formatter):
    converter = time.gmtime

    def __init__(self) -> None:
        super().__init__(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")


def setup_logging(log_file: Path | None = None, *, level: int = logging.INFO) -> logging.Logger:
    """Send ``retarget.*`` records to stderr, and to ``log_file`` when given.

    Stdout is left to the command's JSON output.
    """

    formatter = UTCFormatter()
    logger = logging.getLogger("retarget")
    logger.setLevel(level)
    logger.handlers.clear()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(log_file, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("Logging at %s to %s", logging.getLevelName(level), log_file or "stderr")
    return logger
