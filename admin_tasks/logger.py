"""Logging for the task engine, driven by ``verbose`` and ``log-file`` in Config.

Engine modules log through ``logging.getLogger(__name__)``; everything under
``admin_tasks`` ends up here. Console records go through rich on stderr so
they never mix with command output. The file keeps task transitions at INFO
even when the console is quiet.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .config import Config

PACKAGE_LOGGER = "admin_tasks"
FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
MAX_LOG_BYTES = 1024 * 1024
LOG_BACKUP_COUNT = 5

# Modules whose INFO records are task state changes.
TRANSITION_LOGGERS = ("admin_tasks.assignment", "admin_tasks.scanner")


def log_path(config: Config) -> Optional[Path]:
    """File to log to, or ``None`` when ``log-file`` is empty."""
    if not config.log_file:
        return None
    return Path(config.log_file).expanduser()


def setup_logger(config: Config) -> logging.Logger:
    """Attach console and file handlers to the package logger.

    The console shows WARNING and up unless ``verbose`` is set. A configured
    log file always receives INFO, so a quiet CLI run still leaves a record
    of every assignment and scan transition.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    console_level = logging.INFO if config.verbose else logging.WARNING
    logger.addHandler(RichHandler(
        console=Console(stderr=True),
        level=console_level,
        show_path=False,
        show_time=False,
    ))

    path = log_path(config)
    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    logger.setLevel(logging.INFO if path is not None else console_level)
    # Transition modules inherit the package level.
    for name in TRANSITION_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
    return logger
