"""Logger for the media_grabber package.

Everything goes to ``<log_dir>/grabber.log``; only warnings and errors reach
the terminal so they don't interleave with CLI output.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _handler(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(log_dir: str = "logs", level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger("media_grabber")
    logger.setLevel(level)
    if logger.handlers:
        return logger

    os.makedirs(log_dir, exist_ok=True)
    logfile = os.path.join(log_dir, "grabber.log")

    logger.addHandler(_handler(logging.StreamHandler(), max(level, logging.WARNING)))
    logger.addHandler(_handler(
        RotatingFileHandler(logfile, maxBytes=LOG_FILE_MAX_BYTES, backupCount=LOG_FILE_BACKUPS),
        level,
    ))
    return logger
