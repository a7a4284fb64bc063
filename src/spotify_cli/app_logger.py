"""Logger setup for the Spotify terminal client.

The interactive mode owns the terminal, so it logs to a rotating file; one-shot
commands log to stderr.
"""

import logging
import pathlib
import sys
from logging.handlers import RotatingFileHandler

LOGGER_NAME = "spotify_cli"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Return a logger below the client's root logger."""
    if name == LOGGER_NAME or name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")


def setup_logging(level: str = "INFO", log_file: pathlib.Path | None = None) -> logging.Logger:
    """Configure the client's root logger.

    Args:
        level: Level name such as "DEBUG" or "INFO".
        log_file: Rotating log file; logs go to stderr when None.

    Returns:
        The configured root logger of the client.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=1024 * 1024, backupCount=1)
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    # spotipy logs every failed request at ERROR; our gateway already reports them
    logging.getLogger("spotipy").setLevel(logging.WARNING)
    return logger
