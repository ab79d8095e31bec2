"""
Logging setup for photoburst.

All modules log through children of the dedicated "photoburst" logger,
which does not propagate to the root logger so host applications keep
control of their own output.
"""

import logging
import os
from typing import Optional, Union

LOGGER_NAME = "photoburst"
DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def setup_logging(
    level: Union[int, str] = "INFO",
    log_file: Optional[str] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """
    Configure the application logger.

    Args:
        level: Logging level name or number.
        log_file: Optional path; a file handler is added when given.
        fmt: Formatter pattern shared by all handlers.

    Returns:
        The configured "photoburst" logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False

    # Calling twice must not duplicate output
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(fmt)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug(f"Logging initialized at {logging.getLevelName(logger.level)}")
    return logger
