"""Logging configuration for the gateway core."""

import logging
import sys

LOGGER_NAME = "omnibridge"


def setup_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Set up the gateway logger with a stdout handler and formatter."""
    logger = logging.getLogger(LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Propagate to root so test capture and host applications see records
    logger.propagate = True

    return logger


# Global logger instance
logger = setup_logging()
