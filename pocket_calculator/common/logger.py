"""Package-wide logger."""
import logging
import os
import sys

LOGGER_NAME = "pocket_calculator"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Return the package logger, attaching a stderr handler the first time.

    The level is read from ``POCKET_CALCULATOR_LOG_LEVEL`` (default ``WARNING``).

    :param str name: Logger name

    :return: Configured logger
    :rtype: logging.Logger
    """
    log = logging.getLogger(name)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(handler)
        log.setLevel(os.getenv("POCKET_CALCULATOR_LOG_LEVEL", "WARNING").upper())
    return log


logger = get_logger()
