"""Shared logger for the server, the agent loop and the client tools."""
import logging
from logging.config import dictConfig
from typing import Union


LOGGER_NAME = "arithmetic_task_server"

logger: logging.Logger = logging.getLogger(LOGGER_NAME)


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure application-wide logging with a single console handler.

    Safe to call more than once (e.g. once per application startup in tests).

    :param level: Log level name ("INFO", "DEBUG", ...) or numeric level
    """
    if isinstance(level, str):
        level = level.upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {
                    "format": "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "console",
                    "level": level,
                }
            },
            "loggers": {
                LOGGER_NAME: {
                    "handlers": ["console"],
                    "level": level,
                }
            },
        }
    )
