"""Logging configuration."""

import logging
import sys

from stockfolio.config.settings import get_settings

# Chatty libraries kept at WARNING unless the app itself runs at DEBUG
QUIET_LOGGERS = ("yfinance", "urllib3", "peewee", "matplotlib")

LOG_FORMAT = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging() -> None:
    """Configure application logging to stdout and, if set, a log file."""
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.log_file, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)

    if level > logging.DEBUG:
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
