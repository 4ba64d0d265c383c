"""Logging configuration driven by environment variables."""

import os
import logging
import sys
from pythonjsonlogger import jsonlogger


def _flag(name: str, default: str = "true") -> bool:
    return os.environ.get(name, default).lower() == "true"


class LoggingConfig:
    """Logging settings shared by the API handlers and services."""

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json").lower()
    # Reviewer and admin feedback text may be logged (truncated, masked)
    LOG_FEEDBACK_CONTENT = _flag("LOG_FEEDBACK_CONTENT")
    LOG_MASK_SENSITIVE = _flag("LOG_MASK_SENSITIVE")
    LOG_CORRELATION_ID_HEADER = os.environ.get("LOG_CORRELATION_ID_HEADER", "X-Correlation-ID")
    LOG_SLOW_OPERATION_THRESHOLD_MS = int(os.environ.get("LOG_SLOW_OPERATION_THRESHOLD_MS", "1000"))

    # HTTP and storage clients are chatty at INFO
    QUIET_LOGGERS = ("httpx", "httpcore", "hpack", "supabase", "storage3", "postgrest")

    @classmethod
    def formatter(cls) -> logging.Formatter:
        if cls.LOG_FORMAT == "json":
            return jsonlogger.JsonFormatter(
                "%(timestamp)s %(levelname)s %(name)s %(message)s",
                timestamp=True
            )
        return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    @classmethod
    def setup_logging(cls) -> None:
        """Send all records to stdout in the configured format."""
        level = getattr(logging, cls.LOG_LEVEL, logging.INFO)

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(cls.formatter())

        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()
        root_logger.addHandler(handler)

        for name in cls.QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
