"""Structured logging configuration."""
import logging
import sys
from typing import Any

from app.config import settings


class StructuredFormatter(logging.Formatter):
    """Formats records as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        line = " ".join(f"{k}={v}" for k, v in log_data.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
        logger.setLevel(level)
        logger.propagate = False

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional key=value context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Context fields (e.g., goal_id, user_id)
    """
    logger.log(level, msg, extra={"extra_data": kwargs})
