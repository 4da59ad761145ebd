"""Structured logging for the Specter engine.

Lines are rendered as key=value pairs. Identifiers passed through
``log_with_context`` (workflow, match, section) are appended after the
message so a single enrichment or regeneration can be followed across
modules.
"""

import logging
import sys
from typing import Any


class StructuredFormatter(logging.Formatter):
    """key=value formatter with optional context fields and tracebacks."""

    def format(self, record: logging.LogRecord) -> str:
        fields: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            fields.update({k: v for k, v in context.items() if v is not None})

        line = " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_for_env() -> int:
    try:
        from specter.core.config import get_settings

        env = get_settings().SPECTER_ENV
    except Exception:
        # Settings may be unavailable while config itself is importing
        return logging.INFO
    return logging.DEBUG if env == "dev" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the structured stdout handler attached.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_env())

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **context: Any) -> None:
    """
    Log with identifier fields rendered after the message.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **context: Identifiers such as workflow_id, match_id, section_id
    """
    logger.log(level, msg, extra={"context": context})
