"""Centralized logging configuration.

Modules log through ``get_logger(__name__)``; the process entry point (CLI or
``app.py``) calls ``setup_logging`` once with the configured level and format.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Literal

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
FormatStyle = Literal["simple", "detailed", "json"]

_FORMATS: dict[str, str] = {
    "simple": "%(levelname)s: %(message)s",
    "detailed": "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
}

# Libraries that log every request or decode step at INFO/DEBUG
_NOISY_LOGGERS = ("httpx", "httpcore", "PIL", "multipart", "python_multipart")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, safe for messages containing quotes."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "name": record.name,
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: LogLevel = "INFO", *, format_style: FormatStyle = "simple") -> None:
    """
    Configure logging for the application.

    Args:
        level: Minimum log level
        format_style: Output format style

    Example:
        >>> setup_logging("DEBUG", format_style="json")
    """
    handler = logging.StreamHandler(sys.stderr)
    if format_style == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FORMATS[format_style]))

    logging.basicConfig(level=getattr(logging, level), handlers=[handler], force=True)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``photo_restyle`` namespace.

    Module ``__name__`` values already carry the prefix and are used as is.
    """
    if name == "photo_restyle" or name.startswith("photo_restyle."):
        return logging.getLogger(name)
    return logging.getLogger(f"photo_restyle.{name}")
