"""
Logging Configuration for fluxwh

Provides:
- key=value text logs on stderr (default)
- JSON formatted logs for easy parsing (Loki, ELK, etc.)
- Context passed through ``extra=`` rendered in both formats
- Log level selection via flag or environment variable
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from flux_webhooks.errors import ConfigError

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED}


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Output format:
    {
        "timestamp": "2025-12-17T19:30:00.000Z",
        "level": "INFO",
        "logger": "flux_webhooks.reconciler",
        "message": "creating webhook",
        "extra": { "repository": "org/app", "webhook": "flux-system/app" }
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra_fields = _extra_fields(record)
        if extra_fields:
            log_obj["extra"] = extra_fields

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class KeyValueFormatter(logging.Formatter):
    """Plain text formatter that appends extra fields as key=value pairs."""

    def __init__(self):
        super().__init__(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        pairs = " ".join(f"{k}={v!r}" if isinstance(v, str) and " " in v else f"{k}={v}"
                         for k, v in _extra_fields(record).items())
        return f"{line} {pairs}" if pairs else line


def parse_level(level: str) -> int:
    """Map a level name to its logging constant."""
    try:
        return LEVELS[level.strip().lower()]
    except KeyError:
        raise ConfigError(f"invalid log level: {level!r}") from None


def setup_logging(
    level: str = "info",
    json_format: bool = False,
    stream: Optional[Any] = None,
) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        level: Log level (debug, info, warn, error)
        json_format: Use JSON formatting (True) or key=value text (False)
        stream: Output stream, stderr by default

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(parse_level(level))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter() if json_format else KeyValueFormatter())
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    for noisy in ("httpx", "httpcore", "kubernetes", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root_logger
