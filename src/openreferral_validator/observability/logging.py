"""Logging setup for the validator.

Modules log through the standard library (``logging.getLogger(__name__)``);
this module only decides how records are rendered:

- JSON lines for machine consumption (``StructuredFormatter``)
- Human-readable colored lines for the terminal (``HumanReadableFormatter``)
- Context fields bound for the duration of a block (``log_context``)

Structured data is attached with the ``extra`` keyword::

    logger.info("Fetched schema", extra={"data": {"url": url, "status": 200}})

Example:
    Validate a feed with the feed id on every record::

        configure_logging(level="DEBUG", json_format=True)

        with log_context(feed_id="feed-1"):
            await service.validate(request)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import IO, Any

ROOT_LOGGER_NAME = "openreferral_validator"

_context_fields: ContextVar[dict[str, Any] | None] = ContextVar(
    "openreferral_validator_log_context", default=None
)


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging.

    Attributes:
        include_location: Whether to include file/line/function in output.
        extra_fields: Static fields added to every record.
    """

    def __init__(
        self,
        include_location: bool = False,
        extra_fields: dict[str, Any] | None = None,
    ) -> None:
        super().__init__()
        self.include_location = include_location
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "message": record.getMessage(),
            "logger": record.name,
        }

        if self.include_location:
            log_data["location"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        context = _context_fields.get()
        if context:
            log_data["context"] = dict(context)

        data = getattr(record, "data", None)
        if data:
            log_data["data"] = dict(data)

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in self.extra_fields.items():
            log_data.setdefault(key, value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter for terminal output."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True, stream: IO[str] | None = None) -> None:
        super().__init__()
        self.use_colors = use_colors and self._supports_color(stream or sys.stderr)

    @staticmethod
    def _supports_color(stream: IO[str]) -> bool:
        if os.environ.get("NO_COLOR"):
            return False
        if sys.platform == "win32":
            return os.environ.get("ANSICON") is not None or "WT_SESSION" in os.environ
        return hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            level = f"{color}{record.levelname:8}{self.RESET}"
        else:
            level = f"{record.levelname:8}"

        base = f"{timestamp} {level} [{record.name}] {record.getMessage()}"

        context = _context_fields.get()
        if context:
            base += f" | context={json.dumps(dict(context), default=str)}"

        data = getattr(record, "data", None)
        if data:
            base += f" | data={json.dumps(data, default=str)}"

        if record.exc_info:
            base += f"\n{self.formatException(record.exc_info)}"

        return base


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    include_location: bool = False,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Configure the package logger.

    Records are written to stderr by default so that report output on
    stdout stays machine-readable.

    Args:
        level: Minimum log level (int or name such as ``"DEBUG"``).
        json_format: Emit JSON lines instead of human-readable lines.
        include_location: Include file/line/function in JSON output.
        stream: Output stream (defaults to ``sys.stderr``).

    Returns:
        The configured package logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.handlers.clear()
    package_logger.propagate = False
    package_logger.setLevel(level)

    output = stream or sys.stderr
    handler = logging.StreamHandler(output)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(StructuredFormatter(include_location=include_location))
    else:
        handler.setFormatter(HumanReadableFormatter(stream=output))
    package_logger.addHandler(handler)

    return package_logger


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Add fields to every record logged inside the block.

    Example:
        >>> with log_context(feed_id="feed-1"):
        ...     logger.info("Validating")  # Includes feed_id
    """
    current = dict(_context_fields.get() or {})
    current.update(kwargs)
    token = _context_fields.set(current)
    try:
        yield
    finally:
        _context_fields.reset(token)


def get_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return dict(_context_fields.get() or {})


__all__ = [
    "HumanReadableFormatter",
    "ROOT_LOGGER_NAME",
    "StructuredFormatter",
    "configure_logging",
    "get_context",
    "log_context",
]
