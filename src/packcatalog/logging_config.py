"""
Structured logging configuration for packcatalog.

Log records carry their context in ``extra={...}``. The formatters here
keep those fields small and stable:
- Descriptor payloads and manifest blobs are replaced by a short summary
- Long lists are replaced by their length
- The user's home directory is shortened to ``~`` in paths and URIs

Usage:
    from packcatalog.logging_config import setup_logging, get_logger

    setup_logging()  # Call once at startup
    logger = get_logger(__name__)
    logger.info("message", extra={"package": "StandardVariant.zip"})
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import orjson

# Attributes every LogRecord has; anything else came in through ``extra``
_RECORD_ATTRS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)

# Fields holding parsed manifest content; never dumped verbatim
SUMMARIZED_FIELDS: frozenset[str] = frozenset(
    {
        "payload",
        "descriptor",
        "manifest_data",
        "entries",
        "map_graphics",
    }
)

MAX_LIST_ITEMS = 10
_MAX_DEPTH = 3


def _home() -> str:
    try:
        return str(Path.home())
    except RuntimeError:
        return ""


def _shorten_home(text: str) -> str:
    """Replace the home directory prefix in paths and file URIs with ``~``."""
    home = _home()
    if not text or not home or home == "/":
        return text
    return text.replace(home, "~")


def _summarize(value: Any) -> str:
    """One-word description of a bulky value."""
    if isinstance(value, list | tuple):
        return f"[{len(value)} items]"
    if isinstance(value, dict):
        return f"[{len(value)} keys]"
    if value is None:
        return "[none]"
    return f"[{type(value).__name__}]"


def _filter_extra(record: dict[str, Any], *, _depth: int = 0) -> dict[str, Any]:
    """Summarize bulky fields and make values JSON friendly.

    Nested dicts are filtered recursively up to depth 3.
    """
    if _depth > _MAX_DEPTH:
        return {"_truncated": "max depth exceeded"}

    filtered: dict[str, Any] = {}
    for key, value in record.items():
        if key.lower() in SUMMARIZED_FIELDS:
            filtered[key] = _summarize(value)
        elif isinstance(value, bool | int | float | type(None)):
            filtered[key] = value
        elif isinstance(value, str):
            filtered[key] = _shorten_home(value)
        elif isinstance(value, Path):
            filtered[key] = _shorten_home(str(value))
        elif isinstance(value, list | tuple | set | frozenset):
            if len(value) <= MAX_LIST_ITEMS:
                filtered[key] = [
                    _shorten_home(v) if isinstance(v, str) else v for v in value
                ]
            else:
                filtered[key] = f"[list:{len(value)} items]"
        elif isinstance(value, dict):
            filtered[key] = _filter_extra(value, _depth=_depth + 1)
        else:
            filtered[key] = _shorten_home(str(value))
    return filtered


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Produces one JSON object per line:
    {"ts":"2024-01-01T00:00:00.000+00:00","level":"INFO","logger":"packcatalog.catalog","msg":"...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_dict: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": _shorten_home(record.getMessage()),
        }

        if record.levelno >= logging.WARNING:
            log_dict["file"] = record.filename
            log_dict["line"] = record.lineno

        if record.exc_info:
            log_dict["exc"] = _shorten_home(self.formatException(record.exc_info))

        extra = _extra_fields(record)
        if extra:
            log_dict.update(_filter_extra(extra))

        return orjson.dumps(log_dict, default=str).decode()


class SimpleFormatter(logging.Formatter):
    """Human-readable formatter for the CLI and tests."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as ``LEVEL logger: msg | k=v ...``."""
        base = f"{record.levelname:8s} {record.name}: {_shorten_home(record.getMessage())}"

        extra = _extra_fields(record)
        if extra:
            filtered = _filter_extra(extra)
            if filtered:
                extra_str = " ".join(f"{k}={v}" for k, v in filtered.items())
                base = f"{base} | {extra_str}"

        if record.exc_info:
            base = f"{base}\n{_shorten_home(self.formatException(record.exc_info))}"
        return base


def setup_logging(
    *,
    level: int | str = logging.INFO,
    json_format: bool = True,
    stream: Any = None,
) -> None:
    """Configure logging for the application.

    Call once at startup. Replaces any handlers on the root logger.

    Args:
        level: Log level (default INFO).
        json_format: Use JSON formatter (default True).
        stream: Output stream (default stderr).
    """
    if stream is None:
        stream = sys.stderr

    handler = logging.StreamHandler(stream)
    handler.setFormatter(JsonFormatter() if json_format else SimpleFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically ``get_logger(__name__)``)."""
    return logging.getLogger(name)
