"""
Logging setup for restcrud.

``setup_logging()`` attaches two handlers to the ``restcrud`` logger:

- a console handler with short, optionally coloured lines
- a rotating JSON Lines file, ``<log_dir>/restcrud.log``

Records carry a ``component`` tag. The HTTP error path logs as ``API`` and the
SQLite adapter as ``DB``; anything else is tagged ``CRUD``. Structured data
passed through ``log_with_context`` lands under ``context`` in the JSONL
entry.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_FILE_NAME = "restcrud.log"
DEFAULT_COMPONENT = "CRUD"

# ANSI colour codes; disabled for NO_COLOR or non-terminal output
_USE_COLOR = not os.environ.get("NO_COLOR") and sys.stdout.isatty()

LEVEL_COLORS = {
    logging.DEBUG: "36",
    logging.WARNING: "33",
    logging.ERROR: "31",
    logging.CRITICAL: "35",
}
COMPONENT_COLORS = {
    "API": "34",
    "DB": "36",
    DEFAULT_COMPONENT: "35",
}


def _paint(text: str, code: str | None) -> str:
    if not _USE_COLOR or not code:
        return text
    return f"\033[{code}m{text}\033[0m"


# =============================================================================
# Formatters
# =============================================================================


class JSONLFormatter(logging.Formatter):
    """
    One JSON object per line.

    Keys: ``timestamp`` (UTC, ``Z`` suffix), ``level``, ``component``,
    ``message``; plus ``context`` when given, ``source`` for warnings and
    above, and ``exception`` when exc_info is attached.

    Example:
    {"timestamp":"2026-01-15T10:30:45.123000Z","level":"WARNING","component":"API","message":"Rejected GET /users: ...","context":{"parameter":"range"},"source":{...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).isoformat()
        entry: dict[str, Any] = {
            "timestamp": timestamp.replace("+00:00", "Z"),
            "level": record.levelname,
            "component": getattr(record, "component", DEFAULT_COMPONENT),
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info and record.exc_info[0]:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {"type": exc_type.__name__, "message": str(exc_value)}

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS [COMPONENT] LEVEL: message``; the level is omitted for INFO."""

    def format(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", DEFAULT_COMPONENT)
        parts = [
            _paint(datetime.fromtimestamp(record.created).strftime("%H:%M:%S"), "2"),
            _paint(f"[{component}]", COMPONENT_COLORS.get(component)),
        ]
        if record.levelno != logging.INFO:
            parts.append(_paint(record.levelname, LEVEL_COLORS.get(record.levelno)) + ":")
        parts.append(record.getMessage())

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


# =============================================================================
# Setup
# =============================================================================


def _resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def setup_logging(
    log_dir: Path | str = ".restcrud/logs",
    level: int | str = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> Path:
    """
    Configure the ``restcrud`` logger with console and JSONL file output.

    Calling it again replaces the handlers installed by the previous call.
    Unknown level names fall back to INFO.

    Returns:
        Path to the JSONL log file
    """
    resolved = _resolve_level(level)
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILE_NAME

    file_handler = RotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setFormatter(JSONLFormatter())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ConsoleFormatter())

    root = logging.getLogger("restcrud")
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(resolved)
    for handler in (console_handler, file_handler):
        handler.setLevel(resolved)
        root.addHandler(handler)

    log_with_context(
        root, logging.INFO, "restcrud logging initialized", log_file=str(log_file)
    )
    return log_file


# =============================================================================
# Component Loggers
# =============================================================================


class _ComponentFilter(logging.Filter):
    """Tags records with a component unless the caller set one."""

    def __init__(self, component: str):
        super().__init__()
        self.component = component

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "component"):
            record.component = self.component
        return True


def get_logger(component: str) -> logging.Logger:
    """Return the ``restcrud.<component>`` logger, tagged with ``component``."""
    tag = component.upper()
    logger = logging.getLogger(f"restcrud.{tag.lower()}")
    if not any(isinstance(f, _ComponentFilter) for f in logger.filters):
        logger.addFilter(_ComponentFilter(tag))
    return logger


def get_api_logger() -> logging.Logger:
    """Logger for the HTTP error path."""
    return get_logger("API")


def get_db_logger() -> logging.Logger:
    """Logger for the SQLite adapter."""
    return get_logger("DB")


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    exc_info: Any = None,
    **kwargs: Any,
) -> None:
    """
    Log ``message`` with structured context.

    ``context`` and any extra keyword arguments are merged into the record's
    ``context`` attribute, which the JSONL formatter writes out.
    """
    merged = {**(context or {}), **kwargs}
    extra = {"context": merged} if merged else None
    logger.log(level, message, extra=extra, exc_info=exc_info, stacklevel=2)
