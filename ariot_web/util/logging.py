"""Process logging configuration for ARIOT Web.

This is the operator/process log (stderr, optional JSON file). It is separate
from the audit log stored in the ``system_logs`` table: the audit log records
what happened to each webhook, this log records how the process handled it.

Records carry webhook context through ``extra={...}`` (see ``CONTEXT_FIELDS``)
and, inside a Flask request, the request method and path. Both formatters
render the same context: the console as ``key=value`` pairs after the
message, the JSON file as top-level keys.

Usage:
    from ariot_web.util.logging import get_logger, configure_logging

    configure_logging(level="DEBUG", json_file="/var/log/ariot.jsonl")
    log = get_logger(__name__)
    log.info("Webhook processed", extra={"slug": "chirpstack", "outcome": "processed"})
"""

from __future__ import annotations

import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from flask import has_request_context, request

_configured = False
_root_logger_name = "ariot"

# Structured keys accepted through extra={...}, in display order.
CONTEXT_FIELDS = ("slug", "integration_id", "outcome", "error_type")


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


def context_pairs(record: logging.LogRecord) -> List[Tuple[str, Any]]:
    """Structured context attached to a record, skipping unset values."""
    pairs = []
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is not None:
            pairs.append((key, value))
    return pairs


class RequestContextFilter(logging.Filter):
    """Stamp records emitted during a Flask request with its method and path."""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context() and not hasattr(record, "path"):
            record.method = request.method
            record.path = request.path
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, context."""

    def format(self, record: logging.LogRecord) -> str:
        output: Dict[str, Any] = {
            "ts": _record_time(record).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "path", None):
            output["request"] = f"{getattr(record, 'method', '')} {record.path}".strip()
        output.update(context_pairs(record))
        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            output["duration_ms"] = duration_ms
        if record.exc_info:
            output["traceback"] = "".join(traceback.format_exception(*record.exc_info))
        return json.dumps(output, default=str)


class ConsoleFormatter(logging.Formatter):
    """``[time] LEVEL [logger] message  key=value ... 12.3ms``, optionally colored."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    DIM = "\033[2m"
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color and sys.stderr.isatty()

    def _paint(self, code: str, text: str) -> str:
        return f"{code}{text}{self.RESET}" if self.use_color and code else text

    def format(self, record: logging.LogRecord) -> str:
        ts = _record_time(record).strftime("%Y-%m-%d %H:%M:%S")
        level = self._paint(self.LEVEL_COLORS.get(record.levelname, ""), f"{record.levelname:8}")
        name = record.name[len(_root_logger_name) + 1:] if record.name.startswith(_root_logger_name + ".") else record.name
        line = f"[{ts}] {level} [{name}] {record.getMessage()}"

        tail = [f"{key}={value}" for key, value in context_pairs(record)]
        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            tail.append(f"{duration_ms}ms")
        if tail:
            line += "  " + self._paint(self.DIM, " ".join(tail))
        if record.exc_info:
            line += "\n" + "".join(traceback.format_exception(*record.exc_info))
        return line


def configure_logging(
    *,
    level: Optional[str] = None,
    json_file: Optional[str] = None,
    use_color: bool = True,
) -> None:
    """Install console (and optional JSON file) handlers on the ``ariot`` logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Defaults to ARIOT_LOG_LEVEL,
               or DEBUG when ARIOT_DEBUG is truthy.
        json_file: JSON-lines output path. Defaults to ARIOT_LOG_FILE.
        use_color: Colorize console output (ignored when stderr is not a TTY).

    Calling this again replaces the handlers installed earlier.
    """
    global _configured

    if level is None:
        if os.environ.get("ARIOT_DEBUG", "").strip().lower() in ("1", "true", "yes"):
            level = "DEBUG"
        else:
            level = os.environ.get("ARIOT_LOG_LEVEL", "INFO")
    if json_file is None:
        json_file = os.environ.get("ARIOT_LOG_FILE") or None

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(_root_logger_name)
    logger.setLevel(numeric_level)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    request_filter = RequestContextFilter()

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ConsoleFormatter(use_color=use_color))
    console_handler.addFilter(request_filter)
    logger.addHandler(console_handler)

    if json_file:
        try:
            file_handler = logging.FileHandler(json_file, mode="a", encoding="utf-8")
        except OSError as exc:
            logger.warning("Failed to open JSON log file %s: %s", json_file, exc)
        else:
            file_handler.setFormatter(JSONFormatter())
            file_handler.addFilter(request_filter)
            logger.addHandler(file_handler)

    logger.propagate = False

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``ariot`` namespace, configuring on first use.

    ``ariot_web.pipeline`` becomes ``ariot.pipeline``; ``__main__`` becomes
    ``ariot.main``.
    """
    if not _configured:
        configure_logging()

    if name == "__main__":
        name = "main"
    if name != _root_logger_name and not name.startswith(_root_logger_name + "."):
        if name.startswith("ariot_web."):
            name = name[len("ariot_web."):]
        name = f"{_root_logger_name}.{name}"
    return logging.getLogger(name)


def log_exception(
    logger: logging.Logger,
    message: str,
    *,
    error_type: Optional[str] = None,
    **extra: Any,
) -> None:
    """Log the exception being handled with webhook context.

    Args:
        logger: The logger to use.
        message: Human-readable error description.
        error_type: Failure category (e.g. "audit_write", "PersistenceError").
        **extra: Context fields such as slug or outcome.
    """
    if error_type:
        extra["error_type"] = error_type
    logger.exception(message, extra=extra)
