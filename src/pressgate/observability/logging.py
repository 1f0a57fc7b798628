"""Structured logging for Pressgate.

JSON lines in production, a compact console format in development.
Request and correlation IDs ride along in context variables so that
log lines emitted from cache and fetch code carry the ID of the request
(or background task) that caused them.

Usage:
    from pressgate.observability.logging import configure_logging

    configure_logging(json_format=True, level="INFO")
"""

from __future__ import annotations

import contextvars
import logging
import sys
from datetime import UTC, datetime
from typing import Any

import orjson
from opentelemetry import trace

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)
task_var: contextvars.ContextVar[str] = contextvars.ContextVar("task", default="")

_STANDARD_ATTRS = frozenset(
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
        "taskName",
        "message",
    }
)


def _current_trace_ids() -> tuple[str, str] | None:
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return None
    return format(span_context.trace_id, "032x"), format(span_context.span_id, "016x")


class JsonFormatter(logging.Formatter):
    """One JSON object per record.

    {"timestamp": "...", "level": "INFO", "logger": "pressgate.fetch.client",
     "message": "...", "request_id": "...", "trace_id": "...", "target": "wordpress"}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, var in (
            ("request_id", request_id_var),
            ("correlation_id", correlation_id_var),
            ("task", task_var),
        ):
            value = var.get()
            if value:
                log_data[key] = value

        ids = _current_trace_ids()
        if ids is not None:
            log_data["trace_id"], log_data["span_id"] = ids

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        # Fields passed through extra=
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_data[key] = value

        return orjson.dumps(log_data, default=str).decode()


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for development.

    2026-01-10 12:34:56 | INFO     | pressgate.cache.registry | Swept 3 entries | req=abc12345
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname
        if self.use_colors:
            level = f"{self.COLORS.get(level, '')}{level}{self.RESET}"

        context_parts = []
        request_id = request_id_var.get()
        if request_id:
            context_parts.append(f"req={request_id[:8]}")
        task = task_var.get()
        if task:
            context_parts.append(f"task={task}")
        ids = _current_trace_ids()
        if ids is not None:
            context_parts.append(f"trace={ids[0][:8]}")
        context = f" | {' '.join(context_parts)}" if context_parts else ""

        result = f"{timestamp} | {level:8} | {record.name} | {record.getMessage()}{context}"
        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)
        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Configure application-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
    root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)


class LogContext:
    """Temporarily set log correlation context.

    Usage:
        with LogContext(task="cache-sweep"):
            logger.info("Sweeping")  # carries task=cache-sweep
    """

    _VARS: dict[str, contextvars.ContextVar[str]] = {
        "request_id": request_id_var,
        "correlation_id": correlation_id_var,
        "task": task_var,
    }

    def __init__(self, **kwargs: str) -> None:
        unknown = set(kwargs) - set(self._VARS)
        if unknown:
            raise TypeError(f"Unsupported log context keys: {sorted(unknown)}")
        self.extra = kwargs
        self._tokens: dict[str, contextvars.Token[str]] = {}

    def __enter__(self) -> LogContext:
        for key, value in self.extra.items():
            self._tokens[key] = self._VARS[key].set(value)
        return self

    def __exit__(self, *args: Any) -> None:
        for key, token in self._tokens.items():
            self._VARS[key].reset(token)
        self._tokens.clear()
