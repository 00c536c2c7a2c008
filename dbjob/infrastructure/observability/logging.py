"""Structured logging configuration with OpenTelemetry integration.

Configures structlog on top of the standard library root logger. Every
line goes to stdout and, when a log file is given, is appended to it as
well. Sensitive values (passwords, session keys) are masked.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog
from opentelemetry import trace

from dbjob.infrastructure.config import Settings, get_settings

# Marks handlers installed by configure_logging so reconfiguration replaces them
_HANDLER_FLAG = "_dbjob_handler"


def configure_logging(
    settings: Settings | None = None,
    log_file: str | Path | None = None,
) -> None:
    """Configure structured logging with structlog.

    Sets up:
    - stdout handler, plus an append-mode file handler when log_file is set
    - Correlation IDs from OpenTelemetry trace context
    - Log level from configuration
    - JSON or console rendering

    Args:
        settings: Settings to read the log level and format from
        log_file: Path of the log file to append to
    """
    settings = settings or get_settings()
    otel_config = settings.observability
    level = getattr(logging, otel_config.log_level.upper())

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_FLAG, False):
            root.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))

    formatter = logging.Formatter("%(message)s")
    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_FLAG, True)
        root.addHandler(handler)
    root.setLevel(level)

    # Build processor chain
    processors: list = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_trace_context,
        _filter_sensitive_data,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if otel_config.log_json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _add_trace_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Attach the active span's ids so task log lines line up with traces."""
    context = trace.get_current_span().get_span_context()
    if context.is_valid:
        event_dict.setdefault("trace_id", trace.format_trace_id(context.trace_id))
        event_dict.setdefault("span_id", trace.format_span_id(context.span_id))
    return event_dict


SENSITIVE_KEYS = frozenset(
    {
        "password",
        "secret",
        "token",
        "session_keys",
        "sessionkeys",
        "api_key",
        "authorization",
    }
)

_REDACTED = "***REDACTED***"


def _mask(value: Any) -> str:
    if isinstance(value, str) and len(value) > 4:
        return value[:4] + "*" * (len(value) - 4)
    return _REDACTED


def _redact(mapping: dict[str, Any]) -> dict[str, Any]:
    redacted = {}
    for key, value in mapping.items():
        if isinstance(key, str) and key.lower() in SENSITIVE_KEYS:
            redacted[key] = _mask(value)
        elif isinstance(value, dict):
            redacted[key] = _redact(value)
        else:
            redacted[key] = value
    return redacted


def _filter_sensitive_data(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Mask credentials in log events, including nested dictionaries.

    Strings longer than four characters keep their first four characters;
    any other value under a sensitive key becomes ``***REDACTED***``.
    """
    return _redact(event_dict)


def get_logger(name: str, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Get structured logger instance.

    Args:
        name: Logger name (typically __name__)
        **initial_values: Context bound to every event from this logger

    Returns:
        Structured logger with bound context

    Example:
        >>> logger = get_logger(__name__, scheduler="billing")
        >>> logger.info("Scheduler started", tasks=3)
    """
    return structlog.get_logger(name, **initial_values)


class TaskLog:
    """Logging function bound to one task.

    Calling it formats ``message % args`` and emits ``"<task> => <text>"``
    at INFO level, so task output reads the same whether it lands in
    stdout or in the scheduler's log file.
    """

    def __init__(self, task_name: str, logger: structlog.stdlib.BoundLogger | None = None):
        self.task_name = task_name
        self._logger = logger or get_logger("dbjob.task", task=task_name)

    def format(self, message: str, *args: Any) -> str:
        text = message % args if args else message
        return f"{self.task_name} => {text}"

    def __call__(self, message: str, *args: Any) -> None:
        self._logger.info(self.format(message, *args))

    def __repr__(self) -> str:
        return f"TaskLog({self.task_name!r})"
