"""Structured logging configuration.

JSON or text log output with a per-request correlation ID, plus a thin
logger wrapper that accepts keyword fields and can carry bound context
(user, plan type) across a planning or logging operation.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

# Context variable for correlation ID - available throughout request lifecycle
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "anthropic", "openai")


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents.

    Keys: timestamp, level, service, message, logger, plus correlation_id
    when a request is in flight, any structured fields passed to the
    StructuredLogger, the exception text, and the source location for
    ERROR and above.
    """

    def __init__(self, service_name: str = "healthplan-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "message": record.getMessage(),
            "logger": record.name,
        }

        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.ERROR:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for local development.

    Format: timestamp - service - level - [correlation_id] - message key=value ...
    """

    def __init__(self, service_name: str = "healthplan-api"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        correlation_id = correlation_id_ctx.get() or "-"

        base_msg = (
            f"{timestamp} - {self.service_name} - {record.levelname} - "
            f"[{correlation_id}] - {record.getMessage()}"
        )

        fields = getattr(record, "extra_fields", None)
        if fields:
            base_msg += " " + " ".join(f"{k}={v}" for k, v in fields.items())

        if record.exc_info:
            base_msg += f"\n{self.formatException(record.exc_info)}"

        return base_msg


def setup_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    service_name: str = "healthplan-api",
) -> None:
    """Configure the root logger for the application.

    Args:
        log_format: 'json' for structured logging, 'text' for human-readable
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        service_name: Service name to include in logs
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if log_format.lower() == "json":
        handler.setFormatter(JsonFormatter(service_name=service_name))
    else:
        handler.setFormatter(TextFormatter(service_name=service_name))

    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class StructuredLogger:
    """Logger wrapper that supports structured extra fields.

    ``bind`` returns a child wrapper whose fields are merged into every
    record it emits; per-call fields win on conflict.
    """

    def __init__(self, name: str, context: dict[str, Any] | None = None):
        self._logger = logging.getLogger(name)
        self._context: dict[str, Any] = dict(context or {})

    @property
    def name(self) -> str:
        return self._logger.name

    def bind(self, **fields: Any) -> "StructuredLogger":
        """Return a logger that always includes ``fields``."""
        return StructuredLogger(self._logger.name, {**self._context, **fields})

    def _fields(self, extra_fields: dict[str, Any]) -> dict[str, Any]:
        if not extra_fields:
            return {"extra_fields": self._context} if self._context else {}
        return {"extra_fields": {**self._context, **extra_fields}}

    def debug(self, msg: str, **extra_fields: Any) -> None:
        self._logger.debug(msg, extra=self._fields(extra_fields))

    def info(self, msg: str, **extra_fields: Any) -> None:
        self._logger.info(msg, extra=self._fields(extra_fields))

    def warning(self, msg: str, **extra_fields: Any) -> None:
        self._logger.warning(msg, extra=self._fields(extra_fields))

    def error(self, msg: str, **extra_fields: Any) -> None:
        self._logger.error(msg, extra=self._fields(extra_fields))

    def exception(self, msg: str, **extra_fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._logger.exception(msg, extra=self._fields(extra_fields))


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        StructuredLogger instance
    """
    return StructuredLogger(name)
