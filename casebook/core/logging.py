"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""Logging infrastructure with contextual error tracking.

Every import and export runs under a correlation id so the log lines of one operation
can be told apart. Records carry optional context data which the rich and JSON
formatters render.
"""

import json
import logging
import os
import sys
import threading
import time
import uuid
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from datetime import datetime
from typing import Any

from rich.logging import RichHandler

_context_local = threading.local()

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class CorrelationIdManager:
    """Holds the correlation id of the operation running on the current thread."""

    def get_correlation_id(self) -> str:
        """Get the current correlation ID or generate a new one."""
        if not getattr(_context_local, "correlation_id", None):
            _context_local.correlation_id = f"casebook-{uuid.uuid4()}"
        return _context_local.correlation_id

    def set_correlation_id(self, correlation_id: str) -> None:
        _context_local.correlation_id = correlation_id

    def clear_correlation_id(self) -> None:
        if hasattr(_context_local, "correlation_id"):
            delattr(_context_local, "correlation_id")

    def has_correlation_id(self) -> bool:
        return bool(getattr(_context_local, "correlation_id", None))


correlation_manager = CorrelationIdManager()


class CorrelationIdFilter(logging.Filter):
    """Stamps every record with the current correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_manager.get_correlation_id()
        return True


class ContextAdapter(logging.LoggerAdapter):
    """
    Logger adapter that attaches context data to records.

    Context bound at creation is merged with a per-call ``context=`` mapping and stored
    on the record as ``context_data``.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        context = {**(self.extra or {}), **kwargs.pop("context", {})}
        extra = dict(kwargs.get("extra") or {})
        if context:
            extra["context_data"] = context
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **context: Any) -> "ContextAdapter":
        """Return an adapter with additional bound context."""
        return ContextAdapter(self.logger, {**(self.extra or {}), **context})


class JSONFormatter(logging.Formatter):
    """Formatter that outputs log records as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now().isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "correlation_id"):
            log_data["correlation_id"] = record.correlation_id

        if getattr(record, "context_data", None):
            log_data["context"] = record.context_data

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(log_data, default=str)


class RichContextFormatter(logging.Formatter):
    """Formatter for Rich console output with context data."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)

        context = getattr(record, "context_data", None)
        if context:
            context_str = " ".join(f"[{k}={v}]" for k, v in context.items())
            message = f"{message} {context_str}"

        return message


@contextmanager
def correlation_id(value: str | None = None) -> Iterator[str]:
    """
    Context manager for setting a correlation ID for the current context.

    Args:
    ----
        value: ID to use, or None to generate a new one

    Yields:
    ------
        str: The current correlation ID

    """
    previous_id = (
        correlation_manager.get_correlation_id()
        if correlation_manager.has_correlation_id()
        else None
    )
    correlation_manager.set_correlation_id(value or f"casebook-{uuid.uuid4()}")

    try:
        yield correlation_manager.get_correlation_id()
    finally:
        if previous_id:
            correlation_manager.set_correlation_id(previous_id)
        else:
            correlation_manager.clear_correlation_id()


@contextmanager
def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation_name: str,
    level: int = logging.INFO,
    context: dict[str, Any] | None = None,
) -> Iterator[dict[str, Any]]:
    """
    Context manager for logging operations with timing and context tracking.

    Args:
    ----
        logger: The logger instance to use
        operation_name: Name of the operation being performed
        level: Log level to use
        context: Additional context data to include in the logs

    Yields:
    ------
        The context dict, which the caller may extend before the completion line

    Raises:
    ------
        Exception: Re-raises any exception that occurs within the context

    """
    start_time = time.time()
    context = dict(context or {})
    context["operation_id"] = str(uuid.uuid4())[:8]

    logger.log(level, f"Starting {operation_name}", extra={"context_data": dict(context)})

    try:
        yield context
    except Exception as e:
        duration = time.time() - start_time
        error_context = {
            **context,
            "error_type": type(e).__name__,
            "error": str(e),
            "duration": f"{duration:.2f}s",
        }
        logger.log(
            logging.ERROR,
            f"Failed {operation_name} after {duration:.2f}s",
            extra={"context_data": error_context},
            exc_info=True,
        )
        raise
    duration = time.time() - start_time
    logger.log(
        level,
        f"Completed {operation_name} in {duration:.2f}s",
        extra={"context_data": context},
    )


class ErrorTracker:
    """
    Tracks errors and their context for later analysis.

    Batch imports use this to collect the failures of individual entries so they can
    be reported together at the end.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.errors: list[dict[str, Any]] = []
        self.logger = logger or logging.getLogger("casebook.error_tracker")

    def add_error(
        self, error: Exception, context: dict[str, Any] | None = None, log: bool = True,
    ) -> None:
        """
        Add an error to the tracker.

        Args:
        ----
            error: The exception that occurred
            context: Additional context information
            log: Whether to log the error as a warning as well as tracking it

        """
        error_info = {
            "error_type": type(error).__name__,
            "message": str(error),
            "timestamp": datetime.now().isoformat(),
            "correlation_id": correlation_manager.get_correlation_id(),
            "context": context or {},
        }
        self.errors.append(error_info)

        if log:
            self.logger.warning(
                f"{error_info['error_type']}: {error_info['message']}",
                extra={"context_data": context or {}},
            )

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def get_error_summary(self) -> dict[str, Any]:
        """
        Get a summary of tracked errors.

        Returns
        -------
            A dictionary with total_errors, error_types (count per type), first_error
            and last_error

        """
        error_types: dict[str, int] = {}
        for error in self.errors:
            error_type = error["error_type"]
            error_types[error_type] = error_types.get(error_type, 0) + 1

        return {
            "total_errors": len(self.errors),
            "error_types": error_types,
            "first_error": self.errors[0] if self.errors else None,
            "last_error": self.errors[-1] if self.errors else None,
        }

    def clear(self) -> None:
        self.errors = []


def configure_logging(
    level: int | str = logging.INFO,
    log_file: str | None = None,
    json_format: bool = False,
    use_rich: bool = True,
    debug: bool = False,
) -> None:
    """
    Configure application logging.

    Args:
    ----
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL or integer)
        log_file: Optional path to log file
        json_format: Whether to use JSON format for logs
        use_rich: Whether to use Rich for console output
        debug: Whether to force debug mode

    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    if debug:
        level = logging.DEBUG

    handlers: list[logging.Handler] = []

    if use_rich and not json_format:
        console_handler: logging.Handler = RichHandler(
            rich_tracebacks=True, markup=False, show_time=True,
        )
        console_handler.setFormatter(RichContextFormatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            JSONFormatter() if json_format else logging.Formatter(DEFAULT_FORMAT),
        )
    handlers.append(console_handler)

    if log_file:
        os.makedirs(os.path.dirname(os.path.abspath(log_file)), exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            JSONFormatter() if json_format else logging.Formatter(DEFAULT_FORMAT),
        )
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(CorrelationIdFilter())

    logger = logging.getLogger("casebook")
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    for handler in handlers:
        logger.addHandler(handler)

    logger.debug(f"Logging configured with level {logging.getLevelName(level)}")


def get_logger(name: str, **context: Any) -> ContextAdapter:
    """
    Get a logger that accepts a ``context=`` mapping on every call.

    Args:
    ----
        name: Name of the logger, typically __name__
        **context: Context bound to every record of this logger

    """
    return ContextAdapter(logging.getLogger(name), context)
