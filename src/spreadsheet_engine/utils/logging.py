"""Structured logging utilities for the spreadsheet engine.

This module provides:
- Sheet and command tracking using contextvars for correlating log lines
- Structured logging with consistent format and metadata
- Performance metrics logging helpers for bulk commands

Usage:
    from spreadsheet_engine.utils.logging import (
        get_logger,
        set_sheet_id,
        LogContext,
    )

    logger = get_logger(__name__)

    # Set sheet ID for correlation
    set_sheet_id("budget-2024")

    # Log with context
    with LogContext(command="sort_by_column", column=2):
        logger.info("Sorting rows")

    # Log performance metrics
    with timed_operation(logger, "paste") as metrics:
        metrics.cells_touched = 12
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

PACKAGE_LOGGER = "spreadsheet_engine"

# Context variables for sheet/command tracking
_sheet_id_var: ContextVar[str | None] = ContextVar("sheet_id", default=None)
_command_var: ContextVar[str | None] = ContextVar("command", default=None)
_extra_context_var: ContextVar[dict[str, Any] | None] = ContextVar(
    "extra_context", default=None
)


def get_sheet_id() -> str | None:
    """Get the current sheet ID from context.

    Returns:
        The current sheet ID or None if not set.
    """
    return _sheet_id_var.get()


def set_sheet_id(sheet_id: str | None) -> None:
    """Set the sheet ID in context.

    Args:
        sheet_id: The sheet ID to set, or None to clear.
    """
    _sheet_id_var.set(sheet_id)


def get_command() -> str | None:
    """Get the name of the command currently executing."""
    return _command_var.get()


def set_command(command: str | None) -> None:
    """Set the name of the command currently executing."""
    _command_var.set(command)


def get_extra_context() -> dict[str, Any]:
    """Get additional context from context vars.

    Returns:
        Dictionary of extra context values.
    """
    ctx = _extra_context_var.get()
    return ctx if ctx is not None else {}


def set_extra_context(context: dict[str, Any]) -> None:
    """Set additional context in context vars.

    Args:
        context: Dictionary of extra context values.
    """
    _extra_context_var.set(context)


def clear_context() -> None:
    """Clear all context variables."""
    _sheet_id_var.set(None)
    _command_var.set(None)
    _extra_context_var.set(None)


@dataclass
class PerformanceMetrics:
    """Container for performance metrics of a bulk command.

    Attributes:
        operation: Name of the operation being measured.
        start_time: When the operation started.
        end_time: When the operation ended.
        duration_seconds: Duration in seconds.
        cells_touched: Number of cells written.
        rows_sorted: Number of rows reordered (sort only).
        custom_metrics: Additional custom metrics.
    """

    operation: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    duration_seconds: float = 0.0
    cells_touched: int = 0
    rows_sorted: int = 0
    custom_metrics: dict[str, Any] = field(default_factory=dict)

    def finish(self) -> None:
        """Mark the operation as complete and calculate duration."""
        self.end_time = datetime.now(UTC)
        self.duration_seconds = (self.end_time - self.start_time).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging.

        Returns:
            Dictionary with all non-zero metrics.
        """
        result: dict[str, Any] = {
            "operation": self.operation,
            "duration_seconds": self.duration_seconds,
        }
        if self.cells_touched > 0:
            result["cells_touched"] = self.cells_touched
        if self.rows_sorted > 0:
            result["rows_sorted"] = self.rows_sorted
        if self.custom_metrics:
            result["custom_metrics"] = self.custom_metrics
        return result


class StructuredLogFormatter(logging.Formatter):
    """Log formatter that includes context variables.

    Adds sheet_id, command and any extra context to log records when
    available, creating a consistent structured format for all messages.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with context information.

        Args:
            record: The log record to format.

        Returns:
            Formatted log message string.
        """
        prefix_parts = []
        sheet_id = get_sheet_id()
        if sheet_id:
            prefix_parts.append(f"sheet_id={sheet_id}")
        command = get_command()
        if command:
            prefix_parts.append(f"command={command}")

        for key, value in get_extra_context().items():
            prefix_parts.append(f"{key}={value}")

        prefix = f"[{' '.join(prefix_parts)}] " if prefix_parts else ""

        original_msg = record.msg
        record.msg = f"{prefix}{original_msg}"
        result = super().format(record)
        record.msg = original_msg

        return result


class StructuredLogger:
    """Logger wrapper with structured key-value logging.

    Wraps a standard Python logger with additional methods for:
    - Logging with ``message | key=value`` pairs
    - Performance metrics logging
    - Committed command logging
    """

    def __init__(self, name: str) -> None:
        """Initialize the structured logger.

        Args:
            name: Logger name (typically __name__ of the module).
        """
        self._logger = logging.getLogger(name)
        self._name = name

    @property
    def logger(self) -> logging.Logger:
        """Access the underlying Python logger."""
        return self._logger

    def _build_message(
        self,
        message: str,
        **kwargs: Any,
    ) -> str:
        """Build a message with structured key-value pairs.

        Args:
            message: Base message.
            **kwargs: Additional key-value pairs to include.

        Returns:
            Formatted message string.
        """
        if not kwargs:
            return message

        parts = [f"{k}={v}" for k, v in kwargs.items()]
        return f"{message} | {', '.join(parts)}"

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log a debug message."""
        self._logger.debug(self._build_message(message, **kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        """Log an info message."""
        self._logger.info(self._build_message(message, **kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log a warning message."""
        self._logger.warning(self._build_message(message, **kwargs))

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log an error message.

        Args:
            message: Log message.
            exc_info: Whether to include exception info.
            **kwargs: Additional structured data.
        """
        self._logger.error(self._build_message(message, **kwargs), exc_info=exc_info)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an exception with traceback."""
        self._logger.exception(self._build_message(message, **kwargs))

    def log_performance(self, metrics: PerformanceMetrics) -> None:
        """Log performance metrics.

        Args:
            metrics: Performance metrics to log.
        """
        self.debug(
            f"Performance: {metrics.operation}",
            **metrics.to_dict(),
        )

    def log_command(
        self,
        command: str,
        history_kind: str | None,
        history_index: int,
        history_length: int,
    ) -> None:
        """Log a committed command and the history cursor it left behind.

        Args:
            command: Name of the command that was committed.
            history_kind: Kind of the recorded history entry, if any.
            history_index: History cursor after the command.
            history_length: Number of retained history entries.
        """
        kwargs: dict[str, Any] = {
            "command": command,
            "history_index": history_index,
            "history_length": history_length,
        }
        if history_kind is not None:
            kwargs["history_kind"] = history_kind
        self.debug("Command committed", **kwargs)


class LogContext:
    """Context manager for adding temporary context to logs.

    Usage:
        with LogContext(sheet_id="s1", command="paste"):
            logger.info("Pasting...")  # Will include sheet_id and command
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize with context values.

        Args:
            **kwargs: Key-value pairs to add to log context.
        """
        self._new_context = kwargs
        self._old_context: dict[str, Any] = {}
        self._old_sheet_id: str | None = None
        self._old_command: str | None = None

    def __enter__(self) -> "LogContext":
        """Enter the context, saving old values and setting new ones."""
        self._old_context = get_extra_context().copy()
        self._old_sheet_id = get_sheet_id()
        self._old_command = get_command()

        new_context = dict(self._new_context)
        sheet_id = new_context.pop("sheet_id", None)
        command = new_context.pop("command", None)

        if sheet_id is not None:
            set_sheet_id(sheet_id)
        if command is not None:
            set_command(command)

        merged = self._old_context.copy()
        merged.update(new_context)
        set_extra_context(merged)

        return self

    def __exit__(self, *args: Any) -> None:
        """Exit the context, restoring old values."""
        set_extra_context(self._old_context)
        set_sheet_id(self._old_sheet_id)
        set_command(self._old_command)


@contextmanager
def timed_operation(
    logger: StructuredLogger,
    operation: str,
) -> Generator[PerformanceMetrics, None, None]:
    """Context manager for timing operations.

    Usage:
        with timed_operation(logger, "sort_by_column") as metrics:
            metrics.rows_sorted = 40

        # Logs at DEBUG: "Performance: sort_by_column | duration_seconds=..."

    Args:
        logger: Logger to use for output.
        operation: Name of the operation.

    Yields:
        PerformanceMetrics instance for tracking.
    """
    metrics = PerformanceMetrics(operation=operation)
    try:
        yield metrics
    finally:
        metrics.finish()
        logger.log_performance(metrics)


def configure_logging(
    level: int | str = logging.INFO,
    format_string: str | None = None,
    use_structured_formatter: bool = True,
) -> None:
    """Configure logging for the application.

    Args:
        level: Log level (int or string like "INFO").
        format_string: Custom format string (uses default if None).
        use_structured_formatter: Whether to use the structured formatter.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)

    formatter: logging.Formatter
    if use_structured_formatter:
        formatter = StructuredLogFormatter(format_string)
    else:
        formatter = logging.Formatter(format_string)

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def set_package_log_level(level: int | str, name: str = PACKAGE_LOGGER) -> None:
    """Set the threshold of the package loggers, leaving handlers alone.

    Embedding applications keep their own handlers; ``configure_logging``
    is for processes that want this package to own the root logger.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module.

    Args:
        name: Logger name (typically __name__).

    Returns:
        StructuredLogger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Sheet loaded", rows=10, columns=4)
    """
    return StructuredLogger(name)
