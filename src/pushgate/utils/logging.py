"""Structured logging infrastructure with syslog integration and correlation ID tracking.

Every push call runs under its own correlation ID so that the write, error
and reconnect records of one batch can be told apart from concurrent batches
in a shared log. Secret values (certificates, passphrases, device tokens) are
redacted by a filter on every handler.
"""

import contextvars
import logging
import logging.handlers
import sys
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from typing import Final, override

from pushgate.utils.sanitization import (
    sanitize_args,
    sanitize_text,
    sanitize_value,
)

correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)

DEFAULT_LOG_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - [%(correlation_id)s] - %(message)s"

SYSLOG_LOG_FORMAT: Final[str] = "pushgate[%(process)d]: %(levelname)s - [%(correlation_id)s] - %(name)s - %(message)s"

DEFAULT_SYSLOG_ADDRESS: Final[str] = "/dev/log"

_STANDARD_RECORD_ATTRS: Final[frozenset[str]] = frozenset(
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
        "thread",
        "threadName",
        "taskName",
        "exc_info",
        "exc_text",
        "stack_info",
        "message",
        "asctime",
        "correlation_id",
    }
)


class CorrelationIDFilter(logging.Filter):
    """Logging filter that adds the current correlation ID to log records."""

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        correlation_id = correlation_id_var.get()
        record.correlation_id = correlation_id if correlation_id is not None else "N/A"
        return True


class SecretRedactingFilter(logging.Filter):
    """Logging filter that redacts sensitive information from log records.

    Sanitizes the message text, the %-formatting arguments and any extra
    fields passed through ``extra={...}``.

    Examples:
        >>> logger.warning("Rejected %s", "a1b2c3...64 hex chars")
        # Logged as: "Rejected a1b2c3<REDACTED>"
    """

    @override
    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = sanitize_text(record.msg)

        if isinstance(record.args, tuple) and record.args:
            record.args = sanitize_args(record.args)

        for attr_name in list(record.__dict__.keys()):
            if attr_name in _STANDARD_RECORD_ATTRS or attr_name.startswith("_"):
                continue
            attr_value: object = getattr(record, attr_name)  # pyright: ignore[reportAny]
            setattr(record, attr_name, sanitize_value(attr_value, field_name=attr_name))

        return True


def configure_logging(
    *,
    log_level: str = "INFO",
    enable_syslog: bool = False,
    syslog_address: str = DEFAULT_SYSLOG_ADDRESS,
    enable_console: bool = True,
) -> None:
    """Configure application logging.

    Sets up the root logger with correlation ID tracking and secret
    redaction on every handler, an optional syslog handler and an optional
    console handler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        enable_syslog: Enable syslog handler
        syslog_address: Syslog socket address
        enable_console: Enable console output handler

    Example:
        >>> configure_logging(log_level="DEBUG", enable_syslog=False)
        >>> logging.getLogger("pushgate").debug("Opened gateway connection #1")
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    correlation_filter = CorrelationIDFilter()
    secret_filter = SecretRedactingFilter()

    if enable_syslog:
        try:
            syslog_handler = logging.handlers.SysLogHandler(
                address=syslog_address,
                facility=logging.handlers.SysLogHandler.LOG_DAEMON,
            )
            syslog_handler.setFormatter(logging.Formatter(SYSLOG_LOG_FORMAT))
            syslog_handler.addFilter(correlation_filter)
            syslog_handler.addFilter(secret_filter)
            root_logger.addHandler(syslog_handler)

        except OSError as exc:
            # Syslog not available (e.g., development environment)
            print(
                f"Warning: Could not connect to syslog at {syslog_address}: {exc}",
                file=sys.stderr,
            )

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        console_handler.addFilter(correlation_filter)
        console_handler.addFilter(secret_filter)
        root_logger.addHandler(console_handler)


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current context."""
    _ = correlation_id_var.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get the current correlation ID from context."""
    return correlation_id_var.get()


def clear_correlation_id() -> None:
    """Clear the correlation ID from the current context."""
    _ = correlation_id_var.set(None)


def generate_correlation_id(prefix: str = "push") -> str:
    """Generate a new correlation ID of the form ``<prefix>-<uuid4>``."""
    return f"{prefix}-{uuid.uuid4()}"


@contextmanager
def correlation_id_context(correlation_id: str | None = None) -> Generator[str, None, None]:
    """Temporarily set a correlation ID, generating one if none is given.

    The previous value is restored on exit, so nested pushes inside an
    outer correlated operation keep the outer ID afterwards.

    Args:
        correlation_id: ID to use, or None to generate a fresh one

    Yields:
        The correlation ID in effect inside the block
    """
    value = correlation_id if correlation_id is not None else generate_correlation_id()
    token = correlation_id_var.set(value)
    try:
        yield value
    finally:
        correlation_id_var.reset(token)
