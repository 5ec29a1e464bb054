"""
Structured logging configuration using structlog.

JSON lines for log aggregation, a console renderer for local runs.
Logs go to stderr so CLI output on stdout stays machine-readable.
"""

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.types import Processor

from subscription_catalog.config import LoggingConfig, get_settings

# Event keys whose values never reach the log output
SENSITIVE_KEYS = frozenset({"client_secret", "access_token", "authorization", "token"})
REDACTED = "***"


def redact_sensitive(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask credential values bound to an event."""
    for key in event_dict:
        if key.lower() in SENSITIVE_KEYS and event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def _renderer(config: LoggingConfig) -> "Processor":
    if config.format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def setup_logging(config: LoggingConfig | None = None) -> None:
    """
    Configure structlog and the standard library logger.

    Args:
        config: Logging configuration (defaults to the application settings)
    """
    config = config or get_settings().logging

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        redact_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if config.include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))
    processors.append(_renderer(config))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(config.level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, config.level),
    )
    # httpx logs every request at INFO; provider requests are logged already
    logging.getLogger("httpx").setLevel(logging.WARNING)


@contextmanager
def sync_run_context(**context: Any) -> Iterator[None]:
    """
    Bind values to every log event emitted inside the block.

    Used around a sync run so resolver and reconciler events carry the
    run id without threading it through each call.

    Example:
        >>> with sync_run_context(run_id="4be1", provider="psplus"):
        ...     resolver.resolve(record)
    """
    with structlog.contextvars.bound_contextvars(**context):
        yield


def get_logger(name: str | None = None, **initial_context: Any) -> structlog.BoundLogger:
    """
    Get a logger with initial context bound.

    Args:
        name: Logger name (typically __name__ of the calling module)
        **initial_context: Values bound to every event, e.g. component

    Example:
        >>> logger = get_logger(__name__, component="reconciler")
        >>> logger.info("Entry reconciled", entry_id="9f2c")
    """
    logger = structlog.get_logger(name)
    if initial_context:
        logger = logger.bind(**initial_context)
    return logger
