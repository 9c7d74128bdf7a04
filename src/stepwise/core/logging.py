"""
Stepwise Logging - structured logging for the execution engine.

Manifesto:
    Step engines are embedded in larger applications, so their logs must
    blend into whatever aggregation the host uses:

    - **Structures:** JSON output for log aggregation
    - **Correlates:** context variables (request id, engine name) propagate
      across awaits
    - **Flexes:** console output for development, JSON for production

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │ configure_logging(level="INFO", json_format=True,          │
        │                   service="checkout")                      │
        │                                                             │
        │     ↓                                                       │
        │ structlog configured with processor chain:                  │
        │   1. TimeStamper (iso)                                      │
        │   2. merge_contextvars                                      │
        │   3. add_log_level / add_logger_name                        │
        │   4. add_service_metadata                                   │
        │   5. JSONRenderer (or ConsoleRenderer for dev)              │
        └────────────────────────────────────────────────────────────┘

Examples:
    >>> from stepwise.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", service="checkout")
    >>> logger = get_logger(__name__)
    >>> logger.debug("engine.execute.start", steps=3)

Tags:
    logging, structlog, observability, stepwise

Doc-Types:
    - API Reference
    - Configuration Documentation
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from stepwise.core.settings import StepwiseSettings, get_settings

# Store service name for metadata
_SERVICE_NAME = "stepwise"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service.name", _SERVICE_NAME)
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "stepwise",
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        add_timestamp: Include ISO timestamp in logs
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    numeric_level = getattr(logging, level.upper())

    if json_format is None:
        json_format = not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if add_timestamp:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=shared_processors + [renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    # Route records through stdlib so host applications keep their handlers
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
    )


def configure_logging_from_settings(
    settings: StepwiseSettings | None = None,
    service: str = "stepwise",
) -> None:
    """Configure logging from ``STEPWISE_LOG_LEVEL`` / ``STEPWISE_LOG_JSON``."""
    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json, service=service)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs.

    Example:
        bind_context(engine="checkout", request_id="abc123")
        logger.info("engine.execute.start")  # Includes engine and request_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        async with LogContext(engine="checkout"):
            await engine.execute((request,))
        # Context cleared here
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())

    async def __aenter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    async def __aexit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
