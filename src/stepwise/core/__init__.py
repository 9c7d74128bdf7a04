"""Stepwise Core -- errors, logging and settings shared by the engine.

Architecture::

    errors.py      Structured error hierarchy (StepwiseError, TimeoutExpired)
    logging.py     structlog configuration + get_logger
    settings.py    pydantic-settings defaults (STEPWISE_* env vars)

Nothing in ``stepwise.core`` depends on ``stepwise.execution``.
"""

from stepwise.core.errors import (
    DuplicateStepError,
    InvalidOptionsError,
    ErrorCategory,
    InvalidStepError,
    StepwiseError,
    TimeoutExpired,
    is_retryable,
)
from stepwise.core.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    unbind_context,
)
from stepwise.core.settings import StepwiseSettings, get_settings, reset_settings

__all__ = [
    # errors
    "ErrorCategory",
    "StepwiseError",
    "InvalidStepError",
    "DuplicateStepError",
    "InvalidOptionsError",
    "TimeoutExpired",
    "is_retryable",
    # logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
    # settings
    "StepwiseSettings",
    "get_settings",
    "reset_settings",
]
