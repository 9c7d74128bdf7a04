"""
Structured error types for stepwise.

Every failure the engine reports to a caller is one of a small, typed set
of errors. Instead of bare ``TypeError`` / ``ValueError`` instances that
lose context, each :class:`StepwiseError` carries:

- **Category:** what kind of failure (registration, config, timeout)
- **Retryable:** whether re-running the whole execution may succeed
- **Context:** free-form metadata for logging
- **Cause:** the chained underlying exception, if any

Errors raised by steps themselves are *never* wrapped: they propagate to
the caller of ``StepEngine.execute`` unchanged.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                      StepwiseError                           │
        │        (category, retryable, context, cause)                 │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  InvalidStepError     DuplicateStepError    TimeoutExpired   │
        │  (+ TypeError)        (+ ValueError)        (+ TimeoutError) │
        │  REGISTRATION         REGISTRATION          TIMEOUT          │
        │  sync, fail-fast      sync, fail-fast       async, retryable │
        └─────────────────────────────────────────────────────────────┘

    Each concrete error also inherits the matching builtin so callers can
    keep catching ``TypeError`` / ``ValueError`` / ``TimeoutError``.

Examples:
    >>> error = TimeoutExpired(0.5)
    >>> error.retryable
    True
    >>> isinstance(error, TimeoutError)
    True
    >>> str(error)
    'Timed out after 0.5s'

Guardrails:
    ❌ DON'T: Wrap an exception raised by a step
    ✅ DO: Let it propagate as-is so callers see their own error types

    ❌ DON'T: Mutate the registry before validating a step
    ✅ DO: Raise registration errors before any state changes

Tags:
    error-handling, exception-hierarchy, stepwise, timeout

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

import builtins
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Error categories for classification and routing.

    Attributes:
        REGISTRATION: A step could not be added to the registry
        TIMEOUT: A per-step or whole-run duration was exceeded
        CONFIG: Invalid settings or options
        INTERNAL: Bugs, unexpected state
    """

    REGISTRATION = "REGISTRATION"
    TIMEOUT = "TIMEOUT"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


class StepwiseError(Exception):
    """
    Base exception for all stepwise errors.

    Subclasses set ``default_category`` and ``default_retryable`` class
    attributes to provide sensible defaults for their domain.

    Examples:
        >>> error = StepwiseError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(engine="checkout").context["engine"]
        'checkout'
    """

    # Default category for this error type
    default_category: ErrorCategory = ErrorCategory.INTERNAL

    # Default retryable setting
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        # Chain the cause if provided
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return self.message

    def with_context(self, **kwargs: Any) -> StepwiseError:
        """
        Add context to this error (fluent API).

        Usage:
            raise DuplicateStepError(step).with_context(engine="checkout")
        """
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for logging/storage."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
            "context": dict(self.context),
            "cause": str(self.cause) if self.cause else None,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, category={self.category.value})"


def describe_step(step: Any) -> str:
    """Human-readable name for a step, used in messages and log events."""
    name = getattr(step, "__qualname__", None) or getattr(step, "__name__", None)
    if name is None:
        return repr(step)
    return str(name)


# =============================================================================
# REGISTRATION ERRORS
# =============================================================================


class InvalidStepError(StepwiseError, TypeError):
    """Registration argument is not callable.

    Raised synchronously before the registry is touched.
    """

    default_category = ErrorCategory.REGISTRATION

    def __init__(self, step: Any, message: str | None = None, **kwargs: Any):
        self.step = step
        super().__init__(
            message or f"Step must be callable, got {type(step).__name__}",
            **kwargs,
        )


class DuplicateStepError(StepwiseError, ValueError):
    """The same step reference is already registered.

    Only raised when duplicate checking is enabled and the step is not
    marked as duplicable. The registry is left unchanged.
    """

    default_category = ErrorCategory.REGISTRATION

    def __init__(self, step: Any, message: str | None = None, **kwargs: Any):
        self.step = step
        super().__init__(
            message or f"Step '{describe_step(step)}' is already registered",
            **kwargs,
        )


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class InvalidOptionsError(StepwiseError, ValueError):
    """Engine options could not be built from the value given."""

    default_category = ErrorCategory.CONFIG


# =============================================================================
# TIMEOUT ERRORS
# =============================================================================


class TimeoutExpired(StepwiseError, builtins.TimeoutError):
    """Raised when an awaited operation loses its race against a deadline.

    Inherits from the builtin ``TimeoutError`` for broad exception handling.
    The operation that lost the race is not cancelled; it keeps running in
    the background and its result is discarded.

    Attributes:
        timeout: The timeout value (seconds) that was exceeded
    """

    default_category = ErrorCategory.TIMEOUT
    default_retryable = True

    def __init__(self, timeout: float, message: str | None = None, **kwargs: Any):
        self.timeout = timeout
        super().__init__(message or f"Timed out after {timeout}s", **kwargs)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: BaseException) -> bool:
    """Check if an error is retryable.

    Works with both StepwiseError and standard exceptions.
    """
    if isinstance(error, StepwiseError):
        return error.retryable

    # Builtin timeouts raised by steps themselves
    if isinstance(error, builtins.TimeoutError):
        return True

    return False


__all__ = [
    "ErrorCategory",
    "StepwiseError",
    "InvalidStepError",
    "DuplicateStepError",
    "InvalidOptionsError",
    "TimeoutExpired",
    "describe_step",
    "is_retryable",
]
