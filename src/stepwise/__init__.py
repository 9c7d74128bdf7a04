"""
Stepwise - serial step execution with early termination and timeouts.

Register callables, run them one after another against shared arguments,
stop as soon as one returns a value:

    >>> from stepwise import StepEngine
    >>> engine = StepEngine([load, validate, save])
    >>> outcome = await engine.execute([ctx], timeout=5.0)
"""

__version__ = "0.1.0"

from stepwise.core import (
    DuplicateStepError,
    InvalidOptionsError,
    ErrorCategory,
    InvalidStepError,
    LogContext,
    StepwiseError,
    StepwiseSettings,
    TimeoutExpired,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    get_settings,
)
from stepwise.execution import (
    DelayHandle,
    EngineOptions,
    PrioritySorter,
    RunState,
    StepEngine,
    StepRegistry,
    delay,
    duplicable,
    get_priority,
    is_duplicable,
    priority,
    set_priority,
    timeout,
    with_timeout,
)

__all__ = [
    "__version__",
    "StepEngine",
    "EngineOptions",
    "RunState",
    "StepRegistry",
    "PrioritySorter",
    "with_timeout",
    "timeout",
    "delay",
    "DelayHandle",
    "priority",
    "set_priority",
    "get_priority",
    "duplicable",
    "is_duplicable",
    "ErrorCategory",
    "StepwiseError",
    "InvalidStepError",
    "DuplicateStepError",
    "InvalidOptionsError",
    "TimeoutExpired",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "LogContext",
    "StepwiseSettings",
    "get_settings",
]
