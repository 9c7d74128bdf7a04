"""Timeout enforcement for step execution.

Wraps any callable so that awaiting its result is bounded by a deadline.

Manifesto:
    A step that never settles must not hang the whole engine. But Python,
    like every cooperative scheduler, cannot forcibly abort arbitrary work
    that is already running. Stepwise's timeout is therefore a *race*, not
    a kill switch:

    - **Race:** the operation competes with a delay; first to settle wins
    - **No leaks:** the losing delay's timer is always released
    - **No preemption:** a losing operation keeps running in the background;
      only the caller stops waiting on it
    - **Transparent:** values and exceptions from the operation pass through
      unchanged when it wins

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │ guarded = with_timeout(fetch, 2.0)                              │
        │ await guarded(url)                                              │
        └─────────────────────────────────────────────────────────────────┘
                              │
                              ▼
        ┌────────────────────────────────────────────────────────────────┐
        │ result = fetch(url)           sync result → returned as-is     │
        │ task   = ensure_future(result)                                 │
        │ clock  = delay(2.0, handle)                                    │
        │                                                                │
        │ asyncio.wait({task, clock}, FIRST_COMPLETED)                   │
        │   ├─ task settled  → task.result()  (value or original error)  │
        │   └─ clock fired   → raise TimeoutExpired, task left running   │
        │ finally: handle.cancel()                                       │
        └────────────────────────────────────────────────────────────────┘

Examples:
    Wrapping a coroutine function:

    >>> guarded = with_timeout(fetch_data, 5.0, "fetch_data timed out")
    >>> data = await guarded("https://example.com")

    Decorator form:

    >>> @timeout(10.0)
    ... async def fetch_data(url):
    ...     return await http_get(url)

Guardrails:
    - ``timeout`` must be positive; a zero or negative duration means "no
      timeout" and callers should not wrap at all
    - Synchronous callables block the event loop and cannot be timed out;
      their return value is passed through directly
    - A timed-out operation may still mutate shared state later. Treat a
      timeout as "no longer waiting", never as "rolled back"

Tags:
    timeout, deadline, race, execution, stepwise

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import functools
import inspect
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from stepwise.core.errors import TimeoutExpired, describe_step
from stepwise.core.logging import get_logger
from stepwise.execution.delay import DelayHandle, delay

T = TypeVar("T")

logger = get_logger(__name__)

# Operations that lost their race, per event loop, kept alive until they finish
_orphans: dict[asyncio.AbstractEventLoop, set[asyncio.Future[Any]]] = {}


def _forget_closed_loops() -> None:
    # A closed loop never runs the done-callbacks that would empty its set
    for loop in [loop for loop in _orphans if loop.is_closed()]:
        del _orphans[loop]


def _reap_orphan(task: asyncio.Future[Any], operation: str) -> None:
    loop = task.get_loop()
    tasks = _orphans.get(loop)
    if tasks is not None:
        tasks.discard(task)
        if not tasks:
            del _orphans[loop]
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug(
            "timeout.orphan_failed",
            operation=operation,
            error=str(exc),
            error_type=type(exc).__name__,
        )


def _detach(task: asyncio.Future[Any], operation: str) -> None:
    """Let a losing operation finish on its own, without anyone awaiting it."""
    _forget_closed_loops()
    _orphans.setdefault(task.get_loop(), set()).add(task)
    task.add_done_callback(functools.partial(_reap_orphan, operation=operation))


def pending_orphans(loop: asyncio.AbstractEventLoop | None = None) -> int:
    """Number of timed-out operations still running in the background.

    Counts the orphans of ``loop`` (default: the running loop). Orphans of
    loops that have since closed are forgotten.
    """
    _forget_closed_loops()
    if loop is None:
        loop = asyncio.get_running_loop()
    return sum(1 for task in _orphans.get(loop, ()) if not task.done())


async def race_with_timeout(
    awaitable: Awaitable[T],
    timeout_seconds: float,
    message: str | None = None,
    operation: str = "operation",
) -> T:
    """Await ``awaitable`` for at most ``timeout_seconds``.

    Args:
        awaitable: Coroutine, task or future to wait on
        timeout_seconds: Maximum time to wait
        message: Error message on timeout (default: "Timed out after {timeout}s")
        operation: Name used in log events

    Returns:
        Whatever ``awaitable`` produces

    Raises:
        TimeoutExpired: If the deadline elapses first
        ValueError: If timeout_seconds <= 0
        Exception: Any exception raised by ``awaitable``
    """
    if timeout_seconds <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout_seconds}")

    task = asyncio.ensure_future(awaitable)
    handle = DelayHandle()
    clock = delay(timeout_seconds, handle)

    try:
        await asyncio.wait({task, clock}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        # The caller stopped waiting; the operation itself is not ours to cancel
        if not task.done():
            _detach(task, operation)
        raise
    finally:
        handle.cancel()

    if task.done():
        return task.result()

    _detach(task, operation)
    logger.debug("timeout.expired", operation=operation, timeout=timeout_seconds)
    raise TimeoutExpired(timeout_seconds, message)


def with_timeout(
    fn: Callable[..., Any],
    timeout: float = 1.0,
    message: str | None = None,
) -> Callable[..., Awaitable[Any]]:
    """Create a coroutine function that bounds how long ``fn``'s result is awaited.

    The returned wrapper is a new object: it carries ``fn``'s metadata
    (``__name__``, ``__doc__``, function attributes such as a step priority)
    but is not ``fn`` itself.

    Args:
        fn: The callable to wrap
        timeout: Maximum time, in seconds, to wait for the result
        message: Custom error message (default: "Timed out after {timeout}s")

    Returns:
        Async callable that raises :class:`TimeoutExpired` if the deadline
        is exceeded

    Example:
        >>> fetch_with_timeout = with_timeout(fetch, 5.0, "Request timed out")
        >>> response = await fetch_with_timeout("https://api.example.com/data")
    """
    if not callable(fn):
        raise TypeError(f"Expected a callable, got {type(fn).__name__}")
    if timeout <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout}")

    operation = describe_step(fn)

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        result = fn(*args, **kwargs)
        if not inspect.isawaitable(result):
            return result
        return await race_with_timeout(result, timeout, message, operation)

    wrapper.__stepwise_timeout__ = timeout  # type: ignore[attr-defined]
    return wrapper


def timeout(seconds: float, message: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Awaitable[Any]]]:
    """Decorator to bound how long a function's result is awaited.

    Example:
        >>> @timeout(10.0)
        ... async def fetch_data(url):
        ...     return await http_get(url)
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Awaitable[Any]]:
        return with_timeout(func, seconds, message)

    return decorator


__all__ = [
    "with_timeout",
    "timeout",
    "race_with_timeout",
    "pending_orphans",
]
