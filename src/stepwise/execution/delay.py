"""Delay primitive — a future that resolves after a duration.

``asyncio.sleep`` cannot be cancelled from the outside without cancelling
the awaiting task. ``delay`` returns a bare future backed by a scheduled
timer, and optionally exposes that timer through a :class:`DelayHandle`
so a caller (test teardown, or the losing side of a race) can release it
early.

Example::

    handle = DelayHandle()
    pending = delay(5.0, handle)

    handle.cancel()          # timer released, ``pending`` is cancelled
    assert handle.cancelled

Tags:
    stepwise, execution, delay, timer
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass


@dataclass
class DelayHandle:
    """Reference to the timer behind a :func:`delay` future."""

    timer: asyncio.TimerHandle | None = None
    future: asyncio.Future[None] | None = None

    def cancel(self) -> bool:
        """Release the pending timer.

        Returns:
            True if a still-pending delay was cancelled, False if it had
            already resolved (or was never started).
        """
        if self.timer is not None:
            self.timer.cancel()
        if self.future is not None and not self.future.done():
            return self.future.cancel()
        return False

    @property
    def cancelled(self) -> bool:
        return self.future is not None and self.future.cancelled()

    @property
    def pending(self) -> bool:
        """True while the timer has neither fired nor been cancelled."""
        return self.future is not None and not self.future.done()


def delay(seconds: float, handle: DelayHandle | None = None) -> asyncio.Future[None]:
    """Return a future that resolves with ``None`` after ``seconds``.

    Must be called while an event loop is running.

    Args:
        seconds: Delay duration; negative values are treated as zero
        handle: Optional handle that receives the timer for external cancellation
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future[None] = loop.create_future()

    def _fire() -> None:
        if not future.done():
            future.set_result(None)

    timer = loop.call_later(max(seconds, 0.0), _fire)
    # Whoever settles the future first, the timer must not outlive it
    future.add_done_callback(lambda _f: timer.cancel())

    if handle is not None:
        handle.timer = timer
        handle.future = future

    return future


__all__ = ["DelayHandle", "delay"]
