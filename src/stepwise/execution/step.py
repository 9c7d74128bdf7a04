"""Step metadata — priority hints and duplicate exemption.

A *step* is any callable ``step(*args)``. Returning ``None`` lets the
engine continue with the next step; returning anything else stops the
run and becomes its outcome. The result may be awaitable.

Two optional hints live directly on the callable as attributes, so they
survive ``functools.wraps`` (and therefore per-step timeout wrapping):

- ``__step_priority__`` — numeric sort key, lower runs earlier
- ``__step_duplicable__`` — exempt from the engine's duplicate check

Example::

    @priority(10)
    async def audit(ctx):
        ctx.log.append("audit")

    @duplicable
    def tick(ctx):
        ctx.ticks += 1

    engine.append(audit)
    engine.append(tick)
    engine.append(tick)      # allowed even with duplicate checks enabled
"""

from __future__ import annotations

import math
from collections.abc import Callable
from numbers import Real
from typing import Any, TypeVar

PRIORITY_ATTR = "__step_priority__"
DUPLICABLE_ATTR = "__step_duplicable__"

Step = Callable[..., Any]
S = TypeVar("S", bound=Callable[..., Any])


def set_priority(step: S, value: float | None) -> S:
    """Attach (or with ``None``, drop) a priority hint on ``step``."""
    if value is None:
        if hasattr(step, PRIORITY_ATTR):
            delattr(step, PRIORITY_ATTR)
        return step
    setattr(step, PRIORITY_ATTR, value)
    return step


def priority(value: float) -> Callable[[S], S]:
    """Decorator form of :func:`set_priority`."""

    def decorator(step: S) -> S:
        return set_priority(step, value)

    return decorator


def get_priority(step: Any) -> float:
    """Sort key for ``step``: its hint, or ``+inf`` when it has none.

    Non-numeric hints (including ``bool`` and NaN) are ignored.
    """
    value = getattr(step, PRIORITY_ATTR, None)
    if isinstance(value, bool) or not isinstance(value, Real):
        return math.inf
    number = float(value)
    return math.inf if math.isnan(number) else number


def duplicable(step: S) -> S:
    """Mark ``step`` as exempt from the duplicate registration check."""
    setattr(step, DUPLICABLE_ATTR, True)
    return step


def is_duplicable(step: Any) -> bool:
    return bool(getattr(step, DUPLICABLE_ATTR, False))


__all__ = [
    "Step",
    "PRIORITY_ATTR",
    "DUPLICABLE_ATTR",
    "set_priority",
    "priority",
    "get_priority",
    "duplicable",
    "is_duplicable",
]
