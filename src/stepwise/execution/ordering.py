"""Priority Sorter — cached, stable ordering of steps by priority hint.

The sorted order is derived data. It is recomputed only after the
registry mutates; until then every read returns the cached tuple.

::

    registry.append / prepend / remove / clear
          │
          ▼  invalidate()
    PrioritySorter ── is_valid = False
          │
          ▼  sorted(steps)   (next execution)
    cache miss → sorted(steps, key=get_priority)  (stable)
    cache hit  → cached tuple

Steps without a hint sort as ``+inf``: after every hinted step, in their
original relative order.
"""

from __future__ import annotations

from collections.abc import Sequence

from stepwise.execution.step import Step, get_priority


class PrioritySorter:
    """Stable ascending sort by priority hint, with an explicit cache."""

    def __init__(self) -> None:
        self._cache: tuple[Step, ...] = ()
        self._valid = False

    @property
    def is_valid(self) -> bool:
        return self._valid

    def invalidate(self) -> None:
        """Mark the cached order stale; the next read recomputes it."""
        self._valid = False
        self._cache = ()

    def sorted(self, steps: Sequence[Step]) -> tuple[Step, ...]:
        """Return ``steps`` ordered by priority, reusing the cache when valid.

        ``steps`` must be the registry's current contents; the caller is
        responsible for calling :meth:`invalidate` whenever they change.
        """
        if not self._valid:
            # sorted() is stable, so equal priorities keep insertion order
            self._cache = tuple(sorted(steps, key=get_priority))
            self._valid = True
        return self._cache


__all__ = ["PrioritySorter"]
