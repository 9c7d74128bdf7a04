"""Step Registry — the ordered collection of steps an engine runs.

ARCHITECTURE
────────────
::

    StepRegistry
      ├── .append(step)     ─ validate, duplicate check, push to end
      ├── .prepend(step)    ─ validate, duplicate check, push to start
      ├── .remove(step)     ─ drop first identical reference → bool
      ├── .clear()          ─ drop everything
      ├── .snapshot()       ─ raw insertion order (tuple)
      └── .ordered()        ─ sorted view if enabled, else snapshot

    Every mutation invalidates the PrioritySorter cache.

IDENTITY
────────
Removal and duplicate detection compare *references* (``is``). A step
that the engine wrapped for a per-step timeout is a new callable, so
neither ``remove(original)`` nor the duplicate check can see it. Keep
the wrapped reference returned by ``engine.append`` to remove it later.

The registry is not thread safe and is owned by exactly one engine.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from stepwise.core.errors import DuplicateStepError, InvalidStepError, describe_step
from stepwise.core.logging import get_logger
from stepwise.execution.options import EngineOptions
from stepwise.execution.ordering import PrioritySorter
from stepwise.execution.step import Step, is_duplicable

logger = get_logger(__name__)


class StepRegistry:
    """Ordered, identity-based step collection with a cached priority sort.

    Example:
        >>> registry = StepRegistry(EngineOptions(duplicates_check_enabled=True))
        >>> registry.append(load)
        >>> registry.prepend(authenticate)
        >>> registry.snapshot()
        (<function authenticate ...>, <function load ...>)
    """

    def __init__(self, options: EngineOptions | None = None, steps: Iterable[Step] = ()):
        self.options = options if options is not None else EngineOptions()
        self._steps: list[Step] = []
        self._sorter = PrioritySorter()
        for step in steps:
            self.append(step)

    # ── Validation ───────────────────────────────────────────────────

    def _check(self, step: Step) -> None:
        if not callable(step):
            raise InvalidStepError(step)
        if (
            self.options.duplicates_check_enabled
            and not is_duplicable(step)
            and step in self
        ):
            raise DuplicateStepError(step)

    def _mutated(self) -> None:
        self._sorter.invalidate()

    # ── Mutation ─────────────────────────────────────────────────────

    def append(self, step: Step) -> Step:
        """Add ``step`` to the end of the registry and return it.

        Raises:
            InvalidStepError: If ``step`` is not callable
            DuplicateStepError: If duplicate checks are on and ``step`` is present
        """
        self._check(step)
        self._steps.append(step)
        self._mutated()
        logger.debug("registry.step_appended", step=describe_step(step), size=len(self._steps))
        return step

    def prepend(self, step: Step) -> Step:
        """Add ``step`` to the start of the registry and return it."""
        self._check(step)
        self._steps.insert(0, step)
        self._mutated()
        logger.debug("registry.step_prepended", step=describe_step(step), size=len(self._steps))
        return step

    def remove(self, step: Step) -> bool:
        """Remove the first entry that *is* ``step``.

        Returns:
            True if a step was removed, False if the reference was not found
        """
        for index, existing in enumerate(self._steps):
            if existing is step:
                del self._steps[index]
                self._mutated()
                logger.debug("registry.step_removed", step=describe_step(step), size=len(self._steps))
                return True
        return False

    def clear(self) -> None:
        """Remove every step."""
        self._steps.clear()
        self._mutated()
        logger.debug("registry.cleared")

    # ── Reading ──────────────────────────────────────────────────────

    def snapshot(self) -> tuple[Step, ...]:
        """Steps in insertion order."""
        return tuple(self._steps)

    def ordered(self) -> tuple[Step, ...]:
        """Steps in execution order for the current options."""
        if self.options.pre_execute_sort_enabled:
            return self._sorter.sorted(self._steps)
        return self.snapshot()

    @property
    def sorter(self) -> PrioritySorter:
        return self._sorter

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.snapshot())

    def __contains__(self, step: object) -> bool:
        return any(existing is step for existing in self._steps)

    def __repr__(self) -> str:
        names = ", ".join(describe_step(s) for s in self._steps)
        return f"StepRegistry([{names}])"


__all__ = ["StepRegistry"]
