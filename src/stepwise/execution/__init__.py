"""Stepwise Execution — registry, ordering, timeouts and the step engine.

MODULE MAP (recommended reading order)
──────────────────────────────────────
  1. step.py       ─ Step type, priority hint / duplicable helpers
  2. options.py    ─ EngineOptions (sorting, duplicate checks)
  3. ordering.py   ─ PrioritySorter (stable sort + cache)
  4. registry.py   ─ StepRegistry (append / prepend / remove / clear)
  5. delay.py      ─ delay() future + DelayHandle
  6. timeout.py    ─ with_timeout / race_with_timeout (cooperative race)
  7. engine.py     ─ StepEngine.execute
"""

from stepwise.execution.delay import DelayHandle, delay
from stepwise.execution.engine import RunState, StepEngine
from stepwise.execution.options import EngineOptions
from stepwise.execution.ordering import PrioritySorter
from stepwise.execution.registry import StepRegistry
from stepwise.execution.step import (
    Step,
    duplicable,
    get_priority,
    is_duplicable,
    priority,
    set_priority,
)
from stepwise.execution.timeout import (
    pending_orphans,
    race_with_timeout,
    timeout,
    with_timeout,
)

__all__ = [
    # engine
    "StepEngine",
    "RunState",
    "EngineOptions",
    # registry & ordering
    "StepRegistry",
    "PrioritySorter",
    "Step",
    "priority",
    "set_priority",
    "get_priority",
    "duplicable",
    "is_duplicable",
    # timing
    "delay",
    "DelayHandle",
    "with_timeout",
    "timeout",
    "race_with_timeout",
    "pending_orphans",
]
