"""Step Engine — run registered steps in series against shared arguments.

WHY
───
Request handling, validation chains and plugin hooks all follow the same
shape: a list of small callables that each look at (and possibly mutate)
a shared context, any of which may decide the chain is done. The engine
owns that list and runs it, one step at a time, with optional deadlines.

ARCHITECTURE
────────────
::

    StepEngine
      ├── .options                 ─ EngineOptions (mutable, re-read each call)
      ├── .append(step, timeout)   ─ register at end (wrapped if timeout > 0)
      ├── .prepend(step, timeout)  ─ register at start
      ├── .remove(step) → bool     ─ identity-based removal
      ├── .clear()
      └── .execute(args, timeout)  ─ async; outcome or None

    execute():
      args ──► normalize to tuple
      order ─► registry.ordered()          (snapshot, taken once)
      loop  ─► await step(*args)           (strictly sequential)
               None      → next step
               otherwise → stop, return it  (TERMINATED)
               raises    → propagate as-is (FAILED)
      all continued → None                  (COMPLETED)
      timeout > 0  → the whole loop raced against a deadline (TIMED_OUT)
      caller cancels → no further step starts  (CANCELLED)

    Run states:  NOT_STARTED → RUNNING → COMPLETED | TERMINATED | FAILED | TIMED_OUT | CANCELLED

BEST PRACTICES
──────────────
- Communicate between steps through the shared arguments, not return
  values; a return value other than ``None`` ends the run.
- Keep the callable returned by ``append``/``prepend`` when registering
  with a timeout: that wrapped reference is the one ``remove`` accepts.
- A timeout means "no longer waiting". The step in flight keeps running
  in the background and may still mutate shared state.

Example::

    engine = StepEngine()

    @engine.append
    def count(ctx):
        ctx["counter"] += 1

    async def authorize(ctx):
        if not ctx["user"]:
            return "denied"           # terminates the run

    engine.append(authorize, timeout=2.0)

    ctx = {"counter": 0, "user": None}
    outcome = await engine.execute([ctx])   # "denied"

Tags:
    stepwise, execution, engine, middleware, sequential

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from stepwise.core.errors import InvalidStepError, TimeoutExpired, describe_step
from stepwise.core.logging import get_logger
from stepwise.execution.options import EngineOptions
from stepwise.execution.registry import StepRegistry
from stepwise.execution.step import Step
from stepwise.execution.timeout import race_with_timeout, with_timeout

logger = get_logger(__name__)

STEP_TIMEOUT_MESSAGE = "Step execution timed out after {timeout}s"
EXECUTION_TIMEOUT_MESSAGE = "Execution timed out after {timeout}s"


class RunState(str, Enum):
    """Lifecycle of a single ``execute`` call. Terminal states are final."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"
    TERMINATED = "terminated"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self not in (RunState.NOT_STARTED, RunState.RUNNING)


@dataclass
class _Run:
    run_id: str
    steps: tuple[Step, ...]
    state: RunState = RunState.NOT_STARTED
    index: int = -1
    timeout: float = 0
    deadline: float | None = None

    def expired(self) -> bool:
        if self.deadline is None:
            return False
        return asyncio.get_running_loop().time() >= self.deadline

    def finish(self, state: RunState) -> bool:
        """Move to a terminal state unless one was already reached."""
        if self.state.is_terminal:
            return False
        self.state = state
        return True

    @property
    def current_step(self) -> str | None:
        if 0 <= self.index < len(self.steps):
            return describe_step(self.steps[self.index])
        return None


def _normalize_args(args: Any) -> tuple[Any, ...]:
    if isinstance(args, (tuple, list)):
        return tuple(args)
    return (args,)


class StepEngine:
    """Serial step runner with early termination and cooperative timeouts.

    Parameters
    ----------
    steps : iterable of callables, optional
        Registered in order, exactly as if passed to :meth:`append`.
    options : EngineOptions or dict, optional
        Sorting and duplicate-check flags. Defaults to both disabled.
    """

    def __init__(
        self,
        steps: Iterable[Step] | None = None,
        options: EngineOptions | dict[str, Any] | None = None,
    ) -> None:
        self._registry = StepRegistry(EngineOptions.coerce(options))
        for step in steps or ():
            self.append(step)

    # ── Configuration ────────────────────────────────────────────────

    @property
    def options(self) -> EngineOptions:
        return self._registry.options

    @options.setter
    def options(self, value: EngineOptions | dict[str, Any]) -> None:
        self._registry.options = EngineOptions.coerce(value)

    # ── Registration ─────────────────────────────────────────────────

    @staticmethod
    def _maybe_with_timeout(step: Step, timeout: float) -> Step:
        if not callable(step):
            raise InvalidStepError(step)
        if timeout > 0:
            return with_timeout(step, timeout, STEP_TIMEOUT_MESSAGE.format(timeout=timeout))
        return step

    def append(self, step: Step, timeout: float = 0) -> Step:
        """Register ``step`` at the end of the chain.

        A positive ``timeout`` bounds how long this step is awaited on every
        run. The step is then wrapped, and the *wrapper* is what gets
        registered and returned.

        Returns:
            The registered callable (``step`` itself, or its timeout wrapper)

        Raises:
            InvalidStepError: If ``step`` is not callable
            DuplicateStepError: If duplicate checks are on and ``step`` is present
        """
        return self._registry.append(self._maybe_with_timeout(step, timeout))

    def prepend(self, step: Step, timeout: float = 0) -> Step:
        """Like :meth:`append`, but registers ``step`` at the start of the chain."""
        return self._registry.prepend(self._maybe_with_timeout(step, timeout))

    def remove(self, step: Step) -> bool:
        """Remove a registered step by reference.

        Steps registered with a timeout are stored as their wrapper; pass
        the callable returned by :meth:`append`/:meth:`prepend`, not the
        original function, to remove them.
        """
        return self._registry.remove(step)

    def clear(self) -> None:
        self._registry.clear()

    @property
    def steps(self) -> tuple[Step, ...]:
        """Registered steps in insertion order."""
        return self._registry.snapshot()

    @property
    def registry(self) -> StepRegistry:
        return self._registry

    def __len__(self) -> int:
        return len(self._registry)

    def __repr__(self) -> str:
        return f"StepEngine(steps={len(self)}, options={self.options!r})"

    # ── Execution ────────────────────────────────────────────────────

    async def _run_sequence(self, run: _Run, args: tuple[Any, ...]) -> Any:
        run.state = RunState.RUNNING

        for index, step in enumerate(run.steps):
            # Abandoned by the caller or the whole-run deadline: start nothing new
            if run.state is not RunState.RUNNING:
                return None
            if run.expired():
                run.finish(RunState.TIMED_OUT)
                raise TimeoutExpired(run.timeout, EXECUTION_TIMEOUT_MESSAGE.format(timeout=run.timeout))

            run.index = index
            try:
                result = step(*args)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as exc:
                if run.finish(RunState.FAILED):
                    logger.warning(
                        "engine.execute.failed",
                        run_id=run.run_id,
                        index=index,
                        step=run.current_step,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                raise

            # Anything other than None is a termination signal
            if result is not None:
                if run.finish(RunState.TERMINATED):
                    logger.debug(
                        "engine.execute.terminated",
                        run_id=run.run_id,
                        index=index,
                        step=run.current_step,
                    )
                return result

        if run.finish(RunState.COMPLETED):
            logger.debug("engine.execute.completed", run_id=run.run_id, steps=len(run.steps))
        return None

    async def execute(self, args: Any = (), timeout: float = 0) -> Any:
        """Run every registered step in series with the same arguments.

        Args:
            args: Positional arguments for each step. A tuple or list is
                unpacked; any other value is passed as the single argument.
            timeout: Positive value bounds the whole run, in seconds

        Returns:
            The first non-``None`` value returned by a step, else ``None``

        Raises:
            TimeoutExpired: If a per-step or the whole-run timeout elapsed
            Exception: Whatever a step raised, unchanged

        Cancelling the caller moves the run to ``CANCELLED``; a step already
        in flight under a whole-run timeout finishes in the background, but
        no later step starts.
        """
        run = _Run(run_id=uuid.uuid4().hex[:12], steps=self._registry.ordered())
        call_args = _normalize_args(args)
        if timeout > 0:
            run.timeout = timeout
            run.deadline = asyncio.get_running_loop().time() + timeout

        logger.debug(
            "engine.execute.start",
            run_id=run.run_id,
            steps=len(run.steps),
            timeout=timeout or None,
            sorted=self.options.pre_execute_sort_enabled,
        )

        try:
            if timeout <= 0:
                return await self._run_sequence(run, call_args)
            return await race_with_timeout(
                self._run_sequence(run, call_args),
                timeout,
                EXECUTION_TIMEOUT_MESSAGE.format(timeout=timeout),
                operation="execute",
            )
        except TimeoutExpired:
            # A step's own timeout has already moved the run to FAILED
            run.finish(RunState.TIMED_OUT)
            if run.state is RunState.TIMED_OUT:
                logger.warning(
                    "engine.execute.timed_out",
                    run_id=run.run_id,
                    timeout=timeout,
                    index=run.index,
                    step=run.current_step,
                )
            raise
        except asyncio.CancelledError:
            # The detached run must not start another step once the caller is gone
            if run.finish(RunState.CANCELLED):
                logger.warning(
                    "engine.execute.cancelled",
                    run_id=run.run_id,
                    index=run.index,
                    step=run.current_step,
                )
            raise


__all__ = ["StepEngine", "RunState"]
