"""
Shared pytest fixtures and configuration for stepwise tests.

This module provides:
- Settings / logging-context isolation between tests
- A ``timers`` factory whose delay handles are released on teardown
- Small step factories that record their invocation order

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments:

    async def test_something(timers, recorder):
        ...
"""

import asyncio
import os
import sys
from collections.abc import AsyncGenerator, Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio

# Ensure stepwise package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from stepwise.core.logging import clear_context
from stepwise.core.settings import reset_settings
from stepwise.execution.delay import DelayHandle, delay


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)

        if "integration" in str(test_path):
            item.add_marker(pytest.mark.integration)

        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """
    Strip STEPWISE_* variables and drop cached settings around each test.

    Tests that need a variable set it with ``monkeypatch.setenv`` and then
    call ``reset_settings()``.
    """
    for key in list(os.environ):
        if key.startswith("STEPWISE_"):
            monkeypatch.delenv(key)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def clean_log_context() -> Generator[None, None, None]:
    """Clear structlog context variables before and after each test."""
    clear_context()
    yield
    clear_context()


# =============================================================================
# Timer Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def timers() -> AsyncGenerator[Callable[[], DelayHandle], None]:
    """
    Factory for delay handles that are cancelled on teardown.

    Steps that lose a timeout race keep waiting on their delay in the
    background; cancelling the handle lets them finish before the event
    loop closes.

        async def test_slow(timers):
            handle = timers()
            engine.append(lambda: delay(1.0, handle), timeout=0.05)
    """
    handles: list[DelayHandle] = []

    def track() -> DelayHandle:
        handle = DelayHandle()
        handles.append(handle)
        return handle

    yield track

    for handle in handles:
        handle.cancel()
    # Give orphaned steps a chance to observe the cancellation
    await asyncio.sleep(0)
    await asyncio.sleep(0)


@pytest.fixture
def sleeper(timers: Callable[[], DelayHandle]) -> Callable[[float], Callable[..., Any]]:
    """
    Build a step that waits ``seconds`` on a tracked delay.

        slow = sleeper(0.2)
        engine.append(slow, timeout=0.05)
    """

    def make(seconds: float) -> Callable[..., Any]:
        async def sleeping_step(*args: Any) -> None:
            await delay(seconds, timers())

        return sleeping_step

    return make


# =============================================================================
# Step Fixtures
# =============================================================================


@pytest.fixture
def recorder() -> Callable[..., Callable[..., Any]]:
    """
    Build steps that append a label to ``ctx["log"]``.

        a = recorder("a")                 # continues
        b = recorder("b", returns="stop") # terminates the run
    """

    def make(label: Any, returns: Any = None) -> Callable[..., Any]:
        def step(ctx: dict[str, Any]) -> Any:
            ctx["log"].append(label)
            return returns

        step.__name__ = step.__qualname__ = f"step_{label}"
        return step

    return make


@pytest.fixture
def ctx() -> dict[str, Any]:
    """Fresh shared context with an empty invocation log."""
    return {"log": [], "counter": 0}
