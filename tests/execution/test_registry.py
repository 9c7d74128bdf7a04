"""Tests for StepRegistry: insertion, removal, duplicates and sort caching."""

import pytest

from stepwise.core.errors import DuplicateStepError, InvalidStepError
from stepwise.execution.options import EngineOptions
from stepwise.execution.registry import StepRegistry
from stepwise.execution.step import duplicable, set_priority


def fn1(*args):
    return None


def fn2(*args):
    return None


def fn3(*args):
    return None


class TestInsertion:
    """Tests for append / prepend / constructor."""

    def test_append_and_prepend(self):
        registry = StepRegistry()
        registry.append(fn2)
        registry.append(fn3)
        registry.prepend(fn1)
        assert registry.snapshot() == (fn1, fn2, fn3)
        assert len(registry) == 3
        assert list(registry) == [fn1, fn2, fn3]

    def test_append_returns_step(self):
        assert StepRegistry().append(fn1) is fn1

    def test_constructor_appends_in_order(self):
        assert StepRegistry(steps=[fn1, fn2]).snapshot() == (fn1, fn2)

    @pytest.mark.parametrize("bad", [None, 42, "step", [fn1]])
    def test_rejects_non_callable(self, bad):
        registry = StepRegistry(steps=[fn1])
        with pytest.raises(InvalidStepError):
            registry.append(bad)
        with pytest.raises(InvalidStepError):
            registry.prepend(bad)
        assert registry.snapshot() == (fn1,)

    def test_callable_objects_are_accepted(self):
        class Step:
            def __call__(self, ctx):
                return None

        step = Step()
        assert StepRegistry(steps=[step]).snapshot() == (step,)


class TestDuplicates:
    """Tests for duplicate rejection."""

    def test_duplicates_allowed_by_default(self):
        registry = StepRegistry(steps=[fn1, fn1])
        registry.prepend(fn1)
        assert registry.snapshot() == (fn1, fn1, fn1)

    def test_duplicates_rejected_when_enabled(self):
        registry = StepRegistry(EngineOptions(duplicates_check_enabled=True), [fn1, fn2])

        with pytest.raises(DuplicateStepError):
            registry.append(fn1)
        with pytest.raises(DuplicateStepError):
            registry.prepend(fn2)
        assert registry.snapshot() == (fn1, fn2)

    def test_constructor_applies_duplicate_check(self):
        with pytest.raises(DuplicateStepError):
            StepRegistry(EngineOptions(duplicates_check_enabled=True), [fn1, fn1])

    def test_exempt_step_may_repeat(self):
        @duplicable
        def tick(*args):
            return None

        registry = StepRegistry(EngineOptions(duplicates_check_enabled=True))
        registry.append(tick)
        registry.append(tick)
        registry.prepend(tick)
        assert len(registry) == 3

    def test_options_are_read_on_each_mutation(self):
        options = EngineOptions()
        registry = StepRegistry(options, [fn1])
        registry.append(fn1)

        options.duplicates_check_enabled = True
        with pytest.raises(DuplicateStepError):
            registry.append(fn1)

        options.duplicates_check_enabled = False
        registry.append(fn1)
        assert len(registry) == 3

    def test_equal_but_distinct_objects_are_not_duplicates(self):
        class Same:
            def __eq__(self, other):
                return True

            __hash__ = object.__hash__

            def __call__(self):
                return None

        registry = StepRegistry(EngineOptions(duplicates_check_enabled=True))
        registry.append(Same())
        registry.append(Same())
        assert len(registry) == 2


class TestRemoval:
    """Tests for remove / clear."""

    def test_remove_from_middle(self):
        registry = StepRegistry(steps=[fn1, fn2, fn3])
        assert registry.remove(fn2) is True
        assert registry.snapshot() == (fn1, fn3)

    def test_remove_missing_returns_false(self):
        registry = StepRegistry(steps=[fn1])
        assert registry.remove(fn2) is False
        assert registry.snapshot() == (fn1,)

    def test_remove_only_first_occurrence(self):
        registry = StepRegistry(steps=[fn1, fn2, fn1])
        assert registry.remove(fn1) is True
        assert registry.snapshot() == (fn2, fn1)

    def test_clear(self):
        registry = StepRegistry(steps=[fn1, fn2])
        registry.clear()
        assert len(registry) == 0
        assert registry.snapshot() == ()
        assert fn1 not in registry


class TestOrderedView:
    """Tests for ordered() and cache invalidation on mutation."""

    @pytest.fixture
    def prioritized(self):
        def a(*args):
            return None

        def b(*args):
            return None

        def c(*args):
            return None

        set_priority(a, 3)
        set_priority(b, 2)
        set_priority(c, 1)
        return a, b, c

    def test_raw_order_when_sorting_disabled(self, prioritized):
        a, b, c = prioritized
        registry = StepRegistry(steps=[a, b, c])
        assert registry.ordered() == (a, b, c)

    def test_sorted_order_when_enabled(self, prioritized):
        a, b, c = prioritized
        registry = StepRegistry(EngineOptions(pre_execute_sort_enabled=True), [a, b, c])
        assert registry.ordered() == (c, b, a)

    @pytest.mark.parametrize("mutation", ["append", "prepend", "remove", "clear"])
    def test_every_mutation_invalidates_cache(self, prioritized, mutation):
        a, b, c = prioritized
        registry = StepRegistry(EngineOptions(pre_execute_sort_enabled=True), [a, b, c])
        registry.ordered()
        assert registry.sorter.is_valid

        if mutation == "remove":
            registry.remove(b)
        elif mutation == "clear":
            registry.clear()
        else:
            getattr(registry, mutation)(fn1)

        assert not registry.sorter.is_valid

    def test_remove_then_reorder(self, prioritized):
        a, b, c = prioritized
        registry = StepRegistry(EngineOptions(pre_execute_sort_enabled=True), [a, b, c])
        assert registry.ordered() == (c, b, a)

        registry.remove(b)
        assert registry.ordered() == (c, a)

    def test_failed_registration_keeps_cache(self, prioritized):
        a, b, c = prioritized
        registry = StepRegistry(EngineOptions(pre_execute_sort_enabled=True), [a, b, c])
        registry.ordered()

        with pytest.raises(InvalidStepError):
            registry.append(None)
        assert registry.sorter.is_valid

    def test_repr(self):
        assert repr(StepRegistry(steps=[fn1])) == "StepRegistry([fn1])"
