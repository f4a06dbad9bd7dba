"""Tests for dependency resolution."""

import pytest

from deployflow import resolver
from deployflow.errors import CyclicDependencyError
from deployflow.models import Step
from deployflow.status import StepStatus


def _steps(*specs):
    """Build steps from ``(id, order, deps)`` tuples."""
    return [Step(id=sid, title=sid.upper(), order=order, dependencies=deps) for sid, order, deps in specs]


def test_initialize_splits_available_and_locked():
    steps = _steps(("a", 1, []), ("b", 2, ["a"]), ("c", 3, []))
    unlocked = resolver.initialize(steps)
    assert [s.id for s in unlocked] == ["a", "c"]
    assert [s.status for s in steps] == [
        StepStatus.AVAILABLE,
        StepStatus.LOCKED,
        StepStatus.AVAILABLE,
    ]


def test_eligible_steps_sorted_by_order():
    steps = _steps(("late", 5, []), ("early", 1, []), ("mid", 3, []))
    resolver.initialize(steps)
    assert [s.id for s in resolver.eligible_steps(steps)] == ["early", "mid", "late"]


def test_unlock_waits_for_every_prerequisite():
    steps = _steps(("a", 1, []), ("b", 2, []), ("c", 3, ["a", "b"]))
    resolver.initialize(steps)
    a, b, c = steps

    a.set_status(StepStatus.RUNNING)
    a.set_status(StepStatus.COMPLETED)
    assert resolver.unlock_followers(steps, "a") == []
    assert c.status is StepStatus.LOCKED

    b.set_status(StepStatus.RUNNING)
    b.set_status(StepStatus.COMPLETED)
    assert resolver.unlock_followers(steps, "b") == [c]
    assert c.status is StepStatus.AVAILABLE


def test_chain_unlocks_one_link_at_a_time():
    steps = _steps(("a", 1, []), ("b", 2, ["a"]), ("c", 3, ["b"]))
    resolver.initialize(steps)
    a, b, c = steps
    assert resolver.eligible_steps(steps) == [a]

    a.set_status(StepStatus.RUNNING)
    a.set_status(StepStatus.COMPLETED)
    assert resolver.unlock_followers(steps, "a") == [b]
    assert resolver.eligible_steps(steps) == [b]
    assert c.status is StepStatus.LOCKED

    b.set_status(StepStatus.RUNNING)
    b.set_status(StepStatus.COMPLETED)
    assert resolver.unlock_followers(steps, "b") == [c]
    assert resolver.eligible_steps(steps) == [c]


def test_find_cycle_reports_path():
    steps = _steps(("a", 1, ["c"]), ("b", 2, ["a"]), ("c", 3, ["b"]), ("d", 4, []))
    cycle = resolver.find_cycle(steps)
    assert cycle is not None
    assert cycle[0] == cycle[-1]
    assert set(cycle) == {"a", "b", "c"}
    assert resolver.detect_cycle(steps)

    with pytest.raises(CyclicDependencyError) as exc:
        resolver.ensure_acyclic(steps)
    assert exc.value.cycle == cycle


def test_self_dependency_is_a_cycle():
    assert resolver.find_cycle(_steps(("a", 1, ["a"]))) == ["a", "a"]


def test_missing_prerequisites_and_blocked_steps():
    steps = _steps(("a", 1, []), ("b", 2, ["ghost"]), ("c", 3, ["b"]))
    resolver.initialize(steps)
    assert resolver.missing_prerequisites(steps) == {"b": ["ghost"]}
    assert [s.id for s in resolver.blocked_steps(steps)] == ["b", "c"]


def test_failed_prerequisite_blocks_followers():
    steps = _steps(("a", 1, []), ("b", 2, ["a"]))
    resolver.initialize(steps)
    steps[0].set_status(StepStatus.RUNNING)
    steps[0].set_status(StepStatus.FAILED)
    assert resolver.blocked_steps(steps) == [steps[1]]


def test_topological_order_respects_dependencies():
    steps = _steps(("deploy", 1, ["build"]), ("build", 2, ["install"]), ("install", 3, []))
    assert [s.id for s in resolver.topological_order(steps)] == ["install", "build", "deploy"]
