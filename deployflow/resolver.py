"""Dependency resolution over a project's step graph.

All functions operate on the full step list of a single project. Steps refer
to their prerequisites by step id.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Set

from .errors import CyclicDependencyError
from .models import Step
from .status import TERMINAL_STEP_STATUSES, StepStatus

logger = logging.getLogger(__name__)


def _by_id(steps: Iterable[Step]) -> Dict[str, Step]:
    return {step.id: step for step in steps}


def _sorted(steps: Iterable[Step]) -> List[Step]:
    return sorted(steps, key=lambda s: s.order)


def prerequisites_met(step: Step, index: Dict[str, Step]) -> bool:
    """Return ``True`` when every prerequisite of ``step`` is completed."""
    for dep_id in step.dependencies:
        dep = index.get(dep_id)
        if dep is None or dep.status is not StepStatus.COMPLETED:
            return False
    return True


def eligible_steps(steps: List[Step]) -> List[Step]:
    """Return runnable steps in ascending ``order``.

    A step is eligible when it is ``available``, all its prerequisites are
    ``completed`` and it is not already completed, running or cancelled.
    """
    index = _by_id(steps)
    return _sorted(
        step
        for step in steps
        if step.status is StepStatus.AVAILABLE
        and prerequisites_met(step, index)
    )


def initialize(steps: List[Step]) -> List[Step]:
    """Resolve ``pending`` steps to ``available`` or ``locked``.

    Returns the steps that became available.
    """
    index = _by_id(steps)
    unlocked: List[Step] = []
    for step in _sorted(steps):
        if step.status is not StepStatus.PENDING:
            continue
        if prerequisites_met(step, index):
            step.set_status(StepStatus.AVAILABLE)
            unlocked.append(step)
        else:
            step.set_status(StepStatus.LOCKED)
    return unlocked


def unlock_followers(steps: List[Step], completed_step_id: str) -> List[Step]:
    """Unlock steps that depended on ``completed_step_id`` and are now satisfied."""
    index = _by_id(steps)
    unlocked: List[Step] = []
    for step in _sorted(steps):
        if completed_step_id not in step.dependencies:
            continue
        if step.status is StepStatus.LOCKED and prerequisites_met(step, index):
            step.set_status(StepStatus.AVAILABLE)
            unlocked.append(step)
    if unlocked:
        logger.debug(
            f"Step {completed_step_id} unlocked {[s.id for s in unlocked]}"
        )
    return unlocked


def missing_prerequisites(steps: List[Step]) -> Dict[str, List[str]]:
    """Map step ids to prerequisite ids that do not exist in ``steps``."""
    index = _by_id(steps)
    missing: Dict[str, List[str]] = {}
    for step in steps:
        unknown = [dep for dep in step.dependencies if dep not in index]
        if unknown:
            missing[step.id] = unknown
    return missing


def find_cycle(steps: List[Step]) -> Optional[List[str]]:
    """Return one dependency cycle as a list of step ids, or ``None``."""
    index = _by_id(steps)
    visiting: Set[str] = set()
    done: Set[str] = set()
    path: List[str] = []

    def visit(step_id: str) -> Optional[List[str]]:
        visiting.add(step_id)
        path.append(step_id)
        for dep_id in index[step_id].dependencies:
            if dep_id not in index or dep_id in done:
                continue
            if dep_id in visiting:
                return path[path.index(dep_id):] + [dep_id]
            found = visit(dep_id)
            if found:
                return found
        visiting.discard(step_id)
        done.add(step_id)
        path.pop()
        return None

    for step in _sorted(steps):
        if step.id not in done:
            found = visit(step.id)
            if found:
                return found
    return None


def detect_cycle(steps: List[Step]) -> bool:
    return find_cycle(steps) is not None


def ensure_acyclic(steps: List[Step]) -> None:
    """Raise :class:`CyclicDependencyError` if the step graph has a cycle."""
    cycle = find_cycle(steps)
    if cycle:
        raise CyclicDependencyError(cycle)


def blocked_steps(steps: List[Step]) -> List[Step]:
    """Return non-terminal steps that can never become eligible.

    A step is blocked when some prerequisite failed, was cancelled, is
    missing, or is itself blocked.
    """
    index = _by_id(steps)
    memo: Dict[str, bool] = {}

    def is_blocked(step: Step, trail: Set[str]) -> bool:
        if step.id in memo:
            return memo[step.id]
        if step.id in trail:
            # part of a cycle: nothing on it can ever run
            return True
        trail = trail | {step.id}
        result = False
        for dep_id in step.dependencies:
            dep = index.get(dep_id)
            if dep is None or dep.status in (StepStatus.FAILED, StepStatus.CANCELLED):
                result = True
                break
            if dep.status is not StepStatus.COMPLETED and is_blocked(dep, trail):
                result = True
                break
        memo[step.id] = result
        return result

    return _sorted(
        step
        for step in steps
        if step.status not in TERMINAL_STEP_STATUSES
        and step.status is not StepStatus.RUNNING
        and is_blocked(step, set())
    )


def topological_order(steps: List[Step]) -> List[Step]:
    """Return the steps in dependency order, ties broken by ascending ``order``."""
    ensure_acyclic(steps)
    index = _by_id(steps)
    placed: Set[str] = set()
    ordered: List[Step] = []
    remaining = _sorted(steps)
    while remaining:
        for step in remaining:
            if all(dep in placed or dep not in index for dep in step.dependencies):
                ordered.append(step)
                placed.add(step.id)
                remaining.remove(step)
                break
    return ordered
