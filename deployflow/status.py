"""Closed status enumerations and their transition tables.

Every status change in deployflow goes through one of the ``transition``
functions below so that the allowed moves live in exactly one place.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, Mapping, TypeVar

from .errors import InvalidStateError


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class StepStatus(str, Enum):
    LOCKED = "locked"
    AVAILABLE = "available"
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TriggerSource(str, Enum):
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    EVENT = "event"


class FailurePolicy(str, Enum):
    STOP = "stop"
    CONTINUE = "continue"
    ROLLBACK = "rollback"


class NotificationType(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    INFO = "info"


class EntityKind(str, Enum):
    PROJECTS = "projects"
    TEMPLATES = "templates"
    EXECUTIONS = "executions"
    NOTIFICATIONS = "notifications"


TERMINAL_STEP_STATUSES: FrozenSet[StepStatus] = frozenset(
    {StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.CANCELLED}
)

_STEP_TRANSITIONS: Dict[StepStatus, FrozenSet[StepStatus]] = {
    StepStatus.PENDING: frozenset(
        {StepStatus.AVAILABLE, StepStatus.LOCKED, StepStatus.CANCELLED}
    ),
    StepStatus.LOCKED: frozenset(
        {StepStatus.AVAILABLE, StepStatus.CANCELLED, StepStatus.PENDING}
    ),
    StepStatus.AVAILABLE: frozenset(
        {
            StepStatus.RUNNING,
            StepStatus.LOCKED,
            StepStatus.CANCELLED,
            StepStatus.PENDING,
        }
    ),
    StepStatus.RUNNING: frozenset(
        {StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.CANCELLED}
    ),
    StepStatus.COMPLETED: frozenset({StepStatus.PENDING}),
    StepStatus.FAILED: frozenset({StepStatus.PENDING}),
    StepStatus.CANCELLED: frozenset({StepStatus.PENDING}),
}

_PROJECT_TRANSITIONS: Dict[ProjectStatus, FrozenSet[ProjectStatus]] = {
    # planning -> completed only happens for projects without steps
    ProjectStatus.PLANNING: frozenset({ProjectStatus.RUNNING, ProjectStatus.COMPLETED}),
    ProjectStatus.RUNNING: frozenset({ProjectStatus.COMPLETED, ProjectStatus.FAILED}),
    ProjectStatus.COMPLETED: frozenset({ProjectStatus.RUNNING}),
    ProjectStatus.FAILED: frozenset({ProjectStatus.RUNNING}),
}

_EXECUTION_TRANSITIONS: Dict[ExecutionStatus, FrozenSet[ExecutionStatus]] = {
    ExecutionStatus.RUNNING: frozenset(
        {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED}
    ),
    ExecutionStatus.COMPLETED: frozenset(),
    ExecutionStatus.FAILED: frozenset(),
    ExecutionStatus.CANCELLED: frozenset(),
}

S = TypeVar("S", bound=Enum)


def _transition(table: Mapping[S, FrozenSet[S]], current: S, target: S, what: str) -> S:
    if target not in table[current]:
        raise InvalidStateError(
            f"Illegal {what} transition: {current.value} -> {target.value}"
        )
    return target


def step_transition(current: StepStatus, target: StepStatus) -> StepStatus:
    """Validate and return ``target`` as the next step status."""
    return _transition(_STEP_TRANSITIONS, current, target, "step")


def project_transition(current: ProjectStatus, target: ProjectStatus) -> ProjectStatus:
    """Validate and return ``target`` as the next project status."""
    return _transition(_PROJECT_TRANSITIONS, current, target, "project")


def execution_transition(
    current: ExecutionStatus, target: ExecutionStatus
) -> ExecutionStatus:
    """Validate and return ``target`` as the next execution status."""
    return _transition(_EXECUTION_TRANSITIONS, current, target, "execution")


def is_terminal_execution(status: ExecutionStatus) -> bool:
    return not _EXECUTION_TRANSITIONS[status]
