"""Exception hierarchy for deployflow."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .executor import StepResult


class DeployflowError(Exception):
    """Base class for all deployflow errors."""


class TemplateValidationError(DeployflowError):
    """A template or step graph is malformed and cannot be instantiated."""


class CyclicDependencyError(TemplateValidationError):
    """Step prerequisites form a cycle."""

    def __init__(self, cycle: List[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Cyclic step dependency: {' -> '.join(cycle)}")


class InvalidStateError(DeployflowError):
    """An operation was attempted from a state that does not allow it."""


class RunInProgressError(InvalidStateError):
    """A run was requested for a project that is already running."""

    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project {project_id} already has an active run")


class NotFoundError(DeployflowError):
    """A referenced entity does not exist."""


class StepExecutionError(DeployflowError):
    """A step command or validation failed."""

    def __init__(self, result: "StepResult", message: Optional[str] = None) -> None:
        self.result = result
        super().__init__(message or result.error or f"Step {result.step_id} failed")


class StoreError(DeployflowError):
    """Persisted state could not be written."""
