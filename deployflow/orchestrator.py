"""Orchestrator - drives a project's steps to completion in dependency order."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

from . import resolver
from .compensation import Compensator, NoopCompensator
from .errors import RunInProgressError, StepExecutionError
from .executor import StepExecutor
from .models import Execution, Notification, Project, Step, utc_now
from .notifications import LoggingNotificationSink, NotificationSink
from .persistence import EntityRepository
from .status import (
    ExecutionStatus,
    FailurePolicy,
    NotificationType,
    ProjectStatus,
    StepStatus,
    TriggerSource,
)

logger = logging.getLogger(__name__)

_CANCELLABLE = (StepStatus.LOCKED, StepStatus.AVAILABLE, StepStatus.PENDING)


class Orchestrator:
    """Runs projects: resolves eligible steps, executes them and records history.

    Every state change is written through the repository immediately, so the
    entity store remains the single source of truth across restarts. At most
    one run per project is active at a time.
    """

    def __init__(
        self,
        repository: EntityRepository,
        executor: StepExecutor,
        sink: Optional[NotificationSink] = None,
        compensator: Optional[Compensator] = None,
        parallel: bool = False,
    ) -> None:
        self._repository = repository
        self._executor = executor
        self._sink = sink or LoggingNotificationSink()
        self._compensator = compensator or NoopCompensator()
        self._parallel = parallel
        self._active: Dict[str, asyncio.Event] = {}

    def is_running(self, project_id: str) -> bool:
        return project_id in self._active

    def cancel(self, project_id: str) -> bool:
        """Request cancellation of the active run of ``project_id``.

        Returns ``False`` when the project has no active run in this process.
        """
        event = self._active.get(project_id)
        if event is None:
            return False
        logger.info(f"Cancellation requested for project {project_id}")
        event.set()
        return True

    async def run(
        self, project_id: str, trigger: TriggerSource = TriggerSource.MANUAL
    ) -> Execution:
        """Run every step of a project and return the finished execution record.

        Raises:
            NotFoundError: If the project does not exist.
            RunInProgressError: If the project is already running.
        """
        project = self._repository.require_project(project_id)
        if project_id in self._active or project.status is ProjectStatus.RUNNING:
            raise RunInProgressError(project_id)

        cancel_event = asyncio.Event()
        self._active[project_id] = cancel_event
        try:
            if not project.steps:
                if project.status is not ProjectStatus.PLANNING:
                    project.set_status(ProjectStatus.RUNNING)
                return await self.finalize_empty(project, trigger)
            return await self._run(project, trigger, cancel_event)
        finally:
            self._active.pop(project_id, None)

    async def finalize_empty(
        self, project: Project, trigger: TriggerSource = TriggerSource.MANUAL
    ) -> Execution:
        """Complete a project without steps with a zero-duration execution."""
        now = utc_now()
        execution = Execution(project_id=project.id, trigger=trigger, started_at=now)
        execution.finish(ExecutionStatus.COMPLETED, finished_at=now)
        project.set_status(ProjectStatus.COMPLETED)
        self._repository.append_execution(execution)
        self._repository.save_project(project)
        logger.info(f"Project {project.name} ({project.id}) has no steps; completed")
        await self._notify(project, execution)
        return execution

    # ------------------------------------------------------------------
    async def _run(
        self, project: Project, trigger: TriggerSource, cancel_event: asyncio.Event
    ) -> Execution:
        for step in project.steps:
            if step.status is not StepStatus.PENDING:
                step.reset()
        resolver.initialize(project.steps)
        project.set_status(ProjectStatus.RUNNING)

        execution = Execution(project_id=project.id, trigger=trigger)
        self._repository.append_execution(execution)
        self._repository.save_project(project)
        logger.info(
            f"Starting run {execution.id} of project {project.name} "
            f"({project.id}) with {len(project.steps)} steps"
        )

        env = dict(project.config.environment_variables)
        try:
            return await self._drive(project, execution, env, cancel_event)
        except Exception as e:
            if execution.status is not ExecutionStatus.RUNNING:
                raise
            error = f"Run aborted: {type(e).__name__}: {e}"
            logger.error(f"Run {execution.id} of project {project.id} raised: {e}")
            for step in project.steps:
                if step.status is StepStatus.RUNNING:
                    step.set_status(StepStatus.FAILED)
                    step.error = error
                    step.log(f"Error: {error}")
            return await self._finalize(
                project, execution, ExecutionStatus.FAILED, error=error
            )

    async def _drive(
        self,
        project: Project,
        execution: Execution,
        env: Dict[str, str],
        cancel_event: asyncio.Event,
    ) -> Execution:
        failures: List[Tuple[Step, StepExecutionError]] = []
        aborted_by: Optional[Step] = None

        while not cancel_event.is_set() and aborted_by is None:
            eligible = resolver.eligible_steps(project.steps)
            if not eligible:
                break
            if self._parallel:
                errors = await asyncio.gather(
                    *(self._run_step(project, s, env, cancel_event) for s in eligible),
                    return_exceptions=True,
                )
                for error in errors:
                    if isinstance(error, BaseException) and not isinstance(
                        error, StepExecutionError
                    ):
                        raise error
                round_failures = [
                    (s, e) for s, e in zip(eligible, errors) if e is not None
                ]
            else:
                round_failures = []
                for step in eligible:
                    if cancel_event.is_set():
                        break
                    error = await self._run_step(project, step, env, cancel_event)
                    if error is not None:
                        round_failures.append((step, error))
                        if step.failure_policy is not FailurePolicy.CONTINUE:
                            break
            failures.extend(round_failures)
            for step, _ in round_failures:
                if step.failure_policy is not FailurePolicy.CONTINUE:
                    aborted_by = step
                    break

        if cancel_event.is_set():
            for step in project.steps:
                if step.status in _CANCELLABLE:
                    step.set_status(StepStatus.CANCELLED)
            return await self._finalize(
                project, execution, ExecutionStatus.CANCELLED, error="Run cancelled"
            )

        if aborted_by is not None:
            if aborted_by.failure_policy is FailurePolicy.ROLLBACK:
                await self._rollback(project, aborted_by, env)
            return await self._finalize(
                project,
                execution,
                ExecutionStatus.FAILED,
                error=self._describe_failure(aborted_by),
                failed_step=aborted_by,
            )

        if all(s.status is StepStatus.COMPLETED for s in project.steps):
            return await self._finalize(project, execution, ExecutionStatus.COMPLETED)

        if failures:
            step, _ = failures[0]
            return await self._finalize(
                project,
                execution,
                ExecutionStatus.FAILED,
                error=self._describe_failure(step),
                failed_step=step,
            )

        diagnostic = self._diagnose_stuck(project.steps)
        logger.error(f"Project {project.id} cannot make progress: {diagnostic}")
        return await self._finalize(
            project, execution, ExecutionStatus.FAILED, error=diagnostic
        )

    async def _run_step(
        self,
        project: Project,
        step: Step,
        env: Dict[str, str],
        cancel_event: asyncio.Event,
    ) -> Optional[StepExecutionError]:
        """Execute one step; return the failure instead of raising it."""
        try:
            result = await self._executor.execute(
                step,
                env,
                cancel_event=cancel_event,
                on_change=lambda _step: self._repository.save_project(project),
            )
        except StepExecutionError as e:
            return e
        if result.status is StepStatus.COMPLETED:
            resolver.unlock_followers(project.steps, step.id)
            self._repository.save_project(project)
        return None

    async def _rollback(self, project: Project, failed_step: Step, env: Dict[str, str]) -> None:
        logger.info(f"Rolling back project {project.id} after step {failed_step.id}")
        try:
            await self._compensator.compensate(project, failed_step, env)
        except Exception as e:
            logger.error(f"Compensation for project {project.id} raised: {e}")
            failed_step.log(f"Rollback error: {e}")
        self._repository.save_project(project)

    @staticmethod
    def _describe_failure(step: Step) -> str:
        return f"Step '{step.title}' failed: {step.error or 'unknown error'}"

    @staticmethod
    def _diagnose_stuck(steps: List[Step]) -> str:
        cycle = resolver.find_cycle(steps)
        if cycle:
            return f"cycle detected: {' -> '.join(cycle)}"
        missing = resolver.missing_prerequisites(steps)
        if missing:
            detail = ", ".join(f"{sid} requires {deps}" for sid, deps in missing.items())
            return f"unresolved dependency: {detail}"
        return "unresolved dependency: no step is eligible to run"

    async def _finalize(
        self,
        project: Project,
        execution: Execution,
        status: ExecutionStatus,
        error: Optional[str] = None,
        failed_step: Optional[Step] = None,
    ) -> Execution:
        execution.finish(
            status,
            error=error,
            failed_step_id=failed_step.id if failed_step else None,
        )
        project.set_status(
            ProjectStatus.COMPLETED
            if status is ExecutionStatus.COMPLETED
            else ProjectStatus.FAILED
        )
        self._repository.save_execution(execution)
        self._repository.save_project(project)
        logger.info(
            f"Run {execution.id} of project {project.id} finished: "
            f"{status.value} in {execution.duration_ms}ms"
        )
        await self._notify(project, execution, failed_step)
        return execution

    async def _notify(
        self,
        project: Project,
        execution: Execution,
        failed_step: Optional[Step] = None,
    ) -> Notification:
        if execution.status is ExecutionStatus.COMPLETED:
            notification = Notification(
                type=NotificationType.SUCCESS,
                title="Deployment succeeded",
                message=f"Project {project.name} completed in {execution.duration_ms}ms",
                project_id=project.id,
            )
        elif execution.status is ExecutionStatus.CANCELLED:
            notification = Notification(
                type=NotificationType.INFO,
                title="Deployment cancelled",
                message=f"Project {project.name} run was cancelled",
                project_id=project.id,
            )
        else:
            where = f" at step '{failed_step.title}'" if failed_step else ""
            notification = Notification(
                type=NotificationType.FAILURE,
                title="Deployment failed",
                message=f"Project {project.name} failed{where}: {execution.error}",
                project_id=project.id,
            )
        self._repository.add_notification(notification)
        try:
            await self._sink.deliver(notification)
        except Exception as e:
            logger.error(f"Failed to deliver notification {notification.id}: {e}")
        return notification
