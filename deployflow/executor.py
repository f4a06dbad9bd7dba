"""Step execution engine for deployflow projects."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Mapping, Optional

from pydantic import BaseModel

from .errors import InvalidStateError, StepExecutionError
from .models import CommandSpec, Step, utc_now
from .runners import CommandResult, CommandRunner
from .status import StepStatus
from .utils.retry import schedule_retry
from .validation import StepValidator

logger = logging.getLogger(__name__)

StepCallback = Callable[[Step], None]


class StepResult(BaseModel):
    """Summary of a single step execution."""

    step_id: str
    status: StepStatus
    duration_ms: int = 0
    commands_run: int = 0
    error: Optional[str] = None


class StepExecutor:
    """Runs the command list of one step and records the outcome on it.

    The executor only ever decides the fate of the step it was given. A
    failure marks the step ``failed`` and raises :class:`StepExecutionError`
    so the orchestrator can apply the step's failure policy.
    """

    def __init__(
        self,
        runner: CommandRunner,
        validator: Optional[StepValidator] = None,
        retry_backoff_base: float = 1.5,
    ) -> None:
        self._runner = runner
        self._validator = validator or StepValidator(runner)
        self._retry_backoff_base = retry_backoff_base

    async def execute(
        self,
        step: Step,
        env: Optional[Mapping[str, str]] = None,
        cancel_event: Optional[asyncio.Event] = None,
        on_change: Optional[StepCallback] = None,
    ) -> StepResult:
        """Execute ``step``.

        Args:
            step: Step to run. Must be ``available``.
            env: Environment variables passed to every command.
            cancel_event: When set, no further command of this step is started
                and the step ends ``cancelled``.
            on_change: Called after every state transition and command so the
                caller can persist the step.

        Raises:
            InvalidStateError: If the step is not ``available``.
            StepExecutionError: If a command or the validation fails.
        """
        if step.status is not StepStatus.AVAILABLE:
            raise InvalidStateError(
                f"Step {step.id} ({step.title}) is {step.status.value}; "
                "only available steps can be executed"
            )

        env = dict(env or {})
        notify = on_change or (lambda _step: None)
        started = time.monotonic()

        step.set_status(StepStatus.RUNNING)
        step.started_at = utc_now()
        step.error = None
        notify(step)
        logger.info(f"Running step {step.title} ({step.id})")

        commands_run = 0
        for command in step.commands:
            if cancel_event is not None and cancel_event.is_set():
                step.log(f"Cancelled before: {command.command}")
                return self._finish(step, StepStatus.CANCELLED, started, commands_run, notify)
            commands_run += 1
            result = await self._run_command(step, command, env)
            notify(step)
            if not result.success:
                error = f"Command '{command.command}' failed: {result.error}"
                failed = self._finish(
                    step, StepStatus.FAILED, started, commands_run, notify, error
                )
                raise StepExecutionError(failed)

        if step.validation is not None:
            try:
                passed, detail = await self._validator.validate(step.validation, env)
            except Exception as e:
                logger.error(f"Validation of step {step.id} raised: {e}")
                passed, detail = False, f"{type(e).__name__}: {e}"
            step.log(f"Validation ({step.validation.type}): {detail}")
            if not passed:
                failed = self._finish(
                    step,
                    StepStatus.FAILED,
                    started,
                    commands_run,
                    notify,
                    f"Validation failed: {detail}",
                )
                raise StepExecutionError(failed)

        return self._finish(step, StepStatus.COMPLETED, started, commands_run, notify)

    async def _run_command(
        self, step: Step, command: CommandSpec, env: Mapping[str, str]
    ) -> CommandResult:
        attempts = command.retries + 1
        result = CommandResult(success=False, error="not run")
        for attempt in range(1, attempts + 1):
            suffix = f" (attempt {attempt}/{attempts})" if attempts > 1 else ""
            step.log(f"$ {command.command}{suffix}")
            try:
                result = await self._runner.run(command, env)
            except Exception as e:
                logger.error(f"Runner raised for '{command.command}': {e}")
                result = CommandResult(success=False, error=f"{type(e).__name__}: {e}")
            for line in result.output.splitlines():
                step.log(f"  {line}")
            if result.success:
                step.log(f"Command succeeded: {command.command}")
                return result
            step.log(f"Command failed: {command.command}: {result.error}")
            if attempt < attempts:
                logger.debug(f"Retrying '{command.command}' for step {step.id}")
                await schedule_retry(attempt, base=self._retry_backoff_base)
        return result

    def _finish(
        self,
        step: Step,
        status: StepStatus,
        started: float,
        commands_run: int,
        notify: StepCallback,
        error: Optional[str] = None,
    ) -> StepResult:
        step.set_status(status)
        step.duration_ms = int((time.monotonic() - started) * 1000)
        step.completed_at = utc_now()
        step.error = error
        if error:
            step.log(f"Error: {error}")
        notify(step)

        if status is StepStatus.FAILED:
            logger.warning(f"Step {step.title} ({step.id}) failed: {error}")
        else:
            logger.info(f"Step {step.title} ({step.id}) {status.value} in {step.duration_ms}ms")
        return StepResult(
            step_id=step.id,
            status=status,
            duration_ms=step.duration_ms,
            commands_run=commands_run,
            error=error,
        )
