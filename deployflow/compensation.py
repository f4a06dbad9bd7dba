"""Compensating actions for the ``rollback`` failure policy."""

from __future__ import annotations

import abc
import logging
from datetime import datetime, timezone
from typing import Mapping

from .models import Project, Step
from .runners import CommandRunner
from .status import StepStatus

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Compensator(metaclass=abc.ABCMeta):
    """Undo the external effects of a partially executed project."""

    @abc.abstractmethod
    async def compensate(
        self, project: Project, failed_step: Step, env: Mapping[str, str]
    ) -> None:
        """Run compensation after ``failed_step`` failed with policy ``rollback``."""
        raise NotImplementedError


class NoopCompensator(Compensator):
    """Record the rollback request and do nothing else."""

    async def compensate(
        self, project: Project, failed_step: Step, env: Mapping[str, str]
    ) -> None:
        failed_step.log("Rollback requested; no compensation configured")


class CommandCompensator(Compensator):
    """Run each completed step's ``rollback_commands``, most recent step first.

    The failed step's own rollback commands run first since it may have left
    partial effects behind. Rollback command failures are logged on the step
    and do not stop the remaining compensation.
    """

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    async def compensate(
        self, project: Project, failed_step: Step, env: Mapping[str, str]
    ) -> None:
        completed = sorted(
            (s for s in project.steps if s.status is StepStatus.COMPLETED),
            key=lambda s: (s.completed_at or _EPOCH, s.order),
            reverse=True,
        )
        for step in [failed_step, *completed]:
            for command in step.rollback_commands:
                step.log(f"Rollback: $ {command.command}")
                result = await self._runner.run(command, env)
                if result.success:
                    step.log(f"Rollback succeeded: {command.command}")
                else:
                    step.log(f"Rollback failed: {command.command}: {result.error}")
                    logger.warning(
                        f"Rollback command '{command.command}' failed for "
                        f"project {project.id}: {result.error}"
                    )
