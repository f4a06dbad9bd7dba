"""Command runner backed by real subprocesses."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
from typing import Mapping, Optional

from ..models import CommandSpec
from .base import CommandResult, CommandRunner

logger = logging.getLogger(__name__)


class SubprocessCommandRunner(CommandRunner):
    """Run commands as local processes and capture combined output."""

    def __init__(
        self,
        shell: bool = True,
        default_timeout: Optional[float] = None,
        working_directory: Optional[str] = None,
    ) -> None:
        self.shell = shell
        self.default_timeout = default_timeout
        self.working_directory = working_directory

    async def _spawn(self, command: CommandSpec, env: Mapping[str, str]):
        cwd = command.working_directory or self.working_directory
        full_env = {**os.environ, **env, **command.environment}
        if self.shell:
            return await asyncio.create_subprocess_shell(
                command.command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=cwd,
                env=full_env,
            )
        return await asyncio.create_subprocess_exec(
            *shlex.split(command.command),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=cwd,
            env=full_env,
        )

    async def run(self, command: CommandSpec, env: Mapping[str, str]) -> CommandResult:
        timeout = command.timeout or self.default_timeout
        try:
            proc = await self._spawn(command, env)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not start '{command.command}': {e}")
            return CommandResult(success=False, error=str(e))

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            return CommandResult(
                success=False,
                exit_code=proc.returncode,
                error=f"timed out after {timeout}s",
            )

        output = stdout.decode(errors="replace").rstrip() if stdout else ""
        if proc.returncode != 0:
            return CommandResult(
                success=False,
                exit_code=proc.returncode,
                output=output,
                error=f"exit code {proc.returncode}",
            )
        return CommandResult(success=True, exit_code=0, output=output)
