"""Scripted command runner for tests and dry runs."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import Deque, Dict, Iterable, List, Mapping, Optional, Tuple

from ..models import CommandSpec
from .base import CommandResult, CommandRunner


class FakeCommandRunner(CommandRunner):
    """Succeeds for every command unless told otherwise.

    ``failures`` lists commands that always fail. ``script`` queues results
    per command string, consumed in order before falling back to the default.
    Every call is recorded in ``calls`` as ``(command, env)``.
    """

    def __init__(
        self,
        failures: Optional[Iterable[str]] = None,
        delay: float = 0.0,
    ) -> None:
        self.failures = set(failures or ())
        self.delay = delay
        self.calls: List[Tuple[str, Dict[str, str]]] = []
        self._script: Dict[str, Deque[CommandResult]] = defaultdict(deque)

    def script(self, command: str, *results: CommandResult) -> None:
        self._script[command].extend(results)

    @property
    def commands(self) -> List[str]:
        return [command for command, _ in self.calls]

    async def run(self, command: CommandSpec, env: Mapping[str, str]) -> CommandResult:
        self.calls.append((command.command, {**env, **command.environment}))
        if self.delay:
            await asyncio.sleep(self.delay)
        queued = self._script.get(command.command)
        if queued:
            return queued.popleft()
        if command.command in self.failures:
            return CommandResult(
                success=False, exit_code=1, error=f"{command.command} failed"
            )
        return CommandResult(success=True, exit_code=0, output=f"ran {command.command}")
