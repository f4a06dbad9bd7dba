"""Base command runner interface."""

from __future__ import annotations

import abc
from typing import Mapping, Optional

from pydantic import BaseModel

from ..models import CommandSpec


class CommandResult(BaseModel):
    """Outcome of running one command."""

    success: bool
    exit_code: Optional[int] = None
    output: str = ""
    error: Optional[str] = None


class CommandRunner(metaclass=abc.ABCMeta):
    """Abstract boundary to whatever actually executes step commands."""

    @abc.abstractmethod
    async def run(self, command: CommandSpec, env: Mapping[str, str]) -> CommandResult:
        """Execute ``command`` with ``env`` overlaid on the base environment.

        Implementations report failures through the returned result rather
        than raising.
        """
        raise NotImplementedError
