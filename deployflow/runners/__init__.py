"""Command runner factory."""

from __future__ import annotations

from typing import Optional

from ..config import DeployflowConfig, load_config
from .base import CommandResult, CommandRunner
from .fake import FakeCommandRunner
from .process import SubprocessCommandRunner


def get_runner(
    backend: Optional[str] = None, config: Optional[DeployflowConfig] = None
) -> CommandRunner:
    """Factory function to get the configured command runner."""

    config = config or load_config()
    runner_conf = config.runner
    backend = (backend or runner_conf.backend).lower()

    if backend == "subprocess":
        return SubprocessCommandRunner(
            shell=runner_conf.shell,
            default_timeout=runner_conf.default_timeout,
            working_directory=runner_conf.working_directory,
        )
    elif backend == "fake":
        return FakeCommandRunner()
    else:
        raise ValueError(f"Unsupported runner backend: {backend}")


__all__ = [
    "CommandResult",
    "CommandRunner",
    "FakeCommandRunner",
    "SubprocessCommandRunner",
    "get_runner",
]
