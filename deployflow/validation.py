"""Post-hoc step validation checks."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Optional, Tuple

import httpx

from .models import CommandSpec, ValidationSpec
from .runners import CommandRunner

logger = logging.getLogger(__name__)


class StepValidator:
    """Run a step's validation descriptor.

    ``url``/``api`` checks issue an HTTP GET; ``expected_result`` is either a
    status code (default ``200``) or a substring the body must contain.
    ``file`` checks that the target path exists. ``command`` runs the target
    through the command runner and optionally looks for ``expected_result``
    in its output.
    """

    def __init__(
        self,
        runner: CommandRunner,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._runner = runner
        self._client = client

    async def validate(
        self, check: ValidationSpec, env: Mapping[str, str]
    ) -> Tuple[bool, str]:
        """Return ``(passed, detail)`` for ``check``."""
        if check.type in ("url", "api"):
            return await self._check_http(check)
        if check.type == "file":
            exists = Path(check.target).exists()
            return exists, f"{check.target} {'exists' if exists else 'is missing'}"
        return await self._check_command(check, env)

    async def _get(self, client: httpx.AsyncClient, check: ValidationSpec) -> httpx.Response:
        return await client.get(check.target, timeout=check.timeout)

    async def _check_http(self, check: ValidationSpec) -> Tuple[bool, str]:
        try:
            if self._client is not None:
                response = await self._get(self._client, check)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._get(client, check)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return False, f"GET {check.target} failed: {e}"

        expected = check.expected_result or "200"
        if expected.isdigit():
            passed = response.status_code == int(expected)
            return passed, f"GET {check.target} -> {response.status_code} (expected {expected})"
        passed = expected in response.text
        return passed, f"GET {check.target} -> body {'contains' if passed else 'lacks'} '{expected}'"

    async def _check_command(
        self, check: ValidationSpec, env: Mapping[str, str]
    ) -> Tuple[bool, str]:
        result = await self._runner.run(
            CommandSpec(command=check.target, timeout=check.timeout), env
        )
        if not result.success:
            return False, f"{check.target}: {result.error}"
        if check.expected_result and check.expected_result not in result.output:
            return False, f"{check.target}: output lacks '{check.expected_result}'"
        return True, f"{check.target}: ok"
