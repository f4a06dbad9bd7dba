"""Run statistics derived from execution history.

Nothing here is stored. Snapshots are folded from the execution log every
time they are requested.
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from pydantic import BaseModel, Field

from .models import Execution, Project
from .status import ExecutionStatus, ProjectStatus

RECENT_EXECUTIONS = 10


class AnalyticsSnapshot(BaseModel):
    """Aggregate over the executions of one project."""

    project_id: str
    count: int = 0
    success_count: int = 0
    failure_count: int = 0
    success_rate: float = 0.0
    average_duration: float = 0.0


class PlatformSummary(BaseModel):
    """Totals across every project."""

    total_projects: int = 0
    active_projects: int = 0
    total_executions: int = 0
    success_rate: float = 0.0
    average_duration: float = 0.0
    recent_executions: List[Execution] = Field(default_factory=list)


def _fold(executions: Sequence[Execution]):
    count = len(executions)
    successes = sum(1 for e in executions if e.status is ExecutionStatus.COMPLETED)
    failures = sum(1 for e in executions if e.status is ExecutionStatus.FAILED)
    durations = [e.duration_ms for e in executions if e.duration_ms is not None]
    rate = successes / count * 100 if count else 0.0
    average = sum(durations) / len(durations) if durations else 0.0
    return count, successes, failures, rate, average


def compute_analytics(
    project_id: str, executions: Iterable[Execution]
) -> AnalyticsSnapshot:
    """Compute the snapshot for ``project_id``.

    Executions of other projects are ignored, so the full history may be
    passed in. Running executions count towards ``count`` only.
    """
    own = [e for e in executions if e.project_id == project_id]
    count, successes, failures, rate, average = _fold(own)
    return AnalyticsSnapshot(
        project_id=project_id,
        count=count,
        success_count=successes,
        failure_count=failures,
        success_rate=rate,
        average_duration=average,
    )


def summarize(
    projects: Iterable[Project], executions: Iterable[Execution]
) -> PlatformSummary:
    projects = list(projects)
    executions = list(executions)
    count, _, _, rate, average = _fold(executions)
    recent = sorted(executions, key=lambda e: e.started_at, reverse=True)
    return PlatformSummary(
        total_projects=len(projects),
        active_projects=sum(1 for p in projects if p.status is ProjectStatus.RUNNING),
        total_executions=count,
        success_rate=rate,
        average_duration=average,
        recent_executions=recent[:RECENT_EXECUTIONS],
    )
