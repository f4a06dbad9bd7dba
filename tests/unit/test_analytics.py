"""Tests for run analytics."""

from datetime import timedelta

from deployflow.analytics import compute_analytics, summarize
from deployflow.models import Execution, Project, utc_now
from deployflow.status import ExecutionStatus, ProjectStatus


def _history():
    return [
        Execution(project_id="p", status=ExecutionStatus.COMPLETED, duration_ms=100),
        Execution(project_id="p", status=ExecutionStatus.FAILED, duration_ms=200),
        Execution(project_id="p", status=ExecutionStatus.COMPLETED, duration_ms=300),
        Execution(project_id="p"),
        Execution(project_id="other", status=ExecutionStatus.FAILED, duration_ms=9000),
    ]


def test_snapshot_counts_project_history():
    snapshot = compute_analytics("p", _history())
    assert snapshot.count == 4
    assert snapshot.success_count == 2
    assert snapshot.failure_count == 1
    assert snapshot.success_rate == 50.0
    assert snapshot.average_duration == 200.0


def test_empty_history_has_zero_rate():
    snapshot = compute_analytics("p", [])
    assert snapshot.count == 0
    assert snapshot.success_rate == 0
    assert snapshot.average_duration == 0


def test_recomputing_gives_identical_snapshot():
    history = _history()
    assert compute_analytics("p", history) == compute_analytics("p", history)


def test_summary_covers_all_projects():
    now = utc_now()
    executions = [
        Execution(
            project_id="p",
            status=ExecutionStatus.COMPLETED,
            duration_ms=10,
            started_at=now - timedelta(minutes=i),
        )
        for i in range(12)
    ]
    projects = [Project(name="a"), Project(name="b", status=ProjectStatus.RUNNING)]

    summary = summarize(projects, executions)

    assert summary.total_projects == 2
    assert summary.active_projects == 1
    assert summary.total_executions == 12
    assert summary.success_rate == 100.0
    assert len(summary.recent_executions) == 10
    assert summary.recent_executions[0].id == executions[0].id
