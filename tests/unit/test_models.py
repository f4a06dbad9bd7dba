"""Tests for the core data models."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from deployflow.errors import InvalidStateError
from deployflow.models import (
    DeploymentConfig,
    Execution,
    Project,
    Step,
    StepBlueprint,
    merge_config,
    utc_now,
)
from deployflow.status import ExecutionStatus, StepStatus


def test_deployment_config_accepts_camel_and_snake_case():
    config = DeploymentConfig.model_validate(
        {"buildCommand": "make", "output_directory": "out", "environmentVariables": {"A": "1"}}
    )
    assert config.build_command == "make"
    assert config.output_directory == "out"
    assert config.environment_variables == {"A": "1"}
    assert config.platform == "vercel"


def test_unknown_config_keys_survive_round_trip():
    config = DeploymentConfig.model_validate({"platform": "fly", "region": "ams", "replicas": 3})
    assert config.extra == {"region": "ams", "replicas": 3}

    dumped = config.as_dict()
    assert dumped["region"] == "ams"
    assert "extra" not in dumped
    assert DeploymentConfig.model_validate(dumped).as_dict() == dumped


def test_merge_config_is_shallow():
    base = DeploymentConfig(environment_variables={"A": "1", "B": "2"}, domains=["a.com"])
    merged = merge_config(base, {"environmentVariables": {"C": "3"}, "region": "eu"})
    assert merged.environment_variables == {"C": "3"}
    assert merged.domains == ["a.com"]
    assert merged.extra == {"region": "eu"}
    assert base.environment_variables == {"A": "1", "B": "2"}


def test_bare_command_strings_are_coerced():
    bp = StepBlueprint(title="Build", commands=["npm ci", {"command": "npm test", "retries": 1}])
    assert [c.command for c in bp.commands] == ["npm ci", "npm test"]
    assert bp.commands[1].retries == 1
    assert bp.label == "setup"
    assert StepBlueprint(key="b1", title="Build").label == "b1"


def test_negative_retries_rejected():
    with pytest.raises(ValidationError):
        StepBlueprint(title="x", commands=[{"command": "a", "retries": -1}])


def test_project_timestamps_must_be_ordered():
    now = utc_now()
    with pytest.raises(ValidationError):
        Project(name="p", created_at=now, updated_at=now - timedelta(seconds=1))


def test_step_reset_clears_run_data():
    step = Step(title="A", status=StepStatus.FAILED, logs=["x"], error="boom", duration_ms=5)
    step.reset()
    assert step.status is StepStatus.PENDING
    assert step.logs == []
    assert step.error is None
    assert step.duration_ms is None


def test_step_rejects_illegal_status_change():
    step = Step(title="A", status=StepStatus.LOCKED)
    with pytest.raises(InvalidStateError):
        step.set_status(StepStatus.RUNNING)
    assert step.status is StepStatus.LOCKED


def test_execution_finish_records_duration():
    start = utc_now()
    execution = Execution(project_id="p", started_at=start)
    execution.finish(ExecutionStatus.FAILED, error="bad", finished_at=start + timedelta(seconds=2))
    assert execution.duration_ms == 2000
    assert execution.error == "bad"
    with pytest.raises(InvalidStateError):
        execution.finish(ExecutionStatus.COMPLETED)
