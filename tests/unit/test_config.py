"""Tests for configuration loading and the component factories."""

import pytest

from deployflow.config import load_config
from deployflow.context import AppContext
from deployflow.compensation import CommandCompensator, NoopCompensator
from deployflow.notifications import (
    InMemoryNotificationSink,
    LoggingNotificationSink,
    WebhookNotificationSink,
    get_sink,
)
from deployflow.persistence import InMemoryEntityStore, JsonFileEntityStore
from deployflow.runners import FakeCommandRunner, SubprocessCommandRunner, get_runner


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.delenv("DEPLOYFLOW_CONFIG", raising=False)
    monkeypatch.delenv("DEPLOYFLOW_STORE_URL", raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults_without_config_file():
    config = load_config()
    assert config.store_url == "file://.deployflow"
    assert config.runner.backend == "subprocess"
    assert config.orchestrator.parallel is False
    assert config.advisor.max_average_duration_ms == 30000


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
store_url: sqlite://state.db
runner:
  backend: fake
orchestrator:
  parallel: true
notifications:
  sink: webhook
  webhook_url: https://hooks.example.com/x
advisor:
  min_success_rate: 75
"""
    )
    monkeypatch.setenv("DEPLOYFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.store_url == "sqlite://state.db"
    assert config.runner.backend == "fake"
    assert config.orchestrator.parallel is True
    assert config.notifications.webhook_url == "https://hooks.example.com/x"
    assert config.advisor.min_success_rate == 75


def test_store_url_env_override(tmp_path, monkeypatch):
    (tmp_path / "deployflow.yaml").write_text("store_url: sqlite://state.db\n")
    monkeypatch.setenv("DEPLOYFLOW_STORE_URL", "memory://")
    assert load_config().store_url == "memory://"


def test_factories_follow_config(tmp_path):
    (tmp_path / "deployflow.yaml").write_text(
        "runner:\n  backend: fake\nnotifications:\n  sink: memory\n"
    )
    config = load_config()
    assert isinstance(get_runner(config=config), FakeCommandRunner)
    assert isinstance(get_runner("subprocess", config=config), SubprocessCommandRunner)
    assert isinstance(get_sink(config=config), InMemoryNotificationSink)
    assert isinstance(get_sink("log", config=config), LoggingNotificationSink)
    with pytest.raises(ValueError):
        get_runner("docker", config=config)


def test_webhook_sink_requires_url():
    config = load_config()
    with pytest.raises(ValueError):
        get_sink("webhook", config=config)
    config.notifications.webhook_url = "https://hooks.example.com/x"
    assert isinstance(get_sink("webhook", config=config), WebhookNotificationSink)


def test_context_wires_components_from_config():
    ctx = AppContext.from_config(load_config())
    assert isinstance(ctx.store, JsonFileEntityStore)
    assert isinstance(ctx.runner, SubprocessCommandRunner)
    assert isinstance(ctx.orchestrator._compensator, CommandCompensator)

    config = load_config()
    config.store_url = "memory://"
    config.orchestrator.rollback = "none"
    ctx = AppContext.from_config(config, runner=FakeCommandRunner())
    assert isinstance(ctx.store, InMemoryEntityStore)
    assert isinstance(ctx.runner, FakeCommandRunner)
    assert isinstance(ctx.orchestrator._compensator, NoopCompensator)
