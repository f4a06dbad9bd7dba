from __future__ import annotations

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

DEFAULT_STORE_URL = "file://.deployflow"


class RunnerConfig(BaseModel):
    """Configuration for the command runner."""

    backend: Literal["subprocess", "fake"] = "subprocess"
    shell: bool = True
    default_timeout: Optional[float] = 600.0
    working_directory: Optional[str] = None


class OrchestratorConfig(BaseModel):
    """Run loop settings."""

    parallel: bool = False
    retry_backoff_base: float = 1.5
    rollback: Literal["commands", "none"] = "commands"


class NotificationConfig(BaseModel):
    """Where terminal-run notifications are delivered."""

    sink: Literal["log", "memory", "webhook"] = "log"
    webhook_url: Optional[str] = None
    timeout: float = 10.0


class AdvisorConfig(BaseModel):
    """Thresholds used by the advisor rules."""

    max_average_duration_ms: float = 30000.0
    min_success_rate: float = 90.0
    secret_markers: List[str] = Field(
        default_factory=lambda: ["password", "token", "key", "secret"]
    )


class DeployflowConfig(BaseModel):
    """Top-level configuration model."""

    store_url: str = DEFAULT_STORE_URL
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    advisor: AdvisorConfig = Field(default_factory=AdvisorConfig)


def load_config(path: Optional[str] = None) -> DeployflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to DEPLOYFLOW_CONFIG env
            variable or 'deployflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("DEPLOYFLOW_CONFIG", "deployflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = DeployflowConfig(**data)
    else:
        config = DeployflowConfig()

    env_store_url = os.getenv("DEPLOYFLOW_STORE_URL")
    if env_store_url:
        config.store_url = env_store_url
    return config
