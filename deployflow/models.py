"""Core data models for deployflow projects, templates and run history."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_serializer,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .status import (
    ExecutionStatus,
    FailurePolicy,
    NotificationType,
    ProjectStatus,
    StepStatus,
    TriggerSource,
    execution_transition,
    project_transition,
    step_transition,
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_id() -> str:
    return str(uuid.uuid4())


def _coerce_commands(value: Any) -> Any:
    """Allow bare command strings wherever a command list is expected."""
    if isinstance(value, list):
        return [{"command": item} if isinstance(item, str) else item for item in value]
    return value


class DeploymentConfig(BaseModel):
    """Project configuration record.

    Recognized keys may be given in snake_case or camelCase. Anything else is
    kept in ``extra`` and written back out unchanged.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    platform: str = "vercel"
    build_command: Optional[str] = "npm run build"
    install_command: Optional[str] = "npm install"
    dev_command: Optional[str] = "npm run dev"
    output_directory: Optional[str] = "dist"
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    domains: List[str] = Field(default_factory=list)
    enabled: bool = True
    extra: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def field_key(cls, key: str) -> Optional[str]:
        """Return the field name for ``key`` (snake or camel), if recognized."""
        for name, info in cls.model_fields.items():
            if name == "extra":
                continue
            if key == name or key == info.alias:
                return name
        return None

    @model_validator(mode="before")
    @classmethod
    def _collect_extra(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = dict(data.get("extra") or {})
        for key, value in data.items():
            if key == "extra":
                continue
            name = cls.field_key(key)
            if name is None:
                extra[key] = value
            else:
                known[name] = value
        known["extra"] = extra
        return known

    @model_serializer(mode="wrap")
    def _flatten_extra(self, handler):
        data = handler(self)
        extra = data.pop("extra", None) or {}
        return {**extra, **data}

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


def merge_config(
    base: DeploymentConfig, overrides: Optional[Mapping[str, Any]]
) -> DeploymentConfig:
    """Shallow merge: override keys win and replace nested values wholesale."""
    merged = base.as_dict()
    for key, value in (overrides or {}).items():
        merged[DeploymentConfig.field_key(key) or key] = value
    return DeploymentConfig.model_validate(merged)


class CommandSpec(BaseModel):
    """A single shell command belonging to a step."""

    command: str
    description: str = ""
    working_directory: Optional[str] = None
    timeout: Optional[float] = None
    retries: int = Field(default=0, ge=0)
    environment: Dict[str, str] = Field(default_factory=dict)


class ValidationSpec(BaseModel):
    """Post-hoc check run after all of a step's commands succeed."""

    type: Literal["url", "api", "file", "command"]
    target: str
    expected_result: Optional[str] = None
    timeout: float = 30.0


class StepBlueprint(BaseModel):
    """Template-side description of a step.

    ``dependencies`` hold blueprint labels, not step ids. A blueprint's label
    is its ``key`` or, when no key is given, its ``type``.
    """

    key: Optional[str] = None
    title: str
    description: str = ""
    type: str = "setup"
    order: int = 0
    dependencies: List[str] = Field(default_factory=list)
    commands: List[CommandSpec] = Field(default_factory=list)
    rollback_commands: List[CommandSpec] = Field(default_factory=list)
    validation: Optional[ValidationSpec] = None
    failure_policy: FailurePolicy = FailurePolicy.STOP

    @field_validator("commands", "rollback_commands", mode="before")
    @classmethod
    def _coerce_command_strings(cls, value: Any) -> Any:
        return _coerce_commands(value)

    @property
    def label(self) -> str:
        return self.key or self.type


class Step(BaseModel):
    """One unit of orchestrated work inside a project."""

    id: str = Field(default_factory=generate_id)
    title: str
    description: str = ""
    type: str = "setup"
    order: int = 0
    dependencies: List[str] = Field(default_factory=list)
    status: StepStatus = StepStatus.PENDING
    commands: List[CommandSpec] = Field(default_factory=list)
    rollback_commands: List[CommandSpec] = Field(default_factory=list)
    validation: Optional[ValidationSpec] = None
    failure_policy: FailurePolicy = FailurePolicy.STOP
    logs: List[str] = Field(default_factory=list)
    duration_ms: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    @field_validator("commands", "rollback_commands", mode="before")
    @classmethod
    def _coerce_command_strings(cls, value: Any) -> Any:
        return _coerce_commands(value)

    def set_status(self, target: StepStatus) -> None:
        self.status = step_transition(self.status, target)

    def log(self, line: str) -> None:
        self.logs.append(line)

    def reset(self) -> None:
        """Prepare a terminal step for a fresh run."""
        self.set_status(StepStatus.PENDING)
        self.logs = []
        self.duration_ms = None
        self.started_at = None
        self.completed_at = None
        self.error = None


class Project(BaseModel):
    """The unit of orchestration: a named, ordered graph of steps."""

    id: str = Field(default_factory=generate_id)
    name: str
    description: str = ""
    type: str = "web"
    framework: str = ""
    language: str = ""
    status: ProjectStatus = ProjectStatus.PLANNING
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    config: DeploymentConfig = Field(default_factory=DeploymentConfig)
    steps: List[Step] = Field(default_factory=list)
    template_id: Optional[str] = None

    @model_validator(mode="after")
    def _check_timestamps(self) -> "Project":
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not precede created_at")
        return self

    def touch(self) -> None:
        self.updated_at = max(utc_now(), self.created_at)

    def set_status(self, target: ProjectStatus) -> None:
        self.status = project_transition(self.status, target)
        self.touch()

    def get_step(self, step_id: str) -> Optional[Step]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


class Template(BaseModel):
    """Reusable project blueprint. Never mutated by instantiation."""

    id: str = Field(default_factory=generate_id)
    name: str
    description: str = ""
    category: str = ""
    framework: str = ""
    language: str = ""
    difficulty: Literal["beginner", "intermediate", "advanced"] = "beginner"
    estimated_time: int = Field(default=0, description="Minutes")
    config: Dict[str, Any] = Field(default_factory=dict)
    steps: List[StepBlueprint] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    features: List[str] = Field(default_factory=list)


class Execution(BaseModel):
    """Historical record of one project run."""

    id: str = Field(default_factory=generate_id)
    project_id: str
    trigger: TriggerSource = TriggerSource.MANUAL
    status: ExecutionStatus = ExecutionStatus.RUNNING
    started_at: datetime = Field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    failed_step_id: Optional[str] = None

    def finish(
        self,
        status: ExecutionStatus,
        error: Optional[str] = None,
        failed_step_id: Optional[str] = None,
        finished_at: Optional[datetime] = None,
    ) -> None:
        self.status = execution_transition(self.status, status)
        self.finished_at = finished_at or utc_now()
        self.duration_ms = max(
            0, int((self.finished_at - self.started_at).total_seconds() * 1000)
        )
        self.error = error
        self.failed_step_id = failed_step_id


class Notification(BaseModel):
    """Record emitted on terminal run transitions."""

    id: str = Field(default_factory=generate_id)
    type: NotificationType
    title: str
    message: str
    project_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)
    read: bool = False
