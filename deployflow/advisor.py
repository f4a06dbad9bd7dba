"""Rule-based improvement suggestions for projects."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, List, Literal, Optional

from pydantic import BaseModel, Field

from .analytics import AnalyticsSnapshot
from .config import AdvisorConfig
from .models import Project, Step
from .status import StepStatus

logger = logging.getLogger(__name__)

Category = Literal[
    "performance", "optimization", "automation", "structure", "integration", "security"
]


class SuggestedChange(BaseModel):
    type: Literal["add_step", "modify_step", "add_integration", "modify_config"]
    description: str
    before: Optional[Any] = None
    after: Optional[Any] = None
    reasoning: str = ""


class EstimatedImpact(BaseModel):
    """Relative impact estimates in percent; negative cost means cheaper."""

    efficiency: int = 0
    reliability: int = 0
    cost: int = 0


class Suggestion(BaseModel):
    id: str
    title: str
    description: str
    category: Category
    confidence: float = Field(ge=0.0, le=1.0)
    changes: List[SuggestedChange] = Field(default_factory=list)
    impact: EstimatedImpact = Field(default_factory=EstimatedImpact)
    complexity: Literal["low", "medium", "high"] = "low"


Rule = Callable[[Project, Optional[AnalyticsSnapshot]], List[Suggestion]]

_NOTIFICATION_TYPES = ("notification", "notify")
_VERIFY_TYPES = ("verify", "test", "validation")
_SECRET_REFERENCE_PREFIXES = ("$", "@")


def _names_marker(name: str, markers: List[str]) -> bool:
    """Match markers against whole underscore-separated words of ``name``."""
    words = "_" + "_".join(w for w in re.split(r"[^a-z0-9]+", name.lower()) if w) + "_"
    return any(f"_{m}_" in words for m in markers)


def _commands_mention(project: Project, needle: str) -> bool:
    for step in project.steps:
        for command in step.commands:
            if needle in command.command:
                return True
    return any(needle in str(value) for value in project.config.extra.values())


class Advisor:
    """Inspect a project and its analytics and suggest improvements.

    The advisor never modifies the project it is given. Suggestions are
    ordered by descending confidence; rules that tie keep their rule order.
    """

    def __init__(self, config: Optional[AdvisorConfig] = None) -> None:
        self.config = config or AdvisorConfig()
        self._rules: List[Rule] = [
            self._performance,
            self._reliability,
            self._completion_notification,
            self._verification,
            self._chat_integration,
            self._source_integration,
            self._plaintext_secrets,
        ]

    def analyze(
        self, project: Project, analytics: Optional[AnalyticsSnapshot] = None
    ) -> List[Suggestion]:
        suggestions: List[Suggestion] = []
        for rule in self._rules:
            suggestions.extend(rule(project, analytics))
        logger.debug(f"Advisor produced {len(suggestions)} suggestions for {project.id}")
        return sorted(suggestions, key=lambda s: s.confidence, reverse=True)

    # ------------------------------------------------------------------
    # Performance
    def _performance(self, project, analytics):
        if not analytics or not analytics.count:
            return []
        if analytics.average_duration <= self.config.max_average_duration_ms:
            return []
        return [
            Suggestion(
                id=f"perf-{project.id}-1",
                title="Reduce run time",
                description=(
                    f"Runs take {analytics.average_duration / 1000:.1f}s on average; "
                    "run independent steps in parallel or reorder them"
                ),
                category="performance",
                confidence=0.8,
                changes=[
                    SuggestedChange(
                        type="modify_config",
                        description="Enable parallel execution of independent steps",
                        before={"parallel": False},
                        after={"parallel": True},
                        reasoning="Independent steps no longer wait for each other",
                    )
                ],
                impact=EstimatedImpact(efficiency=40, cost=-10),
                complexity="medium",
            )
        ]

    def _reliability(self, project, analytics):
        if not analytics or not analytics.count:
            return []
        if analytics.success_rate >= self.config.min_success_rate:
            return []
        failing = [s.title for s in project.steps if s.status is StepStatus.FAILED]
        return [
            Suggestion(
                id=f"perf-{project.id}-2",
                title="Improve success rate",
                description=(
                    f"Only {analytics.success_rate:.0f}% of runs succeed; add retries "
                    "and error handling to fragile steps"
                ),
                category="optimization",
                confidence=0.9,
                changes=[
                    SuggestedChange(
                        type="modify_step",
                        description="Retry failing commands and continue past optional steps",
                        before=failing or None,
                        after={"retries": 2, "failure_policy": "continue"},
                        reasoning="Transient failures stop failing the whole run",
                    )
                ],
                impact=EstimatedImpact(efficiency=20, reliability=50, cost=5),
                complexity="low",
            )
        ]

    # ------------------------------------------------------------------
    # Structure
    def _completion_notification(self, project, analytics):
        if len(project.steps) <= 2:
            return []
        if any(s.type in _NOTIFICATION_TYPES for s in project.steps):
            return []
        last = max(project.steps, key=lambda s: s.order)
        return [
            Suggestion(
                id=f"struct-{project.id}-1",
                title="Add a completion notification",
                description="Notify the team when the deployment finishes",
                category="automation",
                confidence=0.7,
                changes=[
                    SuggestedChange(
                        type="add_step",
                        description="Append a notification step after the last step",
                        after={
                            "title": "Notify completion",
                            "type": "notification",
                            "order": last.order + 1,
                            "dependencies": [last.id],
                        },
                        reasoning="Run outcomes are visible without polling",
                    )
                ],
                impact=EstimatedImpact(efficiency=10, reliability=20, cost=2),
                complexity="low",
            )
        ]

    def _verification(self, project, analytics):
        unverified: List[Step] = []
        for step in project.steps:
            if step.type != "deploy" or step.validation is not None:
                continue
            followed = any(
                step.id in other.dependencies and other.type in _VERIFY_TYPES
                for other in project.steps
            )
            if not followed:
                unverified.append(step)
        if not unverified:
            return []
        return [
            Suggestion(
                id=f"struct-{project.id}-2",
                title="Verify deployments",
                description="Deploy steps finish without checking the result",
                category="structure",
                confidence=0.6,
                changes=[
                    SuggestedChange(
                        type="add_step",
                        description=f"Add a verify step after '{step.title}'",
                        before=step.title,
                        after={
                            "title": f"Verify {step.title}",
                            "type": "verify",
                            "order": step.order + 1,
                            "dependencies": [step.id],
                        },
                        reasoning="A broken release is caught by the run instead of users",
                    )
                    for step in unverified
                ],
                impact=EstimatedImpact(efficiency=25, reliability=10),
                complexity="medium",
            )
        ]

    # ------------------------------------------------------------------
    # Integration
    def _chat_integration(self, project, analytics):
        if not any(s.type in _NOTIFICATION_TYPES for s in project.steps):
            return []
        if _commands_mention(project, "hooks.slack.com"):
            return []
        return [
            Suggestion(
                id=f"integration-{project.id}-1",
                title="Send notifications to chat",
                description="Route notification steps to a team chat webhook",
                category="integration",
                confidence=0.8,
                changes=[
                    SuggestedChange(
                        type="add_integration",
                        description="Configure a Slack incoming webhook",
                        after="notifications.sink: webhook",
                        reasoning="Deployment news reaches the whole team",
                    )
                ],
                impact=EstimatedImpact(efficiency=30, reliability=15, cost=5),
                complexity="low",
            )
        ]

    def _source_integration(self, project, analytics):
        if project.type != "development" and "deploy" not in project.name.lower():
            return []
        if _commands_mention(project, "github.com"):
            return []
        return [
            Suggestion(
                id=f"integration-{project.id}-2",
                title="Connect the source repository",
                description="Trigger runs from repository events",
                category="integration",
                confidence=0.9,
                changes=[
                    SuggestedChange(
                        type="add_integration",
                        description="Start runs from GitHub push events",
                        after={"trigger": "event"},
                        reasoning="Releases follow merges without manual runs",
                    )
                ],
                impact=EstimatedImpact(efficiency=40, reliability=20, cost=10),
                complexity="medium",
            )
        ]

    # ------------------------------------------------------------------
    # Security
    def _plaintext_secrets(self, project, analytics):
        markers = [m.lower() for m in self.config.secret_markers]
        exposed = sorted(
            name
            for name, value in project.config.environment_variables.items()
            if value
            and not str(value).startswith(_SECRET_REFERENCE_PREFIXES)
            and _names_marker(name, markers)
        )
        if not exposed:
            return []
        return [
            Suggestion(
                id=f"security-{project.id}-1",
                title="Protect secrets",
                description=f"Plaintext secret-like variables: {', '.join(exposed)}",
                category="security",
                confidence=0.95,
                changes=[
                    SuggestedChange(
                        type="modify_config",
                        description="Replace plaintext values with secret references",
                        before=exposed,
                        after={name: f"@{name.lower()}" for name in exposed},
                        reasoning="Credentials stay out of stored project records",
                    )
                ],
                impact=EstimatedImpact(reliability=30),
                complexity="low",
            )
        ]
