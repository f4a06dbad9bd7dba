"""Wiring of the deployflow components for one process."""

from __future__ import annotations

import logging
from typing import List, Optional

from .advisor import Advisor, Suggestion
from .analytics import AnalyticsSnapshot, PlatformSummary, compute_analytics, summarize
from .compensation import CommandCompensator, Compensator, NoopCompensator
from .config import DeployflowConfig, load_config
from .executor import StepExecutor
from .notifications import NotificationSink, get_sink
from .orchestrator import Orchestrator
from .persistence import EntityRepository, EntityStore, get_store
from .runners import CommandRunner, get_runner
from .templates import TemplateEngine

logger = logging.getLogger(__name__)


class AppContext:
    """Holds every collaborator built from one configuration.

    Anything not passed in is built from ``config``.
    """

    def __init__(
        self,
        config: DeployflowConfig,
        store: Optional[EntityStore] = None,
        runner: Optional[CommandRunner] = None,
        sink: Optional[NotificationSink] = None,
        compensator: Optional[Compensator] = None,
    ) -> None:
        self.config = config
        self.store = store or get_store(config=config)
        self.repository = EntityRepository(self.store)
        self.runner = runner or get_runner(config=config)
        self.sink = sink or get_sink(config=config)
        if compensator is None:
            if config.orchestrator.rollback == "commands":
                compensator = CommandCompensator(self.runner)
            else:
                compensator = NoopCompensator()
        self.executor = StepExecutor(
            self.runner, retry_backoff_base=config.orchestrator.retry_backoff_base
        )
        self.orchestrator = Orchestrator(
            self.repository,
            self.executor,
            sink=self.sink,
            compensator=compensator,
            parallel=config.orchestrator.parallel,
        )
        self.templates = TemplateEngine(self.repository, self.orchestrator)
        self.advisor = Advisor(config.advisor)
        logger.debug(f"Context ready with store {config.store_url}")

    @classmethod
    def from_config(cls, config: Optional[DeployflowConfig] = None, **kwargs) -> "AppContext":
        return cls(config or load_config(), **kwargs)

    def analytics(self, project_id: str) -> AnalyticsSnapshot:
        self.repository.require_project(project_id)
        return compute_analytics(project_id, self.repository.list_executions(project_id))

    def summary(self) -> PlatformSummary:
        return summarize(self.repository.list_projects(), self.repository.list_executions())

    def advise(self, project_id: str) -> List[Suggestion]:
        project = self.repository.require_project(project_id)
        return self.advisor.analyze(project, self.analytics(project_id))

    def close(self) -> None:
        close = getattr(self.store, "close", None)
        if close is not None:
            close()
