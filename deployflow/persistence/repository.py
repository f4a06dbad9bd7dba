"""Typed read-modify-write access to entity collections."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..builtin_templates import builtin_templates
from ..errors import NotFoundError
from ..models import Execution, Notification, Project, Template
from ..status import EntityKind
from .store import EntityStore

logger = logging.getLogger(__name__)


class EntityRepository:
    """Entity-level operations on top of an :class:`EntityStore`.

    Every write loads the current collection, applies the change and saves
    the complete collection back, so the store stays the only authority on
    persisted state. Steps are stored embedded in their project record.
    """

    def __init__(
        self,
        store: EntityStore,
        seed_templates: Optional[Callable[[], List[Template]]] = builtin_templates,
    ) -> None:
        self.store = store
        self._seed_templates = seed_templates

    # ------------------------------------------------------------------
    # Projects
    def list_projects(self) -> List[Project]:
        return list(self.store.load(EntityKind.PROJECTS))

    def get_project(self, project_id: str) -> Optional[Project]:
        for project in self.list_projects():
            if project.id == project_id:
                return project
        return None

    def require_project(self, project_id: str) -> Project:
        project = self.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    def save_project(self, project: Project) -> None:
        projects = self.list_projects()
        for i, existing in enumerate(projects):
            if existing.id == project.id:
                projects[i] = project
                break
        else:
            projects.append(project)
        self.store.save(EntityKind.PROJECTS, projects)

    def delete_project(self, project_id: str) -> bool:
        """Delete a project with its steps and execution history."""
        projects = self.list_projects()
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            return False
        self.store.save(EntityKind.PROJECTS, remaining)
        executions = self.store.load(EntityKind.EXECUTIONS)
        self.store.save(
            EntityKind.EXECUTIONS, [e for e in executions if e.project_id != project_id]
        )
        logger.info(f"Deleted project {project_id}")
        return True

    # ------------------------------------------------------------------
    # Templates
    def list_templates(self) -> List[Template]:
        """Return stored templates followed by built-ins not overridden by id."""
        stored: List[Template] = list(self.store.load(EntityKind.TEMPLATES))
        if self._seed_templates is None:
            return stored
        known = {t.id for t in stored}
        return stored + [t for t in self._seed_templates() if t.id not in known]

    def get_template(self, template_id: str) -> Optional[Template]:
        for template in self.list_templates():
            if template.id == template_id:
                return template
        return None

    def save_template(self, template: Template) -> None:
        templates: List[Template] = list(self.store.load(EntityKind.TEMPLATES))
        for i, existing in enumerate(templates):
            if existing.id == template.id:
                templates[i] = template
                break
        else:
            templates.append(template)
        self.store.save(EntityKind.TEMPLATES, templates)

    # ------------------------------------------------------------------
    # Executions
    def list_executions(self, project_id: Optional[str] = None) -> List[Execution]:
        """Return executions ordered by start time (stable for equal times)."""
        executions: List[Execution] = list(self.store.load(EntityKind.EXECUTIONS))
        if project_id is not None:
            executions = [e for e in executions if e.project_id == project_id]
        return sorted(executions, key=lambda e: e.started_at)

    def append_execution(self, execution: Execution) -> None:
        executions = list(self.store.load(EntityKind.EXECUTIONS))
        executions.append(execution)
        self.store.save(EntityKind.EXECUTIONS, executions)

    def save_execution(self, execution: Execution) -> None:
        executions: List[Execution] = list(self.store.load(EntityKind.EXECUTIONS))
        for i, existing in enumerate(executions):
            if existing.id == execution.id:
                executions[i] = execution
                break
        else:
            executions.append(execution)
        self.store.save(EntityKind.EXECUTIONS, executions)

    # ------------------------------------------------------------------
    # Notifications
    def list_notifications(self, unread_only: bool = False) -> List[Notification]:
        """Return notifications newest first."""
        notifications: List[Notification] = list(
            self.store.load(EntityKind.NOTIFICATIONS)
        )
        if unread_only:
            notifications = [n for n in notifications if not n.read]
        # stored in emission order; reversing keeps ties newest-first too
        return sorted(reversed(notifications), key=lambda n: n.timestamp, reverse=True)

    def add_notification(self, notification: Notification) -> None:
        notifications = list(self.store.load(EntityKind.NOTIFICATIONS))
        notifications.append(notification)
        self.store.save(EntityKind.NOTIFICATIONS, notifications)

    def mark_notification_read(self, notification_id: str) -> Notification:
        notifications: List[Notification] = list(
            self.store.load(EntityKind.NOTIFICATIONS)
        )
        for notification in notifications:
            if notification.id == notification_id:
                notification.read = True
                self.store.save(EntityKind.NOTIFICATIONS, notifications)
                return notification
        raise NotFoundError(f"Notification {notification_id} not found")
