"""Template engine: turns reusable templates into runnable projects."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Union

import yaml
from pydantic import ValidationError

from . import resolver
from .errors import NotFoundError, TemplateValidationError
from .models import (
    DeploymentConfig,
    Project,
    Step,
    StepBlueprint,
    Template,
    generate_id,
    merge_config,
)
from .persistence import EntityRepository
from .status import TriggerSource

if TYPE_CHECKING:
    from .orchestrator import Orchestrator

logger = logging.getLogger(__name__)

BlueprintLike = Union[StepBlueprint, Mapping[str, Any]]


def build_steps(blueprints: Sequence[BlueprintLike]) -> List[Step]:
    """Materialize blueprints into steps with fresh ids.

    Dependency labels are remapped to the generated step ids. Steps without
    prerequisites start ``available``, all others ``locked``.

    Raises:
        TemplateValidationError: On duplicate or unknown labels.
        CyclicDependencyError: If the dependencies form a cycle.
    """
    parsed = [
        bp if isinstance(bp, StepBlueprint) else StepBlueprint.model_validate(bp)
        for bp in blueprints
    ]

    ids: Dict[str, str] = {}
    for bp in parsed:
        if bp.label in ids:
            raise TemplateValidationError(
                f"Duplicate step label '{bp.label}'; give blueprints distinct keys"
            )
        ids[bp.label] = generate_id()

    steps: List[Step] = []
    for bp in parsed:
        unknown = [label for label in bp.dependencies if label not in ids]
        if unknown:
            raise TemplateValidationError(
                f"Step '{bp.title}' depends on unknown labels {unknown}"
            )
        data = bp.model_dump(exclude={"key"})
        data["id"] = ids[bp.label]
        data["dependencies"] = [ids[label] for label in bp.dependencies]
        steps.append(Step.model_validate(data))

    resolver.ensure_acyclic(steps)
    resolver.initialize(steps)
    return steps


def validate_template(template: Template) -> None:
    """Check that ``template`` can be instantiated without creating anything."""
    missing = [name for name in ("id", "name") if not getattr(template, name)]
    if missing:
        raise TemplateValidationError(f"Template is missing required fields: {missing}")
    build_steps(template.steps)


def export_template(template: Template, fmt: str = "json") -> str:
    """Serialize a template as a self-contained JSON or YAML document."""
    data = template.model_dump(mode="json")
    if fmt == "json":
        return json.dumps(data, indent=2)
    if fmt == "yaml":
        return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
    raise ValueError(f"Unsupported export format: {fmt}")


def import_template(text: str) -> Template:
    """Parse and validate a template document (JSON or YAML)."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise TemplateValidationError(f"Template document is not valid: {e}") from e
    if not isinstance(data, dict):
        raise TemplateValidationError("Template document must be a mapping")
    try:
        template = Template.model_validate(data)
    except ValidationError as e:
        raise TemplateValidationError(str(e)) from e
    validate_template(template)
    return template


class TemplateEngine:
    """Registers templates and instantiates projects from them."""

    def __init__(
        self,
        repository: EntityRepository,
        orchestrator: Optional["Orchestrator"] = None,
    ) -> None:
        self._repository = repository
        self._orchestrator = orchestrator

    def list_templates(
        self, framework: Optional[str] = None, category: Optional[str] = None
    ) -> List[Template]:
        templates = self._repository.list_templates()
        if framework:
            templates = [t for t in templates if t.framework.lower() == framework.lower()]
        if category:
            templates = [t for t in templates if t.category == category]
        return templates

    def get_template(self, template_id: str) -> Template:
        template = self._repository.get_template(template_id)
        if template is None:
            raise NotFoundError(f"Template {template_id} not found")
        return template

    def register(self, template: Template) -> Template:
        """Validate and store a template, replacing one with the same id."""
        validate_template(template)
        self._repository.save_template(template)
        logger.info(f"Registered template {template.id}")
        return template

    async def instantiate(
        self, template_id: str, overrides: Optional[Mapping[str, Any]] = None
    ) -> Project:
        """Create a project from a template.

        ``overrides`` may carry project fields (``name``, ``description``,
        ``type``, ``framework``, ``language``) and a ``config`` mapping that is
        shallow-merged over the template's default configuration.
        """
        template = self.get_template(template_id).model_copy(deep=True)
        overrides = dict(overrides or {})
        config_overrides = overrides.pop("config", None) or {}

        base = merge_config(DeploymentConfig(), template.config)
        project_fields = {
            "name": template.name,
            "description": template.description,
            "type": template.category or "web",
            "framework": template.framework,
            "language": template.language,
        }
        project_fields.update(overrides)
        return await self.create_project(
            template.steps,
            config=merge_config(base, config_overrides),
            template_id=template.id,
            **project_fields,
        )

    async def create_project(
        self,
        blueprints: Sequence[BlueprintLike],
        config: Optional[DeploymentConfig] = None,
        **fields: Any,
    ) -> Project:
        """Create and store a project from inline step blueprints.

        Validation happens before anything is written. A project without
        steps is completed immediately.
        """
        steps = build_steps(blueprints)
        try:
            project = Project(
                config=config or DeploymentConfig(), steps=steps, **fields
            )
        except ValidationError as e:
            raise TemplateValidationError(str(e)) from e

        self._repository.save_project(project)
        logger.info(
            f"Created project {project.name} ({project.id}) with {len(steps)} steps"
        )
        if not steps and self._orchestrator is not None:
            await self._orchestrator.finalize_empty(project, TriggerSource.MANUAL)
        return project
