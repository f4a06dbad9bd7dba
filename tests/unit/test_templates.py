"""Tests for the template engine."""

import pytest

from deployflow.errors import CyclicDependencyError, NotFoundError, TemplateValidationError
from deployflow.executor import StepExecutor
from deployflow.models import Template
from deployflow.orchestrator import Orchestrator
from deployflow.persistence import EntityRepository, InMemoryEntityStore
from deployflow.runners import FakeCommandRunner
from deployflow.status import ProjectStatus, StepStatus
from deployflow.templates import (
    TemplateEngine,
    build_steps,
    export_template,
    import_template,
)


def _engine(seeds=True):
    repo = EntityRepository(InMemoryEntityStore()) if seeds else EntityRepository(
        InMemoryEntityStore(), seed_templates=None
    )
    orchestrator = Orchestrator(repo, StepExecutor(FakeCommandRunner()))
    return repo, TemplateEngine(repo, orchestrator)


def _cyclic_template():
    return Template(
        id="loop",
        name="Loop",
        steps=[
            {"key": "a", "title": "A", "dependencies": ["b"]},
            {"key": "b", "title": "B", "dependencies": ["a"]},
        ],
    )


@pytest.mark.asyncio
async def test_instantiate_remaps_labels_to_new_step_ids():
    repo, engine = _engine()
    project = await engine.instantiate("next-vercel")

    setup, build, deploy = sorted(project.steps, key=lambda s: s.order)
    assert build.dependencies == [setup.id]
    assert deploy.dependencies == [build.id]
    assert setup.id not in ("setup", "build", "deploy")
    assert [setup.status, build.status, deploy.status] == [
        StepStatus.AVAILABLE,
        StepStatus.LOCKED,
        StepStatus.LOCKED,
    ]
    assert project.status is ProjectStatus.PLANNING
    assert project.template_id == "next-vercel"
    assert repo.require_project(project.id).steps[1].id == build.id


@pytest.mark.asyncio
async def test_instantiating_twice_gives_independent_projects():
    repo, engine = _engine()
    first = await engine.instantiate("react-netlify")
    second = await engine.instantiate("react-netlify")

    assert first.id != second.id
    assert not {s.id for s in first.steps} & {s.id for s in second.steps}
    template = engine.get_template("react-netlify")
    assert template.steps[1].dependencies == ["setup"]


@pytest.mark.asyncio
async def test_overrides_win_and_replace_nested_values():
    repo, engine = _engine(seeds=False)
    engine.register(
        Template(
            id="api",
            name="API",
            framework="FastAPI",
            config={"platform": "fly", "environmentVariables": {"A": "1", "B": "2"}, "region": "ams"},
            steps=[{"title": "Deploy", "type": "deploy", "commands": ["fly deploy"]}],
        )
    )

    project = await engine.instantiate(
        "api",
        {"name": "billing-api", "config": {"environmentVariables": {"C": "3"}, "outputDirectory": "out"}},
    )

    assert project.name == "billing-api"
    assert project.framework == "FastAPI"
    assert project.config.platform == "fly"
    assert project.config.environment_variables == {"C": "3"}
    assert project.config.output_directory == "out"
    assert project.config.extra == {"region": "ams"}
    assert project.config.build_command == "npm run build"


def test_cyclic_template_is_rejected_before_storage():
    repo, engine = _engine(seeds=False)
    with pytest.raises(CyclicDependencyError):
        engine.register(_cyclic_template())
    assert repo.list_templates() == []


@pytest.mark.asyncio
async def test_cyclic_blueprints_never_create_a_project():
    repo, engine = _engine(seeds=False)
    with pytest.raises(TemplateValidationError):
        await engine.create_project(_cyclic_template().steps, name="loop")
    assert repo.list_projects() == []


def test_unknown_and_duplicate_labels_are_rejected():
    with pytest.raises(TemplateValidationError, match="unknown labels"):
        build_steps([{"title": "Build", "type": "build", "dependencies": ["install"]}])
    with pytest.raises(TemplateValidationError, match="Duplicate"):
        build_steps([{"title": "One"}, {"title": "Two"}])


@pytest.mark.asyncio
async def test_unknown_template_raises_not_found():
    repo, engine = _engine()
    with pytest.raises(NotFoundError):
        await engine.instantiate("does-not-exist")


def test_list_templates_filters():
    repo, engine = _engine()
    assert [t.id for t in engine.list_templates(framework="react")] == ["react-netlify"]
    assert [t.id for t in engine.list_templates(category="container")] == ["docker-kubernetes"]


@pytest.mark.parametrize("fmt", ["json", "yaml"])
def test_exported_template_imports_unchanged(fmt):
    repo, engine = _engine()
    template = engine.get_template("docker-kubernetes")
    imported = import_template(export_template(template, fmt))
    assert imported.model_dump() == template.model_dump()


def test_import_rejects_malformed_documents():
    with pytest.raises(TemplateValidationError):
        import_template("- just\n- a list\n")
    with pytest.raises(TemplateValidationError):
        import_template("steps: [")
    with pytest.raises(TemplateValidationError):
        import_template("id: x\nsteps: []\n")


def test_export_rejects_unknown_format():
    repo, engine = _engine()
    with pytest.raises(ValueError):
        export_template(engine.get_template("next-vercel"), "toml")
