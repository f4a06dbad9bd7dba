"""Command line interface for deployflow."""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from deployflow.config import load_config
from deployflow.context import AppContext
from deployflow.errors import DeployflowError
from deployflow.status import ExecutionStatus, TriggerSource
from deployflow.templates import export_template, import_template

app = typer.Typer(help="CLI for deployflow projects")

# Command groups
template_app = typer.Typer(help="Commands for managing templates")
project_app = typer.Typer(help="Commands for managing and running projects")
analytics_app = typer.Typer(help="Run statistics")
notifications_app = typer.Typer(help="Commands for reading notifications")

app.add_typer(template_app, name="template")
app.add_typer(project_app, name="project")
app.add_typer(analytics_app, name="analytics")
app.add_typer(notifications_app, name="notifications")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to a deployflow.yaml file"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """deployflow CLI entry point."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = str(config) if config else None


@contextmanager
def _context(ctx: typer.Context) -> Iterator[AppContext]:
    app_ctx = AppContext.from_config(load_config(ctx.obj))
    try:
        yield app_ctx
    finally:
        app_ctx.close()


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _parse_pairs(pairs: List[str]) -> dict:
    parsed = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            _fail(f"Expected KEY=VALUE, got '{pair}'")
        parsed[key] = value
    return parsed


# ----------------------------------------------------------------------
# Templates


@template_app.command("list")
def template_list(
    ctx: typer.Context,
    framework: Optional[str] = typer.Option(None, help="Only this framework"),
    category: Optional[str] = typer.Option(None, help="Only this category"),
) -> None:
    """List available templates, built-in and imported."""
    with _context(ctx) as app_ctx:
        templates = app_ctx.templates.list_templates(framework=framework, category=category)
    if not templates:
        typer.echo("No templates found")
        return
    for template in templates:
        typer.echo(
            f"{template.id}\t{template.name}\t{template.framework}\t{len(template.steps)} steps"
        )


@template_app.command("show")
def template_show(ctx: typer.Context, template_id: str) -> None:
    """Show a template and its step blueprints."""
    with _context(ctx) as app_ctx:
        try:
            template = app_ctx.templates.get_template(template_id)
        except DeployflowError as e:
            _fail(str(e))
    typer.echo(f"Template {template.id}: {template.name}")
    if template.description:
        typer.echo(template.description)
    for bp in sorted(template.steps, key=lambda b: b.order):
        deps = f" (after {', '.join(bp.dependencies)})" if bp.dependencies else ""
        typer.echo(f"- [{bp.label}] {bp.title}{deps}")


@template_app.command("export")
def template_export(
    ctx: typer.Context,
    template_id: str,
    fmt: str = typer.Option("json", "--format", "-f", help="json or yaml"),
    output: Optional[Path] = typer.Option(None, "--output", "-o"),
) -> None:
    """Write a template as a JSON or YAML document."""
    with _context(ctx) as app_ctx:
        try:
            text = export_template(app_ctx.templates.get_template(template_id), fmt)
        except (DeployflowError, ValueError) as e:
            _fail(str(e))
    if output is None:
        typer.echo(text)
    else:
        output.write_text(text)
        typer.echo(f"Exported {template_id} to {output}")


@template_app.command("import")
def template_import(ctx: typer.Context, path: Path) -> None:
    """Validate and register a template document."""
    if not path.exists():
        _fail("Specified path does not exist")
    with _context(ctx) as app_ctx:
        try:
            template = app_ctx.templates.register(import_template(path.read_text()))
        except DeployflowError as e:
            _fail(f"Invalid template: {e}")
    typer.echo(f"Imported template {template.id}")


# ----------------------------------------------------------------------
# Projects


@project_app.command("create")
def project_create(
    ctx: typer.Context,
    template_id: str,
    name: Optional[str] = typer.Option(None, help="Project name"),
    description: Optional[str] = typer.Option(None, help="Project description"),
    env: List[str] = typer.Option([], "--env", "-e", help="KEY=VALUE variable"),
    set_: List[str] = typer.Option([], "--set", help="KEY=VALUE config override"),
) -> None:
    """Create a project from a template."""
    overrides: dict = {}
    if name:
        overrides["name"] = name
    if description:
        overrides["description"] = description
    config = _parse_pairs(set_)
    if env:
        config["environmentVariables"] = _parse_pairs(env)
    if config:
        overrides["config"] = config

    with _context(ctx) as app_ctx:
        try:
            project = asyncio.run(app_ctx.templates.instantiate(template_id, overrides))
        except DeployflowError as e:
            _fail(str(e))
    typer.echo(f"Created project {project.id} ({project.name}) with {len(project.steps)} steps")


@project_app.command("list")
def project_list(ctx: typer.Context) -> None:
    """List projects with their status."""
    with _context(ctx) as app_ctx:
        projects = app_ctx.repository.list_projects()
    if not projects:
        typer.echo("No projects found")
        return
    for project in projects:
        typer.echo(f"{project.id}\t{project.name}\t{project.status.value}")


@project_app.command("show")
def project_show(
    ctx: typer.Context,
    project_id: str,
    logs: bool = typer.Option(False, help="Include step logs"),
) -> None:
    """Show a project with its steps in execution order."""
    with _context(ctx) as app_ctx:
        project = app_ctx.repository.get_project(project_id)
    if project is None:
        _fail("Project not found")
    typer.echo(f"Project {project.id}: {project.name} [{project.status.value}]")
    for step in sorted(project.steps, key=lambda s: s.order):
        duration = f" {step.duration_ms}ms" if step.duration_ms is not None else ""
        typer.echo(f"- {step.title}: {step.status.value}{duration}")
        if step.error:
            typer.echo(f"    error: {step.error}")
        if logs:
            for line in step.logs:
                typer.echo(f"    {line}")


@project_app.command("run")
def project_run(
    ctx: typer.Context,
    project_id: str,
    trigger: TriggerSource = typer.Option(TriggerSource.MANUAL, help="Recorded trigger"),
) -> None:
    """Run every step of a project and report the outcome."""
    with _context(ctx) as app_ctx:
        try:
            execution = asyncio.run(app_ctx.orchestrator.run(project_id, trigger))
        except DeployflowError as e:
            _fail(str(e))
        project = app_ctx.repository.require_project(project_id)

    typer.echo(
        f"Execution {execution.id}: {execution.status.value} in {execution.duration_ms}ms"
    )
    if execution.status is ExecutionStatus.COMPLETED:
        return
    if execution.error:
        typer.secho(execution.error, fg=typer.colors.RED)
    failed = project.get_step(execution.failed_step_id) if execution.failed_step_id else None
    if failed is not None:
        typer.echo(f"Failed step: {failed.title}")
        for line in failed.logs:
            typer.echo(f"    {line}")
    raise typer.Exit(code=1)


@project_app.command("delete")
def project_delete(ctx: typer.Context, project_id: str) -> None:
    """Delete a project and its run history."""
    with _context(ctx) as app_ctx:
        deleted = app_ctx.repository.delete_project(project_id)
    if not deleted:
        _fail("Project not found")
    typer.echo(f"Deleted project {project_id}")


# ----------------------------------------------------------------------
# Analytics and advice


@analytics_app.command("show")
def analytics_show(ctx: typer.Context, project_id: str) -> None:
    """Show run statistics of one project."""
    with _context(ctx) as app_ctx:
        try:
            snapshot = app_ctx.analytics(project_id)
        except DeployflowError as e:
            _fail(str(e))
    typer.echo(json.dumps(snapshot.model_dump(mode="json"), indent=2))


@analytics_app.command("summary")
def analytics_summary(ctx: typer.Context) -> None:
    """Show totals across all projects."""
    with _context(ctx) as app_ctx:
        summary = app_ctx.summary()
    typer.echo(f"Projects: {summary.total_projects} ({summary.active_projects} running)")
    typer.echo(f"Executions: {summary.total_executions}")
    typer.echo(f"Success rate: {summary.success_rate:.1f}%")
    typer.echo(f"Average duration: {summary.average_duration:.0f}ms")
    for execution in summary.recent_executions:
        typer.echo(
            f"- {execution.started_at.isoformat()} {execution.project_id} "
            f"{execution.status.value}"
        )


@app.command("advise")
def advise(ctx: typer.Context, project_id: str) -> None:
    """Suggest improvements for a project."""
    with _context(ctx) as app_ctx:
        try:
            suggestions = app_ctx.advise(project_id)
        except DeployflowError as e:
            _fail(str(e))
    if not suggestions:
        typer.echo("No suggestions")
        return
    for suggestion in suggestions:
        typer.echo(
            f"[{suggestion.confidence:.2f}] {suggestion.category}: {suggestion.title}"
        )
        typer.echo(f"    {suggestion.description}")


# ----------------------------------------------------------------------
# Notifications


@notifications_app.command("list")
def notifications_list(
    ctx: typer.Context,
    unread: bool = typer.Option(False, "--unread", help="Only unread notifications"),
) -> None:
    """List notifications, newest first."""
    with _context(ctx) as app_ctx:
        notifications = app_ctx.repository.list_notifications(unread_only=unread)
    if not notifications:
        typer.echo("No notifications")
        return
    for n in notifications:
        marker = " " if n.read else "*"
        typer.echo(f"{marker} {n.id}\t{n.type.value}\t{n.title}: {n.message}")


@notifications_app.command("read")
def notifications_read(ctx: typer.Context, notification_id: str) -> None:
    """Mark a notification as read."""
    with _context(ctx) as app_ctx:
        try:
            app_ctx.repository.mark_notification_read(notification_id)
        except DeployflowError as e:
            _fail(str(e))
    typer.echo(f"Marked {notification_id} as read")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
