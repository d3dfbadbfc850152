"""CLI entry point for repo-polisher."""

import asyncio
import json
import sys
import uuid
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

import click
import structlog

from repo_polisher.config.settings import PolisherSettings, load_settings
from repo_polisher.engine.checkout import CheckoutProvider
from repo_polisher.engine.coordinator import SubmissionCoordinator
from repo_polisher.engine.publisher import PullRequestPublisher
from repo_polisher.enums import DraftStatus, IssueStatus, ProjectSource, SubmitMethod
from repo_polisher.exceptions import ConfigurationError, PublishError, RepoPolisherError
from repo_polisher.git.discovery import GitDiscovery
from repo_polisher.git.exceptions import GitDiscoveryError
from repo_polisher.git.parser import parse_remote_url
from repo_polisher.hosting.auth import AuthChecker
from repo_polisher.hosting.gh_cli import GhCli
from repo_polisher.hosting.gh_env import GhEnvironment
from repo_polisher.models.domain import PRDraft, Project
from repo_polisher.store.json_store import JsonStore
from repo_polisher.utils.logging_config import configure_logging

log = structlog.get_logger(__name__)


@click.group()
@click.option(
    "--config",
    envvar="POLISHER_CONFIG",
    type=click.Path(dir_okay=False),
    help="Path to configuration file",
)
@click.option("--log-level", default=None, help="Logging level (overrides configuration)")
@click.pass_context
def cli(ctx: click.Context, config: str | None, log_level: str | None) -> None:
    """repo-polisher: Turn detected typos into pull requests."""
    try:
        settings = load_settings(config)
    except ConfigurationError as e:
        click.echo(f"Error: {e.message}", err=True)
        sys.exit(1)

    configure_logging(log_level or settings.log_level, json_output=settings.log_json)
    ctx.obj = {"settings": settings}


def _run(event: str, coro: Coroutine[Any, Any, None]) -> None:
    """Run a command coroutine with the shared error handling."""
    try:
        asyncio.run(coro)
    except RepoPolisherError as e:
        click.echo(f"Error: {e.message}", err=True)
        log.debug(f"{event}_error", exc_info=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        sys.exit(130)
    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        log.error(f"{event}_unexpected", exc_info=True)
        sys.exit(1)


def _create_gh(settings: PolisherSettings) -> GhCli:
    return GhCli(
        GhEnvironment.resolve(settings.gh),
        timeout=settings.publish.command_timeout,
        network_timeout=settings.publish.push_timeout,
    )


def _create_store(settings: PolisherSettings) -> JsonStore:
    return JsonStore(settings.store.data_dir)


def _create_coordinator(settings: PolisherSettings) -> SubmissionCoordinator:
    return SubmissionCoordinator(
        store=_create_store(settings),
        checkouts=CheckoutProvider(settings.checkout, settings.publish),
        publisher=PullRequestPublisher(_create_gh(settings), settings.publish),
        settings=settings,
    )


def _print_draft(draft: PRDraft, verbose: bool = False) -> None:
    click.echo(f"Draft {draft.id} [{draft.status}]")
    click.echo(f"  Title:  {draft.title}")
    click.echo(f"  Branch: {draft.branch} -> {draft.base_branch}")
    click.echo(f"  Issues: {len(draft.issue_ids)}")
    if draft.pr_url:
        click.echo(f"  PR:     {draft.pr_url}")
    if verbose:
        for pr_file in draft.files:
            click.echo(f"    {pr_file.path} (+{pr_file.additions} -{pr_file.deletions})")
        click.echo("")
        click.echo(draft.body)


# Projects


@cli.group()
def project() -> None:
    """Register tracked repositories."""


@project.command("add-local")
@click.argument("path", type=click.Path(exists=True, file_okay=False, resolve_path=True))
@click.option("--name", help="Display name (defaults to the directory name)")
@click.option("--remote", "remote_url", help="GitHub remote URL (discovered from the checkout when omitted)")
@click.pass_context
def project_add_local(ctx: click.Context, path: str, name: str | None, remote_url: str | None) -> None:
    """Register a local checkout at PATH."""
    _run("project_add_local", _add_local_project(ctx.obj["settings"], Path(path), name, remote_url))


async def _add_local_project(settings: PolisherSettings, path: Path, name: str | None, remote_url: str | None) -> None:
    if remote_url is None:
        try:
            remote_url = GitDiscovery(path).origin_url()
        except GitDiscoveryError as e:
            log.warning("remote_discovery_failed", path=str(path), error=e.message)

    project = Project(
        id=uuid.uuid4().hex,
        source=ProjectSource.LOCAL,
        name=name or path.name,
        local_path=str(path),
        local_git_remote=remote_url,
    )
    await _create_store(settings).save_project(project)
    click.echo(f"Registered local project {project.id} ({project.name})")
    if not remote_url:
        click.echo("Warning: no Git remote found; gh-cli submission will not be possible.", err=True)


@project.command("add-github")
@click.argument("url")
@click.option("--name", help="Display name (defaults to owner/repo)")
@click.pass_context
def project_add_github(ctx: click.Context, url: str, name: str | None) -> None:
    """Register a GitHub repository by its clone URL."""
    _run("project_add_github", _add_github_project(ctx.obj["settings"], url, name))


async def _add_github_project(settings: PolisherSettings, url: str, name: str | None) -> None:
    slug = parse_remote_url(url)
    project = Project(
        id=uuid.uuid4().hex,
        source=ProjectSource.GITHUB,
        name=name or slug.full_name,
        github_owner=slug.owner,
        github_repo=slug.repo,
        github_url=url,
    )
    await _create_store(settings).save_project(project)
    click.echo(f"Registered GitHub project {project.id} ({slug.full_name})")


@project.command("list")
@click.pass_context
def project_list(ctx: click.Context) -> None:
    """List registered projects."""
    _run("project_list", _list_projects(ctx.obj["settings"]))


async def _list_projects(settings: PolisherSettings) -> None:
    projects = await _create_store(settings).list_projects()
    if not projects:
        click.echo("No projects registered.")
        return
    for item in projects:
        location = item.local_path if item.source == ProjectSource.LOCAL else item.github_url
        click.echo(f"  {item.id}  {item.name}  [{item.source}]  {location}  issues={item.issues_found}")


# Issues


@cli.group()
def issues() -> None:
    """Import and inspect detected issues."""


@issues.command("import")
@click.argument("project_id")
@click.argument("findings_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def issues_import(ctx: click.Context, project_id: str, findings_file: str) -> None:
    """Import detector findings for PROJECT_ID from a JSON file.

    The file holds a list of objects with at least file_path and line, and
    original/suggestion for fixable issues.
    """
    _run("issues_import", _import_issues(ctx.obj["settings"], project_id, Path(findings_file)))


async def _import_issues(settings: PolisherSettings, project_id: str, findings_file: Path) -> None:
    try:
        findings = json.loads(findings_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read findings from {findings_file}: {e}") from e
    if not isinstance(findings, list):
        raise ConfigurationError("Findings file must contain a JSON list")

    task = await _create_coordinator(settings).import_issues(project_id, findings)
    click.echo(f"Imported {task.issues_found} issue(s) from {task.files_scanned} file(s) (task {task.id})")


@issues.command("list")
@click.argument("project_id")
@click.option(
    "--status",
    type=click.Choice([s.value for s in IssueStatus]),
    help="Only show issues in this status",
)
@click.pass_context
def issues_list(ctx: click.Context, project_id: str, status: str | None) -> None:
    """List issues of PROJECT_ID."""
    _run("issues_list", _list_issues(ctx.obj["settings"], project_id, status))


async def _list_issues(settings: PolisherSettings, project_id: str, status: str | None) -> None:
    found = await _create_store(settings).list_issues(
        project_id=project_id,
        status=IssueStatus(status) if status else None,
    )
    if not found:
        click.echo("No issues found.")
        return
    for issue in found:
        fix = f"{issue.original} -> {issue.suggestion}" if issue.is_fixable else issue.message
        click.echo(f"  {issue.id}  [{issue.status}]  {issue.file_path}:{issue.line}:{issue.column}  {fix}")


# Drafts


@cli.group()
def draft() -> None:
    """Create and manage pull request drafts."""


@draft.command("create")
@click.argument("project_id")
@click.argument("issue_ids", nargs=-1)
@click.option("--all-open", is_flag=True, help="Include every open issue of the project")
@click.option("--title", help="PR title (generated when omitted)")
@click.option("--body", help="PR body (generated when omitted)")
@click.pass_context
def draft_create(
    ctx: click.Context,
    project_id: str,
    issue_ids: tuple[str, ...],
    all_open: bool,
    title: str | None,
    body: str | None,
) -> None:
    """Create a draft for PROJECT_ID from ISSUE_IDS."""
    _run("draft_create", _create_draft(ctx.obj["settings"], project_id, list(issue_ids), all_open, title, body))


async def _create_draft(
    settings: PolisherSettings,
    project_id: str,
    issue_ids: list[str],
    all_open: bool,
    title: str | None,
    body: str | None,
) -> None:
    coordinator = _create_coordinator(settings)
    if all_open:
        open_issues = await coordinator.store.list_issues(project_id=project_id, status=IssueStatus.OPEN)
        issue_ids = [issue.id for issue in open_issues]
    if not issue_ids:
        raise ConfigurationError("No issues selected. Pass issue ids or --all-open.")

    created = await coordinator.create_draft(project_id, issue_ids, title=title, body=body)
    _print_draft(created)


@draft.command("list")
@click.option("--project", "project_id", help="Only drafts of this project")
@click.pass_context
def draft_list(ctx: click.Context, project_id: str | None) -> None:
    """List drafts, newest first."""
    _run("draft_list", _list_drafts(ctx.obj["settings"], project_id))


async def _list_drafts(settings: PolisherSettings, project_id: str | None) -> None:
    drafts = await _create_coordinator(settings).list_drafts(project_id)
    if not drafts:
        click.echo("No drafts found.")
        return
    for item in drafts:
        click.echo(f"  {item.id}  [{item.status}]  {item.title}  ({len(item.issue_ids)} issue(s))")


@draft.command("show")
@click.argument("draft_id")
@click.pass_context
def draft_show(ctx: click.Context, draft_id: str) -> None:
    """Show a draft with its body."""
    _run("draft_show", _show_draft(ctx.obj["settings"], draft_id))


async def _show_draft(settings: PolisherSettings, draft_id: str) -> None:
    _print_draft(await _create_coordinator(settings).get_draft(draft_id), verbose=True)


@draft.command("update")
@click.argument("draft_id")
@click.option("--title", help="New PR title")
@click.option("--body", help="New PR body")
@click.option(
    "--status",
    type=click.Choice([DraftStatus.DRAFT.value, DraftStatus.READY.value]),
    help="Move the draft between draft and ready",
)
@click.pass_context
def draft_update(
    ctx: click.Context,
    draft_id: str,
    title: str | None,
    body: str | None,
    status: str | None,
) -> None:
    """Edit the title, body or status of an unsubmitted draft."""
    _run("draft_update", _update_draft(ctx.obj["settings"], draft_id, title, body, status))


async def _update_draft(
    settings: PolisherSettings,
    draft_id: str,
    title: str | None,
    body: str | None,
    status: str | None,
) -> None:
    updated = await _create_coordinator(settings).update_draft(
        draft_id,
        title=title,
        body=body,
        status=DraftStatus(status) if status else None,
    )
    _print_draft(updated)


@draft.command("delete")
@click.argument("draft_id")
@click.pass_context
def draft_delete(ctx: click.Context, draft_id: str) -> None:
    """Delete a draft and reopen its issues."""
    _run("draft_delete", _delete_draft(ctx.obj["settings"], draft_id))


async def _delete_draft(settings: PolisherSettings, draft_id: str) -> None:
    reopened = await _create_coordinator(settings).delete_draft(draft_id)
    click.echo(f"Deleted draft {draft_id}; reopened {len(reopened)} issue(s)")


# Submission


@cli.command()
@click.argument("draft_id")
@click.option(
    "--method",
    type=click.Choice([m.value for m in SubmitMethod]),
    default=SubmitMethod.GH_CLI.value,
    show_default=True,
    help="gh-cli publishes a pull request; local only marks the draft submitted",
)
@click.pass_context
def submit(ctx: click.Context, draft_id: str, method: str) -> None:
    """Apply a draft's fixes and publish it as a pull request."""
    _run("submit", _submit_draft(ctx.obj["settings"], draft_id, SubmitMethod(method)))


async def _submit_draft(settings: PolisherSettings, draft_id: str, method: SubmitMethod) -> None:
    outcome = await _create_coordinator(settings).submit_draft(draft_id, method)

    for warning in outcome.warnings:
        click.echo(f"Warning: {warning}", err=True)

    if not outcome.success:
        raise PublishError("\n".join(part for part in (outcome.message, outcome.error) if part))

    click.echo(outcome.message)
    if outcome.reopened_issue_ids:
        click.echo(f"{len(outcome.reopened_issue_ids)} issue(s) could not be applied and were reopened")


@cli.command("auth-status")
@click.pass_context
def auth_status(ctx: click.Context) -> None:
    """Show whether gh is installed and authenticated."""
    _run("auth_status", _auth_status(ctx.obj["settings"]))


async def _auth_status(settings: PolisherSettings) -> None:
    status = await AuthChecker(_create_gh(settings)).check()

    def mark(ok: bool) -> str:
        return click.style("[OK]", fg="green") if ok else click.style("[FAIL]", fg="red")

    click.echo(f"  {mark(status.installed)} gh installed" + (f" ({status.version})" if status.version else ""))
    click.echo(f"  {mark(status.authenticated)} gh authenticated" + (f" as {status.username}" if status.username else ""))
    click.echo(f"Recommended submit method: {status.recommended}")


if __name__ == "__main__":
    cli()
