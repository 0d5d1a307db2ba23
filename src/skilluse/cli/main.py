"""Typer application for the ``skilluse`` command."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Any, NoReturn

import httpx
import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from skilluse import __version__
from skilluse.agents import AgentRegistry
from skilluse.config import get_settings, reset_settings
from skilluse.core.exceptions import ManifestStoreError, SkillUseError
from skilluse.core.logging.logger import configure_logging
from skilluse.credentials import FileCredentialProvider
from skilluse.marketplace.formatting import (
    format_display_path,
    format_repo_display_url,
    format_revision_short,
)
from skilluse.skills.installer import DOWNLOAD_PHASE, FINALIZE_PHASE, download_progress_percent
from skilluse.skills.manager import SkillManager
from skilluse.skills.models import DiscoveryResult
from skilluse.skills.results import (
    AuthRequired,
    Cancelled,
    Conflict,
    Installed,
    NotFound,
    SkillInfo,
    Uninstalled,
    UpdateAvailable,
    UpdateCheckFailed,
    UpgradeReport,
    UpToDate,
)
from skilluse.store import JsonFileManifestStore

if TYPE_CHECKING:
    from collections.abc import Coroutine

    from skilluse.github.client import RepositoryInfo
    from skilluse.skills.models import SkillMetadata
    from skilluse.store import InstalledSkill

app = typer.Typer(
    name="skilluse",
    help="Install agent skills from GitHub repositories.",
    no_args_is_help=True,
    add_completion=False,
)
repo_app = typer.Typer(help="Manage the repositories skills are installed from.", no_args_is_help=True)
app.add_typer(repo_app, name="repo")

console = Console()
err_console = Console(stderr=True)


def _build_manager() -> SkillManager:
    settings = get_settings()
    store = JsonFileManifestStore(settings.resolved_manifest_path)
    try:
        store.load()
    except ManifestStoreError as exc:
        _fail(str(exc))
    return SkillManager(
        store=store,
        credentials=FileCredentialProvider(settings.resolved_credentials_path),
        agents=AgentRegistry(),
        settings=settings,
    )


def _fail(message: str) -> NoReturn:
    err_console.print(f"[red]Error:[/red] {message}")
    raise typer.Exit(1)


def _fail_auth(result: AuthRequired) -> NoReturn:
    err_console.print(f"[red]{result.message}[/red]")
    hint = "Set GITHUB_TOKEN, or add a token to the credentials file:"
    if result.rate_limited:
        hint = "Authenticated requests get a higher rate limit. " + hint
    credentials_path = get_settings().resolved_credentials_path
    err_console.print(f"[dim]{hint} {format_display_path(credentials_path)}[/dim]")
    raise typer.Exit(1)


def _run(awaitable: Coroutine[Any, Any, Any]) -> Any:
    try:
        return asyncio.run(awaitable)
    except (SkillUseError, httpx.HTTPError) as exc:
        _fail(str(exc))
    except OSError as exc:
        _fail(f"Filesystem error: {exc}")


class _DownloadProgress:
    """Progress bar started on the first file so it never overlaps a prompt."""

    def __init__(self, description: str) -> None:
        self._description = description
        self._progress: Progress | None = None
        self._task: Any = None

    def __call__(self, written: int, total: int) -> None:
        if self._progress is None:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=err_console,
                transient=True,
            )
            self._progress.start()
            self._task = self._progress.add_task(
                self._description, total=FINALIZE_PHASE[1], completed=DOWNLOAD_PHASE[0]
            )
        self._progress.update(self._task, completed=download_progress_percent(written, total))

    def close(self) -> None:
        if self._progress is not None:
            self._progress.update(self._task, completed=FINALIZE_PHASE[1])
            self._progress.stop()
            self._progress = None


def _confirm_public_repo(skill: SkillMetadata, repo_info: RepositoryInfo) -> bool:
    console.print(
        f"[yellow]{repo_info.full_name} is a public repository.[/yellow] "
        "Skills can contain executable instructions; review the source before installing:"
    )
    console.print(
        f"  {format_repo_display_url(skill.repo, skill.path, branch=repo_info.default_branch, web_host=get_settings().github.web_host)}"
    )
    return typer.confirm(f"Install {skill.name}?", default=False)


def _print_conflict(manager: SkillManager, conflict: Conflict) -> NoReturn:
    err_console.print(f"[red]{conflict.message}[/red]")
    err_console.print("Install one of them by URL:")
    web_host = manager.settings.github.web_host
    for source in conflict.sources:
        repo_config = manager.store.get_repo(source.repo)
        branch = repo_config.branch if repo_config is not None else "main"
        err_console.print(
            f"  skilluse install {format_repo_display_url(source.repo, source.path, branch=branch, web_host=web_host)}"
        )
    raise typer.Exit(1)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"skilluse {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    config: Path | None = typer.Option(
        None, "--config", "-c", help="Settings file to use instead of ./skilluse.config.yaml"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show the version"
    ),
) -> None:
    if config is not None:
        reset_settings()
    settings = get_settings(config)
    logger_settings = settings.logger
    if verbose:
        logger_settings = logger_settings.model_copy(update={"level": "debug"})
    configure_logging(logger_settings)


@app.command()
def install(
    target: str = typer.Argument(..., help="Skill name, or a GitHub URL to a repository or skill directory"),
    global_: bool = typer.Option(False, "--global", "-g", help="Install into the agent's user-wide directory"),
    agent: str | None = typer.Option(None, "--agent", "-a", help="Agent to install for"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip the public repository confirmation"),
) -> None:
    """Install a skill."""
    manager = _build_manager()
    progress = _DownloadProgress(f"Installing {target}")
    try:
        outcome = _run(
            manager.install(
                target,
                scope="global" if global_ else "local",
                agent=agent,
                force=force,
                confirm=_confirm_public_repo,
                on_progress=progress,
            )
        )
    finally:
        progress.close()

    match outcome:
        case Installed(skill=skill):
            console.print(
                f"[green]Installed[/green] {skill.name} {skill.version} "
                f"from {skill.repo} ({format_revision_short(skill.commit_sha)})"
            )
            console.print(f"  {format_display_path(skill.installed_path)}")
        case Cancelled(reason=reason):
            console.print(f"[yellow]{reason}[/yellow]")
        case Conflict():
            _print_conflict(manager, outcome)
        case NotFound(message=message):
            _fail(message)
        case AuthRequired():
            _fail_auth(outcome)


@app.command()
def uninstall(
    name: str = typer.Argument(..., help="Installed skill name or list index"),
    force: bool = typer.Option(False, "--force", "-f", help="Do not ask for confirmation"),
) -> None:
    """Remove an installed skill."""
    manager = _build_manager()
    if not force and not typer.confirm(f"Uninstall {name}?", default=False):
        console.print("[yellow]Uninstall cancelled[/yellow]")
        return

    try:
        outcome = manager.uninstall(name)
    except SkillUseError as exc:
        _fail(str(exc))
    except OSError as exc:
        _fail(f"Failed to remove skill directory: {exc}")

    match outcome:
        case Uninstalled(skill=skill):
            console.print(f"[green]Uninstalled[/green] {skill.name}")
        case NotFound(message=message):
            _fail(message)


def _print_update_checks(checks: list[UpdateAvailable | UpToDate | UpdateCheckFailed]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Skill")
    table.add_column("Installed")
    table.add_column("Latest")
    table.add_column("Status")
    for check in checks:
        skill = check.skill
        current = format_revision_short(skill.commit_sha)
        match check:
            case UpdateAvailable(latest_sha=latest_sha, latest_version=latest_version):
                table.add_row(
                    skill.name,
                    f"{skill.version} ({current})",
                    f"{latest_version} ({format_revision_short(latest_sha)})",
                    "[yellow]update available[/yellow]",
                )
            case UpToDate():
                table.add_row(skill.name, f"{skill.version} ({current})", "", "[green]up to date[/green]")
            case UpdateCheckFailed(error=error):
                table.add_row(skill.name, f"{skill.version} ({current})", "", f"[red]{error}[/red]")
    console.print(table)


@app.command()
def upgrade(
    name: str | None = typer.Argument(None, help="Skill to upgrade; all installed skills when omitted"),
    check: bool = typer.Option(False, "--check", help="Only report available updates"),
) -> None:
    """Upgrade installed skills to the latest commit of their branch."""
    manager = _build_manager()
    if check:
        checks = _run(manager.check_updates(name))
        match checks:
            case NotFound(message=message):
                _fail(message)
            case AuthRequired():
                _fail_auth(checks)
        if not checks:
            console.print("No skills installed")
            return
        _print_update_checks(checks)
        return

    def on_progress(skill: InstalledSkill, written: int, total: int) -> None:
        console.print(f"  {skill.name}: {written}/{total} files", highlight=False)

    report = _run(manager.upgrade(name, on_progress=on_progress))
    match report:
        case NotFound(message=message):
            _fail(message)
        case AuthRequired():
            _fail_auth(report)
        case UpgradeReport():
            for item in report.upgraded:
                console.print(
                    f"[green]Upgraded[/green] {item.skill.name} "
                    f"{format_revision_short(item.previous_sha)} -> {format_revision_short(item.skill.commit_sha)}"
                )
            for failure in report.failed:
                err_console.print(f"[red]Failed[/red] {failure.skill.name}: {failure.error}")
            console.print(report.message)
            if report.failed and not report.upgraded:
                raise typer.Exit(1)


@app.command("list")
def list_installed() -> None:
    """List installed skills."""
    manager = _build_manager()
    installed = manager.list_installed()
    if not installed:
        console.print("No skills installed")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Skill")
    table.add_column("Version")
    table.add_column("Agent")
    table.add_column("Scope")
    table.add_column("Source")
    table.add_column("Path")
    for index, skill in enumerate(installed, start=1):
        table.add_row(
            str(index),
            skill.name,
            f"{skill.version} ({format_revision_short(skill.commit_sha)})",
            skill.agent or "",
            skill.scope,
            f"{skill.repo}/{skill.repo_path}" if skill.repo_path else skill.repo,
            format_display_path(skill.installed_path),
        )
    console.print(table)


def _print_skills(skills: list[SkillMetadata]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Skill")
    table.add_column("Description")
    table.add_column("Source")
    for skill in skills:
        source = f"{skill.repo}/{skill.path}" if skill.path else skill.repo
        table.add_row(skill.name, skill.description, source)
    console.print(table)


@app.command()
def search(
    keyword: str = typer.Argument(..., help="Text to match against name, description and tags"),
    all_repos: bool = typer.Option(False, "--all", help="Search every configured repository"),
    repo: str | None = typer.Option(None, "--repo", "-r", help="Search only this repository"),
) -> None:
    """Search skills in configured repositories."""
    manager = _build_manager()
    outcome = _run(manager.search(keyword, repo=repo, all_repos=all_repos))
    match outcome:
        case NotFound(message=message):
            _fail(message)
        case AuthRequired():
            _fail_auth(outcome)
    if not outcome:
        console.print(f'No skills matching "{keyword}"')
        return
    _print_skills(outcome)


@app.command()
def info(name: str = typer.Argument(..., help="Installed skill name or list index")) -> None:
    """Show details of an installed skill."""
    manager = _build_manager()
    outcome = _run(manager.info(name))
    match outcome:
        case NotFound(message=message):
            _fail(message)
        case SkillInfo():
            console.print(f"[bold]{outcome.name}[/bold] {outcome.version}")
            if outcome.description:
                console.print(outcome.description)
            rows = [
                ("Type", outcome.type),
                ("Author", outcome.author),
                ("Tags", ", ".join(outcome.tags) if outcome.tags else None),
                ("Source", f"{outcome.repo}/{outcome.repo_path}" if outcome.repo_path else outcome.repo),
                ("Commit", format_revision_short(outcome.commit_sha)),
                ("Agent", outcome.agent),
                ("Scope", outcome.scope),
                ("Path", format_display_path(outcome.installed_path) if outcome.installed_path else None),
            ]
            for label, value in rows:
                if value:
                    console.print(f"  [dim]{label}:[/dim] {value}", highlight=False)


@app.command()
def agent(agent_id: str | None = typer.Argument(None, help="Show the skill directories of one agent")) -> None:
    """List supported agents, marking the configured default."""
    registry = AgentRegistry()
    default_agent = get_settings().default_agent
    if agent_id is not None:
        config = registry.get_agent(agent_id)
        if config is None:
            _fail(f"Unknown agent: {agent_id}")
        console.print(f"[bold]{config.name}[/bold] ({config.id}) - {config.description}")
        console.print(f"  [dim]local:[/dim] {format_display_path(registry.resolve_path(config.id, 'local'))}")
        console.print(f"  [dim]global:[/dim] {format_display_path(registry.resolve_path(config.id, 'global'))}")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("")
    table.add_column("Agent")
    table.add_column("Name")
    table.add_column("Local")
    table.add_column("Global")
    for config in registry.list_agents():
        table.add_row(
            "*" if config.id == default_agent else "",
            config.id,
            config.name,
            config.local_path,
            f"~/{config.global_path}" if config.global_path else "-",
        )
    console.print(table)


@repo_app.command("add")
def repo_add(
    repo: str = typer.Argument(..., help="Repository as owner/repo"),
    path: list[str] = typer.Option([], "--path", "-p", help="Directory to search for skills (repeatable)"),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to install from"),
    default: bool = typer.Option(False, "--default", help="Make this the default repository"),
) -> None:
    """Add a skill repository."""
    manager = _build_manager()
    try:
        config = manager.add_repo(repo, branch=branch, paths=path, make_default=default)
    except SkillUseError as exc:
        _fail(str(exc))
    paths = ", ".join(config.paths) if config.paths else "/"
    console.print(f"[green]Added[/green] {config.repo} ({config.branch}; paths: {paths})")


@repo_app.command("remove")
def repo_remove(repo: str = typer.Argument(..., help="Repository as owner/repo")) -> None:
    """Remove a skill repository."""
    manager = _build_manager()
    if not manager.remove_repo(repo):
        _fail(f"Repository {repo} is not configured")
    console.print(f"[green]Removed[/green] {repo}")


@repo_app.command("use")
def repo_use(repo: str = typer.Argument(..., help="Repository as owner/repo")) -> None:
    """Set the default repository."""
    manager = _build_manager()
    try:
        manager.use_repo(repo)
    except SkillUseError as exc:
        _fail(str(exc))
    console.print(f"Default repository: {repo}")


@repo_app.command("list")
def repo_list() -> None:
    """List configured repositories."""
    manager = _build_manager()
    repos, default_repo = manager.list_repos()
    if not repos:
        console.print("No repositories configured. Add one with: skilluse repo add owner/repo")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("")
    table.add_column("Repository")
    table.add_column("Branch")
    table.add_column("Paths")
    for config in repos:
        table.add_row(
            "*" if config.repo == default_repo else "",
            config.repo,
            config.branch,
            ", ".join(config.paths) if config.paths else "/",
        )
    console.print(table)


@repo_app.command("skills")
def repo_skills(
    repo: str | None = typer.Argument(None, help="Repository as owner/repo; the default when omitted"),
) -> None:
    """List the skills a repository offers."""
    manager = _build_manager()
    outcome = _run(manager.list_repo_skills(repo))
    match outcome:
        case NotFound(message=message):
            _fail(message)
        case AuthRequired():
            _fail_auth(outcome)
    if not outcome:
        console.print("No skills found")
        return
    _print_skills(outcome)


@repo_app.command("discover")
def repo_discover(
    repo: str = typer.Argument(..., help="Repository as owner/repo"),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to scan"),
) -> None:
    """Find the directories of a repository that contain skills."""
    manager = _build_manager()
    outcome = _run(manager.discover(repo, branch))
    match outcome:
        case AuthRequired():
            _fail_auth(outcome)
        case DiscoveryResult(skill_paths=skill_paths, total_skills=total_skills, truncated=truncated):
            if not skill_paths:
                console.print(f"No SKILL.md files found in {repo} ({branch})")
                return
            console.print(f"Found {total_skills} skill(s) in {repo} ({branch}):")
            for skill_path in skill_paths:
                console.print(f"  {skill_path.path}  [dim]{skill_path.skill_count} skill(s)[/dim]")
            if truncated:
                err_console.print("[yellow]Repository is too large to list completely; some skills may be missing.[/yellow]")
            suggested = " ".join(f"--path {skill_path.path.rstrip('/')}" for skill_path in skill_paths)
            console.print(f"[dim]Add with: skilluse repo add {repo} {suggested} --branch {branch}[/dim]")
