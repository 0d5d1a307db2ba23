from __future__ import annotations

import asyncio
import inspect
from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from skilluse.config import Settings, get_settings
from skilluse.core.exceptions import GitHubAPIError, SkillUseError
from skilluse.core.logging.logger import get_logger
from skilluse.github.access import ResponseClass
from skilluse.github.client import GitHubClient
from skilluse.skills.discovery import discover_skill_paths
from skilluse.skills.fetcher import fetch_skills
from skilluse.skills.frontmatter import parse_frontmatter
from skilluse.skills.installer import (
    install_skill_files,
    remove_skill_directory,
    replace_skill_files,
    skill_install_dir,
)
from skilluse.skills.models import (
    DEFAULT_BRANCH,
    DEFAULT_SKILL_TYPE,
    DEFAULT_VERSION,
    SKILL_MANIFEST_FILENAME,
)
from skilluse.skills.resolver import resolve_skill
from skilluse.skills.results import (
    AuthRequired,
    Cancelled,
    Installed,
    NotFound,
    ResolvedSkill,
    SkillInfo,
    Uninstalled,
    UpdateAvailable,
    UpdateCheckFailed,
    UpgradeFailed,
    UpgradeReport,
    Upgraded,
    UpToDate,
)
from skilluse.skills.source import parse_install_source, parse_repo_coordinate
from skilluse.skills.updates import check_update, upgrade_skill
from skilluse.store import InstalledSkill, RepoConfig

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from skilluse.agents import AgentPathResolver
    from skilluse.credentials import CredentialProvider
    from skilluse.github.client import RepositoryInfo
    from skilluse.skills.models import SkillMetadata
    from skilluse.skills.results import (
        DiscoverOutcome,
        InstallOutcome,
        ResolveOutcome,
        UninstallOutcome,
        UpgradeOutcome,
    )
    from skilluse.store import ManifestStore, Scope

    ClientFactory = Callable[[str | None], GitHubClient]
    ConfirmCallback = Callable[[SkillMetadata, RepositoryInfo], bool | Awaitable[bool]]
    ProgressCallback = Callable[[int, int], None]
    SkillProgressCallback = Callable[[InstalledSkill, int, int], None]

logger = get_logger(__name__)

_AUTH_CLASSES = {ResponseClass.AUTH_REQUIRED, ResponseClass.RATE_LIMITED}

UpdateCheck = UpdateAvailable | UpToDate | UpdateCheckFailed


def select_installed_skill(
    installed: list[InstalledSkill], name_or_index: str
) -> InstalledSkill | None:
    """Pick an installed skill by 1-based index or case-insensitive name."""
    if not installed:
        return None
    text = name_or_index.strip()
    if text.isdigit():
        index = int(text)
        if 1 <= index <= len(installed):
            return installed[index - 1]
        return None
    lowered = text.lower()
    for skill in installed:
        if skill.name.lower() == lowered:
            return skill
    return None


def matches_keyword(skill: SkillMetadata, keyword: str) -> bool:
    lowered = keyword.strip().lower()
    if not lowered:
        return True
    if lowered in skill.name.lower() or lowered in skill.description.lower():
        return True
    return any(lowered in tag.lower() for tag in skill.tags or ())


class SkillManager:
    """Entry point tying resolution, installation and the local manifest together.

    Each operation opens its own :class:`GitHubClient` from ``client_factory``
    with the current token, so a login between calls takes effect immediately.
    """

    def __init__(
        self,
        store: ManifestStore,
        credentials: CredentialProvider,
        agents: AgentPathResolver,
        settings: Settings | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._store = store
        self._credentials = credentials
        self._agents = agents
        self._settings = settings or get_settings()
        self._client_factory = client_factory

    @property
    def store(self) -> ManifestStore:
        return self._store

    @property
    def settings(self) -> Settings:
        return self._settings

    def _create_client(self) -> GitHubClient:
        token = self._credentials.get_token()
        if self._client_factory is not None:
            return self._client_factory(token)
        return GitHubClient(token=token, settings=self._settings.github)

    # Repository configuration

    def add_repo(
        self,
        repo: str,
        *,
        branch: str = DEFAULT_BRANCH,
        paths: list[str] | None = None,
        make_default: bool = False,
    ) -> RepoConfig:
        if parse_repo_coordinate(repo) is None:
            raise SkillUseError(f"Invalid repository format: {repo}. Expected owner/repo")
        config = RepoConfig(
            repo=repo.strip(),
            branch=branch,
            paths=[path.strip("/") for path in paths or [] if path.strip("/")],
        )
        self._store.add_repo(config)
        manifest = self._store.get_config()
        if make_default or manifest.default_repo is None:
            self._store.set_default_repo(config.repo)
        return config

    def remove_repo(self, repo: str) -> bool:
        if self._store.get_repo(repo) is None:
            return False
        self._store.remove_repo(repo)
        return True

    def use_repo(self, repo: str) -> None:
        self._store.set_default_repo(repo)

    def list_repos(self) -> tuple[list[RepoConfig], str | None]:
        manifest = self._store.get_config()
        return list(manifest.repos), manifest.default_repo

    def list_installed(self) -> list[InstalledSkill]:
        return list(self._store.get_config().installed)

    # Remote queries

    def _repos_to_search(self, repo: str | None, all_repos: bool) -> list[RepoConfig] | NotFound:
        manifest = self._store.get_config()
        if repo is not None:
            configured = manifest.get_repo(repo)
            return [configured or RepoConfig(repo=repo)]
        if all_repos:
            repos = list(manifest.repos)
        elif manifest.default_repo is not None:
            default = manifest.get_repo(manifest.default_repo)
            repos = [default] if default is not None else []
        else:
            repos = list(manifest.repos)
        if not repos:
            return NotFound(
                name=repo or "",
                message="No repositories configured. Add one with: skilluse repo add owner/repo",
            )
        return repos

    async def search(
        self,
        keyword: str,
        *,
        repo: str | None = None,
        all_repos: bool = False,
    ) -> list[SkillMetadata] | AuthRequired | NotFound:
        """Skills whose name, description or tags contain ``keyword``.

        Searches ``repo`` when given, every configured repository with
        ``all_repos``, and the default repository otherwise.
        """
        repos = self._repos_to_search(repo, all_repos)
        if isinstance(repos, NotFound):
            return repos

        results: list[SkillMetadata] = []
        async with self._create_client() as client:
            for repo_config in repos:
                skills = await fetch_skills(client, repo_config)
                if isinstance(skills, AuthRequired):
                    return skills
                results.extend(skill for skill in skills if matches_keyword(skill, keyword))
        return sorted(results, key=lambda skill: (skill.repo, skill.name.lower()))

    async def list_repo_skills(
        self, repo: str | None = None
    ) -> list[SkillMetadata] | AuthRequired | NotFound:
        return await self.search("", repo=repo)

    async def discover(self, repo: str, branch: str | None = None) -> DiscoverOutcome:
        coordinate = parse_repo_coordinate(repo)
        if coordinate is None:
            raise SkillUseError(f"Invalid repository format: {repo}. Expected owner/repo")
        owner, name = coordinate
        async with self._create_client() as client:
            return await discover_skill_paths(client, owner, name, branch or DEFAULT_BRANCH)

    async def resolve(self, target: str) -> ResolveOutcome:
        source = parse_install_source(target, web_host=self._settings.github.web_host)
        async with self._create_client() as client:
            return await resolve_skill(client, source, self._store)

    # Install / uninstall

    async def _confirm_public(
        self,
        client: GitHubClient,
        metadata: SkillMetadata,
        confirm: ConfirmCallback | None,
    ) -> AuthRequired | Cancelled | None:
        try:
            repo_info = await client.get_repository(metadata.repo)
        except GitHubAPIError as exc:
            if exc.classification in _AUTH_CLASSES:
                return AuthRequired.from_error(exc)
            raise
        if repo_info.private:
            return None

        if confirm is None:
            return Cancelled(reason=f"Confirmation required to install from public repository {metadata.repo}")
        decision = confirm(metadata, repo_info)
        if inspect.isawaitable(decision):
            decision = await decision
        if not decision:
            return Cancelled()
        return None

    async def install(
        self,
        target: str,
        *,
        scope: Scope = "local",
        agent: str | None = None,
        force: bool = False,
        confirm: ConfirmCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> InstallOutcome:
        """Resolve ``target`` and install it into the agent's skills directory.

        ``force`` skips the public-repository confirmation. Re-installing a
        skill replaces its directory and its manifest entry.
        """
        agent_id = agent or self._settings.default_agent
        base_dir = self._agents.resolve_path(agent_id, scope)
        source = parse_install_source(target, web_host=self._settings.github.web_host)

        async with self._create_client() as client:
            resolved = await resolve_skill(client, source, self._store)
            if not isinstance(resolved, ResolvedSkill):
                return resolved

            metadata = resolved.metadata
            target_dir = skill_install_dir(base_dir, metadata.name)
            if not force:
                gated = await self._confirm_public(client, metadata, confirm)
                if gated is not None:
                    return gated

            existing = self._store.get_installed_skill(metadata.name)
            if existing is not None and Path(existing.installed_path) != target_dir:
                await asyncio.to_thread(remove_skill_directory, Path(existing.installed_path))
            if existing is not None or target_dir.exists():
                result = await replace_skill_files(
                    client,
                    metadata.repo,
                    metadata.path,
                    resolved.commit_sha,
                    target_dir,
                    on_progress,
                    destination_root=base_dir,
                )
            else:
                result = await install_skill_files(
                    client, metadata.repo, metadata.path, resolved.commit_sha, target_dir, on_progress
                )
            if isinstance(result, AuthRequired):
                return result

        record = InstalledSkill(
            name=metadata.name,
            repo=metadata.repo,
            repo_path=metadata.path,
            commit_sha=resolved.commit_sha,
            version=metadata.version or DEFAULT_VERSION,
            type=metadata.type or DEFAULT_SKILL_TYPE,
            installed_path=str(target_dir),
            scope=scope,
            agent=agent_id,
        )
        self._store.add_installed_skill(record)
        logger.info(
            "Installed skill",
            data={"name": record.name, "repo": record.repo, "path": record.installed_path},
        )
        return Installed(skill=record, metadata=metadata)

    def uninstall(self, name: str) -> UninstallOutcome:
        installed = select_installed_skill(self.list_installed(), name)
        if installed is None:
            return NotFound(name=name, message=f'Skill "{name}" is not installed')

        removed = remove_skill_directory(Path(installed.installed_path))
        if not removed:
            logger.warning(
                "Skill directory already missing",
                data={"name": installed.name, "path": installed.installed_path},
            )
        self._store.remove_installed_skill(installed.name)
        return Uninstalled(skill=installed)

    # Updates

    def _skills_for(self, name: str | None) -> list[InstalledSkill] | NotFound:
        if name is None:
            return self.list_installed()
        installed = select_installed_skill(self.list_installed(), name)
        if installed is None:
            return NotFound(name=name, message=f'Skill "{name}" is not installed')
        return [installed]

    async def _check_all(
        self, client: GitHubClient, skills: list[InstalledSkill]
    ) -> list[UpdateCheck] | AuthRequired:
        checks: list[UpdateCheck] = []
        for skill in skills:
            repo_config = self._store.get_repo(skill.repo)
            if repo_config is None:
                checks.append(UpdateCheckFailed(skill=skill, error="repository not configured"))
                continue
            try:
                outcome = await check_update(client, skill, repo_config)
            except (SkillUseError, httpx.HTTPError) as exc:
                logger.warning(
                    "Update check failed",
                    data={"name": skill.name, "repo": skill.repo, "error": str(exc)},
                )
                checks.append(UpdateCheckFailed(skill=skill, error=str(exc)))
                continue
            if isinstance(outcome, AuthRequired):
                return outcome
            checks.append(outcome)
        return checks

    async def check_updates(
        self, name: str | None = None
    ) -> list[UpdateCheck] | AuthRequired | NotFound:
        """Check one installed skill, or all of them with per-skill isolation."""
        skills = self._skills_for(name)
        if isinstance(skills, NotFound):
            return skills
        async with self._create_client() as client:
            return await self._check_all(client, skills)

    async def upgrade(
        self,
        name: str | None = None,
        *,
        on_progress: SkillProgressCallback | None = None,
    ) -> UpgradeOutcome:
        skills = self._skills_for(name)
        if isinstance(skills, NotFound):
            return skills

        upgraded: list[Upgraded] = []
        failed: list[UpgradeFailed] = []
        up_to_date: list[UpToDate] = []

        async with self._create_client() as client:
            checks = await self._check_all(client, skills)
            if isinstance(checks, AuthRequired):
                return checks

            pending: list[UpdateAvailable] = []
            for check in checks:
                if isinstance(check, UpToDate):
                    up_to_date.append(check)
                elif isinstance(check, UpdateCheckFailed):
                    failed.append(UpgradeFailed(skill=check.skill, error=check.error))
                else:
                    pending.append(check)

            for position, update in enumerate(pending):
                progress = partial(on_progress, update.skill) if on_progress is not None else None
                try:
                    outcome = await upgrade_skill(client, update, self._store, progress)
                except (SkillUseError, httpx.HTTPError, OSError) as exc:
                    failed.append(UpgradeFailed(skill=update.skill, error=str(exc)))
                    continue

                if isinstance(outcome, AuthRequired):
                    if not upgraded and not failed:
                        return outcome
                    # Remaining skills would hit the same wall.
                    failed.extend(
                        UpgradeFailed(skill=rest.skill, error=outcome.message)
                        for rest in pending[position:]
                    )
                    break
                upgraded.append(outcome)

        report = UpgradeReport(
            upgraded=tuple(upgraded),
            failed=tuple(failed),
            up_to_date=tuple(up_to_date),
        )
        if report.failed:
            logger.warning("Upgrade finished with failures", data={"summary": report.message})
        return report

    # Info

    async def info(self, name: str) -> SkillInfo | NotFound:
        """Describe an installed skill from its local ``SKILL.md``, else from the manifest."""
        installed = select_installed_skill(self.list_installed(), name)
        if installed is None:
            return NotFound(name=name, message=f'Skill "{name}" is not installed')

        manifest_file = Path(installed.installed_path) / SKILL_MANIFEST_FILENAME
        fields: dict[str, str | list[str]] = {}
        if manifest_file.is_file():
            try:
                content = await asyncio.to_thread(manifest_file.read_text, encoding="utf-8")
            except OSError as exc:
                logger.warning(
                    "Failed to read installed manifest",
                    data={"path": str(manifest_file), "error": str(exc)},
                )
            else:
                fields = parse_frontmatter(content)

        def text(key: str) -> str | None:
            value = fields.get(key)
            return value if isinstance(value, str) and value else None

        tags = fields.get("tags")
        return SkillInfo(
            name=text("name") or installed.name,
            description=text("description") or "",
            version=text("version") or installed.version,
            repo=installed.repo,
            repo_path=installed.repo_path,
            type=text("type") or installed.type,
            author=text("author"),
            tags=tuple(tags) if isinstance(tags, list) else None,
            installed_path=installed.installed_path,
            scope=installed.scope,
            commit_sha=installed.commit_sha,
            agent=installed.agent,
        )
