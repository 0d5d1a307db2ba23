"""Commit-SHA based update detection and upgrade of installed skills."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from skilluse.core.exceptions import GitHubAPIError
from skilluse.core.logging.logger import get_logger
from skilluse.github.access import ResponseClass
from skilluse.marketplace.formatting import format_revision_short
from skilluse.skills.fetcher import fetch_skill_at
from skilluse.skills.installer import replace_skill_files
from skilluse.skills.results import AuthRequired, UpdateAvailable, Upgraded, UpToDate

if TYPE_CHECKING:
    from collections.abc import Callable

    from skilluse.github.client import GitHubClient
    from skilluse.skills.results import UpdateOutcome
    from skilluse.store import InstalledSkill, ManifestStore, RepoConfig

logger = get_logger(__name__)


async def check_update(
    client: GitHubClient,
    installed: InstalledSkill,
    repo_config: RepoConfig,
) -> UpdateOutcome:
    """Compare the branch head against the commit the skill was installed at.

    Transport and non-auth API errors propagate so a caller checking many
    skills can record them per skill.
    """
    try:
        latest_sha = await client.get_latest_commit_sha(repo_config.repo, repo_config.branch)
    except GitHubAPIError as exc:
        if exc.classification in {ResponseClass.AUTH_REQUIRED, ResponseClass.RATE_LIMITED}:
            return AuthRequired.from_error(exc)
        raise

    if latest_sha == installed.commit_sha:
        return UpToDate(skill=installed)

    latest_version = installed.version
    try:
        metadata = await fetch_skill_at(client, installed.repo, installed.repo_path, latest_sha)
    except GitHubAPIError as exc:
        logger.debug(
            "Keeping recorded version; manifest unreadable",
            data={"skill": installed.name, "status": exc.status_code},
        )
        metadata = None
    if metadata is not None and not isinstance(metadata, AuthRequired) and metadata.version:
        latest_version = metadata.version

    logger.info(
        "Update available",
        data={
            "skill": installed.name,
            "current": format_revision_short(installed.commit_sha),
            "latest": format_revision_short(latest_sha),
        },
    )
    return UpdateAvailable(skill=installed, latest_sha=latest_sha, latest_version=latest_version)


async def upgrade_skill(
    client: GitHubClient,
    update: UpdateAvailable,
    store: ManifestStore,
    on_progress: Callable[[int, int], None] | None = None,
) -> Upgraded | AuthRequired:
    """Replace the installed files with the tree at ``update.latest_sha`` and record it."""
    installed = update.skill
    result = await replace_skill_files(
        client,
        installed.repo,
        installed.repo_path,
        update.latest_sha,
        Path(installed.installed_path),
        on_progress,
    )
    if isinstance(result, AuthRequired):
        return result

    upgraded = installed.model_copy(
        update={"commit_sha": update.latest_sha, "version": update.latest_version}
    )
    store.add_installed_skill(upgraded)
    return Upgraded(skill=upgraded, previous_sha=installed.commit_sha)
