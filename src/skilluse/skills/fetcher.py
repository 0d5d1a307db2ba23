"""Concurrent ``SKILL.md`` metadata scan of a configured repository.

Each search path is listed once; every sub-directory's manifest is then fetched
concurrently behind a semaphore. A directory without a readable, named manifest
is not a skill, so individual failures are recorded per candidate and dropped
when collapsing to a flat list.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from skilluse.core.exceptions import GitHubAPIError
from skilluse.core.logging.logger import get_logger
from skilluse.github.access import ResponseClass
from skilluse.skills.frontmatter import parse_frontmatter, skill_metadata_from_frontmatter
from skilluse.skills.models import SKILL_MANIFEST_FILENAME, SkillMetadata
from skilluse.skills.results import AuthRequired

if TYPE_CHECKING:
    from collections.abc import Callable

    from skilluse.github.client import ContentEntry, GitHubClient
    from skilluse.skills.results import FetchOutcome
    from skilluse.store import RepoConfig

logger = get_logger(__name__)

_AUTH_CLASSES = {ResponseClass.AUTH_REQUIRED, ResponseClass.RATE_LIMITED}


@dataclass(frozen=True, slots=True)
class Found:
    metadata: SkillMetadata


@dataclass(frozen=True, slots=True)
class Absent:
    repo: str
    path: str


@dataclass(frozen=True, slots=True)
class FetchError:
    repo: str
    path: str
    error: str
    auth_required: bool = False


CandidateOutcome = Found | Absent | FetchError


async def fetch_skill_at(
    client: GitHubClient,
    repo: str,
    path: str,
    branch: str,
    *,
    fallback_name: str | None = None,
) -> SkillMetadata | AuthRequired | None:
    """Fetch and parse one manifest; ``None`` when it is missing or unnamed."""
    manifest_path = f"{path}/{SKILL_MANIFEST_FILENAME}" if path else SKILL_MANIFEST_FILENAME
    try:
        content = await client.get_file_text(repo, manifest_path, branch)
    except GitHubAPIError as exc:
        if exc.classification in _AUTH_CLASSES:
            return AuthRequired.from_error(exc)
        if exc.classification is ResponseClass.NOT_FOUND:
            return None
        raise
    return skill_metadata_from_frontmatter(
        parse_frontmatter(content),
        repo=repo,
        path=path,
        fallback_name=fallback_name,
    )


async def _fetch_candidate(
    client: GitHubClient,
    semaphore: asyncio.Semaphore,
    repo: str,
    branch: str,
    entry: ContentEntry,
    fallback_to_directory_name: bool,
) -> CandidateOutcome:
    async with semaphore:
        try:
            result = await fetch_skill_at(
                client,
                repo,
                entry.path,
                branch,
                fallback_name=entry.name if fallback_to_directory_name else None,
            )
        except (GitHubAPIError, httpx.HTTPError) as exc:
            return FetchError(repo=repo, path=entry.path, error=str(exc))

    if isinstance(result, AuthRequired):
        return FetchError(repo=repo, path=entry.path, error=result.message, auth_required=True)
    if result is None:
        return Absent(repo=repo, path=entry.path)
    return Found(metadata=result)


async def scan_repository(
    client: GitHubClient,
    repo_config: RepoConfig,
    *,
    directory_filter: Callable[[ContentEntry], bool] | None = None,
    fallback_to_directory_name: bool = False,
) -> list[CandidateOutcome] | AuthRequired:
    """List candidate directories and fetch their manifests concurrently.

    An auth wall on a directory listing aborts the scan and is returned; any
    other listing failure skips that search path. Candidate outcomes are in no
    particular order.
    """
    repo = repo_config.repo
    semaphore = asyncio.Semaphore(client.settings.max_concurrency)
    outcomes: list[CandidateOutcome] = []

    for base_path in repo_config.search_paths:
        try:
            contents = await client.list_directory(repo, base_path, repo_config.branch)
        except GitHubAPIError as exc:
            if exc.classification in _AUTH_CLASSES:
                return AuthRequired.from_error(exc)
            logger.warning(
                "Skipping unreadable search path",
                data={"repo": repo, "path": base_path or "/", "status": exc.status_code},
            )
            continue
        except httpx.HTTPError as exc:
            logger.warning(
                "Skipping search path after transport error",
                data={"repo": repo, "path": base_path or "/", "error": str(exc)},
            )
            continue

        directories = [entry for entry in contents if entry.type == "dir"]
        if directory_filter is not None:
            directories = [entry for entry in directories if directory_filter(entry)]

        tasks = [
            asyncio.create_task(
                _fetch_candidate(
                    client,
                    semaphore,
                    repo,
                    repo_config.branch,
                    entry,
                    fallback_to_directory_name,
                )
            )
            for entry in directories
        ]
        outcomes.extend(await asyncio.gather(*tasks))

    for outcome in outcomes:
        if isinstance(outcome, FetchError):
            logger.debug(
                "Dropping skill candidate",
                data={"repo": outcome.repo, "path": outcome.path, "error": outcome.error},
            )
    return outcomes


def collect_skills(outcomes: list[CandidateOutcome]) -> list[SkillMetadata]:
    return [outcome.metadata for outcome in outcomes if isinstance(outcome, Found)]


async def fetch_skills(client: GitHubClient, repo_config: RepoConfig) -> FetchOutcome:
    outcomes = await scan_repository(client, repo_config)
    if isinstance(outcomes, AuthRequired):
        return outcomes
    return collect_skills(outcomes)
