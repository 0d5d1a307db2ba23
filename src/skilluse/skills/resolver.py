"""Turn an install source into exactly one skill, or explain why not.

A bare name is searched across every configured repository in configuration
order. The first repository behind an auth wall stops the search; later
repositories are not contacted. Matching directories in more than one place is
a conflict and is never resolved by picking the first hit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from skilluse.core.exceptions import GitHubAPIError
from skilluse.core.logging.logger import get_logger
from skilluse.github.access import ResponseClass
from skilluse.skills.fetcher import Found, fetch_skill_at, scan_repository
from skilluse.skills.models import DEFAULT_BRANCH, SkillMetadata, SkillSource
from skilluse.skills.results import AuthRequired, Conflict, NotFound, ResolvedSkill
from skilluse.skills.source import GitHubRef, RepoSearch, skill_name_from_path

if TYPE_CHECKING:
    from skilluse.github.client import ContentEntry, GitHubClient
    from skilluse.skills.results import ResolveOutcome
    from skilluse.skills.source import InstallSource
    from skilluse.store import ManifestStore, RepoConfig

logger = get_logger(__name__)

_AUTH_CLASSES = {ResponseClass.AUTH_REQUIRED, ResponseClass.RATE_LIMITED}


def _matches_name(name: str):
    lowered = name.lower()

    def _filter(entry: ContentEntry) -> bool:
        return entry.name.lower() == lowered

    return _filter


async def search_configured_repos(
    client: GitHubClient,
    name: str,
    repos: list[RepoConfig],
) -> list[tuple[SkillMetadata, RepoConfig]] | AuthRequired:
    """Collect every directory named ``name`` with a readable manifest, repo by repo."""
    matches: list[tuple[SkillMetadata, RepoConfig]] = []
    for repo_config in repos:
        outcomes = await scan_repository(
            client,
            repo_config,
            directory_filter=_matches_name(name),
            fallback_to_directory_name=True,
        )
        if isinstance(outcomes, AuthRequired):
            logger.info("Search stopped at auth wall", data={"repo": repo_config.repo})
            return outcomes
        matches.extend(
            (outcome.metadata, repo_config) for outcome in outcomes if isinstance(outcome, Found)
        )
    return matches


async def _resolve_commit(
    client: GitHubClient,
    metadata: SkillMetadata,
    branch: str,
) -> ResolvedSkill | AuthRequired:
    try:
        commit_sha = await client.get_latest_commit_sha(metadata.repo, branch)
    except GitHubAPIError as exc:
        if exc.classification in _AUTH_CLASSES:
            return AuthRequired.from_error(exc)
        raise
    return ResolvedSkill(metadata=metadata, branch=branch, commit_sha=commit_sha)


async def _resolve_search(
    client: GitHubClient,
    source: RepoSearch,
    store: ManifestStore,
) -> ResolveOutcome:
    repos = store.get_config().repos
    if not repos:
        return NotFound(
            name=source.name,
            message="No repositories configured. Add one with: skilluse repo add owner/repo",
        )

    matches = await search_configured_repos(client, source.name, repos)
    if isinstance(matches, AuthRequired):
        return matches

    if not matches:
        return NotFound(
            name=source.name,
            message=f'Skill "{source.name}" not found in configured repositories',
        )
    if len(matches) > 1:
        return Conflict(
            name=source.name,
            sources=tuple(SkillSource(repo=meta.repo, path=meta.path) for meta, _ in matches),
        )

    metadata, repo_config = matches[0]
    return await _resolve_commit(client, metadata, repo_config.branch)


async def _resolve_reference(
    client: GitHubClient,
    source: GitHubRef,
    store: ManifestStore,
) -> ResolveOutcome:
    repo = source.full_name
    path = (source.path or "").strip("/")
    configured = store.get_repo(repo)
    branch = configured.branch if configured is not None else (source.branch or DEFAULT_BRANCH)

    fetched = await fetch_skill_at(
        client,
        repo,
        path,
        branch,
        fallback_name=skill_name_from_path(path, source.repo),
    )
    if isinstance(fetched, AuthRequired):
        return fetched
    if fetched is None:
        location = f"{repo}/{path}" if path else repo
        return NotFound(name=location, message=f"No SKILL.md found at {location} ({branch})")

    return await _resolve_commit(client, fetched, branch)


async def resolve_skill(
    client: GitHubClient,
    source: InstallSource,
    store: ManifestStore,
) -> ResolveOutcome:
    if isinstance(source, RepoSearch):
        return await _resolve_search(client, source, store)
    return await _resolve_reference(client, source, store)
