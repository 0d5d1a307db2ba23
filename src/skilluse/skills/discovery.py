"""Repository scan for ``SKILL.md`` files, grouped into collection roots."""

from __future__ import annotations

from typing import TYPE_CHECKING

from skilluse.core.exceptions import GitHubAPIError, SkillNotFoundError
from skilluse.core.logging.logger import get_logger
from skilluse.github.access import ResponseClass
from skilluse.skills.models import SKILL_MANIFEST_FILENAME, DiscoveryResult, SkillPath
from skilluse.skills.results import AuthRequired

if TYPE_CHECKING:
    from collections.abc import Iterable

    from skilluse.github.client import GitHubClient
    from skilluse.skills.results import DiscoverOutcome

logger = get_logger(__name__)

_MANIFEST_SUFFIX = f"/{SKILL_MANIFEST_FILENAME}"


def extract_parent_paths(manifest_paths: Iterable[str]) -> list[SkillPath]:
    """Count skills per first path segment of each manifest's directory.

    ``skills/pdf/SKILL.md`` and ``skills/commit/SKILL.md`` both count towards
    ``skills/``; a root-level ``pdf/SKILL.md`` is its own ``pdf/`` entry.
    Sorted by descending count, ties in first-seen order.
    """
    counts: dict[str, int] = {}
    for manifest_path in manifest_paths:
        parts = [part for part in manifest_path.split("/")[:-1] if part]
        if not parts:
            continue
        root = f"{parts[0]}/"
        counts[root] = counts.get(root, 0) + 1

    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [SkillPath(path=path, skill_count=count) for path, count in ordered]


async def discover_skill_paths(
    client: GitHubClient,
    owner: str,
    repo: str,
    branch: str,
) -> DiscoverOutcome:
    full_name = f"{owner}/{repo}"
    try:
        tree = await client.get_tree(full_name, branch)
    except GitHubAPIError as exc:
        if exc.classification in {ResponseClass.AUTH_REQUIRED, ResponseClass.RATE_LIMITED}:
            return AuthRequired.from_error(exc)
        if exc.classification is ResponseClass.NOT_FOUND:
            if not client.has_token:
                # Without credentials GitHub answers 404 for private repositories too.
                return AuthRequired(message=exc.message)
            raise SkillNotFoundError(
                f"Repository {full_name} not found or branch '{branch}' doesn't exist"
            ) from exc
        raise

    manifest_paths = [
        entry.path for entry in tree.blobs() if entry.path.endswith(_MANIFEST_SUFFIX)
    ]
    if tree.truncated:
        logger.warning(
            "Repository tree listing was truncated; some skills may be missing",
            data={"repo": full_name, "branch": branch},
        )

    return DiscoveryResult(
        skill_paths=tuple(extract_parent_paths(manifest_paths)),
        total_skills=len(manifest_paths),
        truncated=tree.truncated,
    )
