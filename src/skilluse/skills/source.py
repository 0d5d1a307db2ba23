"""Interpretation of user-supplied install targets."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from urllib.parse import urlparse

from skilluse.skills.models import DEFAULT_BRANCH, SKILL_MANIFEST_FILENAME

_REPO_COORDINATE_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


@dataclass(frozen=True, slots=True)
class RepoSearch:
    """Search every configured repository for a skill directory called ``name``."""

    name: str


@dataclass(frozen=True, slots=True)
class GitHubRef:
    """An explicit repository coordinate, optionally narrowed to a sub-path."""

    owner: str
    repo: str
    branch: str = DEFAULT_BRANCH
    path: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


InstallSource = RepoSearch | GitHubRef


def _host_matches(netloc: str, web_host: str) -> bool:
    host = netloc.lower()
    return host == web_host or host == f"www.{web_host}"


def parse_install_source(value: str, *, web_host: str = "github.com") -> InstallSource:
    """Classify ``value`` as a repository URL or a name to search for.

    Anything that is not a URL on ``web_host`` with at least ``owner/repo`` is a
    name search; this never raises.
    """
    text = value.strip()
    parsed = urlparse(text)
    if parsed.scheme not in {"http", "https"} or not _host_matches(parsed.netloc, web_host):
        return RepoSearch(name=text)

    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        return RepoSearch(name=text)

    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]

    branch = DEFAULT_BRANCH
    path: str | None = None
    if len(parts) >= 4 and parts[2] in {"tree", "blob"}:
        branch = parts[3]
        sub_parts = parts[4:]
        if parts[2] == "blob" and sub_parts and sub_parts[-1] == SKILL_MANIFEST_FILENAME:
            sub_parts = sub_parts[:-1]
        path = "/".join(sub_parts) or None

    return GitHubRef(owner=owner, repo=repo, branch=branch, path=path)


def parse_repo_coordinate(value: str) -> tuple[str, str] | None:
    """Split ``owner/repo``; returns ``None`` when the text is not that shape."""
    text = value.strip()
    if not _REPO_COORDINATE_RE.match(text):
        return None
    owner, repo = text.split("/", 1)
    return owner, repo


def skill_name_from_path(path: str | None, repo: str) -> str:
    if path:
        name = PurePosixPath(path).name
        if name:
            return name
    return repo
