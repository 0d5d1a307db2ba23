"""Formatting helpers for repositories, revisions and install paths."""

from __future__ import annotations

from pathlib import Path


def format_revision_short(revision: str | None) -> str:
    if revision is None:
        return "?"
    trimmed = revision.strip()
    if not trimmed:
        return "?"
    normalized = trimmed.lower()
    if len(normalized) >= 8 and all(ch in "0123456789abcdef" for ch in normalized):
        return trimmed[:7]
    return trimmed


def format_repo_display_url(
    repo: str,
    path: str | None = None,
    *,
    branch: str | None = None,
    web_host: str = "github.com",
) -> str:
    """Web URL for ``owner/repo``, optionally pointing into a branch directory."""
    base = f"https://{web_host}/{repo.strip('/')}"
    if branch and path:
        return f"{base}/tree/{branch}/{path.strip('/')}"
    if branch:
        return f"{base}/tree/{branch}"
    return base


def format_display_path(path: str | Path, *, home: Path | None = None) -> str:
    """Abbreviate paths under the home directory with ``~``."""
    candidate = Path(path)
    home_dir = home or Path.home()
    try:
        relative = candidate.relative_to(home_dir)
    except ValueError:
        return str(candidate)
    if not relative.parts:
        return "~"
    return f"~/{relative.as_posix()}"
