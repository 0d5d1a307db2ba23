"""Materialize a remote skill directory on local storage."""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from skilluse.core.exceptions import EmptySkillDirectoryError, GitHubAPIError, SkillUseError
from skilluse.core.logging.logger import get_logger
from skilluse.github.access import ResponseClass
from skilluse.skills.results import AuthRequired

if TYPE_CHECKING:
    from collections.abc import Callable

    from skilluse.github.client import GitHubClient

logger = get_logger(__name__)

METADATA_PHASE = (0, 25)
DOWNLOAD_PHASE = (25, 75)
FINALIZE_PHASE = (75, 100)

_AUTH_CLASSES = {ResponseClass.AUTH_REQUIRED, ResponseClass.RATE_LIMITED}


def download_progress_percent(written: int, total: int) -> int:
    """Map a file count onto the download band of a 0-100 progress bar."""
    start, end = DOWNLOAD_PHASE
    if total <= 0:
        return start
    return round(start + (written / total) * (end - start))


def _relative_target(target_dir: Path, relative_path: str) -> Path:
    relative = PurePosixPath(relative_path)
    if relative.is_absolute() or ".." in relative.parts:
        raise SkillUseError(f"Refusing to write outside the skill directory: {relative_path}")
    return target_dir.joinpath(*relative.parts)


def is_safe_skill_name(name: str) -> bool:
    """A skill name is usable as a directory name when it is one plain path segment."""
    if not name or name in {".", ".."} or "\\" in name:
        return False
    return PurePosixPath(name).name == name


def skill_install_dir(base_dir: Path, name: str) -> Path:
    """Directory ``name`` is installed into under an agent's skills directory."""
    if not is_safe_skill_name(name):
        raise SkillUseError(f"Invalid skill name: {name!r}")
    return base_dir / name


def _check_managed_path(path: Path, destination_root: Path | None) -> None:
    if not is_safe_skill_name(path.name):
        raise SkillUseError(f"Skill path is outside of the managed skills directory: {path}")
    root = (destination_root if destination_root is not None else path.parent).resolve()
    candidate = path.parent.resolve() / path.name
    if root not in candidate.parents:
        raise SkillUseError(f"Skill path is outside of the managed skills directory: {path}")


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


async def install_skill_files(
    client: GitHubClient,
    repo: str,
    skill_path: str,
    ref: str,
    target_dir: Path,
    on_progress: Callable[[int, int], None] | None = None,
) -> AuthRequired | None:
    """Download every file under ``skill_path`` at ``ref`` into ``target_dir``.

    Files are written one at a time and ``on_progress(written, total)`` fires
    after each. A failure part way through leaves the files written so far in
    place; callers only record the install after this returns ``None``.
    """
    try:
        tree = await client.get_tree(repo, ref)
    except GitHubAPIError as exc:
        if exc.classification in _AUTH_CLASSES:
            return AuthRequired.from_error(exc)
        raise

    prefix = f"{skill_path.strip('/')}/" if skill_path.strip("/") else ""
    skill_files = [entry for entry in tree.blobs() if entry.path.startswith(prefix)]
    if not skill_files:
        raise EmptySkillDirectoryError(f"No files found in skill directory: {skill_path}")

    target_dir.mkdir(parents=True, exist_ok=True)
    total = len(skill_files)
    for written, entry in enumerate(skill_files, start=1):
        destination = _relative_target(target_dir, entry.path[len(prefix):])
        try:
            content = await client.get_file_bytes(repo, entry.path, ref)
        except GitHubAPIError as exc:
            if exc.classification in _AUTH_CLASSES:
                return AuthRequired.from_error(exc)
            raise SkillUseError(f"Failed to download file: {entry.path} ({exc.message})") from exc

        await asyncio.to_thread(_write_file, destination, content)
        if on_progress is not None:
            on_progress(written, total)

    logger.info(
        "Installed skill files",
        data={"repo": repo, "path": skill_path, "ref": ref, "files": total, "target": str(target_dir)},
    )
    return None


def remove_skill_directory(path: Path, *, destination_root: Path | None = None) -> bool:
    """Delete ``path`` recursively; returns whether anything was removed.

    ``path`` must be a single-segment child of ``destination_root`` (its own
    parent when omitted); anything else raises ``SkillUseError``.
    """
    _check_managed_path(path, destination_root)
    if not path.exists() and not path.is_symlink():
        return False
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()
    return True


async def replace_skill_files(
    client: GitHubClient,
    repo: str,
    skill_path: str,
    ref: str,
    target_dir: Path,
    on_progress: Callable[[int, int], None] | None = None,
    *,
    destination_root: Path | None = None,
) -> AuthRequired | None:
    """Remove ``target_dir`` entirely, then download ``skill_path`` at ``ref`` into it."""
    await asyncio.to_thread(remove_skill_directory, target_dir, destination_root=destination_root)
    return await install_skill_files(client, repo, skill_path, ref, target_dir, on_progress)
