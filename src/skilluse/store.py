"""Local manifest of configured repositories and installed skills.

The manifest is a single JSON document per user holding ``defaultRepo``,
``repos`` and ``installed``. Writes are last-write-wins: each operation reads
the whole document, changes one collection and writes it back.
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skilluse.core.exceptions import ManifestStoreError
from skilluse.core.logging.logger import get_logger

logger = get_logger(__name__)

Scope = Literal["local", "global"]


def _same_name(left: str, right: str) -> bool:
    return left.lower() == right.lower()


class RepoConfig(BaseModel):
    repo: str
    """``owner/name`` coordinate."""
    branch: str = "main"
    paths: list[str] = Field(default_factory=list)
    """Top-level directories to search; empty means the repository root."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @property
    def search_paths(self) -> list[str]:
        return list(self.paths) if self.paths else [""]


class InstalledSkill(BaseModel):
    name: str
    repo: str
    repo_path: str = Field(alias="repoPath")
    commit_sha: str = Field(alias="commitSha")
    version: str = "1.0.0"
    type: str = "skill"
    installed_path: str = Field(alias="installedPath")
    scope: Scope = "local"
    agent: str | None = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LocalManifest(BaseModel):
    default_repo: str | None = Field(default=None, alias="defaultRepo")
    repos: list[RepoConfig] = Field(default_factory=list)
    installed: list[InstalledSkill] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def get_repo(self, repo: str) -> RepoConfig | None:
        for entry in self.repos:
            if entry.repo == repo:
                return entry
        return None

    def get_installed(self, name: str) -> InstalledSkill | None:
        for entry in self.installed:
            if _same_name(entry.name, name):
                return entry
        return None


class ManifestStore(ABC):
    """Manifest backend; subclasses provide ``load`` and ``save``, the upserts are shared.

    Installed skills are keyed by name, compared case-insensitively.
    """

    @abstractmethod
    def load(self) -> LocalManifest: ...

    @abstractmethod
    def save(self, manifest: LocalManifest) -> None: ...

    def get_config(self) -> LocalManifest:
        return self.load()

    def get_repo(self, repo: str) -> RepoConfig | None:
        return self.load().get_repo(repo)

    def get_installed_skill(self, name: str) -> InstalledSkill | None:
        return self.load().get_installed(name)

    def add_repo(self, repo: RepoConfig) -> None:
        manifest = self.load()
        repos = list(manifest.repos)
        for index, existing in enumerate(repos):
            if existing.repo == repo.repo:
                repos[index] = repo
                break
        else:
            repos.append(repo)
        self.save(manifest.model_copy(update={"repos": repos}))

    def remove_repo(self, repo_name: str) -> None:
        manifest = self.load()
        update: dict[str, object] = {
            "repos": [entry for entry in manifest.repos if entry.repo != repo_name]
        }
        if manifest.default_repo == repo_name:
            update["default_repo"] = None
        self.save(manifest.model_copy(update=update))

    def set_default_repo(self, repo_name: str | None) -> None:
        manifest = self.load()
        if repo_name is not None and manifest.get_repo(repo_name) is None:
            raise ManifestStoreError(f"Repository {repo_name} is not configured")
        self.save(manifest.model_copy(update={"default_repo": repo_name}))

    def add_installed_skill(self, skill: InstalledSkill) -> None:
        manifest = self.load()
        installed = list(manifest.installed)
        for index, existing in enumerate(installed):
            if _same_name(existing.name, skill.name):
                installed[index] = skill
                break
        else:
            installed.append(skill)
        self.save(manifest.model_copy(update={"installed": installed}))

    def remove_installed_skill(self, name: str) -> None:
        manifest = self.load()
        installed = [entry for entry in manifest.installed if not _same_name(entry.name, name)]
        self.save(manifest.model_copy(update={"installed": installed}))


class InMemoryManifestStore(ManifestStore):
    """Ephemeral manifest for tests and embedding."""

    def __init__(self, manifest: LocalManifest | None = None) -> None:
        self._manifest = (manifest or LocalManifest()).model_copy(deep=True)

    def load(self) -> LocalManifest:
        return self._manifest.model_copy(deep=True)

    def save(self, manifest: LocalManifest) -> None:
        self._manifest = manifest.model_copy(deep=True)


class JsonFileManifestStore(ManifestStore):
    """JSON file manifest, replaced atomically on every write."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> LocalManifest:
        if not self._path.exists():
            return LocalManifest()

        try:
            with open(self._path, encoding="utf-8") as handle:
                payload = json.load(handle)
            return LocalManifest.model_validate(payload)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.error(
                "Unreadable manifest",
                data={"path": str(self._path), "error": str(exc)},
            )
            raise ManifestStoreError(
                f"Cannot read manifest {self._path}: {exc}. Fix or move the file and retry."
            ) from exc

    def save(self, manifest: LocalManifest) -> None:
        payload = manifest.model_dump(mode="json", by_alias=True)

        self._path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            temp_path = Path(handle.name)
            json.dump(payload, handle, indent=2, ensure_ascii=False)
            handle.write("\n")

        os.replace(temp_path, self._path)
