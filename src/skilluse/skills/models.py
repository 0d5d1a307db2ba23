from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath

SKILL_MANIFEST_FILENAME = "SKILL.md"
DEFAULT_BRANCH = "main"
DEFAULT_VERSION = "1.0.0"
DEFAULT_SKILL_TYPE = "skill"


@dataclass(frozen=True, slots=True)
class SkillMetadata:
    """Skill fields parsed from a remote ``SKILL.md``; recomputed on every scan."""

    name: str
    description: str
    repo: str
    path: str
    version: str | None = None
    type: str | None = None
    author: str | None = None
    tags: tuple[str, ...] | None = None

    @property
    def directory_name(self) -> str:
        return PurePosixPath(self.path).name if self.path else self.repo.split("/")[-1]

    @property
    def manifest_path(self) -> str:
        return f"{self.path}/{SKILL_MANIFEST_FILENAME}" if self.path else SKILL_MANIFEST_FILENAME


@dataclass(frozen=True, slots=True)
class SkillSource:
    repo: str
    path: str

    def __str__(self) -> str:
        return f"{self.repo}/{self.path}" if self.path else self.repo


@dataclass(frozen=True, slots=True)
class SkillPath:
    path: str
    skill_count: int


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    skill_paths: tuple[SkillPath, ...] = field(default_factory=tuple)
    total_skills: int = 0
    truncated: bool = False
