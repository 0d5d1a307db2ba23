"""Result variants returned by pipeline operations.

Each operation returns a closed union of these types instead of raising for
expected outcomes, so callers render them with a ``match`` statement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeAlias

from skilluse.skills.models import DiscoveryResult, SkillMetadata, SkillSource

if TYPE_CHECKING:
    from skilluse.core.exceptions import GitHubAPIError
    from skilluse.store import InstalledSkill


@dataclass(frozen=True, slots=True)
class AuthRequired:
    """The remote demands credentials; recoverable by logging in."""

    message: str
    rate_limited: bool = False

    @classmethod
    def from_error(cls, error: GitHubAPIError) -> AuthRequired:
        from skilluse.github.access import ResponseClass

        return cls(
            message=error.message,
            rate_limited=error.classification is ResponseClass.RATE_LIMITED,
        )


@dataclass(frozen=True, slots=True)
class NotFound:
    name: str
    message: str


@dataclass(frozen=True, slots=True)
class Conflict:
    """A search name matched skills in more than one place."""

    name: str
    sources: tuple[SkillSource, ...]

    @property
    def message(self) -> str:
        listed = ", ".join(str(source) for source in self.sources)
        return f'Skill "{self.name}" found in multiple repos: {listed}'


@dataclass(frozen=True, slots=True)
class Cancelled:
    reason: str = "Installation cancelled"


@dataclass(frozen=True, slots=True)
class ResolvedSkill:
    metadata: SkillMetadata
    branch: str
    commit_sha: str


@dataclass(frozen=True, slots=True)
class Installed:
    skill: InstalledSkill
    metadata: SkillMetadata


@dataclass(frozen=True, slots=True)
class Uninstalled:
    skill: InstalledSkill


@dataclass(frozen=True, slots=True)
class UpToDate:
    skill: InstalledSkill

    @property
    def has_update(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class UpdateAvailable:
    skill: InstalledSkill
    latest_sha: str
    latest_version: str

    @property
    def has_update(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class UpdateCheckFailed:
    skill: InstalledSkill
    error: str


@dataclass(frozen=True, slots=True)
class Upgraded:
    skill: InstalledSkill
    previous_sha: str


@dataclass(frozen=True, slots=True)
class UpgradeFailed:
    skill: InstalledSkill
    error: str


@dataclass(frozen=True, slots=True)
class UpgradeReport:
    """Outcome of upgrading one or many skills; failures never hide successes."""

    upgraded: tuple[Upgraded, ...] = field(default_factory=tuple)
    failed: tuple[UpgradeFailed, ...] = field(default_factory=tuple)
    up_to_date: tuple[UpToDate, ...] = field(default_factory=tuple)

    @property
    def partial(self) -> bool:
        return bool(self.upgraded) and bool(self.failed)

    @property
    def message(self) -> str:
        attempted = len(self.upgraded) + len(self.failed)
        if attempted == 0:
            return "All skills are up to date"
        if not self.failed:
            return f"Upgraded {len(self.upgraded)} skill(s)"
        failed_names = ", ".join(item.skill.name for item in self.failed)
        if not self.upgraded:
            return f"All upgrades failed: {failed_names}"
        return f"{len(self.upgraded)} of {attempted} skills upgraded; failed: {failed_names}"


@dataclass(frozen=True, slots=True)
class SkillInfo:
    """Detail view of an installed skill."""

    name: str
    description: str
    version: str
    repo: str
    repo_path: str
    type: str | None = None
    author: str | None = None
    tags: tuple[str, ...] | None = None
    installed_path: str | None = None
    scope: str | None = None
    commit_sha: str | None = None
    agent: str | None = None


ResolveOutcome: TypeAlias = ResolvedSkill | NotFound | Conflict | AuthRequired
InstallOutcome: TypeAlias = Installed | NotFound | Conflict | AuthRequired | Cancelled
UninstallOutcome: TypeAlias = Uninstalled | NotFound
DiscoverOutcome: TypeAlias = DiscoveryResult | AuthRequired
FetchOutcome: TypeAlias = list[SkillMetadata] | AuthRequired
UpdateOutcome: TypeAlias = UpdateAvailable | UpToDate | AuthRequired
UpgradeOutcome: TypeAlias = UpgradeReport | NotFound | AuthRequired
