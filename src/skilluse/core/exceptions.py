"""Exception types raised by the skill pipeline.

Expected outcomes (auth walls, missing skills, ambiguous names, declined
confirmations) are returned as result variants; only hard failures raise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from skilluse.github.access import ResponseClass


class SkillUseError(Exception):
    """Base class for skilluse failures."""


class GitHubAPIError(SkillUseError):
    """A GitHub request returned a non-success response."""

    def __init__(self, message: str, *, status_code: int, classification: ResponseClass) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.classification = classification


class SkillNotFoundError(SkillUseError):
    """A repository, branch or skill path could not be located."""


class EmptySkillDirectoryError(SkillUseError):
    """A skill directory was located but holds no files."""


class UnknownAgentError(SkillUseError):
    """No agent is registered under the requested id."""


class ManifestStoreError(SkillUseError):
    """The local manifest is unreadable or rejected an update."""
