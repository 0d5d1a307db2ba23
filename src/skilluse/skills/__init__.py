"""Skill resolution, installation and update pipeline."""

from skilluse.skills.manager import SkillManager
from skilluse.skills.models import SkillMetadata
from skilluse.skills.source import GitHubRef, RepoSearch, parse_install_source

__all__ = [
    "GitHubRef",
    "RepoSearch",
    "SkillManager",
    "SkillMetadata",
    "parse_install_source",
]
