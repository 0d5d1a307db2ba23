from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from skilluse.agents import AGENTS, AgentRegistry
from skilluse.core.exceptions import UnknownAgentError

if TYPE_CHECKING:
    from pathlib import Path


def test_known_agents() -> None:
    assert set(AGENTS) == {"claude", "cursor", "amp", "vscode", "goose", "opencode", "codex", "letta", "project"}


def test_local_and_global_paths(tmp_path: Path) -> None:
    registry = AgentRegistry(cwd=tmp_path / "work", home=tmp_path / "home")

    assert registry.resolve_path("claude", "local") == (tmp_path / "work" / ".claude" / "skills").resolve()
    assert registry.resolve_path("claude", "global") == tmp_path / "home" / ".claude" / "skills"
    assert registry.resolve_path("goose", "global") == tmp_path / "home" / ".config" / "goose" / "skills"


def test_project_only_agent_uses_local_path_for_global_scope(tmp_path: Path) -> None:
    registry = AgentRegistry(cwd=tmp_path, home=tmp_path / "home")

    assert registry.resolve_path("cursor", "global") == (tmp_path / ".cursor" / "skills").resolve()
    assert registry.resolve_path("vscode", "global") == (tmp_path / ".github" / "skills").resolve()


def test_unknown_agent(tmp_path: Path) -> None:
    registry = AgentRegistry(cwd=tmp_path)

    assert registry.get_agent("emacs") is None
    with pytest.raises(UnknownAgentError, match="Unknown agent: emacs"):
        registry.resolve_path("emacs", "local")
