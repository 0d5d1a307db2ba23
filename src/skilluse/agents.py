"""Supported coding agents and where each one reads skills from."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from skilluse.core.exceptions import UnknownAgentError

if TYPE_CHECKING:
    from skilluse.store import Scope


@dataclass(frozen=True, slots=True)
class AgentConfig:
    id: str
    name: str
    description: str
    local_path: str
    """Project-relative skills directory."""
    global_path: str | None
    """Home-relative skills directory; ``None`` when the agent is project-only."""


AGENTS: dict[str, AgentConfig] = {
    agent.id: agent
    for agent in (
        AgentConfig("claude", "Claude Code", "Anthropic Claude Code CLI", ".claude/skills", ".claude/skills"),
        AgentConfig("cursor", "Cursor", "Cursor AI Editor", ".cursor/skills", None),
        AgentConfig("amp", "Amp", "Sourcegraph Amp CLI", ".amp/skills", ".amp/skills"),
        AgentConfig("vscode", "VS Code / Copilot", "Visual Studio Code with GitHub Copilot", ".github/skills", None),
        AgentConfig("goose", "Goose", "Block Goose AI Agent", ".goose/skills", ".config/goose/skills"),
        AgentConfig("opencode", "OpenCode", "OpenCode CLI", ".opencode/skills", ".opencode/skills"),
        AgentConfig("codex", "Codex", "OpenAI Codex CLI", ".codex/skills", ".codex/skills"),
        AgentConfig("letta", "Letta", "Letta AI Agent", ".letta/skills", ".letta/skills"),
        AgentConfig("project", "Portable", "Portable agent-agnostic skills directory", ".skills", None),
    )
}


class AgentPathResolver(Protocol):
    def resolve_path(self, agent_id: str, scope: Scope) -> Path: ...


class AgentRegistry:
    """Resolves an agent's skills directory for a scope."""

    def __init__(
        self,
        agents: dict[str, AgentConfig] | None = None,
        *,
        cwd: Path | None = None,
        home: Path | None = None,
    ) -> None:
        self._agents = dict(agents or AGENTS)
        self._cwd = cwd
        self._home = home

    def get_agent(self, agent_id: str) -> AgentConfig | None:
        return self._agents.get(agent_id)

    def list_agents(self) -> list[AgentConfig]:
        return list(self._agents.values())

    def resolve_path(self, agent_id: str, scope: Scope) -> Path:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise UnknownAgentError(f"Unknown agent: {agent_id}")

        if scope == "global" and agent.global_path is not None:
            return (self._home or Path.home()) / agent.global_path
        # Project-only agents fall back to the working directory for either scope.
        return ((self._cwd or Path.cwd()) / agent.local_path).resolve()
