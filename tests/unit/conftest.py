from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx
import pytest

from skilluse.config import GitHubSettings
from skilluse.github.client import GitHubClient

if TYPE_CHECKING:
    from collections.abc import Iterator


API_URL = "https://api.github.test"


@dataclass
class FakeRepo:
    full_name: str
    private: bool = False
    truncated: bool = False
    branches: dict[str, str] = field(default_factory=dict)
    commits: dict[str, dict[str, bytes]] = field(default_factory=dict)

    def push(self, files: dict[str, str | bytes], *, sha: str, branch: str = "main") -> None:
        self.commits[sha] = {
            path: content.encode("utf-8") if isinstance(content, str) else content
            for path, content in files.items()
        }
        self.branches[branch] = sha

    def files_at(self, ref: str) -> tuple[str, dict[str, bytes]] | None:
        sha = self.branches.get(ref, ref)
        files = self.commits.get(sha)
        if files is None:
            return None
        return sha, files


class FakeGitHub:
    """In-memory GitHub REST API served through :class:`httpx.MockTransport`."""

    def __init__(self) -> None:
        self.repos: dict[str, FakeRepo] = {}
        self.requests: list[httpx.Request] = []
        self._failures: list[tuple[str, int, dict[str, str]]] = []

    def add_repo(
        self,
        full_name: str,
        files: dict[str, str | bytes],
        *,
        sha: str = "a" * 40,
        branch: str = "main",
        private: bool = False,
        truncated: bool = False,
    ) -> FakeRepo:
        repo = FakeRepo(full_name=full_name, private=private, truncated=truncated)
        repo.push(files, sha=sha, branch=branch)
        self.repos[full_name] = repo
        return repo

    def fail(self, path_prefix: str, status: int, headers: dict[str, str] | None = None) -> None:
        """Answer every request whose URL path starts with ``path_prefix`` with ``status``."""
        self._failures.append((path_prefix, status, dict(headers or {})))

    def client(self, token: str | None = None, **settings) -> GitHubClient:
        return GitHubClient(
            token=token,
            settings=GitHubSettings(api_url=API_URL, **settings),
            transport=httpx.MockTransport(self.handler),
        )

    def paths_for(self, full_name: str) -> list[str]:
        prefix = f"/repos/{full_name}"
        return [
            request.url.path
            for request in self.requests
            if request.url.path == prefix or request.url.path.startswith(prefix + "/")
        ]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for prefix, status, headers in self._failures:
            if path.startswith(prefix):
                return httpx.Response(status, headers=headers, json={"message": "failure"})

        parts = path.strip("/").split("/")
        if len(parts) < 3 or parts[0] != "repos":
            return _not_found()
        repo = self.repos.get(f"{parts[1]}/{parts[2]}")
        if repo is None:
            return _not_found()
        if repo.private and "Authorization" not in request.headers:
            return _not_found()

        rest = parts[3:]
        if not rest:
            return httpx.Response(
                200,
                json={"full_name": repo.full_name, "private": repo.private, "default_branch": "main"},
            )
        if rest[0] == "commits":
            resolved = repo.files_at("/".join(rest[1:]))
            if resolved is None:
                return _not_found()
            return httpx.Response(200, json={"sha": resolved[0]})
        if rest[:2] == ["git", "trees"]:
            return self._tree(repo, "/".join(rest[2:]))
        if rest[0] == "contents":
            ref = request.url.params.get("ref", "main")
            raw = request.headers.get("Accept") == "application/vnd.github.raw+json"
            return self._contents(repo, "/".join(rest[1:]), ref, raw)
        return _not_found()

    def _tree(self, repo: FakeRepo, ref: str) -> httpx.Response:
        resolved = repo.files_at(ref)
        if resolved is None:
            return _not_found()
        sha, files = resolved
        directories = sorted(
            {"/".join(file_path.split("/")[:index]) for file_path in files for index in range(1, file_path.count("/") + 1)}
        )
        entries = [{"path": directory, "type": "tree", "sha": "t"} for directory in directories]
        entries.extend({"path": file_path, "type": "blob", "sha": "b"} for file_path in sorted(files))
        return httpx.Response(200, json={"sha": sha, "tree": entries, "truncated": repo.truncated})

    def _contents(self, repo: FakeRepo, path: str, ref: str, raw: bool) -> httpx.Response:
        resolved = repo.files_at(ref)
        if resolved is None:
            return _not_found()
        _, files = resolved
        if path in files:
            if raw:
                return httpx.Response(200, content=files[path])
            return httpx.Response(200, json={"name": path.split("/")[-1], "path": path, "type": "file"})
        if raw:
            return _not_found()

        prefix = f"{path}/" if path else ""
        children: dict[str, str] = {}
        for file_path in files:
            if not file_path.startswith(prefix):
                continue
            remainder = file_path[len(prefix):]
            name, _, tail = remainder.partition("/")
            children[name] = "dir" if tail else "file"
        if not children:
            return _not_found()
        return httpx.Response(
            200,
            json=[
                {"name": name, "path": f"{prefix}{name}", "type": kind}
                for name, kind in sorted(children.items())
            ],
        )


def _not_found() -> httpx.Response:
    return httpx.Response(404, json={"message": "Not Found"})


def render_skill_md(name: str | None, description: str = "", **extra: str) -> str:
    lines = ["---"]
    if name is not None:
        lines.append(f"name: {name}")
    if description:
        lines.append(f"description: {description}")
    lines.extend(f"{key}: {value}" for key, value in extra.items())
    lines.append("---")
    lines.append("")
    lines.append(f"# {name or 'Skill'}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def skill_md():
    return render_skill_md


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path, monkeypatch) -> Iterator[None]:
    import skilluse.config as config_module

    monkeypatch.setenv("SKILLUSE_CONFIG_DIR", str(tmp_path / "config"))
    for name in ("SKILLUSE_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    previous = config_module._settings
    config_module._settings = None
    try:
        yield
    finally:
        config_module._settings = previous
