from __future__ import annotations

import httpx
import pytest

from skilluse.core.exceptions import GitHubAPIError
from skilluse.github.access import ResponseClass
from skilluse.github.client import GitHubClient


@pytest.mark.asyncio
async def test_list_directory_returns_entries(github) -> None:
    github.add_repo("acme/skills", {"skills/pdf/SKILL.md": "x", "skills/lint/SKILL.md": "y", "README.md": "r"})

    async with github.client() as client:
        entries = await client.list_directory("acme/skills", "skills", "main")
        root = await client.list_directory("acme/skills", "", "main")

    assert [(entry.name, entry.type) for entry in entries] == [("lint", "dir"), ("pdf", "dir")]
    assert {entry.name for entry in root} == {"README.md", "skills"}


@pytest.mark.asyncio
async def test_list_directory_on_a_file_is_empty(github) -> None:
    github.add_repo("acme/skills", {"README.md": "r"})

    async with github.client() as client:
        assert await client.list_directory("acme/skills", "README.md", "main") == []


@pytest.mark.asyncio
async def test_get_tree_and_commit_sha(github) -> None:
    github.add_repo("acme/skills", {"pdf/SKILL.md": "x", "pdf/scripts/run.sh": "echo"}, sha="f" * 40)

    async with github.client() as client:
        tree = await client.get_tree("acme/skills", "main")
        sha = await client.get_latest_commit_sha("acme/skills", "main")

    assert sha == "f" * 40
    assert [entry.path for entry in tree.blobs()] == ["pdf/SKILL.md", "pdf/scripts/run.sh"]
    assert tree.truncated is False


@pytest.mark.asyncio
async def test_get_file_bytes_uses_raw_accept_and_bearer_token(github) -> None:
    github.add_repo("acme/private", {"pdf/SKILL.md": b"\x00binary"}, private=True)

    async with github.client(token="tok") as client:
        content = await client.get_file_bytes("acme/private", "pdf/SKILL.md", "main")

    assert content == b"\x00binary"
    request = github.requests[-1]
    assert request.headers["Authorization"] == "Bearer tok"
    assert request.headers["Accept"] == "application/vnd.github.raw+json"
    assert request.url.params["ref"] == "main"


@pytest.mark.asyncio
async def test_non_success_raises_classified_error(github) -> None:
    github.fail("/repos/acme/skills", 403, {"X-RateLimit-Remaining": "0"})

    async with github.client() as client:
        with pytest.raises(GitHubAPIError) as exc_info:
            await client.get_tree("acme/skills", "main")

    assert exc_info.value.status_code == 403
    assert exc_info.value.classification is ResponseClass.RATE_LIMITED
    assert exc_info.value.message.startswith("Rate limit exceeded")


@pytest.mark.asyncio
async def test_get_repository_reports_visibility(github) -> None:
    github.add_repo("acme/skills", {"a/SKILL.md": "x"})

    async with github.client() as client:
        info = await client.get_repository("acme/skills")

    assert info.full_name == "acme/skills"
    assert info.private is False


@pytest.mark.asyncio
async def test_commit_payload_without_sha_is_an_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))

    async with GitHubClient(transport=transport) as client:
        with pytest.raises(GitHubAPIError) as exc_info:
            await client.get_latest_commit_sha("acme/skills", "main")

    assert exc_info.value.classification is ResponseClass.FAILED


@pytest.mark.asyncio
async def test_request_count_tracks_calls(github) -> None:
    github.add_repo("acme/skills", {"a/SKILL.md": "x"})

    async with github.client() as client:
        await client.get_latest_commit_sha("acme/skills", "main")
        await client.get_repository("acme/skills")

    assert client.request_count == 2
