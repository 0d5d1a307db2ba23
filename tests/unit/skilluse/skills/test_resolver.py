from __future__ import annotations

import pytest

from skilluse.skills.models import SkillSource
from skilluse.skills.resolver import resolve_skill
from skilluse.skills.results import AuthRequired, Conflict, NotFound, ResolvedSkill
from skilluse.skills.source import GitHubRef, RepoSearch
from skilluse.store import InMemoryManifestStore, LocalManifest, RepoConfig


def _store(*repos: RepoConfig) -> InMemoryManifestStore:
    return InMemoryManifestStore(LocalManifest(repos=list(repos)))


@pytest.mark.asyncio
async def test_single_match_resolves_with_commit(github, skill_md) -> None:
    github.add_repo("acme/skills", {"skills/pdf/SKILL.md": skill_md("pdf")}, sha="1" * 40)
    github.add_repo("acme/tools", {"tools/lint/SKILL.md": skill_md("lint")})
    store = _store(RepoConfig(repo="acme/skills", paths=["skills"]), RepoConfig(repo="acme/tools", paths=["tools"]))

    async with github.client() as client:
        result = await resolve_skill(client, RepoSearch(name="PDF"), store)

    assert isinstance(result, ResolvedSkill)
    assert result.metadata.name == "pdf"
    assert result.metadata.path == "skills/pdf"
    assert result.branch == "main"
    assert result.commit_sha == "1" * 40


@pytest.mark.asyncio
async def test_matches_in_two_repositories_conflict(github, skill_md) -> None:
    github.add_repo("acme/skills", {"skills/pdf/SKILL.md": skill_md("pdf")})
    github.add_repo("other/skills", {"pdf/SKILL.md": skill_md("pdf")})
    store = _store(RepoConfig(repo="acme/skills", paths=["skills"]), RepoConfig(repo="other/skills"))

    async with github.client() as client:
        result = await resolve_skill(client, RepoSearch(name="pdf"), store)

    assert isinstance(result, Conflict)
    assert set(result.sources) == {
        SkillSource(repo="acme/skills", path="skills/pdf"),
        SkillSource(repo="other/skills", path="pdf"),
    }
    assert "found in multiple repos" in result.message


@pytest.mark.asyncio
async def test_conflict_does_not_depend_on_repository_order(github, skill_md) -> None:
    github.add_repo("acme/skills", {"skills/pdf/SKILL.md": skill_md("pdf")})
    github.add_repo("other/skills", {"pdf/SKILL.md": skill_md("pdf")})
    store = _store(RepoConfig(repo="other/skills"), RepoConfig(repo="acme/skills", paths=["skills"]))

    async with github.client() as client:
        result = await resolve_skill(client, RepoSearch(name="pdf"), store)

    assert isinstance(result, Conflict)
    assert len(result.sources) == 2


@pytest.mark.asyncio
async def test_unnamed_manifest_matches_by_directory_name(github) -> None:
    github.add_repo("acme/skills", {"pdf/SKILL.md": "# PDF helpers\n"})
    store = _store(RepoConfig(repo="acme/skills"))

    async with github.client() as client:
        result = await resolve_skill(client, RepoSearch(name="pdf"), store)

    assert isinstance(result, ResolvedSkill)
    assert result.metadata.name == "pdf"


@pytest.mark.asyncio
async def test_no_match_is_not_found(github, skill_md) -> None:
    github.add_repo("acme/skills", {"pdf/SKILL.md": skill_md("pdf")})
    store = _store(RepoConfig(repo="acme/skills"))

    async with github.client() as client:
        result = await resolve_skill(client, RepoSearch(name="docx"), store)

    assert isinstance(result, NotFound)
    assert result.name == "docx"


@pytest.mark.asyncio
async def test_no_configured_repositories(github) -> None:
    async with github.client() as client:
        result = await resolve_skill(client, RepoSearch(name="pdf"), InMemoryManifestStore())

    assert isinstance(result, NotFound)
    assert github.requests == []


@pytest.mark.asyncio
async def test_auth_wall_stops_search_before_later_repositories(github, skill_md) -> None:
    github.add_repo("acme/private", {"pdf/SKILL.md": skill_md("pdf")})
    github.add_repo("acme/public", {"pdf/SKILL.md": skill_md("pdf")})
    github.fail("/repos/acme/private", 401)
    store = _store(RepoConfig(repo="acme/private"), RepoConfig(repo="acme/public"))

    async with github.client() as client:
        result = await resolve_skill(client, RepoSearch(name="pdf"), store)

    assert isinstance(result, AuthRequired)
    assert github.paths_for("acme/private")
    assert github.paths_for("acme/public") == []


@pytest.mark.asyncio
async def test_direct_reference_uses_configured_branch(github, skill_md) -> None:
    repo = github.add_repo("acme/skills", {"tools/pdf/SKILL.md": skill_md("pdf-tools")}, sha="2" * 40, branch="stable")
    repo.push({"tools/pdf/SKILL.md": skill_md("pdf-main")}, sha="3" * 40, branch="main")
    store = _store(RepoConfig(repo="acme/skills", branch="stable"))

    async with github.client() as client:
        result = await resolve_skill(
            client, GitHubRef(owner="acme", repo="skills", branch="main", path="tools/pdf"), store
        )

    assert isinstance(result, ResolvedSkill)
    assert result.branch == "stable"
    assert result.metadata.name == "pdf-tools"
    assert result.commit_sha == "2" * 40


@pytest.mark.asyncio
async def test_direct_reference_to_unconfigured_repo(github) -> None:
    github.add_repo("acme/single", {"SKILL.md": "---\ndescription: root skill\n---\n"}, branch="dev")

    async with github.client() as client:
        result = await resolve_skill(
            client, GitHubRef(owner="acme", repo="single", branch="dev"), InMemoryManifestStore()
        )

    assert isinstance(result, ResolvedSkill)
    assert result.metadata.name == "single"
    assert result.metadata.path == ""
    assert result.branch == "dev"


@pytest.mark.asyncio
async def test_direct_reference_without_manifest(github) -> None:
    github.add_repo("acme/skills", {"README.md": "nothing here"})

    async with github.client() as client:
        result = await resolve_skill(
            client, GitHubRef(owner="acme", repo="skills", path="pdf"), InMemoryManifestStore()
        )

    assert isinstance(result, NotFound)
    assert result.name == "acme/skills/pdf"
