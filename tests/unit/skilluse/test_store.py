from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from skilluse.core.exceptions import ManifestStoreError
from skilluse.store import (
    InMemoryManifestStore,
    InstalledSkill,
    JsonFileManifestStore,
    LocalManifest,
    ManifestStore,
    RepoConfig,
)

if TYPE_CHECKING:
    from pathlib import Path


def _skill(name: str, sha: str = "a" * 40) -> InstalledSkill:
    return InstalledSkill(
        name=name,
        repo="acme/skills",
        repo_path=f"skills/{name}",
        commit_sha=sha,
        installed_path=f"/work/.claude/skills/{name}",
    )


def test_remove_default_repo_clears_default() -> None:
    store = InMemoryManifestStore()
    store.add_repo(RepoConfig(repo="acme/skills"))
    store.set_default_repo("acme/skills")

    store.remove_repo("acme/skills")

    manifest = store.get_config()
    assert manifest.default_repo is None
    assert manifest.repos == []


def test_remove_other_repo_keeps_default() -> None:
    store = InMemoryManifestStore()
    store.add_repo(RepoConfig(repo="acme/skills"))
    store.add_repo(RepoConfig(repo="other/skills"))
    store.set_default_repo("acme/skills")

    store.remove_repo("other/skills")

    assert store.get_config().default_repo == "acme/skills"


def test_default_repo_must_be_configured() -> None:
    store = InMemoryManifestStore()

    with pytest.raises(ManifestStoreError):
        store.set_default_repo("acme/skills")

    store.set_default_repo(None)
    assert store.get_config().default_repo is None


def test_add_repo_replaces_existing_entry() -> None:
    store = InMemoryManifestStore()
    store.add_repo(RepoConfig(repo="acme/skills"))
    store.add_repo(RepoConfig(repo="acme/skills", branch="dev", paths=["skills"]))

    repos = store.get_config().repos
    assert len(repos) == 1
    assert repos[0].branch == "dev"
    assert repos[0].search_paths == ["skills"]


def test_add_installed_skill_upserts_by_name() -> None:
    store = InMemoryManifestStore()
    store.add_installed_skill(_skill("pdf"))
    store.add_installed_skill(_skill("lint"))
    store.add_installed_skill(_skill("pdf", sha="b" * 40))

    installed = store.get_config().installed
    assert [skill.name for skill in installed] == ["pdf", "lint"]
    assert installed[0].commit_sha == "b" * 40

    store.remove_installed_skill("pdf")
    assert store.get_installed_skill("pdf") is None
    assert store.get_installed_skill("LINT") is not None


def test_in_memory_store_isolates_loaded_copies() -> None:
    store = InMemoryManifestStore()
    manifest = store.load()
    manifest.repos.append(RepoConfig(repo="acme/skills"))

    assert store.get_config().repos == []


def test_json_file_store_uses_camel_case_keys(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.json"
    store = JsonFileManifestStore(path)
    store.add_repo(RepoConfig(repo="acme/skills", paths=["skills"]))
    store.set_default_repo("acme/skills")
    store.add_installed_skill(_skill("pdf"))

    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload["defaultRepo"] == "acme/skills"
    assert payload["repos"] == [{"repo": "acme/skills", "branch": "main", "paths": ["skills"]}]
    entry = payload["installed"][0]
    assert entry["repoPath"] == "skills/pdf"
    assert entry["commitSha"] == "a" * 40
    assert entry["installedPath"] == "/work/.claude/skills/pdf"
    assert entry["scope"] == "local"

    reloaded = JsonFileManifestStore(path).get_config()
    assert reloaded == store.get_config()
    assert list(tmp_path.joinpath("nested").iterdir()) == [path]


def test_json_file_store_reads_existing_document(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "defaultRepo": "acme/skills",
                "repos": [{"repo": "acme/skills", "branch": "main", "paths": []}],
                "installed": [
                    {
                        "name": "pdf",
                        "repo": "acme/skills",
                        "repoPath": "pdf",
                        "commitSha": "abc",
                        "version": "1.0.0",
                        "type": "skill",
                        "installedPath": "/x/pdf",
                        "scope": "global",
                    }
                ],
            }
        ),
        encoding="utf-8",
    )

    manifest = JsonFileManifestStore(path).get_config()

    assert manifest.default_repo == "acme/skills"
    assert manifest.installed[0].scope == "global"
    assert manifest.installed[0].agent is None


def test_json_file_store_missing_file_gives_defaults(tmp_path: Path) -> None:
    missing = JsonFileManifestStore(tmp_path / "absent.json")
    assert missing.get_config() == LocalManifest()


def test_json_file_store_corrupt_file_is_never_overwritten(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    truncated = '{"defaultRepo": "acme/skills", "repos": [{"repo": "acme/skills"}], "installed": [{"name": "pdf"'
    path.write_text(truncated, encoding="utf-8")
    store = JsonFileManifestStore(path)

    with pytest.raises(ManifestStoreError, match="Cannot read manifest"):
        store.get_config()
    with pytest.raises(ManifestStoreError):
        store.add_repo(RepoConfig(repo="other/skills"))

    assert path.read_text(encoding="utf-8") == truncated


def test_json_file_store_rejects_invalid_document(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"installed": [{"name": "pdf"}]}), encoding="utf-8")

    with pytest.raises(ManifestStoreError):
        JsonFileManifestStore(path).add_installed_skill(_skill("lint"))


def test_installed_skill_names_match_case_insensitively() -> None:
    store = InMemoryManifestStore()
    store.add_installed_skill(_skill("pdf"))
    store.add_installed_skill(_skill("Pdf", sha="b" * 40))

    installed = store.get_config().installed
    assert [skill.name for skill in installed] == ["Pdf"]
    assert installed[0].commit_sha == "b" * 40

    store.remove_installed_skill("PDF")
    assert store.get_config().installed == []


def test_manifest_store_requires_load_and_save() -> None:
    class LoadOnly(ManifestStore):
        def load(self) -> LocalManifest:
            return LocalManifest()

    with pytest.raises(TypeError):
        LoadOnly()
