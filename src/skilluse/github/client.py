"""Async GitHub REST client used by every remote step of the pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field

from skilluse.config import GitHubSettings
from skilluse.core.exceptions import GitHubAPIError
from skilluse.core.logging.logger import get_logger
from skilluse.github.access import ResponseClass, build_headers, classify_response, github_error_message

if TYPE_CHECKING:
    from types import TracebackType

logger = get_logger(__name__)


class ContentEntry(BaseModel):
    name: str
    path: str
    type: str

    model_config = ConfigDict(extra="ignore")


class TreeEntry(BaseModel):
    path: str
    type: Literal["blob", "tree", "commit"]
    sha: str = ""
    mode: str | None = None

    model_config = ConfigDict(extra="ignore")


class GitTree(BaseModel):
    sha: str = ""
    entries: list[TreeEntry] = Field(default_factory=list, alias="tree")
    truncated: bool = False

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def blobs(self) -> list[TreeEntry]:
        return [entry for entry in self.entries if entry.type == "blob"]


class RepositoryInfo(BaseModel):
    full_name: str
    private: bool = False
    default_branch: str = "main"

    model_config = ConfigDict(extra="ignore")


def _quote_path(path: str) -> str:
    return quote(path.strip("/"), safe="/")


class GitHubClient:
    """Wraps one :class:`httpx.AsyncClient` with GitHub headers and error classification.

    Every non-success response raises :class:`GitHubAPIError` carrying the
    classified reason and the user-facing message, so callers decide whether an
    auth wall becomes a result or a failure.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        settings: GitHubSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or GitHubSettings()
        self._token = token or None
        self._client = httpx.AsyncClient(
            base_url=self._settings.api_url,
            timeout=self._settings.timeout,
            transport=transport,
            follow_redirects=True,
        )
        self.request_count = 0

    @property
    def has_token(self) -> bool:
        return self._token is not None

    @property
    def settings(self) -> GitHubSettings:
        return self._settings

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(
        self,
        url: str,
        *,
        raw: bool = False,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        headers = build_headers(self._token, raw=raw, api_version=self._settings.api_version)
        self.request_count += 1
        logger.debug("GitHub request", data={"url": url, "params": params or {}})
        response = await self._client.get(url, headers=headers, params=params)
        classification = classify_response(response)
        if classification is not ResponseClass.OK:
            raise GitHubAPIError(
                github_error_message(response),
                status_code=response.status_code,
                classification=classification,
            )
        return response

    async def list_directory(self, repo: str, path: str, ref: str) -> list[ContentEntry]:
        if path.strip("/"):
            url = f"/repos/{repo}/contents/{_quote_path(path)}"
        else:
            url = f"/repos/{repo}/contents"
        response = await self._get(url, params={"ref": ref})
        payload = response.json()
        if not isinstance(payload, list):
            # A file path answers with a single object rather than a listing.
            return []
        return [ContentEntry.model_validate(item) for item in payload if isinstance(item, dict)]

    async def get_tree(self, repo: str, ref: str) -> GitTree:
        response = await self._get(
            f"/repos/{repo}/git/trees/{quote(ref, safe='')}",
            params={"recursive": "1"},
        )
        return GitTree.model_validate(response.json())

    async def get_file_bytes(self, repo: str, path: str, ref: str) -> bytes:
        response = await self._get(
            f"/repos/{repo}/contents/{_quote_path(path)}",
            raw=True,
            params={"ref": ref},
        )
        return response.content

    async def get_file_text(self, repo: str, path: str, ref: str) -> str:
        content = await self.get_file_bytes(repo, path, ref)
        return content.decode("utf-8", errors="replace")

    async def get_latest_commit_sha(self, repo: str, ref: str) -> str:
        response = await self._get(f"/repos/{repo}/commits/{quote(ref, safe='')}")
        payload = response.json()
        sha = payload.get("sha") if isinstance(payload, dict) else None
        if not isinstance(sha, str) or not sha:
            raise GitHubAPIError(
                f"Unable to resolve commit for {repo}@{ref}",
                status_code=response.status_code,
                classification=ResponseClass.FAILED,
            )
        return sha

    async def get_repository(self, repo: str) -> RepositoryInfo:
        response = await self._get(f"/repos/{repo}")
        return RepositoryInfo.model_validate(response.json())
