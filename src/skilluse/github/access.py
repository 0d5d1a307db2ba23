"""Request headers and response classification for the GitHub REST API.

GitHub serves public repositories without credentials at a reduced quota
(60 requests/hour unauthenticated vs 5000/hour with a token), so the token is
optional everywhere and only becomes necessary once a response says so.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

import httpx

DEFAULT_API_VERSION = "2022-11-28"
JSON_ACCEPT = "application/vnd.github+json"
RAW_ACCEPT = "application/vnd.github.raw+json"


class ResponseClass(str, Enum):
    OK = "ok"
    RATE_LIMITED = "rate_limited"
    AUTH_REQUIRED = "auth_required"
    NOT_FOUND = "not_found"
    FAILED = "failed"


def build_headers(
    token: str | None = None,
    *,
    raw: bool = False,
    api_version: str = DEFAULT_API_VERSION,
) -> dict[str, str]:
    headers = {
        "Accept": RAW_ACCEPT if raw else JSON_ACCEPT,
        "X-GitHub-Api-Version": api_version,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def is_rate_limited(response: httpx.Response) -> bool:
    return response.headers.get("X-RateLimit-Remaining") == "0"


def is_auth_required(response: httpx.Response) -> bool:
    return response.status_code == 401 or (
        response.status_code == 403 and not is_rate_limited(response)
    )


def classify_response(response: httpx.Response) -> ResponseClass:
    if response.is_success:
        return ResponseClass.OK
    if response.status_code == 403 and is_rate_limited(response):
        return ResponseClass.RATE_LIMITED
    if is_auth_required(response):
        return ResponseClass.AUTH_REQUIRED
    if response.status_code == 404:
        return ResponseClass.NOT_FOUND
    return ResponseClass.FAILED


def _format_reset_time(raw_reset: str | None) -> str:
    if not raw_reset:
        return ""
    try:
        reset_at = datetime.fromtimestamp(int(raw_reset))
    except (ValueError, OverflowError, OSError):
        return ""
    return f" (resets at {reset_at.strftime('%H:%M:%S')})"


def github_error_message(response: httpx.Response) -> str:
    """Return user-facing text describing a failed GitHub response."""
    status = response.status_code
    if status == 401:
        return "Authentication required: This appears to be a private repository."

    if status == 403:
        if is_rate_limited(response):
            reset_info = _format_reset_time(response.headers.get("X-RateLimit-Reset"))
            return (
                f"Rate limit exceeded{reset_info}. "
                "Login for higher limits (5000/hr vs 60/hr)."
            )
        return "Authentication required: Access denied to this repository."

    if status == 404:
        return "Repository not found. Check the owner/repo name or it may be private."

    return f"GitHub API error: {status}"
