"""GitHub REST access."""

from skilluse.github.access import ResponseClass, build_headers, classify_response
from skilluse.github.client import GitHubClient

__all__ = ["GitHubClient", "ResponseClass", "build_headers", "classify_response"]
