"""Optional GitHub token lookup.

Tokens are produced by the login flow elsewhere; this module only reads them.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Protocol

from skilluse.core.logging.logger import get_logger

logger = get_logger(__name__)

TOKEN_ENV_VARS = ("SKILLUSE_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")


class CredentialProvider(Protocol):
    def get_token(self) -> str | None: ...


class StaticCredentialProvider:
    def __init__(self, token: str | None = None) -> None:
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token


class FileCredentialProvider:
    """Reads a token from the environment, then from the ``auth.json`` file."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def get_token(self) -> str | None:
        for name in TOKEN_ENV_VARS:
            value = os.getenv(name)
            if value and value.strip():
                return value.strip()

        if not self._path.exists():
            return None
        try:
            with open(self._path, encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable credentials file", data={"error": str(exc)})
            return None

        token = payload.get("token") if isinstance(payload, dict) else None
        if isinstance(token, str) and token.strip():
            return token.strip()
        return None
