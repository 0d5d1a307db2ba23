"""Per-user locations for configuration and credentials."""

from __future__ import annotations

import os
from pathlib import Path

import platformdirs

APP_NAME = "skilluse"
CONFIG_DIR_ENV = "SKILLUSE_CONFIG_DIR"
CONFIG_FILENAME = "skilluse.config.yaml"
MANIFEST_FILENAME = "config.json"
CREDENTIALS_FILENAME = "auth.json"


def user_config_dir() -> Path:
    override = os.getenv(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path(platformdirs.user_config_dir(APP_NAME, appauthor=False))


def default_manifest_path() -> Path:
    return user_config_dir() / MANIFEST_FILENAME


def default_credentials_path() -> Path:
    return user_config_dir() / CREDENTIALS_FILENAME
