"""Layered settings: defaults, user YAML, project YAML, then environment."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from skilluse.paths import (
    CONFIG_FILENAME,
    default_credentials_path,
    default_manifest_path,
    user_config_dir,
)


class GitHubSettings(BaseModel):
    api_url: str = "https://api.github.com"
    web_host: str = "github.com"
    api_version: str = "2022-11-28"
    timeout: float = 10.0
    """Seconds allowed for each outbound request."""
    max_concurrency: int = Field(default=8, ge=1)
    """Upper bound on concurrent manifest fetches within one repository scan."""


class LoggerSettings(BaseModel):
    level: Literal["debug", "info", "warning", "error"] = "warning"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SKILLUSE_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    logger: LoggerSettings = Field(default_factory=LoggerSettings)
    default_agent: str = "claude"
    manifest_path: Path | None = None
    credentials_path: Path | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment beats the YAML layers passed in as init values.
        return (env_settings, init_settings)

    @property
    def resolved_manifest_path(self) -> Path:
        if self.manifest_path is not None:
            return self.manifest_path.expanduser()
        return default_manifest_path()

    @property
    def resolved_credentials_path(self) -> Path:
        if self.credentials_path is not None:
            return self.credentials_path.expanduser()
        return default_credentials_path()


_settings: Settings | None = None


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    with open(path, encoding="utf-8") as handle:
        payload = yaml.safe_load(handle)
    return payload if isinstance(payload, dict) else {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        existing = merged.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def load_settings(config_path: str | Path | None = None, *, cwd: Path | None = None) -> Settings:
    """Build settings from the user file, the project file (or ``config_path``) and env."""
    layers = [_read_yaml(user_config_dir() / CONFIG_FILENAME)]
    if config_path is not None:
        layers.append(_read_yaml(Path(config_path).expanduser()))
    else:
        layers.append(_read_yaml((cwd or Path.cwd()) / CONFIG_FILENAME))

    merged: dict[str, Any] = {}
    for layer in layers:
        merged = _deep_merge(merged, layer)
    return Settings(**merged)


def get_settings(config_path: str | Path | None = None) -> Settings:
    global _settings
    if config_path is not None:
        _settings = load_settings(config_path)
    elif _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
