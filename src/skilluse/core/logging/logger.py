"""Thin structured wrapper over :mod:`logging`.

Callers pass structured context through ``data=`` instead of formatting it into
the message, e.g. ``logger.warning("Failed to fetch manifest", data={"repo": repo})``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from skilluse.config import LoggerSettings

ROOT_LOGGER_NAME = "skilluse"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def _format_data(data: Mapping[str, Any] | None) -> str:
    if not data:
        return ""
    return " ".join(f"{key}={value!r}" for key, value in data.items())


class Logger:
    """Logger exposing the usual level methods with an optional ``data`` payload."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        message: str,
        data: Mapping[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        suffix = _format_data(data)
        text = f"{message} {suffix}" if suffix else message
        self._logger.log(level, text, **kwargs)

    def debug(self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.DEBUG, message, data, **kwargs)

    def info(self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.INFO, message, data, **kwargs)

    def warning(self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.WARNING, message, data, **kwargs)

    def error(self, message: str, data: Mapping[str, Any] | None = None, **kwargs: Any) -> None:
        self._log(logging.ERROR, message, data, **kwargs)


def get_logger(name: str) -> Logger:
    return Logger(name)


def configure_logging(settings: LoggerSettings | None = None) -> None:
    """Attach a rich handler to the package logger at the configured level."""
    from rich.console import Console
    from rich.logging import RichHandler

    level_name = settings.level if settings is not None else "warning"
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(_LEVELS.get(level_name.lower(), logging.WARNING))

    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=False,
    )
    root.addHandler(handler)
    root.propagate = False
