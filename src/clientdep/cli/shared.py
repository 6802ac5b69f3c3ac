# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared CLI helpers: settings resolution and error reporting."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..config import CompositeSettings, resolve_composite_settings
from ..errors import ConfigError
from ..logging import fail, ok, warn
from ..store import CompositeMapStore


class CLIError(RuntimeError):
    """Error raised when a CLI command fails and should exit with a status code."""

    def __init__(self, message: str, *, exit_code: int = 1) -> None:
        """Initialise the error with a message and exit code.

        Args:
            message: Human-readable error message shown to the user.
            exit_code: Exit status associated with the failure.
        """

        super().__init__(message)
        self.exit_code = exit_code


@dataclass(slots=True)
class CLILogger:
    """Adapter around console helpers respecting the emoji preference."""

    use_emoji: bool

    def ok(self, message: str) -> None:
        """Log a success message."""

        ok(message, use_emoji=self.use_emoji)

    def warn(self, message: str) -> None:
        """Log a warning message."""

        warn(message, use_emoji=self.use_emoji)

    def fail(self, message: str) -> None:
        """Log a failure message."""

        fail(message, use_emoji=self.use_emoji)


def build_settings(directory: Path | None, host: str | None) -> CompositeSettings:
    """Return settings from the environment with CLI overrides applied.

    Persistence is always enabled: the CLI exists to operate on the map file.

    Raises:
        CLIError: If the environment carries malformed settings.
    """

    try:
        base = resolve_composite_settings()
    except ConfigError as exc:
        raise CLIError(str(exc), exit_code=2) from exc
    update: dict[str, object] = {"persist_composite_files": True}
    if directory is not None:
        update["composite_dir"] = directory
    if host:
        update["host_id"] = host
    return base.model_copy(update=update)


def open_store(directory: Path | None, host: str | None) -> CompositeMapStore:
    """Return a map store bound to the resolved settings."""

    return CompositeMapStore.from_settings(build_settings(directory, host))


__all__ = ["CLIError", "CLILogger", "build_settings", "open_store"]
