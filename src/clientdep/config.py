# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Resolve composite cache settings from explicit values or the environment."""

from __future__ import annotations

import os
import platform
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError

PERSIST_ENV_VAR: Final[str] = "CLIENTDEP_PERSIST_COMPOSITES"
DIRECTORY_ENV_VAR: Final[str] = "CLIENTDEP_COMPOSITE_DIR"
HOST_ENV_VAR: Final[str] = "CLIENTDEP_HOST_ID"
VERIFY_ENV_VAR: Final[str] = "CLIENTDEP_VERIFY_ARTIFACTS"

MAP_FILE_SUFFIX: Final[str] = "-map.xml"
DEFAULT_COMPOSITE_DIR: Final[Path] = Path("App_Data") / "ClientDependency"

_TRUE_TOKENS: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})
_FALSE_TOKENS: Final[frozenset[str]] = frozenset({"0", "false", "no", "off"})


def default_host_id() -> str:
    """Return the identifier used to name this machine's map file."""

    return platform.node() or "localhost"


class CompositeSettings(BaseModel):
    """Define where composite maps live and whether they are persisted.

    Attributes:
        persist_composite_files: When ``False`` the map store is a no-op and
            every request regenerates its composites.
        composite_dir: Directory holding composite artifacts and the map file.
        host_id: Machine identifier embedded in the map file name.
        verify_artifacts: Treat a hit whose artifact file is missing as a miss.
    """

    model_config = ConfigDict(frozen=True)

    persist_composite_files: bool = True
    composite_dir: Path = DEFAULT_COMPOSITE_DIR
    host_id: str = Field(default_factory=default_host_id)
    verify_artifacts: bool = False

    @property
    def map_file(self) -> Path:
        """Return the location of this host's map document."""

        return self.composite_dir / f"{self.host_id}{MAP_FILE_SUFFIX}"


def _parse_flag(env: Mapping[str, str], name: str) -> bool | None:
    """Return the boolean stored under ``name`` or ``None`` when unset.

    Raises:
        ConfigError: If the value is not a recognised boolean token.
    """

    raw = env.get(name)
    if raw is None or not raw.strip():
        return None
    token = raw.strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    raise ConfigError(f"{name} must be a boolean flag, got {raw!r}")


def _settings_from_environment(env: Mapping[str, str]) -> CompositeSettings:
    """Build settings from ``env`` overrides, defaulting anything unset."""

    overrides: dict[str, object] = {}
    persist = _parse_flag(env, PERSIST_ENV_VAR)
    if persist is not None:
        overrides["persist_composite_files"] = persist
    verify = _parse_flag(env, VERIFY_ENV_VAR)
    if verify is not None:
        overrides["verify_artifacts"] = verify
    directory = env.get(DIRECTORY_ENV_VAR, "").strip()
    if directory:
        overrides["composite_dir"] = Path(directory).expanduser()
    host = env.get(HOST_ENV_VAR, "").strip()
    if host:
        overrides["host_id"] = host
    return CompositeSettings.model_validate(overrides)


def resolve_composite_settings(
    settings: CompositeSettings | None = None,
    *,
    env: Mapping[str, str] | None = None,
) -> CompositeSettings:
    """Return composite settings honouring explicit values, then the environment.

    Args:
        settings: Explicit settings that take precedence when provided.
        env: Optional environment mapping used instead of :data:`os.environ`.

    Returns:
        CompositeSettings: Effective settings.

    Raises:
        ConfigError: If an environment override is malformed.
    """

    if settings is not None:
        return settings
    environment = os.environ if env is None else env
    return _settings_from_environment(environment)


__all__ = [
    "CompositeSettings",
    "DEFAULT_COMPOSITE_DIR",
    "DIRECTORY_ENV_VAR",
    "HOST_ENV_VAR",
    "PERSIST_ENV_VAR",
    "VERIFY_ENV_VAR",
    "default_host_id",
    "resolve_composite_settings",
]
