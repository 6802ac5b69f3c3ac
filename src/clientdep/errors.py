# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Exception hierarchy shared across the composite cache."""

from __future__ import annotations

from pathlib import Path


class ClientDependencyError(Exception):
    """Base class for errors raised by :mod:`clientdep`."""


class ConfigError(ClientDependencyError, ValueError):
    """Raised when composite settings cannot be resolved."""


class UnknownPathAliasError(ClientDependencyError, KeyError):
    """Raised when a descriptor references an alias that was never registered."""

    def __init__(self, alias: str) -> None:
        """Initialise the error for ``alias``.

        Args:
            alias: Alias name that could not be resolved.
        """

        super().__init__(alias)
        self.alias = alias

    def __str__(self) -> str:
        return f"unknown path alias: {self.alias!r}"


class MapStoreError(ClientDependencyError):
    """Base class for composite map persistence failures."""


class MalformedMapError(MapStoreError):
    """Raised when the map document cannot be parsed."""


class MapStoreInitializationError(MapStoreError):
    """Raised when the map file or its directory cannot be prepared."""

    def __init__(self, message: str, *, path: Path) -> None:
        """Initialise the error with the map file that failed.

        Args:
            message: Human-readable description of the failure.
            path: Map file location the store attempted to prepare.
        """

        super().__init__(message)
        self.path = path


class MapStoreUnavailableError(MapStoreError):
    """Raised on every call after the store failed to initialise."""


__all__ = [
    "ClientDependencyError",
    "ConfigError",
    "MalformedMapError",
    "MapStoreError",
    "MapStoreInitializationError",
    "MapStoreUnavailableError",
    "UnknownPathAliasError",
]
