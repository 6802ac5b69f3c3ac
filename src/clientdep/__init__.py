# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Composite asset cache: map dependency sets to combined artifacts on disk."""

from __future__ import annotations

from importlib import metadata

from .config import CompositeSettings, resolve_composite_settings
from .dependencies import DependencyDescriptor, DependencyKind, PathAliasRegistry
from .errors import (
    ClientDependencyError,
    MapStoreInitializationError,
    MapStoreUnavailableError,
    UnknownPathAliasError,
)
from .facade import CompositeCache, CompositeOutcome, CompositeResult, build_composite_cache
from .keys import DefaultKeyDeriver, KeyPolicy, derive_content_key
from .store import CompositeKey, CompositeMapStore, CompositeRecord, create_map_store

__all__ = [
    "ClientDependencyError",
    "CompositeCache",
    "CompositeKey",
    "CompositeMapStore",
    "CompositeOutcome",
    "CompositeRecord",
    "CompositeResult",
    "CompositeSettings",
    "DefaultKeyDeriver",
    "DependencyDescriptor",
    "DependencyKind",
    "KeyPolicy",
    "MapStoreInitializationError",
    "MapStoreUnavailableError",
    "PathAliasRegistry",
    "UnknownPathAliasError",
    "__version__",
    "build_composite_cache",
    "create_map_store",
    "derive_content_key",
    "resolve_composite_settings",
]

try:
    __version__ = metadata.version("clientdep")
except metadata.PackageNotFoundError:  # pragma: no cover - local development fallback
    __version__ = "0.0.0"
