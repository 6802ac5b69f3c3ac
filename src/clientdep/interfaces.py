# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Contracts for the collaborators the composite cache depends on."""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from .dependencies import DependencyDescriptor
from .store.models import CompositeKey, CompositeRecord


class ArtifactProducer(Protocol):
    """Combine source files into one composite artifact.

    Implementations write the artifact and return its location. Failures are
    raised; the cache records nothing for a failed production.
    """

    @abstractmethod
    def __call__(self, descriptors: Sequence[DependencyDescriptor], compression: str) -> str | Path:
        """Write the composite for ``descriptors`` encoded with ``compression``.

        Args:
            descriptors: Ordered, alias-resolved descriptors to combine.
            compression: Encoding to apply, e.g. ``"deflate"`` or ``"none"``.

        Returns:
            str | Path: Location of the generated artifact.
        """
        raise NotImplementedError


class KeyDeriver(Protocol):
    """Turn an ordered dependency set into a content key."""

    @abstractmethod
    def __call__(self, descriptors: Sequence[DependencyDescriptor]) -> str:
        """Return the deterministic content key for ``descriptors``."""
        raise NotImplementedError


@runtime_checkable
class CompositeMapStoreProtocol(Protocol):
    """Define the persistence contract consumed by the cache facade."""

    @abstractmethod
    def is_enabled(self) -> bool:
        """Return ``True`` when mappings are persisted."""
        raise NotImplementedError

    @abstractmethod
    def lookup(self, key: CompositeKey) -> CompositeRecord | None:
        """Return the record stored for ``key`` when present."""
        raise NotImplementedError

    @abstractmethod
    def upsert(self, key: CompositeKey, artifact: str | Path, constituents: Iterable[str | Path]) -> None:
        """Insert or replace the mapping recorded for ``key``."""
        raise NotImplementedError


__all__ = ["ArtifactProducer", "CompositeMapStoreProtocol", "KeyDeriver"]
