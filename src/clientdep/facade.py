# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Get-or-create entry point combining key derivation, lookup and production."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock

from .config import CompositeSettings, resolve_composite_settings
from .dependencies import (
    DependencyDescriptor,
    DependencyKind,
    PathAliasRegistry,
    group_by_kind,
    order_dependencies,
    partition_dependencies,
)
from .interfaces import ArtifactProducer, CompositeMapStoreProtocol, KeyDeriver
from .keys import DefaultKeyDeriver
from .store import CompositeMapStore
from .store.models import CompositeKey, CompositeRecord
from .text import require_xml_text

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompositeOutcome:
    """Describe the composite artifact serving one kind group.

    Attributes:
        kind: Pipeline shared by every constituent.
        key: Composite key the artifact is recorded under.
        artifact: Location of the combined file.
        constituents: Source locations combined into the artifact, in order.
        created: ``True`` when the producer ran for this call.
    """

    kind: DependencyKind
    key: CompositeKey
    artifact: str
    constituents: tuple[str, ...]
    created: bool


@dataclass(frozen=True, slots=True)
class CompositeResult:
    """Composite artifacts plus the descriptors that must render standalone."""

    composites: tuple[CompositeOutcome, ...]
    standalone: tuple[DependencyDescriptor, ...]

    def for_kind(self, kind: DependencyKind) -> CompositeOutcome | None:
        """Return the composite built for ``kind`` when one exists."""

        for outcome in self.composites:
            if outcome.kind is kind:
                return outcome
        return None


@dataclass(slots=True)
class _InflightSlot:
    """Lock serialising producers for one key, plus the number of callers using it."""

    lock: Lock = field(default_factory=Lock)
    holders: int = 0


class CompositeCache:
    """Resolve dependency sets to composite artifacts, producing them on a miss."""

    def __init__(
        self,
        store: CompositeMapStoreProtocol,
        producer: ArtifactProducer,
        *,
        key_deriver: KeyDeriver | None = None,
        aliases: PathAliasRegistry | None = None,
        verify_artifacts: bool = False,
        artifact_exists: Callable[[str], bool] | None = None,
    ) -> None:
        """Wire the cache to its collaborators.

        Args:
            store: Map store consulted for existing composites.
            producer: Collaborator writing new composite artifacts.
            key_deriver: Content key derivation; defaults to SHA-256 over the
                ordered paths.
            aliases: Registry used to expand descriptor path aliases.
            verify_artifacts: Treat a hit whose artifact no longer exists as a
                miss and regenerate it.
            artifact_exists: Existence check used with ``verify_artifacts``.
        """

        self._store = store
        self._producer = producer
        self._key_deriver: KeyDeriver = key_deriver or DefaultKeyDeriver()
        self._aliases = aliases or PathAliasRegistry()
        self._verify_artifacts = verify_artifacts
        self._artifact_exists = artifact_exists or (lambda location: Path(location).exists())
        self._inflight: dict[CompositeKey, _InflightSlot] = {}
        self._inflight_guard = Lock()

    @property
    def store(self) -> CompositeMapStoreProtocol:
        """Return the backing map store."""

        return self._store

    def get_or_create(
        self,
        descriptors: Iterable[DependencyDescriptor],
        version: int,
        compression: str,
    ) -> CompositeResult:
        """Return one composite per dependency kind, producing missing ones.

        Descriptors flagged ``skip_optimization`` are returned in
        :attr:`CompositeResult.standalone` and never combined.

        Args:
            descriptors: Descriptors in declaration order.
            version: Cache-busting version counter.
            compression: Encoding requested for the artifacts.

        Returns:
            CompositeResult: Composites in order of first declared kind.

        Raises:
            ValueError: If ``version`` or ``compression`` is invalid.
            UnknownPathAliasError: If a descriptor names an unregistered alias.
        """

        _validate_request(version, compression)
        combinable, standalone = partition_dependencies(descriptors)
        resolved = self._aliases.resolve_all(combinable)
        outcomes = tuple(
            self._get_or_create_ordered(kind, group, version, compression)
            for kind, group in group_by_kind(resolved).items()
        )
        return CompositeResult(composites=outcomes, standalone=standalone)

    def get_or_create_group(
        self,
        descriptors: Sequence[DependencyDescriptor],
        version: int,
        compression: str,
    ) -> CompositeOutcome:
        """Return the composite for a single group of same-kind descriptors.

        Raises:
            ValueError: If the group is empty, mixes kinds, contains a
                ``skip_optimization`` descriptor, or the version or
                compression is invalid.
        """

        _validate_request(version, compression)
        if not descriptors:
            raise ValueError("cannot build a composite from an empty group")
        kinds = {descriptor.kind for descriptor in descriptors}
        if len(kinds) != 1:
            raise ValueError("composite groups must share a single dependency kind")
        if any(descriptor.skip_optimization for descriptor in descriptors):
            raise ValueError("descriptors marked skip_optimization cannot be combined")
        ordered = order_dependencies(self._aliases.resolve_all(descriptors))
        return self._get_or_create_ordered(kinds.pop(), ordered, version, compression)

    def _get_or_create_ordered(
        self,
        kind: DependencyKind,
        ordered: Sequence[DependencyDescriptor],
        version: int,
        compression: str,
    ) -> CompositeOutcome:
        key = CompositeKey(content_key=self._key_deriver(ordered), version=version, compression=compression)
        with self._key_lock(key):
            record = self._store.lookup(key)
            if record is not None and self._usable(record):
                LOGGER.debug("composite hit for %s", key)
                return _outcome(kind, record, created=False)

            LOGGER.debug("composite miss for %s; producing %d files", key, len(ordered))
            artifact = str(self._producer(ordered, compression))
            constituents = tuple(descriptor.path for descriptor in ordered)
            self._store.upsert(key, artifact, constituents)
            return _outcome(kind, CompositeRecord(key=key, artifact=artifact, constituents=constituents), created=True)

    def _usable(self, record: CompositeRecord) -> bool:
        if not self._verify_artifacts:
            return True
        if self._artifact_exists(record.artifact):
            return True
        LOGGER.info("composite artifact %s is missing; regenerating", record.artifact)
        return False

    @contextmanager
    def _key_lock(self, key: CompositeKey) -> Iterator[None]:
        """Hold the per-key lock, dropping its entry once no caller needs it."""

        with self._inflight_guard:
            slot = self._inflight.get(key)
            if slot is None:
                slot = self._inflight[key] = _InflightSlot()
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._inflight_guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._inflight[key]


def _validate_request(version: int, compression: str) -> None:
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise ValueError(f"version must be a non-negative integer, got {version!r}")
    if not compression or not compression.strip():
        raise ValueError("compression must be a non-empty string")
    require_xml_text(compression, field="compression")


def _outcome(kind: DependencyKind, record: CompositeRecord, *, created: bool) -> CompositeOutcome:
    return CompositeOutcome(
        kind=kind,
        key=record.key,
        artifact=record.artifact,
        constituents=record.constituents,
        created=created,
    )


def build_composite_cache(
    producer: ArtifactProducer,
    settings: CompositeSettings | None = None,
    *,
    key_deriver: KeyDeriver | None = None,
    aliases: PathAliasRegistry | None = None,
) -> CompositeCache:
    """Compose a :class:`CompositeCache` and its store from ``settings``.

    Args:
        producer: Collaborator writing composite artifacts.
        settings: Explicit settings; the environment is consulted when omitted.
        key_deriver: Optional content key derivation override.
        aliases: Optional path alias registry.

    Returns:
        CompositeCache: Cache owning a freshly constructed map store.
    """

    resolved = resolve_composite_settings(settings)
    return CompositeCache(
        CompositeMapStore.from_settings(resolved),
        producer,
        key_deriver=key_deriver,
        aliases=aliases,
        verify_artifacts=resolved.verify_artifacts,
    )


__all__ = [
    "CompositeCache",
    "CompositeOutcome",
    "CompositeResult",
    "build_composite_cache",
]
