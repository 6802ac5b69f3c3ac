# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Durable map from composite keys to the artifacts generated for them.

One XML document per host records which composite artifact was built for
which ordered set of source files, at which version and compression. The
document is loaded lazily on first use and every access goes through a
single lock, so concurrent threads never observe a partially applied
update. Only in-process exclusion is provided: separate processes sharing a
composite directory race as last-writer-wins on the whole document.
"""

from __future__ import annotations

import copy
import logging
import xml.etree.ElementTree as ET
from collections.abc import Iterable
from pathlib import Path
from threading import RLock

from ..config import CompositeSettings
from ..errors import MalformedMapError, MapStoreInitializationError, MapStoreUnavailableError
from .document import (
    build_item,
    find_item,
    iter_items,
    iter_matching_items,
    load_document,
    new_document,
    parse_item,
    require_storable,
    save_document,
    update_item,
)
from .models import CompositeKey, CompositeRecord

LOGGER = logging.getLogger(__name__)


class CompositeMapStore:
    """Persist :class:`CompositeRecord` entries in a per-host XML document."""

    def __init__(self, map_file: Path, *, enabled: bool = True) -> None:
        """Bind the store to ``map_file`` without touching the filesystem.

        Args:
            map_file: Location of the backing XML document.
            enabled: When ``False`` every operation is a no-op and lookups
                always miss.
        """

        self._map_file = map_file
        self._enabled = enabled
        self._lock = RLock()
        self._tree: ET.ElementTree | None = None
        self._failure: MapStoreInitializationError | None = None

    @classmethod
    def from_settings(cls, settings: CompositeSettings) -> CompositeMapStore:
        """Return a store configured from resolved ``settings``."""

        return cls(settings.map_file, enabled=settings.persist_composite_files)

    @property
    def map_file(self) -> Path:
        """Return the backing document location."""

        return self._map_file

    def is_enabled(self) -> bool:
        """Return ``True`` when composite maps are persisted."""

        return self._enabled

    def lookup(self, key: CompositeKey) -> CompositeRecord | None:
        """Return the record stored for ``key`` or ``None`` on a miss.

        The first well-formed matching item wins; malformed items are skipped.

        Raises:
            MapStoreInitializationError: If this call triggered initialisation
                and it failed.
            MapStoreUnavailableError: If an earlier initialisation failed.
        """

        if not self._enabled:
            return None
        with self._lock:
            tree = self._ensure_loaded()
            for element in iter_matching_items(tree, key):
                record = parse_item(element)
                if record is not None:
                    return record
                LOGGER.debug("skipping malformed map item for %s", key)
            return None

    def upsert(self, key: CompositeKey, artifact: str | Path, constituents: Iterable[str | Path]) -> None:
        """Record ``artifact`` and ``constituents`` for ``key`` and save the map.

        An existing item for ``key`` is updated in place; otherwise a new item
        is appended. The record is checked before the document is touched, and
        the in-memory document is restored when the save fails.

        Raises:
            ValueError: If any field holds a character XML cannot represent.
            OSError: If the document cannot be written.
            MapStoreInitializationError: If initialisation failed on this call.
            MapStoreUnavailableError: If an earlier initialisation failed.
        """

        if not self._enabled:
            return
        record = CompositeRecord.build(key, str(artifact), (str(path) for path in constituents))
        require_storable(record)
        with self._lock:
            tree = self._ensure_loaded()
            snapshot = copy.deepcopy(tree)
            element = find_item(tree, key)
            if element is not None:
                update_item(element, record)
            else:
                tree.getroot().append(build_item(record))
            self._commit(tree, snapshot)
            LOGGER.debug("recorded composite %s -> %s", key, record.artifact)

    def remove(self, key: CompositeKey) -> bool:
        """Drop every item matching ``key``; return whether anything was removed."""

        if not self._enabled:
            return False
        with self._lock:
            tree = self._ensure_loaded()
            snapshot = copy.deepcopy(tree)
            removed = False
            element = find_item(tree, key)
            while element is not None:
                tree.getroot().remove(element)
                removed = True
                element = find_item(tree, key)
            if removed:
                self._commit(tree, snapshot)
            return removed

    def records(self) -> tuple[CompositeRecord, ...]:
        """Return every well-formed record in document order."""

        if not self._enabled:
            return ()
        with self._lock:
            tree = self._ensure_loaded()
            parsed = (parse_item(element) for element in iter_items(tree))
            return tuple(record for record in parsed if record is not None)

    def reload(self) -> None:
        """Discard in-memory state and read the map file again.

        A missing or malformed file is recreated, as on first use. A previous
        initialisation failure is cleared so the store can recover once the
        underlying condition has been fixed.
        """

        if not self._enabled:
            return
        with self._lock:
            self._tree = None
            self._failure = None
            self._ensure_loaded()

    def reset(self) -> None:
        """Replace the map with a fresh empty document."""

        if not self._enabled:
            return
        with self._lock:
            self._failure = None
            self._tree = None
            self._map_file.parent.mkdir(parents=True, exist_ok=True)
            tree = new_document()
            save_document(tree, self._map_file)
            self._tree = tree
            LOGGER.info("reset composite map %s", self._map_file)

    def _commit(self, tree: ET.ElementTree, snapshot: ET.ElementTree) -> None:
        """Save the current document, restoring ``snapshot`` if the write fails."""

        try:
            self._map_file.parent.mkdir(parents=True, exist_ok=True)
            save_document(tree, self._map_file)
        except OSError:
            self._tree = snapshot
            raise

    def _ensure_loaded(self) -> ET.ElementTree:
        """Return the in-memory document, initialising it on first use.

        Must be called with :attr:`_lock` held.
        """

        if self._failure is not None:
            raise MapStoreUnavailableError(f"composite map {self._map_file} is unavailable") from self._failure
        if self._tree is not None:
            return self._tree
        try:
            self._tree = self._initialise()
        except MapStoreInitializationError as exc:
            self._failure = exc
            LOGGER.error("composite map initialisation failed: %s", exc)
            raise
        return self._tree

    def _initialise(self) -> ET.ElementTree:
        """Create the directory and document when missing, then load it.

        Raises:
            MapStoreInitializationError: If the file cannot be created or
                still fails to load after being recreated.
        """

        path = self._map_file
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.exists():
                save_document(new_document(), path)
        except OSError as exc:
            raise MapStoreInitializationError(f"cannot create composite map {path}: {exc}", path=path) from exc

        try:
            return load_document(path)
        except MalformedMapError as exc:
            LOGGER.warning("composite map %s is malformed, recreating it: %s", path, exc)
        except OSError as exc:
            raise MapStoreInitializationError(f"cannot read composite map {path}: {exc}", path=path) from exc

        try:
            path.unlink(missing_ok=True)
            save_document(new_document(), path)
            return load_document(path)
        except (MalformedMapError, OSError) as exc:
            raise MapStoreInitializationError(f"cannot recreate composite map {path}: {exc}", path=path) from exc


__all__ = ["CompositeMapStore"]
