# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Read and write the XML document backing the composite map.

Example document::

    <map>
      <item key="3f5e..." file="/srv/app/App_Data/ClientDependency/123456.js"
            compression="deflate" version="3">
        <files>
          <file name="/srv/app/js/jquery.js" />
          <file name="/srv/app/js/jquery.ui.js" />
        </files>
      </item>
    </map>
"""

from __future__ import annotations

import os
import tempfile
import xml.etree.ElementTree as ET
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Final

from ..errors import MalformedMapError
from ..text import require_xml_text
from .models import CompositeKey, CompositeRecord

ROOT_TAG: Final[str] = "map"
ITEM_TAG: Final[str] = "item"
FILES_TAG: Final[str] = "files"
FILE_TAG: Final[str] = "file"
KEY_ATTR: Final[str] = "key"
ARTIFACT_ATTR: Final[str] = "file"
COMPRESSION_ATTR: Final[str] = "compression"
VERSION_ATTR: Final[str] = "version"
NAME_ATTR: Final[str] = "name"
_ENCODING: Final[str] = "utf-8"


def new_document() -> ET.ElementTree:
    """Return an empty map document."""

    return ET.ElementTree(ET.Element(ROOT_TAG))


def load_document(path: Path) -> ET.ElementTree:
    """Parse the map document stored at ``path``.

    Args:
        path: Map file to read.

    Returns:
        ET.ElementTree: Parsed document.

    Raises:
        MalformedMapError: If the file is not well-formed XML or its root is
            not a ``<map>`` element.
        OSError: If the file cannot be read.
    """

    try:
        tree = ET.parse(path)
    except ET.ParseError as exc:
        raise MalformedMapError(f"{path}: {exc}") from exc
    if tree.getroot().tag != ROOT_TAG:
        raise MalformedMapError(f"{path}: unexpected root element <{tree.getroot().tag}>")
    return tree


def save_document(tree: ET.ElementTree, path: Path) -> None:
    """Write ``tree`` to ``path`` by atomically replacing the previous file.

    The document is serialised to a temporary file in the same directory and
    moved over ``path`` so readers only ever observe a complete document.

    Raises:
        OSError: If the temporary file cannot be written or moved.
    """

    ET.indent(tree, space="  ")
    handle = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    temp_path = Path(handle.name)
    try:
        with handle:
            tree.write(handle, encoding=_ENCODING, xml_declaration=True)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def iter_items(tree: ET.ElementTree) -> Iterator[ET.Element]:
    """Yield every ``<item>`` element directly under the document root."""

    yield from tree.getroot().findall(ITEM_TAG)


def iter_matching_items(tree: ET.ElementTree, key: CompositeKey) -> Iterator[ET.Element]:
    """Yield, in document order, every item whose key, version and compression match ``key``."""

    version = str(key.version)
    for element in iter_items(tree):
        if (
            element.get(KEY_ATTR) == key.content_key
            and element.get(VERSION_ATTR) == version
            and element.get(COMPRESSION_ATTR) == key.compression
        ):
            yield element


def find_item(tree: ET.ElementTree, key: CompositeKey) -> ET.Element | None:
    """Return the first item matching ``key``, well-formed or not."""

    return next(iter_matching_items(tree, key), None)


def require_storable(record: CompositeRecord) -> None:
    """Check every string in ``record`` can be written as an XML attribute.

    Raises:
        ValueError: If a field contains a character XML 1.0 cannot represent.
    """

    require_xml_text(record.key.content_key, field="content key")
    require_xml_text(record.key.compression, field="compression")
    require_xml_text(record.artifact, field="artifact")
    for name in record.constituents:
        require_xml_text(name, field="constituent path")


def _files_element(constituents: Sequence[str]) -> ET.Element:
    files = ET.Element(FILES_TAG)
    for name in constituents:
        ET.SubElement(files, FILE_TAG, {NAME_ATTR: name})
    return files


def build_item(record: CompositeRecord) -> ET.Element:
    """Return a new ``<item>`` element describing ``record``."""

    element = ET.Element(
        ITEM_TAG,
        {
            KEY_ATTR: record.key.content_key,
            ARTIFACT_ATTR: record.artifact,
            COMPRESSION_ATTR: record.key.compression,
            VERSION_ATTR: str(record.key.version),
        },
    )
    element.append(_files_element(record.constituents))
    return element


def update_item(element: ET.Element, record: CompositeRecord) -> None:
    """Replace the artifact and constituent list of ``element`` in place."""

    element.set(ARTIFACT_ATTR, record.artifact)
    for stale in element.findall(FILES_TAG):
        element.remove(stale)
    element.append(_files_element(record.constituents))


def parse_item(element: ET.Element) -> CompositeRecord | None:
    """Return the record described by ``element`` or ``None`` when malformed.

    An item is malformed when a key attribute or the artifact is missing, the
    version is not an integer, or a file entry lacks its ``name``.
    """

    content_key = element.get(KEY_ATTR)
    compression = element.get(COMPRESSION_ATTR)
    artifact = element.get(ARTIFACT_ATTR)
    raw_version = element.get(VERSION_ATTR)
    if content_key is None or compression is None or artifact is None or raw_version is None:
        return None
    try:
        version = int(raw_version)
    except ValueError:
        return None
    constituents: list[str] = []
    for entry in element.iter(FILE_TAG):
        name = entry.get(NAME_ATTR)
        if name is None:
            return None
        constituents.append(name)
    return CompositeRecord(
        key=CompositeKey(content_key=content_key, version=version, compression=compression),
        artifact=artifact,
        constituents=tuple(constituents),
    )


__all__ = [
    "build_item",
    "find_item",
    "iter_items",
    "iter_matching_items",
    "load_document",
    "new_document",
    "parse_item",
    "require_storable",
    "save_document",
    "update_item",
]
