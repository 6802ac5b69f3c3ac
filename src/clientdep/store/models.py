# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Value types persisted by the composite map store."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CompositeKey:
    """Identify one composite mapping.

    Attributes:
        content_key: Digest derived from the ordered dependency set.
        version: Externally supplied cache-busting counter.
        compression: Encoding applied to the artifact, e.g. ``"deflate"``.
    """

    content_key: str
    version: int
    compression: str


@dataclass(frozen=True, slots=True)
class CompositeRecord:
    """Map a :class:`CompositeKey` to its artifact and constituent files."""

    key: CompositeKey
    artifact: str
    constituents: tuple[str, ...]

    @classmethod
    def build(cls, key: CompositeKey, artifact: str, constituents: Iterable[str]) -> CompositeRecord:
        """Return a record with ``constituents`` frozen into a tuple."""

        return cls(key=key, artifact=str(artifact), constituents=tuple(str(path) for path in constituents))


__all__ = ["CompositeKey", "CompositeRecord"]
