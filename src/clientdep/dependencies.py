# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Dependency descriptors and the helpers that order them for combination."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Final

from pydantic import BaseModel, ConfigDict, field_validator

from .errors import UnknownPathAliasError
from .text import require_xml_text

DEFAULT_PRIORITY: Final[int] = 100


class DependencyKind(str, Enum):
    """Enumerate the asset pipelines a dependency can belong to."""

    SCRIPT = "script"
    STYLE = "style"


class DependencyDescriptor(BaseModel):
    """Describe one client-side asset referenced by a page.

    Attributes:
        path: Filesystem or logical location of the asset. Must be non-empty.
        kind: Pipeline the asset is rendered and combined with.
        priority: Ordering weight; lower values combine earlier.
        skip_optimization: When ``True`` the asset is rendered standalone and
            never fed into a composite.
        path_alias: Optional name of a registered base path prepended to
            :attr:`path` during resolution.
        on_load_callback: Optional client-side function invoked once the asset
            loads. Carried through untouched.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    kind: DependencyKind
    priority: int = DEFAULT_PRIORITY
    skip_optimization: bool = False
    path_alias: str | None = None
    on_load_callback: str | None = None

    @field_validator("path")
    @classmethod
    def _require_path(cls, value: str) -> str:
        """Reject blank paths and paths the composite map cannot store.

        Surrounding whitespace is stripped so the recorded constituent matches
        the path the content key was derived from.

        Args:
            value: Raw path supplied by the discovery layer.

        Returns:
            str: The stripped path.

        Raises:
            ValueError: If ``value`` is blank or contains a character XML
                cannot represent.
        """

        text = value.strip()
        if not text:
            raise ValueError("dependency path must not be empty")
        return require_xml_text(text, field="dependency path")

    @field_validator("path_alias", "on_load_callback", mode="before")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        """Normalise empty optional strings to ``None``."""

        if value is None:
            return None
        text = str(value).strip()
        return text or None


class PathAliasRegistry:
    """Map alias names onto base paths used to expand descriptor paths."""

    def __init__(self, aliases: Mapping[str, str] | None = None) -> None:
        self._aliases: dict[str, str] = dict(aliases or {})

    def register(self, alias: str, base_path: str) -> None:
        """Register (or replace) ``alias`` so it expands to ``base_path``."""

        self._aliases[alias] = base_path

    def __contains__(self, alias: object) -> bool:
        return alias in self._aliases

    def resolve(self, descriptor: DependencyDescriptor) -> DependencyDescriptor:
        """Return ``descriptor`` with its alias expanded into :attr:`path`.

        Args:
            descriptor: Descriptor whose alias should be applied.

        Returns:
            DependencyDescriptor: A new descriptor with the alias cleared, or
            ``descriptor`` itself when it carries no alias.

        Raises:
            UnknownPathAliasError: If the alias has not been registered.
        """

        alias = descriptor.path_alias
        if alias is None:
            return descriptor
        try:
            base = self._aliases[alias]
        except KeyError:
            raise UnknownPathAliasError(alias) from None
        joined = f"{base.rstrip('/')}/{descriptor.path.lstrip('/')}"
        return descriptor.model_copy(update={"path": joined, "path_alias": None})

    def resolve_all(self, descriptors: Iterable[DependencyDescriptor]) -> tuple[DependencyDescriptor, ...]:
        """Resolve every descriptor in ``descriptors`` preserving order."""

        return tuple(self.resolve(descriptor) for descriptor in descriptors)


def partition_dependencies(
    descriptors: Iterable[DependencyDescriptor],
) -> tuple[tuple[DependencyDescriptor, ...], tuple[DependencyDescriptor, ...]]:
    """Split ``descriptors`` into combinable and standalone assets.

    Args:
        descriptors: Descriptors in declaration order.

    Returns:
        tuple: ``(combinable, standalone)``, each preserving declaration order.
    """

    combinable: list[DependencyDescriptor] = []
    standalone: list[DependencyDescriptor] = []
    for descriptor in descriptors:
        (standalone if descriptor.skip_optimization else combinable).append(descriptor)
    return tuple(combinable), tuple(standalone)


def order_dependencies(descriptors: Iterable[DependencyDescriptor]) -> tuple[DependencyDescriptor, ...]:
    """Return ``descriptors`` stable-sorted by priority."""

    return tuple(sorted(descriptors, key=lambda descriptor: descriptor.priority))


def group_by_kind(
    descriptors: Sequence[DependencyDescriptor],
) -> dict[DependencyKind, tuple[DependencyDescriptor, ...]]:
    """Group ``descriptors`` by kind, ordering each group by priority.

    Groups appear in the order their kind is first declared.

    Args:
        descriptors: Descriptors in declaration order.

    Returns:
        dict[DependencyKind, tuple[DependencyDescriptor, ...]]: Ordered groups.
    """

    buckets: dict[DependencyKind, list[DependencyDescriptor]] = {}
    for descriptor in descriptors:
        buckets.setdefault(descriptor.kind, []).append(descriptor)
    return {kind: order_dependencies(members) for kind, members in buckets.items()}


__all__ = [
    "DEFAULT_PRIORITY",
    "DependencyDescriptor",
    "DependencyKind",
    "PathAliasRegistry",
    "group_by_kind",
    "order_dependencies",
    "partition_dependencies",
]
