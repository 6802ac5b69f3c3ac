# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Derive stable content keys for ordered dependency sets."""

from __future__ import annotations

import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Final

from .dependencies import DependencyDescriptor

_HASH_ENCODING: Final[str] = "utf-8"
ENTRY_DELIMITER: Final[bytes] = b"\0"
FIELD_DELIMITER: Final[bytes] = b"\x1f"
POLICY_DELIMITER: Final[bytes] = b"::"


@dataclass(frozen=True, slots=True)
class KeyPolicy:
    """Describe how descriptor paths are normalised before hashing.

    Attributes:
        case_insensitive: Case-fold paths so ``A.js`` and ``a.js`` share a key.
        include_priority: Fold priority values into each entry. When ``False``
            only the order priorities produce affects the key.
    """

    case_insensitive: bool = False
    include_priority: bool = False

    @property
    def token(self) -> str:
        """Return a short token identifying the policy inside the digest."""

        return f"ci={int(self.case_insensitive)};prio={int(self.include_priority)}"


DEFAULT_KEY_POLICY: Final[KeyPolicy] = KeyPolicy()


def normalise_path(path: str, policy: KeyPolicy = DEFAULT_KEY_POLICY) -> str:
    """Return ``path`` in the canonical form used for key derivation."""

    text = path.replace("\\", "/")
    return text.casefold() if policy.case_insensitive else text


def derive_content_key(
    descriptors: Sequence[DependencyDescriptor],
    policy: KeyPolicy = DEFAULT_KEY_POLICY,
) -> str:
    """Return the content key identifying ``descriptors`` in their given order.

    The caller is expected to have ordered the descriptors and resolved any
    path aliases. Order and membership are both significant.

    Args:
        descriptors: Ordered descriptors making up one composite.
        policy: Normalisation applied to each entry.

    Returns:
        str: Hex-encoded SHA-256 digest.
    """

    hasher = hashlib.sha256()
    hasher.update(policy.token.encode(_HASH_ENCODING))
    hasher.update(POLICY_DELIMITER)
    for descriptor in descriptors:
        hasher.update(descriptor.kind.value.encode(_HASH_ENCODING))
        hasher.update(FIELD_DELIMITER)
        hasher.update(normalise_path(descriptor.path, policy).encode(_HASH_ENCODING))
        if policy.include_priority:
            hasher.update(FIELD_DELIMITER)
            hasher.update(str(descriptor.priority).encode(_HASH_ENCODING))
        hasher.update(ENTRY_DELIMITER)
    return hasher.hexdigest()


@dataclass(frozen=True, slots=True)
class DefaultKeyDeriver:
    """Callable key deriver bound to a :class:`KeyPolicy`."""

    policy: KeyPolicy = DEFAULT_KEY_POLICY

    def __call__(self, descriptors: Sequence[DependencyDescriptor]) -> str:
        """Return the content key for ``descriptors`` under :attr:`policy`."""

        return derive_content_key(descriptors, self.policy)


__all__ = [
    "DEFAULT_KEY_POLICY",
    "DefaultKeyDeriver",
    "KeyPolicy",
    "derive_content_key",
    "normalise_path",
]
