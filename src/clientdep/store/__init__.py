# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Persistent composite map store and its factory."""

from __future__ import annotations

from ..config import CompositeSettings, resolve_composite_settings
from .map_store import CompositeMapStore
from .models import CompositeKey, CompositeRecord


def create_map_store(settings: CompositeSettings | None = None) -> CompositeMapStore:
    """Build a map store configured according to ``settings``.

    Args:
        settings: Explicit settings; the environment is consulted when omitted.

    Returns:
        CompositeMapStore: Store bound to the host's map file. No filesystem
        access happens until the first operation.
    """

    return CompositeMapStore.from_settings(resolve_composite_settings(settings))


__all__ = [
    "CompositeKey",
    "CompositeMapStore",
    "CompositeRecord",
    "create_map_store",
]
