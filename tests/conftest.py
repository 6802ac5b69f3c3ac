# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from clientdep.store import CompositeMapStore
from tests.helpers.producers import RecordingProducer


@pytest.fixture
def map_file(tmp_path: Path) -> Path:
    """Return the map file location inside a not-yet-created composite directory."""

    return tmp_path / "composites" / "testhost-map.xml"


@pytest.fixture
def store(map_file: Path) -> CompositeMapStore:
    """Return an enabled map store bound to ``map_file``."""

    return CompositeMapStore(map_file)


@pytest.fixture
def producer(tmp_path: Path) -> RecordingProducer:
    """Return a producer writing artifacts under ``tmp_path``."""

    return RecordingProducer(tmp_path / "artifacts")
