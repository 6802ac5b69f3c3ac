# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Operator command line for inspecting and pruning composite maps."""

from __future__ import annotations

from .app import app

__all__ = ["app"]
