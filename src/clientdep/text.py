# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Text checks shared by descriptors and the persisted composite map."""

from __future__ import annotations

import re
from typing import Final

# Characters outside the XML 1.0 ``Char`` production.
_XML_FORBIDDEN: Final[re.Pattern[str]] = re.compile(r"[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def require_xml_text(value: str, *, field: str) -> str:
    """Return ``value`` unchanged when it can be stored in an XML attribute.

    Args:
        value: Text destined for the map document.
        field: Name reported in the error message.

    Returns:
        str: ``value`` itself.

    Raises:
        ValueError: If ``value`` contains a character XML 1.0 cannot represent.
    """

    match = _XML_FORBIDDEN.search(value)
    if match is not None:
        raise ValueError(f"{field} contains character {match.group()!r} which cannot be stored in the composite map")
    return value


__all__ = ["require_xml_text"]
