# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Route descriptor kind enumeration."""

from enum import Enum


class EnumRouteKind(str, Enum):
    """Variant tag for route descriptors.

    Attributes:
        LITERAL: Plain path compared for exact equality
        PARAMETERIZED: Path with ``:name`` segments bound to path values
        PATTERN: Compiled regular expression matched against the whole path
    """

    LITERAL = "literal"
    PARAMETERIZED = "parameterized"
    PATTERN = "pattern"


__all__ = ["EnumRouteKind"]
