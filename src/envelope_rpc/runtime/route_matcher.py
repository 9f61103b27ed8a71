# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Route Matcher.

Pure matching of route descriptors against concrete request paths.

Route descriptors come in three variants (``EnumRouteKind``):

    - LITERAL: a path with no ``:`` marker, matched by exact equality
    - PARAMETERIZED: a path containing ``:name`` segments; both sides are
      split on ``/`` (empty segments dropped), segment counts must agree,
      marker segments bind the raw path segment, other segments must be
      equal
    - PATTERN: a compiled regular expression that must match the whole
      path; capture groups are never turned into parameters

Priority between several matching routes is decided by the caller
(``RpcServer`` walks its routes in registration order, first match wins).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import cast

from envelope_rpc.enums import EnumRouteKind
from envelope_rpc.errors import RouteValidationError

PATH_SEPARATOR = "/"
PARAM_MARKER = ":"


def validate_route(route: object) -> None:
    """Raise RouteValidationError unless ``route`` is a pattern or starts with ``/``."""
    if isinstance(route, (re.Pattern, RouteDescriptor)):
        return
    if not isinstance(route, str) or not route.startswith(PATH_SEPARATOR):
        raise RouteValidationError(route)


def _split_path(path: str) -> list[str]:
    return [segment for segment in path.split(PATH_SEPARATOR) if segment]


@dataclass(frozen=True, slots=True)
class RouteDescriptor:
    """Tagged route descriptor.

    Attributes:
        kind: Descriptor variant
        source: The literal route text, or the pattern source for PATTERN
        pattern: Compiled pattern (PATTERN only)
        segments: Pre-split segments (PARAMETERIZED only)
    """

    kind: EnumRouteKind
    source: str
    pattern: re.Pattern[str] | None = None
    segments: tuple[str, ...] = ()

    @classmethod
    def parse(cls, route: str | re.Pattern[str] | RouteDescriptor) -> RouteDescriptor:
        """Validate ``route`` and build its descriptor.

        Raises:
            RouteValidationError: If a non-pattern route does not start with ``/``.
        """
        if isinstance(route, RouteDescriptor):
            return route
        validate_route(route)
        if isinstance(route, re.Pattern):
            return cls(kind=EnumRouteKind.PATTERN, source=route.pattern, pattern=route)
        if PARAM_MARKER not in route:
            return cls(kind=EnumRouteKind.LITERAL, source=route)
        return cls(
            kind=EnumRouteKind.PARAMETERIZED,
            source=route,
            segments=tuple(_split_path(route)),
        )

    def match(self, path: str) -> dict[str, str] | None:
        return match_route(self, path)

    def __str__(self) -> str:
        return self.source


def match_route(
    descriptor: str | re.Pattern[str] | RouteDescriptor,
    path: str,
) -> dict[str, str] | None:
    """Match ``path`` against a route descriptor.

    Args:
        descriptor: Route descriptor, or a raw route to parse first.
        path: Concrete request path.

    Returns:
        Extracted parameters (empty for LITERAL and PATTERN), or None when
        the path does not match.

    Example:
        >>> match_route("/users/:id", "/users/42")
        {'id': '42'}
        >>> match_route(re.compile(r"/files/(.+)"), "/files/a.txt")
        {}
        >>> match_route("/users/me", "/users/42") is None
        True
    """
    route = RouteDescriptor.parse(descriptor)

    if route.kind is EnumRouteKind.PATTERN:
        pattern = cast("re.Pattern[str]", route.pattern)
        return {} if pattern.fullmatch(path) else None

    if route.kind is EnumRouteKind.LITERAL:
        return {} if route.source == path else None

    path_segments = _split_path(path)
    if len(route.segments) != len(path_segments):
        return None

    params: dict[str, str] = {}
    for route_segment, path_segment in zip(route.segments, path_segments):
        if route_segment.startswith(PARAM_MARKER):
            name = route_segment[len(PARAM_MARKER) :]
            if not name:
                return None
            params[name] = path_segment
        elif route_segment != path_segment:
            return None
    return params


__all__ = [
    "PARAM_MARKER",
    "PATH_SEPARATOR",
    "RouteDescriptor",
    "match_route",
    "validate_route",
]
