"""Permission string matching and normalization.

Permissions are dot-delimited tokens such as ``service.resource.action``.
Granted permissions may be *patterns* containing the wildcard segment ``*``.

Wildcard rules
--------------
- ``*`` on its own matches every permission, whatever its length.
- A ``*`` segment matches exactly one non-empty segment at the same
  position. It never absorbs additional segments, so ``users.*`` matches
  ``users.read`` but not ``users.admin.read``.
- Every other segment is compared verbatim.

Example
-------
::

    matcher = PatternMatcher()
    assert matcher.matches("users.read", "users.*")
    assert not matcher.matches("users.admin.read", "users.*")
    assert normalize_permission("Users..Read") == "users.read"
"""
from __future__ import annotations

import re
from dataclasses import dataclass

WILDCARD: str = "*"
DEFAULT_SEPARATOR: str = "."

_VALID_PERMISSION_RE = re.compile(r"^[a-zA-Z0-9._\-*]+$")


# ---------------------------------------------------------------------------
# PatternMatcher
# ---------------------------------------------------------------------------


class PatternMatcher:
    """Decides whether a granted pattern covers a requested permission.

    Parameters
    ----------
    separator:
        Segment separator. Default ``"."``.
    wildcard_support:
        When ``False`` only exact string equality matches and ``*`` is an
        ordinary character.
    """

    def __init__(
        self,
        separator: str = DEFAULT_SEPARATOR,
        wildcard_support: bool = True,
    ) -> None:
        if not separator:
            raise ValueError("PatternMatcher.separator must not be empty.")
        self._separator = separator
        self._wildcard_support = wildcard_support

    def matches(self, requested: str, pattern: str) -> bool:
        """Return True if *pattern* grants *requested*.

        Parameters
        ----------
        requested:
            The permission being checked (already normalized by the caller).
        pattern:
            The granted permission, possibly containing ``*`` segments.

        Returns
        -------
        bool
        """
        if requested == pattern:
            return True

        if not self._wildcard_support:
            return False

        if pattern == WILDCARD:
            return True

        if WILDCARD not in pattern:
            return False

        requested_parts = requested.split(self._separator)
        pattern_parts = pattern.split(self._separator)
        if len(requested_parts) != len(pattern_parts):
            return False

        for requested_part, pattern_part in zip(requested_parts, pattern_parts):
            if pattern_part == WILDCARD:
                if not requested_part:
                    return False
            elif pattern_part != requested_part:
                return False
        return True

    @property
    def separator(self) -> str:
        """The segment separator."""
        return self._separator

    @property
    def wildcard_support(self) -> bool:
        """Whether ``*`` segments are honoured."""
        return self._wildcard_support


# ---------------------------------------------------------------------------
# Normalization and parsing
# ---------------------------------------------------------------------------


def normalize_permission(permission: str, separator: str = DEFAULT_SEPARATOR) -> str:
    """Collapse empty segments and lower-case a permission string.

    ``normalize_permission(normalize_permission(x)) == normalize_permission(x)``
    holds for every input.
    """
    parts = [part for part in permission.split(separator) if part]
    return separator.join(parts).lower()


@dataclass(frozen=True)
class ParsedPermission:
    """Structural view of a permission string.

    Attributes
    ----------
    components:
        Every segment in order.
    service, resource, action:
        Named fields, populated only for 3, 2 or 1 segment permissions.
    """

    components: tuple[str, ...]
    service: str | None = None
    resource: str | None = None
    action: str | None = None

    def to_permission(self, separator: str = DEFAULT_SEPARATOR) -> str:
        """Rejoin the named fields (or the raw components) into a string."""
        named = [p for p in (self.service, self.resource, self.action) if p is not None]
        if named:
            return separator.join(named)
        return separator.join(self.components)


def parse_permission(permission: str, separator: str = DEFAULT_SEPARATOR) -> ParsedPermission:
    """Split a permission into its components and named fields."""
    components = tuple(permission.split(separator))
    match len(components):
        case 3:
            service, resource, action = components
            return ParsedPermission(
                components=components,
                service=service,
                resource=resource,
                action=action,
            )
        case 2:
            resource, action = components
            return ParsedPermission(components=components, resource=resource, action=action)
        case 1:
            return ParsedPermission(components=components, action=components[0])
        case _:
            return ParsedPermission(components=components)


def is_valid_permission(permission: object) -> bool:
    """Return True for non-empty strings of ``[A-Za-z0-9._-*]`` characters."""
    if not isinstance(permission, str) or not permission:
        return False
    return bool(_VALID_PERMISSION_RE.match(permission))
