"""Offline helpers for inspecting an access model.

These functions work on in-memory data (a list of patterns, or a mapping of
group id to :class:`Group`) and never touch a storage connector. Group
helpers follow :class:`GroupRef` members through the mapping and guard
against cycles the same way the aggregation walker does.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from aumos_gatekeeper.models import Group
from aumos_gatekeeper.permissions.pattern import (
    DEFAULT_SEPARATOR,
    WILDCARD,
    parse_permission,
)


@dataclass
class PatternAnalysis:
    """Summary of a set of permission patterns."""

    wildcards: int = 0
    specific: int = 0
    services: set[str] = field(default_factory=set)
    resources: set[str] = field(default_factory=set)
    actions: set[str] = field(default_factory=set)

    def to_dict(self) -> dict[str, object]:
        return {
            "wildcards": self.wildcards,
            "specific": self.specific,
            "services": sorted(self.services),
            "resources": sorted(self.resources),
            "actions": sorted(self.actions),
        }


def analyze_patterns(
    patterns: Iterable[str], separator: str = DEFAULT_SEPARATOR
) -> PatternAnalysis:
    """Count wildcard vs. specific patterns and collect their named fields."""
    analysis = PatternAnalysis()
    for pattern in patterns:
        if WILDCARD in pattern:
            analysis.wildcards += 1
        else:
            analysis.specific += 1

        parsed = parse_permission(pattern, separator)
        if parsed.service and parsed.service != WILDCARD:
            analysis.services.add(parsed.service)
        if parsed.resource and parsed.resource != WILDCARD:
            analysis.resources.add(parsed.resource)
        if parsed.action and parsed.action != WILDCARD:
            analysis.actions.add(parsed.action)
    return analysis


def _reachable_groups(root: Group, groups: Mapping[str, Group]) -> list[Group]:
    visited: set[str] = set()
    ordered: list[Group] = []
    stack: list[Group] = [root]
    while stack:
        group = stack.pop()
        if group.id in visited:
            continue
        visited.add(group.id)
        ordered.append(group)
        for child_id in reversed(group.subgroup_ids):
            child = groups.get(child_id)
            if child is not None:
                stack.append(child)
    return ordered


def flatten_group_members(group: Group, groups: Mapping[str, Group]) -> list[str]:
    """Return every subject id in *group* and its subgroups, de-duplicated."""
    subject_ids: dict[str, None] = {}
    for reachable in _reachable_groups(group, groups):
        for subject_id in reachable.subject_members:
            subject_ids.setdefault(subject_id)
    return list(subject_ids)


def group_contains_subject(group: Group, subject_id: str, groups: Mapping[str, Group]) -> bool:
    """Return True if *subject_id* is a member of *group* at any depth."""
    return subject_id in flatten_group_members(group, groups)


def group_depth(group: Group, groups: Mapping[str, Group]) -> int:
    """Return the deepest subgroup nesting below *group*.

    A group with no subgroups has depth 0. Each group is counted once per
    path, so a cycle does not inflate the result.
    """
    max_depth = 0
    stack: list[tuple[str, int, frozenset[str]]] = [(group.id, 0, frozenset([group.id]))]
    while stack:
        group_id, depth, path = stack.pop()
        max_depth = max(max_depth, depth)
        current = groups.get(group_id) if group_id != group.id else group
        if current is None:
            continue
        for child_id in current.subgroup_ids:
            if child_id in path or child_id not in groups:
                continue
            stack.append((child_id, depth + 1, path | {child_id}))
    return max_depth
