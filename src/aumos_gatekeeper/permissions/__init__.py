"""Permission evaluation core: pattern matching, conditions and resolution.

Example
-------
::

    from aumos_gatekeeper.permissions import ConditionalGrant, PermissionResolver

    resolver = PermissionResolver(strict_mode=True)
    decision = resolver.decide("code.read", [ConditionalGrant("code.*")], {})
    assert decision.allowed
"""
from __future__ import annotations

from aumos_gatekeeper.permissions.conditions import (
    Condition,
    ConditionEvaluator,
    ConditionOperator,
    resolve_attribute,
)
from aumos_gatekeeper.permissions.pattern import (
    ParsedPermission,
    PatternMatcher,
    is_valid_permission,
    normalize_permission,
    parse_permission,
)
from aumos_gatekeeper.permissions.resolver import (
    ConditionalGrant,
    Decision,
    Effect,
    PermissionResolver,
)

__all__ = [
    "Condition",
    "ConditionEvaluator",
    "ConditionOperator",
    "ConditionalGrant",
    "Decision",
    "Effect",
    "ParsedPermission",
    "PatternMatcher",
    "PermissionResolver",
    "is_valid_permission",
    "normalize_permission",
    "parse_permission",
    "resolve_attribute",
]
