"""Grant resolution: turning a list of conditional grants into a decision.

Grants are evaluated in the order given. A grant *matches* when its pattern
covers the required permission and all of its conditions hold.

- A matching ``allow`` grant sets the decision to allowed and evaluation
  continues, so a later ``deny`` can still override it.
- A matching ``deny`` grant sets the decision to denied and evaluation
  stops immediately.
- In strict mode a decision with zero matching grants is always denied.

Example
-------
::

    resolver = PermissionResolver()
    grants = [
        ConditionalGrant("users.read"),
        ConditionalGrant("users.read", effect=Effect.DENY),
    ]
    decision = resolver.decide("users.read", grants, {})
    assert decision.allowed is False
    assert decision.reason == "Access denied by explicit deny rule: users.read"
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum

from aumos_gatekeeper.permissions.conditions import Condition, ConditionEvaluator
from aumos_gatekeeper.permissions.pattern import PatternMatcher

logger = logging.getLogger(__name__)


class Effect(str, Enum):
    """What a matching grant does to the decision."""

    ALLOW = "allow"
    DENY = "deny"


# ---------------------------------------------------------------------------
# ConditionalGrant
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConditionalGrant:
    """A permission pattern with optional conditions and an effect.

    Attributes
    ----------
    pattern:
        Permission pattern, possibly containing ``*`` segments.
    conditions:
        Conditions that must all hold. Empty means unconditional.
    effect:
        :attr:`Effect.ALLOW` (default) or :attr:`Effect.DENY`.
    """

    pattern: str
    conditions: tuple[Condition, ...] = field(default_factory=tuple)
    effect: Effect = Effect.ALLOW

    def __post_init__(self) -> None:
        if not isinstance(self.conditions, tuple):
            object.__setattr__(self, "conditions", tuple(self.conditions or ()))
        if not isinstance(self.effect, Effect):
            object.__setattr__(self, "effect", Effect(str(self.effect).lower()))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ConditionalGrant:
        """Build a grant from its stored form.

        Accepts ``permission`` (stored form) or ``pattern`` for the pattern,
        an optional ``conditions`` list and an optional ``effect``.

        Raises
        ------
        ValueError
            If the record is not a mapping, the pattern is missing, the
            effect is unknown or the conditions are not a list.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Grant must be a mapping or a permission string; got {data!r}.")
        pattern = data.get("permission", data.get("pattern"))
        if not isinstance(pattern, str) or not pattern:
            raise ValueError(f"Grant must name a permission; got {pattern!r}.")

        effect_raw = data.get("effect") or Effect.ALLOW.value
        try:
            effect = Effect(str(effect_raw).lower())
        except ValueError as exc:
            raise ValueError(
                f"Grant effect must be 'allow' or 'deny'; got {effect_raw!r}."
            ) from exc

        raw_conditions = data.get("conditions") or []
        if not isinstance(raw_conditions, (list, tuple)):
            raise ValueError(f"Grant conditions must be a list; got {raw_conditions!r}.")
        conditions = tuple(Condition.from_dict(c) for c in raw_conditions)
        return cls(pattern=pattern, conditions=conditions, effect=effect)

    @classmethod
    def coerce(cls, value: ConditionalGrant | Mapping[str, object] | str) -> ConditionalGrant:
        """Accept a grant, its dict form, or a bare permission string."""
        if isinstance(value, ConditionalGrant):
            return value
        if isinstance(value, str):
            return cls(pattern=value)
        return cls.from_dict(value)

    def to_dict(self) -> dict[str, object]:
        record: dict[str, object] = {"permission": self.pattern}
        if self.conditions:
            record["conditions"] = [c.to_dict() for c in self.conditions]
        if self.effect is not Effect.ALLOW:
            record["effect"] = self.effect.value
        return record

    @property
    def is_conditional(self) -> bool:
        return bool(self.conditions)


# ---------------------------------------------------------------------------
# Decision
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Decision:
    """Immutable result of a permission check.

    Attributes
    ----------
    allowed:
        Whether the permission is granted.
    permission:
        The (normalized) permission that was checked.
    reason:
        Human-readable explanation of the outcome.
    matched:
        Every grant whose pattern and conditions matched, in order.
    denied_by:
        The deny grant that stopped evaluation, if any.
    """

    allowed: bool
    permission: str
    reason: str
    matched: tuple[ConditionalGrant, ...] = ()
    denied_by: tuple[ConditionalGrant, ...] = ()

    def __bool__(self) -> bool:
        """Return True if the permission is granted."""
        return self.allowed

    def to_dict(self) -> dict[str, object]:
        return {
            "allowed": self.allowed,
            "permission": self.permission,
            "reason": self.reason,
            "matched": [g.pattern for g in self.matched],
            "denied_by": [g.pattern for g in self.denied_by],
        }


# ---------------------------------------------------------------------------
# PermissionResolver
# ---------------------------------------------------------------------------


class PermissionResolver:
    """Resolves a required permission against an ordered grant list.

    Parameters
    ----------
    matcher:
        Pattern matcher. Defaults to ``.``-separated with wildcards on.
    evaluator:
        Condition evaluator.
    strict_mode:
        When ``True`` a decision with no matching grant is always denied.
    """

    def __init__(
        self,
        matcher: PatternMatcher | None = None,
        evaluator: ConditionEvaluator | None = None,
        strict_mode: bool = False,
    ) -> None:
        self._matcher = matcher or PatternMatcher()
        self._evaluator = evaluator or ConditionEvaluator()
        self._strict_mode = strict_mode

    def decide(
        self,
        required: str,
        grants: Sequence[ConditionalGrant],
        context: Mapping[str, object] | None = None,
    ) -> Decision:
        """Return the decision for *required* under *grants*.

        Parameters
        ----------
        required:
            Normalized permission to check. An empty string is denied.
        grants:
            Effective grants in evaluation order.
        context:
            Attribute bag for condition evaluation.

        Returns
        -------
        Decision
        """
        if not required:
            return Decision(
                allowed=False,
                permission=required,
                reason="Access denied: Empty permission",
            )

        effective_context = context or {}
        matched: list[ConditionalGrant] = []
        denied_by: list[ConditionalGrant] = []
        allowed = False

        for grant in grants:
            if not self._matcher.matches(required, grant.pattern):
                continue
            if not self._evaluator.evaluate(grant.conditions, effective_context):
                continue

            matched.append(grant)
            if grant.effect is Effect.DENY:
                denied_by.append(grant)
                allowed = False
                break
            allowed = True

        if self._strict_mode and not matched:
            allowed = False

        reason = self._reason(allowed, matched, denied_by)
        logger.debug(
            "Permission %s: permission=%s matched=%d reason=%s",
            "ALLOW" if allowed else "DENY",
            required,
            len(matched),
            reason,
        )
        return Decision(
            allowed=allowed,
            permission=required,
            reason=reason,
            matched=tuple(matched),
            denied_by=tuple(denied_by),
        )

    def _reason(
        self,
        allowed: bool,
        matched: list[ConditionalGrant],
        denied_by: list[ConditionalGrant],
    ) -> str:
        if denied_by:
            return f"Access denied by explicit deny rule: {denied_by[0].pattern}"
        if allowed:
            first_allow = next(g for g in matched if g.effect is Effect.ALLOW)
            return f"Access granted by permission: {first_allow.pattern}"
        if self._strict_mode:
            return "Access denied: No matching permissions found (strict mode)"
        return "Access denied: No matching permissions found"

    @property
    def strict_mode(self) -> bool:
        return self._strict_mode

    @property
    def matcher(self) -> PatternMatcher:
        return self._matcher
