"""Attribute-based conditions attached to permission grants.

A :class:`Condition` names a dotted ``attribute`` path into the check
context, an operator and an expected ``value``. A grant applies only when
every one of its conditions holds (AND semantics).

Evaluation never raises: a missing attribute, an operator applied to the
wrong value types, or an operator string that is not recognised all make
the condition false.

Example
-------
>>> evaluator = ConditionEvaluator()
>>> conditions = [Condition("attributes.department", "equals", "engineering")]
>>> evaluator.evaluate(conditions, {"attributes": {"department": "engineering"}})
True
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

ConditionValue = str | int | float | bool | list[str] | list[int] | list[float]


class ConditionOperator(str, Enum):
    """Operators a condition may apply."""

    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    IN = "in"
    NOT_IN = "notIn"
    STARTS_WITH = "startsWith"
    ENDS_WITH = "endsWith"
    CONTAINS = "contains"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"


_OPERATOR_ALIASES: dict[str, ConditionOperator] = {
    "not_equals": ConditionOperator.NOT_EQUALS,
    "not_in": ConditionOperator.NOT_IN,
    "starts_with": ConditionOperator.STARTS_WITH,
    "ends_with": ConditionOperator.ENDS_WITH,
    "greater_than": ConditionOperator.GREATER_THAN,
    "less_than": ConditionOperator.LESS_THAN,
}


def coerce_operator(raw: object) -> ConditionOperator | str:
    """Map an operator string (camelCase or snake_case) to the enum.

    Unrecognised strings are returned unchanged so legacy records
    survive a round trip; they evaluate to false.
    """
    if isinstance(raw, ConditionOperator):
        return raw
    text = str(raw)
    try:
        return ConditionOperator(text)
    except ValueError:
        return _OPERATOR_ALIASES.get(text, text)


# ---------------------------------------------------------------------------
# Condition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Condition:
    """A single predicate over the check context.

    Attributes
    ----------
    attribute:
        Dotted path resolved against the context (``"attributes.level"``).
    operator:
        A :class:`ConditionOperator`, or the raw string of an unknown one.
    value:
        Expected value. ``in``/``notIn`` expect a list.
    """

    attribute: str
    operator: ConditionOperator | str
    value: ConditionValue

    def __post_init__(self) -> None:
        object.__setattr__(self, "operator", coerce_operator(self.operator))
        if isinstance(self.value, tuple):
            object.__setattr__(self, "value", list(self.value))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Condition:
        """Build a Condition from ``{"attribute", "operator", "value"}``.

        Raises
        ------
        ValueError
            If *data* is not a mapping, or ``attribute`` or ``operator`` is
            missing.
        """
        if not isinstance(data, Mapping):
            raise ValueError(f"Condition must be a mapping; got {data!r}.")
        attribute = str(data.get("attribute", ""))
        if not attribute:
            raise ValueError("Condition.attribute must not be empty.")
        operator = data.get("operator")
        if not operator:
            raise ValueError(f"Condition on {attribute!r} has no operator.")
        return cls(
            attribute=attribute,
            operator=coerce_operator(operator),
            value=data.get("value"),  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, object]:
        operator = (
            self.operator.value
            if isinstance(self.operator, ConditionOperator)
            else self.operator
        )
        value = list(self.value) if isinstance(self.value, list) else self.value
        return {"attribute": self.attribute, "operator": operator, "value": value}


# ---------------------------------------------------------------------------
# Context lookup
# ---------------------------------------------------------------------------


def resolve_attribute(path: str, context: object) -> object:
    """Resolve a dotted path against nested mappings and objects.

    Mappings are traversed by key, other objects by public data attribute;
    methods and other callables count as missing.
    Returns ``None`` when any segment is missing.
    """
    current: object = context
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            if part not in current:
                return None
            current = current[part]
        elif part and not part.startswith("_") and hasattr(current, part):
            current = getattr(current, part)
            if callable(current):
                return None
        else:
            return None
    return current


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _strict_equals(left: object, right: object) -> bool:
    # True == 1 in Python; keep booleans and numbers apart.
    if isinstance(left, bool) != isinstance(right, bool):
        return False
    return left == right


def _strict_member(item: object, values: object) -> bool:
    return any(_strict_equals(item, candidate) for candidate in values)  # type: ignore[attr-defined]


# ---------------------------------------------------------------------------
# ConditionEvaluator
# ---------------------------------------------------------------------------


class ConditionEvaluator:
    """Evaluates condition lists against a context mapping."""

    def evaluate(
        self,
        conditions: Sequence[Condition] | None,
        context: Mapping[str, object],
    ) -> bool:
        """Return True when every condition holds.

        An empty or ``None`` list is always true. Evaluation stops at the
        first failing condition.
        """
        if not conditions:
            return True
        return all(self.evaluate_one(condition, context) for condition in conditions)

    def evaluate_one(self, condition: Condition, context: Mapping[str, object]) -> bool:
        """Evaluate a single condition."""
        actual = resolve_attribute(condition.attribute, context)
        if actual is None:
            return False

        operator = condition.operator
        if not isinstance(operator, ConditionOperator):
            logger.warning(
                "Unknown condition operator %r on attribute %r; treating as false",
                operator,
                condition.attribute,
            )
            return False

        expected = condition.value
        match operator:
            case ConditionOperator.EQUALS:
                return _strict_equals(actual, expected)
            case ConditionOperator.NOT_EQUALS:
                return not _strict_equals(actual, expected)
            case ConditionOperator.IN:
                return isinstance(expected, (list, tuple)) and _strict_member(actual, expected)
            case ConditionOperator.NOT_IN:
                return isinstance(expected, (list, tuple)) and not _strict_member(
                    actual, expected
                )
            case ConditionOperator.STARTS_WITH:
                return (
                    isinstance(actual, str)
                    and isinstance(expected, str)
                    and actual.startswith(expected)
                )
            case ConditionOperator.ENDS_WITH:
                return (
                    isinstance(actual, str)
                    and isinstance(expected, str)
                    and actual.endswith(expected)
                )
            case ConditionOperator.CONTAINS:
                return (
                    isinstance(actual, str)
                    and isinstance(expected, str)
                    and expected in actual
                )
            case ConditionOperator.GREATER_THAN:
                return _is_number(actual) and _is_number(expected) and actual > expected  # type: ignore[operator]
            case ConditionOperator.LESS_THAN:
                return _is_number(actual) and _is_number(expected) and actual < expected  # type: ignore[operator]
