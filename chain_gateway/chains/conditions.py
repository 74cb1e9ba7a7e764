"""
Condition Evaluator

Evaluates condition trees (leaves and AND/OR groups) against an execution
context. Pure: no I/O, no mutation of the context.
"""

import logging
import math
from typing import Any, Mapping, Optional, Union

from .context import ExecutionContext, MISSING, resolve_path
from .errors import EvalError
from .models import ConditionGroup, ConditionLeaf, ConditionOperator

logger = logging.getLogger(__name__)


def evaluate(
    condition: Union[ConditionLeaf, ConditionGroup],
    context: Union[ExecutionContext, Mapping[str, Any]]
) -> bool:
    """
    Evaluate a condition tree

    Args:
        condition: Leaf or group to evaluate
        context: ExecutionContext or a plain lookup namespace

    Returns:
        True if the condition holds, False otherwise

    Raises:
        EvalError: If the tree is malformed (empty group, unknown node or logic)

    Example:
        >>> evaluate(
        ...     ConditionLeaf(field="A.success", operator="not_equals", value=True),
        ...     {"A": {"success": False}}
        ... )
        True
    """
    namespace = context.namespace if isinstance(context, ExecutionContext) else context
    return _evaluate_node(condition, namespace)


def _evaluate_node(condition: Any, namespace: Mapping[str, Any]) -> bool:
    if isinstance(condition, ConditionGroup):
        return _evaluate_group(condition, namespace)
    if isinstance(condition, ConditionLeaf):
        return _evaluate_leaf(condition, namespace)
    raise EvalError(f"Unsupported condition node: {type(condition).__name__}")


def _evaluate_group(group: ConditionGroup, namespace: Mapping[str, Any]) -> bool:
    if not group.conditions:
        raise EvalError(f"{group.logic} group has no conditions")

    if group.logic == "AND":
        for child in group.conditions:
            if not _evaluate_node(child, namespace):
                return False
        return True

    if group.logic == "OR":
        for child in group.conditions:
            if _evaluate_node(child, namespace):
                return True
        return False

    raise EvalError(f"Unknown group logic: {group.logic}")


def _evaluate_leaf(leaf: ConditionLeaf, namespace: Mapping[str, Any]) -> bool:
    value = resolve_path(namespace, leaf.field)
    operator = ConditionOperator(leaf.operator)

    if operator is ConditionOperator.EXISTS:
        return value is not MISSING and value is not None
    if operator is ConditionOperator.NOT_EXISTS:
        return value is MISSING or value is None

    if value is MISSING:
        logger.debug(f"Condition field '{leaf.field}' is not populated; {operator.value} -> False")
        return False

    result = compare(value, operator, leaf.value)
    logger.debug(f"Condition: {leaf.field} {operator.value} {leaf.value!r} (actual {value!r}) -> {result}")
    return result


def compare(actual: Any, operator: ConditionOperator, expected: Any) -> bool:
    """Apply a comparison operator to a resolved value"""
    if operator is ConditionOperator.EQUALS:
        return _loose_equals(actual, expected)
    if operator is ConditionOperator.NOT_EQUALS:
        return not _loose_equals(actual, expected)

    if operator is ConditionOperator.CONTAINS:
        return _contains(actual, expected) is True
    if operator is ConditionOperator.NOT_CONTAINS:
        return _contains(actual, expected) is False

    if operator in _ORDERING:
        left, right = _as_number(actual), _as_number(expected)
        if left is None or right is None:
            return False
        return _ORDERING[operator](left, right)

    if operator is ConditionOperator.EXISTS:
        return actual is not None
    if operator is ConditionOperator.NOT_EXISTS:
        return actual is None

    raise EvalError(f"Unknown condition operator: {operator}")


_ORDERING = {
    ConditionOperator.GREATER_THAN: lambda a, b: a > b,
    ConditionOperator.LESS_THAN: lambda a, b: a < b,
    ConditionOperator.GREATER_OR_EQUAL: lambda a, b: a >= b,
    ConditionOperator.LESS_OR_EQUAL: lambda a, b: a <= b,
}


def _loose_equals(actual: Any, expected: Any) -> bool:
    # Booleans against "true"/"false" strings
    if isinstance(actual, bool) and isinstance(expected, str):
        return actual == (expected.strip().lower() == "true")
    if isinstance(actual, str) and isinstance(expected, bool):
        return (actual.strip().lower() == "true") == expected

    # Numbers against numeric strings
    if _is_number(actual) and isinstance(expected, str):
        parsed = _as_number(expected)
        return parsed is not None and actual == parsed
    if isinstance(actual, str) and _is_number(expected):
        parsed = _as_number(actual)
        return parsed is not None and parsed == expected

    # bool is an int subclass; keep True != 1
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def _contains(actual: Any, expected: Any) -> Optional[bool]:
    """Membership test; None when the value kind does not support it"""
    if isinstance(actual, str):
        return _stringify(expected) in actual
    if isinstance(actual, (list, tuple)):
        return any(_loose_equals(item, expected) for item in actual)
    return None


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_number(value: Any) -> Optional[float]:
    if _is_number(value):
        return None if isinstance(value, float) and math.isnan(value) else value
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None
