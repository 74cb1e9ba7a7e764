"""
Tests for the condition evaluator
"""

import pytest
from pydantic import TypeAdapter

from chain_gateway.chains import (
    Condition,
    ConditionGroup,
    ConditionLeaf,
    EvalError,
    ErrorCode,
    ExecutionContext,
    StepResult,
    evaluate,
)

NAMESPACE = {
    "input": {"x": 1, "name": "Thorin", "tags": ["dwarf", "king"], "flag": True},
    "A": {
        "success": False,
        "status_code": 500,
        "response": {"items": [{"name": "axe"}, {"name": "shield"}], "count": "3", "empty": None},
    },
}

condition_adapter = TypeAdapter(Condition)


def leaf(field, operator, value=None):
    return ConditionLeaf(field=field, operator=operator, value=value)


class TestLeafOperators:
    def test_equals(self):
        assert evaluate(leaf("input.x", "equals", 1), NAMESPACE)
        assert not evaluate(leaf("input.x", "equals", 2), NAMESPACE)

    def test_equals_coerces_bool_strings(self):
        assert evaluate(leaf("input.flag", "equals", "true"), NAMESPACE)
        assert evaluate(leaf("A.success", "equals", "false"), NAMESPACE)

    def test_equals_coerces_numeric_strings(self):
        assert evaluate(leaf("A.response.count", "equals", 3), NAMESPACE)
        assert evaluate(leaf("input.x", "equals", "1"), NAMESPACE)

    def test_bool_is_not_int(self):
        assert not evaluate(leaf("input.flag", "equals", 1), NAMESPACE)

    def test_not_equals_on_failed_step(self):
        assert evaluate(leaf("A.success", "not_equals", True), NAMESPACE)

    def test_contains_string_and_list(self):
        assert evaluate(leaf("input.name", "contains", "hor"), NAMESPACE)
        assert evaluate(leaf("input.tags", "contains", "king"), NAMESPACE)
        assert evaluate(leaf("input.tags", "not_contains", "elf"), NAMESPACE)
        assert not evaluate(leaf("input.tags", "not_contains", "dwarf"), NAMESPACE)

    def test_contains_on_unsupported_kind_is_false(self):
        assert not evaluate(leaf("input.x", "contains", 1), NAMESPACE)
        assert not evaluate(leaf("input.x", "not_contains", 1), NAMESPACE)

    def test_ordering(self):
        assert evaluate(leaf("A.status_code", "greater_or_equal", 500), NAMESPACE)
        assert evaluate(leaf("A.status_code", "greater_than", "499"), NAMESPACE)
        assert evaluate(leaf("A.response.count", "less_than", 4), NAMESPACE)
        assert evaluate(leaf("input.x", "less_or_equal", 1), NAMESPACE)

    def test_ordering_on_non_numeric_is_false(self):
        assert not evaluate(leaf("input.name", "greater_than", 1), NAMESPACE)
        assert not evaluate(leaf("input.flag", "greater_than", 0), NAMESPACE)

    def test_indexed_paths(self):
        assert evaluate(leaf("A.response.items[1].name", "equals", "shield"), NAMESPACE)
        assert evaluate(leaf("A.response.items.0.name", "equals", "axe"), NAMESPACE)


class TestAbsentFields:
    @pytest.mark.parametrize("operator", [
        "equals", "not_equals", "contains", "not_contains",
        "greater_than", "less_than", "greater_or_equal", "less_or_equal",
    ])
    def test_absent_path_is_false(self, operator):
        assert evaluate(leaf("B.response.value", operator, 1), NAMESPACE) is False

    def test_exists(self):
        assert evaluate(leaf("A.response.items", "exists"), NAMESPACE)
        assert not evaluate(leaf("A.response.missing", "exists"), NAMESPACE)
        assert not evaluate(leaf("A.response.empty", "exists"), NAMESPACE)

    def test_not_exists(self):
        assert evaluate(leaf("nope.deeper[3]", "not_exists"), NAMESPACE)
        assert evaluate(leaf("A.response.empty", "not_exists"), NAMESPACE)
        assert not evaluate(leaf("input.x", "not_exists"), NAMESPACE)

    @pytest.mark.parametrize("path", ["", "a..b", "input.tags[x]", "[", "input.x.y"])
    def test_exists_never_raises_on_bad_paths(self, path):
        assert evaluate(leaf(path, "exists"), NAMESPACE) is False
        assert evaluate(leaf(path, "not_exists"), NAMESPACE) is True


class TestGroups:
    def test_and_or(self):
        tree = condition_adapter.validate_python({
            "logic": "OR",
            "conditions": [
                {"field": "input.x", "operator": "equals", "value": 2},
                {
                    "logic": "AND",
                    "conditions": [
                        {"field": "A.success", "operator": "equals", "value": False},
                        {"field": "input.name", "operator": "contains", "value": "Tho"},
                    ],
                },
            ],
        })
        assert isinstance(tree, ConditionGroup)
        assert evaluate(tree, NAMESPACE)

    def test_and_short_circuits(self):
        # The malformed second child is never reached
        tree = ConditionGroup(logic="AND", conditions=[
            leaf("input.x", "equals", 2),
            ConditionGroup(logic="OR", conditions=[]),
        ])
        assert evaluate(tree, NAMESPACE) is False

    def test_or_short_circuits(self):
        tree = ConditionGroup(logic="OR", conditions=[
            leaf("input.x", "equals", 1),
            ConditionGroup(logic="AND", conditions=[]),
        ])
        assert evaluate(tree, NAMESPACE) is True

    def test_empty_group_raises_eval_error(self):
        with pytest.raises(EvalError) as exc_info:
            evaluate(ConditionGroup(logic="AND", conditions=[]), NAMESPACE)
        assert exc_info.value.code is ErrorCode.EVAL_ERROR


def test_evaluates_against_execution_context():
    context = ExecutionContext(input={"x": 1}, env={"MODE": "test"}, user_id="u1", chain_id=7)
    context = context.with_result(StepResult(step_id="A", success=False, status_code=503))

    assert evaluate(leaf("A.success", "not_equals", True), context)
    assert evaluate(leaf("A.status_code", "equals", 503), context)
    assert evaluate(leaf("env.MODE", "equals", "test"), context)
    assert evaluate(leaf("context.user_id", "equals", "u1"), context)
    assert evaluate(leaf("context.chain_id", "equals", 7), context)
