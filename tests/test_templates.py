"""
Tests for template rendering
"""

from chain_gateway.chains import ExecutionContext, StepResult, find_references, render

NAMESPACE = {
    "input": {"userId": "user1", "count": 3, "flags": {"admin": True}},
    "step_1": {"response": {"position": {"x_coord": 10, "y_coord": 20}, "tags": ["a", "b"]}},
}


def test_whole_value_reference_keeps_type():
    assert render("{{input.count}}", NAMESPACE) == 3
    assert render("{{ step_1.response.position }}", NAMESPACE) == {"x_coord": 10, "y_coord": 20}
    assert render("{{input.flags.admin}}", NAMESPACE) is True


def test_embedded_references_are_interpolated():
    assert render("char_{{input.userId}}", NAMESPACE) == "char_user1"
    assert render("{{input.count}} items: {{step_1.response.tags}}", NAMESPACE) == '3 items: ["a", "b"]'
    assert render("admin={{input.flags.admin}}", NAMESPACE) == "admin=true"


def test_unresolved_references():
    assert render("{{input.missing}}", NAMESPACE) is None
    assert render("id-{{input.missing}}", NAMESPACE) == "id-{{input.missing}}"


def test_structures_and_literals():
    template = {
        "x": "{{step_1.response.position.x_coord}}",
        "radius": 50,
        "list": ["{{input.userId}}", 1, None, {"nested": "{{input.count}}"}],
        "plain": "no refs",
    }
    assert render(template, NAMESPACE) == {
        "x": 10,
        "radius": 50,
        "list": ["user1", 1, None, {"nested": 3}],
        "plain": "no refs",
    }


def test_rendering_is_idempotent_and_copies():
    template = {"position": "{{step_1.response.position}}", "literal": {"k": [1, 2]}}
    first = render(template, NAMESPACE)
    second = render(template, NAMESPACE)
    assert first == second

    first["position"]["x_coord"] = 99
    first["literal"]["k"].append(3)
    assert NAMESPACE["step_1"]["response"]["position"]["x_coord"] == 10
    assert template["literal"]["k"] == [1, 2]


def test_render_against_context():
    context = ExecutionContext(input={"userId": "u"}, env={"REGION": "eu"})
    context = context.with_result(StepResult(step_id="A", success=True, response={"id": 5}))
    assert render({"id": "{{A.response.id}}", "region": "{{env.REGION}}", "ok": "{{A.success}}"}, context) == {
        "id": 5,
        "region": "eu",
        "ok": True,
    }


def test_find_references():
    assert sorted(find_references({"a": "{{x.y}}", "b": ["{{ z }} and {{w.v}}"]})) == ["w.v", "x.y", "z"]


def test_jinja_expressions_and_filters():
    assert render("{{ input.count * 2 }}", NAMESPACE) == 6
    assert render("{{ input.userId | upper }}", NAMESPACE) == "USER1"
    assert render("hello {{ input.userId | title }}", NAMESPACE) == "hello User1"
    assert render("{{ step_1.response.tags[1] }}", NAMESPACE) == "b"
    assert render("{{ step_1.response.tags | length }}", NAMESPACE) == 2


def test_mapping_keys_win_over_dict_methods():
    namespace = {"shop": {"response": {"items": [1, 2], "keys": "k"}}}
    assert render("{{ shop.response.items }}", namespace) == [1, 2]
    assert render("keys={{ shop.response.keys }}", namespace) == "keys=k"
    assert render("{{ shop.response.values }}", namespace) is None


def test_broken_expressions_degrade_like_unresolved_references():
    assert render("{{ input. }}", NAMESPACE) is None
    assert render("id-{{ input.userId + 1 }}", NAMESPACE) == "id-{{ input.userId + 1 }}"
    assert render("open {{ input.userId", NAMESPACE) == "open {{ input.userId"


def test_whitespace_around_a_single_reference_keeps_type():
    assert render("  {{ input.count }}\n", NAMESPACE) == 3
