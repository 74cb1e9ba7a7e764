"""
Output Templater

Resolves {{ expression }} references in templates against an execution
context through a Jinja2 environment. Used for the chain output template,
module request params/body/headers and chain input mappings.

A string that is exactly one reference keeps the referenced value's type;
references embedded in longer strings are interpolated as text.
"""

import copy
import json
import logging
from functools import lru_cache
from typing import Any, List, Mapping, Tuple, Union

from jinja2 import ChainableUndefined, Environment, TemplateError, Undefined

from .context import ExecutionContext, MISSING

logger = logging.getLogger(__name__)

# Rendered in place of a whole-value reference that does not resolve
ABSENT = None


class _ContextEnvironment(Environment):
    """Jinja environment where `a.b` on a mapping means the key, never a dict method"""

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            if attribute in obj:
                return obj[attribute]
            return self.undefined(obj=obj, name=attribute)
        return super().getattr(obj, attribute)

    def getitem(self, obj: Any, argument: Any) -> Any:
        # step.response.0 on a mapping with string keys
        if isinstance(obj, Mapping) and argument not in obj and str(argument) in obj:
            return obj[str(argument)]
        return super().getitem(obj, argument)


jinja_env = _ContextEnvironment(
    variable_start_string='{{',
    variable_end_string='}}',
    autoescape=False,
    keep_trailing_newline=True,
    undefined=ChainableUndefined,
)


def render(
    template: Any,
    context: Union[ExecutionContext, Mapping[str, Any]]
) -> Any:
    """
    Project a context into the shape declared by a template

    Args:
        template: Dict/list/scalar structure; strings may hold {{ expression }} references
        context: ExecutionContext or plain namespace

    Returns:
        A new structure with references substituted. Never raises for
        unresolved references.

    Example:
        >>> render(
        ...     {"name": "{{ step_1.response.name }}", "greeting": "Hi {{ input.user | title }}"},
        ...     {"step_1": {"response": {"name": "Thorin"}}, "input": {"user": "bob"}}
        ... )
        {'name': 'Thorin', 'greeting': 'Hi Bob'}
    """
    namespace = context.namespace if isinstance(context, ExecutionContext) else context
    return _render_value(template, namespace)


# Request params, bodies and input mappings use the same rules
resolve_templates = render


def _render_value(value: Any, namespace: Mapping[str, Any]) -> Any:
    if isinstance(value, str):
        return _render_string(value, namespace)

    if isinstance(value, dict):
        return {key: _render_value(item, namespace) for key, item in value.items()}

    if isinstance(value, (list, tuple)):
        return [_render_value(item, namespace) for item in value]

    return copy.deepcopy(value)


def _render_string(value: str, namespace: Mapping[str, Any]) -> Any:
    if "{{" not in value:
        return value

    try:
        segments = _segments(value)
    except TemplateError as e:
        logger.debug(f"Template '{value}' could not be parsed: {e}")
        return value

    expressions = [segment for segment in segments if segment[0] == "expression"]
    data = [segment[1] for segment in segments if segment[0] == "data"]

    # A string that is exactly one reference keeps the referenced value's type
    if len(expressions) == 1 and not "".join(data).strip():
        resolved = _evaluate(expressions[0][1], namespace)
        if resolved is MISSING:
            return ABSENT
        return copy.deepcopy(resolved)

    parts = []
    for segment in segments:
        if segment[0] == "data":
            parts.append(segment[1])
            continue
        resolved = _evaluate(segment[1], namespace)
        parts.append(segment[2] if resolved is MISSING else _to_text(resolved))
    return "".join(parts)


@lru_cache(maxsize=1024)
def _segments(source: str) -> Tuple[tuple, ...]:
    """
    Split a string into ("data", text) and ("expression", expression, literal) parts

    Uses the environment's lexer so that the delimiters and quoting rules are
    exactly the ones Jinja applies. An unterminated block stays data.
    """
    segments: List[tuple] = []
    data: List[str] = []
    expression = None
    literal: List[str] = []

    for _, token, text in jinja_env.lex(source):
        if token == "variable_begin":
            if data:
                segments.append(("data", "".join(data)))
                data = []
            expression, literal = [], [text]
        elif token == "variable_end" and expression is not None:
            literal.append(text)
            segments.append(("expression", "".join(expression).strip(), "".join(literal)))
            expression = None
        elif expression is not None:
            expression.append(text)
            literal.append(text)
        else:
            data.append(text)

    if expression is not None:
        data.extend(literal)
    if data:
        segments.append(("data", "".join(data)))
    return tuple(segments)


@lru_cache(maxsize=1024)
def _compile(expression: str):
    return jinja_env.compile_expression(expression, undefined_to_none=False)


def _evaluate(expression: str, namespace: Mapping[str, Any]) -> Any:
    """Evaluate one reference; MISSING when it is undefined or cannot be evaluated"""
    try:
        value = _compile(expression)(namespace)
    except (TemplateError, TypeError, ValueError, ArithmeticError) as e:
        logger.debug(f"Template reference '{expression}' failed: {e}")
        return MISSING

    if isinstance(value, Undefined):
        logger.debug(f"Template reference '{expression}' is unresolved")
        return MISSING
    return value


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, dict, list)) or value is None:
        return json.dumps(value, default=str)
    return str(value)


def find_references(template: Any) -> list:
    """List the expressions referenced anywhere in a template"""
    if isinstance(template, str):
        if "{{" not in template:
            return []
        try:
            return [segment[1] for segment in _segments(template) if segment[0] == "expression"]
        except TemplateError:
            return []
    if isinstance(template, dict):
        return [ref for item in template.values() for ref in find_references(item)]
    if isinstance(template, (list, tuple)):
        return [ref for item in template for ref in find_references(item)]
    return []
