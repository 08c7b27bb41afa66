"""
Structural and content validation for filter expressions.

Validation is purely syntactic: it bounds the size of an expression and
rejects disallowed content, but never consults live data (a label id is not
checked for existence).

Expressions may arrive as `FilterExpression` objects or in their dict form
from programmatic callers; the dict form is walked iteratively so that
pathologically nested input is rejected rather than recursed into.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from datetime import date
from typing import Any

from .config import DEFAULT_LIMITS, MAX_FILTER_LENGTH, SIMPLE_FILTER_LIMITS, FilterLimits
from .dates import is_valid_date_value
from .fields import (
    FIELD_KINDS,
    FORBIDDEN_FIELD_NAMES,
    LOGICAL_OPERATORS,
    VALID_OPERATORS,
    ValueKind,
    canonical_field,
    canonical_operator,
)
from .models import FilterCondition, FilterExpression, FilterValidationResult
from .parser import parse_filter

logger = logging.getLogger(__name__)

_DISALLOWED_CONTENT = [
    re.compile(r"<\s*script", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"<[^>]*\bon\w+\s*=", re.IGNORECASE),
    re.compile(r"function\s*\(", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"require\s*\(", re.IGNORECASE),
    re.compile(r"__proto__", re.IGNORECASE),
    re.compile(r"\bconstructor\b", re.IGNORECASE),
    re.compile(r"\bprototype\b", re.IGNORECASE),
    re.compile(r"\bprocess\.", re.IGNORECASE),
    re.compile(r"\bglobal\.", re.IGNORECASE),
]

# Tab, newline and carriage return are the only control characters allowed
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def _is_group_like(node: Any) -> bool:
    return isinstance(node, Mapping) and ("conditions" in node or "groups" in node)


def _children(node: Mapping[str, Any]) -> list[Any]:
    children = node.get("groups", node.get("conditions"))
    return list(children) if isinstance(children, (list, tuple)) else []


def nesting_depth(data: Mapping[str, Any], limit: int) -> int:
    """
    Depth of group nesting in the dict form of an expression.

    A plain expression (expression -> groups -> conditions) has depth 2; every
    group embedded in a conditions list adds one. Walking stops as soon as the
    depth exceeds `limit`, which also bounds self-referencing input.
    """
    deepest = 0
    stack: list[tuple[Any, int]] = [(data, 1)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        if deepest > limit:
            return deepest
        for child in _children(node):
            if _is_group_like(child):
                stack.append((child, depth + 1))
    return deepest


def count_conditions(data: Mapping[str, Any]) -> int:
    """Number of leaf conditions anywhere in the dict form of an expression."""
    total = 0
    stack: list[Any] = [data]
    while stack:
        node = stack.pop()
        for child in _children(node):
            if _is_group_like(child):
                stack.append(child)
            else:
                total += 1
    return total


def _string_values(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [v for v in value if isinstance(v, str)]
    return []


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value))
        except ValueError:
            return False
    return False


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float)) and not isinstance(value, bool)


def _value_errors(field: str, kind: ValueKind, value: Any, limits: FilterLimits) -> list[str]:
    if kind == ValueKind.BOOLEAN:
        if not isinstance(value, bool) and value not in ("true", "false"):
            return [f'Field "{field}" requires a boolean value']
    elif kind == ValueKind.NUMBER:
        if not _is_number(value):
            return [f'Field "{field}" requires a numeric value']
    elif kind == ValueKind.DATE:
        if isinstance(value, date):
            return []
        if not isinstance(value, str) or not is_valid_date_value(value):
            return [
                f'Field "{field}" requires a valid date value '
                '(ISO date or relative date like "now+1d")'
            ]
    elif kind == ValueKind.STRING:
        if not isinstance(value, str):
            return [f'Field "{field}" requires a string value']
    elif kind == ValueKind.ARRAY:
        if isinstance(value, (list, tuple)):
            if len(value) > limits.max_array_size:
                return [
                    f'Array value for field "{field}" has {len(value)} elements. '
                    f"Maximum allowed: {limits.max_array_size}"
                ]
            if not all(_is_scalar(v) for v in value):
                return [f'Field "{field}" requires a list of ids or names']
        elif not _is_scalar(value):
            return [f'Field "{field}" requires an array value']
    return []


def _content_errors(field: str, value: Any, limits: FilterLimits) -> list[str]:
    errors: list[str] = []
    for text in _string_values(value):
        if len(text) > limits.max_string_length:
            errors.append(
                f'Value for field "{field}" is too long ({len(text)} characters). '
                f"Maximum allowed: {limits.max_string_length}"
            )
        if any(pattern.search(text) for pattern in _DISALLOWED_CONTENT):
            errors.append(f'Value for field "{field}" contains disallowed content')
    return errors


def validate_condition(
    condition: FilterCondition | Mapping[str, Any],
    limits: FilterLimits = DEFAULT_LIMITS,
) -> list[str]:
    """Return the problems with a single condition (empty when valid)."""
    if isinstance(condition, FilterCondition):
        name, operator, value = condition.field, condition.operator, condition.value
    elif isinstance(condition, Mapping):
        name = condition.get("field")
        operator = condition.get("operator")
        value = condition.get("value")
    else:
        return ["Condition must be an object with field, operator and value"]

    if not isinstance(name, str) or not name:
        return ["Condition is missing a field name"]
    if name in FORBIDDEN_FIELD_NAMES:
        return [f"Field name '{name}' is not allowed"]
    field = canonical_field(name)
    if field is None:
        return [f"Invalid field: {name}"]
    kind = FIELD_KINDS[field]

    errors: list[str] = []
    op = canonical_operator(operator) if isinstance(operator, str) else None
    if op is None:
        errors.append(f"Invalid operator: {operator}")
    elif op not in VALID_OPERATORS[kind]:
        errors.append(f'Invalid operator "{op}" for field "{field}" of type "{kind.value}"')

    if value is None:
        errors.append(f'Condition for field "{field}" is missing a value')
        return errors

    errors.extend(_value_errors(field, kind, value, limits))
    errors.extend(_content_errors(field, value, limits))
    return errors


def validate(
    expression: FilterExpression | Mapping[str, Any],
    limits: FilterLimits | None = None,
) -> FilterValidationResult:
    """
    Validate an expression against size, depth and content limits.

    Args:
        expression: Parsed expression or its dict form
        limits: Bounds to enforce (defaults to DEFAULT_LIMITS)

    Returns:
        FilterValidationResult; `errors` are fatal, `warnings` are advisory
    """
    limits = limits or DEFAULT_LIMITS
    data = expression.to_dict() if isinstance(expression, FilterExpression) else expression
    errors: list[str] = []
    warnings: list[str] = []

    if not isinstance(data, Mapping):
        return FilterValidationResult(False, ["Filter expression must be an object with groups"])

    operator = data.get("operator", "&&")
    if operator not in LOGICAL_OPERATORS:
        errors.append(f"Invalid logical operator between groups: {operator}")

    groups = data.get("groups")
    if not isinstance(groups, (list, tuple)) or not groups:
        errors.append("Filter expression must contain at least one group")
        return FilterValidationResult(False, errors)

    depth = nesting_depth(data, limits.max_depth)
    if depth > limits.max_depth:
        errors.append(
            f"Filter nesting is too deep (more than {limits.max_depth} levels). "
            f"Maximum allowed: {limits.max_depth}"
        )
        return FilterValidationResult(False, errors)

    total = count_conditions(data)
    if total > limits.max_conditions:
        errors.append(
            f"Too many conditions ({total}). Maximum allowed: {limits.max_conditions}"
        )
        return FilterValidationResult(False, errors)

    for group_index, group in enumerate(groups, start=1):
        if not isinstance(group, Mapping):
            errors.append(f"Group {group_index} must be an object with conditions")
            continue
        if group.get("operator", "&&") not in LOGICAL_OPERATORS:
            errors.append(
                f"Group {group_index}: Invalid logical operator: {group.get('operator')}"
            )
        conditions = group.get("conditions")
        if not isinstance(conditions, (list, tuple)) or not conditions:
            errors.append(f"Group {group_index} must contain at least one condition")
            continue
        for condition_index, condition in enumerate(conditions, start=1):
            prefix = f"Group {group_index}, Condition {condition_index}"
            if _is_group_like(condition):
                errors.append(f"{prefix}: Nested groups are not supported")
                continue
            errors.extend(f"{prefix}: {e}" for e in validate_condition(condition, limits))

    if total > limits.warn_conditions:
        warnings.append(f"Complex filters with many conditions ({total}) may impact performance")

    logger.debug(f"Validated filter: {total} condition(s), {len(errors)} error(s)")
    return FilterValidationResult(not errors, errors, warnings)


def check_filter_text(text: Any, max_length: int = MAX_FILTER_LENGTH) -> list[str]:
    """Raw-text checks applied before parsing."""
    if not isinstance(text, str):
        return ["Filter input must be a string"]
    if len(text) > max_length:
        return [
            f"Filter string too long. Maximum length is {max_length} characters, "
            f"got {len(text)}"
        ]
    if _CONTROL_CHARS.search(text):
        return ["Filter string contains invalid characters"]
    return []


def validate_filter_text(
    text: str, limits: FilterLimits | None = None
) -> tuple[FilterExpression | None, FilterValidationResult]:
    """
    Check, parse and validate filter text in one step.

    Single-condition filters are held to SIMPLE_FILTER_LIMITS unless explicit
    limits are given.

    Returns:
        (expression or None, validation result). Parse errors are reported as
        validation errors including their position.
    """
    errors = check_filter_text(text)
    if errors:
        return None, FilterValidationResult(False, errors)

    result = parse_filter(text)
    if result.error is not None:
        message = f"{result.error.message} (position {result.error.position})"
        return None, FilterValidationResult(False, [message])

    expression = result.expression
    assert expression is not None
    if limits is None:
        limits = SIMPLE_FILTER_LIMITS if len(expression.conditions) == 1 else DEFAULT_LIMITS
    return expression, validate(expression, limits)
