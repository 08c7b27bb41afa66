"""
Client-side evaluation of filter expressions against task records.

Tasks may be plain dicts (as decoded from the upstream API), `schemas.Task`
models, or any object exposing the same attribute names. Evaluation never
raises for unexpected data: unsupported field/operator pairs and unresolvable
dates make the condition not match.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timezone
from typing import Any, TypeVar

from .config import DEFAULT_LIMITS, SIMPLE_FILTER_LIMITS, FilterLimits
from .dates import parse_task_date, resolve_date, same_day
from .exceptions import FilterValidationError
from .fields import (
    AND,
    FIELD_KINDS,
    TASK_ATTRIBUTES,
    ValueKind,
    canonical_field,
    operator_allowed,
)
from .models import FilterCondition, FilterExpression, FilterGroup
from .parser import parse
from .validator import check_filter_text, validate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_task_value(task: Any, field: str) -> Any:
    """Read a field from a task record, trying the API attribute then the field name."""
    attribute = TASK_ATTRIBUTES.get(field, field)
    if isinstance(task, Mapping):
        value = task.get(attribute)
        if value is None and attribute != field:
            value = task.get(field)
        return value
    value = getattr(task, attribute, None)
    if value is None and attribute != field:
        value = getattr(task, field, None)
    return value


def _item_id(item: Any) -> Any:
    if isinstance(item, Mapping):
        return item.get("id")
    return getattr(item, "id", item)


def _to_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


def _to_id(value: Any) -> int | float | None:
    """Coerce an id literal; non-numeric literals never match an id."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        number = _to_number(value.strip())
        if number is not None and number.is_integer():
            return int(number)
        return number
    return None


def evaluate_comparison(actual: Any, operator: str, expected: Any) -> bool:
    """Equality and ordering for numeric and boolean values."""
    if operator == "=":
        return actual == expected
    if operator == "!=":
        return actual != expected
    left = _to_number(actual)
    right = _to_number(expected)
    if left is None or right is None:
        return False
    if operator == ">":
        return left > right
    if operator == ">=":
        return left >= right
    if operator == "<":
        return left < right
    if operator == "<=":
        return left <= right
    return False


def _resolve_expected_date(value: Any, now: datetime | None) -> datetime | None:
    # Handle datetime before date (datetime is subclass of date)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return resolve_date(str(value), now)


def evaluate_date_comparison(
    actual: datetime, operator: str, expected: Any, now: datetime | None = None
) -> bool:
    """
    Compare a task date with a date literal.

    `=` and `!=` compare calendar days (UTC); ordering operators compare full
    instants. An unresolvable literal never matches.
    """
    target = _resolve_expected_date(expected, now)
    if target is None:
        return False
    if operator == "=":
        return same_day(actual, target)
    if operator == "!=":
        return not same_day(actual, target)
    if operator == ">":
        return actual > target
    if operator == ">=":
        return actual >= target
    if operator == "<":
        return actual < target
    if operator == "<=":
        return actual <= target
    return False


def evaluate_string_comparison(actual: str, operator: str, expected: str) -> bool:
    if operator == "=":
        return actual == expected
    if operator == "!=":
        return actual != expected
    if operator == "like":
        return expected.lower() in actual.lower()
    return False


def evaluate_array_comparison(
    actual: Iterable[Any], operator: str, expected: Iterable[Any]
) -> bool:
    """
    Membership tests for id lists.

    `in` holds when any expected id is present; `not in` is its exact
    negation.
    """
    present = {_to_id(v) for v in actual} - {None}
    overlap = any(_to_id(v) in present for v in expected)
    if operator == "in":
        return overlap
    if operator == "not in":
        return not overlap
    return False


def evaluate_condition(task: Any, condition: FilterCondition, now: datetime | None = None) -> bool:
    """Evaluate one condition against one task."""
    field = canonical_field(condition.field)
    if field is None or not operator_allowed(field, condition.operator):
        return False
    kind = FIELD_KINDS[field]
    operator = condition.operator
    expected = condition.value
    actual = get_task_value(task, field)

    if kind == ValueKind.BOOLEAN:
        return evaluate_comparison(
            bool(actual), operator, expected is True or str(expected).lower() == "true"
        )

    if kind == ValueKind.NUMBER:
        target = _to_number(expected)
        if target is None:
            return False
        return evaluate_comparison(_to_number(actual) or 0, operator, target)

    if kind == ValueKind.DATE:
        task_date = parse_task_date(actual)
        if task_date is None:
            # An absent date is never equal to anything
            return operator == "!="
        return evaluate_date_comparison(task_date, operator, expected, now)

    if kind == ValueKind.STRING:
        return evaluate_string_comparison(
            "" if actual is None else str(actual), operator, str(expected)
        )

    if kind == ValueKind.ARRAY:
        ids = [_item_id(item) for item in (actual or [])]
        values = expected if isinstance(expected, (tuple, list)) else (expected,)
        return evaluate_array_comparison(ids, operator, values)

    return False


def evaluate_group(task: Any, group: FilterGroup, now: datetime | None = None) -> bool:
    results = (evaluate_condition(task, c, now) for c in group.conditions)
    return all(results) if group.operator == AND else any(results)


def evaluate_expression(
    task: Any, expression: FilterExpression, now: datetime | None = None
) -> bool:
    results = (evaluate_group(task, g, now) for g in expression.groups)
    return all(results) if expression.operator == AND else any(results)


def apply_filter(
    tasks: Sequence[T], expression: FilterExpression, now: datetime | None = None
) -> list[T]:
    """
    Return the tasks matching `expression`, in their original order.

    Args:
        tasks: Task records (dicts, Task models or attribute objects)
        expression: Parsed filter expression
        now: Reference instant for relative dates (defaults to the current
            time, resolved once for the whole pass)

    Returns:
        A new list referencing the matching task objects
    """
    now = now or datetime.now(timezone.utc)
    matched = [task for task in tasks if evaluate_expression(task, expression, now)]
    logger.debug(f"Filter matched {len(matched)} of {len(tasks)} task(s)")
    return matched


def filter_tasks(
    tasks: Sequence[T],
    filter_text: str,
    limits: FilterLimits | None = None,
    now: datetime | None = None,
) -> list[T]:
    """
    Check, parse, validate and apply filter text in one call.

    Raises:
        FilterParseError: If the text is malformed
        FilterValidationError: If the text or expression breaks a limit
    """
    errors = check_filter_text(filter_text)
    if errors:
        raise FilterValidationError(errors)

    expression = parse(filter_text)
    if limits is None:
        limits = SIMPLE_FILTER_LIMITS if len(expression.conditions) == 1 else DEFAULT_LIMITS

    result = validate(expression, limits)
    for warning in result.warnings:
        logger.warning(warning)
    if not result.valid:
        raise FilterValidationError(result.errors, warnings=result.warnings)

    return apply_filter(tasks, expression, now)
