"""
Fluent builder for filter text.

Example:
    FilterBuilder().where("priority", ">=", 3).or_().where("done", "=", True)

    renders as ``priority >= 3 || done = true`` and builds the same
    expression that parsing that text produces.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

from .config import FilterLimits
from .fields import (
    AND,
    FIELD_KINDS,
    FORBIDDEN_FIELD_NAMES,
    OR,
    ValueKind,
    canonical_field,
    canonical_operator,
)
from .models import FilterCondition, FilterExpression, FilterValidationResult, FilterValue
from .parser import fold_conditions, parse_number
from .validator import validate

# Date tokens that survive the tokenizer unquoted
_BARE_TOKEN = re.compile(r"^[^\s()\[\],=!<>&|\"']+$")


def _escape_string(value: str) -> str:
    """
    Escape a string value for use in filter text.

    Handles:
    - Backslashes (must be doubled)
    - Double quotes (must be escaped)
    - Newlines, tabs and carriage returns (escaped as literals)
    - NUL bytes (removed)
    """
    # Order matters: escape backslashes first
    result = value.replace("\\", "\\\\")
    result = result.replace('"', '\\"')
    result = result.replace("\x00", "")
    result = result.replace("\n", "\\n")
    result = result.replace("\t", "\\t")
    result = result.replace("\r", "\\r")
    return result


def _format_scalar(value: Any, kind: ValueKind) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    text = value if isinstance(value, str) else str(value)
    if kind == ValueKind.DATE and _BARE_TOKEN.match(text):
        return text
    return f'"{_escape_string(text)}"'


def format_value(value: FilterValue, kind: ValueKind) -> str:
    """Render a condition value as a filter literal."""
    if isinstance(value, tuple):
        return "[" + ", ".join(_format_scalar(v, kind) for v in value) + "]"
    return _format_scalar(value, kind)


def format_condition(condition: FilterCondition) -> str:
    kind = FIELD_KINDS[condition.field]
    return f"{condition.field} {condition.operator} {format_value(condition.value, kind)}"


def _normalize_value(value: Any, kind: ValueKind) -> FilterValue:
    """Coerce `value` to a literal that renders and re-parses as itself."""
    if value is None:
        raise ValueError("None is not a valid filter literal")
    # Handle datetime before date (datetime is subclass of date)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(value)

    if kind == ValueKind.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValueError(f"Expected true or false, got {value!r}")
    if kind == ValueKind.NUMBER:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if math.isfinite(value):
                return value
        elif isinstance(value, str):
            number = parse_number(value.strip())
            if number is not None:
                return number
        raise ValueError(f"Expected a number, got {value!r}")
    if kind == ValueKind.ARRAY:
        return (value,)
    # String and date literals are always text once parsed
    return value if isinstance(value, str) else str(value)


class FilterBuilder:
    """Accumulates conditions and renders them as filter text."""

    def __init__(self) -> None:
        self._conditions: list[FilterCondition] = []
        self._joiners: list[str] = []
        self._pending = AND

    def where(self, field: str, operator: str, value: Any) -> FilterBuilder:
        """
        Append a condition, joined to the previous one by the pending operator.

        Raises:
            ValueError: If the field or operator is not recognised, or the value
                cannot be written as a literal for the field
        """
        if field in FORBIDDEN_FIELD_NAMES:
            raise ValueError(f"Field name '{field}' is not allowed")
        name = canonical_field(field)
        if name is None:
            raise ValueError(f"Unknown field '{field}'. Valid fields: {', '.join(FIELD_KINDS)}")
        op = canonical_operator(operator) if isinstance(operator, str) else None
        if op is None:
            raise ValueError(f"Unknown operator '{operator}'")

        condition = FilterCondition(name, op, _normalize_value(value, FIELD_KINDS[name]))
        if self._conditions:
            self._joiners.append(self._pending)
        self._conditions.append(condition)
        self._pending = AND
        return self

    def and_(self) -> FilterBuilder:
        """Join the next condition with `&&` (the default)."""
        self._pending = AND
        return self

    def or_(self) -> FilterBuilder:
        """Join the next condition with `||`."""
        if not self._conditions:
            raise ValueError("or_() must follow a condition")
        self._pending = OR
        return self

    def to_string(self) -> str:
        if not self._conditions:
            return ""
        parts = [format_condition(self._conditions[0])]
        for joiner, condition in zip(self._joiners, self._conditions[1:]):
            parts.append(f" {joiner} {format_condition(condition)}")
        return "".join(parts)

    def build(self) -> FilterExpression:
        """Return the expression that parsing `to_string()` would produce."""
        return fold_conditions(self._conditions, self._joiners)

    def validate(self, limits: FilterLimits | None = None) -> FilterValidationResult:
        return validate(self.build(), limits)

    def __len__(self) -> int:
        return len(self._conditions)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"FilterBuilder({self.to_string()!r})"
