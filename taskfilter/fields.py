"""
Field catalogue for task filters.

Every filterable field maps to exactly one value kind. The kind decides how a
literal is typed by the parser, which operators the validator accepts, and
how the evaluator compares values.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal


class ValueKind(Enum):
    """Value kind of a filterable field."""

    BOOLEAN = "boolean"
    NUMBER = "number"
    DATE = "date"
    STRING = "string"
    ARRAY = "array"


FilterField = Literal[
    "done",
    "priority",
    "percentDone",
    "dueDate",
    "assignees",
    "labels",
    "created",
    "updated",
    "title",
    "description",
]

FilterOperator = Literal["=", "!=", ">", ">=", "<", "<=", "like", "in", "not in"]

LogicalOperator = Literal["&&", "||"]

AND: LogicalOperator = "&&"
OR: LogicalOperator = "||"

FIELD_KINDS: dict[str, ValueKind] = {
    "done": ValueKind.BOOLEAN,
    "priority": ValueKind.NUMBER,
    "percentDone": ValueKind.NUMBER,
    "dueDate": ValueKind.DATE,
    "assignees": ValueKind.ARRAY,
    "labels": ValueKind.ARRAY,
    "created": ValueKind.DATE,
    "updated": ValueKind.DATE,
    "title": ValueKind.STRING,
    "description": ValueKind.STRING,
}

# Snake-case spellings used by the upstream task API
FIELD_ALIASES: dict[str, str] = {
    "due_date": "dueDate",
    "percent_done": "percentDone",
}

# Attribute holding each field's value on a task record
TASK_ATTRIBUTES: dict[str, str] = {
    "done": "done",
    "priority": "priority",
    "percentDone": "percent_done",
    "dueDate": "due_date",
    "assignees": "assignees",
    "labels": "labels",
    "created": "created",
    "updated": "updated",
    "title": "title",
    "description": "description",
}

# Names that must never reach attribute lookups downstream
FORBIDDEN_FIELD_NAMES = frozenset(["__proto__", "constructor", "prototype"])

OPERATORS: tuple[str, ...] = ("=", "!=", ">", ">=", "<", "<=", "like", "in", "not in")
LOGICAL_OPERATORS: tuple[str, ...] = (AND, OR)

VALID_OPERATORS: dict[ValueKind, tuple[str, ...]] = {
    ValueKind.BOOLEAN: ("=", "!="),
    ValueKind.NUMBER: ("=", "!=", ">", ">=", "<", "<="),
    ValueKind.DATE: ("=", "!=", ">", ">=", "<", "<="),
    ValueKind.STRING: ("=", "!=", "like"),
    ValueKind.ARRAY: ("in", "not in"),
}


def canonical_field(name: str) -> str | None:
    """Return the catalogue name for `name` (resolving aliases), or None."""
    if name in FORBIDDEN_FIELD_NAMES:
        return None
    if name in FIELD_KINDS:
        return name
    return FIELD_ALIASES.get(name)


def canonical_operator(op: str) -> str | None:
    """Normalize an operator spelling (`LIKE`, `NOT IN`), or None if unknown."""
    normalized = " ".join(op.split()).lower() if op[:1].isalpha() else op
    return normalized if normalized in OPERATORS else None


def field_kind(name: str) -> ValueKind | None:
    """Value kind of a catalogue field, or None for unknown names."""
    field = canonical_field(name)
    return FIELD_KINDS[field] if field is not None else None


def operator_allowed(field: str, operator: str) -> bool:
    kind = field_kind(field)
    return kind is not None and operator in VALID_OPERATORS[kind]
