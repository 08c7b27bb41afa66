"""
Filter expression engine for task records.

Parse filter text, validate it against size and content limits, build it
from structured conditions, and apply it to in-memory task lists:

    >>> from taskfilter import FilterBuilder, filter_tasks
    >>> str(FilterBuilder().where("priority", ">=", 3).or_().where("done", "=", True))
    'priority >= 3 || done = true'
"""

from __future__ import annotations

from .builder import FilterBuilder
from .config import DEFAULT_LIMITS, SIMPLE_FILTER_LIMITS, FilterLimits
from .dates import resolve_date
from .evaluator import apply_filter, evaluate_condition, filter_tasks
from .exceptions import FilterError, FilterParseError, FilterValidationError
from .fields import FIELD_KINDS, ValueKind
from .models import (
    FilterCondition,
    FilterExpression,
    FilterGroup,
    FilterValidationResult,
    ParseError,
    ParseResult,
)
from .parser import parse, parse_filter
from .schemas import SavedFilter, Task
from .validator import check_filter_text, validate, validate_filter_text

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_LIMITS",
    "FIELD_KINDS",
    "SIMPLE_FILTER_LIMITS",
    "FilterBuilder",
    "FilterCondition",
    "FilterError",
    "FilterExpression",
    "FilterGroup",
    "FilterLimits",
    "FilterParseError",
    "FilterValidationError",
    "FilterValidationResult",
    "ParseError",
    "ParseResult",
    "SavedFilter",
    "Task",
    "ValueKind",
    "apply_filter",
    "check_filter_text",
    "evaluate_condition",
    "filter_tasks",
    "parse",
    "parse_filter",
    "resolve_date",
    "validate",
    "validate_filter_text",
]
