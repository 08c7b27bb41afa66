"""
Filter expression tree.

A filter is modelled with a fixed two-level shape::

    FilterExpression
      groups: FilterGroup, FilterGroup, ...      (joined by expression.operator)
        conditions: FilterCondition, ...         (joined by group.operator)

All nodes are frozen; list values are stored as tuples.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .fields import AND, FilterField, FilterOperator, LogicalOperator

Scalar = Union[str, int, float, bool]
FilterValue = Union[Scalar, tuple[Scalar, ...]]


@dataclass(frozen=True)
class FilterCondition:
    """A single `<field> <operator> <value>` comparison."""

    field: FilterField
    operator: FilterOperator
    value: FilterValue

    def __post_init__(self) -> None:
        if isinstance(self.value, list):
            object.__setattr__(self, "value", tuple(self.value))

    def to_dict(self) -> dict[str, Any]:
        value = list(self.value) if isinstance(self.value, tuple) else self.value
        return {"field": self.field, "operator": self.operator, "value": value}


@dataclass(frozen=True)
class FilterGroup:
    """Conditions combined with one logical operator."""

    conditions: tuple[FilterCondition, ...]
    operator: LogicalOperator = AND

    def __post_init__(self) -> None:
        if not isinstance(self.conditions, tuple):
            object.__setattr__(self, "conditions", tuple(self.conditions))

    def to_dict(self) -> dict[str, Any]:
        return {
            "conditions": [c.to_dict() for c in self.conditions],
            "operator": self.operator,
        }


@dataclass(frozen=True)
class FilterExpression:
    """Groups combined with one logical operator (default `&&`)."""

    groups: tuple[FilterGroup, ...]
    operator: LogicalOperator = AND

    def __post_init__(self) -> None:
        if not isinstance(self.groups, tuple):
            object.__setattr__(self, "groups", tuple(self.groups))

    @property
    def conditions(self) -> list[FilterCondition]:
        """All conditions in document order."""
        return [c for group in self.groups for c in group.conditions]

    def to_dict(self) -> dict[str, Any]:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "operator": self.operator,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FilterExpression:
        """
        Build an expression from its JSON form.

        Raises:
            FilterValidationError: If the structure does not match the schema
        """
        from .schemas import ExpressionInput, validate_model

        return validate_model(ExpressionInput, data).to_expression()


@dataclass(frozen=True)
class ParseError:
    """Where and why filter text failed to parse."""

    message: str
    position: int
    context: str | None = None


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing: exactly one of `expression` / `error` is set."""

    expression: FilterExpression | None
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FilterValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": self.errors, "warnings": self.warnings}
