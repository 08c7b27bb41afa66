"""
Pydantic schemas for structured filter input and task records.

Tool-level callers may send filters as JSON (`{"field", "operator", "value"}`
triples grouped into an expression) instead of filter text. These schemas
check that shape and convert it into the frozen expression tree.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import FilterValidationError
from .fields import FORBIDDEN_FIELD_NAMES, canonical_field, canonical_operator
from .models import FilterCondition, FilterExpression, FilterGroup
from .parser import parse

ModelT = TypeVar("ModelT", bound=BaseModel)

ScalarInput = Union[bool, int, float, str]


class _FilterModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class ConditionInput(_FilterModel):
    field: str
    operator: str
    value: Union[ScalarInput, list[ScalarInput]]

    @field_validator("field")
    @classmethod
    def _known_field(cls, v: str) -> str:
        if v in FORBIDDEN_FIELD_NAMES:
            raise ValueError(f"Field name '{v}' is not allowed")
        field = canonical_field(v)
        if field is None:
            raise ValueError(f"Unknown field '{v}'")
        return field

    @field_validator("operator")
    @classmethod
    def _known_operator(cls, v: str) -> str:
        op = canonical_operator(v)
        if op is None:
            raise ValueError(f"Unknown operator '{v}'")
        return op

    def to_condition(self) -> FilterCondition:
        value = tuple(self.value) if isinstance(self.value, list) else self.value
        return FilterCondition(self.field, self.operator, value)


class GroupInput(_FilterModel):
    conditions: list[ConditionInput]
    operator: Literal["&&", "||"] = "&&"

    def to_group(self) -> FilterGroup:
        return FilterGroup(tuple(c.to_condition() for c in self.conditions), self.operator)


class ExpressionInput(_FilterModel):
    groups: list[GroupInput]
    operator: Literal["&&", "||"] = "&&"

    def to_expression(self) -> FilterExpression:
        return FilterExpression(tuple(g.to_group() for g in self.groups), self.operator)


def validate_model(model: type[ModelT], data: Any) -> ModelT:
    """Validate `data` against `model`, converting pydantic errors.

    Raises:
        FilterValidationError: With one `loc: msg` line per pydantic error
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(loc) for loc in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        ]
        raise FilterValidationError(errors) from None


# =============================================================================
# Task records
# =============================================================================


class _RecordModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TaskUser(_RecordModel):
    id: int
    username: str | None = None
    name: str | None = None


class TaskLabel(_RecordModel):
    id: int
    title: str | None = None


class Task(_RecordModel):
    """
    A task as returned by the upstream task API.

    Only the attributes the filter engine reads are modelled; anything else in
    the payload is ignored.
    """

    id: int | None = None
    title: str | None = None
    description: str | None = None
    done: bool = False
    priority: int | None = None
    percent_done: float | None = None
    due_date: datetime | str | None = None
    created: datetime | str | None = None
    updated: datetime | str | None = None
    project_id: int | None = None
    assignees: list[TaskUser] = Field(default_factory=list)
    labels: list[TaskLabel] = Field(default_factory=list)

    @field_validator("assignees", "labels", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        # The upstream API sends null for empty relations
        return [] if v is None else v


class SavedFilter(_RecordModel):
    """
    A named filter as persisted by the saved-filter store.

    The engine only consumes `filter` and `expression`.
    """

    id: str
    name: str
    description: str | None = None
    filter: str
    expression: dict[str, Any] | None = None
    created: datetime
    updated: datetime
    project_id: int | None = Field(None, alias="projectId")
    is_global: bool = Field(False, alias="isGlobal")

    def resolve_expression(self) -> FilterExpression:
        """Return the stored expression, parsing `filter` when none is stored."""
        if self.expression is not None:
            return FilterExpression.from_dict(self.expression)
        return parse(self.filter)
