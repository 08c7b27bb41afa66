"""Tests for structured filter input and record schemas."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from taskfilter.exceptions import FilterValidationError
from taskfilter.models import FilterCondition, FilterExpression
from taskfilter.parser import parse
from taskfilter.schemas import ConditionInput, SavedFilter, Task, validate_model


class TestExpressionInput:
    """Tests for FilterExpression.from_dict."""

    def test_from_dict_round_trip(self) -> None:
        expression = parse('(labels in [1, 2] || title like "x") && done = false')
        assert FilterExpression.from_dict(expression.to_dict()) == expression

    def test_from_dict_normalizes_names(self) -> None:
        expression = FilterExpression.from_dict(
            {
                "groups": [
                    {
                        "conditions": [
                            {"field": "due_date", "operator": "<", "value": "now"},
                            {"field": "labels", "operator": "NOT IN", "value": [3]},
                        ]
                    }
                ]
            }
        )
        assert expression.conditions == [
            FilterCondition("dueDate", "<", "now"),
            FilterCondition("labels", "not in", (3,)),
        ]
        assert expression.operator == "&&"

    def test_forbidden_field(self) -> None:
        with pytest.raises(FilterValidationError) as exc:
            validate_model(ConditionInput, {"field": "__proto__", "operator": "=", "value": 1})
        assert exc.value.errors == ["field: Value error, Field name '__proto__' is not allowed"]

    def test_unknown_operator_and_extra_keys(self) -> None:
        with pytest.raises(FilterValidationError) as exc:
            validate_model(
                ConditionInput,
                {"field": "priority", "operator": "~", "value": 1, "extra": True},
            )
        locations = [error.split(":")[0] for error in exc.value.errors]
        assert locations == ["operator", "extra"]

    def test_invalid_logical_operator(self) -> None:
        with pytest.raises(FilterValidationError) as exc:
            FilterExpression.from_dict({"groups": [], "operator": "AND"})
        assert exc.value.errors[0].startswith("operator:")

    def test_multiple_errors_message(self) -> None:
        with pytest.raises(FilterValidationError) as exc:
            validate_model(ConditionInput, {})
        assert str(exc.value).startswith("Filter validation failed:\n- ")
        assert len(exc.value.errors) == 3


class TestRecords:
    """Tests for Task and SavedFilter."""

    def test_task_ignores_unknown_keys(self) -> None:
        task = Task.model_validate({"id": 1, "title": "a", "hex_color": "fff", "labels": None})
        assert task.labels == []
        assert task.done is False

    def test_task_accepts_null_title(self) -> None:
        task = validate_model(Task, {"id": 1, "title": None, "description": None})
        assert task.title is None
        assert task.description is None

    def test_saved_filter_uses_stored_expression(self) -> None:
        expression = parse("priority > 2")
        saved = SavedFilter.model_validate(
            {
                "id": "f1",
                "name": "High",
                "filter": "priority > 2",
                "expression": expression.to_dict(),
                "created": "2024-05-01T00:00:00Z",
                "updated": "2024-05-01T00:00:00Z",
                "projectId": 3,
                "isGlobal": True,
            }
        )
        assert saved.project_id == 3
        assert saved.is_global is True
        assert saved.created == datetime(2024, 5, 1, tzinfo=timezone.utc)
        assert saved.resolve_expression() == expression

    def test_saved_filter_parses_text(self) -> None:
        saved = SavedFilter(
            id="f2",
            name="Open",
            filter="done = false",
            created=datetime(2024, 5, 1, tzinfo=timezone.utc),
            updated=datetime(2024, 5, 1, tzinfo=timezone.utc),
        )
        assert saved.resolve_expression() == parse("done = false")
