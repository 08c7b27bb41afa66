"""Tests for client-side filter evaluation."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any

import pytest

from taskfilter.evaluator import (
    apply_filter,
    evaluate_array_comparison,
    evaluate_condition,
    filter_tasks,
)
from taskfilter.exceptions import FilterParseError, FilterValidationError
from taskfilter.models import FilterCondition
from taskfilter.parser import parse
from taskfilter.schemas import Task

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


def _matches(task: Any, text: str) -> bool:
    return apply_filter([task], parse(text), now=NOW) == [task]


class TestScenarios:
    """End-to-end filtering of task lists."""

    def test_priority_and_not_done(self) -> None:
        """priority >= 3 && done = false keeps only the first task."""
        tasks = [
            {"id": 1, "priority": 5, "done": False},
            {"id": 2, "priority": 2, "done": False},
            {"id": 3, "priority": 4, "done": True},
        ]
        assert filter_tasks(tasks, "priority >= 3 && done = false") == [tasks[0]]

    def test_assignee_overlap(self) -> None:
        """assignees in [1,2] matches any overlap."""
        tasks = [
            {"id": 1, "assignees": [{"id": 2}, {"id": 3}]},
            {"id": 2, "assignees": [{"id": 4}, {"id": 5}]},
        ]
        assert filter_tasks(tasks, "assignees in [1,2]") == [tasks[0]]

    def test_preserves_order_and_identity(self) -> None:
        tasks = [{"id": i, "priority": i % 3} for i in range(10)]
        result = apply_filter(tasks, parse("priority = 2"))
        assert [t["id"] for t in result] == [2, 5, 8]
        assert all(any(r is t for t in tasks) for r in result)

    def test_does_not_mutate_input(self) -> None:
        tasks = [{"id": 1, "done": True}, {"id": 2, "done": False}]
        snapshot = [dict(t) for t in tasks]
        apply_filter(tasks, parse("done = true"))
        assert tasks == snapshot

    def test_or_groups(self) -> None:
        tasks = [
            {"id": 1, "priority": 5, "done": True},
            {"id": 2, "priority": 1, "done": False},
            {"id": 3, "priority": 1, "done": True},
        ]
        text = "priority >= 3 && done = true || priority < 2 && done = false"
        assert [t["id"] for t in filter_tasks(tasks, text)] == [1, 2]

    def test_subset_property(self) -> None:
        """Results are always a subsequence of the input."""
        rng = random.Random(7)
        tasks = [
            {"id": i, "priority": rng.randint(0, 5), "done": rng.random() < 0.5}
            for i in range(50)
        ]
        for text in ("priority > 2", "done = true || priority = 0", "priority < 0"):
            result = apply_filter(tasks, parse(text))
            positions = [tasks.index(t) for t in result]
            assert positions == sorted(positions)
            assert len(result) <= len(tasks)


class TestFieldComparisons:
    """Tests for per-kind comparison semantics."""

    def test_boolean(self) -> None:
        assert _matches({"done": True}, "done = true")
        assert _matches({"done": False}, "done != true")
        assert _matches({}, "done = false")

    def test_numbers(self) -> None:
        task = {"priority": 3, "percent_done": 0.5}
        assert _matches(task, "priority = 3")
        assert _matches(task, "priority <= 3")
        assert not _matches(task, "priority > 3")
        assert _matches(task, "percentDone >= 0.5")

    def test_missing_number_is_zero(self) -> None:
        assert _matches({"priority": None}, "priority = 0")
        assert _matches({}, "percentDone < 0.1")

    def test_string_equality_is_exact(self) -> None:
        task = {"title": "Release Notes"}
        assert _matches(task, 'title = "Release Notes"')
        assert not _matches(task, 'title = "release notes"')
        assert _matches(task, 'title != "release notes"')

    def test_like_is_case_insensitive_substring(self) -> None:
        task = {"title": "Write Release Notes", "description": None}
        assert _matches(task, "title like release")
        assert not _matches(task, "title like draft")
        assert not _matches(task, "description like x")

    def test_labels(self) -> None:
        task = {"labels": [{"id": 4, "title": "bug"}, {"id": 9}]}
        assert _matches(task, "labels in [4, 7]")
        assert _matches(task, "labels not in [1, 2]")
        assert not _matches(task, "labels not in [9]")
        assert _matches(task, 'labels in ["9"]')

    def test_missing_relations(self) -> None:
        assert not _matches({"assignees": None}, "assignees in [1]")
        assert _matches({}, "assignees not in [1]")

    def test_unsupported_operator_is_false(self) -> None:
        """Field/operator pairs outside the catalogue never match."""
        task = {"done": True, "priority": 3, "labels": [{"id": 1}]}
        assert not evaluate_condition(task, FilterCondition("done", ">", True))
        assert not evaluate_condition(task, FilterCondition("labels", "=", (1,)))
        assert not evaluate_condition(task, FilterCondition("priority", "like", "3"))
        assert not evaluate_condition(task, FilterCondition("owner", "=", 1))

    def test_non_numeric_literal_is_false(self) -> None:
        assert not evaluate_condition({"priority": 3}, FilterCondition("priority", "=", "high"))


class TestArrayComplement:
    """not in is the exact negation of in."""

    @pytest.mark.parametrize(
        ("actual", "expected"),
        [
            ([], []),
            ([1], []),
            ([], [1]),
            ([1, 2], [2, 3]),
            ([4, 5], [1, 2]),
            ([1], ["1"]),
            ([1], ["bob"]),
        ],
    )
    def test_complement(self, actual: list[Any], expected: list[Any]) -> None:
        assert evaluate_array_comparison(actual, "not in", expected) == (
            not evaluate_array_comparison(actual, "in", expected)
        )

    def test_complement_random(self) -> None:
        rng = random.Random(11)
        for _ in range(200):
            actual = rng.sample(range(10), rng.randint(0, 5))
            expected = rng.sample(range(10), rng.randint(0, 5))
            assert evaluate_array_comparison(actual, "not in", expected) != (
                evaluate_array_comparison(actual, "in", expected)
            )


class TestDateComparisons:
    """Tests for date semantics."""

    @pytest.mark.parametrize(
        "text",
        [
            "dueDate = now",
            "dueDate > 2000-01-01",
            "dueDate >= now-1y",
            "dueDate < now+1y",
            "dueDate <= now",
        ],
    )
    def test_absent_due_date_fails_everything_but_not_equal(self, text: str) -> None:
        for value in (None, "", "0001-01-01T00:00:00Z"):
            assert not _matches({"due_date": value}, text)
            assert _matches({"due_date": value}, "dueDate != now")

    def test_absent_created_matches_only_not_equal(self) -> None:
        assert _matches({}, "created != 2024-01-01")
        assert not _matches({}, "created < now")

    def test_equality_by_calendar_day(self) -> None:
        """Same day at different times is equal; ordering uses the full instant."""
        task = {"due_date": "2024-05-15T23:00:00Z"}
        assert _matches(task, "dueDate = now")
        assert _matches(task, "dueDate = 2024-05-15T01:00:00Z")
        assert not _matches(task, "dueDate != now")
        assert _matches(task, "dueDate > now")
        assert not _matches(task, "dueDate < 2024-05-15T22:00:00Z")

    def test_relative_ranges(self) -> None:
        task = {"due_date": "2024-05-20T09:00:00Z"}
        assert _matches(task, "dueDate < now+7d")
        assert not _matches(task, "dueDate < now+2d")
        assert _matches(task, "dueDate >= now/w")

    def test_unresolvable_literal_never_matches(self) -> None:
        task = {"due_date": "2024-05-20T09:00:00Z"}
        assert not _matches(task, "dueDate = tomorrow")
        assert not _matches(task, "dueDate != tomorrow")

    def test_out_of_range_offset_never_matches(self) -> None:
        task = {"due_date": "2024-05-20T09:00:00Z"}
        assert not _matches(task, "dueDate < now+99999999999d")
        assert not _matches(task, "dueDate >= now-8000y")

    def test_camel_case_keys(self) -> None:
        assert _matches({"dueDate": "2024-05-15T08:00:00Z"}, "dueDate = now")


class TestTaskShapes:
    """Evaluation over models and plain objects."""

    def test_pydantic_task(self) -> None:
        task = Task.model_validate(
            {
                "id": 1,
                "title": "Ship it",
                "done": False,
                "priority": 4,
                "due_date": "2024-05-16T10:00:00Z",
                "assignees": [{"id": 2, "username": "ana"}],
                "labels": None,
            }
        )
        assert _matches(task, "assignees in [2] && priority > 3 && dueDate < now+2d")
        assert _matches(task, "labels not in [1]")

    def test_attribute_object(self) -> None:
        task = SimpleNamespace(
            done=True,
            priority=1,
            percent_done=1.0,
            title="x",
            labels=[SimpleNamespace(id=3)],
        )
        assert _matches(task, "done = true && labels in [3] && percentDone = 1")


class TestFilterTasks:
    """Tests for the filter_tasks pipeline."""

    def test_parse_errors_raise(self) -> None:
        with pytest.raises(FilterParseError):
            filter_tasks([], "priority >>= 3")

    def test_forbidden_field_raises(self) -> None:
        with pytest.raises(FilterParseError, match="not allowed"):
            filter_tasks([{"id": 1}], "__proto__ = 1")

    def test_validation_errors_raise(self) -> None:
        with pytest.raises(FilterValidationError) as exc:
            filter_tasks([], "done > true")
        assert "Invalid operator" in exc.value.errors[0]

    def test_text_checks_raise(self) -> None:
        with pytest.raises(FilterValidationError, match="too long"):
            filter_tasks([], "x" * 1001)

    def test_warnings_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        text = " || ".join(f"priority = {i}" for i in range(11))
        with caplog.at_level(logging.WARNING, logger="taskfilter.evaluator"):
            result = filter_tasks([{"priority": 3}], text)
        assert len(result) == 1
        assert "may impact performance" in caplog.text
