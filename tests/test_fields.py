"""Tests for the field catalogue."""

from __future__ import annotations

import pytest

from taskfilter.fields import (
    FIELD_KINDS,
    VALID_OPERATORS,
    ValueKind,
    canonical_field,
    canonical_operator,
    field_kind,
    operator_allowed,
)


def test_every_field_has_a_kind() -> None:
    assert set(FIELD_KINDS) == {
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
    }
    assert field_kind("assignees") == ValueKind.ARRAY
    assert field_kind("due_date") == ValueKind.DATE
    assert field_kind("owner") is None


@pytest.mark.parametrize("name", ["__proto__", "constructor", "prototype", "Title", "id"])
def test_canonical_field_rejects(name: str) -> None:
    assert canonical_field(name) is None


@pytest.mark.parametrize(
    ("spelling", "expected"),
    [
        ("LIKE", "like"),
        ("Not  In", "not in"),
        ("in", "in"),
        (">=", ">="),
        ("=>", None),
        ("~", None),
    ],
)
def test_canonical_operator(spelling: str, expected: str | None) -> None:
    assert canonical_operator(spelling) == expected


def test_like_only_for_strings_and_membership_only_for_arrays() -> None:
    for kind, operators in VALID_OPERATORS.items():
        assert ("like" in operators) == (kind == ValueKind.STRING)
        assert ("in" in operators) == (kind == ValueKind.ARRAY)
    assert operator_allowed("title", "like")
    assert not operator_allowed("labels", ">")
    assert not operator_allowed("owner", "=")
