from __future__ import annotations

import json
import sys
from collections.abc import Mapping, Sequence
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..builder import format_value
from ..exceptions import FilterError, FilterParseError, FilterValidationError
from ..fields import FIELD_KINDS
from ..models import FilterExpression, FilterValidationResult


def _stdout() -> Console:
    return Console(file=sys.stdout, force_terminal=False, soft_wrap=True)


def _stderr() -> Console:
    return Console(file=sys.stderr, force_terminal=False, soft_wrap=True)


def emit_json(data: Any) -> None:
    sys.stdout.write(json.dumps(data, ensure_ascii=False, indent=2, default=str) + "\n")


def _error_type(error: FilterError) -> str:
    if isinstance(error, FilterParseError):
        return "parse_error"
    if isinstance(error, FilterValidationError):
        return "validation_error"
    return "filter_error"


def render_error(error: FilterError, *, output: str) -> None:
    """Render a filter error as a JSON envelope (stdout) or rich text (stderr)."""
    if output == "json":
        emit_json(
            {
                "ok": False,
                "error": {
                    "type": _error_type(error),
                    "message": error.message,
                    "details": error.details,
                },
            }
        )
        return

    stderr = _stderr()
    if isinstance(error, FilterParseError):
        stderr.print(Text(f"Parse error: {error.message}"))
        if error.context:
            stderr.print(Panel.fit(Text(error.context)))
    elif isinstance(error, FilterValidationError):
        stderr.print("Validation failed:")
        for message in error.errors:
            stderr.print(Text(f"  - {message}"))
    else:
        stderr.print(Text(f"Error: {error.message}"))


def render_expression(expression: FilterExpression) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Group")
    table.add_column("Join")
    table.add_column("Field")
    table.add_column("Operator")
    table.add_column("Value")

    for index, group in enumerate(expression.groups, start=1):
        for position, condition in enumerate(group.conditions):
            table.add_row(
                str(index),
                group.operator if position else "",
                condition.field,
                condition.operator,
                Text(format_value(condition.value, FIELD_KINDS[condition.field])),
            )

    stdout = _stdout()
    stdout.print(table)
    if len(expression.groups) > 1:
        stdout.print(f"Groups joined by {expression.operator}")


def render_validation(result: FilterValidationResult) -> None:
    stdout = _stdout()
    if result.valid:
        stdout.print("Valid filter")
    else:
        stdout.print("Invalid filter:")
        for message in result.errors:
            stdout.print(Text(f"  - {message}"))
    for message in result.warnings:
        _stderr().print(Text(f"Warning: {message}"))


def render_tasks(tasks: Sequence[Mapping[str, Any]], *, total: int) -> None:
    table = Table(show_header=True, header_style="bold")
    for column in ("ID", "Title", "Done", "Priority", "Due"):
        table.add_column(column)

    for task in tasks:
        table.add_row(
            str(task.get("id", "")),
            Text(str(task.get("title") or "")),
            "yes" if task.get("done") else "no",
            str(task.get("priority") or ""),
            str(task.get("due_date") or task.get("dueDate") or ""),
        )

    stdout = _stdout()
    stdout.print(table)
    stdout.print(f"{len(tasks)} of {total} task(s) matched")
