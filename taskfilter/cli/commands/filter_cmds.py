from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from typing import IO, Any, TypeVar

import click
import rich_click

from ...builder import FilterBuilder
from ...dates import resolve_date
from ...evaluator import filter_tasks
from ...exceptions import FilterError, FilterValidationError
from ...parser import parse
from ...schemas import Task, validate_model
from ...validator import check_filter_text, validate_filter_text
from ..context import CLIContext
from ..render import (
    emit_json,
    render_error,
    render_expression,
    render_tasks,
    render_validation,
)

F = TypeVar("F", bound=Callable[..., None])


def handle_filter_errors(fn: F) -> F:
    """Render FilterError and exit 1 instead of printing a traceback."""

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        try:
            fn(*args, **kwargs)
        except FilterError as e:
            ctx = click.get_current_context().find_object(CLIContext) or CLIContext()
            render_error(e, output=ctx.output)
            raise click.exceptions.Exit(1) from e

    return wrapper  # type: ignore[return-value]


def _parse_cli_value(raw: str) -> Any:
    """Decode a --where value: JSON when it parses (numbers, booleans, lists), else text."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


@click.command(name="parse", cls=rich_click.RichCommand)
@click.argument("filter_text", metavar="FILTER")
@click.pass_obj
@handle_filter_errors
def parse_cmd(ctx: CLIContext, filter_text: str) -> None:
    """Parse FILTER and show its groups and conditions."""
    errors = check_filter_text(filter_text)
    if errors:
        raise FilterValidationError(errors)
    expression = parse(filter_text)
    if ctx.output == "json":
        emit_json(expression.to_dict())
    else:
        render_expression(expression)


@click.command(name="validate", cls=rich_click.RichCommand)
@click.argument("filter_text", metavar="FILTER")
@click.pass_obj
def validate_cmd(ctx: CLIContext, filter_text: str) -> None:
    """Validate FILTER against the configured limits; exit 1 when invalid."""
    _, result = validate_filter_text(filter_text, ctx.limits())
    if ctx.output == "json":
        emit_json(result.to_dict())
    else:
        render_validation(result)
    if not result.valid:
        raise click.exceptions.Exit(1)


@click.command(name="build", cls=rich_click.RichCommand)
@click.option(
    "--where",
    "conditions",
    type=(str, str, str),
    multiple=True,
    required=True,
    metavar="FIELD OP VALUE",
    help="Condition to add (repeatable). VALUE is read as JSON when possible.",
)
@click.option("--or", "use_or", is_flag=True, help="Join conditions with || instead of &&.")
@click.pass_obj
@handle_filter_errors
def build_cmd(ctx: CLIContext, conditions: tuple[tuple[str, str, str], ...], use_or: bool) -> None:
    """Build filter text from structured conditions."""
    builder = FilterBuilder()
    for field, operator, raw in conditions:
        if use_or and len(builder):
            builder.or_()
        try:
            builder.where(field, operator, _parse_cli_value(raw))
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--where") from e

    result = builder.validate(ctx.limits())
    if not result.valid:
        raise FilterValidationError(result.errors, warnings=result.warnings)

    if ctx.output == "json":
        emit_json({"filter": builder.to_string(), "expression": builder.build().to_dict()})
    else:
        click.echo(builder.to_string())


@click.command(name="apply", cls=rich_click.RichCommand)
@click.argument("filter_text", metavar="FILTER")
@click.option(
    "--tasks",
    "tasks_file",
    type=click.File("r"),
    default="-",
    show_default=True,
    help="JSON array of tasks ('-' for stdin).",
)
@click.option("--now", "now_token", default=None, help="Reference time for relative dates.")
@click.pass_obj
@handle_filter_errors
def apply_cmd(
    ctx: CLIContext, filter_text: str, tasks_file: IO[str], now_token: str | None
) -> None:
    """Apply FILTER to a JSON array of tasks and print the matches."""
    try:
        payload = json.load(tasks_file)
    except ValueError as e:
        raise click.BadParameter(f"Invalid JSON: {e}", param_hint="--tasks") from e
    if not isinstance(payload, list):
        raise click.BadParameter("Expected a JSON array of tasks", param_hint="--tasks")

    now: datetime | None = None
    if now_token is not None:
        now = resolve_date(now_token)
        if now is None:
            raise click.BadParameter(f"Invalid date: {now_token}", param_hint="--now")

    models = [validate_model(Task, item) for item in payload]
    originals = {id(model): item for model, item in zip(models, payload)}
    matched = filter_tasks(models, filter_text, ctx.limits(), now=now)
    rows = [originals[id(model)] for model in matched]

    if ctx.output == "json":
        emit_json(rows)
    else:
        render_tasks(rows, total=len(payload))
