from __future__ import annotations

import click
import rich_click

import taskfilter

from .context import CLIContext
from .logging import configure_logging, restore_logging


@click.group(
    name="taskfilter",
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
    cls=rich_click.RichGroup,
)
@click.option(
    "--output",
    type=click.Choice(["table", "json"]),
    default="table",
)
@click.option("--json", "json_flag", is_flag=True, help="Alias for --output json.")
@click.option("-v", "verbose", count=True, help="Increase verbosity (-v, -vv).")
@click.option(
    "--max-conditions",
    type=click.IntRange(min=1),
    default=None,
    help="Override the maximum number of conditions.",
)
@click.option(
    "--max-depth",
    type=click.IntRange(min=1),
    default=None,
    help="Override the maximum group nesting depth.",
)
@click.version_option(version=taskfilter.__version__, prog_name="taskfilter")
@click.pass_context
def cli(
    click_ctx: click.Context,
    *,
    output: str,
    json_flag: bool,
    verbose: int,
    max_conditions: int | None,
    max_depth: int | None,
) -> None:
    if click_ctx.invoked_subcommand is None:
        click.echo(click_ctx.get_help())
        raise click.exceptions.Exit(0)

    click_ctx.obj = CLIContext(
        output="json" if json_flag else output,  # type: ignore[arg-type]
        verbosity=verbose,
        max_conditions=max_conditions,
        max_depth=max_depth,
    )

    previous_logging = configure_logging(verbosity=verbose)
    click_ctx.call_on_close(lambda: restore_logging(previous_logging))


# Register commands
from .commands.filter_cmds import apply_cmd as _apply_cmd  # noqa: E402
from .commands.filter_cmds import build_cmd as _build_cmd  # noqa: E402
from .commands.filter_cmds import parse_cmd as _parse_cmd  # noqa: E402
from .commands.filter_cmds import validate_cmd as _validate_cmd  # noqa: E402

cli.add_command(_parse_cmd)
cli.add_command(_validate_cmd)
cli.add_command(_build_cmd)
cli.add_command(_apply_cmd)
