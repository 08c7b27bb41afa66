from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler


@dataclass(frozen=True, slots=True)
class _LoggingState:
    level: int
    handlers: list[logging.Handler]


def _level_for(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(*, verbosity: int) -> _LoggingState:
    """
    Route log records to stderr through rich.

    Returns the previous root logger state for `restore_logging`.
    """
    root = logging.getLogger()
    previous = _LoggingState(level=root.level, handlers=list(root.handlers))

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=verbosity >= 2,
        rich_tracebacks=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    for existing in previous.handlers:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(_level_for(verbosity))
    return previous


def restore_logging(previous: _LoggingState) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    for handler in previous.handlers:
        root.addHandler(handler)
    root.setLevel(previous.level)
