from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..config import DEFAULT_LIMITS, FilterLimits

OutputFormat = Literal["table", "json"]


@dataclass(frozen=True, slots=True)
class CLIContext:
    output: OutputFormat = "table"
    verbosity: int = 0
    max_conditions: int | None = None
    max_depth: int | None = None

    def limits(self) -> FilterLimits | None:
        """Limits from the command line, or None to let the engine choose."""
        if self.max_conditions is None and self.max_depth is None:
            return None
        return DEFAULT_LIMITS.with_overrides(
            max_conditions=self.max_conditions,
            max_depth=self.max_depth,
        )
