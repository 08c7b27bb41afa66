"""
Exceptions raised by the filter engine.

Parse and validation failures are surfaced to callers verbatim; evaluation
never raises for validated input.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ParseError


class FilterError(Exception):
    """Base class for all filter engine errors."""

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        return self.message


class FilterParseError(FilterError):
    """Filter text is syntactically malformed."""

    def __init__(self, error: ParseError) -> None:
        super().__init__(
            error.message,
            details={"position": error.position, "context": error.context},
        )
        self.error = error

    @property
    def position(self) -> int:
        return self.error.position

    @property
    def context(self) -> str | None:
        return self.error.context

    def __str__(self) -> str:
        if self.error.context:
            return f"{self.message}\n{self.error.context}"
        return self.message


class FilterValidationError(FilterError):
    """Filter is well-formed but exceeds limits or carries disallowed content."""

    def __init__(
        self,
        errors: list[str],
        *,
        warnings: list[str] | None = None,
    ) -> None:
        if len(errors) == 1:
            message = errors[0]
        else:
            message = "Filter validation failed:\n" + "\n".join(f"- {e}" for e in errors)
        super().__init__(message, details={"errors": list(errors)})
        self.errors = list(errors)
        self.warnings = list(warnings or [])
