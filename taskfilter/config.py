"""
Validation limits.

Limits are plain frozen values so they can be shared freely between
concurrent callers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

MAX_FILTER_LENGTH = 1000
MAX_DATE_TOKEN_LENGTH = 30


@dataclass(frozen=True, slots=True)
class FilterLimits:
    """Bounds enforced by the validator."""

    max_conditions: int = 50
    max_depth: int = 10
    max_array_size: int = 100
    max_string_length: int = 1000
    warn_conditions: int = 10

    def with_overrides(self, **overrides: int | None) -> FilterLimits:
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self


DEFAULT_LIMITS = FilterLimits()

# Bare single-field text filters are meant for short ad-hoc queries
SIMPLE_FILTER_LIMITS = FilterLimits(max_string_length=200)
