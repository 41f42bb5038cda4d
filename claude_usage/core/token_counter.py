"""
Token counting and usage tracking.

Normalizes the token counts reported in a usage record.
"""

import math
from dataclasses import dataclass
from typing import Any, Mapping


@dataclass(frozen=True)
class TokenCounts:
    """Token counts for one usage record.

    All four counts are non-negative integers.
    """
    input_tokens: int = 0
    output_tokens: int = 0
    cache_write_tokens: int = 0
    cache_read_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        """Total tokens across all four kinds."""
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_write_tokens
            + self.cache_read_tokens
        )

    @property
    def has_usage(self) -> bool:
        """True when at least one count is non-zero."""
        return self.total_tokens > 0

    @classmethod
    def from_usage(cls, usage: Mapping[str, Any]) -> "TokenCounts":
        """Extract counts from a log record's ``message.usage`` object."""
        return cls(
            input_tokens=_as_count(usage.get("input_tokens")),
            output_tokens=_as_count(usage.get("output_tokens")),
            cache_write_tokens=_as_count(usage.get("cache_creation_input_tokens")),
            cache_read_tokens=_as_count(usage.get("cache_read_input_tokens")),
        )


def _as_count(value: Any) -> int:
    """Coerce a raw JSON value to a token count, 0 when absent or non-numeric."""
    # bool is an int subclass in Python
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return max(value, 0)
    if isinstance(value, float) and math.isfinite(value):
        # Fractional counts are truncated
        return max(int(value), 0)
    return 0
