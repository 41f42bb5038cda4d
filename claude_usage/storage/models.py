"""
Data models for usage statistics.

Defines the usage entry and the grouped statistics built from it.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from enum import Enum
from typing import FrozenSet, Optional, Tuple

from ..core.path_codec import project_name

_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 log timestamp into an aware datetime.

    Accepts a trailing ``Z`` or numeric offset, with or without fractional
    seconds. Timestamps without an offset are taken as UTC.

    Returns:
        Parsed datetime in UTC, or None if the string is not a timestamp or
        its instant falls outside the representable range
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat on older interpreters only takes 3 or 6 fraction digits
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return to_zone(parsed, timezone.utc)


def to_zone(value: datetime, tz: Optional[tzinfo]) -> Optional[datetime]:
    """Convert an aware datetime to ``tz`` (local time if None).

    Returns None when the converted value would fall before year 1 or
    after year 9999.
    """
    try:
        return value.astimezone(tz)
    except (OverflowError, ValueError):
        return None


@dataclass(frozen=True)
class UsageEntry:
    """One accounted unit of model usage.

    Built once per log line during ingestion and never modified.
    The timestamp is kept verbatim; ``date`` parses it on demand.
    """
    project: str
    timestamp: str
    model: str
    input_tokens: int
    output_tokens: int
    cache_write_tokens: int
    cache_read_tokens: int
    cost: float
    session_id: Optional[str] = None

    @property
    def total_tokens(self) -> int:
        return (
            self.input_tokens
            + self.output_tokens
            + self.cache_write_tokens
            + self.cache_read_tokens
        )

    @property
    def date(self) -> Optional[datetime]:
        """Parsed timestamp, None if it cannot be parsed."""
        return parse_timestamp(self.timestamp)


@dataclass(frozen=True)
class ModelUsage:
    """Usage aggregated by model.

    ``session_count`` counts entries for the model, not distinct sessions.
    """
    model: str
    total_cost: float
    total_tokens: int
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int
    cache_read_tokens: int
    session_count: int

    @property
    def average_cost_per_session(self) -> float:
        return self.total_cost / self.session_count if self.session_count > 0 else 0.0

    @property
    def average_tokens_per_session(self) -> int:
        return self.total_tokens // self.session_count if self.session_count > 0 else 0


@dataclass(frozen=True)
class DailyUsage:
    """Usage aggregated by calendar day (``yyyy-MM-dd``)."""
    date: str
    total_cost: float
    total_tokens: int
    models_used: FrozenSet[str] = frozenset()
    hourly_costs: Tuple[float, ...] = field(default=(0.0,) * 24)

    @property
    def model_count(self) -> int:
        """Number of distinct models used that day."""
        return len(self.models_used)

    @property
    def parsed_date(self) -> Optional[date]:
        try:
            return datetime.strptime(self.date, "%Y-%m-%d").date()
        except ValueError:
            return None


@dataclass(frozen=True)
class ProjectUsage:
    """Usage aggregated by decoded project path."""
    project_path: str
    project_name: str
    total_cost: float
    total_tokens: int
    session_count: int
    last_used: str

    @property
    def average_cost_per_session(self) -> float:
        return self.total_cost / self.session_count if self.session_count > 0 else 0.0

    @property
    def last_used_date(self) -> Optional[datetime]:
        return parse_timestamp(self.last_used)

    @classmethod
    def for_path(cls, project_path: str, **kwargs) -> "ProjectUsage":
        """Build a ProjectUsage, deriving the name from the path."""
        return cls(project_path=project_path, project_name=project_name(project_path), **kwargs)


@dataclass(frozen=True)
class UsageStats:
    """Overall usage statistics.

    ``by_date`` is sorted ascending by date; ``by_model`` and ``by_project``
    have no defined order.
    """
    total_cost: float
    total_tokens: int
    total_input_tokens: int
    total_output_tokens: int
    total_cache_creation_tokens: int
    total_cache_read_tokens: int
    total_sessions: int
    by_model: Tuple[ModelUsage, ...] = ()
    by_date: Tuple[DailyUsage, ...] = ()
    by_project: Tuple[ProjectUsage, ...] = ()

    @classmethod
    def empty(cls) -> "UsageStats":
        """Statistics for a history with no usage."""
        return cls(
            total_cost=0.0,
            total_tokens=0,
            total_input_tokens=0,
            total_output_tokens=0,
            total_cache_creation_tokens=0,
            total_cache_read_tokens=0,
            total_sessions=0,
        )

    @property
    def average_cost_per_session(self) -> float:
        return self.total_cost / self.total_sessions if self.total_sessions > 0 else 0.0

    @property
    def average_tokens_per_session(self) -> int:
        return self.total_tokens // self.total_sessions if self.total_sessions > 0 else 0

    @property
    def cost_per_million_tokens(self) -> float:
        if self.total_tokens <= 0:
            return 0.0
        return (self.total_cost / self.total_tokens) * 1_000_000


class SortOrder(Enum):
    """Sort direction for project queries."""
    ASCENDING = "asc"
    DESCENDING = "desc"
