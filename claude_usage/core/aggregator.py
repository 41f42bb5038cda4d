"""
Statistics aggregation.

Reduces a list of usage entries into totals and per-model, per-day and
per-project breakdowns in a single pass.
"""

from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Dict, List, Optional, Sequence, Set

from ..storage.models import (
    DailyUsage,
    ModelUsage,
    ProjectUsage,
    UsageEntry,
    UsageStats,
    to_zone,
)

DAY_FORMAT = "%Y-%m-%d"


@dataclass
class _ModelAccumulator:
    total_cost: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0
    entry_count: int = 0


@dataclass
class _DayAccumulator:
    total_cost: float = 0.0
    total_tokens: int = 0
    models: Set[str] = field(default_factory=set)
    hourly_costs: List[float] = field(default_factory=lambda: [0.0] * 24)


@dataclass
class _ProjectAccumulator:
    total_cost: float = 0.0
    total_tokens: int = 0
    session_ids: Set[str] = field(default_factory=set)
    last_used: str = ""


def aggregate(
    entries: Sequence[UsageEntry],
    session_count: int,
    tz: Optional[tzinfo] = None,
) -> UsageStats:
    """Aggregate entries into usage statistics.

    Pure: no I/O, same input gives the same output. Entries whose
    timestamp does not parse, or cannot be placed on a calendar day in
    ``tz``, still count toward the totals, the model
    breakdown and the project breakdown, but are left out of ``by_date``.

    Args:
        entries: Entries to aggregate
        session_count: Session total supplied by the caller, since the
            right definition of a session depends on the caller
        tz: Time zone used to bucket days; None means local time

    Returns:
        UsageStats with ``by_date`` sorted ascending
    """
    total_cost = 0.0
    total_input = 0
    total_output = 0
    total_cache_write = 0
    total_cache_read = 0

    models: Dict[str, _ModelAccumulator] = {}
    days: Dict[str, _DayAccumulator] = {}
    projects: Dict[str, _ProjectAccumulator] = {}

    for entry in entries:
        total_cost += entry.cost
        total_input += entry.input_tokens
        total_output += entry.output_tokens
        total_cache_write += entry.cache_write_tokens
        total_cache_read += entry.cache_read_tokens

        model = models.setdefault(entry.model, _ModelAccumulator())
        model.total_cost += entry.cost
        model.input_tokens += entry.input_tokens
        model.output_tokens += entry.output_tokens
        model.cache_creation_tokens += entry.cache_write_tokens
        model.cache_read_tokens += entry.cache_read_tokens
        model.entry_count += 1

        parsed = entry.date
        local = to_zone(parsed, tz) if parsed is not None else None
        if local is not None:
            day = days.setdefault(local.strftime(DAY_FORMAT), _DayAccumulator())
            day.total_cost += entry.cost
            day.total_tokens += entry.total_tokens
            day.models.add(entry.model)
            day.hourly_costs[local.hour] += entry.cost

        project = projects.setdefault(entry.project, _ProjectAccumulator())
        project.total_cost += entry.cost
        project.total_tokens += entry.total_tokens
        if entry.session_id:
            project.session_ids.add(entry.session_id)
        # ISO-8601 strings compare in chronological order
        if entry.timestamp > project.last_used:
            project.last_used = entry.timestamp

    return UsageStats(
        total_cost=total_cost,
        total_tokens=total_input + total_output + total_cache_write + total_cache_read,
        total_input_tokens=total_input,
        total_output_tokens=total_output,
        total_cache_creation_tokens=total_cache_write,
        total_cache_read_tokens=total_cache_read,
        total_sessions=session_count,
        by_model=tuple(_build_model_usage(name, acc) for name, acc in models.items()),
        by_date=tuple(
            _build_daily_usage(day, acc) for day, acc in sorted(days.items())
        ),
        by_project=tuple(_build_project_usage(path, acc) for path, acc in projects.items()),
    )


def _build_model_usage(model: str, acc: _ModelAccumulator) -> ModelUsage:
    return ModelUsage(
        model=model,
        total_cost=acc.total_cost,
        total_tokens=(
            acc.input_tokens
            + acc.output_tokens
            + acc.cache_creation_tokens
            + acc.cache_read_tokens
        ),
        input_tokens=acc.input_tokens,
        output_tokens=acc.output_tokens,
        cache_creation_tokens=acc.cache_creation_tokens,
        cache_read_tokens=acc.cache_read_tokens,
        session_count=acc.entry_count,
    )


def _build_daily_usage(day: str, acc: _DayAccumulator) -> DailyUsage:
    return DailyUsage(
        date=day,
        total_cost=acc.total_cost,
        total_tokens=acc.total_tokens,
        models_used=frozenset(acc.models),
        hourly_costs=tuple(acc.hourly_costs),
    )


def _build_project_usage(path: str, acc: _ProjectAccumulator) -> ProjectUsage:
    return ProjectUsage.for_path(
        path,
        total_cost=acc.total_cost,
        total_tokens=acc.total_tokens,
        session_count=max(len(acc.session_ids), 1),
        last_used=acc.last_used,
    )
