"""
Derived usage analytics.

Breakdowns, projections and rates computed from entries or statistics.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Dict, List, Optional, Sequence

from .scanner import count_distinct_session_ids
from ..storage.models import UsageEntry, UsageStats, to_zone

BURN_RATE_WINDOW = 100
# Rough input-minus-cache-read price difference per token
CACHE_SAVINGS_PER_TOKEN = 0.000009


@dataclass(frozen=True)
class ModelCostShare:
    """A model's cost and its share of the total."""
    model: str
    cost: float
    percentage: float


@dataclass(frozen=True)
class TokenBreakdown:
    """Share of each token kind, in percent."""
    input_percentage: float
    output_percentage: float
    cache_write_percentage: float
    cache_read_percentage: float


@dataclass(frozen=True)
class CacheSavings:
    tokens_saved: int
    estimated_saved: float
    description: str


def total_cost(entries: Sequence[UsageEntry]) -> float:
    return sum(entry.cost for entry in entries)


def total_tokens(entries: Sequence[UsageEntry]) -> int:
    return sum(entry.total_tokens for entry in entries)


def average_cost_per_session(entries: Sequence[UsageEntry]) -> float:
    """Total cost divided by the number of distinct session ids."""
    sessions = count_distinct_session_ids(entries)
    if sessions == 0:
        return 0.0
    return total_cost(entries) / sessions


def cost_breakdown(stats: UsageStats) -> List[ModelCostShare]:
    """Per-model cost shares, most expensive first."""
    if stats.total_cost <= 0:
        return []
    models = sorted(stats.by_model, key=lambda m: m.total_cost, reverse=True)
    return [
        ModelCostShare(
            model=m.model,
            cost=m.total_cost,
            percentage=(m.total_cost / stats.total_cost) * 100,
        )
        for m in models
    ]


def token_breakdown(stats: UsageStats) -> TokenBreakdown:
    """Percentage of tokens per kind, summed over the model breakdown."""
    total = stats.total_tokens
    if total <= 0:
        return TokenBreakdown(0.0, 0.0, 0.0, 0.0)

    input_tokens = sum(m.input_tokens for m in stats.by_model)
    output_tokens = sum(m.output_tokens for m in stats.by_model)
    cache_write = sum(m.cache_creation_tokens for m in stats.by_model)
    cache_read = sum(m.cache_read_tokens for m in stats.by_model)
    return TokenBreakdown(
        input_percentage=input_tokens / total * 100,
        output_percentage=output_tokens / total * 100,
        cache_write_percentage=cache_write / total * 100,
        cache_read_percentage=cache_read / total * 100,
    )


def filter_by_date_range(
    entries: Sequence[UsageEntry],
    start: datetime,
    end: datetime,
) -> List[UsageEntry]:
    """Entries whose parsed timestamp lies in ``[start, end]``.

    Both bounds must be timezone-aware. Entries with unparseable
    timestamps are dropped.
    """
    result = []
    for entry in entries:
        parsed = entry.date
        if parsed is not None and start <= parsed <= end:
            result.append(entry)
    return result


def group_by_date(
    entries: Sequence[UsageEntry],
    tz: Optional[tzinfo] = None,
) -> Dict[str, List[UsageEntry]]:
    """Entries keyed by ``yyyy-MM-dd`` in the given time zone (local if None)."""
    groups: Dict[str, List[UsageEntry]] = {}
    for entry in entries:
        parsed = entry.date
        local = to_zone(parsed, tz) if parsed is not None else None
        if local is None:
            continue
        day = local.strftime("%Y-%m-%d")
        groups.setdefault(day, []).append(entry)
    return groups


def predict_monthly_cost(stats: UsageStats, days_elapsed: int) -> float:
    """Project a 30-day cost from the average daily cost so far."""
    if days_elapsed <= 0:
        return 0.0
    return (stats.total_cost / days_elapsed) * 30


def burn_rate(entries: Sequence[UsageEntry]) -> float:
    """Cost per hour over the most recent entries.

    Uses the last ``BURN_RATE_WINDOW`` entries in the given order and the
    span between their earliest and latest timestamps.
    """
    recent = list(entries)[-BURN_RATE_WINDOW:]
    dates = [entry.date for entry in recent if entry.date is not None]
    if len(dates) < 2:
        return 0.0
    hours = (max(dates) - min(dates)).total_seconds() / 3600
    if hours <= 0:
        return 0.0
    return total_cost(recent) / hours


def cache_savings(stats: UsageStats) -> CacheSavings:
    """Estimate what cache reads saved compared to uncached input."""
    tokens = sum(m.cache_read_tokens for m in stats.by_model)
    saved = max(0.0, tokens * CACHE_SAVINGS_PER_TOKEN)
    if tokens > 0:
        description = f"Saved ~${saved:.2f} with cache ({abbreviate(tokens)} tokens)"
    else:
        description = "No cache usage yet"
    return CacheSavings(tokens_saved=tokens, estimated_saved=saved, description=description)


def abbreviate(value: int) -> str:
    """Format a count as 950, 1.2K, 3.4M or 1.0B."""
    for threshold, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if abs(value) >= threshold:
            return f"{value / threshold:.1f}{suffix}"
    return str(value)
