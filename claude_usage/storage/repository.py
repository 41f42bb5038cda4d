"""
Repository pattern for usage data access.

Every query re-runs ingestion from scratch against the log directory and
aggregates the result; nothing is cached between calls.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, tzinfo
from pathlib import Path
from typing import List, Optional

from ..config.loader import UsageConfig
from ..core.aggregator import DAY_FORMAT, aggregate
from ..core.errors import ErrorAggregator, InvalidPath
from ..core.pipeline import IngestionPipeline, IngestionResult
from ..core.scanner import (
    FileSystem,
    UsageFileScanner,
    count_distinct_session_ids,
    count_session_files,
)
from .models import ProjectUsage, SortOrder, UsageEntry, UsageStats, to_zone

logger = logging.getLogger(__name__)

_EPOCH = date(1970, 1, 1)


@dataclass(frozen=True)
class SessionCounts:
    """The two session definitions, side by side."""
    by_file: int
    by_session_id: int


class UsageRepository:
    """Repository for querying Claude Code usage.

    Composes the ingestion pipeline and the statistics aggregator behind
    a small query surface.
    """

    def __init__(
        self,
        base_path: Optional[str] = None,
        config: Optional[UsageConfig] = None,
        file_system: Optional[FileSystem] = None,
    ):
        """Initialize the repository.

        Args:
            base_path: Claude data directory, overrides ``config.base_path``
            config: Settings, defaults when omitted
            file_system: File system to read from, local disk when omitted

        Raises:
            InvalidPath: If base_path is empty
        """
        config = config or UsageConfig()
        if base_path is not None:
            if not str(base_path).strip():
                raise InvalidPath(str(base_path))
            config = replace(config, base_path=str(base_path))

        self.config = config
        self.tz: Optional[tzinfo] = config.tzinfo()
        scanner = UsageFileScanner(
            file_system=file_system,
            skip_prefixes=config.skip_directory_prefixes,
            skip_substrings=config.skip_directory_substrings,
        )
        self.pipeline = IngestionPipeline(
            scanner=scanner,
            pricing=config.pricing_table(),
            max_files=config.max_files,
        )
        self.is_loaded = False
        self._last_errors = ErrorAggregator()

    @property
    def projects_path(self) -> Path:
        return self.config.projects_path

    def _ingest(self) -> IngestionResult:
        result = self.pipeline.ingest(self.projects_path)
        self._last_errors = result.errors
        self.is_loaded = True
        return result

    def get_usage_stats(self) -> UsageStats:
        """Statistics over the full history.

        Sessions are counted as distinct log files.
        """
        result = self._ingest()
        return aggregate(result.entries, count_session_files(result.tasks), self.tz)

    def get_usage_by_date_range(self, start: date, end: date) -> UsageStats:
        """Statistics with ``by_date`` restricted to ``[start, end]``.

        Only ``total_cost`` and ``total_tokens`` are recomputed from the
        kept days. Per-kind token totals, the session count and the model
        and project breakdowns still describe the whole history. If no day
        falls in the range, the unfiltered statistics are returned.
        """
        return filter_stats_by_date_range(self.get_usage_stats(), start, end, self.tz)

    def get_session_stats(
        self,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        order: Optional[SortOrder] = None,
    ) -> List[ProjectUsage]:
        """Per-project usage, optionally filtered by last use and sorted by cost.

        The date filter applies only when both ``since`` and ``until`` are
        given. Naive datetimes are taken as local time.
        """
        projects = list(self.get_usage_stats().by_project)
        projects = filter_projects_by_last_used(projects, since, until)
        return sort_projects_by_cost(projects, order)

    def get_usage_details(self, limit: Optional[int] = None) -> List[UsageEntry]:
        """Raw entries, newest first by timestamp string."""
        entries = sorted(self._ingest().entries, key=lambda e: e.timestamp, reverse=True)
        if limit is not None:
            return entries[:max(limit, 0)]
        return entries

    def get_today_usage_stats(self, now: Optional[datetime] = None) -> UsageStats:
        """Statistics for entries dated today.

        Sessions are counted as distinct session ids.
        """
        now = _as_aware(now or datetime.now().astimezone())
        today = now.astimezone(self.tz).date()
        entries = [
            entry for entry in self._ingest().entries
            if _local_day(entry, self.tz) == today
        ]
        return aggregate(entries, count_distinct_session_ids(entries), self.tz)

    def count_sessions(self) -> SessionCounts:
        """Session totals under both definitions from one ingestion run."""
        result = self._ingest()
        return SessionCounts(
            by_file=count_session_files(result.tasks),
            by_session_id=count_distinct_session_ids(result.entries),
        )

    def get_error_summary(self) -> ErrorAggregator:
        """Errors recorded during the most recent ingestion run."""
        return self._last_errors


def filter_stats_by_date_range(
    stats: UsageStats,
    start: date,
    end: date,
    tz: Optional[tzinfo] = None,
) -> UsageStats:
    """Restrict ``by_date`` to ``[start, end]`` and recompute cost and tokens.

    A start before the Unix epoch means "all time" and returns the input
    unchanged, as does a range that matches no day.
    """
    start_day = _as_day(start, tz)
    end_day = _as_day(end, tz)
    if start_day < _EPOCH:
        return stats

    start_key = start_day.strftime(DAY_FORMAT)
    end_key = end_day.strftime(DAY_FORMAT)
    kept = tuple(day for day in stats.by_date if start_key <= day.date <= end_key)
    if not kept:
        return stats

    # TODO: decide whether the breakdowns and session count should follow the filter
    return replace(
        stats,
        total_cost=sum(day.total_cost for day in kept),
        total_tokens=sum(day.total_tokens for day in kept),
        by_date=kept,
    )


def filter_projects_by_last_used(
    projects: List[ProjectUsage],
    since: Optional[datetime],
    until: Optional[datetime],
) -> List[ProjectUsage]:
    if since is None or until is None:
        return projects
    since = _as_aware(since)
    until = _as_aware(until)
    result = []
    for project in projects:
        last_used = project.last_used_date
        if last_used is not None and since <= last_used <= until:
            result.append(project)
    return result


def sort_projects_by_cost(
    projects: List[ProjectUsage],
    order: Optional[SortOrder],
) -> List[ProjectUsage]:
    if order is None:
        return projects
    return sorted(
        projects,
        key=lambda p: p.total_cost,
        reverse=order == SortOrder.DESCENDING,
    )


def _as_aware(value: datetime) -> datetime:
    # Naive datetimes are local time
    return value if value.tzinfo is not None else value.astimezone()


def _local_day(entry: UsageEntry, tz: Optional[tzinfo]) -> Optional[date]:
    parsed = entry.date
    local = to_zone(parsed, tz) if parsed is not None else None
    return local.date() if local is not None else None


def _as_day(value: date, tz: Optional[tzinfo]) -> date:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(tz).date()
        return value.date()
    return value


# Global repository instance
_default_repository: Optional[UsageRepository] = None


def get_repository(config: Optional[UsageConfig] = None) -> UsageRepository:
    """Get a repository instance.

    Returns a process-wide instance built on first use. Passing a config
    replaces it.

    Args:
        config: Settings for the repository

    Returns:
        An instance of UsageRepository
    """
    global _default_repository
    if _default_repository is None or config is not None:
        _default_repository = UsageRepository(config=config)
    return _default_repository
