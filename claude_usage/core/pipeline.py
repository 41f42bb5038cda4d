"""
Ingestion pipeline.

Scans the projects root, then parses every log file in earliest-timestamp
order with one deduplication set shared across the whole run.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .deduplication import DeduplicationStrategy, HashBasedDeduplication
from .errors import ErrorAggregator, QuotaExceeded, retry_with_backoff
from .parser import parse_line
from .pricing import DEFAULT_PRICING_TABLE, PricingTable
from .scanner import FileTask, UsageFileScanner, as_repository_error
from ..storage.models import UsageEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestionResult:
    """Everything one run produced."""
    entries: List[UsageEntry]
    tasks: List[FileTask]
    errors: ErrorAggregator


class IngestionPipeline:
    """Sequential scan-sort-parse pipeline.

    Files are parsed one at a time, lines in file order, so which of two
    duplicate records wins depends only on the file ordering.

    Args:
        scanner: File discovery
        pricing: Rate cards for records without a logged cost
        dedup_factory: Builds a fresh deduplication state per run
        max_files: Optional limit on the number of files per run
        scan_attempts: Attempts at listing the projects root
        retry_delay: Delay before the second listing attempt, doubled each time
        sleep: Sleep function between listing attempts
    """

    def __init__(
        self,
        scanner: Optional[UsageFileScanner] = None,
        pricing: PricingTable = DEFAULT_PRICING_TABLE,
        dedup_factory: Callable[[], DeduplicationStrategy] = HashBasedDeduplication,
        max_files: Optional[int] = None,
        scan_attempts: int = 3,
        retry_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.scanner = scanner or UsageFileScanner()
        self.pricing = pricing
        self.dedup_factory = dedup_factory
        self.max_files = max_files
        self.scan_attempts = scan_attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    def run(self, projects_root: Path) -> List[UsageEntry]:
        """Ingest every log under ``projects_root`` into a flat entry list."""
        return self.ingest(projects_root).entries

    def ingest(self, projects_root: Path) -> IngestionResult:
        """Run the pipeline and keep the file list and error diagnostics.

        Raises:
            QuotaExceeded: If more files are found than ``max_files``
            PermissionDenied: If the projects root cannot be listed
            FileReadFailed: If listing the projects root fails on every attempt
        """
        errors = ErrorAggregator()
        dedup = self.dedup_factory()
        dedup.reset()

        # Transient failures listing the root are retried; permission errors are not
        tasks = retry_with_backoff(
            lambda: self.scanner.scan(Path(projects_root), errors),
            max_attempts=self.scan_attempts,
            initial_delay=self.retry_delay,
            sleep=self.sleep,
        )
        if self.max_files is not None and len(tasks) > self.max_files:
            raise QuotaExceeded(limit=self.max_files, attempted=len(tasks))

        entries: List[UsageEntry] = []
        for task in tasks:
            entries.extend(self._parse_file(task, dedup, errors))

        logger.info("Loaded %d entries from %d files", len(entries), len(tasks))
        if errors.has_errors():
            logger.info(errors.summary())
        return IngestionResult(entries=entries, tasks=tasks, errors=errors)

    def _parse_file(
        self,
        task: FileTask,
        dedup: DeduplicationStrategy,
        errors: ErrorAggregator,
    ) -> List[UsageEntry]:
        try:
            content = self.scanner.file_system.read_text(task.path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping %s: %s", task.path, e)
            errors.record(as_repository_error(task.path, e))
            return []

        entries = []
        for line_number, line in enumerate(content.splitlines(), start=1):
            entry = parse_line(
                line,
                task.project_dir,
                dedup,
                pricing=self.pricing,
                errors=errors,
                source=str(task.path),
                line_number=line_number,
            )
            if entry is not None:
                entries.append(entry)
        return entries
