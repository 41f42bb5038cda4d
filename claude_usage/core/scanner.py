"""
Discovery of session log files.

Walks ``<projects root>/<encoded project dir>/<session>.jsonl`` and orders
the files by the earliest timestamp each one contains.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, Sequence, Set

from .errors import (
    DecodingFailed,
    DirectoryNotFound,
    ErrorAggregator,
    FileReadFailed,
    PermissionDenied,
    UsageRepositoryError,
)
from ..storage.models import UsageEntry

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".jsonl"
DEFAULT_SKIP_PREFIXES = ("-private-var-folders-", ".")
DEFAULT_SKIP_SUBSTRINGS = ("claude-kit-sessions",)


class FileSystem(Protocol):
    """File system operations the scanner and pipeline rely on."""

    def exists(self, path: Path) -> bool: ...

    def is_dir(self, path: Path) -> bool: ...

    def list_dir(self, path: Path) -> List[str]: ...

    def read_text(self, path: Path) -> str: ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    def exists(self, path: Path) -> bool:
        return path.exists()

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def list_dir(self, path: Path) -> List[str]:
        return sorted(child.name for child in path.iterdir())

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")


@dataclass(frozen=True)
class FileTask:
    """A log file queued for parsing."""
    path: Path
    project_dir: str
    earliest_timestamp: str

    @property
    def session_name(self) -> str:
        """File name without the log suffix."""
        return self.path.name[: -len(LOG_SUFFIX)]


def as_repository_error(path: Path, error: Exception) -> UsageRepositoryError:
    """Map an I/O exception onto the error taxonomy."""
    if isinstance(error, PermissionError):
        return PermissionDenied(str(path))
    if isinstance(error, UnicodeDecodeError):
        return DecodingFailed(str(path), str(error))
    return FileReadFailed(str(path), str(error))


def earliest_timestamp(content: str) -> Optional[str]:
    """Smallest top-level ``timestamp`` string in a log's content.

    ISO-8601 timestamps in one format sort lexically in chronological
    order, so no parsing is needed.
    """
    earliest: Optional[str] = None
    for line in content.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except ValueError:
            continue
        if not isinstance(record, dict):
            continue
        timestamp = record.get("timestamp")
        if isinstance(timestamp, str) and timestamp:
            if earliest is None or timestamp < earliest:
                earliest = timestamp
    return earliest


class UsageFileScanner:
    """Finds session logs under a projects root.

    Args:
        file_system: File system to read from
        skip_prefixes: Project directory name prefixes to ignore
        skip_substrings: Project directory name fragments to ignore
    """

    def __init__(
        self,
        file_system: Optional[FileSystem] = None,
        skip_prefixes: Sequence[str] = DEFAULT_SKIP_PREFIXES,
        skip_substrings: Sequence[str] = DEFAULT_SKIP_SUBSTRINGS,
    ):
        self.file_system = file_system or LocalFileSystem()
        self.skip_prefixes = tuple(skip_prefixes)
        self.skip_substrings = tuple(skip_substrings)

    def should_skip(self, dir_name: str) -> bool:
        """True for project directories that do not hold Claude Code usage."""
        return (
            any(dir_name.startswith(prefix) for prefix in self.skip_prefixes)
            or any(fragment in dir_name for fragment in self.skip_substrings)
        )

    def scan(
        self,
        projects_root: Path,
        errors: Optional[ErrorAggregator] = None,
    ) -> List[FileTask]:
        """List log files sorted ascending by earliest timestamp.

        A missing root yields an empty list. Files with no timestamp cannot
        be ordered and are left out.

        Args:
            projects_root: The ``projects`` directory
            errors: Optional aggregator for skipped-file diagnostics

        Returns:
            File tasks in processing order

        Raises:
            PermissionDenied: If the root exists but cannot be listed
            FileReadFailed: If listing the root fails for another reason
        """
        projects_root = Path(projects_root)
        if not self.file_system.exists(projects_root):
            logger.info("Projects directory %s does not exist", projects_root)
            if errors is not None:
                errors.record(DirectoryNotFound(str(projects_root)))
            return []

        try:
            project_dirs = self.file_system.list_dir(projects_root)
        except OSError as e:
            raise as_repository_error(projects_root, e) from e

        tasks: List[FileTask] = []
        for project_dir in project_dirs:
            if self.should_skip(project_dir):
                logger.debug("Skipping directory %s", project_dir)
                continue
            project_path = projects_root / project_dir
            if not self.file_system.is_dir(project_path):
                continue
            tasks.extend(self._scan_project(project_path, project_dir, errors))

        # Stable sort keeps listing order for equal timestamps
        tasks.sort(key=lambda task: task.earliest_timestamp)
        logger.info("Found %d log files under %s", len(tasks), projects_root)
        return tasks

    def _scan_project(
        self,
        project_path: Path,
        project_dir: str,
        errors: Optional[ErrorAggregator],
    ) -> List[FileTask]:
        try:
            names = self.file_system.list_dir(project_path)
        except OSError as e:
            logger.warning("Failed to read directory %s: %s", project_path, e)
            if errors is not None:
                errors.record(as_repository_error(project_path, e))
            return []

        tasks = []
        for name in names:
            if not name.endswith(LOG_SUFFIX):
                continue
            file_path = project_path / name
            if self.file_system.is_dir(file_path):
                continue
            try:
                content = self.file_system.read_text(file_path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Failed to read %s: %s", file_path, e)
                if errors is not None:
                    errors.record(as_repository_error(file_path, e))
                continue

            timestamp = earliest_timestamp(content)
            if timestamp is None:
                logger.debug("No timestamp in %s, skipping", file_path)
                continue
            tasks.append(FileTask(
                path=file_path,
                project_dir=project_dir,
                earliest_timestamp=timestamp,
            ))
        return tasks


def count_session_files(tasks: Iterable[FileTask]) -> int:
    """Number of distinct session log names (one log file per session)."""
    return len({task.session_name for task in tasks})


def count_distinct_session_ids(entries: Iterable[UsageEntry]) -> int:
    """Number of distinct non-null session ids across entries."""
    session_ids: Set[str] = {entry.session_id for entry in entries if entry.session_id}
    return len(session_ids)
