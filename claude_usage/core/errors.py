"""
Error types for usage ingestion.

Per-line and per-file failures are recorded and skipped; only failures
at the projects root reach the caller as exceptions.
"""

import logging
import time
from collections import Counter, deque
from typing import Callable, Deque, Dict, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UsageRepositoryError(Exception):
    """Base class for ingestion and query errors."""

    recovery_suggestion: str = ""
    is_recoverable: bool = True
    suggested_retry_delay: Optional[float] = None

    @property
    def kind(self) -> str:
        """Error kind name used for grouping."""
        return type(self).__name__


class InvalidPath(UsageRepositoryError):
    """Base path is empty or unusable."""

    recovery_suggestion = "Ensure Claude Code is installed and has been used at least once."
    is_recoverable = False

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Invalid path: '{path}'")


class DirectoryNotFound(UsageRepositoryError):
    """Projects root does not exist."""

    recovery_suggestion = "Ensure Claude Code is installed and has been used at least once."
    is_recoverable = False

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Directory not found: '{path}'")


class FileReadFailed(UsageRepositoryError):
    """A file or directory could not be read."""

    recovery_suggestion = "Check file permissions on the Claude Code data directory."

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read '{path}': {reason}")


class ParsingFailed(UsageRepositoryError):
    """A line is not valid JSON."""

    recovery_suggestion = "The log file may be corrupted; the line was skipped."

    def __init__(self, path: str, reason: str, line: Optional[int] = None):
        self.path = path
        self.line = line
        self.reason = reason
        if line is None:
            message = f"Failed to parse '{path}': {reason}"
        else:
            message = f"Failed to parse '{path}' at line {line}: {reason}"
        super().__init__(message)


class DecodingFailed(UsageRepositoryError):
    """A file's bytes could not be decoded as text."""

    recovery_suggestion = "The log file may be corrupted; the file was skipped."

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to decode '{path}': {reason}")


class PermissionDenied(UsageRepositoryError):
    """Access to a path was refused."""

    recovery_suggestion = "Grant read access to the Claude Code data directory."
    is_recoverable = False

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Permission denied accessing '{path}'")


class QuotaExceeded(UsageRepositoryError):
    """More files than the configured limit."""

    recovery_suggestion = "Raise max_files or process a smaller directory tree."
    suggested_retry_delay = 0.0

    def __init__(self, limit: int, attempted: int):
        self.limit = limit
        self.attempted = attempted
        super().__init__(f"Quota exceeded: attempted to process {attempted} items (limit: {limit})")


class CorruptedData(UsageRepositoryError):
    """A line parsed as JSON but is not a record object."""

    recovery_suggestion = "The log file may be corrupted; the line was skipped."

    def __init__(self, path: str, details: str):
        self.path = path
        self.details = details
        super().__init__(f"Corrupted data in '{path}': {details}")


class Timeout(UsageRepositoryError):
    """An operation did not finish in time."""

    recovery_suggestion = "Try processing fewer items or check system resources."
    suggested_retry_delay = 5.0

    def __init__(self, operation: str, duration: float):
        self.operation = operation
        self.duration = duration
        super().__init__(f"Operation '{operation}' timed out after {duration:.2f} seconds")


class ErrorAggregator:
    """Collects errors across a multi-file run without interrupting it.

    Keeps at most ``max_errors`` entries, dropping the oldest.
    """

    def __init__(self, max_errors: int = 100):
        if max_errors <= 0:
            raise ValueError("max_errors must be > 0")
        self.max_errors = max_errors
        self._errors: Deque[UsageRepositoryError] = deque(maxlen=max_errors)

    def record(self, error: UsageRepositoryError) -> None:
        self._errors.append(error)

    @property
    def errors(self) -> List[UsageRepositoryError]:
        return list(self._errors)

    def has_errors(self) -> bool:
        return bool(self._errors)

    def clear(self) -> None:
        self._errors.clear()

    def counts(self) -> Dict[str, int]:
        """Number of recorded errors per kind."""
        return dict(Counter(error.kind for error in self._errors))

    def summary(self) -> str:
        """Human-readable summary grouped by error kind."""
        if not self._errors:
            return "No errors recorded"
        lines = [f"Error Summary ({len(self._errors)} total):"]
        for kind, count in sorted(self.counts().items()):
            lines.append(f"  {kind}: {count} occurrences")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._errors)


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run an operation, retrying recoverable errors with exponential backoff.

    Non-recoverable errors and exceptions outside the taxonomy propagate
    immediately. When every attempt fails the last error is re-raised.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Total number of attempts
        initial_delay: Delay before the second attempt, doubled each time
        sleep: Sleep function, injectable for tests

    Returns:
        The operation's result
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    for attempt in range(max_attempts):
        try:
            return operation()
        except UsageRepositoryError as e:
            if not e.is_recoverable or attempt == max_attempts - 1:
                raise
            delay = initial_delay * (2 ** attempt)
            logger.warning("Attempt %d/%d failed (%s), retrying in %.1fs",
                           attempt + 1, max_attempts, e, delay)
            sleep(delay)
