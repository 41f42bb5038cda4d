"""
Deduplication of usage records.

Claude Code may log the same assistant response more than once, within a
file or across files. A record's identity is its message id plus request id.
"""

from abc import ABC, abstractmethod
from typing import Optional, Set


def make_dedup_key(message_id: Optional[str], request_id: Optional[str]) -> Optional[str]:
    """Build the ``"<messageId>:<requestId>"`` key.

    Returns None when either part is missing; such records have no stable
    identity and are never deduplicated.
    """
    if not message_id or not request_id:
        return None
    return f"{message_id}:{request_id}"


class DeduplicationStrategy(ABC):
    """Decides whether a record has already been counted in this run."""

    @abstractmethod
    def should_include(self, key: Optional[str]) -> bool:
        """Return True if the record should be counted."""

    @abstractmethod
    def reset(self) -> None:
        """Forget every key seen so far."""


class HashBasedDeduplication(DeduplicationStrategy):
    """Set-backed deduplication scoped to one ingestion run.

    ``should_include`` tests and inserts in one step, so the first record
    with a given key wins and every later one is dropped.
    """

    def __init__(self):
        self._seen: Set[str] = set()

    def should_include(self, key: Optional[str]) -> bool:
        if key is None:
            return True
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def reset(self) -> None:
        self._seen = set()

    def __len__(self) -> int:
        return len(self._seen)


class NoDeduplication(DeduplicationStrategy):
    """Counts every record."""

    def should_include(self, key: Optional[str]) -> bool:
        return True

    def reset(self) -> None:
        pass
