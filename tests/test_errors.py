"""
Unit tests for the error taxonomy, aggregation and retry helper.
"""

import pytest

from claude_usage.core.errors import (
    CorruptedData,
    DirectoryNotFound,
    ErrorAggregator,
    FileReadFailed,
    InvalidPath,
    ParsingFailed,
    PermissionDenied,
    QuotaExceeded,
    Timeout,
    UsageRepositoryError,
    retry_with_backoff,
)


class TestErrorTypes:
    """Test error messages and recovery metadata."""

    def test_quota_message(self):
        error = QuotaExceeded(limit=10, attempted=12)
        assert str(error) == "Quota exceeded: attempted to process 12 items (limit: 10)"

    def test_parsing_failed_with_line(self):
        error = ParsingFailed("/tmp/a.jsonl", "Expecting value", line=4)
        assert "at line 4" in str(error)
        assert error.kind == "ParsingFailed"

    def test_recoverability(self):
        assert not InvalidPath("").is_recoverable
        assert not DirectoryNotFound("/x").is_recoverable
        assert not PermissionDenied("/x").is_recoverable
        assert FileReadFailed("/x", "boom").is_recoverable
        assert CorruptedData("/x", "bad").is_recoverable

    def test_timeout_retry_delay(self):
        error = Timeout("scan", 1.5)
        assert error.suggested_retry_delay == 5.0
        assert "1.50 seconds" in str(error)

    def test_all_have_recovery_suggestion(self):
        for error in (InvalidPath(""), FileReadFailed("/x", "r"), QuotaExceeded(1, 2)):
            assert isinstance(error, UsageRepositoryError)
            assert error.recovery_suggestion


class TestErrorAggregator:
    """Test bounded error collection."""

    def test_empty_summary(self):
        aggregator = ErrorAggregator()
        assert not aggregator.has_errors()
        assert aggregator.summary() == "No errors recorded"

    def test_summary_grouped_by_kind(self):
        aggregator = ErrorAggregator()
        aggregator.record(ParsingFailed("/a", "x"))
        aggregator.record(ParsingFailed("/b", "y"))
        aggregator.record(DirectoryNotFound("/c"))

        assert aggregator.counts() == {"ParsingFailed": 2, "DirectoryNotFound": 1}
        assert aggregator.summary() == (
            "Error Summary (3 total):\n"
            "  DirectoryNotFound: 1 occurrences\n"
            "  ParsingFailed: 2 occurrences"
        )

    def test_oldest_dropped_at_capacity(self):
        aggregator = ErrorAggregator(max_errors=2)
        for path in ("/a", "/b", "/c"):
            aggregator.record(FileReadFailed(path, "r"))

        assert len(aggregator) == 2
        assert [e.path for e in aggregator.errors] == ["/b", "/c"]

    def test_clear(self):
        aggregator = ErrorAggregator()
        aggregator.record(DirectoryNotFound("/c"))
        aggregator.clear()
        assert len(aggregator) == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ErrorAggregator(max_errors=0)


class TestRetryWithBackoff:
    """Test retry behaviour with an injected sleep."""

    def test_success_first_try(self):
        delays = []
        assert retry_with_backoff(lambda: 42, sleep=delays.append) == 42
        assert delays == []

    def test_recoverable_error_retried(self):
        attempts = []
        delays = []

        def operation():
            attempts.append(1)
            if len(attempts) < 3:
                raise FileReadFailed("/x", "busy")
            return "ok"

        result = retry_with_backoff(operation, max_attempts=3, initial_delay=0.5, sleep=delays.append)

        assert result == "ok"
        assert delays == [0.5, 1.0]

    def test_last_error_reraised(self):
        delays = []

        def operation():
            raise CorruptedData("/x", "bad")

        with pytest.raises(CorruptedData):
            retry_with_backoff(operation, max_attempts=2, sleep=delays.append)
        assert delays == [1.0]

    def test_non_recoverable_not_retried(self):
        delays = []

        def operation():
            raise PermissionDenied("/x")

        with pytest.raises(PermissionDenied):
            retry_with_backoff(operation, sleep=delays.append)
        assert delays == []

    def test_foreign_exception_propagates(self):
        def operation():
            raise KeyError("x")

        with pytest.raises(KeyError):
            retry_with_backoff(operation, sleep=lambda _: None)

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            retry_with_backoff(lambda: 1, max_attempts=0)
