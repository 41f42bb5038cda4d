"""
Unit tests for JSONL record parsing.

Tests the skip rules, deduplication, cost selection and error reporting.
"""

import json

import pytest

from claude_usage.core.deduplication import HashBasedDeduplication, NoDeduplication
from claude_usage.core.errors import CorruptedData, ErrorAggregator, ParsingFailed
from claude_usage.core.parser import UNKNOWN_MODEL, parse_line

PROJECT_DIR = "-Users-liang-Downloads-Data"


@pytest.fixture
def dedup():
    return HashBasedDeduplication()


@pytest.fixture
def errors():
    return ErrorAggregator()


def _line(record) -> str:
    return json.dumps(record)


class TestSkippedLines:
    """Lines that yield no entry."""

    def test_blank_line(self, dedup):
        assert parse_line("", PROJECT_DIR, dedup) is None
        assert parse_line("   \t", PROJECT_DIR, dedup) is None

    def test_malformed_json(self, dedup, errors):
        """Malformed lines are skipped and reported."""
        entry = parse_line("{not json", PROJECT_DIR, dedup, errors=errors,
                           source="a.jsonl", line_number=3)
        assert entry is None
        assert len(errors) == 1
        error = errors.errors[0]
        assert isinstance(error, ParsingFailed)
        assert error.line == 3
        assert error.path == "a.jsonl"

    def test_malformed_json_without_aggregator(self, dedup):
        assert parse_line("{not json", PROJECT_DIR, dedup) is None

    def test_non_object_json(self, dedup, errors):
        assert parse_line("[1, 2, 3]", PROJECT_DIR, dedup, errors=errors) is None
        assert isinstance(errors.errors[0], CorruptedData)

    def test_no_message(self, dedup):
        line = _line({"type": "user", "timestamp": "2025-08-01T00:00:00Z"})
        assert parse_line(line, PROJECT_DIR, dedup) is None

    def test_message_without_usage(self, dedup, record):
        data = record()
        del data["message"]["usage"]
        assert parse_line(_line(data), PROJECT_DIR, dedup) is None

    def test_zero_tokens(self, dedup, record):
        """Records with no tokens of any kind are not billable."""
        data = record(input_tokens=0, output_tokens=0)
        assert parse_line(_line(data), PROJECT_DIR, dedup) is None

    def test_duplicate(self, dedup, record):
        """Only the first record with a message/request pair is kept."""
        line = _line(record(message_id="m1", request_id="r1"))
        assert parse_line(line, PROJECT_DIR, dedup) is not None
        assert parse_line(line, PROJECT_DIR, dedup) is None

    def test_zero_token_record_still_claims_key(self, dedup, record):
        """Deduplication runs before the zero-token check."""
        empty = record(message_id="m1", request_id="r1", input_tokens=0, output_tokens=0)
        assert parse_line(_line(empty), PROJECT_DIR, dedup) is None
        full = record(message_id="m1", request_id="r1")
        assert parse_line(_line(full), PROJECT_DIR, dedup) is None


class TestParsedEntries:
    """Lines that yield an entry."""

    def test_basic_entry(self, dedup, record):
        data = record(
            model="claude-sonnet-4-5-20250929",
            timestamp="2025-08-06T10:00:00.123Z",
            input_tokens=100,
            output_tokens=50,
            cache_write_tokens=20,
            cache_read_tokens=10,
            session_id="abc",
        )
        entry = parse_line(_line(data), PROJECT_DIR, dedup)

        assert entry.project == "/Users/liang/Downloads/Data"
        assert entry.timestamp == "2025-08-06T10:00:00.123Z"
        assert entry.model == "claude-sonnet-4-5-20250929"
        assert entry.input_tokens == 100
        assert entry.output_tokens == 50
        assert entry.cache_write_tokens == 20
        assert entry.cache_read_tokens == 10
        assert entry.total_tokens == 180
        assert entry.session_id == "abc"

    def test_surrounding_whitespace(self, dedup, record):
        assert parse_line("  " + _line(record()) + "\n", PROJECT_DIR, dedup) is not None

    def test_missing_ids_always_kept(self, dedup, record):
        """Records without identity bypass deduplication."""
        line = _line(record(message_id=None, request_id=None))
        assert parse_line(line, PROJECT_DIR, dedup) is not None
        assert parse_line(line, PROJECT_DIR, dedup) is not None

    def test_missing_model(self, dedup, record):
        data = record()
        del data["message"]["model"]
        entry = parse_line(_line(data), PROJECT_DIR, dedup)
        assert entry.model == UNKNOWN_MODEL

    def test_missing_timestamp(self, dedup, record):
        entry = parse_line(_line(record(timestamp=None)), PROJECT_DIR, dedup)
        assert entry.timestamp == ""
        assert entry.date is None

    def test_missing_session_id(self, dedup, record):
        entry = parse_line(_line(record(session_id=None)), PROJECT_DIR, dedup)
        assert entry.session_id is None

    def test_fractional_count_kept(self, dedup, record):
        """A record whose only usage is a fractional count is not dropped."""
        data = record(input_tokens=0, output_tokens=0)
        data["message"]["usage"]["output_tokens"] = 1.5
        entry = parse_line(_line(data), PROJECT_DIR, dedup)
        assert entry is not None
        assert entry.output_tokens == 1

    def test_cache_only_record_kept(self, dedup, record):
        data = record(input_tokens=0, output_tokens=0, cache_read_tokens=500)
        entry = parse_line(_line(data), PROJECT_DIR, dedup)
        assert entry is not None
        assert entry.cost > 0


class TestEntryCost:
    """Logged cost versus priced cost."""

    def test_logged_cost_used(self, dedup, record):
        entry = parse_line(_line(record(cost=1.25)), PROJECT_DIR, dedup)
        assert entry.cost == 1.25

    def test_zero_logged_cost_falls_back_to_pricing(self, dedup, record):
        data = record(model="claude-opus-4-1", input_tokens=1_000_000, output_tokens=0, cost=0)
        entry = parse_line(_line(data), PROJECT_DIR, dedup)
        assert entry.cost == 5.0

    def test_priced_when_cost_absent(self, dedup, record):
        data = record(model="claude-3-5-haiku", input_tokens=0, output_tokens=1_000_000)
        entry = parse_line(_line(data), PROJECT_DIR, dedup)
        assert entry.cost == 4.0

    def test_non_numeric_cost_ignored(self, dedup, record):
        data = record(model="claude-opus-4", input_tokens=1_000_000, output_tokens=0)
        data["costUSD"] = "12.00"
        entry = parse_line(_line(data), PROJECT_DIR, dedup)
        assert entry.cost == 5.0

    def test_unknown_model_priced_as_sonnet(self, dedup, record):
        data = record(model="mystery", input_tokens=1_000_000, output_tokens=0)
        entry = parse_line(_line(data), PROJECT_DIR, dedup)
        assert entry.cost == 3.0


class TestNoDeduplication:
    """Parsing with deduplication disabled."""

    def test_duplicates_counted(self, record):
        dedup = NoDeduplication()
        line = _line(record())
        assert parse_line(line, PROJECT_DIR, dedup) is not None
        assert parse_line(line, PROJECT_DIR, dedup) is not None
