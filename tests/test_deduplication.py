"""
Unit tests for record deduplication.
"""

from claude_usage.core.deduplication import (
    HashBasedDeduplication,
    NoDeduplication,
    make_dedup_key,
)


class TestDedupKey:
    """Test composite key construction."""

    def test_both_parts(self):
        assert make_dedup_key("msg_1", "req_1") == "msg_1:req_1"

    def test_missing_message_id(self):
        assert make_dedup_key(None, "req_1") is None

    def test_missing_request_id(self):
        assert make_dedup_key("msg_1", None) is None

    def test_empty_parts(self):
        assert make_dedup_key("", "req_1") is None


class TestHashBasedDeduplication:
    """Test set-backed deduplication."""

    def test_first_occurrence_included(self):
        dedup = HashBasedDeduplication()
        assert dedup.should_include("msg_1:req_1")

    def test_repeat_excluded(self):
        """Test-and-set: only the first record with a key is counted."""
        dedup = HashBasedDeduplication()
        assert dedup.should_include("msg_1:req_1")
        assert not dedup.should_include("msg_1:req_1")
        assert not dedup.should_include("msg_1:req_1")

    def test_different_keys_included(self):
        dedup = HashBasedDeduplication()
        assert dedup.should_include("msg_1:req_1")
        assert dedup.should_include("msg_1:req_2")
        assert dedup.should_include("msg_2:req_1")
        assert len(dedup) == 3

    def test_missing_key_always_included(self):
        """Records without identity are never deduplicated."""
        dedup = HashBasedDeduplication()
        assert dedup.should_include(None)
        assert dedup.should_include(None)
        assert len(dedup) == 0

    def test_reset_forgets_keys(self):
        dedup = HashBasedDeduplication()
        dedup.should_include("msg_1:req_1")
        dedup.reset()
        assert len(dedup) == 0
        assert dedup.should_include("msg_1:req_1")


class TestNoDeduplication:
    """Test the pass-through strategy."""

    def test_always_includes(self):
        dedup = NoDeduplication()
        assert dedup.should_include("msg_1:req_1")
        assert dedup.should_include("msg_1:req_1")
        dedup.reset()
        assert dedup.should_include(None)
