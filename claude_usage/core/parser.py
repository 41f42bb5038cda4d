"""
JSON-Lines usage record parsing.

Turns one line of a Claude Code session log into a UsageEntry.
"""

import json
import logging
from typing import Any, Dict, Optional

from . import path_codec
from .deduplication import DeduplicationStrategy, make_dedup_key
from .errors import CorruptedData, ErrorAggregator, ParsingFailed
from .pricing import DEFAULT_PRICING_TABLE, PricingTable, calculate_cost
from .token_counter import TokenCounts
from ..storage.models import UsageEntry

logger = logging.getLogger(__name__)

UNKNOWN_MODEL = "unknown"


def parse_line(
    raw_line: str,
    project_dir_name: str,
    dedup: DeduplicationStrategy,
    pricing: PricingTable = DEFAULT_PRICING_TABLE,
    errors: Optional[ErrorAggregator] = None,
    source: str = "",
    line_number: Optional[int] = None,
) -> Optional[UsageEntry]:
    """Parse one log line into a usage entry.

    Never raises for problems with the line itself. Blank lines, malformed
    JSON, non-usage messages, duplicates and records with no tokens all
    yield None. Malformed lines are reported to ``errors`` when given.

    Args:
        raw_line: One line of a ``.jsonl`` log
        project_dir_name: Encoded project directory the log lives in
        dedup: Deduplication state for the current run
        pricing: Rate cards used when the record carries no cost
        errors: Optional aggregator for skipped-line diagnostics
        source: File path, for diagnostics only
        line_number: 1-based line number, for diagnostics only

    Returns:
        UsageEntry, or None if the line carries no new billable usage
    """
    line = raw_line.strip()
    if not line:
        return None

    try:
        record = json.loads(line)
    except ValueError as e:
        logger.debug("Skipping malformed line %s:%s: %s", source, line_number, e)
        if errors is not None:
            errors.record(ParsingFailed(source, str(e), line_number))
        return None

    if not isinstance(record, dict):
        if errors is not None:
            errors.record(CorruptedData(source, f"expected object, got {type(record).__name__}"))
        return None

    message = record.get("message")
    if not isinstance(message, dict):
        return None
    usage = message.get("usage")
    if not isinstance(usage, dict):
        return None

    key = make_dedup_key(_as_str(message.get("id")), _as_str(record.get("requestId")))
    if not dedup.should_include(key):
        logger.debug("Skipping duplicate record %s", key)
        return None

    model = _as_str(message.get("model")) or UNKNOWN_MODEL
    tokens = TokenCounts.from_usage(usage)
    if not tokens.has_usage:
        return None

    return UsageEntry(
        project=path_codec.decode(project_dir_name),
        timestamp=_as_str(record.get("timestamp")) or "",
        model=model,
        input_tokens=tokens.input_tokens,
        output_tokens=tokens.output_tokens,
        cache_write_tokens=tokens.cache_write_tokens,
        cache_read_tokens=tokens.cache_read_tokens,
        cost=_entry_cost(record, model, tokens, pricing),
        session_id=_as_str(record.get("sessionId")),
    )


def _entry_cost(
    record: Dict[str, Any],
    model: str,
    tokens: TokenCounts,
    pricing: PricingTable,
) -> float:
    """Logged ``costUSD`` when positive, otherwise priced from the tokens."""
    logged = record.get("costUSD")
    if isinstance(logged, (int, float)) and not isinstance(logged, bool) and logged > 0:
        return float(logged)
    return calculate_cost(model, tokens, pricing)


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None
