"""
Core modules for Claude Usage.

This package contains the ingestion pipeline: path decoding, pricing,
deduplication, record parsing, file scanning and statistics aggregation.
"""
