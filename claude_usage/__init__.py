"""
Claude Usage.

Ingests Claude Code session logs and aggregates cost and token statistics.
"""

__version__ = "0.1.0"
