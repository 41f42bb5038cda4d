"""
Shared fixtures for building on-disk Claude Code log trees.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


def usage_record(
    message_id: Optional[str] = "msg_1",
    request_id: Optional[str] = "req_1",
    model: str = "claude-sonnet-4-5-20250929",
    timestamp: Optional[str] = "2025-08-01T00:00:00Z",
    input_tokens: int = 100,
    output_tokens: int = 50,
    cache_write_tokens: int = 0,
    cache_read_tokens: int = 0,
    session_id: Optional[str] = "session-1",
    cost: Optional[float] = None,
) -> Dict[str, Any]:
    """Build one assistant-turn log record."""
    message: Dict[str, Any] = {
        "model": model,
        "usage": {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cache_creation_input_tokens": cache_write_tokens,
            "cache_read_input_tokens": cache_read_tokens,
        },
    }
    if message_id is not None:
        message["id"] = message_id

    record: Dict[str, Any] = {"type": "assistant", "message": message}
    if timestamp is not None:
        record["timestamp"] = timestamp
    if request_id is not None:
        record["requestId"] = request_id
    if session_id is not None:
        record["sessionId"] = session_id
    if cost is not None:
        record["costUSD"] = cost
    return record


@pytest.fixture
def record():
    """Factory for log records."""
    return usage_record


@pytest.fixture
def base_path(tmp_path: Path) -> Path:
    """A Claude data directory (``~/.claude`` stand-in)."""
    path = tmp_path / ".claude"
    path.mkdir()
    return path


@pytest.fixture
def projects_root(base_path: Path) -> Path:
    path = base_path / "projects"
    path.mkdir()
    return path


@pytest.fixture
def write_log(projects_root: Path):
    """Factory that writes records (or raw lines) as a session log."""

    def _write(project_dir: str, session: str, lines: List[Any]) -> Path:
        directory = projects_root / project_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{session}.jsonl"
        text = "\n".join(
            line if isinstance(line, str) else json.dumps(line) for line in lines
        )
        path.write_text(text + "\n", encoding="utf-8")
        return path

    return _write
