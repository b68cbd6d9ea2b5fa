"""Text helpers shared by extraction and retrieval."""

from __future__ import annotations

from typing import Iterable


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())


def truncate(text: str | None, max_len: int) -> str:
    """Cut text to max_len characters, marking the cut with an ellipsis."""
    if not text:
        return ""
    return text if len(text) <= max_len else text[:max_len] + "..."
