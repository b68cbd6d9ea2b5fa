"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

SUPPORTED_EXTENSIONS = frozenset({".pdf", ".docx", ".txt"})


def is_supported_file(path: Path) -> bool:
    """Return True for extensions the extractors understand (case-insensitive)."""
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def iter_files(root: Path) -> Iterator[Path]:
    """Yield every regular file under root, recursively, in sorted order."""
    for item in sorted(Path(root).rglob("*")):
        if item.is_file():
            yield item


def safe_segment(name: str, *, what: str) -> str:
    """Validate a single path segment coming from user input."""
    cleaned = (name or "").strip().replace("\r", "").replace("\n", "")
    if not cleaned:
        raise ValueError(f"{what} must not be empty")
    if "\0" in cleaned:
        raise ValueError(f"Invalid {what}: contains null byte")
    if cleaned in {".", ".."} or "/" in cleaned or "\\" in cleaned:
        raise ValueError(f"Invalid {what}: {cleaned!r}")
    return cleaned


def write_upload(root: Path, topic: str | None, filename: str, data: bytes) -> Path:
    """Save uploaded bytes as root/<topic>/<filename>, creating the topic folder.

    A blank or missing topic saves the file directly under root, where it
    belongs to the general topic.
    """
    target_dir = Path(root)
    if topic and topic.strip():
        target_dir = target_dir / safe_segment(topic, what="topic")
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / safe_segment(filename, what="filename")
    target.write_bytes(data)
    return target
