"""Application configuration defaults."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from docshelf.embedding.encoder import DEFAULT_MODEL


def validate_chunking(chunk_size: int, overlap: int, min_chunk_chars: int, max_chunks: int) -> None:
    """Reject chunking settings that cannot produce well-formed windows."""
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError(
            f"chunk overlap must satisfy 0 <= overlap < chunk_size, got overlap={overlap} "
            f"with chunk_size={chunk_size}"
        )
    if min_chunk_chars < 0:
        raise ValueError(f"min_chunk_chars must not be negative, got {min_chunk_chars}")
    if max_chunks <= 0:
        raise ValueError(f"max_chunks must be positive, got {max_chunks}")


@dataclass(slots=True)
class AppConfig:
    documents_path: Path = Path("documents")
    db_path: Path = Path("data/docshelf.db")
    model_name: str = DEFAULT_MODEL
    tokenizer: str = "cl100k_base"
    chunk_size: int = 500
    chunk_overlap: int = 100
    min_chunk_chars: int = 5
    max_chunks: int = 10000
    top_k: int = 5
    debounce_seconds: float = 0.5
    llm_base_url: str = "http://localhost:11434"
    llm_model: str = "llama3.2"
    llm_timeout: float = 120.0

    def __post_init__(self) -> None:
        self.documents_path = Path(self.documents_path)
        self.db_path = Path(self.db_path)
        validate_chunking(self.chunk_size, self.chunk_overlap, self.min_chunk_chars, self.max_chunks)
        if self.top_k <= 0:
            raise ValueError(f"top_k must be positive, got {self.top_k}")
        if self.debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must not be negative, got {self.debounce_seconds}")

    @staticmethod
    def resolve_path(path: Path, base_dir: Path | None = None) -> Path:
        if Path(path).is_absolute() or base_dir is None:
            return Path(path)
        return base_dir / path

    def resolve_documents_path(self, base_dir: Path | None = None) -> Path:
        return self.resolve_path(self.documents_path, base_dir)

    def resolve_db_path(self, base_dir: Path | None = None) -> Path:
        return self.resolve_path(self.db_path, base_dir)
