"""Shared fakes and fixtures."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from docshelf.catalogue import DocumentCatalogue
from docshelf.ingestion.chunking import ChunkSplitter, WordTokenizer
from docshelf.ingestion.coordinator import DocumentIngestor
from docshelf.models import Chunk, SearchHit


class FakeIndex:
    """In-memory vector index returning chunks in insertion order."""

    def __init__(self) -> None:
        self.chunks: List[Chunk] = []
        self.add_calls = 0
        self.searches: list[dict] = []
        self.error: Optional[Exception] = None
        self.search_error: Optional[Exception] = None
        self.closed = False
        self._lock = threading.Lock()

    def add(self, chunks: Sequence[Chunk]) -> None:
        if self.error is not None:
            raise self.error
        with self._lock:
            self.add_calls += 1
            self.chunks.extend(chunks)

    def search(self, query: str, *, top_k: int, topic: Optional[str] = None) -> List[SearchHit]:
        self.searches.append({"query": query, "top_k": top_k, "topic": topic})
        if self.search_error is not None:
            raise self.search_error
        matching = [c for c in self.chunks if topic is None or c.metadata.topic == topic]
        return [
            SearchHit(chunk=chunk, score=1.0 - position * 0.1)
            for position, chunk in enumerate(matching[:top_k])
        ]

    def close(self) -> None:
        self.closed = True


class FakeGenerator:
    def __init__(self, reply: str = "Generated answer", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def generate(self, system_prompt: str, user_message: str) -> str:
        self.calls.append((system_prompt, user_message))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_index() -> FakeIndex:
    return FakeIndex()


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def docs_root(tmp_path: Path) -> Path:
    root = tmp_path / "documents"
    root.mkdir()
    return root


@pytest.fixture
def splitter() -> ChunkSplitter:
    return ChunkSplitter(
        chunk_size=50, overlap=10, min_chunk_chars=5, max_chunks=100, tokenizer=WordTokenizer()
    )


@pytest.fixture
def catalogue() -> DocumentCatalogue:
    return DocumentCatalogue()


@pytest.fixture
def ingestor(
    docs_root: Path, fake_index: FakeIndex, splitter: ChunkSplitter, catalogue: DocumentCatalogue
) -> DocumentIngestor:
    return DocumentIngestor(docs_root, fake_index, splitter, catalogue)
