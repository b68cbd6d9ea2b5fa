"""Core docshelf data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

GENERAL_TOPIC = "general"


@dataclass(frozen=True, slots=True)
class ChunkMetadata:
    """Metadata attached to every chunk derived from one source file."""

    topic: str
    source_file: str
    source_path: str


@dataclass(frozen=True, slots=True)
class TextUnit:
    """Unit of extracted text (a page, or a whole document) before chunking."""

    text: str
    metadata: Optional[ChunkMetadata] = None


@dataclass(frozen=True, slots=True)
class Chunk:
    """Window of document text, the unit stored and retrieved by the index."""

    text: str
    index: int
    metadata: ChunkMetadata


@dataclass(frozen=True, slots=True)
class SearchHit:
    chunk: Chunk
    score: float


@dataclass(frozen=True, slots=True)
class DocumentRecord:
    """Catalogue entry for a successfully ingested file."""

    file_name: str
    topic: str
    path: str
    size: int


class SkipReason(str, Enum):
    DUPLICATE = "duplicate"
    UNSUPPORTED = "unsupported"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class Ingested:
    record: DocumentRecord


@dataclass(frozen=True, slots=True)
class Skipped:
    reason: SkipReason


IngestResult = Union[Ingested, Skipped]


@dataclass(slots=True)
class Answer:
    """Result of a retrieval-augmented query."""

    answer: str
    sources: List[str] = field(default_factory=list)
    topic_filter: Optional[str] = None


class VectorIndex(Protocol):
    """Stores chunks and runs similarity search; embeds internally."""

    def add(self, chunks: Sequence[Chunk]) -> None: ...

    def search(
        self, query: str, *, top_k: int, topic: Optional[str] = None
    ) -> List[SearchHit]: ...


class AnswerGenerator(Protocol):
    def generate(self, system_prompt: str, user_message: str) -> str: ...


class TextExtractor(Protocol):
    def __call__(self, path: Path) -> List[str]: ...
