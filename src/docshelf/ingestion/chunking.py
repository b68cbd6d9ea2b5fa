"""Token-window chunking with overlap and size bounds."""

from __future__ import annotations

import itertools
import logging
import re
from typing import Iterable, Iterator, List, Protocol, Sequence

import tiktoken

from docshelf.config import validate_chunking
from docshelf.models import Chunk, ChunkMetadata, TextUnit

LOGGER = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\S+\s*|\s+")


class Tokenizer(Protocol):
    def encode(self, text: str) -> Sequence: ...

    def decode(self, tokens: Sequence) -> str: ...


class TiktokenTokenizer:
    """BPE tokenizer backed by a tiktoken encoding."""

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        self.encoding_name = encoding_name
        self._encoding = tiktoken.get_encoding(encoding_name)

    def encode(self, text: str) -> List[int]:
        return self._encoding.encode(text, disallowed_special=())

    def decode(self, tokens: Sequence[int]) -> str:
        # A window may start or end inside a multi-byte character; drop those partial bytes.
        return self._encoding.decode_bytes(list(tokens)).decode("utf-8", errors="ignore")


class WordTokenizer:
    """Lossless word tokenizer: each token is a word plus its trailing whitespace."""

    def encode(self, text: str) -> List[str]:
        return _WORD_RE.findall(text)

    def decode(self, tokens: Sequence[str]) -> str:
        return "".join(tokens)


def get_tokenizer(name: str) -> Tokenizer:
    if name == "words":
        return WordTokenizer()
    return TiktokenTokenizer(name)


def _runs(units: Iterable[TextUnit]) -> Iterator[tuple[ChunkMetadata | None, str]]:
    """Concatenate consecutive units that share metadata."""
    for metadata, group in itertools.groupby(units, key=lambda unit: unit.metadata):
        yield metadata, "".join(unit.text for unit in group)


class ChunkSplitter:
    """Split text units into overlapping windows of ``chunk_size`` tokens.

    Each window after the first starts ``overlap`` tokens before the end of the
    previous one. Windows whose text is shorter than ``min_chunk_chars`` are
    dropped, and no more than ``max_chunks`` chunks are ever produced.
    """

    def __init__(
        self,
        *,
        chunk_size: int = 500,
        overlap: int = 100,
        min_chunk_chars: int = 5,
        max_chunks: int = 10000,
        tokenizer: Tokenizer | None = None,
    ) -> None:
        validate_chunking(chunk_size, overlap, min_chunk_chars, max_chunks)
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.min_chunk_chars = min_chunk_chars
        self.max_chunks = max_chunks
        self.tokenizer = tokenizer or TiktokenTokenizer()

    def iter_windows(self, text: str) -> Iterator[str]:
        tokens = self.tokenizer.encode(text)
        step = self.chunk_size - self.overlap
        start = 0
        while start < len(tokens):
            end = start + self.chunk_size
            yield self.tokenizer.decode(tokens[start:end])
            if end >= len(tokens):
                break
            start += step

    def split(self, units: Iterable[TextUnit]) -> List[Chunk]:
        chunks: List[Chunk] = []
        for metadata, text in _runs(units):
            if metadata is None:
                raise ValueError("Text units must carry metadata before chunking")
            for window in self.iter_windows(text):
                if len(window.strip()) < self.min_chunk_chars:
                    LOGGER.debug("Dropping %s-char fragment from %s", len(window), metadata.source_file)
                    continue
                if len(chunks) >= self.max_chunks:
                    LOGGER.debug(
                        "Reached max_chunks=%s for %s, truncating", self.max_chunks, metadata.source_file
                    )
                    return chunks
                chunks.append(Chunk(text=window, index=len(chunks), metadata=metadata))
        return chunks
