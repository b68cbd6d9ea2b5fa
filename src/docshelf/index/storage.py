"""SQLite-backed vector index for document chunks."""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import numpy as np

from docshelf.embedding.encoder import EmbeddingModel
from docshelf.models import Chunk, ChunkMetadata, SearchHit

LOGGER = logging.getLogger(__name__)


class SQLiteVectorIndex:
    """Persistence and similarity search for chunk embeddings.

    The connection is shared between the ingestion worker and request
    threads, so every statement runs under ``self._lock``.
    """

    def __init__(self, db_path: Path, embedder: EmbeddingModel) -> None:
        self.db_path = Path(db_path)
        self.embedder = embedder
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL;")
        self._conn.execute("PRAGMA synchronous=NORMAL;")
        self._ensure_schema()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _ensure_schema(self) -> None:
        with self.transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS chunks (
                    id INTEGER PRIMARY KEY,
                    source_path TEXT NOT NULL,
                    source_file TEXT NOT NULL,
                    topic TEXT NOT NULL,
                    chunk_index INTEGER NOT NULL,
                    text TEXT NOT NULL,
                    embedding BLOB NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_chunks_topic ON chunks(topic)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_chunks_source ON chunks(source_path)")

    def add(self, chunks: Sequence[Chunk]) -> None:
        """Embed and store chunks, replacing earlier chunks of the same sources."""
        if not chunks:
            return
        embeddings = self.embedder.embed([chunk.text for chunk in chunks])
        if embeddings.shape[0] != len(chunks):
            raise ValueError("Embeddings and chunks length mismatch")

        sources = {chunk.metadata.source_path for chunk in chunks}
        with self.transaction() as conn:
            for source in sources:
                conn.execute("DELETE FROM chunks WHERE source_path = ?", (source,))
            for chunk, vector in zip(chunks, embeddings):
                conn.execute(
                    """
                    INSERT INTO chunks(source_path, source_file, topic, chunk_index, text, embedding)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        chunk.metadata.source_path,
                        chunk.metadata.source_file,
                        chunk.metadata.topic,
                        chunk.index,
                        chunk.text,
                        sqlite3.Binary(np.asarray(vector, dtype="float32").tobytes()),
                    ),
                )
        LOGGER.debug("Stored %s chunks from %s source(s)", len(chunks), len(sources))

    def search(
        self, query: str, *, top_k: int = 5, topic: Optional[str] = None
    ) -> List[SearchHit]:
        """Return the top_k chunks most similar to query, best first."""
        sql = "SELECT source_path, source_file, topic, chunk_index, text, embedding FROM chunks"
        params: tuple = ()
        if topic is not None:
            sql += " WHERE topic = ?"
            params = (topic,)
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()

        if not rows or top_k <= 0:
            return []

        query_vector = np.asarray(self.embedder.embed_query(query), dtype="float32")
        embeddings = np.vstack([np.frombuffer(row["embedding"], dtype="float32") for row in rows])
        scores = embeddings @ query_vector

        if top_k < len(scores):
            top_indices = np.argpartition(scores, -top_k)[-top_k:]
            top_indices = top_indices[np.argsort(scores[top_indices])[::-1]]
        else:
            top_indices = np.argsort(scores)[::-1]

        hits: List[SearchHit] = []
        for idx in top_indices:
            row = rows[idx]
            chunk = Chunk(
                text=row["text"],
                index=row["chunk_index"],
                metadata=ChunkMetadata(
                    topic=row["topic"],
                    source_file=row["source_file"],
                    source_path=row["source_path"],
                ),
            )
            hits.append(SearchHit(chunk=chunk, score=float(scores[idx])))
        return hits

    def count(self) -> int:
        with self._lock:
            return int(self._conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0])
