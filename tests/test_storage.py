"""Tests for SQLiteVectorIndex."""

from __future__ import annotations

import sqlite3
import threading
from pathlib import Path

import numpy as np
import pytest

from docshelf.index.storage import SQLiteVectorIndex
from docshelf.models import Chunk, ChunkMetadata

VOCABULARY = ["tax", "holiday", "contract"]


class KeywordEmbedder:
    """Deterministic embedder: one dimension per vocabulary word."""

    dimension = len(VOCABULARY) + 1

    def embed(self, texts):
        rows = []
        for text in texts:
            lowered = text.lower()
            vector = np.array([lowered.count(word) for word in VOCABULARY] + [0.1], dtype="float32")
            rows.append(vector / np.linalg.norm(vector))
        return np.vstack(rows).astype("float32")

    def embed_query(self, text):
        return self.embed([text])[0]


def make_chunk(text: str, topic: str, source: str, index: int = 0) -> Chunk:
    return Chunk(
        text=text,
        index=index,
        metadata=ChunkMetadata(topic=topic, source_file=source, source_path=f"/docs/{topic}/{source}"),
    )


@pytest.fixture
def index(tmp_path: Path):
    store = SQLiteVectorIndex(tmp_path / "test.db", KeywordEmbedder())
    yield store
    store.close()


class TestSchema:
    """Test database setup."""

    def test_init_creates_database(self, tmp_path: Path) -> None:
        db_path = tmp_path / "new.db"
        store = SQLiteVectorIndex(db_path, KeywordEmbedder())

        assert db_path.exists()
        tables = {
            row[0] for row in store.connection.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert "chunks" in tables
        store.close()

    def test_wal_mode(self, index: SQLiteVectorIndex) -> None:
        assert index.connection.execute("PRAGMA journal_mode").fetchone()[0].lower() == "wal"

    def test_close(self, tmp_path: Path) -> None:
        store = SQLiteVectorIndex(tmp_path / "close.db", KeywordEmbedder())
        conn = store.connection
        store.close()

        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")


class TestAddAndSearch:
    """Test storing and querying chunks."""

    def test_search_empty_index(self, index: SQLiteVectorIndex) -> None:
        assert index.search("tax", top_k=5) == []

    def test_search_ranks_by_similarity(self, index: SQLiteVectorIndex) -> None:
        index.add(
            [
                make_chunk("holiday holiday", "hr", "policy.txt"),
                make_chunk("tax tax tax", "tax-law", "iva.pdf"),
                make_chunk("contract terms", "legal", "nda.docx"),
            ]
        )

        hits = index.search("tax question", top_k=2)

        assert len(hits) == 2
        assert hits[0].chunk.text == "tax tax tax"
        assert hits[0].chunk.metadata == ChunkMetadata("tax-law", "iva.pdf", "/docs/tax-law/iva.pdf")
        assert hits[0].score >= hits[1].score

    def test_topic_filter(self, index: SQLiteVectorIndex) -> None:
        index.add([make_chunk("tax rules", "tax-law", "iva.pdf"), make_chunk("tax on holidays", "hr", "policy.txt")])

        hits = index.search("tax", top_k=10, topic="hr")

        assert [hit.chunk.metadata.topic for hit in hits] == ["hr"]
        assert index.search("tax", top_k=10, topic="missing") == []

    def test_top_k_larger_than_rows(self, index: SQLiteVectorIndex) -> None:
        index.add([make_chunk("tax", "t", "a.txt"), make_chunk("holiday", "t", "b.txt")])

        assert len(index.search("tax", top_k=50)) == 2

    def test_readd_replaces_source_chunks(self, index: SQLiteVectorIndex) -> None:
        """Re-ingesting a file after restart does not duplicate its chunks."""
        index.add([make_chunk("tax v1", "t", "a.txt", 0), make_chunk("tax v1 more", "t", "a.txt", 1)])
        index.add([make_chunk("tax v2", "t", "a.txt", 0)])

        assert index.count() == 1
        assert index.search("tax", top_k=5)[0].chunk.text == "tax v2"

    def test_add_empty_is_noop(self, index: SQLiteVectorIndex) -> None:
        index.add([])
        assert index.count() == 0

    def test_embedding_mismatch(self, tmp_path: Path) -> None:
        class BrokenEmbedder(KeywordEmbedder):
            def embed(self, texts):
                return np.zeros((1, self.dimension), dtype="float32")

        store = SQLiteVectorIndex(tmp_path / "broken.db", BrokenEmbedder())
        with pytest.raises(ValueError):
            store.add([make_chunk("a", "t", "a.txt"), make_chunk("b", "t", "b.txt")])
        store.close()

    def test_concurrent_writers(self, index: SQLiteVectorIndex) -> None:
        """The shared connection can be used from several threads."""

        def write(n: int) -> None:
            index.add([make_chunk(f"tax {n}", "t", f"{n}.txt")])

        threads = [threading.Thread(target=write, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert index.count() == 8
