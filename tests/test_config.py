"""Tests for application configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from docshelf.config import AppConfig, validate_chunking


class TestAppConfig:
    """Test AppConfig dataclass."""

    def test_default_config(self) -> None:
        """Should create config with default values."""
        config = AppConfig()

        assert config.documents_path == Path("documents")
        assert config.db_path == Path("data/docshelf.db")
        assert config.model_name == "sentence-transformers/all-MiniLM-L6-v2"
        assert config.chunk_size == 500
        assert config.chunk_overlap == 100
        assert config.min_chunk_chars == 5
        assert config.max_chunks == 10000
        assert config.top_k == 5
        assert config.llm_timeout == 120.0

    def test_string_paths_converted(self) -> None:
        config = AppConfig(documents_path="docs", db_path="idx.db")

        assert config.documents_path == Path("docs")
        assert config.db_path == Path("idx.db")

    def test_resolve_absolute_path(self) -> None:
        """Should return absolute path as-is."""
        config = AppConfig(db_path=Path("/absolute/path/db.db"))

        assert config.resolve_db_path(Path("/base")) == Path("/absolute/path/db.db")

    def test_resolve_relative_no_base(self) -> None:
        config = AppConfig(documents_path=Path("relative/docs"))

        assert config.resolve_documents_path() == Path("relative/docs")

    def test_resolve_relative_with_base(self) -> None:
        config = AppConfig(documents_path=Path("docs"))

        assert config.resolve_documents_path(Path("/srv/app")) == Path("/srv/app/docs")

    @pytest.mark.parametrize("top_k", [0, -1])
    def test_invalid_top_k(self, top_k: int) -> None:
        with pytest.raises(ValueError, match="top_k"):
            AppConfig(top_k=top_k)

    def test_negative_debounce(self) -> None:
        with pytest.raises(ValueError, match="debounce"):
            AppConfig(debounce_seconds=-1)


class TestValidateChunking:
    """Test chunking parameter validation."""

    def test_valid(self) -> None:
        validate_chunking(500, 100, 5, 10000)
        validate_chunking(1, 0, 0, 1)

    @pytest.mark.parametrize(
        "chunk_size, overlap, min_chars, max_chunks",
        [
            (0, 0, 5, 10),
            (100, 100, 5, 10),
            (100, 150, 5, 10),
            (100, -1, 5, 10),
            (100, 10, -1, 10),
            (100, 10, 5, 0),
        ],
    )
    def test_invalid(self, chunk_size: int, overlap: int, min_chars: int, max_chunks: int) -> None:
        with pytest.raises(ValueError):
            validate_chunking(chunk_size, overlap, min_chars, max_chunks)

    def test_config_rejects_overlap_equal_to_size(self) -> None:
        with pytest.raises(ValueError, match="overlap"):
            AppConfig(chunk_size=200, chunk_overlap=200)
