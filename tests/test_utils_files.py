"""Tests for file utility functions."""

from __future__ import annotations

from pathlib import Path

import pytest

from docshelf.utils.files import is_supported_file, iter_files, safe_segment, write_upload


class TestIsSupportedFile:
    @pytest.mark.parametrize("name", ["a.pdf", "b.docx", "c.txt", "D.PDF", "e.TxT"])
    def test_supported(self, name: str) -> None:
        assert is_supported_file(Path(name))

    @pytest.mark.parametrize("name", ["a.doc", "b.png", "README", "archive.pdf.zip"])
    def test_unsupported(self, name: str) -> None:
        assert not is_supported_file(Path(name))


class TestIterFiles:
    """Test iter_files function."""

    def test_recursive_sorted(self, tmp_path: Path) -> None:
        """Should find files at every depth, in sorted order."""
        (tmp_path / "b").mkdir()
        (tmp_path / "a" / "deep").mkdir(parents=True)
        (tmp_path / "b" / "2.txt").write_text("x")
        (tmp_path / "a" / "deep" / "1.pdf").write_text("x")
        (tmp_path / "root.docx").write_text("x")

        paths = list(iter_files(tmp_path))

        assert paths == [
            tmp_path / "a" / "deep" / "1.pdf",
            tmp_path / "b" / "2.txt",
            tmp_path / "root.docx",
        ]

    def test_empty_directory(self, tmp_path: Path) -> None:
        assert list(iter_files(tmp_path)) == []


class TestSafeSegment:
    """Test validation of user-supplied names."""

    def test_valid_name_is_trimmed(self) -> None:
        assert safe_segment("  tax-law ", what="topic") == "tax-law"

    @pytest.mark.parametrize("name", ["", "   ", ".", "..", "a/b", "a\\b", "bad\0name", None])
    def test_invalid_names(self, name) -> None:
        with pytest.raises(ValueError):
            safe_segment(name, what="topic")


class TestWriteUpload:
    def test_creates_topic_folder(self, tmp_path: Path) -> None:
        target = write_upload(tmp_path, "hr", "policy.txt", b"content")

        assert target == tmp_path / "hr" / "policy.txt"
        assert target.read_bytes() == b"content"

    def test_rejects_traversal(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            write_upload(tmp_path, "hr", "../escape.txt", b"content")
        assert not (tmp_path / "escape.txt").exists()
