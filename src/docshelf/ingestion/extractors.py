"""Text extraction for supported document formats.

PDFs are read page by page with PyMuPDF (fitz), DOCX files with python-docx,
plain text files directly. Each extractor returns an ordered list of text
units; an empty list means nothing readable was found.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Iterator, List

import fitz  # PyMuPDF
from docx import Document

from docshelf.utils.text import normalize_whitespace

LOGGER = logging.getLogger(__name__)


def iter_pdf_pages(path: Path) -> Iterator[str]:
    """Yield normalised text of each non-empty PDF page."""
    doc = fitz.open(path)
    try:
        for index in range(len(doc)):
            text = doc[index].get_text() or ""
            normalized = normalize_whitespace(text.splitlines())
            if normalized:
                yield normalized + "\n"
            else:
                LOGGER.debug("Page %s of %s has no extractable text", index, path)
    finally:
        doc.close()


def extract_pdf(path: Path) -> List[str]:
    return list(iter_pdf_pages(path))


def extract_docx(path: Path) -> List[str]:
    """Extract paragraphs and table rows as a single text unit."""
    doc = Document(str(path))
    parts = [paragraph.text.strip() for paragraph in doc.paragraphs if paragraph.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))
    text = "\n".join(parts)
    return [text] if text else []


def extract_txt(path: Path) -> List[str]:
    text = Path(path).read_text(encoding="utf-8", errors="replace")
    return [text] if text.strip() else []


EXTRACTORS: Dict[str, Callable[[Path], List[str]]] = {
    ".pdf": extract_pdf,
    ".docx": extract_docx,
    ".txt": extract_txt,
}


def extract_text_units(path: Path) -> List[str]:
    """Dispatch on file extension; raises ValueError for unsupported types."""
    path = Path(path)
    extractor = EXTRACTORS.get(path.suffix.lower())
    if extractor is None:
        raise ValueError(f"Unsupported file type: {path.suffix}")
    LOGGER.debug("Extracting %s with %s", path.name, extractor.__name__)
    return extractor(path)
