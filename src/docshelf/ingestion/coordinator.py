"""Document ingestion pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from docshelf.catalogue import DocumentCatalogue
from docshelf.ingestion.chunking import ChunkSplitter
from docshelf.ingestion.extractors import extract_text_units
from docshelf.ingestion.topics import resolve_topic
from docshelf.models import (
    ChunkMetadata,
    DocumentRecord,
    Ingested,
    IngestResult,
    SkipReason,
    Skipped,
    TextExtractor,
    TextUnit,
    VectorIndex,
)
from docshelf.utils.files import is_supported_file, iter_files, write_upload

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ScanStats:
    ingested: int = 0
    skipped: int = 0
    failed: int = 0
    processed_files: list[Path] = field(default_factory=list)

    def record(self, result: IngestResult, path: Path) -> None:
        if isinstance(result, Ingested):
            self.ingested += 1
        elif result.reason is SkipReason.FAILED:
            self.failed += 1
        else:
            self.skipped += 1
        self.processed_files.append(path)


class DocumentIngestor:
    """Ingests files under the documents root into the vector index.

    ``ingest`` may be called concurrently from the watcher worker and request
    threads; the catalogue's reservation makes it idempotent per path.
    """

    def __init__(
        self,
        root: Path,
        index: VectorIndex,
        splitter: ChunkSplitter,
        catalogue: DocumentCatalogue,
        *,
        extractor: TextExtractor = extract_text_units,
    ) -> None:
        self.root = Path(root)
        self.index = index
        self.splitter = splitter
        self.catalogue = catalogue
        self.extractor = extractor

    def ingest(self, path: Path) -> IngestResult:
        """Ingest a single file, returning ``Ingested`` or ``Skipped(reason)``."""
        path = Path(path).absolute()

        if not self.catalogue.reserve(path):
            LOGGER.debug("Skipping already-ingested file: %s", path)
            return Skipped(SkipReason.DUPLICATE)

        try:
            result = self._ingest_reserved(path)
        except Exception as exc:
            LOGGER.error("Failed to ingest %s: %s", path, exc, exc_info=True)
            result = Skipped(SkipReason.FAILED)

        if isinstance(result, Skipped):
            self.catalogue.release(path)
        return result

    def _ingest_reserved(self, path: Path) -> IngestResult:
        if not is_supported_file(path):
            LOGGER.warning("Skipping unsupported file type: %s", path.name)
            return Skipped(SkipReason.UNSUPPORTED)

        size = path.stat().st_size
        LOGGER.info("Ingesting file: %s (size: %s bytes)", path, size)

        texts = [text for text in self.extractor(path) if text.strip()]
        if not texts:
            LOGGER.warning("No text extracted from %s. Skipping.", path.name)
            return Skipped(SkipReason.EMPTY)

        topic = resolve_topic(path, self.root)
        metadata = ChunkMetadata(topic=topic, source_file=path.name, source_path=str(path))
        units = [TextUnit(text=text, metadata=metadata) for text in texts]

        chunks = self.splitter.split(units)
        if not chunks:
            LOGGER.warning("No chunks produced for %s. Skipping.", path.name)
            return Skipped(SkipReason.EMPTY)
        LOGGER.info(
            "Split %s into %s chunks (chunk_size=%s, overlap=%s)",
            path.name,
            len(chunks),
            self.splitter.chunk_size,
            self.splitter.overlap,
        )

        self.index.add(chunks)
        record = DocumentRecord(file_name=path.name, topic=topic, path=str(path), size=size)
        self.catalogue.commit(record)
        LOGGER.info("Stored %s chunks for %s [topic=%s]", len(chunks), path.name, topic)
        return Ingested(record)

    def ingest_all(self) -> ScanStats:
        """Ingest every file under the root; one bad file never stops the scan."""
        stats = ScanStats()
        if not self.root.exists():
            LOGGER.warning("Documents path %s does not exist. Creating it now.", self.root)
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                LOGGER.error("Could not create documents path %s: %s", self.root, exc)
            return stats

        LOGGER.info("Scanning documents root: %s", self.root)
        for path in iter_files(self.root):
            stats.record(self.ingest(path), path)

        LOGGER.info(
            "Scan finished: %s ingested, %s skipped, %s failed (%s documents in catalogue)",
            stats.ingested,
            stats.skipped,
            stats.failed,
            len(self.catalogue),
        )
        return stats

    def store_upload(self, topic: str | None, filename: str, data: bytes) -> IngestResult:
        """Save an uploaded file under root/<topic>/ (or root for no topic) and ingest it."""
        target = write_upload(self.root, topic, filename, data)
        LOGGER.info("Saved uploaded file to %s", target)
        return self.ingest(target)
