"""Wiring of the ingestion and retrieval services for one process."""

from __future__ import annotations

import logging
import queue
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from docshelf.catalogue import DocumentCatalogue
from docshelf.config import AppConfig
from docshelf.ingestion.chunking import ChunkSplitter, get_tokenizer
from docshelf.ingestion.coordinator import DocumentIngestor, ScanStats
from docshelf.models import AnswerGenerator, VectorIndex
from docshelf.retrieval import RetrievalAssembler
from docshelf.watch.watcher import IngestionWorker, PathWatcher, WatcherError

LOGGER = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Services sharing one catalogue, index and documents root."""

    config: AppConfig
    root: Path
    index: VectorIndex
    catalogue: DocumentCatalogue
    ingestor: DocumentIngestor
    assembler: RetrievalAssembler
    watcher: PathWatcher
    worker: IngestionWorker
    ready: queue.Queue = field(default_factory=queue.Queue)

    def start(self, *, watch: bool = True) -> Optional[ScanStats]:
        """Run the startup scan and, if requested, begin watching the root."""
        LOGGER.info("=== Startup ingestion BEGIN (root: %s) ===", self.root)
        stats = self.ingestor.ingest_all()
        LOGGER.info("=== Startup ingestion END: %s documents indexed ===", len(self.catalogue))
        if watch:
            self.worker.start()
            try:
                self.watcher.start()
            except WatcherError as exc:
                LOGGER.error("Folder watching disabled: %s", exc)
        return stats

    def stop(self) -> None:
        self.watcher.stop()
        self.worker.stop()
        if self.worker.running:
            LOGGER.warning("Index left open: an ingestion is still in progress")
            return
        close = getattr(self.index, "close", None)
        if callable(close):
            close()


def build_runtime(
    config: AppConfig,
    *,
    index: VectorIndex,
    generator: AnswerGenerator,
    base_dir: Path | None = None,
) -> Runtime:
    """Assemble a runtime around the given index and answer generator."""
    root = config.resolve_documents_path(base_dir).absolute()
    splitter = ChunkSplitter(
        chunk_size=config.chunk_size,
        overlap=config.chunk_overlap,
        min_chunk_chars=config.min_chunk_chars,
        max_chunks=config.max_chunks,
        tokenizer=get_tokenizer(config.tokenizer),
    )
    catalogue = DocumentCatalogue()
    ingestor = DocumentIngestor(root, index, splitter, catalogue)
    ready: queue.Queue = queue.Queue()
    return Runtime(
        config=config,
        root=root,
        index=index,
        catalogue=catalogue,
        ingestor=ingestor,
        assembler=RetrievalAssembler(index, generator, top_k=config.top_k),
        watcher=PathWatcher(root, ready, debounce_seconds=config.debounce_seconds),
        worker=IngestionWorker(ingestor, ready),
        ready=ready,
    )


def build_default_runtime(config: AppConfig, base_dir: Path | None = None) -> Runtime:
    """Runtime backed by the SQLite index and the Ollama chat client."""
    from docshelf.embedding.encoder import EmbeddingConfig, EmbeddingModel
    from docshelf.index.storage import SQLiteVectorIndex
    from docshelf.llm.client import OllamaChatClient

    db_path = config.resolve_db_path(base_dir)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    embedder = EmbeddingModel(EmbeddingConfig(model_name=config.model_name))
    index = SQLiteVectorIndex(db_path, embedder)
    generator = OllamaChatClient(
        base_url=config.llm_base_url,
        model=config.llm_model,
        timeout_seconds=config.llm_timeout,
    )
    return build_runtime(config, index=index, generator=generator, base_dir=base_dir)
