"""Command line interface for docshelf."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from docshelf.config import AppConfig
from docshelf.runtime import build_default_runtime

console = Console()
app = typer.Typer(help="docshelf - ask questions about a folder of documents")

_DEFAULTS = AppConfig()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_config(
    documents: Optional[Path],
    db: Optional[Path],
    **overrides,
) -> AppConfig:
    try:
        return AppConfig(
            documents_path=documents if documents is not None else _DEFAULTS.documents_path,
            db_path=db if db is not None else _DEFAULTS.db_path,
            **overrides,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def ingest(
    documents: Path = typer.Option(None, "--documents", "-d", help="Documents root folder"),
    db: Path = typer.Option(None, "--db", help="SQLite index path"),
    model: str = typer.Option(_DEFAULTS.model_name, help="Sentence-transformer model name"),
    tokenizer: str = typer.Option(_DEFAULTS.tokenizer, help="tiktoken encoding, or 'words'"),
    chunk_size: int = typer.Option(_DEFAULTS.chunk_size, help="Chunk size in tokens"),
    overlap: int = typer.Option(_DEFAULTS.chunk_overlap, help="Chunk overlap in tokens"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Scan the documents folder once and index every supported file."""
    _setup_logging(verbose)
    config = _build_config(
        documents,
        db,
        model_name=model,
        tokenizer=tokenizer,
        chunk_size=chunk_size,
        chunk_overlap=overlap,
    )
    runtime = build_default_runtime(config, Path.cwd())
    console.print(f"Indexing [bold]{runtime.root}[/bold]...")
    try:
        stats = runtime.ingestor.ingest_all()
    finally:
        runtime.stop()
    console.print(
        f"Ingested: {stats.ingested}, skipped: {stats.skipped}, failed: {stats.failed}"
    )


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to answer"),
    topic: Optional[str] = typer.Option(None, "--topic", "-t", help="Restrict to one topic"),
    documents: Path = typer.Option(None, "--documents", "-d", help="Documents root folder"),
    db: Path = typer.Option(None, "--db", help="SQLite index path"),
    model: str = typer.Option(_DEFAULTS.model_name, help="Sentence-transformer model name"),
    llm_model: str = typer.Option(_DEFAULTS.llm_model, help="Ollama model name"),
    llm_url: str = typer.Option(_DEFAULTS.llm_base_url, help="Ollama base URL"),
    top_k: int = typer.Option(_DEFAULTS.top_k, help="Number of chunks to retrieve"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Answer a question from the indexed documents."""
    _setup_logging(verbose)
    config = _build_config(
        documents,
        db,
        model_name=model,
        llm_model=llm_model,
        llm_base_url=llm_url,
        top_k=top_k,
    )
    resolved_db = config.resolve_db_path(Path.cwd())
    if not resolved_db.exists():
        raise typer.BadParameter(f"Index not found: {resolved_db}")

    runtime = build_default_runtime(config, Path.cwd())
    try:
        answer = runtime.assembler.answer(question, topic)
    finally:
        runtime.stop()

    console.print(escape(answer.answer))
    if not answer.sources:
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#")
    table.add_column("Excerpt")
    for position, source in enumerate(answer.sources, start=1):
        table.add_row(str(position), escape(source.replace("\n", " ")))
    console.print(table)


@app.command()
def watch(
    documents: Path = typer.Option(None, "--documents", "-d", help="Documents root folder"),
    db: Path = typer.Option(None, "--db", help="SQLite index path"),
    model: str = typer.Option(_DEFAULTS.model_name, help="Sentence-transformer model name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index the documents folder, then keep ingesting new files until interrupted."""
    _setup_logging(verbose)
    config = _build_config(documents, db, model_name=model)
    runtime = build_default_runtime(config, Path.cwd())
    runtime.start(watch=True)
    console.print(f"Watching [bold]{runtime.root}[/bold] (Ctrl+C to stop)")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("Stopping...")
    finally:
        runtime.stop()


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8080, help="Server port"),
    documents: Path = typer.Option(None, "--documents", "-d", help="Documents root folder"),
    db: Path = typer.Option(None, "--db", help="SQLite index path"),
    model: str = typer.Option(_DEFAULTS.model_name, help="Sentence-transformer model name"),
    llm_model: str = typer.Option(_DEFAULTS.llm_model, help="Ollama model name"),
    llm_url: str = typer.Option(_DEFAULTS.llm_base_url, help="Ollama base URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Start the web interface with folder watching."""
    import uvicorn

    from docshelf.web.app import create_app

    _setup_logging(verbose)
    config = _build_config(
        documents, db, model_name=model, llm_model=llm_model, llm_base_url=llm_url
    )
    runtime = build_default_runtime(config, Path.cwd())
    console.print(f"Starting web interface on http://{host}:{port} (documents: {runtime.root})")
    uvicorn.run(create_app(runtime), host=host, port=port, reload=False, log_level="info")
