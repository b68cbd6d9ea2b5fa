"""FastAPI application exposing ingestion and question answering."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import asdict
from typing import Any, AsyncIterator, List

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from pydantic import BaseModel

from docshelf.models import Ingested
from docshelf.runtime import Runtime
from docshelf.web.frontend import router as frontend_router

LOGGER = logging.getLogger(__name__)


class QueryPayload(BaseModel):
    question: str
    topic: str | None = None


class QueryResult(BaseModel):
    answer: str
    sources: List[str]
    topic_filter: str | None = None


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def create_app(runtime: Runtime, *, manage_lifecycle: bool = True, watch: bool = True) -> FastAPI:
    """Build the web app around a runtime.

    With ``manage_lifecycle`` the startup scan and folder watching run in the
    app lifespan, and the runtime is stopped on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if manage_lifecycle:
            await asyncio.to_thread(runtime.start, watch=watch)
        try:
            yield
        finally:
            if manage_lifecycle:
                runtime.stop()

    app = FastAPI(title="docshelf", version="0.1.0", lifespan=lifespan)
    app.state.runtime = runtime
    app.include_router(frontend_router)

    @app.get("/api/documents")
    async def list_documents(runtime: Runtime = Depends(get_runtime)) -> dict[str, Any]:
        documents = [asdict(record) for record in runtime.catalogue.documents()]
        return {"documents": documents, "count": len(documents)}

    @app.get("/api/topics")
    async def list_topics(runtime: Runtime = Depends(get_runtime)) -> dict[str, List[str]]:
        return {"topics": runtime.catalogue.topics()}

    @app.post("/api/upload")
    async def upload_document(
        topic: str | None = Form(None),
        file: UploadFile = File(...),
        runtime: Runtime = Depends(get_runtime),
    ) -> dict[str, Any]:
        LOGGER.info("Upload received: topic=%r file=%r", topic, file.filename)
        data = await file.read()
        if not data:
            raise HTTPException(status_code=400, detail="File is empty.")

        try:
            result = await asyncio.to_thread(
                runtime.ingestor.store_upload, topic, file.filename or "", data
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except OSError as exc:
            LOGGER.error("Upload failed: %s", exc)
            raise HTTPException(status_code=500, detail=f"Upload failed: {exc}") from exc

        if isinstance(result, Ingested):
            return {"status": "ingested", "file": result.record.file_name, "topic": result.record.topic}
        return {"status": "skipped", "reason": result.reason.value}

    @app.post("/api/query", response_model=QueryResult)
    async def query(payload: QueryPayload, runtime: Runtime = Depends(get_runtime)) -> QueryResult:
        question = payload.question.strip()
        if not question:
            raise HTTPException(status_code=400, detail="Empty question")
        answer = await asyncio.to_thread(runtime.assembler.answer, question, payload.topic)
        return QueryResult(
            answer=answer.answer, sources=answer.sources, topic_filter=answer.topic_filter
        )

    return app
