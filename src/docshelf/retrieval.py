"""Retrieval-augmented answering over the vector index."""

from __future__ import annotations

import logging
from typing import List, Optional

from docshelf.models import Answer, AnswerGenerator, SearchHit, VectorIndex
from docshelf.utils.text import truncate

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful document assistant. Your job is to answer questions\n"
    "based ONLY on the context provided below. Do not use any outside knowledge.\n"
    'If the answer is not found in the context, say "I could not find an answer\n'
    'in the available documents."\n'
    "\n"
    "Always be concise and cite which document the information comes from when possible."
)

NO_DOCUMENTS_ANSWER = (
    "I could not find any relevant documents to answer your question. "
    "Please make sure documents have been uploaded and indexed."
)

GENERATION_ERROR_ANSWER = (
    "An error occurred while generating the answer. "
    "Please check that the language model service is running and the model is available. "
    "Error: {error}"
)

SEARCH_ERROR_ANSWER = (
    "An error occurred while searching the indexed documents. "
    "Please check that the index was built with the configured embedding model. "
    "Error: {error}"
)

EXCERPT_CHARS = 300


def build_context(hits: List[SearchHit]) -> str:
    blocks = [
        f"[Source {position} — {hit.chunk.metadata.source_file}]\n{hit.chunk.text}"
        for position, hit in enumerate(hits, start=1)
    ]
    return "\n\n".join(blocks).strip()


def build_user_message(context: str, question: str) -> str:
    return f"CONTEXT FROM DOCUMENTS:\n---\n{context}\n---\n\nQUESTION: {question}\n"


def excerpt(hit: SearchHit, max_chars: int = EXCERPT_CHARS) -> str:
    return f"[{hit.chunk.metadata.source_file}] {truncate(hit.chunk.text, max_chars)}"


class RetrievalAssembler:
    """Answers questions from the chunks most similar to them.

    Never raises for empty retrieval, search errors or generation failures:
    each becomes a readable answer string.
    """

    def __init__(self, index: VectorIndex, generator: AnswerGenerator, *, top_k: int = 5) -> None:
        self.index = index
        self.generator = generator
        self.top_k = top_k

    def answer(self, question: str, topic: Optional[str] = None) -> Answer:
        topic = topic.strip() if topic and topic.strip() else None
        LOGGER.info("Query received: %r (topic filter: %r)", question, topic)

        try:
            hits = self.index.search(question, top_k=self.top_k, topic=topic)
        except Exception as exc:
            LOGGER.error("Similarity search failed: %s", exc, exc_info=True)
            return Answer(answer=SEARCH_ERROR_ANSWER.format(error=exc), sources=[], topic_filter=topic)
        LOGGER.info("Retrieved %s relevant chunk(s)", len(hits))
        if not hits:
            LOGGER.warning("No relevant chunks found for question: %r", question)
            return Answer(answer=NO_DOCUMENTS_ANSWER, sources=[], topic_filter=topic)

        for position, hit in enumerate(hits, start=1):
            LOGGER.debug(
                "Chunk [%s] source=%s topic=%s score=%.4f preview=%r",
                position,
                hit.chunk.metadata.source_file,
                hit.chunk.metadata.topic,
                hit.score,
                truncate(hit.chunk.text, 120),
            )

        context = build_context(hits)
        user_message = build_user_message(context, question)
        try:
            text = self.generator.generate(SYSTEM_PROMPT, user_message)
            LOGGER.info("Generated answer (%s chars)", len(text))
        except Exception as exc:
            LOGGER.error("Answer generation failed: %s", exc, exc_info=True)
            text = GENERATION_ERROR_ANSWER.format(error=exc)

        return Answer(answer=text, sources=[excerpt(hit) for hit in hits], topic_filter=topic)
