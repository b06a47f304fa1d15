"""Retrieval-augmentation context assembly for project queries.

Given a project and a natural-language query, returns the most relevant
chunks across every completed document of the project:

    1. Look up the namespaces of the project's completed documents.
    2. Embed the query once, capped at the same input length as chunks.
    3. Query each namespace for ``2 * max_chunks`` matches (over-fetch so
       the merge has room to pick the globally best ones) and drop those
       under ``min_score``.
    4. Merge, sort by score, keep the top ``max_chunks``.
    5. Attach each chunk's source filename and upload date.

Retrieval is advisory: any failure is logged and an empty context comes
back instead.
"""

from __future__ import annotations

import asyncio

import structlog

from src.interfaces.document_store import IDocumentStore
from src.interfaces.vector_index_provider import IVectorIndexProvider
from src.models.rag import ContextChunk, RAGContext, SourceDocument, VectorMatch
from src.services.embedding_service import EmbeddingService
from src.utils.concurrency import throttled_gather

logger = structlog.get_logger(logger_name=__name__)

# Namespaces queried at the same time for one request.
_NAMESPACE_QUERY_CONCURRENCY = 4


class ContextService:
    """Assembles ranked, source-attributed context for a project query."""

    def __init__(
        self,
        document_store: IDocumentStore,
        embedding_service: EmbeddingService,
        vector_index: IVectorIndexProvider,
        min_score: float = 0.3,
        default_max_chunks: int = 5,
        embedding_max_chars: int = 500,
    ) -> None:
        self._store = document_store
        self._embedding = embedding_service
        self._vector_index = vector_index
        self._min_score = min_score
        self._default_max_chunks = default_max_chunks
        self._embedding_max_chars = embedding_max_chars

    async def get_context(
        self, project_id: int, query_text: str, max_chunks: int | None = None
    ) -> RAGContext:
        """Return up to *max_chunks* chunks ranked by similarity to *query_text*.

        Never raises; an empty :class:`RAGContext` is returned when the
        project has no completed documents or anything goes wrong.
        """
        limit = max_chunks if max_chunks is not None else self._default_max_chunks
        try:
            return await self._assemble(project_id, query_text, limit)
        except Exception as exc:
            logger.error(
                "rag_context_failed",
                project_id=project_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return RAGContext.empty()

    async def _assemble(self, project_id: int, query_text: str, max_chunks: int) -> RAGContext:
        if max_chunks <= 0 or not query_text.strip():
            return RAGContext.empty()

        namespaces = await self._store.get_completed_namespaces(project_id)
        if not namespaces:
            logger.info("rag_context_no_documents", project_id=project_id)
            return RAGContext.empty()

        vector = await self._embedding.embed(query_text[: self._embedding_max_chars])
        matches = await self._query_namespaces(namespaces, vector, max_chunks * 2)

        matches.sort(key=lambda m: m.score, reverse=True)
        top = matches[:max_chunks]

        document_ids: list[int] = []
        for match in top:
            doc_id = match.document_id
            if doc_id is not None and doc_id not in document_ids:
                document_ids.append(doc_id)

        documents = await self._store.get_documents(document_ids)

        chunks: list[ContextChunk] = []
        for match in top:
            doc_id = match.document_id
            if doc_id is None:
                continue
            document = documents.get(doc_id)
            chunks.append(
                ContextChunk(
                    id=match.id,
                    score=match.score,
                    text=str(match.metadata.get("text", "")),
                    document_id=doc_id,
                    chunk_index=int(match.metadata.get("chunk_index", 0)),
                    page_number=_optional_int(match.metadata.get("page_number")),
                    document=(
                        SourceDocument(
                            filename=document.original_filename,
                            upload_date=document.upload_date,
                        )
                        if document is not None
                        else None
                    ),
                )
            )

        logger.info(
            "rag_context_assembled",
            project_id=project_id,
            namespaces=len(namespaces),
            candidates=len(matches),
            chunks=len(chunks),
            top_score=round(chunks[0].score, 4) if chunks else 0.0,
        )
        return RAGContext(chunks=chunks, document_ids=document_ids)

    async def _query_namespaces(
        self, namespaces: list[str], vector: list[float], top_k: int
    ) -> list[VectorMatch]:
        semaphore = asyncio.Semaphore(_NAMESPACE_QUERY_CONCURRENCY)
        results = await throttled_gather(
            [self._vector_index.query(ns, vector, top_k) for ns in namespaces],
            semaphore=semaphore,
            return_exceptions=False,
        )
        return [
            match
            for namespace_matches in results
            for match in namespace_matches
            if match.score >= self._min_score
        ]


def _optional_int(value: object) -> int | None:
    if value is None:
        return None
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None
