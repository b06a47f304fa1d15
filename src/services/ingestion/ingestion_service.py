"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **extract -> chunk -> embed -> store**.

The :class:`IngestionService` coordinates four collaborators (extraction
chain, chunker, embedding chain, vector index) plus the document store,
without any of them knowing about each other.  :meth:`process_document`
runs one document through the whole pipeline and drives its status::

    pending -> processing -> completed | failed

Every failure is caught at this boundary, recorded on the document row
and logged; callers scheduling work in the background never see it.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path, PurePosixPath
from urllib.parse import unquote, urlparse

import httpx
import structlog

from src.interfaces.document_store import IDocumentStore
from src.interfaces.vector_index_provider import IVectorIndexProvider
from src.models.document import (
    Document,
    DocumentSource,
    NewDocument,
    UrlImportFailure,
    UrlImportResult,
    can_reprocess,
)
from src.models.rag import ChunkCandidate, IngestionResult, StoredChunk, VectorRecord
from src.services.embedding_service import EmbeddingService
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.extraction_service import ExtractionService
from src.utils.concurrency import IngestionWorkerPool
from src.utils.errors import (
    DocumentAlreadyProcessingError,
    DocumentSourceError,
    DocumentStoreError,
    InsufficientContentError,
)

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Runs documents through extract -> chunk -> embed -> store.

    Parameters
    ----------
    document_store:
        Document rows, status transitions and chunk rows.
    extraction_service:
        PDF text extraction provider chain.
    chunker:
        Splits text into overlapping windows when the extraction provider
        supplied no chunk hints.
    embedding_service:
        Embedding provider chain with a pinned dimension.
    vector_index:
        Namespace-scoped vector index.
    worker_pool:
        Background pool used by :meth:`start_ingestion` and :meth:`reprocess`.
    http_client:
        Downloads URL-imported PDFs, on import and again on reprocess.
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        extraction_service: ExtractionService,
        chunker: TextChunker,
        embedding_service: EmbeddingService,
        vector_index: IVectorIndexProvider,
        worker_pool: IngestionWorkerPool,
        http_client: httpx.AsyncClient | None = None,
        min_text_chars: int = 100,
        embedding_max_chars: int = 500,
        embedding_delay_seconds: float = 0.0,
        text_cache_chars: int = 5000,
        url_timeout: float = 30.0,
        url_max_bytes: int = 50 * 1024 * 1024,
        url_max_urls: int = 10,
    ) -> None:
        self._store = document_store
        self._extraction = extraction_service
        self._chunker = chunker
        self._embedding = embedding_service
        self._vector_index = vector_index
        self._pool = worker_pool
        self._http = http_client
        self._min_text_chars = min_text_chars
        self._embedding_max_chars = embedding_max_chars
        self._embedding_delay = embedding_delay_seconds
        self._text_cache_chars = text_cache_chars
        self._url_timeout = url_timeout
        self._url_max_bytes = url_max_bytes
        self._url_max_urls = url_max_urls

    # ------------------------------------------------------------------
    # Scheduling API
    # ------------------------------------------------------------------

    def start_ingestion(self, document_id: int, content: bytes) -> None:
        """Schedule :meth:`process_document` in the background and return."""
        self._pool.submit(
            self.process_document(document_id, content),
            name=f"ingest-document-{document_id}",
        )
        logger.info("ingestion_scheduled", document_id=document_id, size=len(content))

    async def reprocess(self, document_id: int) -> Document:
        """Reset a document to ``pending`` and schedule it again.

        The previous chunks and vectors are purged by the pipeline run
        itself, before new ones are written.

        Raises
        ------
        DocumentAlreadyProcessingError
            If the document is currently ``processing``; nothing changes.
        DocumentNotFoundError
            If the document does not exist.
        DocumentStoreError
            If the document's bytes cannot be loaded.
        """
        document = await self._store.get_document(document_id)
        if not can_reprocess(document.processing_status):
            raise DocumentAlreadyProcessingError(
                message=f"Document {document_id} is already being processed"
            )
        content = await self._load_content(document)
        document = await self._store.reset_to_pending(document_id)
        logger.info("document_reprocess_requested", document_id=document_id)
        self.start_ingestion(document_id, content)
        return document

    # ------------------------------------------------------------------
    # URL import
    # ------------------------------------------------------------------

    async def import_from_urls(
        self, project_id: int, urls: list[str], uploaded_by: int | None = None
    ) -> UrlImportResult:
        """Import each PDF URL into *project_id*, one at a time.

        A URL that is rejected, cannot be downloaded or cannot be stored is
        reported in ``failed``; the remaining URLs are still imported.

        Raises
        ------
        DocumentSourceError
            If more URLs are given than one import accepts.
        """
        if len(urls) > self._url_max_urls:
            raise DocumentSourceError(
                message=f"At most {self._url_max_urls} URLs can be imported at once"
            )

        documents: list[Document] = []
        failed: list[UrlImportFailure] = []
        for url in urls:
            try:
                documents.append(await self.import_from_url(project_id, url, uploaded_by))
            except DocumentStoreError as exc:
                logger.warning("url_import_failed", project_id=project_id, url=url, error=str(exc))
                failed.append(UrlImportFailure(url=url, error=str(exc)))

        logger.info(
            "url_import_finished",
            project_id=project_id,
            imported=len(documents),
            failed=len(failed),
        )
        return UrlImportResult(documents=documents, failed=failed)

    async def import_from_url(
        self, project_id: int, url: str, uploaded_by: int | None = None
    ) -> Document:
        """Download a PDF, register it as a URL document and schedule ingestion.

        Only the source URL is kept; reprocess downloads the PDF again.

        Raises
        ------
        DocumentSourceError
            If the URL does not name a PDF over http(s), the download fails,
            or the body exceeds the size cap.
        """
        filename = _pdf_filename(url)
        content = await self._download(url)
        document = await self._store.create_document(
            NewDocument(
                project_id=project_id,
                filename=filename,
                original_filename=filename,
                file_url=url,
                file_size=len(content),
                upload_type=DocumentSource.URL,
                uploaded_by=uploaded_by,
            )
        )
        logger.info(
            "document_imported_from_url",
            document_id=document.id,
            project_id=project_id,
            url=url,
            size=len(content),
        )
        self.start_ingestion(document.id, content)
        return document

    async def _download(self, url: str) -> bytes:
        """Fetch *url*, refusing bodies larger than the size cap."""
        if self._http is None:
            raise DocumentSourceError(message=f"No HTTP client available to download {url}")

        content = bytearray()
        try:
            async with self._http.stream(
                "GET", url, follow_redirects=True, timeout=self._url_timeout
            ) as response:
                response.raise_for_status()
                declared = response.headers.get("content-length", "")
                if declared.isdigit() and int(declared) > self._url_max_bytes:
                    raise self._too_large(url)
                async for piece in response.aiter_bytes():
                    content.extend(piece)
                    if len(content) > self._url_max_bytes:
                        raise self._too_large(url)
        except httpx.HTTPError as exc:
            raise DocumentSourceError(
                message=f"Could not download {url}: {exc}", provider_name="http"
            ) from exc
        return bytes(content)

    def _too_large(self, url: str) -> DocumentSourceError:
        return DocumentSourceError(
            message=f"{url} is larger than {self._url_max_bytes} bytes"
        )

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def process_document(self, document_id: int, content: bytes) -> IngestionResult:
        """Run one document through the pipeline.

        Never raises: any failure is recorded on the document row
        (``failed`` with the error message) and reported in the result.
        """
        start_time = time.monotonic()

        # Refuses a second concurrent run on the same document.
        try:
            document = await self._store.mark_processing(document_id)
        except DocumentStoreError as exc:
            logger.error(
                "document_processing_rejected", document_id=document_id, error=str(exc)
            )
            return IngestionResult(
                document_id=document_id,
                succeeded=False,
                error_message=str(exc),
                ingestion_time=round(time.monotonic() - start_time, 2),
            )

        logger.info(
            "document_processing_started",
            document_id=document_id,
            namespace=document.namespace,
            filename=document.original_filename,
        )

        try:
            result = await self._run_pipeline(document, content, start_time)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            logger.error(
                "document_processing_failed",
                document_id=document_id,
                error=message,
                error_type=type(exc).__name__,
            )
            try:
                await self._store.mark_failed(document_id, message)
            except DocumentStoreError as store_exc:
                logger.error(
                    "document_failure_not_recorded",
                    document_id=document_id,
                    error=str(store_exc),
                )
            return IngestionResult(
                document_id=document_id,
                succeeded=False,
                error_message=message,
                ingestion_time=round(time.monotonic() - start_time, 2),
            )

        logger.info(
            "document_processing_completed",
            document_id=document_id,
            chunks=result.chunks_created,
            pages=result.page_count,
            provider=result.provider_used,
            time=result.ingestion_time,
        )
        return result

    async def _run_pipeline(
        self, document: Document, content: bytes, start_time: float
    ) -> IngestionResult:
        # Old chunks go first so a reprocess never leaves stale vectors.
        await self._purge_previous(document)

        extraction = await self._extraction.extract(content, document.original_filename)
        text = extraction.text.strip()
        if len(text) < self._min_text_chars:
            raise InsufficientContentError(
                message=(
                    f"Document contains insufficient text content "
                    f"({len(text)} chars, need {self._min_text_chars})"
                )
            )

        candidates = extraction.chunks or self._chunker.split(text)
        if not candidates:
            raise InsufficientContentError(message="No valid chunks created from document")

        chunks, records = await self._embed_chunks(document.id, candidates)

        await self._store.insert_chunks(chunks)
        await self._vector_index.upsert(document.namespace, records)

        await self._store.mark_completed(
            document.id,
            text_content=text[: self._text_cache_chars],
            page_count=extraction.page_count,
        )

        return IngestionResult(
            document_id=document.id,
            succeeded=True,
            chunks_created=len(chunks),
            page_count=extraction.page_count,
            provider_used=extraction.provider_name or None,
            ingestion_time=round(time.monotonic() - start_time, 2),
        )

    async def _embed_chunks(
        self, document_id: int, candidates: list[ChunkCandidate]
    ) -> tuple[list[StoredChunk], list[VectorRecord]]:
        """Embed candidates sequentially, in index order."""
        chunks: list[StoredChunk] = []
        records: list[VectorRecord] = []
        for index, candidate in enumerate(candidates):
            chunk = StoredChunk.from_candidate(document_id, index, candidate)
            values = await self._embedding.embed(chunk.chunk_text[: self._embedding_max_chars])
            chunks.append(chunk)
            records.append(VectorRecord.for_chunk(chunk, values))

            if self._embedding_delay > 0 and index < len(candidates) - 1:
                await asyncio.sleep(self._embedding_delay)

        logger.debug("document_chunks_embedded", document_id=document_id, chunks=len(chunks))
        return chunks, records

    async def _purge_previous(self, document: Document) -> None:
        embedding_ids = await self._store.get_embedding_ids(document.id)
        if not embedding_ids:
            return
        await self._vector_index.delete_many(document.namespace, embedding_ids)
        removed = await self._store.delete_chunks(document.id)
        logger.info(
            "document_previous_chunks_purged",
            document_id=document.id,
            vectors=len(embedding_ids),
            rows=removed,
        )

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    async def delete_document_vectors(self, namespace: str, document_id: int) -> None:
        """Delete a document's vectors from *namespace*, best effort.

        Failures are logged and swallowed so metadata deletion can go on;
        vectors left behind are unreachable once the rows are gone.
        """
        try:
            embedding_ids = await self._store.get_embedding_ids(document_id)
            if not embedding_ids:
                return
            await self._vector_index.delete_many(namespace, embedding_ids)
            logger.info(
                "document_vectors_deleted",
                document_id=document_id,
                namespace=namespace,
                vectors=len(embedding_ids),
            )
        except Exception as exc:
            logger.warning(
                "document_vectors_delete_failed",
                document_id=document_id,
                namespace=namespace,
                error=str(exc),
            )

    async def delete_document(self, document_id: int) -> None:
        """Delete a document's vectors, then its row and (by cascade) its chunks.

        Raises
        ------
        DocumentNotFoundError
            If the document does not exist.
        """
        document = await self._store.get_document(document_id)
        await self.delete_document_vectors(document.namespace, document_id)
        await self._store.delete_document(document_id)
        logger.info("document_deleted", document_id=document_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_content(self, document: Document) -> bytes:
        """Return the stored bytes of *document* from disk or its source URL."""
        if document.file_path:
            path = Path(document.file_path)
            try:
                return await asyncio.to_thread(path.read_bytes)
            except OSError as exc:
                raise DocumentStoreError(
                    message=f"Could not read {path}: {exc}", provider_name="filesystem"
                ) from exc

        if document.file_url:
            return await self._download(document.file_url)

        raise DocumentStoreError(
            message=f"Document {document.id} has no stored file to reprocess"
        )


def _pdf_filename(url: str) -> str:
    """Return the PDF file name named by *url*, or raise if it is not a PDF URL."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise DocumentSourceError(message=f"Not an http(s) URL: {url}")
    if not parsed.path.lower().endswith(".pdf"):
        raise DocumentSourceError(message=f"URL must point to a PDF file: {url}")
    return PurePosixPath(unquote(parsed.path)).name
