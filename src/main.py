"""docrag FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from environment variables / ``.env`` and configures
structured logging.

:func:`build_components` is the single composition root: the web app's
lifespan and the CLI both call it, so both run the same provider chains
against the same stores.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import router as api_router
from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.extraction_provider import IExtractionProvider
from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from src.providers.embedding.hashing_embedding_provider import HashingEmbeddingProvider
from src.providers.embedding.huggingface_embedding_provider import HuggingFaceEmbeddingProvider
from src.providers.embedding.jina_embedding_provider import JinaEmbeddingProvider
from src.providers.extraction.jina_segmenter_provider import JinaSegmenterExtractionProvider
from src.providers.extraction.llamaparse_provider import LlamaParseExtractionProvider
from src.providers.extraction.pymupdf_provider import PyMuPDFExtractionProvider
from src.providers.vector_index.chromadb_provider import ChromaDBVectorIndexProvider
from src.services.context_service import ContextService
from src.services.embedding_service import EmbeddingService
from src.services.ingestion.chunker import TextChunker
from src.services.ingestion.extraction_service import ExtractionService
from src.services.ingestion.ingestion_service import IngestionService
from src.utils.concurrency import IngestionWorkerPool
from src.utils.logging import configure_logging, get_logger

_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider chains
# ---------------------------------------------------------------------------


def _build_extraction_providers(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> list[IExtractionProvider]:
    """Return extraction providers in priority order.

    Priority: LlamaParse (if API key set) -> Jina segmenter (if enabled) ->
    PyMuPDF (always, last).
    """
    providers: list[IExtractionProvider] = []
    if app_settings.llamaparse_api_key:
        providers.append(
            LlamaParseExtractionProvider(
                http_client,
                api_key=app_settings.llamaparse_api_key,
                base_url=app_settings.llamaparse_base_url,
                submit_timeout=app_settings.extraction_submit_timeout,
                poll_timeout=app_settings.extraction_poll_timeout,
                poll_interval=app_settings.extraction_poll_interval,
                max_poll_attempts=app_settings.extraction_max_poll_attempts,
                min_text_chars=app_settings.extraction_min_text_chars,
            )
        )
    if app_settings.jina_segmenter_enabled:
        providers.append(
            JinaSegmenterExtractionProvider(
                http_client,
                url=app_settings.jina_segmenter_url,
                api_key=app_settings.jina_api_key,
                timeout=app_settings.segmenter_timeout,
                min_text_chars=app_settings.extraction_min_text_chars,
                min_chunk_chars=app_settings.min_chunk_chars,
            )
        )
    providers.append(PyMuPDFExtractionProvider())
    return providers


def _build_embedding_providers(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> list[IEmbeddingProvider]:
    """Return embedding providers in priority order.

    Priority: HuggingFace (if token set) -> Jina -> hashing (always, last).
    """
    providers: list[IEmbeddingProvider] = []
    if app_settings.huggingface_api_token:
        providers.append(
            HuggingFaceEmbeddingProvider(
                http_client,
                api_token=app_settings.huggingface_api_token,
                model=app_settings.huggingface_embedding_model,
                base_url=app_settings.huggingface_base_url,
                timeout=app_settings.huggingface_timeout,
                retry_wait=app_settings.embedding_retry_wait,
            )
        )
    if app_settings.jina_embedding_url:
        providers.append(
            JinaEmbeddingProvider(
                http_client,
                api_key=app_settings.jina_api_key,
                model=app_settings.jina_embedding_model,
                url=app_settings.jina_embedding_url,
                timeout=app_settings.jina_embedding_timeout,
                retry_wait=app_settings.embedding_retry_wait,
            )
        )
    providers.append(HashingEmbeddingProvider(dimension=app_settings.embedding_dimension))
    return providers


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance.

    Returns a flat dict of named components, stored on ``app.state`` by the
    web app.  Nothing is opened here; :func:`open_components` and
    :func:`close_components` own the lifecycle.
    """
    http_client = httpx.AsyncClient(timeout=30.0)

    extraction_providers = _build_extraction_providers(app_settings, http_client)
    embedding_providers = _build_embedding_providers(app_settings, http_client)

    document_store = SQLiteDocumentStore(db_path=app_settings.document_db_path)
    vector_index = ChromaDBVectorIndexProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        host=app_settings.chromadb_host,
        port=app_settings.chromadb_port,
        upsert_batch_size=app_settings.vector_upsert_batch_size,
        delete_batch_size=app_settings.vector_delete_batch_size,
    )
    worker_pool = IngestionWorkerPool(concurrency=app_settings.ingestion_concurrency)

    extraction_service = ExtractionService(providers=extraction_providers)
    embedding_service = EmbeddingService(
        providers=embedding_providers, dimension=app_settings.embedding_dimension
    )
    chunker = TextChunker(
        chunk_size=app_settings.chunk_size,
        overlap=app_settings.chunk_overlap,
        min_chunk_chars=app_settings.min_chunk_chars,
    )

    ingestion_service = IngestionService(
        document_store=document_store,
        extraction_service=extraction_service,
        chunker=chunker,
        embedding_service=embedding_service,
        vector_index=vector_index,
        worker_pool=worker_pool,
        http_client=http_client,
        min_text_chars=app_settings.extraction_min_text_chars,
        embedding_max_chars=app_settings.embedding_max_chars,
        embedding_delay_seconds=app_settings.embedding_delay_seconds,
        text_cache_chars=app_settings.text_cache_chars,
        url_timeout=app_settings.url_import_timeout,
        url_max_bytes=app_settings.url_import_max_bytes,
        url_max_urls=app_settings.url_import_max_urls,
    )
    context_service = ContextService(
        document_store=document_store,
        embedding_service=embedding_service,
        vector_index=vector_index,
        min_score=app_settings.rag_min_score,
        default_max_chunks=app_settings.rag_max_chunks,
        embedding_max_chars=app_settings.embedding_max_chars,
    )

    provider_registry: dict[str, Any] = {
        "extraction": [p.get_provider_name() for p in extraction_providers],
        "embedding": [p.get_provider_name() for p in embedding_providers],
        "embedding_dimension": app_settings.embedding_dimension,
        "vector_index": vector_index.get_provider_name(),
        "document_store": document_store.get_provider_name(),
    }

    return {
        "http_client": http_client,
        "document_store": document_store,
        "vector_index": vector_index,
        "worker_pool": worker_pool,
        "extraction_service": extraction_service,
        "embedding_service": embedding_service,
        "chunker": chunker,
        "ingestion_service": ingestion_service,
        "context_service": context_service,
        "provider_registry": provider_registry,
    }


async def open_components(components: dict[str, Any]) -> None:
    """Create the store schema and open the vector index client."""
    await components["document_store"].initialize()
    await components["vector_index"].open()


async def close_components(components: dict[str, Any]) -> None:
    """Drain background ingestion, then close index, store and HTTP client."""
    # Cancelling would strand documents in the processing state.
    await components["worker_pool"].shutdown(wait=True)
    await components["vector_index"].close()
    await components["document_store"].close()
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


def _make_lifespan(app_settings: Settings):  # noqa: ANN202
    @asynccontextmanager
    async def _lifespan(application: FastAPI):  # noqa: ANN202
        """Initialise all providers and services on startup, clean up on shutdown."""
        components = build_components(app_settings)
        for key, value in components.items():
            setattr(application.state, key, value)
        await open_components(components)

        _logger.info(
            "app_startup",
            version=_VERSION,
            environment=app_settings.app_env,
            extraction=components["provider_registry"]["extraction"],
            embedding=components["provider_registry"]["embedding"],
        )

        yield

        await close_components(components)
        _logger.info("app_shutdown")

    return _lifespan


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="docrag API",
        version=_VERSION,
        description=(
            "Ingest project PDFs into a searchable chunk index and retrieve "
            "ranked, source-attributed context for natural-language queries."
        ),
        lifespan=_make_lifespan(app_settings or settings),
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
