"""FastAPI API routes for the docrag pipeline.

Provides REST endpoints for RAG context queries, document listing and
status, URL import, reprocessing, deletion, and health checks.  Service
dependencies are resolved from ``app.state`` via FastAPI's ``Depends`` using
the ``Annotated`` pattern.

Route map (all under ``/api/v1``)::

    POST   /rag/query                        ranked context for a project query
    GET    /projects/{project_id}/documents  list a project's documents
    POST   /projects/{project_id}/documents/urls  import PDFs by URL (202)
    GET    /documents/{document_id}          one document's status and metadata
    POST   /documents/{document_id}/reprocess  queue a document again (202/404/409)
    DELETE /documents/{document_id}          delete vectors, then rows
    GET    /health                           health check + provider chains

Application errors raised by services (not found, already processing,
rejected source) are turned into JSON error bodies by
``ErrorHandlingMiddleware``.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request, status

from src.api.schemas import (
    DeleteDocumentResponse,
    DocumentListResponse,
    DocumentResponse,
    HealthResponse,
    RAGQueryRequest,
    RAGQueryResponse,
    ReprocessResponse,
    UrlImportRequest,
    UrlImportResponse,
)
from src.interfaces.document_store import IDocumentStore
from src.services.context_service import ContextService
from src.services.ingestion.ingestion_service import IngestionService
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Dependency injection helpers - resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_context_service(request: Request) -> ContextService:
    """Return the context service from application state."""
    return request.app.state.context_service


def _get_ingestion_service(request: Request) -> IngestionService:
    """Return the ingestion orchestrator from application state."""
    return request.app.state.ingestion_service


def _get_document_store(request: Request) -> IDocumentStore:
    """Return the document store from application state."""
    return request.app.state.document_store


ContextServiceDep = Annotated[ContextService, Depends(_get_context_service)]
IngestionServiceDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
DocumentStoreDep = Annotated[IDocumentStore, Depends(_get_document_store)]


# ---------------------------------------------------------------------------
# RAG
# ---------------------------------------------------------------------------


@router.post(
    "/rag/query",
    response_model=RAGQueryResponse,
    summary="Retrieve ranked context for a project query",
)
async def query_context(
    body: RAGQueryRequest,
    context_service: ContextServiceDep,
) -> RAGQueryResponse:
    """Return the chunks most similar to the query across the project's documents.

    An empty result means the project has no completed documents or
    retrieval failed; retrieval errors never surface as HTTP errors.
    """
    context = await context_service.get_context(
        project_id=body.project_id,
        query_text=body.query,
        max_chunks=body.max_chunks,
    )
    return RAGQueryResponse(
        chunks=context.chunks,
        document_ids=context.document_ids,
        total=len(context.chunks),
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


@router.get(
    "/projects/{project_id}/documents",
    response_model=DocumentListResponse,
    summary="List a project's documents",
)
async def list_documents(project_id: int, store: DocumentStoreDep) -> DocumentListResponse:
    documents = await store.list_project_documents(project_id)
    return DocumentListResponse(
        project_id=project_id,
        documents=[DocumentResponse.from_document(d) for d in documents],
        total=len(documents),
    )


@router.post(
    "/projects/{project_id}/documents/urls",
    response_model=UrlImportResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Import PDFs into a project by URL",
)
async def import_documents_from_urls(
    project_id: int,
    body: UrlImportRequest,
    ingestion_service: IngestionServiceDep,
) -> UrlImportResponse:
    """Download each PDF, register it and queue it for ingestion.

    URLs that are not PDFs, cannot be downloaded or are too large are
    listed under ``failed``; the others are still imported.
    """
    result = await ingestion_service.import_from_urls(
        project_id, body.urls, uploaded_by=body.uploaded_by
    )
    _logger.info(
        "url_import_accepted",
        project_id=project_id,
        imported=len(result.documents),
        failed=len(result.failed),
    )
    return UrlImportResponse(
        project_id=project_id,
        documents=[DocumentResponse.from_document(d) for d in result.documents],
        failed=result.failed,
        message=f"{len(result.documents)} document(s) queued for ingestion",
    )


@router.get(
    "/documents/{document_id}",
    response_model=DocumentResponse,
    summary="Get a document's processing status",
)
async def get_document(document_id: int, store: DocumentStoreDep) -> DocumentResponse:
    document = await store.get_document(document_id)
    return DocumentResponse.from_document(document)


@router.post(
    "/documents/{document_id}/reprocess",
    response_model=ReprocessResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Run a document through the ingestion pipeline again",
)
async def reprocess_document(
    document_id: int,
    ingestion_service: IngestionServiceDep,
) -> ReprocessResponse:
    """Queue a document for reprocessing.

    Answers 409 while the document is still processing and 404 when it
    does not exist.  The outcome is visible later through the document's
    status.
    """
    document = await ingestion_service.reprocess(document_id)
    _logger.info("reprocess_accepted", document_id=document_id)
    return ReprocessResponse(
        document_id=document_id,
        status=document.processing_status,
        message="Document queued for reprocessing",
    )


@router.delete(
    "/documents/{document_id}",
    response_model=DeleteDocumentResponse,
    summary="Delete a document, its chunks and its vectors",
)
async def delete_document(
    document_id: int,
    ingestion_service: IngestionServiceDep,
) -> DeleteDocumentResponse:
    await ingestion_service.delete_document(document_id)
    return DeleteDocumentResponse(document_id=document_id, deleted=True)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and the configured provider chains."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    worker_pool = getattr(request.app.state, "worker_pool", None)
    if worker_pool is not None:
        providers["ingestion_pending"] = worker_pool.pending

    return HealthResponse(status="healthy", version=_VERSION, providers=providers)
