"""Pydantic request/response schemas for the docrag API.

Defines the public contract for the REST endpoints: RAG context queries,
document listing and status, URL import, reprocess, deletion, and health.

Convention: request schemas end with "Request", response schemas end with
"Response".  ``Field(...)`` adds constraints and descriptions for the
generated OpenAPI docs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.models.document import Document, DocumentSource, ProcessingStatus, UrlImportFailure
from src.models.rag import ContextChunk


class RAGQueryRequest(BaseModel):
    """Natural-language query scoped to one project."""

    project_id: int = Field(..., ge=1)
    query: str = Field(..., min_length=1, max_length=2000)
    max_chunks: int = Field(default=5, ge=1, le=50)


class RAGQueryResponse(BaseModel):
    """Ranked context chunks with their source documents."""

    chunks: list[ContextChunk] = Field(default_factory=list)
    document_ids: list[int] = Field(default_factory=list)
    total: int = 0


class DocumentResponse(BaseModel):
    """A document's metadata and processing state."""

    id: int
    project_id: int
    namespace: str
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    upload_type: DocumentSource
    processing_status: ProcessingStatus
    error_message: str | None = None
    page_count: int | None = None
    text_preview: str | None = Field(
        default=None, description="First characters of the extracted text."
    )
    upload_date: datetime
    processed_date: datetime | None = None

    @classmethod
    def from_document(cls, document: Document, preview_chars: int = 500) -> DocumentResponse:
        return cls(
            id=document.id,
            project_id=document.project_id,
            namespace=document.namespace,
            filename=document.filename,
            original_filename=document.original_filename,
            file_size=document.file_size,
            mime_type=document.mime_type,
            upload_type=document.upload_type,
            processing_status=document.processing_status,
            error_message=document.error_message,
            page_count=document.page_count,
            text_preview=(
                document.text_content[:preview_chars] if document.text_content else None
            ),
            upload_date=document.upload_date,
            processed_date=document.processed_date,
        )


class DocumentListResponse(BaseModel):
    """All documents of a project, newest first."""

    project_id: int
    documents: list[DocumentResponse] = Field(default_factory=list)
    total: int = 0


class UrlImportRequest(BaseModel):
    """PDF URLs to download into a project."""

    urls: list[str] = Field(..., min_length=1)
    uploaded_by: int | None = None


class UrlImportResponse(BaseModel):
    """Documents queued for ingestion, plus the URLs that could not be imported."""

    project_id: int
    documents: list[DocumentResponse] = Field(default_factory=list)
    failed: list[UrlImportFailure] = Field(default_factory=list)
    message: str


class ReprocessResponse(BaseModel):
    """Acknowledgement that a document was queued for reprocessing."""

    document_id: int
    status: ProcessingStatus
    message: str


class DeleteDocumentResponse(BaseModel):
    """Acknowledgement of a document deletion."""

    document_id: int
    deleted: bool = True


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
