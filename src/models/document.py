"""Document models for the ingestion pipeline.

A :class:`Document` is one uploaded or URL-imported PDF belonging to a
project.  Its ``namespace`` partitions the vector index so every vector of
the document can be queried or deleted together, and its
``processing_status`` follows a small state machine::

    pending ──► processing ──► completed
                    │
                    └────────► failed

``completed`` and ``failed`` only go back to ``pending`` through an explicit
reprocess, which is refused while the document is ``processing``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProcessingStatus(str, Enum):
    """Lifecycle state of a document in the ingestion pipeline."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DocumentSource(str, Enum):
    """How the PDF reached the system."""

    FILE = "file"
    URL = "url"


# Allowed forward transitions driven by the orchestrator.  Reprocess
# (anything except processing -> pending) is handled separately.
_ORCHESTRATOR_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    ProcessingStatus.PENDING: frozenset({ProcessingStatus.PROCESSING}),
    ProcessingStatus.PROCESSING: frozenset(
        {ProcessingStatus.COMPLETED, ProcessingStatus.FAILED}
    ),
    ProcessingStatus.COMPLETED: frozenset(),
    ProcessingStatus.FAILED: frozenset(),
}


def can_transition(current: ProcessingStatus, target: ProcessingStatus) -> bool:
    """Return ``True`` if the orchestrator may move *current* to *target*."""
    return target in _ORCHESTRATOR_TRANSITIONS[current]


def can_reprocess(current: ProcessingStatus) -> bool:
    """Return ``True`` if an explicit reprocess may reset *current* to pending."""
    return current is not ProcessingStatus.PROCESSING


class Document(BaseModel):
    """A project document row as persisted by the document store."""

    model_config = ConfigDict(frozen=True)

    id: int
    project_id: int
    namespace: str = Field(description="Vector-index partition holding this document's vectors.")
    filename: str
    original_filename: str
    file_path: str | None = None
    file_url: str | None = None
    file_size: int = Field(default=0, ge=0)
    mime_type: str = "application/pdf"
    upload_type: DocumentSource = DocumentSource.FILE
    uploaded_by: int | None = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    error_message: str | None = None
    text_content: str | None = Field(
        default=None, description="Leading slice of the extracted text."
    )
    page_count: int | None = None
    upload_date: datetime
    processed_date: datetime | None = None


class NewDocument(BaseModel):
    """Fields supplied by the upload/import handler when creating a document."""

    model_config = ConfigDict(frozen=True)

    project_id: int
    filename: str
    original_filename: str
    file_path: str | None = None
    file_url: str | None = None
    file_size: int = Field(default=0, ge=0)
    mime_type: str = "application/pdf"
    upload_type: DocumentSource = DocumentSource.FILE
    uploaded_by: int | None = None
    namespace: str | None = Field(
        default=None,
        description="Explicit namespace; generated from the project id when omitted.",
    )


class UrlImportFailure(BaseModel):
    """A URL that could not be imported, with the reason."""

    model_config = ConfigDict(frozen=True)

    url: str
    error: str


class UrlImportResult(BaseModel):
    """Outcome of importing a batch of PDF URLs into one project."""

    model_config = ConfigDict(frozen=True)

    documents: list[Document] = Field(default_factory=list)
    failed: list[UrlImportFailure] = Field(default_factory=list)
