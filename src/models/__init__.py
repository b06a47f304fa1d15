"""docrag domain models — re-exports all public model classes.

The models are organized across two submodules by domain concern:
    - document.py — Project documents and their processing state machine
    - rag.py      — Extraction output, chunks, vectors and retrieval results
"""

from __future__ import annotations

# --- Document models: one row per uploaded / imported PDF. ---
from src.models.document import (
    Document,
    DocumentSource,
    NewDocument,
    ProcessingStatus,
    UrlImportFailure,
    UrlImportResult,
    can_reprocess,
    can_transition,
)
# --- RAG models: artefacts flowing through ingestion and retrieval. ---
from src.models.rag import (
    ChunkCandidate,
    ContextChunk,
    ExtractionResult,
    IngestionResult,
    RAGContext,
    SourceDocument,
    StoredChunk,
    VectorMatch,
    VectorRecord,
    make_embedding_id,
)

__all__ = [
    # document
    "Document",
    "DocumentSource",
    "NewDocument",
    "ProcessingStatus",
    "UrlImportFailure",
    "UrlImportResult",
    "can_reprocess",
    "can_transition",
    # rag
    "ChunkCandidate",
    "ContextChunk",
    "ExtractionResult",
    "IngestionResult",
    "RAGContext",
    "SourceDocument",
    "StoredChunk",
    "VectorMatch",
    "VectorRecord",
    "make_embedding_id",
]
