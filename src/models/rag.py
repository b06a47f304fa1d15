"""RAG pipeline data models.

Pydantic v2 models for the artefacts flowing through ingestion and
retrieval.  All models are frozen.

Flow overview:

    1. EXTRACTION: a provider returns an :class:`ExtractionResult` holding
       the full text, page count and (optionally) pre-segmented
       :class:`ChunkCandidate` hints.
    2. CHUNKING: the chunker turns raw text into ``ChunkCandidate`` windows
       when the provider supplied no hints.
    3. EMBEDDING + STORAGE: each candidate becomes a :class:`StoredChunk`
       row and a :class:`VectorRecord` in the document's namespace.
    4. RETRIEVAL: namespace queries return :class:`VectorMatch` objects that
       the context service ranks into a :class:`RAGContext`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def make_embedding_id(document_id: int, chunk_index: int) -> str:
    """Return the vector id for chunk *chunk_index* of document *document_id*.

    Depends only on its two arguments, so reprocessing a document reuses
    the same ids.
    """
    return f"doc_{document_id}_chunk_{chunk_index}"


# ---------------------------------------------------------------------------
# Ingestion-side models
# ---------------------------------------------------------------------------
class ChunkCandidate(BaseModel):
    """A trimmed window of extracted text, not yet persisted."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Trimmed chunk text.")
    start_index: int = Field(ge=0, description="Start offset of the untrimmed window.")
    end_index: int = Field(ge=0, description="End offset (exclusive) of the untrimmed window.")
    length: int = Field(ge=0, description="Length of the trimmed text.")
    page_number: int | None = None
    chunk_type: str = "text"


class ExtractionResult(BaseModel):
    """Output of a single extraction provider."""

    model_config = ConfigDict(frozen=True)

    text: str
    page_count: int = Field(default=0, ge=0)
    chunks: list[ChunkCandidate] = Field(
        default_factory=list,
        description="Provider-supplied chunk hints; empty when the chunker must run.",
    )
    provider_name: str = ""


class StoredChunk(BaseModel):
    """A chunk row as persisted by the chunk metadata store."""

    model_config = ConfigDict(frozen=True)

    document_id: int
    chunk_index: int = Field(ge=0)
    chunk_text: str
    chunk_tokens: int = Field(ge=0, description="Trimmed chunk length in characters.")
    page_number: int | None = None
    embedding_id: str
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="start_index, end_index, length and type of the source window.",
    )

    @classmethod
    def from_candidate(
        cls, document_id: int, chunk_index: int, candidate: ChunkCandidate
    ) -> StoredChunk:
        return cls(
            document_id=document_id,
            chunk_index=chunk_index,
            chunk_text=candidate.text,
            chunk_tokens=candidate.length,
            page_number=candidate.page_number,
            embedding_id=make_embedding_id(document_id, chunk_index),
            metadata={
                "start_index": candidate.start_index,
                "end_index": candidate.end_index,
                "length": candidate.length,
                "type": candidate.chunk_type,
            },
        )


class VectorRecord(BaseModel):
    """One vector to upsert into a namespace."""

    model_config = ConfigDict(frozen=True)

    id: str
    values: list[float]
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def for_chunk(cls, chunk: StoredChunk, values: list[float]) -> VectorRecord:
        metadata: dict[str, Any] = {
            "document_id": chunk.document_id,
            "chunk_index": chunk.chunk_index,
            "text": chunk.chunk_text,
            "start_index": chunk.metadata.get("start_index", 0),
            "end_index": chunk.metadata.get("end_index", 0),
            "length": chunk.chunk_tokens,
        }
        # The index rejects null metadata values, so page_number is only
        # written when known.
        if chunk.page_number is not None:
            metadata["page_number"] = chunk.page_number
        return cls(id=chunk.embedding_id, values=values, metadata=metadata)


class IngestionResult(BaseModel):
    """Summary of one orchestrator run for a document."""

    model_config = ConfigDict(frozen=True)

    document_id: int
    succeeded: bool
    chunks_created: int = Field(default=0, ge=0)
    page_count: int = Field(default=0, ge=0)
    provider_used: str | None = None
    error_message: str | None = None
    ingestion_time: float = Field(default=0.0, ge=0.0)


# ---------------------------------------------------------------------------
# Retrieval-side models
# ---------------------------------------------------------------------------
class VectorMatch(BaseModel):
    """A single similarity-query hit from one namespace."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def document_id(self) -> int | None:
        value = self.metadata.get("document_id")
        return int(value) if value is not None else None


class SourceDocument(BaseModel):
    """Source metadata attached to each retrieved chunk."""

    model_config = ConfigDict(frozen=True)

    filename: str
    upload_date: datetime | None = None


class ContextChunk(BaseModel):
    """A retrieved chunk with its score and source document."""

    model_config = ConfigDict(frozen=True)

    id: str
    score: float
    text: str
    document_id: int
    chunk_index: int
    page_number: int | None = None
    document: SourceDocument | None = None


class RAGContext(BaseModel):
    """Ranked context for a project query."""

    model_config = ConfigDict(frozen=True)

    chunks: list[ContextChunk] = Field(default_factory=list)
    document_ids: list[int] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> RAGContext:
        return cls(chunks=[], document_ids=[])
