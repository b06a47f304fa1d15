"""Abstract base class for document and chunk metadata persistence.

The document store owns the ``project_documents`` rows (status, error,
cached text) and the ``document_chunks`` rows (text, offsets, page and
embedding id of every persisted chunk).  Status changes go through
dedicated methods so the store can enforce the processing state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.document import Document, NewDocument
from src.models.rag import StoredChunk


class IDocumentStore(ABC):
    """Contract for relational persistence used by the ingestion pipeline."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if missing."""

    @abstractmethod
    async def close(self) -> None:
        """Release any held connection."""

    # -- Documents -------------------------------------------------------

    @abstractmethod
    async def create_document(self, new_document: NewDocument) -> Document:
        """Insert a document in ``pending`` state and return it."""

    @abstractmethod
    async def get_document(self, document_id: int) -> Document:
        """Return a document.

        Raises
        ------
        src.utils.errors.DocumentNotFoundError
            If no row has this id.
        """

    @abstractmethod
    async def list_project_documents(self, project_id: int) -> list[Document]:
        """Return every document of *project_id*, newest upload first."""

    @abstractmethod
    async def get_documents(self, document_ids: list[int]) -> dict[int, Document]:
        """Return the documents among *document_ids* that exist, keyed by id."""

    @abstractmethod
    async def get_completed_namespaces(self, project_id: int) -> list[str]:
        """Return the distinct namespaces of *project_id*'s completed documents."""

    @abstractmethod
    async def delete_document(self, document_id: int) -> None:
        """Delete a document row and, by cascade, its chunk rows."""

    # -- Status transitions ----------------------------------------------

    @abstractmethod
    async def mark_processing(self, document_id: int) -> Document:
        """Move a ``pending`` document to ``processing``.

        Raises
        ------
        src.utils.errors.InvalidStatusTransition
            If the document is not ``pending``.
        """

    @abstractmethod
    async def mark_completed(
        self, document_id: int, text_content: str, page_count: int
    ) -> Document:
        """Move a ``processing`` document to ``completed`` and cache its text."""

    @abstractmethod
    async def mark_failed(self, document_id: int, error_message: str) -> Document:
        """Move a ``processing`` document to ``failed`` with *error_message*."""

    @abstractmethod
    async def reset_to_pending(self, document_id: int) -> Document:
        """Reset a non-processing document to ``pending`` for reprocessing.

        Raises
        ------
        src.utils.errors.DocumentAlreadyProcessingError
            If the document is currently ``processing``.
        """

    # -- Chunks ----------------------------------------------------------

    @abstractmethod
    async def insert_chunks(self, chunks: list[StoredChunk]) -> int:
        """Insert chunk rows in one transaction; return the number inserted."""

    @abstractmethod
    async def get_chunks(self, document_id: int) -> list[StoredChunk]:
        """Return a document's chunk rows ordered by chunk index."""

    @abstractmethod
    async def get_embedding_ids(self, document_id: int) -> list[str]:
        """Return the embedding ids of a document's chunks, in index order."""

    @abstractmethod
    async def delete_chunks(self, document_id: int) -> int:
        """Delete a document's chunk rows; return how many were removed."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"sqlite"``."""
