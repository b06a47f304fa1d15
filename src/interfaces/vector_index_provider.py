"""Abstract base class for the namespace-scoped vector index.

Every document's vectors live in their own namespace, so the index contract
is deliberately small: upsert, similarity query and delete-by-id, each
scoped to one namespace.  The client is constructed once by the composition
root, opened at startup and closed at shutdown; it is never created lazily
on first use.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.rag import VectorMatch, VectorRecord


# Concrete implementation: ChromaDBVectorIndexProvider (src/providers/vector_index/)
class IVectorIndexProvider(ABC):
    """Contract for the vector index used by ingestion and retrieval."""

    @abstractmethod
    async def open(self) -> None:
        """Establish the shared connection.  Called once at process start."""

    @abstractmethod
    async def close(self) -> None:
        """Release the connection.  Called once at shutdown."""

    @abstractmethod
    async def upsert(self, namespace: str, records: list[VectorRecord]) -> int:
        """Insert or replace *records* in *namespace*.

        Records are written in fixed-size batches, sequentially.  A failing
        batch aborts the remaining ones.

        Returns
        -------
        int
            Number of records written.

        Raises
        ------
        src.utils.errors.VectorStoreError
            On the first failing batch; ``batches_committed`` says how many
            earlier batches were written.
        """

    @abstractmethod
    async def query(self, namespace: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        """Return up to *top_k* matches from *namespace*, highest score first.

        Score thresholding is the caller's job.
        """

    @abstractmethod
    async def delete_many(self, namespace: str, ids: list[str]) -> None:
        """Delete *ids* from *namespace*.  Unknown ids are ignored."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"chromadb"``."""
