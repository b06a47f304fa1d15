"""Abstract base class for text-embedding providers.

Defines the contract for turning one text into one embedding vector.
Implementations may wrap the HuggingFace inference API, the Jina
embeddings API, or the local deterministic hashing embedder.  The
embedding service chains them in priority order.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (src/providers/embedding/):
#   HuggingFaceEmbeddingProvider - hosted sentence-transformers model
#   JinaEmbeddingProvider        - hosted jina-embeddings model
#   HashingEmbeddingProvider     - deterministic local fallback, never fails
class IEmbeddingProvider(ABC):
    """Contract for embedding backends used by the RAG pipeline."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for *text*.

        Callers cap the text length before calling; providers do not
        truncate.

        Raises
        ------
        src.utils.errors.EmbeddingError
            If the backend fails or returns an unusable response.
        """

    @abstractmethod
    def get_dimension(self) -> int | None:
        """Return the native vector length, or ``None`` when only known per response."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier, e.g. ``"huggingface"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (credentials present)."""
