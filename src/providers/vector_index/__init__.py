"""Vector index providers."""

from src.providers.vector_index.chromadb_provider import ChromaDBVectorIndexProvider

__all__ = ["ChromaDBVectorIndexProvider"]
