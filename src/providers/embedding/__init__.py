"""Embedding provider implementations.

Embeddings convert chunk text into numeric vectors stored in the vector
index and compared at query time.

Three implementations of IEmbeddingProvider (listed in priority order):
    1. HuggingFaceEmbeddingProvider — hosted inference API, needs a token.
       Retries once when the model is still loading (HTTP 503).
    2. JinaEmbeddingProvider       — hosted embeddings API, key optional.
    3. HashingEmbeddingProvider    — deterministic bag-of-characters vector.
       Local and always available; the last resort.

Every vector written to one index must have the same length, so the
embedding service rejects provider output whose dimension differs from
the configured one.
"""

from src.providers.embedding.hashing_embedding_provider import (
    HashingEmbeddingProvider,
    hashing_embedding,
)
from src.providers.embedding.huggingface_embedding_provider import HuggingFaceEmbeddingProvider
from src.providers.embedding.jina_embedding_provider import JinaEmbeddingProvider
from src.providers.embedding.remote_embedding_provider import (
    RemoteEmbeddingProvider,
    parse_embedding_response,
)

__all__ = [
    "HashingEmbeddingProvider",
    "HuggingFaceEmbeddingProvider",
    "JinaEmbeddingProvider",
    "RemoteEmbeddingProvider",
    "hashing_embedding",
    "parse_embedding_response",
]
